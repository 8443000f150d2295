from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from .bodies import Body


@dataclass(frozen=True)
class Orbit:
    d: float      # separation
    a: float      # semi-major axis (negative when unbound)
    e: float
    inc: float
    n: float      # mean motion
    P: float      # period (inf when unbound)
    h: NDArray[np.float64]  # specific angular momentum vector


def particle_to_orbit(G: float, body: Body, primary: Body) -> Orbit:
    """Two-body elements of `body` relative to `primary`."""
    M = body.m + primary.m
    if M == 0.0:
        raise ValueError("orbit needs a nonzero total mass")
    GM = G * M

    dr = body.x - primary.x
    dv = body.v - primary.v
    r = float(np.linalg.norm(dr))
    if r == 0.0:
        raise ValueError("orbit needs a nonzero separation")
    v2 = float(np.dot(dv, dv))

    h = np.cross(dr, dv)
    hn = float(np.linalg.norm(h))

    # e vector: (v x h)/GM - r/|r|
    evec = np.cross(dv, h)/GM - dr/r
    e = float(np.linalg.norm(evec))

    inv_a = 2.0/r - v2/GM
    if inv_a == 0.0:
        raise ValueError("orbit is exactly parabolic; no mean motion")
    a = 1.0 / inv_a
    n = float(np.sign(a) * np.sqrt(GM / abs(a)**3))
    P = 2.0*np.pi/n if a > 0 else np.inf
    inc = float(np.arccos(h[2]/hn)) if hn > 0 else 0.0

    return Orbit(d=r, a=float(a), e=e, inc=inc, n=n, P=float(P), h=h)
