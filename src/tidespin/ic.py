from __future__ import annotations

from typing import Optional
import numpy as np
from numpy.typing import NDArray

from .bodies import Body, TidalParams
from .simulation import Simulation


def rot_z(theta: float) -> NDArray[np.float64]:
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s, 0.0],
                     [s,  c, 0.0],
                     [0.0, 0.0, 1.0]], dtype=np.float64)


def rot_x(theta: float) -> NDArray[np.float64]:
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[1.0, 0.0, 0.0],
                     [0.0, c, -s],
                     [0.0, s,  c]], dtype=np.float64)


def body_on_orbit(G: float,
                  primary: Body,
                  m: float,
                  a: float,
                  e: float = 0.0,
                  inc: float = 0.0,
                  Omega: float = 0.0,
                  omega: float = 0.0,
                  f: float = 0.0,
                  r: float = 0.0,
                  params: Optional[TidalParams] = None,
                  name: str = "") -> Body:
    """Body on a bound Keplerian orbit about `primary` (angles in radians).

    The orbit is set in the perifocal frame and rotated by
    Rz(Omega) Rx(inc) Rz(omega).
    """
    if a <= 0.0 or not (0.0 <= e < 1.0):
        raise ValueError(f"need a bound orbit, got a={a}, e={e}")
    GM = G * (primary.m + m)
    p = a * (1.0 - e*e)
    rmag = p / (1.0 + e*np.cos(f))

    r_pf = np.array([rmag*np.cos(f), rmag*np.sin(f), 0.0], dtype=np.float64)
    v_pf = np.sqrt(GM / p) * np.array([-np.sin(f), e + np.cos(f), 0.0], dtype=np.float64)

    R = rot_z(Omega) @ rot_x(inc) @ rot_z(omega)
    return Body(m=m,
                x=primary.x + R @ r_pf,
                v=primary.v + R @ v_pf,
                r=r,
                params=params or TidalParams(),
                name=name)


def move_to_com(sim: Simulation) -> None:
    """Shift real bodies so the barycenter is at rest at the origin."""
    bodies = sim.real_bodies
    M = sum(b.m for b in bodies)
    if M == 0.0:
        return
    r_com = sum(b.m*b.x for b in bodies) / M
    v_com = sum(b.m*b.v for b in bodies) / M
    for b in bodies:
        b.x = b.x - r_com
        b.v = b.v - v_com
