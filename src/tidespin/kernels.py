from __future__ import annotations

from typing import Sequence
import numpy as np
from numpy.typing import NDArray

from .bodies import Body


def tidal_force(source: Body,
                target: Body,
                G: float,
                k2: float,
                sigma: float,
                spin: Sequence[float]) -> NDArray[np.float64]:
    """Force on `target` from the tidal/rotational bulge raised on `source`.

    Constant time-lag model of Eggleton, Kiseleva & Hut (1998): a
    conservative quadrupole part from the spin and tidal distortion of the
    source, plus a dissipative part proportional to `sigma` from the lag of
    the bulge. All structural quantities (k2, sigma, spin, radius) belong to
    the source. Both masses must be nonzero and the bodies must not coincide.
    """
    ms = source.m
    Rs = source.r
    mt = target.m
    mtot = ms + mt
    mu_ij = ms * mt / mtot
    big_a = k2 * (Rs * Rs * Rs * Rs * Rs)

    sx, sy, sz = float(spin[0]), float(spin[1]), float(spin[2])

    # separation, pointing from target to source
    dx = source.x[0] - target.x[0]
    dy = source.x[1] - target.x[1]
    dz = source.x[2] - target.x[2]
    d2 = dx*dx + dy*dy + dz*dz
    dr = np.sqrt(d2)

    dvx = source.v[0] - target.v[0]
    dvy = source.v[1] - target.v[1]
    dvz = source.v[2] - target.v[2]

    out = np.zeros(3, dtype=np.float64)
    if k2 == 0.0:
        return out

    quad_prefactor = mt * big_a / mu_ij
    omega_dot_d = sx*dx + sy*dy + sz*dz
    omega_squared = sx*sx + sy*sy + sz*sz

    dr5 = d2 * d2 * dr
    t1 = 5.0 * omega_dot_d * omega_dot_d / (2.0 * dr5 * d2)
    t2 = omega_squared / (2.0 * dr5)
    t3 = omega_dot_d / dr5
    t4 = 6.0 * G * mt / (d2 * d2 * d2 * d2)

    radial = t1 - t2 - t4
    out[0] = quad_prefactor * (radial * dx - t3 * sx)
    out[1] = quad_prefactor * (radial * dy - t3 * sy)
    out[2] = quad_prefactor * (radial * dz - t3 * sz)

    if sigma != 0.0:
        d_dot_vel = dx*dvx + dy*dvy + dz*dvz

        # specific orbital angular momentum h = d x v
        hx = dy*dvz - dz*dvy
        hy = dz*dvx - dx*dvz
        hz = dx*dvy - dy*dvx

        # h - r^2 Omega
        cx = hx - d2 * sx
        cy = hy - d2 * sy
        cz = hz - d2 * sz

        # 3 (d.v) d + (h - r^2 Omega) x d
        wx = 3.0 * d_dot_vel * dx + (cy*dz - cz*dy)
        wy = 3.0 * d_dot_vel * dy + (cz*dx - cx*dz)
        wz = 3.0 * d_dot_vel * dz + (cx*dy - cy*dx)

        d10 = d2 * d2 * d2 * d2 * d2
        prefactor = (-9.0 * sigma * mt * mt * big_a * big_a) / (2.0 * mu_ij * d10)

        out[0] += prefactor * wx
        out[1] += prefactor * wy
        out[2] += prefactor * wz

    return out


def tidal_potential(source: Body, target: Body, G: float, k2: float) -> float:
    """Conservative energy of the static tide raised on `target` by `source`.

    Only the non-dissipative piece has a potential; it is used for energy
    bookkeeping, never to derive forces. Both masses must be nonzero.
    """
    ms = source.m
    mt = target.m
    Rt = target.r

    mratio = ms / mt
    fac = mratio * k2 * Rt*Rt*Rt*Rt*Rt

    d = target.x - source.x
    dr2 = float(np.dot(d, d))

    return -0.5 * G * ms * mt / (dr2*dr2*dr2) * fac


def add_newtonian_gravity(bodies: Sequence[Body], G: float) -> None:
    """Pairwise Newtonian accelerations, added to each body's `a`."""
    n = len(bodies)
    for i in range(n):
        bi = bodies[i]
        for j in range(i+1, n):
            bj = bodies[j]
            d = bj.x - bi.x
            r2 = float(np.dot(d, d))
            inv3 = r2**(-1.5)
            bi.a += G * bj.m * inv3 * d
            bj.a -= G * bi.m * inv3 * d


def energy_newton(bodies: Sequence[Body], G: float) -> float:
    KE = 0.0
    PE = 0.0
    n = len(bodies)
    for i in range(n):
        bi = bodies[i]
        KE += 0.5 * bi.m * float(np.dot(bi.v, bi.v))
        for j in range(i+1, n):
            bj = bodies[j]
            rij = float(np.linalg.norm(bj.x - bi.x))
            PE -= G * bi.m * bj.m / rij
    return float(KE + PE)

