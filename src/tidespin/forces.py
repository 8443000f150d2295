from __future__ import annotations

import logging
from typing import Sequence

from .bodies import Body
from .kernels import tidal_force
from .simulation import Extras, Force, Simulation

logger = logging.getLogger(__name__)

TIDES_SPIN = "tides_spin"


def spin_orbit_accelerations(source: Body,
                             target: Body,
                             G: float,
                             k2: float,
                             sigma: float,
                             spin) -> None:
    """Distribute the source-bulge force over the pair so that m_s a_s + m_t a_t is unchanged."""
    ms = source.m
    mt = target.m
    mtot = ms + mt

    f = tidal_force(source, target, G, k2, sigma, spin)

    target.a -= (ms / mtot) * f
    source.a += (mt / mtot) * f


def apply_tidal_forces(sim: Simulation, effect: Force, bodies: Sequence[Body], N: int) -> None:
    """Add the tidal and spin-distortion accelerations of every structured body.

    A body acts as a tidal source only when `k2` and its full spin vector are
    set; unset `sigma` counts as 0. Pairs with a massless body are skipped.
    """
    if not sim.odes and not effect.warned:
        sim.warning("Spin axes are not being evolved. Call initialize_spin_ode to evolve")
        effect.warned = True

    G = sim.G
    for i in range(N):
        source = bodies[i]
        p = source.params
        if not p.is_structured:
            continue
        spin = p.spin
        sigma = p.sigma_or_zero

        for j in range(N):
            if i == j:
                continue
            target = bodies[j]
            if source.m == 0 or target.m == 0:
                continue
            if (source.x == target.x).all():
                logger.debug("skipping coincident bodies %s and %s", source.hash, target.hash)
                continue
            spin_orbit_accelerations(source, target, G, p.k2, sigma, spin)


def add_tides_spin(extras: Extras) -> Force:
    """Register the tides_spin force with `extras` (and its simulation)."""
    return extras.add_force(Force(TIDES_SPIN, apply_tidal_forces))
