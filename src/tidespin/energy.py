from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .errors import MissingSimulationError
from .kernels import tidal_potential, energy_newton
from .simulation import Extras, Simulation


def compute_total_tidal_potential(extras: Extras) -> float:
    """Conservative tidal energy summed over all ordered pairs of real bodies.

    A body enters as source when it has both k2 and sigma set and a nonzero
    radius and mass.
    """
    sim = extras.sim
    if sim is None:
        extras.error("tidal potential requested but no simulation is attached", MissingSimulationError)
        return 0.0

    bodies = sim.real_bodies
    G = sim.G
    H = 0.0
    for i, source in enumerate(bodies):
        p = source.params
        if p.k2 is None or p.sigma is None or source.r == 0 or source.m == 0:
            continue
        for j, target in enumerate(bodies):
            if i == j or target.m == 0:
                continue
            H += tidal_potential(source, target, G, p.k2)
    return float(H)


def spin_kinetic_energy(sim: Simulation) -> float:
    E = 0.0
    for b in sim.real_bodies:
        if b.params.is_spin_tracked:
            s = b.params.spin
            E += 0.5 * b.params.moi * float(np.dot(s, s))
    return float(E)


def total_energy(sim: Simulation) -> float:
    """Orbital + spin kinetic + gravitational + conservative tidal energy.

    Not conserved when sigma is set anywhere; the drift is the dissipated energy.
    """
    E = energy_newton(sim.real_bodies, sim.G) + spin_kinetic_energy(sim)
    if sim.extras is not None:
        E += compute_total_tidal_potential(sim.extras)
    return float(E)


def total_angular_momentum(sim: Simulation) -> NDArray[np.float64]:
    """Orbital angular momentum plus moi * spin of every spin-tracked body."""
    L = np.zeros(3, dtype=np.float64)
    for b in sim.real_bodies:
        L += b.m * np.cross(b.x, b.v)
        if b.params.is_spin_tracked:
            L += b.params.moi * b.params.spin
    return L
