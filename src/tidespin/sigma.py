from __future__ import annotations

from .bodies import Body
from .errors import DomainError, MissingSimulationError
from .orbit import particle_to_orbit
from .simulation import Extras


def derive_sigma_from_timelag(extras: Extras, body: Body, tau: float) -> float:
    """Dissipation parameter for a constant time lag tau: 4 tau G / (3 R^5 k2).

    Returns 0 after reporting an error when k2 or the radius is missing.
    """
    sim = extras.sim
    if sim is None:
        extras.error("Could not set sigma: no simulation attached", MissingSimulationError)
        return 0.0
    k2 = body.params.k2
    r = body.r
    if k2 is not None and r != 0.0:
        return 4.0 * tau * sim.G / (3.0 * r*r*r*r*r * k2)
    extras.error("Could not set sigma because Love number and/or physical radius was not set for this particle",
                 DomainError)
    return 0.0


def derive_sigma_from_quality_factor(extras: Extras, body: Body, primary: Body, Q: float) -> float:
    """Dissipation parameter for a tidal quality factor Q: 2 G / (3 Q R^5 k2 n).

    The mean motion n is that of `body` about `primary`. Returns 0 after
    reporting an error when k2 or the radius is missing.
    """
    sim = extras.sim
    if sim is None:
        extras.error("Could not calculate sigma: no simulation attached", MissingSimulationError)
        return 0.0
    k2 = body.params.k2
    r = body.r
    if k2 is not None and r != 0.0:
        try:
            n = particle_to_orbit(sim.G, body, primary).n
        except ValueError as e:
            extras.error(f"Could not calculate sigma: no mean motion ({e})", DomainError)
            return 0.0
        return 2.0 * sim.G / (3.0 * Q * r*r*r*r*r * k2 * n)
    extras.error("Could not calculate sigma because Love number and/or physical radius was not set for this particle",
                 DomainError)
    return 0.0
