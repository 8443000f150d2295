from __future__ import annotations

import logging
from typing import Tuple

from .bodies import Body, TidalParams
from .config import BodyConfig, SystemConfig
from .forces import add_tides_spin
from .ic import body_on_orbit, move_to_com
from .integrate import integrate
from .sigma import derive_sigma_from_timelag, derive_sigma_from_quality_factor
from .simulation import Extras, Force, Simulation
from .spin_ode import initialize_spin_ode

logger = logging.getLogger(__name__)


def _params_from_config(bc: BodyConfig) -> TidalParams:
    p = TidalParams()
    for key in ("k2", "sigma", "moi"):
        p.set(key, getattr(bc, key))
    if bc.spin is not None:
        p.set_spin(bc.spin)
    return p


def build_simulation(cfg: SystemConfig) -> Tuple[Simulation, Extras, Force]:
    """Simulation with tides_spin registered and, if requested, the spin ODE.

    Bodies given by orbital elements orbit the first body. sigma is derived
    from `tau` or `Q` when it is not given directly.
    """
    if cfg.bodies[0].a is not None:
        raise ValueError("the first body needs a state vector, not orbital elements")
    sim = Simulation(G=cfg.units.G)

    for bc in cfg.bodies:
        params = _params_from_config(bc)
        if bc.a is None:
            body = Body(m=bc.m, x=bc.x, v=bc.v, r=bc.r, params=params, name=bc.name)
        else:
            body = body_on_orbit(sim.G, sim.bodies[0], bc.m, bc.a, e=bc.e, inc=bc.inc,
                                 Omega=bc.Omega, omega=bc.omega, f=bc.f, r=bc.r,
                                 params=params, name=bc.name)
        sim.add(body)

    extras = Extras(sim)
    effect = add_tides_spin(extras)

    primary = sim.bodies[0]
    for bc, body in zip(cfg.bodies, sim.bodies):
        if bc.sigma is not None:
            continue
        companion = sim.bodies[1] if body is primary and sim.N > 1 else primary
        sigma = 0.0
        if bc.tau is not None:
            sigma = derive_sigma_from_timelag(extras, body, bc.tau)
        elif bc.Q is not None and companion is not body:
            sigma = derive_sigma_from_quality_factor(extras, body, companion, bc.Q)
        # 0 means the derivation failed (already reported)
        if sigma != 0.0:
            body.params.sigma = sigma
            logger.info("%s: sigma=%.6e", body.name or body.hash, sigma)

    if cfg.move_to_com:
        move_to_com(sim)
    if cfg.evolve_spins:
        initialize_spin_ode(sim, effect)
    return sim, extras, effect


def run_system(cfg: SystemConfig) -> dict:
    sim, extras, effect = build_simulation(cfg)
    res = integrate(sim, cfg.sim.t_max, cfg.sim, record_every=cfg.output.record_every)
    res["errors"] = list(extras.errors)
    return res
