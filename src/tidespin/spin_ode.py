"""Spin evolution of structured bodies as an additional ODE.

State layout: one (sx, sy, sz) triple per spin-tracked body, i.e. per real
body with a moment of inertia and a full spin vector when
`initialize_spin_ode` ran. The slot of each body is keyed by its hash, so the
host may reorder bodies between steps. The tracked set itself is frozen:
every derivative evaluation and every sync re-checks it and reports a fatal
error when it changed.

Between steps the spin stored in each body's `params` is authoritative; during
a step the ODE buffer is. `spin_sync_pre` copies params -> buffer,
`spin_sync_post` copies the evolved buffer back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from .bodies import Body
from .kernels import tidal_force
from .simulation import ODE, Force, Simulation

logger = logging.getLogger(__name__)


@dataclass
class SpinContext:
    sim: Simulation
    effect: Optional[Force]
    hashes: Tuple[int, ...]
    slots: Dict[int, int] = field(default_factory=dict)

    def __post_init__(self):
        if not self.slots:
            self.slots = {h: k for k, h in enumerate(self.hashes)}


def spin_tracked_hashes(sim: Simulation) -> Tuple[int, ...]:
    return tuple(b.hash for b in sim.real_bodies if b.params.is_spin_tracked)


def _tracked_bodies(ctx: SpinContext, ode: ODE) -> Dict[int, Body]:
    """Fresh hash -> body lookup; fatal if the tracked set changed."""
    sim = ctx.sim
    current = spin_tracked_hashes(sim)
    if len(current)*3 != ode.length or set(current) != set(ctx.hashes):
        sim.fatal(f"tides_spin ODE is not of the expected length: "
                  f"{len(current)} spin-tracked bodies for an ODE of length {ode.length}")
    return {b.hash: b for b in sim.real_bodies if b.hash in ctx.slots}


def spin_derivatives(ctx: SpinContext,
                     ode: ODE,
                     ydot: NDArray[np.float64],
                     y: NDArray[np.float64],
                     t: float) -> None:
    """Spin rate of every tracked body from the reaction torque of its own bulge.

    dOmega_i/dt = -(mu_ij / moi_i) * sum_j d_ij x F_ij, with F_ij the force
    on j from the tides raised on i (evaluated with i's current spin from `y`).
    Tracked bodies without k2 raise no tides and keep a constant spin.
    """
    sim = ctx.sim
    lookup = _tracked_bodies(ctx, ode)
    real = sim.real_bodies
    G = sim.G

    for h in ctx.hashes:
        k = ctx.slots[h]
        pi = lookup[h]
        ydot[3*k:3*k+3] = 0.0

        k2 = pi.params.k2
        if k2 is None:
            continue
        sigma = pi.params.sigma_or_zero
        moi = pi.params.moi
        spin = y[3*k:3*k+3]

        for pj in real:
            if pj is pi or pi.m == 0 or pj.m == 0:
                continue
            d = pi.x - pj.x
            if not d.any():
                continue
            mu_ij = pi.m * pj.m / (pi.m + pj.m)
            tf = tidal_force(pi, pj, G, k2, sigma, spin)
            ydot[3*k:3*k+3] += np.cross(d, tf) * (-mu_ij / moi)


def spin_sync_pre(ctx: SpinContext, ode: ODE, y0: NDArray[np.float64]) -> None:
    lookup = _tracked_bodies(ctx, ode)
    for h in ctx.hashes:
        k = ctx.slots[h]
        p = lookup[h].params
        ode.y[3*k] = p.sx
        ode.y[3*k+1] = p.sy
        ode.y[3*k+2] = p.sz


def spin_sync_post(ctx: SpinContext, ode: ODE, y0: NDArray[np.float64]) -> None:
    lookup = _tracked_bodies(ctx, ode)
    for h in ctx.hashes:
        k = ctx.slots[h]
        lookup[h].params.set_spin(y0[3*k:3*k+3])


def initialize_spin_ode(sim: Simulation, effect: Optional[Force] = None) -> Optional[ODE]:
    """Create the spin ODE for all real bodies with moi and a full spin vector.

    Returns None (and creates nothing) when no body qualifies; tidal forces
    still act, with constant spins. Calling it again replaces the ODE
    previously created for `effect`.
    """
    hashes = spin_tracked_hashes(sim)
    if effect is not None and effect.ode is not None:
        if effect.ode in sim.odes:
            sim.odes.remove(effect.ode)
        effect.ode = None

    if not hashes:
        logger.info("no spin-tracked bodies (moi and sx, sy, sz); spins stay constant")
        return None

    ode = sim.create_ode(3*len(hashes))
    ode.context = SpinContext(sim=sim, effect=effect, hashes=hashes)
    ode.derivatives = spin_derivatives
    ode.pre_timestep = spin_sync_pre
    ode.post_timestep = spin_sync_post
    if effect is not None:
        effect.ode = ode

    ode.sync_pre()
    logger.info("spin ODE created for %d bodies (length %d)", len(hashes), ode.length)
    return ode
