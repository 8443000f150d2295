from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List
import numpy as np
from numpy.typing import NDArray
from scipy.integrate import solve_ivp

from .config import SimParams
from .energy import total_energy, total_angular_momentum
from .errors import TidesSpinError
from .kernels import add_newtonian_gravity
from .simulation import Simulation

logger = logging.getLogger(__name__)


def pack_state(sim: Simulation) -> NDArray[np.float64]:
    """y = [x (N,3), v (N,3), ode_1.y, ode_2.y, ...] over real bodies."""
    bodies = sim.real_bodies
    parts = [np.concatenate([b.x for b in bodies]),
             np.concatenate([b.v for b in bodies])]
    parts.extend(o.y for o in sim.odes)
    return np.concatenate(parts).astype(np.float64)


def unpack_state(sim: Simulation, y: NDArray[np.float64]) -> None:
    bodies = sim.real_bodies
    N = len(bodies)
    x = y[:3*N].reshape(N, 3)
    v = y[3*N:6*N].reshape(N, 3)
    for k, b in enumerate(bodies):
        b.x = x[k].copy()
        b.v = v[k].copy()
    off = 6*N
    for o in sim.odes:
        o.y[:] = y[off:off+o.length]
        off += o.length


def make_rhs(sim: Simulation) -> Callable[[float, NDArray[np.float64]], NDArray[np.float64]]:
    """Right-hand side for the combined body + ODE state.

    Every call is one force evaluation: accelerations are reset, Newtonian
    gravity and all registered forces are added, then each ODE fills its
    slice of the derivative.
    """
    def fun(t: float, yy: NDArray[np.float64]) -> NDArray[np.float64]:
        bodies = sim.real_bodies
        N = len(bodies)
        x = yy[:3*N].reshape(N, 3)
        v = yy[3*N:6*N].reshape(N, 3)
        for k, b in enumerate(bodies):
            b.x = x[k].copy()
            b.v = v[k].copy()
            b.a = np.zeros(3, dtype=np.float64)
        sim.t = t

        add_newtonian_gravity(bodies, sim.G)
        for force in sim.forces:
            force.apply(sim)

        out = np.empty_like(yy)
        out[:3*N] = yy[3*N:6*N]
        out[3*N:6*N] = np.concatenate([b.a for b in bodies])
        off = 6*N
        for o in sim.odes:
            o.evaluate(out[off:off+o.length], yy[off:off+o.length], t)
            off += o.length
        return out

    return fun


def _spin_snapshot(sim: Simulation) -> NDArray[np.float64]:
    S = np.full((sim.N_real, 3), np.nan)
    for k, b in enumerate(sim.real_bodies):
        if b.params.has_spin:
            S[k] = b.params.spin
    return S


def integrate(sim: Simulation, t_end: float, params: SimParams, record_every: int = 1) -> dict:
    """Advance `sim` to `t_end` in chunks of `params.dt_chunk`.

    Each chunk is one host step: ODE pre-sync, one `solve_ivp` call over the
    combined state, unpack, ODE post-sync. Spins in the body params are
    therefore updated once per chunk.
    """
    fun = make_rhs(sim)
    record_every = max(1, int(record_every))

    t_list: List[float] = [sim.t]
    X_list: List[NDArray[np.float64]] = [np.array([b.x for b in sim.real_bodies])]
    V_list: List[NDArray[np.float64]] = [np.array([b.v for b in sim.real_bodies])]
    S_list: List[NDArray[np.float64]] = [_spin_snapshot(sim)]
    E_list: List[float] = [total_energy(sim)]
    L_list: List[NDArray[np.float64]] = [total_angular_momentum(sim)]

    max_step = params.max_step
    if max_step is None or not np.isfinite(max_step) or max_step <= 0:
        max_step = np.inf
    min_adv = float(params.min_t_advance or 0.0)

    start = time.time()
    solver_success = True
    solver_status = 0
    solver_message = "OK"
    stop_reason = ""
    nchunk = 0

    t_start = sim.t
    t0 = t_start
    # chunk ends on the t_start + k*dt_chunk grid, snapped to t_end when within rounding
    t_eps = 1e-12 * max(abs(t_end), abs(params.dt_chunk))
    while t0 < t_end - t_eps:
        t1 = t_start + (nchunk + 1) * params.dt_chunk
        if t1 >= t_end - t_eps:
            t1 = t_end
        t_prev = float(t0)

        for o in sim.odes:
            o.sync_pre()
        y = pack_state(sim)

        try:
            sol = solve_ivp(
                fun, (t0, t1), y,
                method=params.method,
                rtol=params.rtol, atol=params.atol,
                max_step=max_step,
            )
        except TidesSpinError:
            raise
        except Exception as e:
            logger.exception("solve_ivp raised at t=%g", t0)
            solver_success = False
            solver_status = -3
            solver_message = f"Exception in solve_ivp: {type(e).__name__}: {e}"
            stop_reason = "exception"
            break

        solver_success = bool(sol.success)
        solver_status = int(sol.status)
        solver_message = str(sol.message)

        if sol.t.size == 0:
            solver_success = False
            solver_status = -4
            solver_message = "solve_ivp returned empty time array"
            stop_reason = "solver_empty"
            break

        y = sol.y[:, -1].copy()
        if not np.all(np.isfinite(y)):
            solver_success = False
            solver_status = -5
            solver_message = "Non-finite state encountered (nan/inf)"
            stop_reason = "nonfinite"
            break

        unpack_state(sim, y)
        t0 = float(sol.t[-1])
        sim.t = t0
        for o in sim.odes:
            o.sync_post()
        nchunk += 1

        if solver_status == -1 or (not solver_success):
            stop_reason = "solver_failed"
            logger.warning("solver failed at t=%g: %s", t0, solver_message)
            break

        if t0 < t_end and min_adv > 0.0 and (t0 - t_prev) < min_adv:
            solver_success = False
            solver_status = -6
            solver_message = "Stalled: solver did not advance time"
            stop_reason = "stalled"
            break

        if nchunk % record_every == 0 or t0 >= t_end:
            t_list.append(t0)
            X_list.append(np.array([b.x for b in sim.real_bodies]))
            V_list.append(np.array([b.v for b in sim.real_bodies]))
            S_list.append(_spin_snapshot(sim))
            E_list.append(total_energy(sim))
            L_list.append(total_angular_momentum(sim))

        # memory guard
        if len(t_list) > params.max_store_points:
            idx = np.linspace(0, len(t_list)-1, params.decimate_to).astype(int)
            t_list = [t_list[k] for k in idx]
            X_list = [X_list[k] for k in idx]
            V_list = [V_list[k] for k in idx]
            S_list = [S_list[k] for k in idx]
            E_list = [E_list[k] for k in idx]
            L_list = [L_list[k] for k in idx]

    if not stop_reason:
        stop_reason = "t_end"

    E = np.array(E_list, dtype=float)
    L = np.array(L_list, dtype=float)
    logger.info("integrated to t=%g in %d chunks (%s), dE/E=%.3e",
                sim.t, nchunk, stop_reason, (E[-1] - E[0]) / abs(E[0]) if E[0] != 0 else np.nan)

    out: Dict[str, object] = {
        "T": np.array(t_list, dtype=float),
        "X": np.array(X_list),
        "V": np.array(V_list),
        "S": np.array(S_list),
        "E": E,
        "L": L,
        "hashes": [b.hash for b in sim.real_bodies],
        "names": [b.name for b in sim.real_bodies],
        "t_end": float(sim.t),
        "stop_reason": stop_reason,
        "runtime_sec": float(time.time() - start),
        "solver_success": bool(solver_success),
        "solver_status": int(solver_status),
        "solver_message": str(solver_message),
    }
    return out
