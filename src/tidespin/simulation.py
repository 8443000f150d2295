"""Host simulation context.

Holds the bodies, the registered additional forces and the ODE registry, and
provides the warning / error / fatal reporting channel the effects use.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional
import numpy as np
from numpy.typing import NDArray

from .bodies import Body, TidalParams
from .errors import TidesSpinError, SpinODELengthError

logger = logging.getLogger(__name__)


class ODE:
    """An additional ODE integrated alongside the bodies.

    Callbacks receive the explicit `context` first:

        derivatives(context, ode, ydot, y, t)
        pre_timestep(context, ode, y0)
        post_timestep(context, ode, y0)

    `y` is the caller-visible state buffer; `length` is kept separately so
    callbacks can validate their layout against it.
    """

    def __init__(self, length: int):
        self.length = int(length)
        self.y: NDArray[np.float64] = np.zeros(self.length, dtype=np.float64)
        self.derivatives: Optional[Callable] = None
        self.pre_timestep: Optional[Callable] = None
        self.post_timestep: Optional[Callable] = None
        self.context: Any = None

    def evaluate(self, ydot: NDArray[np.float64], y: NDArray[np.float64], t: float) -> None:
        if self.derivatives is not None:
            self.derivatives(self.context, self, ydot, y, t)
        else:
            ydot[:] = 0.0

    def sync_pre(self) -> None:
        if self.pre_timestep is not None:
            self.pre_timestep(self.context, self, self.y)

    def sync_post(self) -> None:
        if self.post_timestep is not None:
            self.post_timestep(self.context, self, self.y)


class Force:
    """A registered additional force, applied on every force evaluation."""

    def __init__(self, name: str, update: Callable):
        self.name = name
        self.update = update
        self.ode: Optional[ODE] = None
        self.warned = False

    def apply(self, sim: "Simulation") -> None:
        real = sim.real_bodies
        self.update(sim, self, real, len(real))


class Simulation:
    def __init__(self, G: float = 1.0):
        self.G = float(G)
        self.t = 0.0
        self.bodies: List[Body] = []
        self.odes: List[ODE] = []
        self.forces: List[Force] = []
        self.extras: Optional["Extras"] = None
        self._next_hash = 1

    def add(self, body: Optional[Body] = None, **kwargs) -> Body:
        """Append a body (or build one from keyword arguments).

        Variational bodies are kept after all real ones.
        """
        if body is None:
            params = kwargs.pop("params", None)
            if isinstance(params, dict):
                params = TidalParams(**params)
            body = Body(params=params or TidalParams(), **kwargs)
        if body.hash is None:
            body.hash = self._next_hash
        if any(b.hash == body.hash for b in self.bodies):
            raise ValueError(f"duplicate body hash {body.hash}")
        self._next_hash = max(self._next_hash, int(body.hash)) + 1
        if body.variational:
            self.bodies.append(body)
        else:
            self.bodies.insert(self.N_real, body)
        return body

    def get(self, key) -> Body:
        """Look a body up by name or hash."""
        for b in self.bodies:
            if b.hash == key or (b.name and b.name == key):
                return b
        raise KeyError(f"no body {key!r}")

    @property
    def N(self) -> int:
        return len(self.bodies)

    @property
    def N_var(self) -> int:
        return sum(1 for b in self.bodies if b.variational)

    @property
    def N_real(self) -> int:
        return self.N - self.N_var

    @property
    def real_bodies(self) -> List[Body]:
        return self.bodies[:self.N_real]

    def create_ode(self, length: int) -> ODE:
        ode = ODE(length)
        self.odes.append(ode)
        return ode

    # reporting channel

    def warning(self, msg: str) -> None:
        logger.warning(msg)

    def fatal(self, msg: str, exc_type=SpinODELengthError) -> None:
        logger.critical(msg)
        raise exc_type(msg)


class Extras:
    """Effect container attached to a simulation.

    Errors reported here are logged and remembered in `errors`; callers get
    a sentinel return value. With `strict=True` they are raised instead.
    """

    def __init__(self, sim: Optional[Simulation] = None, strict: bool = False):
        self.sim = sim
        self.strict = strict
        self.forces: List[Force] = []
        self.errors: List[str] = []
        if sim is not None:
            sim.extras = self

    def add_force(self, force: Force) -> Force:
        self.forces.append(force)
        if self.sim is not None:
            self.sim.forces.append(force)
        return force

    def error(self, msg: str, exc_type=TidesSpinError) -> None:
        logger.error(msg)
        self.errors.append(msg)
        if self.strict:
            raise exc_type(msg)
