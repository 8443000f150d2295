"""Bodies and their optional structural parameters.

A body with only a mass is a point particle. Structure is switched on by
attaching parameters:

    k2          potential Love number of degree 2 (tides raised on the body)
    sigma       tidal dissipation parameter, treated as 0 when unset
    moi         moment of inertia; with a full spin vector the spin evolves
    sx, sy, sz  spin (angular velocity) components

The tidal force a body raises on its companions needs `k2` and all three spin
components. Spin evolution needs `moi` and all three spin components.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional
import numpy as np
from numpy.typing import NDArray


PARAM_KEYS = ("k2", "sigma", "moi", "sx", "sy", "sz")


@dataclass
class TidalParams:
    k2: Optional[float] = None
    sigma: Optional[float] = None
    moi: Optional[float] = None
    sx: Optional[float] = None
    sy: Optional[float] = None
    sz: Optional[float] = None

    def get(self, key: str) -> Optional[float]:
        if key not in PARAM_KEYS:
            raise KeyError(f"unknown tidal parameter {key!r}")
        return getattr(self, key)

    def set(self, key: str, value: Optional[float]) -> None:
        if key not in PARAM_KEYS:
            raise KeyError(f"unknown tidal parameter {key!r}")
        setattr(self, key, None if value is None else float(value))

    @property
    def has_spin(self) -> bool:
        return self.sx is not None and self.sy is not None and self.sz is not None

    @property
    def spin(self) -> Optional[NDArray[np.float64]]:
        if not self.has_spin:
            return None
        return np.array([self.sx, self.sy, self.sz], dtype=np.float64)

    def set_spin(self, spin) -> None:
        sx, sy, sz = (float(s) for s in spin)
        self.sx, self.sy, self.sz = sx, sy, sz

    @property
    def sigma_or_zero(self) -> float:
        return 0.0 if self.sigma is None else float(self.sigma)

    @property
    def is_structured(self) -> bool:
        """Raises tides on its companions."""
        return self.k2 is not None and self.has_spin

    @property
    def is_spin_tracked(self) -> bool:
        """Spin vector is evolved by the spin ODE."""
        return self.moi is not None and self.has_spin

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


def _vec3(v) -> NDArray[np.float64]:
    if v is None:
        return np.zeros(3, dtype=np.float64)
    return np.array(v, dtype=np.float64).reshape(3)


@dataclass
class Body:
    m: float = 0.0
    x: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    v: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    a: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    r: float = 0.0
    params: TidalParams = field(default_factory=TidalParams)
    name: str = ""
    hash: Optional[int] = None
    variational: bool = False

    def __post_init__(self):
        self.m = float(self.m)
        self.r = float(self.r)
        self.x = _vec3(self.x)
        self.v = _vec3(self.v)
        self.a = _vec3(self.a)
