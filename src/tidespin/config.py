from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional
import json
import logging


@dataclass(frozen=True)
class Units:
    # Code units, default G=1.
    G: float = 1.0


@dataclass(frozen=True)
class SimParams:
    # solve_ivp options
    method: str = "DOP853"
    rtol: float = 1e-10
    atol: float = 1e-12
    max_step: float = float('inf')

    # time control; ODE sync hooks run once per chunk
    t_max: float = 100.0
    dt_chunk: float = 1.0

    # storage control
    max_store_points: int = 20000
    decimate_to: int = 5000

    # Minimum required advance in time per chunk; if the solver fails to
    # advance, we bail out instead of spinning forever.
    min_t_advance: float = 1e-12


@dataclass(frozen=True)
class BodyConfig:
    m: float
    name: str = ""

    # either a barycentric state ...
    x: Optional[List[float]] = None
    v: Optional[List[float]] = None

    # ... or orbital elements about the previous body
    a: Optional[float] = None
    e: float = 0.0
    inc: float = 0.0
    Omega: float = 0.0
    omega: float = 0.0
    f: float = 0.0

    r: float = 0.0

    # structure; sigma may also come from tau or Q below
    k2: Optional[float] = None
    sigma: Optional[float] = None
    moi: Optional[float] = None
    spin: Optional[List[float]] = None
    tau: Optional[float] = None
    Q: Optional[float] = None


@dataclass(frozen=True)
class OutputParams:
    out_dir: str = "out_runs"
    record_every: int = 1  # keep every N-th chunk in the spin history
    make_plots: bool = True


@dataclass(frozen=True)
class SystemConfig:
    bodies: List[BodyConfig]
    units: Units = field(default_factory=Units)
    sim: SimParams = field(default_factory=SimParams)
    output: OutputParams = field(default_factory=OutputParams)
    move_to_com: bool = True
    evolve_spins: bool = True


def _dataclass_from_dict(cls, d: Dict[str, Any]):
    # allow passing dict for nested dataclasses
    kwargs = {}
    for f in cls.__dataclass_fields__.values():  # type: ignore
        if f.name not in d:
            continue
        val = d[f.name]
        if f.name == 'max_step' and val is None:
            val = float('inf')
        if hasattr(f.type, "__dataclass_fields__") and isinstance(val, dict):
            kwargs[f.name] = _dataclass_from_dict(f.type, val)
        else:
            kwargs[f.name] = val
    return cls(**kwargs)  # type: ignore


def system_config_from_dict(d: Dict[str, Any]) -> SystemConfig:
    d = dict(d)
    if "bodies" not in d or not d["bodies"]:
        raise ValueError("system config needs a non-empty 'bodies' list")
    d["bodies"] = [_dataclass_from_dict(BodyConfig, b) for b in d["bodies"]]
    if "units" in d:
        d["units"] = _dataclass_from_dict(Units, d["units"])
    if "sim" in d:
        d["sim"] = _dataclass_from_dict(SimParams, d["sim"])
    if "output" in d:
        d["output"] = _dataclass_from_dict(OutputParams, d["output"])
    return _dataclass_from_dict(SystemConfig, d)


def load_system_config(path: str) -> SystemConfig:
    with open(path, "r", encoding="utf-8") as f:
        d = json.load(f)
    return system_config_from_dict(d)


def to_json(obj: Any, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(obj), f, indent=2)


def configure_logging(level: str = "INFO") -> None:
    """Root logger setup for the scripts; library modules only create loggers."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
