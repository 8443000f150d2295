from __future__ import annotations

import os
from dataclasses import asdict
from typing import Dict, List
import numpy as np

from .bodies import Body
from .config import SystemConfig
from .orbit import particle_to_orbit


def obliquity(spin, h) -> float:
    """Angle between a spin vector and an orbit normal (radians)."""
    s = np.asarray(spin, dtype=float)
    h = np.asarray(h, dtype=float)
    ns = np.linalg.norm(s)
    nh = np.linalg.norm(h)
    if ns == 0 or nh == 0 or not np.isfinite(ns):
        return float("nan")
    return float(np.arccos(np.clip(np.dot(s, h) / (ns * nh), -1.0, 1.0)))


def history_rows(res: dict, G: float, masses: List[float], primary: int = 0, secondary: int = 1) -> List[Dict]:
    """One flat dict per recorded time for tabular storage.

    Orbital elements are those of `secondary` about `primary`; spin columns
    are written for every body that carries a spin vector.
    """
    names = res["names"]
    rows = []
    for k, t in enumerate(res["T"]):
        p = Body(m=masses[primary], x=res["X"][k, primary], v=res["V"][k, primary])
        s = Body(m=masses[secondary], x=res["X"][k, secondary], v=res["V"][k, secondary])
        orb = particle_to_orbit(G, s, p)
        row = {"t": float(t), "a": orb.a, "e": orb.e, "inc": orb.inc, "n": orb.n,
               "E": float(res["E"][k]), "L": float(np.linalg.norm(res["L"][k]))}
        for i, name in enumerate(names):
            spin = res["S"][k, i]
            if np.any(np.isnan(spin)):
                continue
            label = name or f"body{i}"
            row[f"{label}_omega"] = float(np.linalg.norm(spin))
            row[f"{label}_omega_over_n"] = float(np.linalg.norm(spin) / orb.n)
            row[f"{label}_obliquity"] = obliquity(spin, orb.h)
        rows.append(row)
    return rows


def save_run(res: dict, cfg: SystemConfig, out_dir: str, tag: str = "run") -> str:
    """Store the raw history as compressed npz next to a flattened config."""
    os.makedirs(out_dir, exist_ok=True)
    fname = os.path.join(out_dir, f"{tag}.npz")
    flat = {}
    for k, v in asdict(cfg.sim).items():
        flat[f"sim_{k}"] = v
    np.savez_compressed(fname, T=res["T"], X=res["X"], V=res["V"], S=res["S"],
                        E=res["E"], L=res["L"], names=np.array(res["names"]),
                        sim=np.array([str(flat)]))
    return fname
