#!/usr/bin/env python
from __future__ import annotations

import os
import csv
import argparse
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import Any, Dict
import numpy as np
from tqdm import tqdm

from tidespin.config import load_system_config, configure_logging, SystemConfig
from tidespin.dataset import history_rows
from tidespin.system import run_system


def _set_thread_env():
    # Avoid oversubscription when also using multiple processes.
    os.environ.setdefault("OMP_NUM_THREADS", "1")
    os.environ.setdefault("OPENBLAS_NUM_THREADS", "1")
    os.environ.setdefault("MKL_NUM_THREADS", "1")


def _with_tau(cfg: SystemConfig, body: int, tau: float) -> SystemConfig:
    bodies = list(cfg.bodies)
    bodies[body] = replace(bodies[body], tau=float(tau), sigma=None, Q=None)
    return replace(cfg, bodies=bodies)


def _worker(task: tuple[float, SystemConfig]) -> Dict[str, Any]:
    tau, cfg = task
    res = run_system(cfg)
    rows = history_rows(res, cfg.units.G, [b.m for b in cfg.bodies])
    last = rows[-1]
    out = {"tau": tau, "stop_reason": res["stop_reason"], "t_end": res["t_end"],
           "runtime_sec": res["runtime_sec"], "n_errors": len(res["errors"])}
    out.update({k: v for k, v in last.items() if k != "t"})
    return out


def main():
    _set_thread_env()
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", required=True, help="Path to system JSON config")
    ap.add_argument("--body", type=int, default=1, help="Index of the body whose time lag is scanned")
    ap.add_argument("--tau_min", type=float, required=True)
    ap.add_argument("--tau_max", type=float, required=True)
    ap.add_argument("--n", type=int, default=8)
    ap.add_argument("--workers", type=int, default=0)
    ap.add_argument("--out", default=None)
    args = ap.parse_args()
    configure_logging("WARNING")

    cfg = load_system_config(args.config)
    taus = np.geomspace(args.tau_min, args.tau_max, args.n)
    tasks = [(float(t), _with_tau(cfg, args.body, t)) for t in taus]

    workers = args.workers or (os.cpu_count() or 4)
    out_csv = args.out or os.path.join(cfg.output.out_dir, "tau_scan.csv")
    os.makedirs(os.path.dirname(out_csv) or ".", exist_ok=True)

    with ProcessPoolExecutor(max_workers=workers) as ex:
        rows = list(tqdm(ex.map(_worker, tasks), total=len(tasks)))

    fieldnames = sorted({k for r in rows for k in r.keys()}, key=lambda k: (k != "tau", k))
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    print("Saved:", out_csv)


if __name__ == "__main__":
    main()
