#!/usr/bin/env python
from __future__ import annotations

import os
import csv
import argparse
import numpy as np

from tidespin.config import load_system_config, configure_logging, to_json
from tidespin.dataset import history_rows, save_run
from tidespin.system import run_system


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", required=True, help="Path to system JSON config")
    ap.add_argument("--log_level", default="INFO")
    args = ap.parse_args()
    configure_logging(args.log_level)

    cfg = load_system_config(args.config)
    out_dir = cfg.output.out_dir
    os.makedirs(out_dir, exist_ok=True)

    # save the resolved config (defaults filled in)
    to_json(cfg, os.path.join(out_dir, "config_used.json"))

    res = run_system(cfg)
    save_run(res, cfg, out_dir)

    masses = [b.m for b in cfg.bodies]
    rows = history_rows(res, cfg.units.G, masses)
    out_csv = os.path.join(out_dir, "history.csv")
    with open(out_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    print("Saved:", out_csv, f"({res['stop_reason']}, t_end={res['t_end']:.6g})")

    if cfg.output.make_plots:
        from tidespin.plotting import (FigureConfig, set_figure_style, save_figure,
                                       plot_spin_magnitudes, plot_conservation)
        fig_cfg = FigureConfig(fmt="png")
        set_figure_style(fig_cfg)
        fig_dir = os.path.join(out_dir, "figures")
        n = np.array([r["n"] for r in rows])
        save_figure(plot_spin_magnitudes(res["T"], res["S"], res["names"], mean_motion=n),
                    fig_dir, "spin", fig_cfg)
        save_figure(plot_conservation(res["T"], res["E"], res["L"]), fig_dir, "conservation", fig_cfg)


if __name__ == "__main__":
    main()
