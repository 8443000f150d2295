#!/usr/bin/env python
from __future__ import annotations

import argparse
import numpy as np
import pandas as pd


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--history_csv", required=True)
    ap.add_argument("--tail", type=float, default=0.1,
                    help="Fraction of the run (by time) used for the late-time averages")
    args = ap.parse_args()

    df = pd.read_csv(args.history_csv)
    print("n records:", len(df), " t_end:", df["t"].iloc[-1])

    E0 = df["E"].iloc[0]
    L0 = df["L"].iloc[0]
    print("energy drift dE/E0:", (df["E"].iloc[-1] - E0) / abs(E0))
    print("angular momentum drift dL/L0:", (df["L"].iloc[-1] - L0) / L0)

    cols = ["a", "e", "inc"] + [c for c in df.columns if c.endswith(("_omega_over_n", "_obliquity"))]
    print("\nInitial / final:")
    print(df[cols].iloc[[0, -1]].T)

    t_cut = df["t"].iloc[-1] * (1.0 - args.tail)
    late = df[df["t"] >= t_cut]
    print("\nLate-time means:")
    print(late[cols].mean(numeric_only=True))

    # pseudo-synchronous rate of Hut (1981) for comparison
    e = late["e"].to_numpy(dtype=float)
    e2 = e*e
    f2 = 1 + 15/2*e2 + 45/8*e2**2 + 5/16*e2**3
    f5 = 1 + 3*e2 + 3/8*e2**2
    ps = f2 / (f5 * (1 - e2)**1.5)
    print("\npseudo-synchronous Omega/n (Hut 1981):", float(np.mean(ps)))


if __name__ == "__main__":
    main()
