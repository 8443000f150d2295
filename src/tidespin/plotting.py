from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

# plotting is only needed by the scripts; keep the backend headless
import matplotlib
matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt


@dataclass(frozen=True)
class FigureConfig:
    fmt: str = "png"
    dpi: int = 200
    fontsize: float = 9.0
    figsize: Tuple[float, float] = (4.0, 3.0)


def set_figure_style(cfg: FigureConfig) -> None:
    small = max(6.0, cfg.fontsize - 1.0)
    plt.rcParams.update({
        "figure.figsize": cfg.figsize,
        "font.size": cfg.fontsize,
        "axes.labelsize": cfg.fontsize,
        "legend.fontsize": small,
        "xtick.labelsize": small,
        "ytick.labelsize": small,
        "xtick.direction": "in",
        "ytick.direction": "in",
        "legend.frameon": False,
    })


def save_figure(fig: plt.Figure, out_dir: str, stem: str, cfg: FigureConfig) -> str:
    """Write `<out_dir>/<stem>.<fmt>` and close the figure."""
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, f"{stem}.{cfg.fmt}")
    fig.savefig(path, dpi=cfg.dpi, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_spin_magnitudes(T: NDArray[np.float64],
                         S: NDArray[np.float64],
                         names: Sequence[str],
                         mean_motion: Optional[NDArray[np.float64]] = None) -> plt.Figure:
    """|Omega| of every body with a spin vector; optionally the orbital n for reference.

    S: (T, N, 3), nan rows for bodies without spin.
    """
    fig, ax = plt.subplots()
    for k, name in enumerate(names):
        s = S[:, k, :]
        if np.all(np.isnan(s)):
            continue
        ax.plot(T, np.linalg.norm(s, axis=1), label=name or f"body {k}")
    if mean_motion is not None:
        ax.plot(T, mean_motion, "k--", lw=0.8, label="n")
    ax.set_xlabel("t")
    ax.set_ylabel(r"$|\Omega|$")
    ax.legend()
    return fig


def plot_conservation(T: NDArray[np.float64], E: NDArray[np.float64], L: NDArray[np.float64]) -> plt.Figure:
    fig, ax = plt.subplots()
    E0 = E[0] if E[0] != 0 else 1.0
    L0 = np.linalg.norm(L[0]) or 1.0
    ax.semilogy(T, np.abs((E - E[0]) / E0) + 1e-18, label=r"$|\Delta E/E_0|$")
    ax.semilogy(T, np.linalg.norm(L - L[0], axis=1) / L0 + 1e-18, label=r"$|\Delta L|/|L_0|$")
    ax.set_xlabel("t")
    ax.legend()
    return fig
