"""Matplotlib charts for simulation traces and generator samples.

Charts are written straight to disk. The module does not pick a matplotlib
backend; headless callers select a non-interactive one such as Agg.
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from tokenbucketsim.driver import SimulationTrace

logger = logging.getLogger(__name__)


def plot_trace(trace: SimulationTrace, path: str | Path, title: str | None = None) -> Path:
    """Plot bucket level and cumulative request outcomes over time.

    Args:
        trace: Trace returned by ``FrameLoop.run``.
        path: Output image path. Parent directories are created.
        title: Optional figure title.

    Returns:
        The path the figure was written to.
    """
    df = trace.to_dataframe()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1.step(df.index, df["bucket_level"], where="post", linewidth=2, color="green", label="Bucket level")
    ax1.step(df.index, df["max_level"], where="post", linestyle="--", color="red", label="Capacity")
    ax1.set_ylabel("Tokens")
    ax1.set_title(title or "Token bucket level")
    ax1.legend(loc="upper right")
    ax1.grid(True, alpha=0.3)

    ax2.plot(df.index, df["requests_processed"].cumsum(), color="tab:cyan", linewidth=2, label="Processed")
    ax2.plot(df.index, df["requests_dropped"].cumsum(), color="tab:red", linewidth=2, label="Dropped")
    ax2.plot(df.index, df["tokens_wasted"].cumsum(), color="tab:gray", linestyle=":", label="Tokens wasted")
    ax2.set_xlabel("Frame")
    ax2.set_ylabel("Cumulative count")
    ax2.legend(loc="upper left")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)

    logger.debug("Trace chart written to %s (%d frames)", path, len(df))
    return path


def plot_interarrival_histogram(
    samples: np.ndarray,
    path: str | Path,
    mean_rps: float,
    bins: int = 50,
) -> Path:
    """Histogram of interarrival times with the nominal and observed means."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.hist(samples, bins=bins, color="tab:blue", alpha=0.7, edgecolor="black")
    ax.axvline(1 / mean_rps, color="red", linestyle="--", linewidth=2, label=f"Nominal mean ({1 / mean_rps:.3f})")
    ax.axvline(float(np.mean(samples)), color="green", linestyle=":", linewidth=2,
               label=f"Observed mean ({np.mean(samples):.3f})")
    ax.set_xlabel("Interarrival time")
    ax.set_ylabel("Count")
    ax.set_title(f"Interarrival times (n={len(samples)})")
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path
