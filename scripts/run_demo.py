from warnings import warn

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np
from loguru import logger

from plotreduce import LinePlotExplorer, LinePlotReducer, configure_logging

# --- User configuration dictionary ---
CONFIG = {
    "N_SAMPLES": 5_000_000,  # samples per line
    "SAMPLE_RATE": 1e6,  # Hz, x axis is time in seconds
    "NOISE_LEVEL": 0.05,  # std of white noise added to the signals
    "N_SPIKES": 25,  # number of single-sample spikes hidden in the first line
    "GAP_SECONDS": (1.0, 1.2),  # interval set to NaN in the second line
    "KIND": "line",  # "line" or "dual"
    "LOG_LEVEL": "INFO",  # logging level: DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL
    "SEED": 0,
}


def make_signals(config):
    """Build one shared time axis and two long test signals."""
    rng = np.random.default_rng(config["SEED"])
    n = config["N_SAMPLES"]
    t = np.arange(n) / config["SAMPLE_RATE"]

    x = np.sin(2 * np.pi * 3 * t) + config["NOISE_LEVEL"] * rng.standard_normal(n)
    spikes = rng.integers(0, n, config["N_SPIKES"])
    x[spikes] += rng.choice([-4.0, 4.0], config["N_SPIKES"])

    y = np.exp(-t) * np.cos(2 * np.pi * 0.5 * t)
    y += config["NOISE_LEVEL"] * rng.standard_normal(n)
    gap_lo, gap_hi = config["GAP_SECONDS"]
    y[(t >= gap_lo) & (t < gap_hi)] = np.nan

    return t, x, y


def main() -> None:
    """
    Plot two long signals through the reducer and open an explorer.
    """
    configure_logging(CONFIG.get("LOG_LEVEL", "INFO"))

    t, x, y = make_signals(CONFIG)
    logger.info(f"Generated {len(t)} samples per line")

    fig, ax = plt.subplots(figsize=(10, 5))
    if CONFIG["KIND"] == "dual":
        reducer = LinePlotReducer(t, x, "b", t, y, "r", ax=ax, kind="dual")
    else:
        # One x buffer shared by both lines
        reducer = LinePlotReducer(t, np.column_stack([x, y]), ax=ax, linewidth=1.0)

    ax.set_xlabel("Time (s)")
    ax.set_title(f"{len(t):,} samples per line")
    logger.info(f"Points drawn per line: {reducer.point_counts()}")

    explorer = LinePlotExplorer(fig, t[0], t[-1])
    plt.show()


if __name__ == "__main__":
    # Set Matplotlib rcParams directly here
    for optn, val in {
        "figure.constrained_layout.use": True,
        "figure.dpi": 90,
        "font.family": ("sans-serif",),
        "font.size": 11,
        "lines.linewidth": 1.0,
        "axes.formatter.useoffset": False,
    }.items():
        if isinstance(val, (list, tuple)):
            val = tuple(val)
        try:
            mpl.rcParams[optn] = val
        except KeyError:
            warn(f"mpl rcparams key '{optn}' not recognised as a valid rc parameter.")
    main()
