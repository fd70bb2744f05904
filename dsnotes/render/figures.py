from __future__ import annotations

"""
Static figures for the posts.

Every image linked from posts/*.md is produced here; render_all() writes the
whole set with the file names the posts reference:

  cyclical-clock.png            hours of the day placed on the unit circle
  cyclical-raw-vs-encoded.png   synthetic timestamps, raw vs sin/cos
  cyclical-sine-ambiguity.png   sine alone maps two times to one value
  cyclical-boundary-distance.png raw vs encoded distance from midnight
  bandit-posteriors.png         Beta posteriors after a Thompson run
  bandit-selection-share.png    rolling share of each slot machine
  bandit-regret.png             cumulative regret per strategy
"""

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib
import numpy as np
import pandas as pd
from scipy import stats

from ..bandit import ThompsonSampling
from ..cyclical import HOURS_PER_DAY, SECONDS_PER_DAY, cyclical_distance, encode
from ..engine import SimulationResult, selection_frequency, simulate
from ..synthetic import random_daily_timestamps

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

logger = logging.getLogger(__name__)

SLOT_PROBABILITIES = [0.25, 0.35, 0.55]
SLOT_NAMES = ["slot A", "slot B", "slot C"]
DPI = 120


def _save(fig, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=DPI)
    plt.close(fig)
    logger.debug("wrote %s", path)
    return path


# ------------------------------ cyclical ------------------------------

def plot_clock(path: str | Path) -> Path:
    hours = np.arange(HOURS_PER_DAY)
    s, c = encode(hours, HOURS_PER_DAY)
    fig, ax = plt.subplots(figsize=(5, 5))
    theta = np.linspace(0, 2 * np.pi, 361)
    ax.plot(np.cos(theta), np.sin(theta), color="0.8", lw=1)
    ax.scatter(c, s, color="tab:blue", zorder=3)
    for h, x, y in zip(hours, c, s):
        ax.annotate(f"{h:02d}", (x, y), textcoords="offset points", xytext=(6, 4), fontsize=8)
    ax.set_xlabel("cos(hour)")
    ax.set_ylabel("sin(hour)")
    ax.set_aspect("equal")
    ax.set_title("24 hours on the unit circle")
    return _save(fig, path)


def plot_raw_vs_encoded(path: str | Path, frame: pd.DataFrame) -> Path:
    s, c = encode(frame["seconds"], SECONDS_PER_DAY)
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4.5))
    ax1.scatter(frame["seconds"], np.zeros(len(frame)), s=8, alpha=0.5, c=frame["hour"], cmap="twilight")
    ax1.set_yticks([])
    ax1.set_xlabel("seconds since midnight")
    ax1.set_title("Raw: 23:59 and 00:01 are far apart")
    ax2.scatter(c, s, s=8, alpha=0.5, c=frame["hour"], cmap="twilight")
    ax2.set_aspect("equal")
    ax2.set_xlabel("cos")
    ax2.set_ylabel("sin")
    ax2.set_title("Encoded: the day closes into a circle")
    return _save(fig, path)


def plot_sine_only_ambiguity(path: str | Path) -> Path:
    hours = np.linspace(0, HOURS_PER_DAY, 481)
    s, c = encode(hours, HOURS_PER_DAY)
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(hours, s, label="sin")
    ax.plot(hours, c, label="cos", ls="--")
    # 03:00 and 09:00 share a sine value, only cosine tells them apart
    for h in (3.0, 9.0):
        hs, hc = encode(h, HOURS_PER_DAY)
        ax.scatter([h, h], [hs, hc], color="black", zorder=3)
        ax.annotate(f"{int(h):02d}:00", (h, hs), textcoords="offset points", xytext=(4, 6))
    ax.axhline(encode(3.0, HOURS_PER_DAY)[0], color="0.6", lw=0.8, ls=":")
    ax.set_xlabel("hour of day")
    ax.set_xticks(range(0, 25, 3))
    ax.legend(loc="lower left")
    ax.set_title("Sine alone is not enough")
    return _save(fig, path)


def plot_boundary_distance(path: str | Path) -> Path:
    seconds = np.arange(0, SECONDS_PER_DAY, 60)
    raw = np.abs(seconds - 0)
    enc = cyclical_distance(seconds, 0, SECONDS_PER_DAY)
    fig, ax1 = plt.subplots(figsize=(8, 4))
    ax1.plot(seconds / 3600.0, raw / SECONDS_PER_DAY, label="raw |t - 0| / day")
    ax1.plot(seconds / 3600.0, enc / 2.0, label="encoded distance / 2")
    ax1.set_xlabel("hour of day")
    ax1.set_ylabel("normalised distance from midnight")
    ax1.set_xticks(range(0, 25, 3))
    ax1.legend()
    ax1.set_title("Distance from midnight")
    return _save(fig, path)


# ------------------------------ bandits -------------------------------

def plot_posteriors(path: str | Path, strategy: ThompsonSampling, names: Sequence[str]) -> Path:
    # endpoints dropped: priors below 1 diverge there
    x = np.linspace(0.001, 0.999, 999)
    a, b = strategy.posterior_params()
    fig, ax = plt.subplots(figsize=(8, 4))
    for i, name in enumerate(names):
        pdf = stats.beta.pdf(x, a[i], b[i])
        ax.plot(x, pdf, label=f"{name} ({int(strategy.pulls[i])} pulls)")
        ax.fill_between(x, pdf, alpha=0.15)
    ax.set_xlabel("win probability")
    ax.set_ylabel("posterior density")
    ax.legend()
    ax.set_title("Beta posteriors after the run")
    return _save(fig, path)


def plot_selection_share(path: str | Path, result: SimulationResult, names: Sequence[str], window: int = 100) -> Path:
    share = selection_frequency(result.selections, result.n_arms, window=window)
    t = np.arange(1, result.trials + 1)
    fig, ax = plt.subplots(figsize=(8, 4))
    for i, name in enumerate(names):
        ax.plot(t, share[:, i], label=f"{name} (p={result.probabilities[i]:.2f})")
    ax.set_ylim(0, 1)
    ax.set_xlabel("trial")
    ax.set_ylabel(f"share of last {window} pulls")
    ax.legend()
    ax.set_title("Thompson Sampling settles on the best machine")
    return _save(fig, path)


def plot_strategy_regret(path: str | Path, results: Dict[str, SimulationResult]) -> Path:
    fig, ax = plt.subplots(figsize=(8, 4))
    for label, res in results.items():
        ax.plot(np.arange(1, res.trials + 1), res.cum_regret, label=label)
    ax.set_xlabel("trial")
    ax.set_ylabel("cumulative expected regret")
    ax.legend()
    ax.set_title("Exploration vs exploitation")
    return _save(fig, path)


# ------------------------------- all ----------------------------------

def render_all(images_dir: str | Path, seed: int = 7, trials: int = 2_000) -> List[Path]:
    images_dir = Path(images_dir)
    frame = random_daily_timestamps(1_000, seed=seed)

    thompson = simulate(SLOT_PROBABILITIES, trials, "thompson", seed=seed, arm_names=SLOT_NAMES)
    compared = {
        "thompson": thompson,
        "epsilon-greedy (0.1)": simulate(SLOT_PROBABILITIES, trials, "epsilon_greedy", seed=seed, epsilon=0.1),
        "ucb1": simulate(SLOT_PROBABILITIES, trials, "ucb1", seed=seed),
        "random": simulate(SLOT_PROBABILITIES, trials, "random", seed=seed),
    }

    return [
        plot_clock(images_dir / "cyclical-clock.png"),
        plot_raw_vs_encoded(images_dir / "cyclical-raw-vs-encoded.png", frame),
        plot_sine_only_ambiguity(images_dir / "cyclical-sine-ambiguity.png"),
        plot_boundary_distance(images_dir / "cyclical-boundary-distance.png"),
        plot_posteriors(images_dir / "bandit-posteriors.png", thompson.final, SLOT_NAMES),
        plot_selection_share(images_dir / "bandit-selection-share.png", thompson, SLOT_NAMES),
        plot_strategy_regret(images_dir / "bandit-regret.png", compared),
    ]
