# dsnotes/__init__.py
"""
dsnotes core package.

Contains:
- cyclical  : sin/cos encoding of periodic features
- synthetic : random daily timestamp tables
- bandit    : Thompson Sampling and baseline strategies
- engine    : bandit simulation loop
- observer  : periodic selection-share stats
- recorder  : Parquet recorder
- site      : Markdown posts and their image links
- render    : post figures
- runner    : CLI entrypoint
"""

# Public API
from .bandit import EpsilonGreedy, RandomChoice, ThompsonSampling, UCB1, make_strategy
from .cyclical import CyclicalEncoder, cyclical_distance, decode, encode
from .engine import BanditEngine, SimulationConfig, simulate

__all__ = [
    "BanditEngine",
    "CyclicalEncoder",
    "EpsilonGreedy",
    "RandomChoice",
    "SimulationConfig",
    "ThompsonSampling",
    "UCB1",
    "cyclical_distance",
    "decode",
    "encode",
    "make_strategy",
    "simulate",
]
