from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any
from pathlib import Path

import numpy as np
import pandas as pd

from .bandit import BanditStrategy


@dataclass
class ObserverCfg:
    """
    Optional observer for diagnostics.

    Parameters
    ----------
    log_every : int
        Interval of trials at which to snapshot the strategy (0 = off).
    out_dir : Optional[str]
        Directory for observer_stats.csv. Defaults to the run folder.
    """
    log_every: int = 0
    out_dir: Optional[str] = None


class Observer:
    """
    Lightweight observer.
    - Every `log_every` trials, records each arm's selection share and its
      current Beta posterior mean.
    - Keeps last_stats for programmatic access.
    - finalize() writes everything to observer_stats.csv.
    """
    def __init__(self, cfg: ObserverCfg, run_dir: Path) -> None:
        self.cfg = cfg
        self.out_dir = Path(cfg.out_dir or run_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)

        self.last_stats: Dict[str, Any] = {}
        self._rows: list[Dict[str, Any]] = []
        self.csv_path = self.out_dir / "observer_stats.csv" if cfg.log_every > 0 else None

    def step(self, trial: int, strategy: BanditStrategy) -> None:
        if self.cfg.log_every <= 0:
            return
        # trial is 0-based; snapshot after every log_every completed trials
        if ((trial + 1) % self.cfg.log_every) != 0:
            return

        pulls = strategy.pulls
        total = max(int(pulls.sum()), 1)
        means = strategy.posterior_mean()

        stats: Dict[str, Any] = {"trial": int(trial + 1)}
        for i in range(strategy.n_arms):
            stats[f"share_{i}"] = float(pulls[i] / total)
        for i in range(strategy.n_arms):
            stats[f"mean_{i}"] = float(means[i])
        stats["leader"] = int(np.argmax(pulls))
        self.last_stats = stats
        self._rows.append(stats)

    def frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows)

    def finalize(self, extra: Dict[str, Any] | None = None) -> None:
        if self.csv_path is None or not self._rows:
            return
        df = self.frame()
        if extra:
            for k, v in extra.items():
                df[k] = v
        df.to_csv(self.csv_path, index=False)
        self._rows.clear()
