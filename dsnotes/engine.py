from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .bandit import BanditStrategy, BernoulliArm, make_strategy
from .observer import Observer, ObserverCfg
from .recorder import ParquetRecorder


# ------------------------------- Config --------------------------------

@dataclass(frozen=True)
class SimulationConfig:
    run_id: str
    data_root: str
    trials: int
    seed: int
    probabilities: Sequence[float]
    arm_names: Optional[Sequence[str]] = None
    strategy: str = "thompson"
    strategy_params: Dict[str, Any] = field(default_factory=dict)
    log_every: int = 0

    def names(self) -> List[str]:
        if self.arm_names:
            return [str(n) for n in self.arm_names]
        return [f"slot_{i}" for i in range(len(self.probabilities))]


def validate_config(cfg: SimulationConfig) -> None:
    """Raise ValueError for configs the engine cannot run."""
    if int(cfg.trials) < 0:
        raise ValueError(f"trials must be >= 0, got {cfg.trials}")
    if len(cfg.probabilities) == 0:
        raise ValueError("at least one arm probability is required")
    if cfg.arm_names is not None and len(cfg.arm_names) != len(cfg.probabilities):
        raise ValueError(
            f"arm_names has {len(cfg.arm_names)} entries but there are {len(cfg.probabilities)} probabilities"
        )
    for i, p in enumerate(cfg.probabilities):
        if not (0.0 <= float(p) <= 1.0):
            raise ValueError(f"probability #{i} must be in [0, 1], got {p!r}")


def _split_seed(seed: Optional[int]) -> tuple[np.random.SeedSequence, np.random.SeedSequence]:
    """Independent streams for the strategy and for the slot machines."""
    strategy_ss, env_ss = np.random.SeedSequence(seed).spawn(2)
    return strategy_ss, env_ss


# ------------------------------- Result --------------------------------

@dataclass
class SimulationResult:
    strategy: str
    arm_names: List[str]
    probabilities: np.ndarray
    selections: np.ndarray     # chosen arm per trial
    rewards: np.ndarray        # 0/1 per trial
    final: BanditStrategy

    @property
    def trials(self) -> int:
        return int(self.selections.size)

    @property
    def n_arms(self) -> int:
        return int(self.probabilities.size)

    @property
    def best_arm(self) -> int:
        return int(np.argmax(self.probabilities))

    @property
    def counts(self) -> np.ndarray:
        return np.bincount(self.selections, minlength=self.n_arms).astype(np.int64)

    @property
    def shares(self) -> np.ndarray:
        return selection_frequency(self.selections, self.n_arms)

    @property
    def regret(self) -> np.ndarray:
        """Expected per-trial regret p_best - p_chosen."""
        if self.trials == 0:
            return np.zeros(0, dtype=np.float64)
        return self.probabilities[self.best_arm] - self.probabilities[self.selections]

    @property
    def cum_regret(self) -> np.ndarray:
        return np.cumsum(self.regret)

    def frame(self) -> pd.DataFrame:
        """One row per trial, same columns as the recorded `trials` table."""
        names = np.asarray(self.arm_names, dtype=object)
        sel = self.selections
        return pd.DataFrame({
            "trial": np.arange(self.trials, dtype=np.int64),
            "strategy": self.strategy,
            "arm": sel.astype(np.int64),
            "arm_name": names[sel] if self.trials else np.array([], dtype=object),
            "reward": self.rewards.astype(np.int64),
            "best_arm": np.full(self.trials, self.best_arm, dtype=np.int64),
            "regret": self.regret,
            "cum_reward": np.cumsum(self.rewards).astype(np.int64),
            "cum_regret": self.cum_regret,
        })

    def arms_frame(self) -> pd.DataFrame:
        s = self.final
        return pd.DataFrame({
            "arm": np.arange(self.n_arms, dtype=np.int64),
            "arm_name": list(self.arm_names),
            "p_true": self.probabilities.astype(np.float64),
            "successes": s.successes.copy(),
            "failures": s.failures.copy(),
            "pulls": s.pulls,
            "share": self.shares,
            "posterior_mean": np.asarray(s.posterior_mean(), dtype=np.float64),
        })

    def summary(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "trials": self.trials,
            "best_arm": self.best_arm,
            "best_arm_name": self.arm_names[self.best_arm],
            "counts": self.counts.tolist(),
            "shares": [round(float(x), 4) for x in self.shares],
            "total_reward": int(self.rewards.sum()),
            "cum_regret": float(self.cum_regret[-1]) if self.trials else 0.0,
        }


# ------------------------------- Helpers -------------------------------

def selection_frequency(selections: np.ndarray, n_arms: int, window: Optional[int] = None) -> np.ndarray:
    """
    Share of trials each arm was chosen.

    With `window`, returns a (trials, n_arms) array of trailing-window shares
    instead (the first rows use however many trials exist so far).
    """
    sel = np.asarray(selections, dtype=np.int64)
    if window is None:
        if sel.size == 0:
            return np.zeros(n_arms, dtype=np.float64)
        return np.bincount(sel, minlength=n_arms) / float(sel.size)

    window = int(window)
    if window <= 0:
        raise ValueError(f"window must be >= 1, got {window}")
    onehot = np.zeros((sel.size, n_arms), dtype=np.float64)
    onehot[np.arange(sel.size), sel] = 1.0
    csum = np.cumsum(onehot, axis=0)
    lagged = np.zeros_like(csum)
    if sel.size > window:
        lagged[window:] = csum[:-window]
    denom = np.minimum(np.arange(1, sel.size + 1), window).astype(np.float64)
    return (csum - lagged) / denom[:, None]


# ------------------------------ Engine ---------------------------------

class BanditEngine:
    """
    Headless bandit simulation.

    Each trial: the strategy selects an arm, the arm is pulled, the strategy
    is updated with the reward, and the trial is recorded. With a recorder
    attached the run writes Parquet shards:
      - trials_NNNN.parquet : one row per trial
      - arms_NNNN.parquet   : final per-arm counts and posterior
    plus manifest.json and *_index.json, then a _done.marker. With
    cfg.log_every > 0 and no observer given, observer_stats.csv lands in the
    run folder too.
    """

    def __init__(
        self,
        cfg: SimulationConfig,
        recorder: Optional[ParquetRecorder] = None,
        observer: Optional[Observer] = None,
        batch_rows: int = 5_000,
    ) -> None:
        validate_config(cfg)
        self.cfg = cfg
        self.recorder = recorder
        if observer is None and recorder is not None and cfg.log_every > 0:
            observer = Observer(ObserverCfg(log_every=cfg.log_every), recorder.run_dir)
        self.observer = observer
        self.batch_rows = max(1, int(batch_rows))

        names = cfg.names()
        self.arms = [BernoulliArm(n, float(p)) for n, p in zip(names, cfg.probabilities)]
        self.probabilities = np.asarray([a.p for a in self.arms], dtype=np.float64)

        strategy_ss, env_ss = _split_seed(cfg.seed)
        self.rng = np.random.default_rng(env_ss)
        self.strategy = make_strategy(cfg.strategy, len(self.arms), seed=strategy_ss, **dict(cfg.strategy_params))

    @property
    def run_dir(self) -> Optional[Path]:
        return self.recorder.run_dir if self.recorder is not None else None

    def run(self) -> SimulationResult:
        trials = int(self.cfg.trials)
        best = int(np.argmax(self.probabilities))
        p_best = float(self.probabilities[best])

        selections = np.zeros(trials, dtype=np.int64)
        rewards = np.zeros(trials, dtype=np.int64)
        pending: List[Dict[str, Any]] = []
        cum_reward = 0
        cum_regret = 0.0

        for t in range(trials):
            arm = self.strategy.select()
            reward = self.arms[arm].pull(self.rng)
            self.strategy.update(arm, reward)

            selections[t] = arm
            rewards[t] = reward

            if self.observer is not None:
                self.observer.step(t, self.strategy)

            if self.recorder is not None:
                regret = p_best - float(self.probabilities[arm])
                cum_reward += reward
                cum_regret += regret
                pending.append({
                    "trial": t,
                    "strategy": self.strategy.name,
                    "arm": arm,
                    "arm_name": self.arms[arm].name,
                    "reward": reward,
                    "best_arm": best,
                    "regret": regret,
                    "cum_reward": cum_reward,
                    "cum_regret": cum_regret,
                })
                if len(pending) >= self.batch_rows:
                    self.recorder.add("trials", pending)
                    pending = []

        result = SimulationResult(
            strategy=self.strategy.name,
            arm_names=[a.name for a in self.arms],
            probabilities=self.probabilities.copy(),
            selections=selections,
            rewards=rewards,
            final=self.strategy,
        )

        if self.recorder is not None:
            if pending:
                self.recorder.add("trials", pending)
            self.recorder.add("arms", result.arms_frame().to_dict(orient="records"))
            self.recorder.finalize()
        if self.observer is not None:
            self.observer.finalize(extra={"strategy": self.strategy.name})
        if self.recorder is not None:
            # small marker so scripts can assert completion without scanning shards
            (self.recorder.run_dir / "_done.marker").write_text("ok", encoding="utf-8")

        return result


def simulate(
    probabilities: Sequence[float],
    trials: int,
    strategy: str = "thompson",
    seed: Optional[int] = 0,
    arm_names: Optional[Sequence[str]] = None,
    **params,
) -> SimulationResult:
    """In-memory run, nothing written to disk."""
    cfg = SimulationConfig(
        run_id="in-memory",
        data_root="",
        trials=int(trials),
        seed=seed,
        probabilities=list(probabilities),
        arm_names=list(arm_names) if arm_names is not None else None,
        strategy=strategy,
        strategy_params=dict(params),
    )
    return BanditEngine(cfg).run()


def config_snapshot(cfg: SimulationConfig) -> Dict[str, Any]:
    out = asdict(cfg)
    out["probabilities"] = [float(p) for p in cfg.probabilities]
    out["arm_names"] = cfg.names()
    return out
