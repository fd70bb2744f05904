from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

import numpy as np


# ============================================================
# Arms
# ============================================================

@dataclass(frozen=True)
class BernoulliArm:
    """
    A slot machine that pays 1 with probability `p`, else 0.
    """
    name: str
    p: float

    def __post_init__(self) -> None:
        p = float(self.p)
        if not (0.0 <= p <= 1.0):
            raise ValueError(f"arm '{self.name}': p must be in [0, 1], got {self.p!r}")

    def pull(self, rng: np.random.Generator) -> int:
        return int(rng.random() < self.p)


# ============================================================
# Strategies
# ============================================================

class BanditStrategy:
    """
    Base class for Bernoulli bandit strategies.

    Keeps per-arm success/failure counts; subclasses only decide `select()`.
    """
    name = "base"
    prior: Tuple[float, float] = (1.0, 1.0)

    def __init__(self, n_arms: int, seed: Optional[int | np.random.SeedSequence] = None) -> None:
        n_arms = int(n_arms)
        if n_arms <= 0:
            raise ValueError(f"n_arms must be >= 1, got {n_arms}")
        self.n_arms = n_arms
        self._seed = seed
        self.rng = np.random.default_rng(seed)
        self.successes = np.zeros(n_arms, dtype=np.int64)
        self.failures = np.zeros(n_arms, dtype=np.int64)

    # ------------------------------ state ------------------------------

    @property
    def pulls(self) -> np.ndarray:
        return self.successes + self.failures

    @property
    def total_pulls(self) -> int:
        return int(self.pulls.sum())

    @property
    def values(self) -> np.ndarray:
        """Empirical win rate per arm (0 for arms never pulled)."""
        n = self.pulls
        out = np.zeros(self.n_arms, dtype=np.float64)
        np.divide(self.successes, n, out=out, where=n > 0)
        return out

    def posterior_params(self) -> Tuple[np.ndarray, np.ndarray]:
        """Beta(a0 + successes, b0 + failures) per arm; Beta(1, 1) unless a prior is set."""
        a0, b0 = self.prior
        return self.successes + a0, self.failures + b0

    def posterior_mean(self) -> np.ndarray:
        a, b = self.posterior_params()
        return a / (a + b)

    def reset(self) -> None:
        self.rng = np.random.default_rng(self._seed)
        self.successes[:] = 0
        self.failures[:] = 0

    # ------------------------------ loop -------------------------------

    def select(self) -> int:
        raise NotImplementedError

    def update(self, arm: int, reward: int) -> None:
        if isinstance(arm, (bool, np.bool_)) or arm != int(arm):
            raise IndexError(f"arm must be an integer index, got {arm!r}")
        arm = int(arm)
        if not (0 <= arm < self.n_arms):
            raise IndexError(f"arm {arm} out of range for {self.n_arms} arms")
        if reward not in (0, 1):
            raise ValueError(f"reward must be 0 or 1, got {reward!r}")
        if reward:
            self.successes[arm] += 1
        else:
            self.failures[arm] += 1

    def _argmax(self, scores: np.ndarray) -> int:
        # np.argmax already breaks ties toward the lowest index
        return int(np.argmax(scores))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n_arms={self.n_arms}, pulls={self.pulls.tolist()})"


class ThompsonSampling(BanditStrategy):
    """
    Beta-Bernoulli Thompson Sampling.

    Each round draws theta_i ~ Beta(a0 + successes_i, b0 + failures_i) and
    plays the arm with the largest draw. The draws are kept in `last_samples`.
    """
    name = "thompson"

    def __init__(
        self,
        n_arms: int,
        seed: Optional[int | np.random.SeedSequence] = None,
        prior: Tuple[float, float] = (1.0, 1.0),
    ) -> None:
        super().__init__(n_arms, seed)
        a0, b0 = float(prior[0]), float(prior[1])
        if a0 <= 0.0 or b0 <= 0.0:
            raise ValueError(f"Beta prior parameters must be > 0, got {prior!r}")
        self.prior = (a0, b0)
        self.last_samples = np.full(self.n_arms, np.nan, dtype=np.float64)

    def select(self) -> int:
        a, b = self.posterior_params()
        self.last_samples = self.rng.beta(a, b)
        return self._argmax(self.last_samples)

    def reset(self) -> None:
        super().reset()
        self.last_samples[:] = np.nan


class EpsilonGreedy(BanditStrategy):
    """Explore uniformly with probability epsilon, otherwise exploit the best mean."""
    name = "epsilon_greedy"

    def __init__(
        self,
        n_arms: int,
        seed: Optional[int | np.random.SeedSequence] = None,
        epsilon: float = 0.1,
    ) -> None:
        super().__init__(n_arms, seed)
        epsilon = float(epsilon)
        if not (0.0 <= epsilon <= 1.0):
            raise ValueError(f"epsilon must be in [0, 1], got {epsilon!r}")
        self.epsilon = epsilon

    def select(self) -> int:
        unplayed = np.flatnonzero(self.pulls == 0)
        if unplayed.size:
            return int(unplayed[0])
        if self.rng.random() < self.epsilon:
            return int(self.rng.integers(0, self.n_arms))
        return self._argmax(self.values)


class UCB1(BanditStrategy):
    """Upper confidence bound: mean + sqrt(2 ln t / n_i), each arm played once first."""
    name = "ucb1"

    def select(self) -> int:
        n = self.pulls
        unplayed = np.flatnonzero(n == 0)
        if unplayed.size:
            return int(unplayed[0])
        t = float(n.sum())
        bonus = np.sqrt(2.0 * np.log(t) / n)
        return self._argmax(self.values + bonus)


class RandomChoice(BanditStrategy):
    """Uniform baseline, never exploits."""
    name = "random"

    def select(self) -> int:
        return int(self.rng.integers(0, self.n_arms))


STRATEGIES: Dict[str, Type[BanditStrategy]] = {
    cls.name: cls for cls in (ThompsonSampling, EpsilonGreedy, UCB1, RandomChoice)
}


def make_strategy(
    name: str,
    n_arms: int,
    seed: Optional[int | np.random.SeedSequence] = None,
    **params,
) -> BanditStrategy:
    """
    Build a strategy by name: thompson | epsilon_greedy | ucb1 | random.
    Extra keyword params go to the strategy constructor (prior, epsilon).
    """
    key = str(name).strip().lower().replace("-", "_")
    cls = STRATEGIES.get(key)
    if cls is None:
        raise ValueError(f"unknown strategy '{name}' (expected one of {sorted(STRATEGIES)})")
    if "prior" in params and params["prior"] is not None:
        params["prior"] = tuple(params["prior"])
    return cls(n_arms, seed=seed, **params)
