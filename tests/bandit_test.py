# tests/bandit_test.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from dsnotes.bandit import (
    UCB1,
    BernoulliArm,
    EpsilonGreedy,
    RandomChoice,
    ThompsonSampling,
    make_strategy,
)
from dsnotes.engine import SimulationConfig, BanditEngine, selection_frequency, simulate

SLOTS = [0.25, 0.35, 0.55]


def test_arm_validates_probability() -> None:
    with pytest.raises(ValueError):
        BernoulliArm("broken", 1.2)
    rng = np.random.default_rng(0)
    assert BernoulliArm("never", 0.0).pull(rng) == 0
    assert BernoulliArm("always", 1.0).pull(rng) == 1


def test_update_counts_and_validation() -> None:
    s = ThompsonSampling(3, seed=0)
    s.update(2, 1)
    s.update(2, 0)
    s.update(0, 1)
    assert s.successes.tolist() == [1, 0, 1]
    assert s.failures.tolist() == [0, 0, 1]
    assert s.pulls.tolist() == [1, 0, 2]
    assert s.values.tolist() == [1.0, 0.0, 0.5]

    with pytest.raises(IndexError):
        s.update(3, 1)
    with pytest.raises(ValueError):
        s.update(0, 2)


def test_thompson_posterior_and_samples() -> None:
    s = ThompsonSampling(2, seed=1, prior=(2.0, 3.0))
    for _ in range(4):
        s.update(0, 1)
    a, b = s.posterior_params()
    assert a.tolist() == [6.0, 2.0]
    assert b.tolist() == [3.0, 3.0]
    assert s.posterior_mean() == pytest.approx([6 / 9, 2 / 5])

    arm = s.select()
    assert arm == int(np.argmax(s.last_samples))
    assert np.all((s.last_samples > 0) & (s.last_samples < 1))

    with pytest.raises(ValueError):
        ThompsonSampling(2, prior=(0.0, 1.0))


def test_reset_replays_the_same_choices() -> None:
    s = ThompsonSampling(3, seed=123)
    first = [s.select() for _ in range(20)]
    s.update(1, 1)
    s.reset()
    assert s.pulls.sum() == 0
    assert [s.select() for _ in range(20)] == first


def test_epsilon_greedy_and_ucb_try_every_arm_first() -> None:
    for strat in (EpsilonGreedy(4, seed=0, epsilon=0.0), UCB1(4, seed=0)):
        seen = []
        for _ in range(4):
            arm = strat.select()
            seen.append(arm)
            strat.update(arm, 0)
        assert seen == [0, 1, 2, 3]

    with pytest.raises(ValueError):
        EpsilonGreedy(2, epsilon=1.5)


def test_make_strategy_by_name() -> None:
    assert isinstance(make_strategy("thompson", 3), ThompsonSampling)
    assert isinstance(make_strategy("epsilon-greedy", 3, epsilon=0.2), EpsilonGreedy)
    assert isinstance(make_strategy("UCB1", 3), UCB1)
    assert isinstance(make_strategy("random", 3), RandomChoice)
    assert make_strategy("thompson", 2, prior=[2, 2]).prior == (2.0, 2.0)
    with pytest.raises(ValueError):
        make_strategy("softmax", 3)
    with pytest.raises(ValueError):
        make_strategy("thompson", 0)


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_thompson_concentrates_on_best_arm(seed: int) -> None:
    res = simulate(SLOTS, trials=3_000, strategy="thompson", seed=seed)
    shares = res.shares
    assert res.best_arm == 2
    assert shares[2] > 0.6
    assert shares[2] > shares[0] + shares[1]

    # the best arm's share grows as trials accumulate
    early = selection_frequency(res.selections[:300], 3)[2]
    late = selection_frequency(res.selections[-1_000:], 3)[2]
    assert late > early


@pytest.mark.parametrize("name,params", [("epsilon_greedy", {"epsilon": 0.1}), ("ucb1", {})])
def test_baselines_also_find_best_arm(name: str, params: dict) -> None:
    res = simulate(SLOTS, trials=4_000, strategy=name, seed=0, **params)
    assert int(np.argmax(res.counts)) == 2


def test_thompson_beats_random_on_regret() -> None:
    ts = simulate(SLOTS, trials=3_000, strategy="thompson", seed=5)
    rnd = simulate(SLOTS, trials=3_000, strategy="random", seed=5)
    assert ts.cum_regret[-1] < 0.5 * rnd.cum_regret[-1]


def test_same_seed_same_run() -> None:
    a = simulate(SLOTS, trials=500, seed=9)
    b = simulate(SLOTS, trials=500, seed=9)
    c = simulate(SLOTS, trials=500, seed=10)
    assert np.array_equal(a.selections, b.selections)
    assert np.array_equal(a.rewards, b.rewards)
    assert not np.array_equal(a.selections, c.selections)


def test_engine_validates_config() -> None:
    base = dict(run_id="x", data_root="", trials=10, seed=0)
    with pytest.raises(ValueError):
        BanditEngine(SimulationConfig(probabilities=[], **base))
    with pytest.raises(ValueError):
        BanditEngine(SimulationConfig(probabilities=[0.1, 0.2], arm_names=["only"], **base))
    with pytest.raises(ValueError):
        BanditEngine(SimulationConfig(probabilities=[0.1, -0.2], **base))
    with pytest.raises(ValueError):
        BanditEngine(SimulationConfig(probabilities=[0.1], **{**base, "trials": -1}))


def test_zero_trials() -> None:
    res = simulate(SLOTS, trials=0)
    assert res.trials == 0
    assert res.counts.tolist() == [0, 0, 0]
    assert res.shares.tolist() == [0.0, 0.0, 0.0]
    assert res.frame().empty
    assert res.summary()["cum_regret"] == 0.0


def test_result_frames() -> None:
    res = simulate(SLOTS, trials=200, seed=3, arm_names=["a", "b", "c"])
    df = res.frame()
    assert len(df) == 200
    assert df["cum_reward"].iloc[-1] == res.rewards.sum()
    assert df["cum_regret"].iloc[-1] == pytest.approx(res.cum_regret[-1])
    assert set(df["arm_name"]) <= {"a", "b", "c"}

    arms = res.arms_frame()
    assert arms["pulls"].sum() == 200
    assert arms["share"].sum() == pytest.approx(1.0)


def test_rolling_selection_frequency() -> None:
    sel = np.array([0, 0, 1, 1, 1, 2])
    roll = selection_frequency(sel, 3, window=2)
    assert roll.shape == (6, 3)
    assert np.allclose(roll.sum(axis=1), 1.0)
    assert roll[0].tolist() == [1.0, 0.0, 0.0]
    assert roll[2].tolist() == [0.5, 0.5, 0.0]
    assert roll[5].tolist() == [0.0, 0.5, 0.5]
    with pytest.raises(ValueError):
        selection_frequency(sel, 3, window=0)


def test_update_rejects_non_integral_arms() -> None:
    s = EpsilonGreedy(3, seed=0)
    for bad in (-0.5, 1.7, True):
        with pytest.raises(IndexError):
            s.update(bad, 1)
    s.update(np.int64(2), 1)
    s.update(1.0, 0)
    assert s.pulls.tolist() == [0, 1, 1]


@pytest.mark.parametrize("name,params", [("epsilon_greedy", {"epsilon": 0.1}), ("ucb1", {})])
def test_arms_posterior_mean_uses_beta_prior_for_every_strategy(name: str, params: dict) -> None:
    res = simulate(SLOTS, trials=300, strategy=name, seed=0, **params)
    arms = res.arms_frame()
    expected = (arms["successes"] + 1.0) / (arms["pulls"] + 2.0)
    assert np.allclose(arms["posterior_mean"], expected)

    fresh = make_strategy(name, 2, seed=0, **params)
    assert fresh.posterior_mean().tolist() == [0.5, 0.5]


def test_engine_builds_observer_from_log_every(tmp_path) -> None:
    from dsnotes.recorder import ParquetRecorder

    cfg = SimulationConfig(
        run_id="OBS", data_root=str(tmp_path), trials=90, seed=1,
        probabilities=SLOTS, strategy="ucb1", log_every=30,
    )
    rec = ParquetRecorder(tmp_path, "OBS")
    engine = BanditEngine(cfg, recorder=rec)
    assert engine.observer is not None
    engine.run()
    stats = pd.read_csv(rec.run_dir / "observer_stats.csv")
    assert stats["trial"].tolist() == [30, 60, 90]
    assert set(stats["strategy"]) == {"ucb1"}

    # without a recorder there is nowhere to write, so no observer
    assert BanditEngine(cfg).observer is None
