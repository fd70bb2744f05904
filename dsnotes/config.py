"""
Simulation config loading.

A config file is JSON or YAML with optional sections:

    run:      {trials, seed, run_id}
    arms:     [{name, p}, ...]   or   {probabilities: [...], names: [...]}
    strategy: {name, params: {...}}
    observer: {log_every}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .engine import SimulationConfig
from .observer import ObserverCfg

logger = logging.getLogger(__name__)

DEFAULT_DATA_ROOT = "data"
DEFAULT_TRIALS = 2_000
DEFAULT_PROBABILITIES = [0.25, 0.35, 0.55]


def default_data_root() -> str:
    return os.environ.get("DSNOTES_DATA_ROOT", "").strip() or DEFAULT_DATA_ROOT


def load_config(path: str | Path) -> Dict[str, Any]:
    """Read a JSON or YAML config into a dict (suffix decides the parser)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"config not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"config root must be a mapping, got {type(data).__name__}")
    logger.debug("Loaded config %s (sections: %s)", path, sorted(data))
    return data


def _parse_arms(section: Any) -> Tuple[List[float], Optional[List[str]]]:
    if section is None:
        return list(DEFAULT_PROBABILITIES), None
    if isinstance(section, list):
        probs: List[float] = []
        names: List[str] = []
        for i, arm in enumerate(section):
            if isinstance(arm, dict):
                if "p" not in arm:
                    raise ValueError(f"arms[{i}] is missing 'p'")
                probs.append(float(arm["p"]))
                names.append(str(arm.get("name", f"slot_{i}")))
            else:
                probs.append(float(arm))
                names.append(f"slot_{i}")
        return probs, names
    if isinstance(section, dict):
        probs = [float(p) for p in section.get("probabilities", [])]
        names = section.get("names")
        return probs, [str(n) for n in names] if names is not None else None
    raise ValueError(f"'arms' must be a list or a mapping, got {type(section).__name__}")


def simulation_config_from_dict(
    cfg: Dict[str, Any],
    data_root: Optional[str] = None,
    run_id: Optional[str] = None,
) -> SimulationConfig:
    run = cfg.get("run", {}) or {}
    strategy = cfg.get("strategy", {}) or {}
    if isinstance(strategy, str):
        strategy = {"name": strategy}
    observer = cfg.get("observer", {}) or {}

    probs, names = _parse_arms(cfg.get("arms"))

    return SimulationConfig(
        run_id=str(run_id or run.get("run_id") or "BANDIT"),
        data_root=str(data_root or default_data_root()),
        trials=int(run.get("trials", DEFAULT_TRIALS)),
        seed=int(run.get("seed", 0)),
        probabilities=probs,
        arm_names=names,
        strategy=str(strategy.get("name", "thompson")),
        strategy_params=dict(strategy.get("params", {}) or {}),
        log_every=int(observer.get("log_every", 0)),
    )


def observer_config_from_dict(cfg: Dict[str, Any]) -> ObserverCfg:
    observer = cfg.get("observer", {}) or {}
    return ObserverCfg(
        log_every=int(observer.get("log_every", 0)),
        out_dir=observer.get("out_dir"),
    )
