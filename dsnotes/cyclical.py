from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple, Union

import numpy as np
import pandas as pd


# ------------------------------- Periods -------------------------------

SECONDS_PER_DAY = 86_400
MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12

ArrayLike = Union[float, int, Iterable[float], np.ndarray, pd.Series]


# ------------------------------- Helpers -------------------------------

def _check_period(period: float) -> float:
    period = float(period)
    if not np.isfinite(period) or period <= 0.0:
        raise ValueError(f"period must be a positive finite number, got {period!r}")
    return period


def _as_array(values: ArrayLike) -> Tuple[np.ndarray, bool]:
    if isinstance(values, pd.Series):
        return values.to_numpy(dtype=np.float64), False
    arr = np.asarray(values, dtype=np.float64)
    return arr, arr.ndim == 0


def phase(values: ArrayLike, period: float) -> np.ndarray:
    """Fractional position inside the period, as an angle in [0, 2*pi)."""
    period = _check_period(period)
    arr, _ = _as_array(values)
    return 2.0 * np.pi * (np.mod(arr, period) / period)


# ------------------------------ Encoding -------------------------------

def encode(values: ArrayLike, period: float):
    """
    Map a periodic scalar onto the unit circle.

    Parameters
    ----------
    values : scalar, sequence, ndarray or Series
        Raw values (seconds since midnight, hour of day, weekday, ...).
        Values outside [0, period) are wrapped first.
    period : float
        Length of one full cycle in the same unit as `values`.

    Returns
    -------
    (sin, cos) : tuple
        Two floats for scalar input, otherwise two float64 arrays
        with the shape of `values`.
    """
    scalar = _as_array(values)[1]
    theta = phase(values, period)
    s, c = np.sin(theta), np.cos(theta)
    if scalar:
        return float(s), float(c)
    return s, c


def decode(sin: ArrayLike, cos: ArrayLike, period: float):
    """Invert `encode` back into [0, period)."""
    period = _check_period(period)
    s, scalar = _as_array(sin)
    c, _ = _as_array(cos)
    theta = np.mod(np.arctan2(s, c), 2.0 * np.pi)
    out = theta / (2.0 * np.pi) * period
    # arctan2 can land exactly on 2*pi after the mod for tiny negative angles
    out = np.where(out >= period, 0.0, out)
    if scalar:
        return float(out)
    return out


def wrapped_difference(a: ArrayLike, b: ArrayLike, period: float):
    """Shortest distance between a and b going either way round the cycle."""
    period = _check_period(period)
    x, scalar = _as_array(a)
    y, _ = _as_array(b)
    d = np.mod(np.abs(x - y), period)
    out = np.minimum(d, period - d)
    if scalar and np.ndim(out) == 0:
        return float(out)
    return out


def cyclical_distance(a: ArrayLike, b: ArrayLike, period: float):
    """
    Euclidean distance between the encodings of `a` and `b`.

    This is the chord length 2*sin(pi*d/period) for the wrapped difference d,
    so it only depends on how far apart the values are on the cycle.
    """
    sa, ca = encode(a, period)
    sb, cb = encode(b, period)
    out = np.hypot(np.subtract(sa, sb), np.subtract(ca, cb))
    if np.ndim(out) == 0:
        return float(out)
    return out


# ------------------------------ Encoder --------------------------------

@dataclass
class CyclicalEncoder:
    """
    Column-wise sin/cos encoder for pandas frames.

    Parameters
    ----------
    columns : Dict[str, float]
        Mapping of source column -> period.
    drop : bool
        Drop the source columns after encoding.
    suffixes : Tuple[str, str]
        Suffixes for the generated sine and cosine columns.

    Follows the fit/transform shape of scikit-learn transformers so it can sit
    in front of a model; there is nothing to learn, `fit` only checks columns.
    """
    columns: Dict[str, float] = field(default_factory=dict)
    drop: bool = False
    suffixes: Tuple[str, str] = ("_sin", "_cos")

    def __post_init__(self) -> None:
        self.columns = {str(k): _check_period(v) for k, v in self.columns.items()}
        if len(self.suffixes) != 2 or self.suffixes[0] == self.suffixes[1]:
            raise ValueError("suffixes must be two distinct strings")

    def fit(self, frame: pd.DataFrame, y=None) -> "CyclicalEncoder":
        missing = [c for c in self.columns if c not in frame.columns]
        if missing:
            raise KeyError(f"columns not found in frame: {missing}")
        return self

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        self.fit(frame)
        out = frame.copy()
        s_suf, c_suf = self.suffixes
        for col, period in self.columns.items():
            s, c = encode(frame[col], period)
            out[f"{col}{s_suf}"] = s
            out[f"{col}{c_suf}"] = c
        if self.drop:
            out = out.drop(columns=list(self.columns))
        return out

    def fit_transform(self, frame: pd.DataFrame, y=None) -> pd.DataFrame:
        return self.fit(frame, y).transform(frame)

    def get_feature_names_out(self) -> List[str]:
        s_suf, c_suf = self.suffixes
        names: List[str] = []
        for col in self.columns:
            names += [f"{col}{s_suf}", f"{col}{c_suf}"]
        return names
