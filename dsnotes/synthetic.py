from __future__ import annotations

import numpy as np
import pandas as pd

from .cyclical import SECONDS_PER_DAY


def random_daily_timestamps(
    n: int,
    seed: int = 0,
    start: str = "2024-01-01",
    days: int = 1,
) -> pd.DataFrame:
    """
    Synthetic table of random timestamps spread over `days` whole days.

    Columns: timestamp (datetime64[ns]), seconds (int64, since midnight),
    hour (float64). Rows are sorted by timestamp.
    """
    n = int(n)
    days = int(days)
    if days <= 0:
        raise ValueError(f"days must be >= 1, got {days}")
    if n <= 0:
        return pd.DataFrame({
            "timestamp": pd.Series([], dtype="datetime64[ns]"),
            "seconds": pd.Series([], dtype=np.int64),
            "hour": pd.Series([], dtype=np.float64),
        })

    rng = np.random.default_rng(seed)
    offsets = np.sort(rng.integers(0, days * SECONDS_PER_DAY, size=n, dtype=np.int64))
    ts = pd.Timestamp(start).normalize() + pd.to_timedelta(offsets, unit="s")
    seconds = (offsets % SECONDS_PER_DAY).astype(np.int64)

    return pd.DataFrame({
        "timestamp": ts.astype("datetime64[ns]"),
        "seconds": seconds,
        "hour": seconds / 3600.0,
    })
