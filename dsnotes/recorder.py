from __future__ import annotations

"""
Parquet-backed recorder for bandit simulation runs.

Features
- Deterministic folder layout: <data_root>/runs/<run_id>/shards
- Buffered per-table writes to *.parquet shards (rotate by row count)
- Stable schemas (first batch defines order; later columns are appended)
- Writes run-level manifest.json and per-table *_index.json on finalize()
- Idempotent finalize() (safe to call more than once)

Tables written by the engine:
  trials:  trial,int | strategy,str | arm,int | arm_name,str | reward,int | ...
  arms:    arm,int | arm_name,str | p_true,float | successes,failures,pulls,int | ...
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import time
import threading

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq


INT_COLUMNS = ("trial", "arm", "reward", "best_arm", "cum_reward", "successes", "failures", "pulls")
FLOAT_COLUMNS = ("regret", "cum_regret", "p_true", "share", "posterior_mean", "sample")


@dataclass
class _TableBuf:
    name: str
    schema: List[str] = field(default_factory=list)       # column order
    rows: List[Dict[str, Any]] = field(default_factory=list)
    shards: List[str] = field(default_factory=list)       # paths relative to the run dir
    written_rows: int = 0
    shard_seq: int = 0


def _stamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _ensure_dirs(run_dir: Path) -> None:
    (run_dir / "shards").mkdir(parents=True, exist_ok=True)


def _arrow_write(path: Path, frame: pd.DataFrame) -> None:
    table = pa.Table.from_pandas(frame, preserve_index=False)
    pq.write_table(
        table,
        where=str(path),
        compression="zstd",
        use_dictionary=True,
        write_statistics=True,
    )


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col in df.columns:
        if col in INT_COLUMNS:
            # nullable so later batches may omit a column
            df[col] = df[col].astype("Int64")
        elif col in FLOAT_COLUMNS:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
    return df


class ParquetRecorder:
    """
    Interface used by the engine:
      add(table: str, rows: List[dict])
      finalize()

    Extra attributes:
      run_dir       -> Path to the run folder
      manifest_path -> Path to manifest.json
    """

    def __init__(
        self,
        data_root: str | Path = "data",
        run_id: Optional[str] = None,
        *,
        max_rows_per_shard: int = 200_000,
        flush_hint_rows: int = 10_000,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.data_root = Path(data_root)
        self.run_id = run_id or f"BANDIT_{int(time.time())}"
        self.run_dir = self.data_root / "runs" / self.run_id
        _ensure_dirs(self.run_dir)

        if int(max_rows_per_shard) <= 0 or int(flush_hint_rows) <= 0:
            raise ValueError("max_rows_per_shard and flush_hint_rows must be positive")
        self.max_rows_per_shard = int(max_rows_per_shard)
        self.flush_hint_rows = int(flush_hint_rows)

        self._tables: Dict[str, _TableBuf] = {}
        self._lock = threading.Lock()

        self.manifest_path: Path = self.run_dir / "manifest.json"

        run_meta = {
            "run_id": self.run_id,
            "created_utc": _stamp(),
            "data_root": str(self.data_root),
        }
        if meta:
            run_meta["config"] = meta
        with (self.run_dir / "run_meta.json").open("w", encoding="utf-8") as f:
            json.dump(run_meta, f, indent=2, default=str)

    # ---------------------- public API ----------------------

    @property
    def tables(self) -> List[str]:
        return sorted(self._tables)

    def add(self, table: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        with self._lock:
            T = self._tables.get(table)
            if T is None:
                T = _TableBuf(name=table)
                self._tables[table] = T

            if not T.schema:
                first = list(rows[0].keys())
                if "trial" in first:
                    first = ["trial"] + [k for k in first if k != "trial"]
                T.schema = first

            T.rows.extend(rows)

            if len(T.rows) >= self.flush_hint_rows:
                self._flush_table(T)

    def finalize(self) -> None:
        with self._lock:
            for T in self._tables.values():
                self._flush_table(T)
            self._write_indices_and_manifest()

    def shard_paths(self, table: str) -> List[Path]:
        T = self._tables.get(table)
        if T is None:
            return []
        return [self.run_dir / rel for rel in T.shards]

    # ---------------------- internals ----------------------

    def _flush_table(self, T: _TableBuf) -> None:
        if not T.rows:
            return

        # every shard is written once; big buffers are split at max_rows_per_shard
        step = self.max_rows_per_shard
        for lo in range(0, len(T.rows), step):
            chunk = T.rows[lo:lo + step]
            T.shard_seq += 1
            fname = f"{T.name}_{T.shard_seq:04d}.parquet"
            rel_path = str(Path("shards") / fname)

            df = pd.DataFrame.from_records(chunk)
            new_cols = [c for c in df.columns if c not in T.schema]
            if new_cols:
                T.schema += new_cols
            for col in T.schema:
                if col not in df.columns:
                    df[col] = pd.NA
            df = _fix_dtypes(df[T.schema])

            _arrow_write(self.run_dir / "shards" / fname, df)
            T.shards.append(rel_path)
            T.written_rows += len(chunk)
        T.rows.clear()

    def _write_indices_and_manifest(self) -> None:
        shards_dir = self.run_dir / "shards"
        for name, T in self._tables.items():
            index_payload = {
                "table": name,
                "run_id": self.run_id,
                "files": list(T.shards),
                "count": len(T.shards),
            }
            with (shards_dir / f"{name}_index.json").open("w", encoding="utf-8") as f:
                json.dump(index_payload, f, indent=2)

        shards = []
        for name, T in self._tables.items():
            for rel in T.shards:
                shards.append({"table": name, "path": rel})

        manifest = {
            "run_id": self.run_id,
            "root": f"runs/{self.run_id}",
            "created_utc": _stamp(),
            "tables": sorted(self._tables.keys()),
            "shards": shards,
        }
        with self.manifest_path.open("w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)


def read_table(run_dir: str | Path, table: str) -> pd.DataFrame:
    """Load every shard of `table` listed in the run's index, in order."""
    run_dir = Path(run_dir)
    index_path = run_dir / "shards" / f"{table}_index.json"
    if not index_path.exists():
        raise FileNotFoundError(f"{table}_index.json not found at {index_path}")
    files = json.loads(index_path.read_text(encoding="utf-8")).get("files", [])
    frames = [pd.read_parquet(run_dir / rel) for rel in files]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)
