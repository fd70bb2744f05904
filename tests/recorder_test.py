# tests/recorder_test.py
from __future__ import annotations
import json
from pathlib import Path

import pandas as pd
import pytest

from dsnotes.recorder import ParquetRecorder, read_table


def _rows(lo: int, hi: int) -> list[dict]:
    return [{"arm": i % 3, "trial": i, "reward": i % 2, "regret": 0.1 * (i % 3)} for i in range(lo, hi)]


def test_shards_rotate_and_manifest_lists_them(tmp_path: Path) -> None:
    rec = ParquetRecorder(tmp_path, "R1", max_rows_per_shard=40, flush_hint_rows=25)
    rec.add("trials", _rows(0, 30))     # flushes 30 rows -> 1 shard
    rec.add("trials", _rows(30, 100))   # flushes 70 rows -> 2 shards
    rec.finalize()

    shards = sorted((tmp_path / "runs" / "R1" / "shards").glob("trials_*.parquet"))
    assert [p.name for p in shards] == ["trials_0001.parquet", "trials_0002.parquet", "trials_0003.parquet"]

    manifest = json.loads(rec.manifest_path.read_text())
    assert manifest["run_id"] == "R1"
    assert manifest["tables"] == ["trials"]
    assert len(manifest["shards"]) == 3

    index = json.loads((tmp_path / "runs" / "R1" / "shards" / "trials_index.json").read_text())
    assert index["count"] == 3

    df = read_table(rec.run_dir, "trials")
    assert len(df) == 100
    # 'trial' is moved to the front of the schema
    assert list(df.columns) == ["trial", "arm", "reward", "regret"]
    assert df["trial"].tolist() == list(range(100))


def test_later_columns_are_appended(tmp_path: Path) -> None:
    rec = ParquetRecorder(tmp_path, "R2", flush_hint_rows=1)
    rec.add("arms", [{"arm": 0, "p_true": 0.5}])
    rec.add("arms", [{"arm": 1, "p_true": 0.7, "share": 0.3}])
    rec.finalize()
    rec.finalize()  # idempotent

    df = read_table(rec.run_dir, "arms")
    assert list(df.columns) == ["arm", "p_true", "share"]
    assert pd.isna(df["share"].iloc[0])
    assert df["share"].iloc[1] == pytest.approx(0.3)


def test_run_meta_and_missing_index(tmp_path: Path) -> None:
    rec = ParquetRecorder(tmp_path, "R3", meta={"strategy": "thompson"})
    meta = json.loads((rec.run_dir / "run_meta.json").read_text())
    assert meta["run_id"] == "R3"
    assert meta["config"] == {"strategy": "thompson"}

    with pytest.raises(FileNotFoundError):
        read_table(rec.run_dir, "trials")

    with pytest.raises(ValueError):
        ParquetRecorder(tmp_path, "R4", max_rows_per_shard=0)


def test_run_folder_holds_only_shards_and_metadata(tmp_path: Path) -> None:
    rec = ParquetRecorder(tmp_path, "R3")
    rec.add("trials", _rows(0, 5))
    rec.finalize()
    assert sorted(p.name for p in rec.run_dir.iterdir()) == ["manifest.json", "run_meta.json", "shards"]
