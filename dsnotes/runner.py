from __future__ import annotations

"""
Command-line runner for dsnotes.

Commands
- simulate : run a bandit simulation from a config and record Parquet shards
- figures  : render every image the posts link to
- check    : fail if any post links an image that does not exist
- build    : figures, then check, then posts/index.json

Logs are single lines `[<utc>] [LEVEL] message` on stdout. Exit codes:
0 ok, 1 check failed, 2 hard failure.
"""

import argparse
import datetime as _dt
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import default_data_root, load_config, observer_config_from_dict, simulation_config_from_dict
from .engine import BanditEngine, SimulationResult, config_snapshot, validate_config
from .observer import Observer
from .recorder import ParquetRecorder
from .site import load_posts, missing_images, write_index


# ------------------------------ helpers ------------------------------

def _stamp() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _ts_run_id(prefix: str = "BANDIT") -> str:
    return f"{prefix}_{_dt.datetime.now(_dt.timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"


def _echo(level: str, msg: str) -> None:
    print(f"[{_stamp()}] [{level}] {msg}", flush=True)


# ------------------------------ commands ------------------------------

def simulate(
    config_path: Path,
    data_root: Optional[Path] = None,
    run_id: Optional[str] = None,
) -> SimulationResult:
    """
    Run one recorded simulation. Returns the result; shards land in
    <data_root>/runs/<run_id>/.
    """
    raw = load_config(config_path)
    resolved_run_id = run_id or (raw.get("run", {}) or {}).get("run_id") or _ts_run_id()
    cfg = simulation_config_from_dict(
        raw,
        data_root=str(data_root) if data_root else None,
        run_id=resolved_run_id,
    )

    _echo("RUN", f"run_id={cfg.run_id}")
    _echo("INFO", f"data_root={cfg.data_root}")
    _echo("INFO", f"config={config_path}")
    validate_config(cfg)
    _echo("INFO", f"strategy={cfg.strategy} trials={cfg.trials} arms={len(cfg.probabilities)} seed={cfg.seed}")

    recorder = ParquetRecorder(cfg.data_root, cfg.run_id, meta=config_snapshot(cfg))
    # engine attaches a run-folder observer itself when log_every > 0
    observer = None
    obs_cfg = observer_config_from_dict(raw)
    if obs_cfg.log_every > 0 and obs_cfg.out_dir:
        observer = Observer(obs_cfg, recorder.run_dir)

    result = BanditEngine(cfg, recorder=recorder, observer=observer).run()

    _echo("OK", f"tables={recorder.tables} manifest={recorder.manifest_path}")
    _echo("INFO", json.dumps(result.summary()))
    _echo("DONE", f"run_id={cfg.run_id}")
    return result


def figures(images_dir: Path, seed: int = 7) -> List[Path]:
    from .render import render_all

    _echo("INFO", f"rendering figures into {images_dir} (seed={seed})")
    paths = render_all(images_dir, seed=seed)
    for p in paths:
        _echo("OK", f"wrote {p}")
    return paths


def check(posts_dir: Path) -> int:
    """Return the number of broken image links across all posts."""
    broken = 0
    for post in load_posts(posts_dir):
        missing = missing_images(post)
        if missing:
            for target in missing:
                _echo("ERROR", f"{post.path.name}: missing image {target}")
            broken += len(missing)
        else:
            _echo("OK", f"{post.path.name}: {len(post.images)} images")
    return broken


def build(posts_dir: Path, images_dir: Optional[Path] = None, seed: int = 7) -> int:
    figures(images_dir or (posts_dir / "images"), seed=seed)
    broken = check(posts_dir)
    if broken:
        _echo("ERROR", f"{broken} broken image link(s); index not written")
        return broken
    out = write_index(posts_dir, load_posts(posts_dir))
    _echo("DONE", f"index={out}")
    return 0


# ------------------------------ CLI ------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="dsnotes", description="dsnotes runner")
    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("simulate", help="Run a recorded bandit simulation")
    sp.add_argument("--config", required=True, help="Path to simulation config (JSON/YAML)")
    sp.add_argument("--data_root", default=None, help="Data root (default: $DSNOTES_DATA_ROOT or data)")
    sp.add_argument("--run_id", default=None, help="Override run id (default: timestamped)")

    fp = sub.add_parser("figures", help="Render post images")
    fp.add_argument("--images", default="posts/images", help="Output directory for PNGs")
    fp.add_argument("--seed", type=int, default=7)

    cp = sub.add_parser("check", help="Verify every linked image exists")
    cp.add_argument("--posts", default="posts")

    bp = sub.add_parser("build", help="figures + check + posts/index.json")
    bp.add_argument("--posts", default="posts")
    bp.add_argument("--images", default=None, help="Defaults to <posts>/images")
    bp.add_argument("--seed", type=int, default=7)

    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        if args.command == "simulate":
            simulate(
                config_path=Path(args.config),
                data_root=Path(args.data_root) if args.data_root else Path(default_data_root()),
                run_id=args.run_id,
            )
        elif args.command == "figures":
            figures(Path(args.images), seed=args.seed)
        elif args.command == "check":
            if check(Path(args.posts)):
                return 1
        elif args.command == "build":
            images = Path(args.images) if args.images else None
            if build(Path(args.posts), images, seed=args.seed):
                return 1
    except Exception as e:
        _echo("FATAL", f"{type(e).__name__}: {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
