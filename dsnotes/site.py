"""
Markdown posts: front matter, image links and the posts index.

A post is a Markdown file with optional YAML front matter:

    ---
    title: Encoding time as a circle
    date: 2024-03-02
    tags: [features, time]
    summary: One line shown in the index.
    ---
    # Heading
    ...
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
HEADING_RE = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)
MD_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+[\"'][^\"']*[\"'])?\s*\)")
HTML_IMAGE_RE = re.compile(r"<img\s[^>]*?src=[\"']([^\"']+)[\"']", re.IGNORECASE)
FENCE_RE = re.compile(r"^(```|~~~).*?^\1\s*$", re.MULTILINE | re.DOTALL)


@dataclass
class Post:
    """A single parsed post."""

    path: Path
    slug: str
    title: str
    body: str
    date: Optional[_dt.date] = None
    tags: List[str] = field(default_factory=list)
    summary: str = ""
    images: List[str] = field(default_factory=list)

    def to_index_entry(self, root: Path) -> Dict[str, Any]:
        try:
            rel = self.path.relative_to(root)
        except ValueError:
            rel = self.path
        return {
            "slug": self.slug,
            "title": self.title,
            "date": self.date.isoformat() if self.date else None,
            "tags": list(self.tags),
            "summary": self.summary,
            "path": rel.as_posix(),
            "images": list(self.images),
        }


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Return (front matter dict, body). Text without front matter gives ({}, text)."""
    m = FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text
    meta = yaml.safe_load(m.group(1)) or {}
    if not isinstance(meta, dict):
        raise ValueError("front matter must be a YAML mapping")
    return meta, text[m.end():]


def find_images(body: str) -> List[str]:
    """Image targets in document order, skipping fenced code blocks."""
    prose = FENCE_RE.sub("", body)
    found: List[Tuple[int, str]] = []
    for rx in (MD_IMAGE_RE, HTML_IMAGE_RE):
        found += [(m.start(), m.group(1)) for m in rx.finditer(prose)]
    out: List[str] = []
    for _, target in sorted(found):
        if target not in out:
            out.append(target)
    return out


def _parse_date(value: Any) -> Optional[_dt.date]:
    if value is None or value == "":
        return None
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    return _dt.date.fromisoformat(str(value))


def parse_post(path: str | Path) -> Post:
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    meta, body = split_front_matter(text)

    title = meta.get("title")
    if not title:
        m = HEADING_RE.search(FENCE_RE.sub("", body))
        title = m.group(1) if m else path.stem.replace("-", " ").title()

    tags = meta.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]

    return Post(
        path=path,
        slug=str(meta.get("slug") or path.stem),
        title=str(title),
        body=body,
        date=_parse_date(meta.get("date")),
        tags=[str(t) for t in tags],
        summary=str(meta.get("summary") or ""),
        images=find_images(body),
    )


def load_posts(posts_dir: str | Path) -> List[Post]:
    posts_dir = Path(posts_dir)
    if not posts_dir.is_dir():
        raise FileNotFoundError(f"posts directory not found: {posts_dir}")
    posts = [parse_post(p) for p in sorted(posts_dir.glob("*.md"))]
    posts.sort(key=lambda p: (p.date or _dt.date.min, p.slug))
    logger.debug("Loaded %d posts from %s", len(posts), posts_dir)
    return posts


def _is_remote(target: str) -> bool:
    return target.startswith(("http://", "https://", "//", "data:"))


def missing_images(post: Post) -> List[str]:
    """Relative image links of `post` that don't resolve to a file next to it."""
    missing: List[str] = []
    for target in post.images:
        if _is_remote(target):
            continue
        local = target.split("#", 1)[0].split("?", 1)[0]
        if not (post.path.parent / local).is_file():
            missing.append(target)
    return missing


def write_index(posts_dir: str | Path, posts: List[Post]) -> Path:
    posts_dir = Path(posts_dir)
    payload = {
        "count": len(posts),
        "posts": [p.to_index_entry(posts_dir) for p in posts],
    }
    out = posts_dir / "index.json"
    with out.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return out
