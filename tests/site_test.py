# tests/site_test.py
from __future__ import annotations
import datetime as dt
import json
from pathlib import Path

import pytest

from dsnotes.render import render_all
from dsnotes.site import find_images, load_posts, missing_images, parse_post, split_front_matter, write_index
from dsnotes.runner import main

REPO = Path(__file__).resolve().parents[1]

RENDERED = {
    "images/cyclical-clock.png",
    "images/cyclical-raw-vs-encoded.png",
    "images/cyclical-sine-ambiguity.png",
    "images/cyclical-boundary-distance.png",
    "images/bandit-posteriors.png",
    "images/bandit-selection-share.png",
    "images/bandit-regret.png",
}

POST = """---
title: "A: B"
date: 2024-05-01
tags: a, b
---
# Ignored heading

![one](images/one.png "caption")

```markdown
![inside a fence](images/not-an-image.png)
```

<img src="images/two.png" alt="two">
![remote](https://example.com/x.png)
![one again](images/one.png)
"""


def test_front_matter_and_images(tmp_path: Path) -> None:
    p = tmp_path / "my-post.md"
    p.write_text(POST, encoding="utf-8")
    post = parse_post(p)
    assert post.title == "A: B"
    assert post.slug == "my-post"
    assert post.date == dt.date(2024, 5, 1)
    assert post.tags == ["a", "b"]
    assert post.images == ["images/one.png", "images/two.png", "https://example.com/x.png"]

    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "one.png").write_bytes(b"\x89PNG")
    assert missing_images(post) == ["images/two.png"]


def test_title_falls_back_to_heading_then_stem(tmp_path: Path) -> None:
    a = tmp_path / "alpha.md"
    a.write_text("intro\n\n# Real Title\n\n## Sub\n", encoding="utf-8")
    b = tmp_path / "beta-post.md"
    b.write_text("no heading here\n", encoding="utf-8")
    assert parse_post(a).title == "Real Title"
    assert parse_post(b).title == "Beta Post"
    assert parse_post(b).date is None


def test_front_matter_must_be_mapping() -> None:
    assert split_front_matter("plain") == ({}, "plain")
    with pytest.raises(ValueError):
        split_front_matter("---\n- a\n- b\n---\nbody")


def test_index_is_sorted_by_date(tmp_path: Path) -> None:
    (tmp_path / "late.md").write_text("---\ndate: 2024-02-01\n---\n# Late\n", encoding="utf-8")
    (tmp_path / "early.md").write_text("---\ndate: 2023-02-01\n---\n# Early\n", encoding="utf-8")
    posts = load_posts(tmp_path)
    assert [p.slug for p in posts] == ["early", "late"]

    out = write_index(tmp_path, posts)
    payload = json.loads(out.read_text())
    assert payload["count"] == 2
    assert payload["posts"][0] == {
        "slug": "early", "title": "Early", "date": "2023-02-01",
        "tags": [], "summary": "", "path": "early.md", "images": [],
    }

    with pytest.raises(FileNotFoundError):
        load_posts(tmp_path / "missing")


@pytest.fixture(scope="module")
def shipped_posts() -> Path:
    """The repo's own posts, with images rendered at the published seed if absent."""
    posts_dir = REPO / "posts"
    images_dir = posts_dir / "images"
    if not all((posts_dir / rel).exists() for rel in RENDERED):
        render_all(images_dir, seed=7)
    return posts_dir


def test_repo_posts_only_link_rendered_images(shipped_posts: Path) -> None:
    posts = load_posts(shipped_posts)
    assert {p.slug for p in posts} == {"cyclical-feature-encoding", "thompson-sampling"}
    linked = {img for p in posts for img in p.images}
    assert linked == RENDERED
    for p in posts:
        assert p.title and p.date and p.summary
        assert missing_images(p) == []
    # fenced snippets are not scanned for images
    assert find_images("```\n![x](nope.png)\n```\n") == []


def test_check_passes_on_shipped_posts(shipped_posts: Path) -> None:
    assert main(["check", "--posts", str(shipped_posts)]) == 0


def test_heading_inside_fence_is_not_a_title(tmp_path: Path) -> None:
    p = tmp_path / "fenced.md"
    p.write_text("```python\n# load the data\n```\n# Real Title\n", encoding="utf-8")
    assert parse_post(p).title == "Real Title"

    q = tmp_path / "only-fenced.md"
    q.write_text("~~~\n# not a heading\n~~~\n", encoding="utf-8")
    assert parse_post(q).title == "Only Fenced"
