from __future__ import annotations

import asyncio
from pathlib import Path

from sketch_builder.bundle.collect import collect_assets, collect_resources, expand_patterns_sync


def test_no_patterns_yield_empty_lists(make_project) -> None:
    config = make_project()

    assert asyncio.run(collect_resources(config)) == []
    assert asyncio.run(collect_assets(config)) == []


def test_patterns_without_matches_are_not_errors(make_project) -> None:
    config = make_project(skpm={"assets": ["assets/**/*.png"]})

    assert asyncio.run(collect_assets(config)) == []


def test_globs_expand_to_existing_files(make_project) -> None:
    config = make_project(
        skpm={"assets": ["assets/**/*"], "resources": ["resources/*.js"]},
        assets={
            "assets/icon.png": "png",
            "assets/nested/runner.png": "png",
            "resources/webview.js": "js",
            "resources/notes.txt": "txt",
        },
    )

    assets = asyncio.run(collect_assets(config))
    resources = asyncio.run(collect_resources(config))

    assert sorted(assets) == ["assets/icon.png", "assets/nested/runner.png"]
    assert resources == ["resources/webview.js"]


def test_negated_patterns_remove_matches(tmp_path: Path) -> None:
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "keep.png").write_text("a", encoding="utf-8")
    (tmp_path / "assets" / "skip.psd").write_text("b", encoding="utf-8")

    matches = expand_patterns_sync(["assets/*", "!assets/*.psd"], tmp_path)

    assert matches == ["assets/keep.png"]


def test_duplicate_matches_listed_once(tmp_path: Path) -> None:
    (tmp_path / "icon.png").write_text("a", encoding="utf-8")

    assert expand_patterns_sync(["*.png", "icon.*"], tmp_path) == ["icon.png"]
