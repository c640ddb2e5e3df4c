"""Expand resource and asset globs declared in package.json."""

from __future__ import annotations

import asyncio
import glob
from pathlib import Path
from typing import Sequence

from ..schemas.project import ProjectConfig


async def collect_resources(config: ProjectConfig) -> list[str]:
    """Files compiled like commands but not exposed in the manifest."""

    return await expand_patterns(config.resources, config.root)


async def collect_assets(config: ProjectConfig) -> list[str]:
    """Files copied verbatim into ``Contents/Resources``."""

    return await expand_patterns(config.assets, config.root)


async def expand_patterns(patterns: Sequence[str], root: Path) -> list[str]:
    if not patterns:
        return []
    return await asyncio.to_thread(expand_patterns_sync, patterns, root)


def expand_patterns_sync(patterns: Sequence[str], root: Path) -> list[str]:
    """Return workspace-relative files matching *patterns*.

    Patterns starting with ``!`` remove earlier matches. Directories are
    skipped and each file is listed once.
    """

    matches: dict[str, None] = {}
    for pattern in patterns:
        negate = pattern.startswith("!")
        expression = pattern[1:] if negate else pattern
        found = glob.glob(expression, root_dir=root, recursive=True)
        for entry in found:
            relative = Path(entry).as_posix()
            if negate:
                matches.pop(relative, None)
            elif (root / entry).is_file():
                matches.setdefault(relative, None)
    return list(matches)
