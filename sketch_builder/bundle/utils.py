"""Shared helpers used by the bundle pipeline."""

from __future__ import annotations

import json
import random
import shutil
from pathlib import Path
from typing import Any

BUILD_EMOJIS = ("🔧", "🔨", "⚒", "🛠", "⛏", "🔩")
MANIFEST_EMOJI = "🖨"


def random_build_emoji() -> str:
    return random.choice(BUILD_EMOJIS)


def write_json(payload: Any, path: Path) -> None:
    """Write JSON payload to disk, pretty-printed with two spaces."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def copy_file(source: Path, destination: Path) -> Path:
    """Copy *source* to *destination*, creating parent directories first."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return destination
