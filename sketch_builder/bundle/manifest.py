"""Manifest helpers for plugin bundle assembly."""

from __future__ import annotations

import json
import posixpath
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..config import parse_author
from ..errors import ManifestReadError, ManifestWriteError
from ..schemas.manifest import ManifestDocument
from ..schemas.project import ProjectConfig
from .utils import write_json


def load_manifest(path: Path) -> ManifestDocument:
    """Load the source manifest from JSON.

    Always reads from disk so watch-mode rebuilds observe edits.
    """

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return ManifestDocument.model_validate(payload)
    except (OSError, ValueError, ValidationError) as exc:
        raise ManifestReadError(f"Error while reading the manifest {path}: {exc}") from exc


def render_manifest(document: ManifestDocument, config: ProjectConfig) -> Dict[str, Any]:
    """Return the manifest payload written into the plugin bundle."""

    payload = document.model_dump(mode="json", by_alias=True, exclude_unset=True)

    _set_or_drop(payload, "version", document.version or config.version)
    _set_or_drop(payload, "description", document.description or config.description)
    _set_or_drop(payload, "homepage", document.homepage or config.homepage)
    _set_or_drop(payload, "name", document.name or config.name)
    if document.disable_cocoa_script_preprocessor is None:
        payload["disableCocoaScriptPreprocessor"] = True

    if document.appcast is not False and config.appcast is not False:
        _set_or_drop(payload, "appcast", document.appcast or config.appcast or config.default_appcast_url)
    else:
        payload.pop("appcast", None)

    if not document.author and config.author:
        author = parse_author(config.author)
        _set_or_drop(payload, "author", author.name or None)
        if not document.author_email and author.email:
            payload["authorEmail"] = author.email

    payload["commands"] = [
        {**command, "script": _basename(command["script"])} for command in payload.get("commands", [])
    ]
    return payload


def write_manifest(payload: Dict[str, Any], config: ProjectConfig) -> Path:
    """Write the rendered manifest to ``Contents/Sketch/manifest.json``."""

    path = config.emitted_manifest_path
    try:
        write_json(payload, path)
    except OSError as exc:
        raise ManifestWriteError(f"Error while writing the manifest: {exc}") from exc
    return path


def _set_or_drop(payload: Dict[str, Any], key: str, value: Optional[Any]) -> None:
    # unresolved fields are left out of the emitted manifest, never written as null
    if value is None:
        payload.pop(key, None)
    else:
        payload[key] = value


def _basename(script: str) -> str:
    return posixpath.basename(script.replace("\\", "/"))
