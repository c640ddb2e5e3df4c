"""Resolve the plugin project configuration from package.json."""

from __future__ import annotations

import json
import logging
import os
import re
import shlex
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from .errors import ConfigurationError
from .schemas.project import AuthorInfo, BundlerSettings, ProjectConfig

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"
BUNDLER_ENV = "SKETCH_BUILDER_BUNDLER"

_AUTHOR_PATTERN = re.compile(r"^\s*(?P<name>[^<(]+?)?\s*(?:<(?P<email>[^>(]+?)>)?\s*(?:\((?P<url>[^)]+?)\)|$)")
_GITHUB_PATTERN = re.compile(r"github\.com[/:](?P<slug>[^/]+/[^/#?]+?)(?:\.git)?/?(?:[#?].*)?$")


def load_project_config(workspace: Path, *, environ: Optional[Mapping[str, str]] = None) -> ProjectConfig:
    """Read ``package.json`` under *workspace* and return the resolved config."""

    package_path = workspace / PACKAGE_JSON
    try:
        package = json.loads(package_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Error while reading the package.json file: {exc}") from exc
    if not isinstance(package, dict):
        raise ConfigurationError("Error while reading the package.json file: expected a JSON object")

    return resolve_project_config(package, workspace, environ=environ)


def resolve_project_config(
    package: Mapping[str, Any],
    workspace: Path,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ProjectConfig:
    """Merge the ``skpm`` section with top-level package fields."""

    skpm = package.get("skpm") or {}
    if not isinstance(skpm, dict):
        raise ConfigurationError('The "skpm" field of package.json must be an object')

    def pick(key: str, *fallbacks: str) -> Any:
        if skpm.get(key) is not None:
            return skpm[key]
        for candidate in (key, *fallbacks):
            if package.get(candidate) is not None:
                return package[candidate]
        return None

    main = pick("main")
    if not main:
        raise ConfigurationError(
            'Missing "skpm.main" fields in the package.json. Should point to the ".sketchplugin" file'
        )
    manifest = pick("manifest")
    if not manifest:
        raise ConfigurationError(
            'Missing "skpm.manifest" fields in the package.json. Should point to the "manifest.json" file'
        )

    repository = normalize_repository(pick("repository"))
    homepage = pick("homepage")
    if not homepage and repository:
        homepage = f"https://github.com/{repository}"

    bundler = dict(skpm.get("bundler") or {})
    env = os.environ if environ is None else environ
    override = env.get(BUNDLER_ENV)
    if override:
        bundler["command"] = shlex.split(override)
        logger.debug("Using bundler command from %s: %s", BUNDLER_ENV, bundler["command"])

    try:
        return ProjectConfig(
            root=workspace,
            main=main,
            manifest=manifest,
            name=pick("name", "productName"),
            version=pick("version"),
            description=pick("description"),
            homepage=homepage,
            author=pick("author"),
            repository=repository,
            appcast=pick("appcast"),
            resources=_as_list(pick("resources")),
            assets=_as_list(pick("assets")),
            bundler=BundlerSettings.model_validate(bundler),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid skpm configuration in package.json: {exc}") from exc


def normalize_repository(value: Any) -> Optional[str]:
    """Return ``owner/name`` for the accepted package.json repository forms."""

    if isinstance(value, dict):
        value = value.get("url")
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    match = _GITHUB_PATTERN.search(value)
    if match:
        return match.group("slug")
    if value.startswith("github:"):
        value = value[len("github:"):]
    if re.fullmatch(r"[\w.-]+/[\w.-]+", value):
        return value
    return None


def parse_author(value: Union[str, Mapping[str, Any], AuthorInfo, None]) -> Optional[AuthorInfo]:
    """Parse ``"Name <email> (url)"`` author strings; pass structured values through."""

    if value is None:
        return None
    if isinstance(value, AuthorInfo):
        return value
    if isinstance(value, Mapping):
        return AuthorInfo.model_validate(value)
    match = _AUTHOR_PATTERN.match(value)
    if not match:
        return AuthorInfo(name=value.strip() or None)
    parts = {key: part.strip() for key, part in match.groupdict().items() if part and part.strip()}
    return AuthorInfo(**parts)


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]
