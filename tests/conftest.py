from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest

from sketch_builder.bundler.base import BundlerConfig, CompilationResult, CompileCallback
from sketch_builder.config import load_project_config
from sketch_builder.console import LOGGER_NAME, style
from sketch_builder.errors import BundlerError
from sketch_builder.schemas.project import ProjectConfig


class FakeWatchHandle:
    def __init__(self, bundler: "FakeBundler", config: BundlerConfig, callback: CompileCallback) -> None:
        self.bundler = bundler
        self.config = config
        self.callback = callback
        self.closed = False

    async def trigger(self) -> None:
        """Simulate a recompile after a source edit."""

        try:
            result = await self.bundler.compile(self.config)
        except BundlerError as exc:
            await self.callback(exc, None)
            return
        await self.callback(None, result)

    async def close(self) -> None:
        self.closed = True
        self.bundler.closed.append(self.config.entry.name)


class FakeBundler:
    """In-memory bundler: writes a stub bundle and reports canned results."""

    def __init__(self) -> None:
        self.compiled: List[BundlerConfig] = []
        self.handles: List[FakeWatchHandle] = []
        self.closed: List[str] = []
        self.errors: Dict[str, List[str]] = {}
        self.warnings: Dict[str, List[str]] = {}
        self.raise_for: set[str] = set()
        self.write_output = True

    async def compile(self, config: BundlerConfig) -> CompilationResult:
        self.compiled.append(config)
        name = config.entry.name
        if name in self.raise_for:
            raise BundlerError(f"bundler crashed on {name}", details="stack trace here")
        if self.write_output:
            config.outfile.parent.mkdir(parents=True, exist_ok=True)
            config.outfile.write_text(f"// {name} handlers={list(config.handlers)}\n", encoding="utf-8")
        return CompilationResult(
            entry=config.entry,
            outfile=config.outfile,
            errors=list(self.errors.get(name, [])),
            warnings=list(self.warnings.get(name, [])),
            duration_ms=3,
        )

    async def watch(self, config: BundlerConfig, callback: CompileCallback) -> FakeWatchHandle:
        handle = FakeWatchHandle(self, config, callback)
        self.handles.append(handle)
        await handle.trigger()
        return handle


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


DEFAULT_MANIFEST: Dict[str, Any] = {
    "commands": [
        {"name": "Open", "identifier": "open", "script": "./open.js", "handler": "onRun"},
        {"name": "Menu", "identifier": "menu", "script": "./open.js", "handlers": {"actions": {"OpenDocument": "onOpenDocument"}}},
        {"name": "Export", "identifier": "export", "script": "./export.js"},
    ],
    "menu": {"title": "My Plugin", "items": ["open", "export"]},
}


@pytest.fixture(autouse=True)
def _plain_console() -> Iterator[None]:
    style.color = False
    yield
    style.color = False
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., ProjectConfig]:
    """Create a plugin project on disk and return its resolved config."""

    def factory(
        *,
        manifest: Optional[Dict[str, Any]] = None,
        skpm: Optional[Dict[str, Any]] = None,
        package: Optional[Dict[str, Any]] = None,
        assets: Optional[Dict[str, str]] = None,
        sources: Optional[Dict[str, str]] = None,
    ) -> ProjectConfig:
        skpm_section = {"main": "my-plugin.sketchplugin", "manifest": "src/manifest.json"}
        skpm_section.update(skpm or {})
        package_json = {
            "name": "my-plugin",
            "version": "1.2.3",
            "description": "Does plugin things.",
            "author": "Jane Doe <jane@example.com> (https://example.com)",
            "repository": {"type": "git", "url": "git+https://github.com/jane/my-plugin.git"},
            "skpm": skpm_section,
        }
        package_json.update(package or {})
        write_json(tmp_path / "package.json", package_json)
        write_json(tmp_path / "src" / "manifest.json", DEFAULT_MANIFEST if manifest is None else manifest)

        for relative, content in (sources or {"src/open.js": "export default function () {}\n", "src/export.js": "export function onRun() {}\n"}).items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        for relative, content in (assets or {}).items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        return load_project_config(tmp_path, environ={})

    return factory
