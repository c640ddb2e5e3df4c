"""Plugin build orchestration.

One call to :meth:`BuildOrchestrator.run_generation` performs a full
build generation: emit the manifest, copy the assets, then compile (or
start watching) every command and resource.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..bundler.base import Bundler, BundlerConfig, CompilationResult, CompileCallback, WatcherHandle, make_bundler_config
from ..console import style
from ..errors import AssetCopyError, BundlerError, CompileError, ManifestWriteError
from ..schemas.manifest import ManifestDocument
from ..schemas.project import ProjectConfig
from .collect import collect_assets, collect_resources
from .commands import CompilationTarget, collect_targets, resource_targets
from .manifest import load_manifest, render_manifest, write_manifest
from .utils import MANIFEST_EMOJI, copy_file, random_build_emoji

logger = logging.getLogger(__name__)

FatalHandler = Callable[[BaseException], None]


@dataclass(slots=True)
class BuildContext:
    """Step bookkeeping for a single build generation."""

    total: int
    watch: bool = False
    generation: int = 0
    completed: int = 0

    def advance(self) -> str:
        """Record one finished step and return its progress prefix."""

        self.completed += 1
        if self.watch:
            return ""
        return style(f"[{self.completed}/{self.total}] ", "dim")

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


@dataclass(slots=True)
class BuildReport:
    generation: int
    total: int
    completed: int
    duration_ms: int
    manifest_path: Optional[Path] = None
    assets: List[Path] = field(default_factory=list)
    handles: List[Optional[WatcherHandle]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.completed >= self.total


class BuildOrchestrator:
    """Coordinates manifest emission, asset copies and compilations."""

    def __init__(
        self,
        config: ProjectConfig,
        bundler: Bundler,
        *,
        watch: bool = False,
        quiet: bool = False,
        generation: int = 0,
        on_fatal: Optional[FatalHandler] = None,
    ) -> None:
        self.config = config
        self.bundler = bundler
        self.watch = watch
        self.quiet = quiet
        self.generation = generation
        self.on_fatal = on_fatal
        self.handles: List[Optional[WatcherHandle]] = []
        self._closed = False

    async def run_generation(self) -> BuildReport:
        started = time.monotonic()
        config = self.config

        document = await asyncio.to_thread(load_manifest, config.manifest_path)
        commands = collect_targets(document.commands)
        resources = await collect_resources(config)
        assets = await collect_assets(config)
        context = BuildContext(
            total=len(commands) + len(resources) + len(assets) + 1,
            watch=self.watch,
            generation=self.generation,
        )
        logger.debug(
            "Generation %d: %d commands, %d resources, %d assets",
            self.generation,
            len(commands),
            len(resources),
            len(assets),
        )

        manifest_path = await self._emit_manifest(document, context)
        copied = await self._copy_assets(assets, context)
        await self._build_targets([*commands, *resource_targets(resources)], context)

        if not self.watch and context.is_complete:
            logger.info("Plugin built", extra={"marker": "success"})

        return BuildReport(
            generation=self.generation,
            total=context.total,
            completed=context.completed,
            duration_ms=int((time.monotonic() - started) * 1000),
            manifest_path=manifest_path,
            assets=copied,
            handles=list(self.handles),
        )

    async def close(self) -> None:
        """Close every watcher handle owned by this generation."""

        self._closed = True
        handles, self.handles = [handle for handle in self.handles if handle is not None], []
        results = await asyncio.gather(*(handle.close() for handle in handles), return_exceptions=True)
        for handle, result in zip(handles, results):
            if isinstance(result, BaseException):
                logger.error("Error while closing the watcher of %s", _handle_label(handle), exc_info=result)

    async def _emit_manifest(self, document: ManifestDocument, context: BuildContext) -> Optional[Path]:
        manifest_label = self.config.manifest
        started = time.monotonic()
        try:
            payload = render_manifest(document, self.config)
            path = await asyncio.to_thread(write_manifest, payload, self.config)
        except ManifestWriteError as exc:
            logger.error("Error while copying %s", manifest_label)
            logger.error("%s", exc, extra={"marker": ""})
            if not self.watch:
                raise
            return None

        elapsed = int((time.monotonic() - started) * 1000)
        prefix = context.advance()
        logger.info(
            "%s%s  Copied %s in %sms",
            prefix,
            MANIFEST_EMOJI,
            style(manifest_label, "blue"),
            style(elapsed, "grey"),
        )
        return path

    async def _copy_assets(self, assets: Sequence[str], context: BuildContext) -> List[Path]:
        if not assets:
            return []
        results = await asyncio.gather(*(self._copy_asset(asset) for asset in assets), return_exceptions=True)

        copied: List[Path] = []
        failure: Optional[AssetCopyError] = None
        for asset, result in zip(assets, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error("Error while building %s", asset)
                logger.error("%s", result, extra={"marker": ""})
                if failure is None:
                    failure = AssetCopyError(asset, f"Error while copying {asset}: {result}")
                    failure.__cause__ = result
                continue
            copied.append(result)
            prefix = context.advance()
            logger.info("%s%s  Copied %s", prefix, random_build_emoji(), style(asset, "blue"))

        if failure is not None:
            raise failure
        return copied

    async def _copy_asset(self, asset: str) -> Path:
        source = self.config.root / asset
        destination = self.config.resources_dir / Path(asset).name
        return await asyncio.to_thread(copy_file, source, destination)

    def _bundler_config(self, target: CompilationTarget) -> BundlerConfig:
        source_root = self.config.manifest_folder if target.kind == "command" else self.config.root
        return make_bundler_config(
            target,
            source_root=source_root,
            sketch_dir=self.config.sketch_dir,
            resources_dir=self.config.compiled_resources_dir,
            watch=self.watch,
            quiet=self.quiet,
            watch_root=self.config.root,
            watch_exclude=(self.config.output_path,),
        )

    async def _build_targets(self, targets: Sequence[CompilationTarget], context: BuildContext) -> None:
        if self.watch:
            for target in targets:
                handle = await self.bundler.watch(
                    self._bundler_config(target),
                    self._watch_callback(target.script, context),
                )
                self.handles.append(handle)
            return

        if not targets:
            return
        tasks = [asyncio.create_task(self._compile_once(target, context)) for target in targets]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for task in tasks:
            if task in done and not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _compile_once(self, target: CompilationTarget, context: BuildContext) -> None:
        try:
            result = await self.bundler.compile(self._bundler_config(target))
        except BundlerError as exc:
            self._log_bundler_error(target.script, exc)
            raise
        self._report(target.script, result, context)

    def _watch_callback(self, file: str, context: BuildContext) -> CompileCallback:
        async def callback(error: Optional[BaseException], result: Optional[CompilationResult]) -> None:
            if self._closed:
                return
            if error is not None:
                self._log_bundler_error(file, error)
                if self.on_fatal is not None:
                    self.on_fatal(error)
                return
            if result is not None:
                self._report(file, result, context)

        return callback

    def _report(self, file: str, result: CompilationResult, context: BuildContext) -> None:
        if result.has_errors:
            logger.error("Error while building %s", file)
            for message in result.errors:
                logger.error("%s", message, extra={"marker": ""})
            if not self.watch:
                raise CompileError(file, result.errors)
            return

        if result.has_warnings and not self.quiet:
            for message in result.warnings:
                logger.warning("%s", message, extra={"marker": ""})

        prefix = context.advance()
        logger.info(
            "%s%s  Built %s in %sms",
            prefix,
            random_build_emoji(),
            style(file, "blue"),
            style(result.duration_ms, "grey"),
        )

    def _log_bundler_error(self, file: str, error: BaseException) -> None:
        logger.error("Error while building %s", file, exc_info=error)
        details = getattr(error, "details", None)
        if details:
            logger.error("%s", details, extra={"marker": ""})


def _handle_label(handle: WatcherHandle) -> str:
    config = getattr(handle, "config", None)
    return config.label if isinstance(config, BundlerConfig) else repr(handle)
