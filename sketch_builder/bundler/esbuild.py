"""Bundler implementation driving the esbuild executable."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..errors import BundlerError
from ..schemas.project import BundlerSettings
from .base import BundlerConfig, CompilationResult, CompileCallback
from .watcher import FileWatcher

logger = logging.getLogger(__name__)

GLOBAL_NAME = "__sketch_exports"
EXTERNALS = ("sketch", "sketch/*", "cocoascript-class")

_MESSAGE_START = re.compile(r"^\S*\s*\[(?P<level>ERROR|WARNING)\]\s*(?P<text>.*)$")


def build_arguments(settings: BundlerSettings, config: BundlerConfig) -> List[str]:
    """Return the full esbuild argv for *config*."""

    args = [
        *settings.command,
        str(config.entry),
        "--bundle",
        f"--outfile={config.outfile}",
        "--format=iife",
        f"--global-name={GLOBAL_NAME}",
        "--platform=neutral",
        "--main-fields=module,main",
        "--target=es2017",
        "--color=false",
        f"--log-level={'error' if config.quiet else 'warning'}",
    ]
    args.extend(f"--external:{name}" for name in EXTERNALS)
    if config.sourcemap:
        args.append("--sourcemap=inline")
    else:
        args.append("--minify")
    if config.kind == "command":
        args.append(f"--footer:js={handler_glue(config.handlers, config.identifiers)}")
    args.extend(settings.args)
    args.extend(config.extra_args)
    return args


def handler_glue(handlers: Sequence[str], identifiers: Sequence[str] = ()) -> str:
    """Expose every handler as a global function Sketch can call."""

    lines = [
        "var __sketch_run = function (key, context) {",
        f"  var fn = {GLOBAL_NAME} && {GLOBAL_NAME}[key];",
        f"  if (!fn && key === 'onRun' && {GLOBAL_NAME}) {{ fn = {GLOBAL_NAME}.default; }}",
        "  if (typeof fn !== 'function') {",
        "    throw new Error('Missing export named \"' + key + '\". Your command should contain something like `export function ' + key + '() {}`.');",
        "  }",
        "  return fn(context);",
        "};",
        f"var __sketch_identifiers = {json.dumps(list(identifiers))};",
    ]
    for name in dict.fromkeys(handlers):
        quoted = json.dumps(name)
        lines.append(f"this[{quoted}] = __sketch_run.bind(this, {quoted});")
    return "\n".join(lines)


def parse_messages(output: str) -> Tuple[List[str], List[str]]:
    """Split esbuild log output into error and warning blocks."""

    blocks: List[Tuple[str, List[str]]] = []
    for line in output.splitlines():
        match = _MESSAGE_START.match(line.strip())
        if match:
            blocks.append((match.group("level"), [match.group("text")]))
        elif blocks and line.strip():
            blocks[-1][1].append(line.rstrip())
    errors = ["\n".join(lines) for level, lines in blocks if level == "ERROR"]
    warnings = ["\n".join(lines) for level, lines in blocks if level == "WARNING"]
    return errors, warnings


class EsbuildBundler:
    """Compile targets by running esbuild as a subprocess."""

    def __init__(self, settings: Optional[BundlerSettings] = None) -> None:
        self.settings = settings or BundlerSettings()

    async def compile(self, config: BundlerConfig) -> CompilationResult:
        config.outfile.parent.mkdir(parents=True, exist_ok=True)
        argv = build_arguments(self.settings, config)
        logger.debug("Running bundler: %s", argv)

        started = time.monotonic()
        returncode, stdout, stderr = await _run_process(argv, cwd=config.entry.parent)
        duration_ms = int((time.monotonic() - started) * 1000)

        errors, warnings = parse_messages(stderr)
        if returncode != 0 and not errors:
            errors.append(stderr.strip() or stdout.strip() or f"{argv[0]} exited with status {returncode}")
        return CompilationResult(
            entry=config.entry,
            outfile=config.outfile,
            errors=errors,
            warnings=warnings,
            duration_ms=duration_ms,
        )

    async def watch(self, config: BundlerConfig, callback: CompileCallback) -> "EsbuildWatchHandle":
        # imports may live anywhere in the workspace, not just beside the entry
        watch_root = config.watch_root or config.entry.parent
        watcher = FileWatcher(
            [watch_root],
            root=watch_root,
            extensions=self.settings.watch_extensions,
            exclude=[config.outfile.parent, *config.watch_exclude],
            poll_interval=self.settings.poll_interval,
        )
        handle = EsbuildWatchHandle(self, config, watcher, callback)
        handle.start()
        return handle


class EsbuildWatchHandle:
    """Recompiles one target whenever its source folder changes."""

    def __init__(
        self,
        bundler: EsbuildBundler,
        config: BundlerConfig,
        watcher: FileWatcher,
        callback: CompileCallback,
    ) -> None:
        self.bundler = bundler
        self.config = config
        self.watcher = watcher
        self.callback = callback
        self._task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    @property
    def closed(self) -> bool:
        return self._task is None or self._task.done()

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            # already reported through the callback
            logger.debug("Watch task for %s ended with an error", self.config.label, exc_info=True)

    async def _run(self) -> None:
        try:
            await self.watcher.initialize()
            await self._rebuild()
            while True:
                await asyncio.sleep(self.watcher.poll_interval)
                changes = await self.watcher.poll_once()
                if any(changes.values()):
                    await self._rebuild()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self.callback(exc, None)

    async def _rebuild(self) -> None:
        try:
            result = await self.bundler.compile(self.config)
        except BundlerError as exc:
            await self.callback(exc, None)
            return
        await self.callback(None, result)


async def _run_process(argv: Sequence[str], *, cwd: Path) -> Tuple[int, str, str]:
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise BundlerError(
            f"Bundler executable not found: {argv[0]}",
            details="Install esbuild or point SKETCH_BUILDER_BUNDLER at a compatible bundler.",
        ) from exc
    except OSError as exc:
        raise BundlerError(f"Unable to start bundler {argv[0]}: {exc}") from exc

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise
    return process.returncode or 0, stdout.decode("utf-8", "replace"), stderr.decode("utf-8", "replace")
