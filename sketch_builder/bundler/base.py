"""Contract between the build orchestrator and a bundler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..bundle.commands import CompilationTarget, TargetKind


@dataclass(slots=True)
class BundlerConfig:
    """Generated configuration for compiling one target."""

    entry: Path
    outfile: Path
    kind: TargetKind = "command"
    handlers: Sequence[str] = ()
    identifiers: Sequence[str] = ()
    watch: bool = False
    quiet: bool = False
    sourcemap: bool = False
    extra_args: Sequence[str] = ()
    watch_root: Optional[Path] = None
    watch_exclude: Sequence[Path] = ()

    @property
    def label(self) -> str:
        return self.entry.name


@dataclass(slots=True)
class CompilationResult:
    """Outcome of a single (re)compilation."""

    entry: Path
    outfile: Path
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


CompileCallback = Callable[[Optional[BaseException], Optional[CompilationResult]], Awaitable[None]]


class WatcherHandle(Protocol):
    async def close(self) -> None: ...


class Bundler(Protocol):
    """Anything able to compile a target once or keep recompiling it."""

    async def compile(self, config: BundlerConfig) -> CompilationResult: ...

    async def watch(self, config: BundlerConfig, callback: CompileCallback) -> WatcherHandle: ...


def make_bundler_config(
    target: CompilationTarget,
    *,
    source_root: Path,
    sketch_dir: Path,
    resources_dir: Path,
    watch: bool = False,
    quiet: bool = False,
    extra_args: Sequence[str] = (),
    watch_root: Optional[Path] = None,
    watch_exclude: Sequence[Path] = (),
) -> BundlerConfig:
    """Generate the per-target configuration.

    Commands land next to the emitted manifest; resources go to the
    compiled resources folder. Script paths are resolved against the
    manifest folder, resource paths against the workspace. Watchers scan
    ``watch_root`` (the entry folder when unset), skipping ``watch_exclude``.
    """

    entry = (source_root / target.script).resolve()
    out_dir = sketch_dir if target.kind == "command" else resources_dir
    return BundlerConfig(
        entry=entry,
        outfile=out_dir / Path(target.script).name,
        kind=target.kind,
        handlers=tuple(target.handlers),
        identifiers=tuple(target.identifiers),
        watch=watch,
        quiet=quiet,
        sourcemap=watch,
        extra_args=tuple(extra_args),
        watch_root=watch_root,
        watch_exclude=tuple(watch_exclude),
    )
