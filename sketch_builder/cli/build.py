"""Command-line entry point for building plugin bundles."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from sketch_builder.bundle.orchestrator import BuildOrchestrator
from sketch_builder.bundle.watch import WatchCoordinator
from sketch_builder.bundler.base import Bundler
from sketch_builder.bundler.esbuild import EsbuildBundler
from sketch_builder.config import load_project_config
from sketch_builder.console import configure_logging
from sketch_builder.errors import (
    AssetCopyError,
    BundlerError,
    CompileError,
    ManifestWriteError,
    SketchBuilderError,
)
from sketch_builder.schemas.project import ProjectConfig

logger = logging.getLogger("sketch_builder.cli")

BundlerFactory = Callable[[ProjectConfig], Bundler]


def main(argv: Optional[Sequence[str]] = None, *, bundler_factory: Optional[BundlerFactory] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    workspace = _resolve_workspace(args.workspace_root)
    factory = bundler_factory or _default_bundler_factory
    if args.run:
        logger.debug("--run is accepted but the build step does not launch Sketch")

    try:
        config = load_project_config(workspace)
        if args.watch:
            return asyncio.run(_watch(config, factory, workspace=workspace, quiet=args.quiet))
        return asyncio.run(_build_once(config, factory, quiet=args.quiet))
    except KeyboardInterrupt:
        return 0
    except (AssetCopyError, BundlerError, CompileError, ManifestWriteError):
        # reported where they happened
        return 1
    except SketchBuilderError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:
        logger.exception("Error while building the plugin")
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sketch-builder", description="Build a Sketch plugin bundle.")
    parser.add_argument("-w", "--watch", action="store_true", help="Watch and rebuild automatically.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Hide compilation warnings.")
    parser.add_argument("-r", "--run", action="store_true", help="Run plugin after compiling.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--workspace-root", help="Plugin project directory (defaults to the current directory).")
    return parser


async def _build_once(config: ProjectConfig, factory: BundlerFactory, *, quiet: bool) -> int:
    orchestrator = BuildOrchestrator(config, factory(config), quiet=quiet)
    report = await orchestrator.run_generation()
    return 0 if report.succeeded else 1


async def _watch(config: ProjectConfig, factory: BundlerFactory, *, workspace: Path, quiet: bool) -> int:
    coordinator = WatchCoordinator(
        config,
        factory,
        quiet=quiet,
        config_loader=lambda: load_project_config(workspace),
    )
    try:
        await coordinator.start()
        await coordinator.run_forever()
    finally:
        await coordinator.close()
    return 0


def _default_bundler_factory(config: ProjectConfig) -> Bundler:
    return EsbuildBundler(config.bundler)


def _resolve_workspace(value: Optional[str]) -> Path:
    return Path(value).resolve() if value else Path.cwd()
