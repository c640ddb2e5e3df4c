"""Bundler contract and the esbuild-backed implementation."""

from .base import Bundler, BundlerConfig, CompilationResult, CompileCallback, WatcherHandle, make_bundler_config
from .esbuild import EsbuildBundler, EsbuildWatchHandle
from .watcher import ChangeType, FileChangeEvent, FileWatcher

__all__ = [
    "Bundler",
    "BundlerConfig",
    "ChangeType",
    "CompilationResult",
    "CompileCallback",
    "EsbuildBundler",
    "EsbuildWatchHandle",
    "FileChangeEvent",
    "FileWatcher",
    "WatcherHandle",
    "make_bundler_config",
]
