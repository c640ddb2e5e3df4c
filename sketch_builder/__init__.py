"""Build tooling for Sketch plugin bundles."""

__version__ = "0.1.0"

from .bundle import BuildOrchestrator, BuildReport, WatchCoordinator
from .bundler import Bundler, BundlerConfig, CompilationResult, EsbuildBundler
from .config import load_project_config, parse_author
from .errors import (
    AssetCopyError,
    BundlerError,
    CompileError,
    ConfigurationError,
    ManifestError,
    ManifestReadError,
    ManifestWriteError,
    SketchBuilderError,
)
from .schemas import AuthorInfo, BundlerSettings, CommandSpec, ManifestDocument, ProjectConfig

__all__ = [
    "__version__",
    "AssetCopyError",
    "AuthorInfo",
    "BuildOrchestrator",
    "BuildReport",
    "Bundler",
    "BundlerConfig",
    "BundlerError",
    "BundlerSettings",
    "CommandSpec",
    "CompilationResult",
    "CompileError",
    "ConfigurationError",
    "EsbuildBundler",
    "ManifestDocument",
    "ManifestError",
    "ManifestReadError",
    "ManifestWriteError",
    "ProjectConfig",
    "SketchBuilderError",
    "WatchCoordinator",
    "load_project_config",
    "parse_author",
]
