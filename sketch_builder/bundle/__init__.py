"""Plugin bundle assembly."""

from .collect import collect_assets, collect_resources
from .commands import CompilationTarget, collect_targets, flatten_handlers, parse_handlers
from .manifest import load_manifest, render_manifest, write_manifest
from .orchestrator import BuildContext, BuildOrchestrator, BuildReport
from .watch import WatchCoordinator

__all__ = [
    "BuildContext",
    "BuildOrchestrator",
    "BuildReport",
    "CompilationTarget",
    "WatchCoordinator",
    "collect_assets",
    "collect_resources",
    "collect_targets",
    "flatten_handlers",
    "load_manifest",
    "parse_handlers",
    "render_manifest",
    "write_manifest",
]
