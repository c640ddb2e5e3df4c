"""Schema exports for the plugin builder."""

from .manifest import CommandSpec, ManifestDocument
from .project import AuthorInfo, BundlerSettings, ProjectConfig

__all__ = ["AuthorInfo", "BundlerSettings", "CommandSpec", "ManifestDocument", "ProjectConfig"]
