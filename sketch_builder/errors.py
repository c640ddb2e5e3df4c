"""Exceptions raised by the plugin build pipeline."""

from __future__ import annotations

from typing import Optional


class SketchBuilderError(RuntimeError):
    """Base class for build failures reported to the user."""


class ConfigurationError(SketchBuilderError):
    """Raised when package.json is unreadable or lacks required fields."""


class ManifestError(SketchBuilderError):
    """Raised when the plugin manifest cannot be used."""


class ManifestReadError(ManifestError):
    """Raised when the source manifest is missing or malformed."""


class ManifestWriteError(ManifestError):
    """Raised when the emitted manifest cannot be written."""


class AssetCopyError(SketchBuilderError):
    """Raised when an asset cannot be copied into the bundle."""

    def __init__(self, asset: str, message: str) -> None:
        super().__init__(message)
        self.asset = asset


class BundlerError(SketchBuilderError):
    """Raised when the bundler itself fails (as opposed to reporting errors)."""

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details


class CompileError(SketchBuilderError):
    """Raised when a compilation reports errors in one-shot mode."""

    def __init__(self, file: str, errors: list[str]) -> None:
        super().__init__(f"Error while building {file}")
        self.file = file
        self.errors = list(errors)
