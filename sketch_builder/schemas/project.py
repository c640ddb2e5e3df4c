"""Pydantic models describing the plugin project configuration."""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SKETCH_DIR = ("Contents", "Sketch")
RESOURCES_DIR = ("Contents", "Resources")
COMPILED_RESOURCES_DIR = "_webpack_resources"


class AuthorInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class BundlerSettings(BaseModel):
    command: List[str] = Field(default_factory=lambda: ["esbuild"], description="Bundler argv prefix.")
    args: List[str] = Field(default_factory=list, description="Extra arguments for every compilation.")
    poll_interval: float = Field(default=0.25, gt=0, description="Seconds between source scans when watching.")
    watch_extensions: List[str] = Field(
        default_factory=lambda: [".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".json", ".css"],
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("bundler command cannot be empty")
        return value


class ProjectConfig(BaseModel):
    """Resolved `skpm` configuration for one plugin project."""

    root: Path
    main: str = Field(..., min_length=1, description="Path of the .sketchplugin bundle to produce.")
    manifest: str = Field(..., min_length=1, description="Path of the source manifest.json.")
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    author: Union[AuthorInfo, str, None] = None
    repository: Optional[str] = Field(default=None, description="GitHub repository slug (owner/name).")
    appcast: Union[Literal[False], str, None] = None
    resources: List[str] = Field(default_factory=list)
    assets: List[str] = Field(default_factory=list)
    bundler: BundlerSettings = Field(default_factory=BundlerSettings)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def output_path(self) -> Path:
        return self.root / self.main

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest

    @property
    def manifest_folder(self) -> Path:
        return self.manifest_path.parent

    @property
    def sketch_dir(self) -> Path:
        return self.output_path.joinpath(*SKETCH_DIR)

    @property
    def resources_dir(self) -> Path:
        return self.output_path.joinpath(*RESOURCES_DIR)

    @property
    def compiled_resources_dir(self) -> Path:
        return self.resources_dir / COMPILED_RESOURCES_DIR

    @property
    def emitted_manifest_path(self) -> Path:
        return self.sketch_dir / "manifest.json"

    @property
    def default_appcast_url(self) -> Optional[str]:
        if not self.repository:
            return None
        return f"https://raw.githubusercontent.com/{self.repository}/master/.appcast.xml"
