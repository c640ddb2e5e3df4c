"""Pydantic models describing the source plugin manifest."""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CommandSpec(BaseModel):
    """One entry of the manifest `commands` list."""

    script: str = Field(..., min_length=1)
    handler: Optional[str] = None
    handlers: Any = Field(default=None, description="Handler name, list of names or nested mapping.")
    identifier: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ManifestDocument(BaseModel):
    """Source manifest as authored in the plugin project."""

    commands: List[CommandSpec]
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    author: Optional[str] = None
    author_email: Optional[str] = Field(default=None, alias="authorEmail")
    appcast: Union[Literal[False], str, None] = None
    disable_cocoa_script_preprocessor: Optional[bool] = Field(
        default=None, alias="disableCocoaScriptPreprocessor"
    )

    model_config = ConfigDict(extra="allow", populate_by_name=True)
