"""Command-line interfaces."""

from .build import main

__all__ = ["main"]
