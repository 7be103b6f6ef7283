"""Command line entrypoint."""

from .main import main

__all__ = [
    "main",
]
