"""Session orchestration, delivery, progress and summary services."""

from .session import EditSession

__all__ = [
    "EditSession",
]
