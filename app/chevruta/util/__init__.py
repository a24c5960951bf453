"""Shared utilities."""

from .async_helpers import bounded
from .result import Result

__all__ = [
    "Result",
    "bounded",
]
