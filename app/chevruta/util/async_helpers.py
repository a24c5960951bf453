"""Async helpers for calls that leave the process."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


async def bounded(aw: Awaitable[T], timeout: float, what: str) -> T:
    """Await *aw* for at most *timeout* seconds.

    A stalled external service surfaces as ``TimeoutError`` naming *what*
    was being waited on, so callers can fold it into their own failure.
    """
    try:
        return await asyncio.wait_for(aw, timeout=timeout)
    except TimeoutError as exc:
        raise TimeoutError(f"{what} timed out after {timeout:g}s") from exc
