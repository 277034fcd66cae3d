"""Deferred release of async resources from synchronous code.

Synchronous ``close()`` / ``dispose()`` cannot await an async driver. When
an event loop is running, the release coroutine is scheduled on it as one
task; callers chain every step that must stay ordered into that single
coroutine. A failed release is logged, never silently dropped.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

# Strong references to scheduled release tasks until they finish.
_pending_releases: set[asyncio.Task[None]] = set()


def release_later(action: Callable[[], Coroutine[Any, Any, None]], what: str) -> bool:
    """Schedule ``action()`` on the running loop.

    Returns False, without calling *action*, when no loop is running.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return False

    task = loop.create_task(action())
    _pending_releases.add(task)
    task.add_done_callback(functools.partial(_finish_release, what))
    return True


def _finish_release(what: str, task: asyncio.Task[None]) -> None:
    _pending_releases.discard(task)
    if task.cancelled():
        logger.warning("%s release was cancelled", what)
        return
    exc = task.exception()
    if exc is not None:
        logger.error("%s release failed", what, exc_info=exc)


async def drain_releases() -> None:
    """Wait for every scheduled release to finish (e.g. before loop shutdown)."""
    while _pending_releases:
        await asyncio.gather(*list(_pending_releases), return_exceptions=True)
