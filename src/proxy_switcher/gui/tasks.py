"""Background task helper."""

import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)


def spawn_task(coro: Coroutine, context: str) -> asyncio.Task | None:
    """Run coroutine in the background and log exceptions.

    Returns the task, or None if no event loop is running.
    """
    try:
        task = asyncio.create_task(coro)
    except RuntimeError as e:
        coro.close()
        logger.warning("Cannot start task (%s): %s", context, e)
        return None

    def _done(t: asyncio.Task) -> None:
        try:
            exc = t.exception()
        except asyncio.CancelledError:
            return
        if exc is not None:
            logger.error("Background task failed (%s)", context, exc_info=exc)

    task.add_done_callback(_done)
    return task
