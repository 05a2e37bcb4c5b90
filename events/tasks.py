"""Background task spawning for best-effort side work"""
import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task] = set()


def spawn_background(coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task:
    """Run coro as a detached task whose failure is logged and never propagated"""
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)

    def _on_done(finished: asyncio.Task) -> None:
        _background_tasks.discard(finished)
        if finished.cancelled():
            return
        exc = finished.exception()
        if exc is not None:
            logger.error("Background task failed (%s): %s", description, exc, exc_info=exc)

    task.add_done_callback(_on_done)
    return task


async def drain_background_tasks() -> None:
    """Wait for every pending background task; used on shutdown and in tests"""
    loop = asyncio.get_running_loop()
    while True:
        pending = [task for task in _background_tasks if task.get_loop() is loop and not task.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)
