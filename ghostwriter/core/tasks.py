"""
Background task runner.

Fire-and-forget work (ingestion pipelines, memory seeding, post-turn memory
updates) goes through one runner that keeps task references alive, logs
failures and reports them to Sentry. Failures never propagate to the caller
that spawned the task.
"""

import asyncio
from typing import Any, Coroutine, Optional

import structlog

from ghostwriter.core.observability import capture_exception

logger = structlog.get_logger(__name__)


class BackgroundTaskRunner:
    """Owns in-process background tasks for the lifetime of the app."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any], **context: Any) -> asyncio.Task:
        """Schedule a coroutine; its failure is contained and logged."""
        task = asyncio.create_task(self._run(name, coro, context), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Background task spawned", task=name, **context)
        return task

    async def _run(self, name: str, coro: Coroutine[Any, Any, Any], context: dict) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.info("Background task cancelled", task=name, **context)
            raise
        except Exception as e:
            logger.error("Background task failed", task=name, error=str(e), error_type=type(e).__name__, **context)
            capture_exception(e, {"task": name, **context})
        else:
            logger.debug("Background task completed", task=name, **context)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for all tasks, including ones spawned while draining."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            done, _ = await asyncio.wait(set(self._tasks), timeout=remaining)
            if deadline is not None and loop.time() >= deadline and not done:
                break

    async def shutdown(self) -> None:
        """Cancel outstanding tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Background tasks stopped", cancelled=len(tasks))
