"""Supervision of detached background tasks."""

import asyncio
from typing import Any, Coroutine

from shared.helper.HelperConfig import HelperConfig

SHUTDOWN_TIMEOUT = 30  # seconds to wait for in-flight tasks on shutdown


class TaskSupervisor:
    """Owns fire-and-forget tasks spawned by the webhook.

    Keeps a strong reference to each task until it finishes (the event loop
    only holds weak ones) and logs any exception that escapes a task, since
    nobody awaits them.
    """

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._tasks: set[asyncio.Task] = set()
        self.shutdown_timeout = helper_config.get_number_val("INGEST_SHUTDOWN_TIMEOUT", default=SHUTDOWN_TIMEOUT)

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        """Schedule a coroutine on the running loop without awaiting it.

        Args:
            coro (Coroutine): The work to run.
            name (str | None): Task name used in log lines.

        Returns:
            asyncio.Task: The scheduled task.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.logging.warning("Background task '%s' was cancelled.", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            self.logging.error(
                "Background task '%s' failed with an unhandled fault: %r",
                task.get_name(), exc, exc_info=exc,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight tasks, cancelling whatever is left after the timeout.

        Args:
            timeout (float | None): Seconds to wait, defaults to INGEST_SHUTDOWN_TIMEOUT.
        """
        if not self._tasks:
            return
        timeout = self.shutdown_timeout if timeout is None else timeout
        self.logging.info("Waiting up to %ss for %d background task(s)...", timeout, len(self._tasks))

        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self.logging.warning("Cancelled %d background task(s) on shutdown.", len(still_running))
