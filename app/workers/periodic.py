"""Fixed-interval background loop used for retry draining and cleanup sweeps."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from app.core.logger import get_logger

logger = get_logger(component="PeriodicWorker")


class PeriodicWorker:
    """
    Runs ``task`` every ``interval_seconds`` until shutdown is requested.

    ``task`` may be a plain or an async callable. An exception raised by one run
    is logged and the loop carries on with the next tick.
    """

    def __init__(
        self,
        *,
        name: str,
        task: Callable[[], Any | Awaitable[Any]],
        interval_seconds: float,
        run_immediately: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self._task = task
        self._interval_seconds = interval_seconds
        self._run_immediately = run_immediately
        self._running = False
        self._stop_event = asyncio.Event()
        self._stopped_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> Any:
        result = self._task()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run_forever(self) -> None:
        """Start the loop and keep ticking until shutdown is requested."""
        self._running = True
        self._stop_event.clear()
        self._stopped_event.clear()
        logger.info("Starting periodic worker", worker=self.name, interval_seconds=self._interval_seconds)

        try:
            if not self._run_immediately and await self._wait_for_stop():
                return
            while self._running:
                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    logger.info("Periodic worker cancelled, shutting down gracefully", worker=self.name)
                    break
                except Exception as exc:
                    logger.exception("Unexpected error in periodic worker", worker=self.name, error=str(exc))

                if await self._wait_for_stop():
                    break
        finally:
            self._running = False
            logger.info("Periodic worker stopped", worker=self.name)
            self._stopped_event.set()

    async def _wait_for_stop(self) -> bool:
        """Sleep for one interval; return True if shutdown was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def shutdown(self) -> None:
        """Signal the loop to stop and wait until it has exited."""
        logger.info("Shutdown requested for periodic worker", worker=self.name)
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        await self._stopped_event.wait()
