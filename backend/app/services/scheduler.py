"""Non-reentrant periodic tasks on the asyncio event loop.

Each PeriodicTask runs one coroutine function on a fixed cadence. The
next run is only scheduled after the previous one has finished, and
run_once() refuses to start while a run is in progress, so a task never
overlaps with itself. Different tasks run independently of each other.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async action every ``interval`` seconds."""

    def __init__(
        self,
        name: str,
        action: Callable[[], Awaitable[None]],
        interval: float,
        timeout: float | None = None,
        run_immediately: bool = True,
    ):
        """
        Args:
            name: Label used in logs
            action: Coroutine function to run each cycle
            interval: Seconds between the starts of consecutive runs
            timeout: Maximum seconds a single run may take (None = no limit)
            run_immediately: Run once right away instead of after one interval
        """
        self.name = name
        self.interval = interval
        self.timeout = timeout
        self.run_immediately = run_immediately
        self._action = action
        self._task: asyncio.Task | None = None
        self._in_progress = False
        self.runs = 0
        self.failures = 0
        self.last_run_at: float | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def run_once(self) -> bool:
        """Run the action a single time.

        Failures and timeouts are logged and swallowed; the next scheduled
        run is the retry.

        Returns:
            True if the action completed, False if it failed, timed out,
            or was skipped because a run was already in progress
        """
        if self._in_progress:
            logger.debug(f"{self.name}: previous run still in progress, skipping")
            return False

        self._in_progress = True
        self.last_run_at = time.time()
        try:
            if self.timeout is not None:
                await asyncio.wait_for(self._action(), timeout=self.timeout)
            else:
                await self._action()
            self.runs += 1
            return True
        except asyncio.TimeoutError:
            self.failures += 1
            logger.warning(f"{self.name}: run timed out after {self.timeout}s")
            return False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            logger.warning(f"{self.name}: run failed: {e}")
            return False
        finally:
            self._in_progress = False

    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval)

        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            await self.run_once()
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    def start(self) -> None:
        """Start scheduling on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info(f"{self.name}: started (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop scheduling new runs and cancel the current one."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"{self.name}: stopped")
