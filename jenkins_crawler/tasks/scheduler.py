"""Poll scheduler: persist every snapshot and re-poll builds that are still running."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Set

from jenkins_crawler.ci_providers.models import BuildSnapshot
from jenkins_crawler.config import settings
from jenkins_crawler.services.snapshot_store import persist_snapshot

logger = logging.getLogger(__name__)


class PollScheduler:
    """
    Receives snapshots from the crawl worker and decides on the next poll.

    States:
    - awaiting snapshot: blocked on ``state_queue``
    - idle between polls: a re-poll task is sleeping, or the build finished

    A snapshot whose status is empty or IN_PROGRESS schedules exactly one
    re-poll task, which sleeps ``interval`` seconds and then puts the build
    identifier back on ``process_queue``. Any other status is terminal and
    sets ``finished``. Re-poll tasks are owned by the scheduler so
    ``cancel_pending()`` can drop them on shutdown.
    """

    def __init__(
        self,
        build_id: str,
        process_queue: "asyncio.Queue[str]",
        state_queue: "asyncio.Queue[BuildSnapshot]",
        output_path: Path,
        interval: Optional[float] = None,
        stop_on_terminal: bool = False,
        persist: Callable[[BuildSnapshot, Path], bool] = persist_snapshot,
    ) -> None:
        self.build_id = build_id
        self.process_queue = process_queue
        self.state_queue = state_queue
        self.output_path = Path(output_path)
        self.interval = (
            interval if interval is not None else settings.JENKINS_POLL_INTERVAL_SECONDS
        )
        self.stop_on_terminal = stop_on_terminal
        self._persist = persist

        self.finished = asyncio.Event()
        self.last_snapshot: Optional[BuildSnapshot] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_repolls(self) -> int:
        return len(self._pending)

    def handle_snapshot(self, snapshot: BuildSnapshot) -> bool:
        """Persist ``snapshot``; return True when a re-poll was scheduled."""
        logger.debug("got request to update the state", extra={"build_id": self.build_id})
        self.last_snapshot = snapshot

        # A failed write is logged by the store; polling carries on regardless
        self._persist(snapshot, self.output_path)

        logger.debug(
            f"jenkins job status: {snapshot.status!r}",
            extra={"build_id": self.build_id, "status": snapshot.status},
        )
        if snapshot.in_progress:
            self.finished.clear()
            self.request_poll()
            return True

        logger.info(
            f"build {self.build_id} finished with status {snapshot.status}",
            extra={"build_id": self.build_id, "status": snapshot.status},
        )
        self.finished.set()
        return False

    def request_poll(self, delay: Optional[float] = None) -> None:
        """Put the build identifier back on the worker queue after ``delay`` seconds."""
        delay = self.interval if delay is None else delay
        task = asyncio.create_task(self._repoll(delay), name=f"repoll-{self.build_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _repoll(self, delay: float) -> None:
        if delay > 0:
            logger.debug(f"sleeping for {delay} seconds before requerying")
            await asyncio.sleep(delay)
        await self.process_queue.put(self.build_id)

    async def cancel_pending(self) -> None:
        """Cancel every re-poll that has not fired yet."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(f"cancelled {len(tasks)} pending re-poll(s) of build {self.build_id}")

    async def run(self) -> None:
        while True:
            snapshot = await self.state_queue.get()
            try:
                self.handle_snapshot(snapshot)
            finally:
                self.state_queue.task_done()

            if self.stop_on_terminal and not snapshot.in_progress:
                logger.info(f"scheduler for build {self.build_id} stopped")
                return
