"""
Crawl session wiring.

``start_crawl`` connects a CrawlWorker and a PollScheduler through two
single-slot queues and kicks off the first poll:

    scheduler --(build id)--> worker --(snapshot)--> scheduler

The loop keeps polling until the build reports a terminal status.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from jenkins_crawler.ci_providers.jenkins import JenkinsClient
from jenkins_crawler.ci_providers.models import BuildSnapshot, ErrorPolicy
from jenkins_crawler.config import Settings, settings as default_settings
from jenkins_crawler.paths import get_snapshot_path
from jenkins_crawler.tasks.crawl_worker import CrawlWorker
from jenkins_crawler.tasks.scheduler import PollScheduler

logger = logging.getLogger(__name__)


class CrawlSession:
    """Handle on a running crawl of one build."""

    def __init__(
        self,
        build_url: str,
        build_id: str,
        settings: Optional[Settings] = None,
        output_dir: Optional[Union[str, Path]] = None,
        client: Optional[JenkinsClient] = None,
        interval: Optional[float] = None,
        policy: Optional[ErrorPolicy] = None,
    ) -> None:
        settings = settings or default_settings
        self.build_url = build_url
        self.build_id = build_id
        self.output_path = get_snapshot_path(
            build_id, output_dir if output_dir is not None else settings.OUTPUT_DIR
        )

        self.client = client or JenkinsClient(timeout=settings.JENKINS_HTTP_TIMEOUT)
        self.process_queue: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        self.state_queue: asyncio.Queue[BuildSnapshot] = asyncio.Queue(maxsize=1)

        self.worker = CrawlWorker(
            self.client,
            build_url,
            self.process_queue,
            self.state_queue,
            policy=policy or ErrorPolicy(settings.CRAWL_ERROR_POLICY),
            describe_suffix=settings.JENKINS_DESCRIBE_SUFFIX,
        )
        self.scheduler = PollScheduler(
            build_id,
            self.process_queue,
            self.state_queue,
            self.output_path,
            interval=interval if interval is not None else settings.JENKINS_POLL_INTERVAL_SECONDS,
            stop_on_terminal=settings.CRAWL_STOP_ON_TERMINAL,
        )

        self._tasks: list[asyncio.Task] = []
        self._stopped = False

    @property
    def last_snapshot(self) -> Optional[BuildSnapshot]:
        return self.scheduler.last_snapshot

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stopped

    def start(self) -> "CrawlSession":
        """Start both loops and enqueue the first poll. Needs a running loop."""
        if self._tasks:
            raise RuntimeError(f"crawl of build {self.build_id} already started")
        self._tasks = [
            asyncio.create_task(self.scheduler.run(), name=f"scheduler-{self.build_id}"),
            asyncio.create_task(self.worker.run(), name=f"crawler-{self.build_id}"),
        ]
        logger.info(
            f"starting crawl of build {self.build_id} at {self.build_url}",
            extra={"build_id": self.build_id, "url": self.build_url},
        )
        self.trigger()
        return self

    def trigger(self) -> None:
        """Enqueue a poll of the build without waiting for queue space."""
        if self._stopped:
            raise RuntimeError(f"crawl of build {self.build_id} is stopped")
        self.scheduler.finished.clear()
        self.scheduler.request_poll(delay=0)

    async def wait_finished(self, timeout: Optional[float] = None) -> BuildSnapshot:
        """Wait for a snapshot with a terminal status and return it."""
        await asyncio.wait_for(self.scheduler.finished.wait(), timeout)
        return self.scheduler.last_snapshot

    async def stop(self) -> None:
        """Cancel pending re-polls and both loops, then close the client."""
        if self._stopped:
            return
        self._stopped = True

        await self.scheduler.cancel_pending()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.client.aclose()
        logger.info(f"crawl of build {self.build_id} stopped", extra={"build_id": self.build_id})


def start_crawl(
    build_url: str,
    build_id: str,
    *,
    settings: Optional[Settings] = None,
    output_dir: Optional[Union[str, Path]] = None,
    client: Optional[JenkinsClient] = None,
    interval: Optional[float] = None,
    policy: Optional[ErrorPolicy] = None,
) -> CrawlSession:
    """
    Begin polling a build. Must be called from a running event loop.

    The crawl runs in the background; the returned session can be used to
    wait for a terminal status, re-trigger a poll or stop the crawl.
    """
    session = CrawlSession(
        build_url,
        build_id,
        settings=settings,
        output_dir=output_dir,
        client=client,
        interval=interval,
        policy=policy,
    )
    return session.start()


def run_crawl(
    build_url: str,
    build_id: str,
    *,
    settings: Optional[Settings] = None,
    output_dir: Optional[Union[str, Path]] = None,
    interval: Optional[float] = None,
    policy: Optional[ErrorPolicy] = None,
) -> BuildSnapshot:
    """Poll a build until it finishes, then shut down. Returns the last snapshot."""

    async def _run() -> BuildSnapshot:
        session = start_crawl(
            build_url,
            build_id,
            settings=settings,
            output_dir=output_dir,
            interval=interval,
            policy=policy,
        )
        try:
            return await session.wait_finished()
        finally:
            await session.stop()

    return asyncio.run(_run())
