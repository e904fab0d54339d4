"""Crawl loop: build identifier in, snapshot out."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from jenkins_crawler.ci_providers.jenkins import JenkinsClient, describe_url
from jenkins_crawler.ci_providers.models import BuildSnapshot, ErrorPolicy
from jenkins_crawler.services.extraction_service import extract

logger = logging.getLogger(__name__)


class CrawlWorker:
    """
    Long-lived loop that crawls one build identifier at a time.

    Identifiers arrive on ``process_queue``; each finished snapshot is put on
    ``state_queue``. Both queues are expected to have capacity one, so a
    producer that races ahead blocks instead of overlapping crawls.
    """

    def __init__(
        self,
        client: JenkinsClient,
        build_url: str,
        process_queue: "asyncio.Queue[str]",
        state_queue: "asyncio.Queue[BuildSnapshot]",
        policy: ErrorPolicy = ErrorPolicy.DEGRADE,
        describe_suffix: Optional[str] = None,
    ) -> None:
        self.client = client
        self.build_url = build_url
        self.describe_url = describe_url(build_url, describe_suffix)
        self.process_queue = process_queue
        self.state_queue = state_queue
        self.policy = policy

    async def crawl(self, build_id: str) -> BuildSnapshot:
        """Fetch the build description and extract one snapshot."""
        result = await self.client.fetch_build_description(self.describe_url)
        errors = [result.error] if result.error else None
        return await extract(
            self.client,
            result.value,
            self.build_url,
            build_id,
            policy=self.policy,
            errors=errors,
        )

    async def run(self) -> None:
        while True:
            build_id = await self.process_queue.get()
            try:
                snapshot = await self.crawl(build_id)
                logger.info(
                    f"extracted jenkins data for build {build_id}",
                    extra={"build_id": build_id, "status": snapshot.status},
                )
            except Exception:
                # An empty status keeps the build in the re-poll cycle
                logger.exception(
                    f"Unexpected error while crawling build {build_id}",
                    extra={"build_id": build_id},
                )
                snapshot = BuildSnapshot(
                    build_id=build_id,
                    errors=[] if self.policy == ErrorPolicy.RECORD else None,
                )
            finally:
                self.process_queue.task_done()

            await self.state_queue.put(snapshot)
            logger.debug(f"sent snapshot of build {build_id} to the scheduler")
