"""
Walk a build description into a flat, time-ordered list of stage logs.

Every stage's self link is fetched to get its execution. An execution either
has one aggregated log (DirectLog) or splits its output across flow nodes
(NodeList); the choice is made per execution, since stages of the same build
can use either shape. All requests are made one at a time.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from jenkins_crawler.ci_providers.jenkins import JenkinsClient, resolve_link
from jenkins_crawler.ci_providers.models import (
    BuildDescription,
    BuildSnapshot,
    DirectLog,
    ErrorPolicy,
    ExecutionDescription,
    FetchError,
    FlowNodeRef,
    NodeList,
    StageLog,
)

logger = logging.getLogger(__name__)


class _Extraction:
    """State for one extract() call."""

    def __init__(
        self, client: JenkinsClient, build_url: str, policy: ErrorPolicy
    ) -> None:
        self.client = client
        self.build_url = build_url
        self.policy = policy
        self.errors: List[FetchError] = []

    def note(self, error: Optional[FetchError]) -> Optional[str]:
        if error is None:
            return None
        self.errors.append(error)
        return error.message if self.policy == ErrorPolicy.RECORD else None

    async def stage_logs(self, execution: ExecutionDescription) -> List[StageLog]:
        source = execution.log_source()
        if isinstance(source, DirectLog):
            return [await self._direct_log(execution, source.href)]
        if isinstance(source, NodeList):
            logs = []
            for node in source.nodes:
                if not node.log_href:
                    continue
                logs.append(await self._node_log(execution, node))
            return logs
        raise TypeError(f"unknown log source: {source!r}")

    async def _direct_log(self, execution: ExecutionDescription, href: str) -> StageLog:
        result = await self.client.fetch_log(resolve_link(self.build_url, href))
        return StageLog(
            status=result.value.node_status,
            name=execution.name,
            log_length=result.value.length,
            log_text=result.value.text,
            start_time=execution.start_time_millis,
            error=self.note(result.error),
        )

    async def _node_log(self, execution: ExecutionDescription, node: FlowNodeRef) -> StageLog:
        result = await self.client.fetch_log(resolve_link(self.build_url, node.log_href))
        return StageLog(
            status=result.value.node_status,
            name=f"{execution.name} - {node.name}",
            log_length=result.value.length,
            log_text=result.value.text,
            start_time=node.start_time_millis,
            error=self.note(result.error),
        )


async def extract(
    client: JenkinsClient,
    description: BuildDescription,
    build_url: str,
    build_id: str,
    policy: ErrorPolicy = ErrorPolicy.DEGRADE,
    errors: Optional[List[FetchError]] = None,
) -> BuildSnapshot:
    """
    Build the snapshot for one poll of a build.

    Args:
        client: Jenkins client used for the stage and log requests
        description: Decoded ``wfapi/describe`` response of the build
        build_url: Build URL; links are resolved against its scheme and host
        build_id: Identifier stamped into the snapshot
        policy: ErrorPolicy.RECORD writes failed fetches into the snapshot
        errors: Failures that happened before extraction (the describe
            request), recorded ahead of the ones found here

    Returns:
        BuildSnapshot whose stages are stable-sorted by start time
    """
    run = _Extraction(client, build_url, policy)
    run.errors.extend(errors or [])

    stages: List[StageLog] = []
    for stage in description.stages:
        if not stage.self_href:
            logger.debug(f"stage {stage.name!r} of build {build_id} has no self link")
            continue
        result = await client.fetch_execution(resolve_link(build_url, stage.self_href))
        run.note(result.error)
        stages.extend(await run.stage_logs(result.value))

    # sorted() is stable, so equal start times keep discovery order
    stages = sorted(stages, key=lambda s: s.start_time)

    logger.info(
        f"extracted {len(stages)} stage logs from {len(description.stages)} stages "
        f"of build {build_id}",
        extra={"build_id": build_id},
    )
    if run.errors:
        logger.warning(
            f"{len(run.errors)} request(s) failed while crawling build {build_id}",
            extra={"build_id": build_id},
        )

    return BuildSnapshot(
        status=description.status,
        name=description.name,
        id=description.id,
        build_id=build_id,
        stages=stages,
        errors=run.errors if policy == ErrorPolicy.RECORD else None,
    )
