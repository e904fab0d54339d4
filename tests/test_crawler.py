"""End-to-end tests of the worker/scheduler loop against a fake Jenkins."""
import asyncio
import json
from unittest.mock import patch

import httpx

from jenkins_crawler.ci_providers.models import BuildSnapshot, ErrorPolicy
from jenkins_crawler.crawler import start_crawl
from jenkins_crawler.tasks.crawl_worker import CrawlWorker

from conftest import BUILD_URL, DESCRIBE_PATH, execution, node_log, stage

INTERVAL = 0.01


def _serve_build(fake_jenkins, *statuses):
    fake_jenkins.routes[DESCRIBE_PATH] = fake_jenkins.sequence(
        *({"id": "7", "name": "#7", "status": s, "stages": [stage("/s1")]} for s in statuses)
    )
    fake_jenkins.routes["/s1"] = execution("build1", 100, log="/s1/log")
    fake_jenkins.routes["/s1/log"] = node_log("abc", status="IN_PROGRESS")


def _crawl(fake_jenkins, tmp_path, policy=None):
    async def run():
        session = start_crawl(
            BUILD_URL,
            "build1",
            output_dir=tmp_path,
            client=fake_jenkins.client(),
            interval=INTERVAL,
            policy=policy,
        )
        try:
            return await session.wait_finished(timeout=5)
        finally:
            await session.stop()

    return asyncio.run(run())


def test_polls_until_terminal_status(fake_jenkins, tmp_path):
    _serve_build(fake_jenkins, "IN_PROGRESS", "IN_PROGRESS", "SUCCESS")

    snapshot = _crawl(fake_jenkins, tmp_path)

    assert snapshot.status == "SUCCESS"
    assert fake_jenkins.requests.count(DESCRIBE_PATH) == 3

    data = json.loads((tmp_path / "out_build1.json").read_text(encoding="utf-8"))
    assert data["status"] == "SUCCESS"
    assert data["buildID"] == "build1"
    assert data["stages"] == [
        {
            "status": "IN_PROGRESS",
            "name": "build1",
            "logLength": 3,
            "logText": "abc",
            "startTime": 100,
        }
    ]


def test_terminal_first_poll_is_not_repeated(fake_jenkins, tmp_path):
    _serve_build(fake_jenkins, "FAILED")

    async def run():
        session = start_crawl(
            BUILD_URL,
            "build1",
            output_dir=tmp_path,
            client=fake_jenkins.client(),
            interval=INTERVAL,
        )
        snapshot = await session.wait_finished(timeout=5)
        await asyncio.sleep(INTERVAL * 5)
        alive = session.running
        await session.stop()
        return snapshot, alive

    snapshot, alive = asyncio.run(run())

    assert snapshot.status == "FAILED"
    assert alive
    assert fake_jenkins.requests.count(DESCRIBE_PATH) == 1


def test_unreachable_describe_keeps_polling(fake_jenkins, tmp_path):
    fake_jenkins.routes[DESCRIBE_PATH] = fake_jenkins.sequence(
        httpx.ConnectError("connection refused"),
        {"status": "SUCCESS", "stages": []},
    )

    snapshot = _crawl(fake_jenkins, tmp_path, policy=ErrorPolicy.RECORD)

    assert snapshot.status == "SUCCESS"
    assert snapshot.errors == []
    assert fake_jenkins.requests.count(DESCRIBE_PATH) == 2


def test_record_policy_reports_describe_failure(fake_jenkins):
    fake_jenkins.routes[DESCRIBE_PATH] = httpx.Response(503, text="starting")

    async def run():
        worker = CrawlWorker(
            fake_jenkins.client(),
            BUILD_URL,
            asyncio.Queue(maxsize=1),
            asyncio.Queue(maxsize=1),
            policy=ErrorPolicy.RECORD,
        )
        return await worker.crawl("build1")

    snapshot = asyncio.run(run())

    assert snapshot.status == ""
    assert snapshot.in_progress
    assert snapshot.errors[0].url == "http://jenkins.local/job/app/7/wfapi/describe"


def test_worker_survives_unexpected_errors(fake_jenkins):
    async def run():
        process_queue = asyncio.Queue(maxsize=1)
        state_queue = asyncio.Queue(maxsize=1)
        worker = CrawlWorker(fake_jenkins.client(), BUILD_URL, process_queue, state_queue)

        with patch(
            "jenkins_crawler.tasks.crawl_worker.extract", side_effect=RuntimeError("boom")
        ):
            task = asyncio.create_task(worker.run())
            await process_queue.put("build1")
            snapshot = await asyncio.wait_for(state_queue.get(), timeout=1)
            alive = not task.done()
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        return snapshot, alive

    snapshot, alive = asyncio.run(run())

    assert isinstance(snapshot, BuildSnapshot)
    assert snapshot.build_id == "build1"
    assert snapshot.status == ""
    assert alive


def test_stop_cancels_pending_repoll(fake_jenkins, tmp_path):
    _serve_build(fake_jenkins, "IN_PROGRESS")

    async def run():
        session = start_crawl(
            BUILD_URL,
            "build1",
            output_dir=tmp_path,
            client=fake_jenkins.client(),
            interval=60,
        )
        while session.last_snapshot is None:
            await asyncio.sleep(INTERVAL)
        await session.stop()
        await session.stop()
        return session

    session = asyncio.run(run())

    assert session.scheduler.pending_repolls == 0
    assert not session.running
    assert fake_jenkins.requests.count(DESCRIBE_PATH) == 1


def test_trigger_after_terminal_polls_again(fake_jenkins, tmp_path):
    _serve_build(fake_jenkins, "SUCCESS", "FAILED")

    async def run():
        session = start_crawl(
            BUILD_URL,
            "build1",
            output_dir=tmp_path,
            client=fake_jenkins.client(),
            interval=INTERVAL,
        )
        first = await session.wait_finished(timeout=5)
        session.trigger()
        second = await session.wait_finished(timeout=5)
        await session.stop()
        return first, second

    first, second = asyncio.run(run())

    assert first.status == "SUCCESS"
    assert second.status == "FAILED"
    assert fake_jenkins.requests.count(DESCRIBE_PATH) == 2
