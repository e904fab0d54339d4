from typing import Any, Dict, List

import httpx
import pytest

from jenkins_crawler.ci_providers.jenkins import JenkinsClient

BUILD_URL = "http://jenkins.local/job/app/7/"
DESCRIBE_PATH = "/job/app/7/wfapi/describe"


class FakeJenkins:
    """
    httpx.MockTransport handler serving canned wfapi documents by path.

    A route value can be a dict/list (JSON body), an httpx.Response, an
    exception instance (raised as a transport failure), or a list of those
    wrapped in ``sequence()`` to serve successive polls.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Any] = {}
        self.requests: List[str] = []

    def sequence(self, *values: Any) -> "_Sequence":
        return _Sequence(values)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        value = self.routes.get(path)
        if isinstance(value, _Sequence):
            value = value.next()
        if value is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json=value)

    def client(self) -> JenkinsClient:
        transport = httpx.MockTransport(self)
        return JenkinsClient(client=httpx.AsyncClient(transport=transport))


class _Sequence:
    def __init__(self, values) -> None:
        self._values = list(values)

    def next(self) -> Any:
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0]


def stage(href: str, name: str = "") -> Dict[str, Any]:
    return {"name": name, "_links": {"self": {"href": href}}}


def execution(name: str, start: int, log: str = "", nodes=None) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"name": name, "startTimeMillis": start, "_links": {}}
    if log:
        doc["_links"]["log"] = {"href": log}
    if nodes is not None:
        doc["stageFlowNodes"] = nodes
    return doc


def flow_node(name: str, start: int, log: str = "") -> Dict[str, Any]:
    doc: Dict[str, Any] = {"name": name, "startTimeMillis": start, "_links": {}}
    if log:
        doc["_links"]["log"] = {"href": log}
    return doc


def node_log(text: str, status: str = "SUCCESS") -> Dict[str, Any]:
    return {"nodeStatus": status, "length": len(text), "hasMore": False, "text": text}


@pytest.fixture
def fake_jenkins() -> FakeJenkins:
    return FakeJenkins()
