"""
Jenkins Pipeline (wfapi) client.

Fetches the three documents the crawler walks:
- the build description (``<build>/wfapi/describe``)
- a stage's execution description (the stage's self link)
- a node log (an execution's or flow node's log link)

Fetch methods never raise for transport, HTTP status or decode failures;
they return a FetchResult carrying the error and whatever part of the
document could be decoded (zero values otherwise).
"""

import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import ValidationError

from jenkins_crawler.config import settings

from .exceptions import (
    JenkinsDecodeError,
    JenkinsError,
    JenkinsHTTPStatusError,
    JenkinsTransportError,
)
from .models import (
    BuildDescription,
    ExecutionDescription,
    FetchError,
    FetchResult,
    LogRecord,
    WfapiModel,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=WfapiModel)


def describe_url(build_url: str, suffix: Optional[str] = None) -> str:
    """``https://ci/job/x/12/`` -> ``https://ci/job/x/12/wfapi/describe``."""
    suffix = (suffix or settings.JENKINS_DESCRIBE_SUFFIX).strip("/")
    return f"{build_url.rstrip('/')}/{suffix}"


def resolve_link(build_url: str, href: str) -> str:
    """Resolve a wfapi ``_links`` href against the build's scheme and host."""
    return str(httpx.URL(build_url).join(href))


class JenkinsClient:
    """Async client for the wfapi endpoints of one Jenkins server."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else settings.JENKINS_HTTP_TIMEOUT
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=self._get_headers(),
            timeout=self._timeout,
            follow_redirects=True,
        )

    def _get_headers(self) -> dict:
        return {
            "Accept": "application/json",
            "User-Agent": f"{settings.APP_NAME}/{settings.APP_VERSION}",
        }

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JenkinsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _get_json(self, url: str) -> Any:
        logger.info(f"crawling jenkins API: {url}", extra={"url": url})
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise JenkinsTransportError(f"GET {url} failed: {e!r}", url) from e

        if response.is_error:
            raise JenkinsHTTPStatusError(
                f"GET {url} returned HTTP {response.status_code}",
                url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise JenkinsDecodeError(f"GET {url} returned invalid JSON: {e}", url) from e

    async def _fetch(self, url: str, model: Type[M]) -> FetchResult[M]:
        document = None
        try:
            payload = await self._get_json(url)
            try:
                document = model.model_validate(payload)
            except ValidationError as e:
                # Keep whatever decoded; the mistyped fields fall back to defaults
                document = model.salvage(payload, e)
                raise JenkinsDecodeError(
                    f"unexpected {model.__name__} payload from {url}: "
                    f"{e.error_count()} validation error(s)",
                    url,
                ) from e
        except JenkinsError as e:
            logger.error(str(e), extra={"url": url})
            return FetchResult(
                value=document if document is not None else model(),
                error=FetchError(kind=e.kind, url=url, message=str(e)),
            )
        return FetchResult(value=document)

    async def fetch_build_description(self, url: str) -> FetchResult[BuildDescription]:
        return await self._fetch(url, BuildDescription)

    async def fetch_execution(self, url: str) -> FetchResult[ExecutionDescription]:
        return await self._fetch(url, ExecutionDescription)

    async def fetch_log(self, url: str) -> FetchResult[LogRecord]:
        return await self._fetch(url, LogRecord)
