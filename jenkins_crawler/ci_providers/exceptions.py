"""Custom exceptions for talking to the Jenkins Pipeline API."""

from __future__ import annotations

from .models import FetchErrorKind


class JenkinsError(Exception):
    """Base exception for Jenkins API failures."""

    kind: FetchErrorKind = FetchErrorKind.TRANSPORT

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class JenkinsTransportError(JenkinsError):
    """Raised when the request could not be completed (connection, timeout)."""

    kind = FetchErrorKind.TRANSPORT


class JenkinsHTTPStatusError(JenkinsError):
    """Raised when Jenkins answers with a non-2xx status."""

    kind = FetchErrorKind.HTTP_STATUS

    def __init__(self, message: str, url: str | None = None, status_code: int = 0):
        super().__init__(message, url)
        self.status_code = status_code


class JenkinsDecodeError(JenkinsError):
    """Raised when a response body is not the JSON shape we expect."""

    kind = FetchErrorKind.DECODE
