# Core exports
from .exceptions import (
    JenkinsDecodeError,
    JenkinsError,
    JenkinsHTTPStatusError,
    JenkinsTransportError,
)
from .jenkins import JenkinsClient, describe_url, resolve_link
from .models import (
    IN_PROGRESS_STATUSES,
    BuildDescription,
    BuildSnapshot,
    DirectLog,
    ErrorPolicy,
    ExecutionDescription,
    FetchError,
    FetchErrorKind,
    FetchResult,
    FlowNodeRef,
    LogRecord,
    LogSource,
    NodeList,
    StageLog,
    StageRef,
)

__all__ = [
    # Enums
    "ErrorPolicy",
    "FetchErrorKind",
    # wfapi documents
    "BuildDescription",
    "StageRef",
    "ExecutionDescription",
    "FlowNodeRef",
    "LogRecord",
    # Log source variant
    "LogSource",
    "DirectLog",
    "NodeList",
    # Results
    "FetchError",
    "FetchResult",
    "StageLog",
    "BuildSnapshot",
    "IN_PROGRESS_STATUSES",
    # Client
    "JenkinsClient",
    "describe_url",
    "resolve_link",
    # Exceptions
    "JenkinsError",
    "JenkinsTransportError",
    "JenkinsHTTPStatusError",
    "JenkinsDecodeError",
]
