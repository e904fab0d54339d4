import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

# Build statuses reported by wfapi while a build is still running
IN_PROGRESS_STATUSES = frozenset({"", "IN_PROGRESS"})

# Re-validation rounds when dropping fields that failed to decode
MAX_SALVAGE_PASSES = 5


class ErrorPolicy(str, Enum):
    """How the extraction engine reports failed fetches."""

    DEGRADE = "degrade"  # log and carry on with zero values
    RECORD = "record"  # as DEGRADE, plus write the errors into the snapshot


class FetchErrorKind(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


class WfapiModel(BaseModel):
    """
    Base for payloads decoded from Jenkins' wfapi.

    Decoding is lenient: unknown keys are ignored and ``null`` or missing
    values fall back to the field default (empty string, 0, empty list).
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @classmethod
    def salvage(cls, payload: Any, error: ValidationError) -> "WfapiModel":
        """
        Decode what can be decoded from a payload that failed validation.

        Fields named in the validation errors are dropped and the rest is
        validated again, so one mistyped field falls back to its default
        instead of blanking the whole document.
        """
        for _ in range(MAX_SALVAGE_PASSES):
            locs = [tuple(err["loc"]) for err in error.errors()]
            if not isinstance(payload, dict) or not all(locs):
                break
            payload = _without(payload, locs)
            try:
                return cls.model_validate(payload)
            except ValidationError as e:
                error = e
        return cls()


def _loc_key(loc: tuple) -> tuple:
    return tuple((1, "", part) if isinstance(part, int) else (0, str(part), 0) for part in loc)


def _without(payload: dict, locs: List[tuple]) -> dict:
    """Copy of ``payload`` with the values at ``locs`` removed."""
    payload = copy.deepcopy(payload)
    # Highest list indices first so earlier deletions do not shift later ones
    for loc in sorted(locs, key=_loc_key, reverse=True):
        parent: Any = payload
        for part in loc[:-1]:
            try:
                parent = parent[part]
            except (KeyError, IndexError, TypeError):
                parent = None
                break
        last = loc[-1]
        if isinstance(parent, dict):
            parent.pop(last, None)
        elif isinstance(parent, list) and isinstance(last, int) and last < len(parent):
            del parent[last]
    return payload


class Link(WfapiModel):
    href: str = ""


class Links(WfapiModel):
    self_link: Link = Field(default_factory=Link, alias="self")
    log: Link = Field(default_factory=Link)


class StageRef(WfapiModel):
    """Pointer to a stage's own describe endpoint."""

    id: str = ""
    name: str = ""
    links: Links = Field(default_factory=Links, alias="_links")

    @property
    def self_href(self) -> str:
        return self.links.self_link.href


class BuildDescription(WfapiModel):
    """Top-level ``<build>/wfapi/describe`` response."""

    id: str = ""
    name: str = ""
    status: str = ""
    stages: List[StageRef] = Field(default_factory=list)


class FlowNodeRef(WfapiModel):
    """A sub-node of an execution that has no aggregated log."""

    id: str = ""
    name: str = ""
    status: str = ""
    start_time_millis: int = Field(0, alias="startTimeMillis")
    links: Links = Field(default_factory=Links, alias="_links")

    @property
    def log_href(self) -> str:
        return self.links.log.href


@dataclass(frozen=True)
class DirectLog:
    """The execution exposes one aggregated log."""

    href: str


@dataclass(frozen=True)
class NodeList:
    """The execution's log is split across its flow nodes."""

    nodes: List[FlowNodeRef]


LogSource = Union[DirectLog, NodeList]


class ExecutionDescription(WfapiModel):
    """A stage's execution detail."""

    id: str = ""
    name: str = ""
    status: str = ""
    start_time_millis: int = Field(0, alias="startTimeMillis")
    links: Links = Field(default_factory=Links, alias="_links")
    stage_flow_nodes: List[FlowNodeRef] = Field(
        default_factory=list, alias="stageFlowNodes"
    )

    @property
    def log_href(self) -> str:
        return self.links.log.href

    def log_source(self) -> LogSource:
        """A direct log link wins over the flow node breakdown."""
        if self.log_href:
            return DirectLog(self.log_href)
        return NodeList(list(self.stage_flow_nodes))


class LogRecord(WfapiModel):
    """Log content for one execution or flow node."""

    node_id: str = Field("", alias="nodeId")
    node_status: str = Field("", alias="nodeStatus")
    length: int = 0
    has_more: bool = Field(False, alias="hasMore")
    text: str = ""


class FetchError(BaseModel):
    """A failed request, as reported in snapshots under ErrorPolicy.RECORD."""

    kind: FetchErrorKind
    url: str
    message: str


T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    """Value of a fetch; on ``error``, ``value`` holds only the fields that decoded."""

    value: T
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StageLog(BaseModel):
    """One flattened, orderable unit of output."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = ""
    name: str = ""
    log_length: int = Field(0, alias="logLength")
    log_text: str = Field("", alias="logText")
    start_time: int = Field(0, alias="startTime")
    error: Optional[str] = None


class BuildSnapshot(BaseModel):
    """Sorted point-in-time view of a build, persisted after every poll."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = ""
    name: str = ""
    id: str = ""
    build_id: str = Field("", alias="buildID")
    stages: List[StageLog] = Field(default_factory=list)
    errors: Optional[List[FetchError]] = None

    @property
    def in_progress(self) -> bool:
        return self.status in IN_PROGRESS_STATUSES
