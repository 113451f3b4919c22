"""Workflow history events: classification, colouring and field flattening."""

from __future__ import annotations

import enum
import json
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

__all__ = [
    "EventType",
    "WorkflowExecutionStatus",
    "HistoryEvent",
    "EventField",
    "HistoryError",
    "colored_event_type",
    "is_workflow_terminating_event",
    "close_event_status",
    "flatten_json_value",
    "flatten_event_fields",
    "find_close_event",
    "parse_input_metadata",
    "get_fold_statuses",
]


class HistoryError(ValueError):
    """Raised when history data is missing, malformed or cannot be handled."""


def _pascal(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class EventType(enum.IntEnum):
    """Type of a workflow history event, numbered as on the wire."""

    UNSPECIFIED = 0
    WORKFLOW_EXECUTION_STARTED = 1
    WORKFLOW_EXECUTION_COMPLETED = 2
    WORKFLOW_EXECUTION_FAILED = 3
    WORKFLOW_EXECUTION_TIMED_OUT = 4
    WORKFLOW_TASK_SCHEDULED = 5
    WORKFLOW_TASK_STARTED = 6
    WORKFLOW_TASK_COMPLETED = 7
    WORKFLOW_TASK_TIMED_OUT = 8
    WORKFLOW_TASK_FAILED = 9
    ACTIVITY_TASK_SCHEDULED = 10
    ACTIVITY_TASK_STARTED = 11
    ACTIVITY_TASK_COMPLETED = 12
    ACTIVITY_TASK_FAILED = 13
    ACTIVITY_TASK_TIMED_OUT = 14
    ACTIVITY_TASK_CANCEL_REQUESTED = 15
    ACTIVITY_TASK_CANCELED = 16
    TIMER_STARTED = 17
    TIMER_FIRED = 18
    TIMER_CANCELED = 19
    WORKFLOW_EXECUTION_CANCEL_REQUESTED = 20
    WORKFLOW_EXECUTION_CANCELED = 21
    REQUEST_CANCEL_EXTERNAL_WORKFLOW_EXECUTION_INITIATED = 22
    REQUEST_CANCEL_EXTERNAL_WORKFLOW_EXECUTION_FAILED = 23
    EXTERNAL_WORKFLOW_EXECUTION_CANCEL_REQUESTED = 24
    MARKER_RECORDED = 25
    WORKFLOW_EXECUTION_SIGNALED = 26
    WORKFLOW_EXECUTION_TERMINATED = 27
    WORKFLOW_EXECUTION_CONTINUED_AS_NEW = 28
    START_CHILD_WORKFLOW_EXECUTION_INITIATED = 29
    START_CHILD_WORKFLOW_EXECUTION_FAILED = 30
    CHILD_WORKFLOW_EXECUTION_STARTED = 31
    CHILD_WORKFLOW_EXECUTION_COMPLETED = 32
    CHILD_WORKFLOW_EXECUTION_FAILED = 33
    CHILD_WORKFLOW_EXECUTION_CANCELED = 34
    CHILD_WORKFLOW_EXECUTION_TIMED_OUT = 35
    CHILD_WORKFLOW_EXECUTION_TERMINATED = 36
    SIGNAL_EXTERNAL_WORKFLOW_EXECUTION_INITIATED = 37
    SIGNAL_EXTERNAL_WORKFLOW_EXECUTION_FAILED = 38
    EXTERNAL_WORKFLOW_EXECUTION_SIGNALED = 39
    UPSERT_WORKFLOW_SEARCH_ATTRIBUTES = 40
    WORKFLOW_EXECUTION_UPDATE_ACCEPTED = 41
    WORKFLOW_EXECUTION_UPDATE_REJECTED = 42
    WORKFLOW_EXECUTION_UPDATE_COMPLETED = 43
    WORKFLOW_PROPERTIES_MODIFIED_EXTERNALLY = 44
    ACTIVITY_PROPERTIES_MODIFIED_EXTERNALLY = 45
    WORKFLOW_PROPERTIES_MODIFIED = 46
    WORKFLOW_EXECUTION_UPDATE_ADMITTED = 47
    NEXUS_OPERATION_SCHEDULED = 48
    NEXUS_OPERATION_STARTED = 49
    NEXUS_OPERATION_COMPLETED = 50
    NEXUS_OPERATION_FAILED = 51
    NEXUS_OPERATION_CANCELED = 52
    NEXUS_OPERATION_TIMED_OUT = 53
    NEXUS_OPERATION_CANCEL_REQUESTED = 54

    def __str__(self) -> str:
        return _pascal(self.name)

    @classmethod
    def parse(cls, text: str) -> EventType:
        """Parse ``EVENT_TYPE_X``, ``X`` or the PascalCase shorthand."""
        name = text.removeprefix("EVENT_TYPE_")
        if not name.isupper():
            name = re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()
        try:
            return cls[name]
        except KeyError:
            raise HistoryError(f"unknown event type {text!r}") from None


class WorkflowExecutionStatus(enum.IntEnum):
    """Status of a workflow execution, numbered as on the wire."""

    UNSPECIFIED = 0
    RUNNING = 1
    COMPLETED = 2
    FAILED = 3
    CANCELED = 4
    TERMINATED = 5
    CONTINUED_AS_NEW = 6
    TIMED_OUT = 7

    def __str__(self) -> str:
        return _pascal(self.name)


_RED, _GREEN, _YELLOW, _BLUE, _MAGENTA = 31, 32, 33, 34, 35

_EVENT_COLORS: dict[EventType, int] = {
    **dict.fromkeys(
        (
            EventType.WORKFLOW_EXECUTION_FAILED,
            EventType.WORKFLOW_TASK_FAILED,
            EventType.ACTIVITY_TASK_FAILED,
            EventType.REQUEST_CANCEL_EXTERNAL_WORKFLOW_EXECUTION_FAILED,
            EventType.START_CHILD_WORKFLOW_EXECUTION_FAILED,
            EventType.CHILD_WORKFLOW_EXECUTION_FAILED,
            EventType.SIGNAL_EXTERNAL_WORKFLOW_EXECUTION_FAILED,
        ),
        _RED,
    ),
    **dict.fromkeys(
        (
            EventType.WORKFLOW_EXECUTION_TIMED_OUT,
            EventType.WORKFLOW_TASK_TIMED_OUT,
            EventType.ACTIVITY_TASK_TIMED_OUT,
            EventType.CHILD_WORKFLOW_EXECUTION_TIMED_OUT,
        ),
        _YELLOW,
    ),
    **dict.fromkeys(
        (
            EventType.TIMER_CANCELED,
            EventType.WORKFLOW_EXECUTION_CANCELED,
            EventType.CHILD_WORKFLOW_EXECUTION_CANCELED,
        ),
        _MAGENTA,
    ),
    **dict.fromkeys(
        (
            EventType.WORKFLOW_EXECUTION_COMPLETED,
            EventType.CHILD_WORKFLOW_EXECUTION_COMPLETED,
        ),
        _GREEN,
    ),
    **dict.fromkeys(
        (
            EventType.WORKFLOW_EXECUTION_STARTED,
            EventType.CHILD_WORKFLOW_EXECUTION_STARTED,
        ),
        _BLUE,
    ),
}

_TERMINATING = frozenset(
    {
        EventType.WORKFLOW_EXECUTION_COMPLETED,
        EventType.WORKFLOW_EXECUTION_FAILED,
        EventType.WORKFLOW_EXECUTION_TIMED_OUT,
        EventType.WORKFLOW_EXECUTION_CANCELED,
    }
)

_CLOSE_STATUS = {
    EventType.WORKFLOW_EXECUTION_COMPLETED: "COMPLETED",
    EventType.WORKFLOW_EXECUTION_FAILED: "FAILED",
    EventType.WORKFLOW_EXECUTION_TIMED_OUT: "TIMEOUT",
    EventType.WORKFLOW_EXECUTION_CANCELED: "CANCELED",
}

_FOLD_FLAGS = {
    "running": WorkflowExecutionStatus.RUNNING,
    "completed": WorkflowExecutionStatus.COMPLETED,
    "failed": WorkflowExecutionStatus.FAILED,
    "canceled": WorkflowExecutionStatus.CANCELED,
    "terminated": WorkflowExecutionStatus.TERMINATED,
    "timedout": WorkflowExecutionStatus.TIMED_OUT,
    "continueasnew": WorkflowExecutionStatus.CONTINUED_AS_NEW,
}

_DEFAULT_FOLD = (
    WorkflowExecutionStatus.COMPLETED,
    WorkflowExecutionStatus.CANCELED,
    WorkflowExecutionStatus.TERMINATED,
)


def colored_event_type(event_type: EventType) -> str:
    """Name of ``event_type`` in its terminal colour.

    Failed events are red, timeouts yellow, cancellations magenta, completions
    green, starts blue, and everything else is left uncoloured.
    """
    text = str(EventType(event_type))
    code = _EVENT_COLORS.get(EventType(event_type))
    if code is None:
        return text
    return f"\x1b[{code}m{text}\x1b[0m"


def is_workflow_terminating_event(event_type: EventType) -> bool:
    """Whether the event closes a workflow with a result of its own."""
    return event_type in _TERMINATING


def close_event_status(event_type: EventType) -> str:
    """Status word reported for a close event; ``<unknown>`` for others."""
    return _CLOSE_STATUS.get(event_type, "<unknown>")


_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(Z|z|[+-]\d{2}:\d{2})$"
)


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP.match(text)
    if match is None:
        raise HistoryError(f"invalid timestamp {text!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6])))
    value = datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )
    return value.astimezone(timezone.utc)


@dataclass
class HistoryEvent:
    """A single history event with its type-specific attributes."""

    event_id: int
    event_type: EventType
    event_time: datetime | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any] | str | bytes) -> HistoryEvent:
        """Build an event from its JSON form (the protobuf JSON mapping)."""
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise HistoryError("event JSON must be an object")
        try:
            event_id = int(data.get("eventId", 0))
        except (TypeError, ValueError) as exc:
            raise HistoryError(f"invalid event ID: {exc}") from exc
        raw_type = data.get("eventType", "EVENT_TYPE_UNSPECIFIED")
        event_type = EventType(raw_type) if isinstance(raw_type, int) else EventType.parse(raw_type)
        raw_time = data.get("eventTime")
        event_time = _parse_timestamp(raw_time) if raw_time else None
        attributes: dict[str, Any] = {}
        for key, value in data.items():
            if key.endswith("Attributes") and isinstance(value, Mapping):
                attributes = dict(value)
                break
        return cls(event_id, event_type, event_time, attributes)

    @property
    def continued_run_id(self) -> str | None:
        """Run ID this event continues into, if it is a continue-as-new event."""
        if self.event_type is not EventType.WORKFLOW_EXECUTION_CONTINUED_AS_NEW:
            return None
        return self.attributes.get("newExecutionRunId", "")

    @property
    def time_text(self) -> str:
        """Event time in RFC 3339 form at second precision, in UTC."""
        if self.event_time is None:
            return ""
        return self.event_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True, order=True)
class EventField:
    """A dot-delimited field path of an event and its value as text."""

    field: str
    value: str


class _JSONNumber(str):
    """A JSON number kept in its original textual form."""


def _scalar_text(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_json_value(field: str, value: Any) -> list[EventField]:
    """Flatten a decoded JSON value into one field per leaf, in document order."""
    if value is None or isinstance(value, (bool, str, int, float)):
        return [EventField(field, _scalar_text(value))]
    if isinstance(value, list):
        return [
            leaf
            for index, item in enumerate(value)
            for leaf in flatten_json_value(f"{field}[{index}]", item)
        ]
    if isinstance(value, Mapping):
        prefix = field + "." if field else ""
        return [
            leaf
            for key, item in value.items()
            for leaf in flatten_json_value(prefix + str(key), item)
        ]
    raise HistoryError(f"failed converting field {field}, unknown type {type(value).__name__}")


def flatten_event_fields(event_json: Mapping[str, Any] | str | bytes) -> list[EventField]:
    """Flatten an event's JSON into sorted fields.

    The event ID and type are left out and the fields of any ``...Attributes``
    object are lifted to the top level.
    """
    if isinstance(event_json, (str, bytes)):
        try:
            fields = json.loads(
                event_json,
                parse_int=_JSONNumber,
                parse_float=_JSONNumber,
                parse_constant=_JSONNumber,
            )
        except json.JSONDecodeError as exc:
            raise HistoryError(f"failed unmarshaling event proto: {exc}") from exc
    else:
        fields = dict(event_json)
    if not isinstance(fields, dict):
        raise HistoryError("failed unmarshaling event proto: not an object")
    fields.pop("eventId", None)
    fields.pop("eventType", None)
    for key in [k for k in fields if k.endswith("Attributes")]:
        sub = fields.pop(key)
        if not isinstance(sub, Mapping):
            raise HistoryError("unexpectedly invalid attribute map")
        fields.update(sub)
    return sorted(flatten_json_value("", fields), key=lambda leaf: leaf.field)


def find_close_event(
    fetch_close_event: Callable[[str], HistoryEvent | None], run_id: str
) -> HistoryEvent:
    """Fetch the close event of a run, following continue-as-new to the last run.

    ``fetch_close_event`` is called with a run ID and returns that run's close
    event, or ``None`` if there is none.
    """
    while True:
        try:
            event = fetch_close_event(run_id)
        except HistoryError:
            raise
        except Exception as exc:
            raise HistoryError(f"failed getting close event: {exc}") from exc
        if event is None:
            raise HistoryError("missing close event")
        next_run = event.continued_run_id
        if next_run is None:
            return event
        run_id = next_run


def parse_input_metadata(entries: Iterable[str]) -> dict[str, bytes]:
    """Build payload metadata from ``key=value`` entries over a JSON default."""
    metadata = {"encoding": b"json/plain"}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep:
            raise HistoryError(f"metadata {entry} expected to have '='")
        metadata[key] = value.encode("utf-8")
    return metadata


def get_fold_statuses(flags: Iterable[str]) -> list[WorkflowExecutionStatus]:
    """Statuses whose child workflows are folded in a trace.

    With no flags the default is completed, canceled and terminated.
    """
    flags = list(flags)
    if not flags:
        return list(_DEFAULT_FOLD)
    statuses = []
    for flag in flags:
        status = _FOLD_FLAGS.get(flag)
        if status is None:
            raise HistoryError(f"fold status {json.dumps(flag)} not recognized")
        statuses.append(status)
    return statuses