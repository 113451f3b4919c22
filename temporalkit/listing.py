"""Workflow listing and counting: paging with a limit, summaries and totals."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from temporalkit.history import HistoryError, WorkflowExecutionStatus, _parse_timestamp

__all__ = [
    "ExecutionSummary",
    "CountGroup",
    "iter_execution_pages",
    "format_count",
    "run_duration",
]

_STATUS_PREFIX = "WORKFLOW_EXECUTION_STATUS_"

PageFetcher = Callable[[bytes], "tuple[Sequence[Any], bytes | None]"]


def _parse_status(raw: Any) -> WorkflowExecutionStatus:
    if raw is None:
        return WorkflowExecutionStatus.UNSPECIFIED
    if isinstance(raw, int) and not isinstance(raw, bool):
        return WorkflowExecutionStatus(raw)
    if isinstance(raw, str):
        try:
            return WorkflowExecutionStatus[raw.removeprefix(_STATUS_PREFIX)]
        except KeyError:
            pass
    raise HistoryError(f"unknown workflow execution status {raw!r}")


@dataclass(frozen=True)
class ExecutionSummary:
    """The columns shown for one workflow execution in a listing."""

    FIELDS = ("Status", "WorkflowId", "Type", "StartTime")

    status: WorkflowExecutionStatus
    workflow_id: str
    type: str
    start_time: datetime | None = None
    run_id: str = ""

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ExecutionSummary:
        """Build a summary from an execution's JSON form (the protobuf JSON mapping)."""
        if not isinstance(data, Mapping):
            raise HistoryError("execution JSON must be an object")
        execution = data.get("execution") or {}
        workflow_type = data.get("type") or {}
        raw_start = data.get("startTime")
        return cls(
            status=_parse_status(data.get("status")),
            workflow_id=execution.get("workflowId", ""),
            type=workflow_type.get("name", ""),
            start_time=_parse_timestamp(raw_start) if raw_start else None,
            run_id=execution.get("runId", ""),
        )

    def as_row(self) -> dict[str, Any]:
        """The table row for this execution, keyed by column name."""
        return {
            "Status": self.status,
            "WorkflowId": self.workflow_id,
            "Type": self.type,
            "StartTime": self.start_time,
        }


@dataclass(frozen=True)
class CountGroup:
    """One group of a workflow count: its size and the values grouped on."""

    count: int
    values: list[Any] = field(default_factory=list)


def iter_execution_pages(
    fetch_page: PageFetcher, limit: int = 0
) -> Iterator[list[Any]]:
    """Yield pages of executions until the pages run out or ``limit`` is reached.

    ``fetch_page`` is called with the next page token (empty for the first
    page) and returns the page's executions and the token of the page after
    it. A ``limit`` of zero or less means no limit. Every fetched page is
    yielded, trimmed to the limit, even when it ends up empty.
    """
    token = b""
    processed = 0
    while True:
        try:
            executions, token = fetch_page(token)
        except Exception as exc:
            raise RuntimeError(f"failed listing workflows: {exc}") from exc
        page = []
        for execution in executions:
            if limit > 0 and processed >= limit:
                break
            processed += 1
            page.append(execution)
        yield page
        if not token or (limit > 0 and processed >= limit):
            return


def _value_text(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_value_text(item) for item in value) + "]"
    return str(value)


def format_count(total: int, groups: Sequence[CountGroup] = ()) -> str:
    """Text report of a workflow count: the total, then one line per group."""
    lines = [f"Total: {total}"]
    for group in groups:
        values = ", ".join(_value_text(value) for value in group.values)
        lines.append(f"Group total: {group.count}, values: {values}")
    return "\n".join(lines) + "\n"


def run_duration(start_time: datetime | None, close_time: datetime | None) -> timedelta:
    """Time from start to close; zero when either is unknown."""
    if start_time is None or close_time is None:
        return timedelta(0)
    return close_time - start_time