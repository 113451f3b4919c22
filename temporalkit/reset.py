"""Workflow reset: reapply settings, argument checks and reset-point lookup."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

from temporalkit.history import EventType, HistoryEvent

__all__ = [
    "ResetReapplyType",
    "ResetReapplyExcludeType",
    "ResetOptions",
    "ResetError",
    "reapply_and_exclude_types",
    "validate_workflow_reset",
    "validate_batch_reset",
    "batch_reset_options",
    "last_workflow_task_event_id",
    "first_workflow_task_event_id",
    "last_continued_as_new_event_id",
]

_BATCH_TARGETS = ("FirstWorkflowTask", "LastWorkflowTask", "BuildId")


class ResetError(ValueError):
    """Raised when a reset request is invalid or cannot be carried out."""


def _pascal(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class _WireEnum(enum.IntEnum):
    """An enum parsed from its full wire name or its PascalCase shorthand."""

    @classmethod
    def _prefix(cls) -> str:
        raise NotImplementedError

    @classmethod
    def parse(cls, text: str):
        full_prefix = cls._prefix()
        for member in cls:
            if text == full_prefix + member.name or text == _pascal(member.name):
                return member
        raise ResetError(f"{text} is not a valid {cls.__name__}")

    def __str__(self) -> str:
        return _pascal(self.name)


class ResetReapplyType(_WireEnum):
    """Which events are reapplied after the reset point."""

    UNSPECIFIED = 0
    SIGNAL = 1
    NONE = 2
    ALL_ELIGIBLE = 3

    @classmethod
    def _prefix(cls) -> str:
        return "RESET_REAPPLY_TYPE_"


class ResetReapplyExcludeType(_WireEnum):
    """Kinds of events that are not reapplied after the reset point."""

    UNSPECIFIED = 0
    SIGNAL = 1
    UPDATE = 2
    NEXUS = 3
    CANCEL_REQUEST = 4

    @classmethod
    def _prefix(cls) -> str:
        return "RESET_REAPPLY_EXCLUDE_TYPE_"


@dataclass(frozen=True)
class ResetOptions:
    """Options for a batch reset: where to reset to and what to reapply."""

    target: str
    reset_reapply_type: ResetReapplyType
    reset_reapply_exclude_types: list[ResetReapplyExcludeType] = field(default_factory=list)
    build_id: str = ""


def reapply_and_exclude_types(
    reapply_exclude: Iterable[str], reapply_type: str
) -> tuple[list[ResetReapplyExcludeType], ResetReapplyType]:
    """Resolve ``--reapply-exclude`` values and ``--reapply-type``.

    ``all`` (any case) excludes every kind of event. A reapply type other than
    ``All`` may not be combined with exclusions.
    """
    reapply_exclude = list(reapply_exclude)
    excludes: list[ResetReapplyExcludeType] = []
    for exclude in reapply_exclude:
        if exclude.lower() == "all":
            excludes.extend(
                member
                for member in ResetReapplyExcludeType
                if member is not ResetReapplyExcludeType.UNSPECIFIED
            )
            break
        excludes.append(ResetReapplyExcludeType.parse(exclude))

    if reapply_type == "All":
        return excludes, ResetReapplyType.ALL_ELIGIBLE
    if reapply_exclude:
        raise ResetError(
            "--reapply-type cannot be used with --reapply-exclude. Use --reapply-exclude"
        )
    return excludes, ResetReapplyType.parse(reapply_type)


def validate_workflow_reset(workflow_id: str, reset_type: str, event_id: int) -> None:
    """Check the arguments of a single-workflow reset."""
    if not reset_type and event_id <= 0:
        raise ResetError("must specify either valid event id or reset type")
    if not workflow_id:
        raise ResetError("must specify workflow id")


def validate_batch_reset(reset_type: str, run_id: str, event_id: int, build_id: str) -> None:
    """Check the arguments of a query-driven batch reset."""
    if not reset_type:
        raise ResetError("must specify reset type")
    if run_id:
        raise ResetError("must not specify run Id")
    if event_id != 0:
        raise ResetError("must not specify event Id")
    if reset_type == "BuildId" and not build_id:
        raise ResetError("must specify build Id for BuildId based batch reset")


def batch_reset_options(
    reset_type: str, build_id: str, reapply_exclude: Iterable[str], reapply_type: str
) -> ResetOptions:
    """Build the reset options sent with a batch reset."""
    excludes, reapply = reapply_and_exclude_types(reapply_exclude, reapply_type)
    if reset_type not in _BATCH_TARGETS:
        raise ResetError(f"unsupported batch reset type: {reset_type}")
    return ResetOptions(
        target=reset_type,
        reset_reapply_type=reapply,
        reset_reapply_exclude_types=excludes,
        build_id=build_id if reset_type == "BuildId" else "",
    )


def _pages(
    pages: Iterable[Iterable[HistoryEvent]], message: str
) -> Iterable[list[HistoryEvent]]:
    iterator = iter(pages)
    while True:
        try:
            page = next(iterator)
            events = list(page)
        except StopIteration:
            return
        except ResetError:
            raise
        except Exception as exc:
            raise ResetError(f"{message}: {exc}") from exc
        yield events


def last_workflow_task_event_id(pages: Iterable[Iterable[HistoryEvent]]) -> int:
    """Event ID to reset to for ``LastWorkflowTask``.

    ``pages`` holds the history newest first. Within a page the first
    completed workflow task wins; failing that, the event after the oldest
    scheduled one.
    """
    event_id = 0
    for events in _pages(pages, "failed to get workflow execution history"):
        for event in events:
            if event.event_type == EventType.WORKFLOW_TASK_COMPLETED:
                event_id = event.event_id
                break
            if event.event_type == EventType.WORKFLOW_TASK_SCHEDULED:
                event_id = event.event_id + 1
    if event_id == 0:
        raise ResetError("unable to find any scheduled or completed task")
    return event_id


def first_workflow_task_event_id(pages: Iterable[Iterable[HistoryEvent]]) -> int:
    """Event ID to reset to for ``FirstWorkflowTask``.

    ``pages`` holds the history oldest first. The first completed workflow
    task wins; failing that, the event after the first scheduled one.
    """
    event_id = 0
    for events in _pages(pages, "failed to get workflow execution history"):
        for event in events:
            if event.event_type == EventType.WORKFLOW_TASK_COMPLETED:
                return event.event_id
            if event.event_type == EventType.WORKFLOW_TASK_SCHEDULED and event_id == 0:
                event_id = event.event_id + 1
    if event_id == 0:
        raise ResetError("unable to find any scheduled or completed task")
    return event_id


def last_continued_as_new_event_id(
    continued_run_id: str, pages: Iterable[Iterable[HistoryEvent]]
) -> tuple[str, int]:
    """Run ID and event ID to reset to for ``LastContinuedAsNew``.

    ``continued_run_id`` is the run the current one continued from, and
    ``pages`` holds that run's history. The last completed workflow task wins.
    """
    if not continued_run_id:
        raise ResetError(
            "cannot use LastContinuedAsNew for workflow; workflow was not continued from another"
        )
    event_id = 0
    message = (
        "failed to get workflow execution history of previous execution "
        f"(run id {continued_run_id})"
    )
    for events in _pages(pages, message):
        for event in events:
            if event.event_type == EventType.WORKFLOW_TASK_COMPLETED:
                event_id = event.event_id
    if event_id == 0:
        raise ResetError("unable to find WorkflowTaskCompleted event for previous execution")
    return continued_run_id, event_id