from datetime import datetime, timedelta, timezone

import pytest

from temporalkit.history import HistoryError, WorkflowExecutionStatus
from temporalkit.listing import (
    CountGroup,
    ExecutionSummary,
    format_count,
    iter_execution_pages,
    run_duration,
)


def _fetcher(pages):
    """A page fetcher over ``pages``; records the tokens it was called with."""
    calls = []

    def fetch(token):
        calls.append(token)
        index = 0 if not token else int(token.decode())
        next_token = str(index + 1).encode() if index + 1 < len(pages) else b""
        return pages[index], next_token

    return fetch, calls


def test_all_pages_without_limit():
    fetch, calls = _fetcher([["a", "b"], ["c"], ["d", "e"]])
    pages = list(iter_execution_pages(fetch))
    assert pages == [["a", "b"], ["c"], ["d", "e"]]
    assert calls[0] == b""
    assert len(calls) == 3


def test_limit_stops_mid_page():
    fetch, calls = _fetcher([["a", "b"], ["c", "d"], ["e"]])
    pages = list(iter_execution_pages(fetch, limit=3))
    assert [item for page in pages for item in page] == ["a", "b", "c"]
    assert len(calls) == 2


def test_limit_reached_exactly_at_page_end_stops_fetching():
    fetch, calls = _fetcher([["a", "b"], ["c"]])
    pages = list(iter_execution_pages(fetch, limit=2))
    assert pages == [["a", "b"]]
    assert len(calls) == 1


def test_zero_limit_means_unlimited():
    fetch, _ = _fetcher([["a"], ["b"]])
    assert list(iter_execution_pages(fetch, limit=0)) == [["a"], ["b"]]


def test_empty_page_is_yielded():
    fetch, _ = _fetcher([[], ["x"]])
    assert list(iter_execution_pages(fetch)) == [[], ["x"]]


def test_fetch_failure_is_wrapped():
    def fetch(token):
        raise ConnectionError("boom")

    with pytest.raises(RuntimeError, match="failed listing workflows: boom"):
        list(iter_execution_pages(fetch))


def test_format_count_total_only():
    assert format_count(5) == "Total: 5\n"


def test_format_count_groups():
    text = format_count(
        3,
        [CountGroup(2, ["Running"]), CountGroup(1, ["Completed", True, None])],
    )
    lines = text.splitlines()
    assert lines[0] == "Total: 3"
    assert lines[1] == "Group total: 2, values: Running"
    assert lines[2] == "Group total: 1, values: Completed, true, <nil>"


def test_run_duration():
    start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    close = start + timedelta(seconds=90)
    assert run_duration(start, close) == timedelta(seconds=90)
    assert run_duration(None, close) == timedelta(0)
    assert run_duration(start, None) == timedelta(0)


def test_summary_from_json():
    summary = ExecutionSummary.from_json(
        {
            "execution": {"workflowId": "wf-1", "runId": "run-1"},
            "type": {"name": "DevWorkflow"},
            "startTime": "2024-01-01T12:00:00.123456789Z",
            "status": "WORKFLOW_EXECUTION_STATUS_RUNNING",
        }
    )
    assert summary.workflow_id == "wf-1"
    assert summary.run_id == "run-1"
    assert summary.type == "DevWorkflow"
    assert summary.status is WorkflowExecutionStatus.RUNNING
    assert summary.start_time == datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def test_summary_row_has_table_columns():
    summary = ExecutionSummary(WorkflowExecutionStatus.COMPLETED, "wf", "T")
    row = summary.as_row()
    assert tuple(row) == ExecutionSummary.FIELDS
    assert row["Status"] is WorkflowExecutionStatus.COMPLETED
    assert row["WorkflowId"] == "wf"


def test_summary_unknown_status():
    with pytest.raises(HistoryError):
        ExecutionSummary.from_json({"status": "WORKFLOW_EXECUTION_STATUS_BOGUS"})