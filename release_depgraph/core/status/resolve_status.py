"""Canonical status resolution.

Three sources can describe the same issue: the live work tracker, the
completion history, and the remote tracker. They are consulted in that order
(most current first) by an explicit chain of resolvers; the first one that
returns a status wins. The last resolver always answers, so resolution is total.
"""
from __future__ import annotations

from typing import Callable, Iterable, Mapping, Optional

from release_depgraph.core.model import CompletedIssue, IssueRecord, LiveWork, Status


EXECUTING_STATES: set[str] = {"executing", "running", "in_progress", "in-progress"}
FAILED_STATES: set[str] = {"failed"}
COMPLETED_STATES: set[str] = {"completed"}

StatusResolver = Callable[
    [IssueRecord, Mapping[str, LiveWork], frozenset[int]], Optional[Status]
]


def work_key(number: int) -> str:
    return f"issue:{number}"


def live_status(state: str) -> Status:
    """Map a live tracker lifecycle state onto a canonical status."""
    s = (state or "").strip().lower()
    if s in EXECUTING_STATES:
        return "executing"
    if s in FAILED_STATES:
        return "failed"
    if s in COMPLETED_STATES:
        return "completed"
    # pending, reviewing, planning, paused, shipping, anything unknown
    return "pending"


def _from_live_work(
    issue: IssueRecord, live_work: Mapping[str, LiveWork], completed: frozenset[int]
) -> Optional[Status]:
    work = live_work.get(work_key(issue.number))
    if work is None:
        # Records stored under some other key still name their issue.
        work = next(
            (
                w
                for w in live_work.values()
                if w.type == "issue" and w.issue_number == issue.number
            ),
            None,
        )
    if work is None or work.type != "issue":
        return None
    return live_status(work.status)


def _from_history(
    issue: IssueRecord, live_work: Mapping[str, LiveWork], completed: frozenset[int]
) -> Optional[Status]:
    return "completed" if issue.number in completed else None


def _from_remote(
    issue: IssueRecord, live_work: Mapping[str, LiveWork], completed: frozenset[int]
) -> Optional[Status]:
    return "closed" if (issue.state or "").strip().lower() == "closed" else "open"


STATUS_RESOLVERS: list[StatusResolver] = [_from_live_work, _from_history, _from_remote]


def completed_numbers(recently_completed: Iterable[CompletedIssue | int]) -> frozenset[int]:
    return frozenset(c if isinstance(c, int) else c.number for c in recently_completed)


def resolve_status(
    issue: IssueRecord,
    live_work: Mapping[str, LiveWork],
    recently_completed: Iterable[CompletedIssue | int],
) -> Status:
    completed = completed_numbers(recently_completed)

    for resolver in STATUS_RESOLVERS:
        status = resolver(issue, live_work, completed)
        if status is not None:
            return status
    return "open"  # unreachable: _from_remote always answers
