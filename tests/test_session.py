import asyncio
import threading
from typing import Optional

from release_depgraph.core.analyze.session import DependencyGraphSession, fetch_release_issues
from release_depgraph.core.errors import IssueFetchError, ReleaseSelectionError
from release_depgraph.core.io.load_state import TrackerState
from release_depgraph.core.model import IssueRecord, LiveWork, Release, ReleaseIssue


def _release(version: str, numbers: list[int]) -> Release:
    return Release(
        version=version,
        status="active",
        issues=tuple(ReleaseIssue(number=n, title=f"Issue {n}") for n in numbers),
    )


class DictSource:
    def __init__(self, bodies: dict[int, Optional[str]], failing: set[int] | None = None):
        self.bodies = bodies
        self.failing = failing or set()
        self.calls: list[tuple[int, Optional[str]]] = []

    def fetch(self, number: int, workspace: Optional[str] = None) -> IssueRecord:
        self.calls.append((number, workspace))
        if number in self.failing:
            raise IssueFetchError(code="E_GH_FAILED", message="boom", path=f"#{number}")
        return IssueRecord(
            number=number, title=f"Fetched {number}", body=self.bodies.get(number), state="OPEN"
        )


class GatedSource(DictSource):
    """Blocks fetches of `gated` numbers until `gate` is set."""

    def __init__(self, bodies, gated: set[int]):
        super().__init__(bodies)
        self.gate = threading.Event()
        self.gated = gated

    def fetch(self, number, workspace=None):
        if number in self.gated:
            self.gate.wait(timeout=5)
        return super().fetch(number, workspace)


def test_fetch_release_issues_substitutes_placeholder_on_failure():
    source = DictSource({1: None, 2: "depends on #1"}, failing={1})
    release = _release("v1", [1, 2])
    issues = asyncio.run(fetch_release_issues(source, release, workspace="/w", workers=2))
    assert [i.number for i in issues] == [1, 2]
    assert issues[0].title == "Issue 1"
    assert issues[0].body is None
    assert issues[0].state == "OPEN"
    assert issues[1].title == "Fetched 2"
    assert sorted(source.calls) == [(1, "/w"), (2, "/w")]


def test_session_select_builds_analysis():
    source = DictSource({1: None, 2: "depends on #1", 3: "after #2"})
    state = TrackerState(active_work={"issue:3": LiveWork(status="executing")})
    session = DependencyGraphSession(source, state, [_release("v1", [1, 2, 3])])
    analysis = asyncio.run(session.select("v1"))
    assert analysis is not None
    assert [e.key for e in analysis.graph.edges] == [(1, 2), (2, 3)]
    assert [n.status for n in analysis.graph.nodes] == ["open", "open", "executing"]
    assert analysis.critical_path is not None
    assert analysis.critical_path.node_ids == {1, 2, 3}


def test_session_failed_fetch_does_not_block_other_issues():
    source = DictSource({2: "depends on #1", 3: "depends on #2"}, failing={2})
    session = DependencyGraphSession(source, TrackerState(), [_release("v1", [1, 2, 3])])
    analysis = asyncio.run(session.select("v1"))
    assert analysis is not None
    assert len(analysis.graph.nodes) == 3
    assert [e.key for e in analysis.graph.edges] == [(2, 3)]


def test_session_unknown_release():
    session = DependencyGraphSession(DictSource({}), TrackerState(), [_release("v1", [1])])
    try:
        asyncio.run(session.select("v9"))
        assert False, "expected ReleaseSelectionError"
    except ReleaseSelectionError as e:
        assert e.code == "E_UNKNOWN_RELEASE"


def test_session_reselect_discards_previous_selection():
    source = GatedSource({1: None, 2: "depends on #1", 10: None, 11: "depends on #10"}, gated={1, 2})
    releases = [_release("v1", [1, 2]), _release("v2", [10, 11])]
    session = DependencyGraphSession(source, TrackerState(), releases)

    async def scenario():
        first = asyncio.ensure_future(session.select("v1"))
        await asyncio.sleep(0.05)
        second = await session.select("v2")
        source.gate.set()
        return await first, second

    first, second = asyncio.run(scenario())
    assert first is None
    assert second is not None
    assert second.version == "v2"
    assert session.analysis is second
    assert session.selected is not None and session.selected.version == "v2"
    assert [n.id for n in session.analysis.graph.nodes] == [10, 11]


def test_session_toggle_recomputes_from_scratch():
    source = DictSource({1: "depends on #2", 2: "depends on #1"})
    session = DependencyGraphSession(
        source, TrackerState(), [_release("v1", [1, 2])], show_critical_path=False
    )
    assert session.set_show_critical_path(True) is None

    session.show_critical_path = False
    off = asyncio.run(session.select("v1"))
    assert off is not None and not off.has_cycle

    on = session.set_show_critical_path(True)
    assert on is not None
    assert on is not off
    assert on.has_cycle
    assert on.critical_path is None
