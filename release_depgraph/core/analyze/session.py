from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from release_depgraph.core.analyze.analyze_release import (
    ReleaseAnalysis,
    analyze_release,
    find_release,
)
from release_depgraph.core.errors import ReleaseSelectionError
from release_depgraph.core.io.issue_source import IssueSource
from release_depgraph.core.io.load_state import TrackerState
from release_depgraph.core.model import IssueRecord, Release, ReleaseIssue

logger = logging.getLogger(__name__)


def placeholder_issue(issue: ReleaseIssue) -> IssueRecord:
    """Best-effort record for an issue whose fetch failed: no body, so no dependencies."""
    return IssueRecord(number=issue.number, title=issue.title, body=None, state="OPEN")


async def fetch_release_issues(
    source: IssueSource,
    release: Release,
    *,
    workspace: Optional[str] = None,
    workers: int = 4,
) -> list[IssueRecord]:
    """Fetch every issue of `release` concurrently, in release order.

    A failing fetch never fails the batch; it is replaced by a placeholder.
    """
    sem = asyncio.Semaphore(max(1, workers))

    async def fetch_one(issue: ReleaseIssue) -> IssueRecord:
        async with sem:
            try:
                return await asyncio.to_thread(source.fetch, issue.number, workspace)
            except Exception as e:
                logger.warning("fetch failed for #%d, using placeholder: %s", issue.number, e)
                return placeholder_issue(issue)

    return list(await asyncio.gather(*(fetch_one(i) for i in release.issues)))


class DependencyGraphSession:
    """Fetch-and-compute cycle for the currently selected release.

    Selecting a release cancels the fetch still running for the previous one,
    and results arriving for a superseded selection are discarded.
    """

    def __init__(
        self,
        source: IssueSource,
        state: TrackerState,
        releases: Sequence[Release],
        *,
        workspace: Optional[str] = None,
        workers: int = 4,
        keywords: Optional[Sequence[str]] = None,
        show_critical_path: bool = True,
    ) -> None:
        self.source = source
        self.state = state
        self.releases = list(releases)
        self.workspace = workspace
        self.workers = workers
        self.keywords = keywords
        self.show_critical_path = show_critical_path

        self.selected: Optional[Release] = None
        self.issues: list[IssueRecord] = []
        self.analysis: Optional[ReleaseAnalysis] = None

        self._generation = 0
        self._inflight: Optional[asyncio.Task[list[IssueRecord]]] = None

    async def select(self, version: str) -> Optional[ReleaseAnalysis]:
        """Select a release and compute its analysis.

        Returns None when this selection was superseded before it finished.
        """
        release = find_release(self.releases, version)
        if release is None:
            raise ReleaseSelectionError(
                code="E_UNKNOWN_RELEASE",
                message=f"unknown release: {version}",
                path="version",
            )

        self._generation += 1
        generation = self._generation
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        self.selected = release
        self.issues = []
        self.analysis = None

        task = asyncio.ensure_future(
            fetch_release_issues(
                self.source, release, workspace=self.workspace, workers=self.workers
            )
        )
        self._inflight = task
        try:
            issues = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug("selection %s superseded, fetch cancelled", version)
                return None
            raise

        if generation != self._generation:
            logger.debug("discarding stale results for %s", version)
            return None

        self.issues = issues
        self.analysis = self._compute()
        return self.analysis

    def set_show_critical_path(self, show: bool) -> Optional[ReleaseAnalysis]:
        self.show_critical_path = show
        if self.analysis is None:
            # Nothing loaded yet; the pending select() will pick up the flag.
            return None
        self.analysis = self._compute()
        return self.analysis

    def _compute(self) -> ReleaseAnalysis:
        assert self.selected is not None
        return analyze_release(
            self.selected,
            self.issues,
            self.state.active_work,
            self.state.recent_issues,
            show_critical_path=self.show_critical_path,
            keywords=self.keywords,
        )
