from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from release_depgraph.core.critical.critical_path import find_critical_path
from release_depgraph.core.graph.build_graph import build_graph
from release_depgraph.core.model import (
    CompletedIssue,
    CriticalPath,
    DependencyGraph,
    IssueRecord,
    LiveWork,
    Release,
)


@dataclass(frozen=True)
class ReleaseAnalysis:
    version: str
    graph: DependencyGraph
    critical_path: Optional[CriticalPath]
    show_critical_path: bool
    issue_count: int

    @property
    def has_edges(self) -> bool:
        return self.graph.has_edges

    @property
    def has_cycle(self) -> bool:
        # Only meaningful when the critical path was asked for.
        return self.show_critical_path and self.has_edges and self.critical_path is None

    def to_dict(self) -> dict[str, Any]:
        cp: Optional[dict[str, Any]] = None
        if self.critical_path is not None:
            cp = {
                "node_ids": sorted(self.critical_path.node_ids),
                "edge_ids": [list(k) for k in sorted(self.critical_path.edge_ids)],
                "length": self.critical_path.length,
            }
        return {
            "version": self.version,
            "summary": {
                "issue_count": self.issue_count,
                "node_count": len(self.graph.nodes),
                "edge_count": len(self.graph.edges),
                "has_edges": self.has_edges,
                "has_cycle": self.has_cycle,
            },
            "nodes": [{"id": n.id, "title": n.title, "status": n.status} for n in self.graph.nodes],
            "edges": [{"from": e.source, "to": e.target} for e in self.graph.edges],
            "critical_path": cp,
        }


def analyze_release(
    release: Release,
    issues: Sequence[IssueRecord],
    live_work: Mapping[str, LiveWork],
    recently_completed: Iterable[CompletedIssue | int],
    *,
    show_critical_path: bool = True,
    keywords: Optional[Sequence[str]] = None,
) -> ReleaseAnalysis:
    """Run the full pipeline for one release selection.

    Always computed from scratch. The critical path is only computed when it is
    asked for and there is at least one edge.
    """
    graph = build_graph(
        issues,
        release.issue_numbers,
        live_work,
        recently_completed,
        keywords=keywords,
    )

    critical: Optional[CriticalPath] = None
    if show_critical_path and graph.has_edges:
        critical = find_critical_path(graph.nodes, graph.edges)

    return ReleaseAnalysis(
        version=release.version,
        graph=graph,
        critical_path=critical,
        show_critical_path=show_critical_path,
        issue_count=len(release.issues),
    )


def sort_releases(releases: Iterable[Release]) -> list[Release]:
    """Active releases first, then by version descending."""
    by_version = sorted(releases, key=lambda r: r.version.casefold(), reverse=True)
    return sorted(by_version, key=lambda r: 0 if r.status == "active" else 1)


def default_release(releases: Iterable[Release]) -> Optional[Release]:
    ordered = sort_releases(releases)
    for r in ordered:
        if r.status == "active":
            return r
    return ordered[0] if ordered else None


def find_release(releases: Iterable[Release], version: str) -> Optional[Release]:
    for r in releases:
        if r.version == version:
            return r
    return None
