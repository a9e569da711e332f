from __future__ import annotations

from collections import Counter
from typing import AbstractSet, Iterable, Mapping, Optional, Sequence

from release_depgraph.core.extract.extract_deps import extract_dependencies
from release_depgraph.core.model import (
    CompletedIssue,
    DependencyGraph,
    GraphEdge,
    GraphNode,
    IssueRecord,
    LiveWork,
)
from release_depgraph.core.status.resolve_status import completed_numbers, resolve_status


def build_graph(
    issues: Sequence[IssueRecord],
    scope_ids: AbstractSet[int],
    live_work: Mapping[str, LiveWork],
    recently_completed: Iterable[CompletedIssue | int],
    keywords: Optional[Sequence[str]] = None,
) -> DependencyGraph:
    """Build the release-local dependency graph.

    One node per issue, in input order. For every dependency extracted from an
    issue body an edge `dep -> issue` is emitted. This is the only place edges
    are created; a changed input means a new graph.
    """
    if not issues:
        return DependencyGraph(nodes=(), edges=())

    completed = completed_numbers(recently_completed)

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    for issue in issues:
        nodes.append(
            GraphNode(
                id=issue.number,
                title=issue.title,
                status=resolve_status(issue, live_work, completed),
            )
        )
        for dep in extract_dependencies(issue.body, scope_ids, keywords):
            edges.append(GraphEdge(source=dep, target=issue.number))

    return DependencyGraph(nodes=tuple(nodes), edges=tuple(edges))


def summarize_graph(graph: DependencyGraph) -> str:
    counts = Counter([n.status for n in graph.nodes])
    ordered: list[str] = ["open", "pending", "executing", "completed", "failed", "closed"]
    parts = [f"{s}={counts.get(s, 0)}" for s in ordered]
    return f"{len(graph.nodes)} issues (" + ", ".join(parts) + f"), {len(graph.edges)} dependencies"
