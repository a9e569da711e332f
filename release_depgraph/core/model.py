from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional


Status = Literal["open", "closed", "pending", "executing", "completed", "failed"]
ReleaseStatus = Literal["active", "completed", "shipped", "not_planned"]

IssueRef = int
EdgeKey = tuple[int, int]  # (from, to)


@dataclass(frozen=True)
class IssueRecord:
    number: int
    title: str
    body: Optional[str]
    state: str  # remote raw flag, OPEN/CLOSED


@dataclass(frozen=True)
class ReleaseIssue:
    number: int
    title: str


@dataclass(frozen=True)
class Release:
    version: str
    status: str
    issues: tuple[ReleaseIssue, ...]

    name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def issue_numbers(self) -> frozenset[int]:
        return frozenset(i.number for i in self.issues)


@dataclass(frozen=True)
class LiveWork:
    status: str
    type: str = "issue"
    issue_number: Optional[int] = None


@dataclass(frozen=True)
class CompletedIssue:
    number: int
    completed_at: str
    title: Optional[str] = None


@dataclass(frozen=True)
class GraphNode:
    id: IssueRef
    title: str
    status: Status


@dataclass(frozen=True)
class GraphEdge:
    source: IssueRef
    target: IssueRef  # target depends on source

    @property
    def key(self) -> EdgeKey:
        return (self.source, self.target)


@dataclass(frozen=True)
class DependencyGraph:
    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]

    @property
    def has_edges(self) -> bool:
        return len(self.edges) > 0

    @property
    def node_ids(self) -> list[IssueRef]:
        return [n.id for n in self.nodes]


@dataclass(frozen=True)
class CriticalPath:
    node_ids: frozenset[IssueRef]
    edge_ids: frozenset[EdgeKey]

    @classmethod
    def empty(cls) -> "CriticalPath":
        return cls(node_ids=frozenset(), edge_ids=frozenset())

    @property
    def length(self) -> int:
        return len(self.edge_ids)


@dataclass(frozen=True)
class CycleDetected:
    """Returned by the sorter instead of a partial order."""

    order: tuple[IssueRef, ...]
    remaining: tuple[IssueRef, ...]
