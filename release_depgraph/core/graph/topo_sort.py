from __future__ import annotations

from collections import deque
from typing import Sequence, Union

from release_depgraph.core.model import CycleDetected, GraphEdge, GraphNode


def successors(
    nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]
) -> tuple[dict[int, list[int]], dict[int, int]]:
    """Adjacency (source -> targets, edge order) and in-degree per node.

    Edges whose endpoints are not nodes of the graph are ignored.
    """
    adj: dict[int, list[int]] = {n.id: [] for n in nodes}
    in_degree: dict[int, int] = {n.id: 0 for n in nodes}
    for e in edges:
        if e.source not in adj or e.target not in adj:
            continue
        adj[e.source].append(e.target)
        in_degree[e.target] += 1
    return adj, in_degree


def topo_sort(
    nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]
) -> Union[list[int], CycleDetected]:
    """Kahn's algorithm.

    Zero in-degree nodes are taken in node-list order (FIFO), successors in edge
    order, so the result is reproducible. Any cycle, self-loops included, leaves
    nodes unprocessed and yields CycleDetected instead of a partial order.
    """
    adj, in_degree = successors(nodes, edges)

    q: deque[int] = deque(n.id for n in nodes if in_degree[n.id] == 0)
    order: list[int] = []
    while q:
        cur = q.popleft()
        order.append(cur)
        for nxt in adj[cur]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                q.append(nxt)

    if len(order) < len(adj):
        done = set(order)
        remaining = tuple(n.id for n in nodes if n.id not in done)
        return CycleDetected(order=tuple(order), remaining=remaining)
    return order
