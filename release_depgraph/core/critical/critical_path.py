from __future__ import annotations

from typing import Optional, Sequence

from release_depgraph.core.graph.topo_sort import successors, topo_sort
from release_depgraph.core.model import CriticalPath, CycleDetected, EdgeKey, GraphEdge, GraphNode


def find_critical_path(
    nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]
) -> Optional[CriticalPath]:
    """Longest dependency chain through the graph, counted in hops.

    Returns:
      - empty CriticalPath when there are no nodes, no edges, or no chain at all
      - None when the graph has a cycle (the caller shows a warning instead)
    """
    if not nodes or not edges:
        return CriticalPath.empty()

    order = topo_sort(nodes, edges)
    if isinstance(order, CycleDetected):
        return None

    adj, _ = successors(nodes, edges)

    length: dict[int, int] = {nid: 0 for nid in order}
    prev: dict[int, int] = {}
    for u in order:
        for v in adj[u]:
            if length[u] + 1 > length[v]:
                length[v] = length[u] + 1
                prev[v] = u

    # First node in topological order to reach the maximum keeps it.
    end: Optional[int] = None
    best = -1
    for nid in order:
        if length[nid] > best:
            best = length[nid]
            end = nid

    if end is None or best <= 0:
        return CriticalPath.empty()

    node_ids: set[int] = set()
    edge_ids: set[EdgeKey] = set()
    cur = end
    while True:
        node_ids.add(cur)
        p = prev.get(cur)
        if p is None:
            break
        edge_ids.add((p, cur))
        cur = p

    return CriticalPath(node_ids=frozenset(node_ids), edge_ids=frozenset(edge_ids))


def ordered_path(path: CriticalPath) -> list[int]:
    """Nodes of a critical path from its first dependency to its terminal node."""
    if not path.edge_ids:
        return sorted(path.node_ids)
    nxt = {src: dst for src, dst in path.edge_ids}
    targets = set(nxt.values())
    start = next(src for src in sorted(nxt) if src not in targets)
    out = [start]
    while out[-1] in nxt:
        out.append(nxt[out[-1]])
    return out
