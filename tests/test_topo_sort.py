from release_depgraph.core.graph.topo_sort import topo_sort
from release_depgraph.core.model import CycleDetected, GraphEdge, GraphNode


def _nodes(*ids: int) -> list[GraphNode]:
    return [GraphNode(id=i, title=f"#{i}", status="open") for i in ids]


def _edges(*pairs: tuple[int, int]) -> list[GraphEdge]:
    return [GraphEdge(source=a, target=b) for a, b in pairs]


def test_topo_sort_acyclic_respects_every_edge():
    nodes = _nodes(4, 3, 2, 1)
    edges = _edges((1, 2), (2, 4), (1, 3), (3, 4))
    order = topo_sort(nodes, edges)
    assert isinstance(order, list)
    assert sorted(order) == [1, 2, 3, 4]
    pos = {nid: i for i, nid in enumerate(order)}
    for e in edges:
        assert pos[e.source] < pos[e.target]


def test_topo_sort_is_deterministic_in_node_order():
    nodes = _nodes(3, 1, 2)
    assert topo_sort(nodes, []) == [3, 1, 2]
    assert topo_sort(nodes, _edges((2, 3))) == [1, 2, 3]


def test_topo_sort_three_node_cycle():
    result = topo_sort(_nodes(1, 2, 3), _edges((1, 2), (2, 3), (3, 1)))
    assert isinstance(result, CycleDetected)
    assert len(result.order) < 3
    assert set(result.remaining) == {1, 2, 3}


def test_topo_sort_self_loop_is_a_cycle():
    result = topo_sort(_nodes(1, 2), _edges((1, 2), (2, 2)))
    assert isinstance(result, CycleDetected)
    assert result.order == (1,)
    assert result.remaining == (2,)


def test_topo_sort_partial_cycle_keeps_processed_prefix():
    result = topo_sort(_nodes(1, 2, 3, 4), _edges((1, 2), (2, 3), (3, 2), (3, 4)))
    assert isinstance(result, CycleDetected)
    assert result.order == (1,)
    assert result.remaining == (2, 3, 4)


def test_topo_sort_empty_graph():
    assert topo_sort([], []) == []


def test_topo_sort_ignores_edges_to_unknown_nodes():
    assert topo_sort(_nodes(1, 2), _edges((1, 2), (9, 1))) == [1, 2]
