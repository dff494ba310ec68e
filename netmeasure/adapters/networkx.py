try:
    import networkx as nx
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "Dependency 'networkx' is not installed. "
        "Install with: pip install networkx"
    ) from e

from typing import TYPE_CHECKING, Any, Optional

import numpy as np

if TYPE_CHECKING:
    from ..core.graph import Graph

_COMBINE = {
    "sum": lambda a, b: a + b,
    "max": max,
    "min": min,
}


def _vertex_attr_rows(graph: "Graph") -> list[dict]:
    """One attribute dict per vertex, in index order, nulls dropped."""
    df = graph.attributes
    if df.width <= 1:
        return [{} for _ in range(graph.num_vertices)]
    rows = [{} for _ in range(graph.num_vertices)]
    for row in df.sort("vertex_index").iter_rows(named=True):
        idx = row.pop("vertex_index")
        rows[idx] = {k: v for k, v in row.items() if v is not None}
    return rows


def to_nx(
    graph: "Graph",
    *,
    simple: bool = False,
    directed: Optional[bool] = None,
    values: Optional[np.ndarray] = None,
    reduce: str = "sum",
    drop_loops: bool = False,
    include_attributes: bool = True,
):
    """
    Export a Graph to NetworkX.

    Parameters
    ----------
    graph : Graph
        Source graph.
    simple : bool
        If False, return a Multi(Di)Graph with one NX edge per edge (keyed by
        ``dyad_id``). If True, return a (Di)Graph where parallel edges are
        collapsed: ``weight`` combines with ``reduce`` and ``count`` holds the
        multiplicity.
    directed : bool, optional
        Override the graph's directedness (``False`` symmetrizes).
    values : numpy.ndarray, optional
        Per-edge values to export as ``weight`` instead of the graph weights
        (e.g. path distances).
    reduce : {"sum", "max", "min"}
        Combination of parallel ``weight`` values when ``simple=True``.
    drop_loops : bool
        Skip self-loops.
    include_attributes : bool
        Copy vertex attributes onto NX nodes.

    Returns
    -------
    networkx.Graph | networkx.DiGraph | networkx.MultiGraph | networkx.MultiDiGraph
        Nodes are internal vertex indices, inserted in index order, each with
        an ``id`` attribute holding the external identifier.
    """
    directed = graph.directed if directed is None else bool(directed)
    if simple:
        G = nx.DiGraph() if directed else nx.Graph()
    else:
        G = nx.MultiDiGraph() if directed else nx.MultiGraph()
    G.graph["name"] = graph.name

    attrs = _vertex_attr_rows(graph) if include_attributes else None
    for idx, vertex_id in enumerate(graph.universe):
        node_attrs = dict(attrs[idx]) if attrs is not None else {}
        node_attrs["id"] = vertex_id
        G.add_node(idx, **node_attrs)

    weights = graph.weight if values is None else np.asarray(values, dtype=np.float64)
    combine = _COMBINE[reduce]
    for u, v, w, lay, pos in zip(
        graph.source.tolist(), graph.target.tolist(), weights.tolist(), graph.layer, graph.position.tolist()
    ):
        if drop_loops and u == v:
            continue
        if not simple:
            G.add_edge(u, v, key=pos, weight=w, layer=lay)
        elif G.has_edge(u, v):
            data = G[u][v]
            data["weight"] = combine(data["weight"], w)
            data["count"] += 1
        else:
            G.add_edge(u, v, weight=w, count=1)
    return G


def node_values(G, mapping: dict, n: int, default: Any = np.nan) -> np.ndarray:
    """Dense ``float64`` array from an NX ``{node: value}`` result over ``range(n)``."""
    out = np.full(n, default, dtype=np.float64)
    for node, value in mapping.items():
        out[node] = value
    return out


__all__ = ["to_nx", "node_values"]
