try:
    import igraph as ig
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "Optional dependency 'python-igraph' is not installed. "
        "Install with: pip install netmeasure[igraph]"
    ) from e

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.graph import Graph


def to_igraph(graph: "Graph", *, include_attributes: bool = True) -> "ig.Graph":
    """
    Export a Graph to python-igraph.

    Parameters
    ----------
    graph : Graph
        Source graph. Vertex ``i`` of the igraph object is internal index ``i``.
    include_attributes : bool
        Copy the attribute table onto vertex attributes.

    Returns
    -------
    igraph.Graph
        Vertex attributes ``id`` (external identifier) and ``name`` (its
        string form, usable for igraph name lookups); edge attributes
        ``weight``, ``layer`` and ``dyad_id``. Parallel edges and self-loops
        are kept.
    """
    g = ig.Graph(
        n=graph.num_vertices,
        edges=list(zip(graph.source.tolist(), graph.target.tolist())),
        directed=graph.directed,
    )
    ids = list(graph.universe.ids)
    g.vs["id"] = ids
    g.vs["name"] = [str(v) for v in ids]
    if graph.num_edges:
        g.es["weight"] = graph.weight.tolist()
        g.es["layer"] = list(graph.layer)
        g.es["dyad_id"] = graph.position.tolist()

    if include_attributes and graph.attributes.width > 1 and graph.num_vertices:
        table = graph.attributes.sort("vertex_index")
        for col in table.columns:
            if col in ("vertex_index", "id", "name"):
                continue
            g.vs[col] = table.get_column(col).to_list()
    if graph.name is not None:
        g["name"] = graph.name
    return g


__all__ = ["to_igraph"]
