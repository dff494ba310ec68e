from __future__ import annotations

from typing import Dict, Optional

import polars as pl

from ..config import EngineConfig
from ..core.graph import Graph, build_graph
from ..core.reconcile import read_edge_records, reconcile_identifiers


def to_dataframes(graph: "Graph") -> Dict[str, pl.DataFrame]:
    """
    Export graph to Polars DataFrames.

    Returns a dictionary of DataFrames:
    - 'nodes': ``vertex_index``, ``id`` and vertex attributes (isolates included)
    - 'edges': ``dyad_id``, endpoint indices and ids, ``weight``, ``layer``

    Args:
        graph: Graph instance to export

    Returns:
        Dictionary mapping table names to Polars DataFrames
    """
    return {
        "nodes": graph.vertices_view(),
        "edges": graph.edges_view(),
    }


def from_dataframes(
    edges: pl.DataFrame,
    nodes: Optional[pl.DataFrame] = None,
    *,
    directed: bool = True,
    node_id_column: str = "id",
    name: Optional[str] = None,
) -> Graph:
    """
    Build a Graph from Polars DataFrames.

    Accepts the tables produced by :func:`to_dataframes` or the ``edgelist``
    of a :class:`~netmeasure.bundle.NetworkBundle` (columns ``source``,
    ``target`` and optionally ``weight`` and ``layer``; index columns are
    ignored and recomputed).

    Args:
        edges: Edge table with external endpoint ids
        nodes: Optional node table; ids absent from ``edges`` become isolates
        directed: Edge semantics of the rebuilt graph
        node_id_column: Id column of ``nodes``
        name: Optional graph label

    Returns:
        Graph with layer tags copied from the ``layer`` column
    """
    raw = read_edge_records(edges, EngineConfig())
    if nodes is not None:
        nodes = nodes.drop([c for c in ("vertex_index",) if c in nodes.columns])
    universe, attributes = reconcile_identifiers(
        raw.sources, raw.targets, nodes=nodes, node_id_column=node_id_column
    )
    return build_graph(
        universe,
        raw.resolve(universe),
        directed=directed,
        attributes=attributes,
        name=name,
    )


__all__ = ["to_dataframes", "from_dataframes"]
