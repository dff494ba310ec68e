from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
import polars as pl
import scipy.sparse as sp

from .reconcile import EdgeRecords, VertexUniverse
from .structure import EdgeType

logger = logging.getLogger(__name__)

_REDUCERS = {
    "sum": np.add,
    "max": np.maximum,
    "min": np.minimum,
}


def _reduce_duplicates(rows: np.ndarray, cols: np.ndarray, data: np.ndarray, n: int, how: str):
    """Collapse repeated (row, col) entries with ``how`` in {"sum", "max", "min"}."""
    if rows.size == 0:
        return rows, cols, data
    key = rows * n + cols
    order = np.argsort(key, kind="stable")
    key, data = key[order], data[order]
    starts = np.flatnonzero(np.r_[True, key[1:] != key[:-1]])
    reduced = _REDUCERS[how].reduceat(data, starts)
    uniq = key[starts]
    return uniq // n, uniq % n, reduced


class Graph:
    """
    Directed or undirected multigraph over a vertex universe.

    The structure is purely topological: parallel numpy arrays of edge
    endpoints (internal indices), weights and layer tags. Vertex attributes
    live in a separate polars DF (DataFrame) keyed by ``vertex_index``.
    Self-loops and parallel edges are kept exactly as supplied.

    Parameters
    ----------
    universe : VertexUniverse
        Vertices of the graph; isolates are vertices with no incident edge.
    source, target : Sequence[int]
        Endpoint indices into ``universe``.
    weight : Sequence[float], optional
        Edge weights; 1.0 for every edge when omitted.
    layer : Sequence[str] | str, optional
        Layer tag per edge (a single string tags every edge).
    directed : bool, optional
        Edge semantics for the whole graph.
    attributes : polars.DataFrame, optional
        Attribute table with a ``vertex_index`` column. Shared, never mutated.
    name : str, optional
        Label, usually the layer the graph was built for.
    position : Sequence[int], optional
        Caller-side identity of each edge (its index in the input records).
    parent_index : Sequence[int], optional
        For subgraphs, the index of each vertex in the graph it came from.

    See Also
    --------
    build_graph, Graph.subgraph, netmeasure.adapters.networkx.to_nx
    """

    def __init__(
        self,
        universe: VertexUniverse,
        source: Sequence[int] = (),
        target: Sequence[int] = (),
        weight: Optional[Sequence[float]] = None,
        layer=None,
        *,
        directed: bool = True,
        attributes: Optional[pl.DataFrame] = None,
        name: Optional[str] = None,
        position: Optional[Sequence[int]] = None,
        parent_index: Optional[Sequence[int]] = None,
    ):
        self.universe = universe
        self.directed = bool(directed)
        self.name = name

        n = len(universe)
        self.source = np.array(source, dtype=np.int64).reshape(-1)
        self.target = np.array(target, dtype=np.int64).reshape(-1)
        m = self.source.shape[0]
        if self.target.shape[0] != m:
            raise ValueError("source and target must have the same length")
        if m and (
            self.source.min() < 0 or self.target.min() < 0
            or self.source.max() >= n or self.target.max() >= n
        ):
            raise ValueError("Edge endpoint outside the vertex universe")

        self.weight = (
            np.ones(m, dtype=np.float64) if weight is None else np.array(weight, dtype=np.float64).reshape(-1)
        )
        if self.weight.shape[0] != m:
            raise ValueError("weight must have one entry per edge")

        if layer is None or isinstance(layer, str):
            self.layer = (layer,) * m
        else:
            self.layer = tuple(layer)
            if len(self.layer) != m:
                raise ValueError("layer must have one entry per edge")

        self.position = (
            np.arange(m, dtype=np.int64) if position is None else np.array(position, dtype=np.int64).reshape(-1)
        )
        self.parent_index = (
            np.arange(n, dtype=np.int64) if parent_index is None else np.array(parent_index, dtype=np.int64)
        )
        if attributes is None:
            attributes = pl.DataFrame({"vertex_index": pl.Series(list(range(n)), dtype=pl.Int64)})
        self.attributes = attributes

    def __repr__(self) -> str:
        kind = "directed" if self.directed else "undirected"
        label = f" {self.name!r}" if self.name is not None else ""
        return f"<Graph{label} {kind} |V|={self.num_vertices} |E|={self.num_edges}>"

    # Size and flags

    def number_of_vertices(self) -> int:
        return len(self.universe)

    def number_of_edges(self) -> int:
        return int(self.source.shape[0])

    @property
    def num_vertices(self) -> int:
        return self.number_of_vertices()

    @property
    def num_edges(self) -> int:
        return self.number_of_edges()

    @property
    def edge_type(self) -> EdgeType:
        return EdgeType.from_flag(self.directed)

    @property
    def is_weighted(self) -> bool:
        """True when any weight differs from 1."""
        return bool(np.any(self.weight != 1.0))

    @property
    def loop_mask(self) -> np.ndarray:
        return self.source == self.target

    @property
    def num_self_loops(self) -> int:
        return int(self.loop_mask.sum())

    @property
    def has_self_loops(self) -> bool:
        return self.num_self_loops > 0

    def _dyad_keys(self) -> np.ndarray:
        """One integer per edge identifying its dyad (ordered iff directed)."""
        n = max(self.num_vertices, 1)
        if self.directed:
            return self.source * n + self.target
        lo = np.minimum(self.source, self.target)
        hi = np.maximum(self.source, self.target)
        return lo * n + hi

    @property
    def num_multi_edges(self) -> int:
        """Edges beyond the first on each dyad."""
        if self.num_edges == 0:
            return 0
        return int(self.num_edges - np.unique(self._dyad_keys()).shape[0])

    @property
    def has_multi_edges(self) -> bool:
        return self.num_multi_edges > 0

    # Accessors

    def vertices(self) -> list:
        """External vertex ids in index order."""
        return list(self.universe.ids)

    def edge_list(self) -> list[tuple]:
        """``(source_id, target_id, weight, layer)`` per edge, in edge order."""
        ids = self.universe.ids
        return [
            (ids[s], ids[t], float(w), lay)
            for s, t, w, lay in zip(self.source.tolist(), self.target.tolist(), self.weight.tolist(), self.layer)
        ]

    def degree(self, mode: str = "all", weighted: bool = False) -> np.ndarray:
        """
        Degree of every vertex.

        Parameters
        ----------
        mode : {"all", "in", "out"}
            ``"in"``/``"out"`` follow edge direction; for undirected graphs
            they equal ``"all"``. A self-loop adds 2 to ``"all"``.
        weighted : bool
            Sum weights instead of counting edges.

        Returns
        -------
        numpy.ndarray
        """
        n = self.num_vertices
        w = self.weight if weighted else None
        out_deg = np.bincount(self.source, weights=w, minlength=n)
        in_deg = np.bincount(self.target, weights=w, minlength=n)
        if mode == "all" or not self.directed:
            return out_deg + in_deg
        if mode == "out":
            return out_deg
        if mode == "in":
            return in_deg
        raise ValueError(f"mode must be 'all', 'in' or 'out', got {mode!r}")

    def isolates(self) -> np.ndarray:
        """Indices of vertices without incident edges."""
        return np.flatnonzero(self.degree("all") == 0)

    def adjacency(
        self,
        values: Optional[np.ndarray] = None,
        *,
        reduce: str = "sum",
        symmetric: bool = False,
        drop_loops: bool = False,
    ) -> sp.csr_matrix:
        """
        Sparse adjacency matrix.

        Parameters
        ----------
        values : numpy.ndarray, optional
            One value per edge (defaults to 1 per edge, i.e. edge counts).
        reduce : {"sum", "max", "min"}
            How parallel entries on one cell are combined.
        symmetric : bool
            Mirror every edge. Always applied for undirected graphs.
        drop_loops : bool
            Leave the diagonal empty.

        Returns
        -------
        scipy.sparse.csr_matrix
            ``n x n``; a self-loop contributes once to its diagonal cell.
        """
        n = self.num_vertices
        data = np.ones(self.num_edges, dtype=np.float64) if values is None else np.asarray(values, dtype=np.float64)
        rows, cols = self.source, self.target
        if drop_loops:
            keep = rows != cols
            rows, cols, data = rows[keep], cols[keep], data[keep]
        if symmetric or not self.directed:
            off = rows != cols
            rows, cols, data = (
                np.concatenate([rows, cols[off]]),
                np.concatenate([cols, rows[off]]),
                np.concatenate([data, data[off]]),
            )
        rows, cols, data = _reduce_duplicates(rows, cols, data, max(n, 1), reduce)
        return sp.csr_matrix((data, (rows, cols)), shape=(n, n))

    # Derived graphs

    def subgraph(self, vertices: Iterable[int], name: Optional[str] = None) -> "Graph":
        """
        Induced subgraph as an independent graph.

        Parameters
        ----------
        vertices : Iterable[int]
            Internal indices to keep (re-indexed in ascending order).
        name : str, optional
            Label of the new graph (defaults to this graph's name).

        Returns
        -------
        Graph
            Own universe, own edge arrays and a filtered copy of the
            attribute table; ``parent_index`` maps back to this graph.
        """
        keep = np.array(sorted(set(int(v) for v in vertices)), dtype=np.int64)
        remap = np.full(self.num_vertices, -1, dtype=np.int64)
        remap[keep] = np.arange(keep.shape[0], dtype=np.int64)
        emask = (remap[self.source] >= 0) & (remap[self.target] >= 0) if self.num_edges else np.zeros(0, bool)
        rows = np.flatnonzero(emask)
        attrs = (
            self.attributes.filter(pl.col("vertex_index").is_in(keep.tolist()))
            .sort("vertex_index")
            .with_columns(pl.Series("vertex_index", list(range(keep.shape[0])), dtype=pl.Int64))
        )
        return Graph(
            self.universe.subset(keep.tolist()),
            remap[self.source[rows]],
            remap[self.target[rows]],
            self.weight[rows],
            tuple(self.layer[i] for i in rows.tolist()),
            directed=self.directed,
            attributes=attrs,
            name=self.name if name is None else name,
            position=self.position[rows],
            parent_index=self.parent_index[keep],
        )

    def symmetrized(self) -> "Graph":
        """Undirected copy with the same edges (for undirected-only measures)."""
        return Graph(
            self.universe,
            self.source,
            self.target,
            self.weight,
            self.layer,
            directed=False,
            attributes=self.attributes,
            name=self.name,
            position=self.position,
            parent_index=self.parent_index,
        )

    def copy(self) -> "Graph":
        return Graph(
            self.universe,
            self.source,
            self.target,
            self.weight,
            self.layer,
            directed=self.directed,
            attributes=self.attributes,
            name=self.name,
            position=self.position,
            parent_index=self.parent_index,
        )

    # Views

    def edges_view(self) -> pl.DataFrame:
        """
        Edge table.

        Returns
        -------
        polars.DataFrame
            ``dyad_id, source_index, target_index, source, target, weight, layer``.
        """
        return pl.DataFrame(
            [
                pl.Series("dyad_id", self.position.tolist(), dtype=pl.Int64),
                pl.Series("source_index", self.source.tolist(), dtype=pl.Int64),
                pl.Series("target_index", self.target.tolist(), dtype=pl.Int64),
                self.universe.id_series("source", self.source.tolist()),
                self.universe.id_series("target", self.target.tolist()),
                pl.Series("weight", self.weight.tolist(), dtype=pl.Float64),
                pl.Series("layer", list(self.layer), dtype=pl.Utf8),
            ]
        )

    def vertices_view(self) -> pl.DataFrame:
        """Vertex table: ``vertex_index``, ``id`` and every attribute column."""
        base = pl.DataFrame(
            [
                pl.Series("vertex_index", list(range(self.num_vertices)), dtype=pl.Int64),
                self.universe.id_series("id"),
            ]
        )
        extra = self.attributes.drop("id") if "id" in self.attributes.columns else self.attributes
        return base.join(extra, on="vertex_index", how="left").sort("vertex_index")

    def to_nx(self, **kwargs):
        """Convert to networkx; see :func:`netmeasure.adapters.networkx.to_nx`."""
        from ..adapters.networkx import to_nx

        return to_nx(self, **kwargs)


def build_graph(
    universe: VertexUniverse,
    records: EdgeRecords,
    *,
    directed: bool,
    attributes: Optional[pl.DataFrame] = None,
    name: Optional[str] = None,
) -> Graph:
    """
    Construct one graph from reconciled edge records.

    Parameters
    ----------
    universe : VertexUniverse
        Full vertex universe; vertices without edges become isolates.
    records : EdgeRecords
        Edges of one layer (or of all layers for the aggregate).
    directed : bool
    attributes : polars.DataFrame, optional
        Attribute table joined by ``vertex_index`` (shared, read-only).
    name : str, optional

    Returns
    -------
    Graph
    """
    graph = Graph(
        universe,
        records.source,
        records.target,
        records.weight,
        records.layer,
        directed=directed,
        attributes=attributes,
        name=name,
        position=records.position,
    )
    logger.debug("Built %r", graph)
    return graph


__all__ = ["Graph", "build_graph"]
