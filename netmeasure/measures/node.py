"""
Node-level measures.

The battery and its applicability come from
:mod:`netmeasure.measures.applicability`; this module only computes the
columns it is told to. Vertices are always processed in universe order and
networkx graphs are built with nodes inserted in that order, so ties and
floating-point accumulation are reproducible run to run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Callable, Optional

import networkx as nx
import numpy as np
import polars as pl
import scipy.linalg
import scipy.sparse.linalg
from scipy.sparse import csgraph

from ..adapters.networkx import node_values, to_nx
from ..advisories import SUBSTITUTED, AdvisoryLog
from ..config import EngineConfig
from .applicability import GraphCondition, applicable_metrics

if TYPE_CHECKING:
    from ..core.graph import Graph

logger = logging.getLogger(__name__)

# above this size eigen-decompositions switch from dense LAPACK to ARPACK
_DENSE_LIMIT = 1500

_INTEGER_COLUMNS = {"total_degree", "in_degree", "out_degree", "reachable", "coreness"}


@dataclass(frozen=True)
class NodeMeasures:
    """Node measure table of one graph and the advisories raised computing it."""

    table: pl.DataFrame
    advisories: AdvisoryLog

    @property
    def metric_columns(self) -> list[str]:
        return [c for c in self.table.columns if c not in ("vertex_index", "id")]


class _MetricContext:
    """Per-graph caches shared by the metric functions."""

    def __init__(self, graph: "Graph", condition: GraphCondition, config: EngineConfig, log: AdvisoryLog):
        self.graph = graph
        self.condition = condition
        self.config = config
        self.log = log
        self.n = graph.num_vertices

    @cached_property
    def path_lengths(self) -> Optional[np.ndarray]:
        """Per-edge path distance, or ``None`` for hop counts."""
        g = self.graph
        if not g.is_weighted:
            return None
        if np.any(g.weight <= 0):
            self.log.add(
                "non-positive edge weights: path-based measures computed unweighted",
                kind=SUBSTITUTED,
            )
            return None
        if self.config.weight_type == "frequency":
            return 1.0 / g.weight
        return g.weight.copy()

    @cached_property
    def path_graph(self):
        """Simple loop-free NX graph; parallel edges keep the shortest distance."""
        values = self.path_lengths
        if values is None:
            values = np.ones(self.graph.num_edges, dtype=np.float64)
        return to_nx(
            self.graph, simple=True, values=values, reduce="min",
            drop_loops=True, include_attributes=False,
        )

    @property
    def path_weight(self) -> Optional[str]:
        return None if self.path_lengths is None else "weight"

    @cached_property
    def undirected_simple(self):
        """Simple loop-free undirected NX graph with summed weights."""
        return to_nx(
            self.graph, simple=True, directed=False, reduce="sum",
            drop_loops=True, include_attributes=False,
        )

    @cached_property
    def hop_distances(self) -> np.ndarray:
        """All-pairs hop counts; ``inf`` where unreachable."""
        if self.n == 0:
            return np.zeros((0, 0))
        adj = self.graph.adjacency(drop_loops=True)
        return csgraph.shortest_path(adj, method="D", directed=self.graph.directed, unweighted=True)

    @cached_property
    def symmetric_adjacency(self):
        """Symmetrized adjacency (weights summed, loops dropped) for spectral measures."""
        values = self.graph.weight if self.condition.weighted else None
        return self.graph.adjacency(values, reduce="sum", symmetric=True, drop_loops=True)

    @cached_property
    def leading_eigen(self) -> tuple[float, np.ndarray]:
        """Largest eigenvalue and its eigenvector of :attr:`symmetric_adjacency`."""
        A = self.symmetric_adjacency
        if self.n == 0 or A.nnz == 0:
            return 0.0, np.zeros(self.n)
        if self.n <= _DENSE_LIMIT:
            vals, vecs = scipy.linalg.eigh(A.toarray())
            lam, vec = float(vals[-1]), vecs[:, -1]
        else:
            vals, vecs = scipy.sparse.linalg.eigsh(A, k=1, which="LA")
            lam, vec = float(vals[0]), vecs[:, 0]
        if vec.sum() < 0:
            vec = -vec
        return lam, vec


def _total_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("all")


def _in_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("in")


def _out_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("out")


def _total_weighted_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("all", weighted=True)


def _in_weighted_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("in", weighted=True)


def _out_weighted_degree(ctx: _MetricContext) -> np.ndarray:
    return ctx.graph.degree("out", weighted=True)


def _betweenness(ctx: _MetricContext) -> np.ndarray:
    G = ctx.path_graph
    scores = nx.betweenness_centrality(G, normalized=False, weight=ctx.path_weight)
    return node_values(G, scores, ctx.n)


def _closeness(ctx: _MetricContext) -> np.ndarray:
    # outgoing distances: networkx measures incoming ones on digraphs
    G = ctx.path_graph
    H = G.reverse(copy=False) if G.is_directed() else G
    scores = nx.closeness_centrality(H, distance=ctx.path_weight, wf_improved=True)
    return node_values(G, scores, ctx.n)


def _eccentricity(ctx: _MetricContext) -> np.ndarray:
    if ctx.n == 0:
        return np.zeros(0)
    return ctx.hop_distances.max(axis=1)


def _reachable(ctx: _MetricContext) -> np.ndarray:
    if ctx.n == 0:
        return np.zeros(0, dtype=np.int64)
    return np.isfinite(ctx.hop_distances).sum(axis=1) - 1


def _coreness(ctx: _MetricContext) -> np.ndarray:
    G = ctx.undirected_simple
    return node_values(G, nx.core_number(G), ctx.n, default=0)


def _local_transitivity(ctx: _MetricContext) -> np.ndarray:
    G = ctx.undirected_simple
    return node_values(G, nx.clustering(G), ctx.n)


def _eigen_centrality(ctx: _MetricContext) -> np.ndarray:
    lam, vec = ctx.leading_eigen
    if lam <= 0:
        ctx.log.add(
            "eigenvector centrality is zero everywhere: the graph has no edges between distinct vertices",
            metric="eigen_centrality",
            kind=SUBSTITUTED,
        )
        return np.zeros(ctx.n)
    vec = np.abs(vec)
    return vec / vec.max()


def _bonacich_power(ctx: _MetricContext) -> Optional[np.ndarray]:
    A = ctx.symmetric_adjacency
    n = ctx.n
    if n == 0:
        return np.zeros(0)
    lam, _ = ctx.leading_eigen
    beta = ctx.config.bonacich_exponent
    if beta is None:
        beta = 0.5 / lam if lam > 0 else 0.0
    ones = np.ones(n)
    rhs = A @ ones
    if not rhs.any():
        return np.zeros(n)
    system = scipy.sparse.identity(n, format="csr") - beta * A
    try:
        if n <= _DENSE_LIMIT:
            c = scipy.linalg.solve(system.toarray(), rhs, assume_a="sym")
        else:
            c = scipy.sparse.linalg.spsolve(system.tocsc(), rhs)
    except np.linalg.LinAlgError:
        c = None
    if c is None or not np.all(np.isfinite(c)):
        ctx.log.add(
            f"bonacich_power omitted: (I - {beta:g} A) is singular",
            metric="bonacich_power",
        )
        return None
    return c * np.sqrt(n / np.sum(c * c))


def _burt_constraint(ctx: _MetricContext) -> np.ndarray:
    G = ctx.undirected_simple
    return node_values(G, nx.constraint(G, weight="weight"), ctx.n)


def _burt_effective_size(ctx: _MetricContext) -> np.ndarray:
    G = ctx.undirected_simple
    return node_values(G, nx.effective_size(G, weight="weight"), ctx.n)


_COMPUTE: dict[str, Callable[[_MetricContext], Optional[np.ndarray]]] = {
    "total_degree": _total_degree,
    "in_degree": _in_degree,
    "out_degree": _out_degree,
    "total_weighted_degree": _total_weighted_degree,
    "in_weighted_degree": _in_weighted_degree,
    "out_weighted_degree": _out_weighted_degree,
    "betweenness": _betweenness,
    "closeness": _closeness,
    "eccentricity": _eccentricity,
    "reachable": _reachable,
    "coreness": _coreness,
    "local_transitivity": _local_transitivity,
    "eigen_centrality": _eigen_centrality,
    "bonacich_power": _bonacich_power,
    "burt_constraint": _burt_constraint,
    "burt_effective_size": _burt_effective_size,
}


def _column(name: str, values: np.ndarray) -> pl.Series:
    if name in _INTEGER_COLUMNS:
        return pl.Series(name, np.asarray(values).astype(np.int64), dtype=pl.Int64)
    return pl.Series(name, np.asarray(values, dtype=np.float64), dtype=pl.Float64)


def compute_node_measures(
    graph: "Graph",
    config: Optional[EngineConfig] = None,
    advisories: Optional[AdvisoryLog] = None,
) -> NodeMeasures:
    """
    Compute the node measure battery applicable to ``graph``.

    Parameters
    ----------
    graph : Graph
        Graph of one layer or of the aggregate.
    config : EngineConfig, optional
        Supplies ``metrics``, ``weight_type`` and ``bonacich_exponent``.
    advisories : AdvisoryLog, optional
        Collector to append to (a new one stamped with ``graph.name`` when
        omitted).

    Returns
    -------
    NodeMeasures
        ``vertex_index``, ``id`` and one column per computed metric, one row
        per vertex in universe order (isolates included).

    Notes
    -----
    Metrics that are not applicable are absent from the table, never filled
    with placeholders. Path-based measures on unreachable pairs yield ``inf``
    (eccentricity) or are scaled over reachable vertices (closeness); they do
    not raise.
    """
    config = config or EngineConfig()
    log = advisories if advisories is not None else AdvisoryLog(graph.name, config.emit_warnings)
    condition = GraphCondition.of(graph)
    plan = applicable_metrics(condition, config.metrics)

    for metric, reason in plan.omitted.items():
        log.add(reason, metric=metric)
    for metric, caveats in plan.notes.items():
        for caveat in caveats:
            log.add(caveat, metric=metric, kind=SUBSTITUTED)

    ctx = _MetricContext(graph, condition, config, log)
    columns = [
        pl.Series("vertex_index", list(range(graph.num_vertices)), dtype=pl.Int64),
        graph.universe.id_series("id"),
    ]
    for metric in plan.metrics:
        values = _COMPUTE[metric](ctx)
        if values is None:
            continue
        columns.append(_column(metric, values))
    logger.debug("Node measures for %r: %d metric(s)", graph.name, len(columns) - 2)
    return NodeMeasures(pl.DataFrame(columns), log)


__all__ = ["NodeMeasures", "compute_node_measures"]
