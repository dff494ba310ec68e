"""Whole-graph scalar measures."""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import networkx as nx
import numpy as np
import polars as pl
from scipy.sparse import csgraph

from ..adapters.networkx import to_nx
from ..advisories import SUBSTITUTED, AdvisoryLog
from ..config import EngineConfig
from .components import Components, extract_components

if TYPE_CHECKING:
    from ..core.graph import Graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemMeasures:
    """One row of system-level measures and the advisories raised computing it."""

    row: dict
    advisories: AdvisoryLog


def _simple_dyads(graph: "Graph") -> set:
    """Distinct non-loop dyads: ordered pairs if directed, sorted pairs otherwise."""
    pairs = set()
    for u, v in zip(graph.source.tolist(), graph.target.tolist()):
        if u == v:
            continue
        pairs.add((u, v) if graph.directed or u < v else (v, u))
    return pairs


def _density(n: int, n_dyads: int, directed: bool) -> float:
    if n <= 1:
        return 0.0
    possible = n * (n - 1) if directed else n * (n - 1) / 2
    return n_dyads / possible


def _hop_distances(graph: "Graph") -> np.ndarray:
    if graph.num_vertices == 0:
        return np.zeros((0, 0))
    return csgraph.shortest_path(
        graph.adjacency(drop_loops=True), method="D", directed=graph.directed, unweighted=True
    )


def _finite_offdiag(dist: np.ndarray) -> np.ndarray:
    if dist.size == 0:
        return dist.reshape(0)
    mask = np.isfinite(dist)
    np.fill_diagonal(mask, False)
    return dist[mask]


def _degree_assortativity(graph: "Graph") -> Optional[float]:
    if graph.num_edges == 0:
        return None
    G = to_nx(graph, simple=True, drop_loops=True, include_attributes=False)
    if G.number_of_edges() == 0:
        return None
    try:
        with warnings.catch_warnings(), np.errstate(all="ignore"):
            warnings.simplefilter("ignore", RuntimeWarning)
            r = nx.degree_assortativity_coefficient(G)
    except (ValueError, ZeroDivisionError, nx.NetworkXError):
        return None
    r = float(r)
    return r if np.isfinite(r) else None


def _centralization(values: np.ndarray, theoretical_max: float) -> float:
    if values.size == 0 or theoretical_max <= 0:
        return 0.0
    return float(np.sum(values.max() - values) / theoretical_max)


def _column_values(node_table: Optional[pl.DataFrame], name: str) -> Optional[np.ndarray]:
    if node_table is None or name not in node_table.columns:
        return None
    return node_table.get_column(name).to_numpy().astype(np.float64)


def compute_system_measures(
    graph: "Graph",
    node_table: Optional[pl.DataFrame] = None,
    *,
    layer: Optional[str] = None,
    network_name: Optional[str] = None,
    components: Optional[Components] = None,
    config: Optional[EngineConfig] = None,
    advisories: Optional[AdvisoryLog] = None,
) -> SystemMeasures:
    """
    Compute whole-graph measures.

    Parameters
    ----------
    graph : Graph
    node_table : polars.DataFrame, optional
        Node measures of ``graph``; ``total_degree`` and ``betweenness`` feed
        the centralization scores when present.
    layer : str, optional
        Layer label written to the ``layer`` column (defaults to ``graph.name``).
    network_name : str, optional
        Written to the ``network`` column.
    components : Components, optional
        Precomputed component structure (computed here when omitted).
    config : EngineConfig, optional
    advisories : AdvisoryLog, optional

    Returns
    -------
    SystemMeasures

    Notes
    -----
    Never raises on disconnected or trivial graphs. Density is 0 for graphs
    with at most one vertex. The diameter is the longest finite hop-count
    geodesic; when the graph is disconnected it is taken on the largest
    component and ``diameter_restricted`` is set. ``avg_path_length`` is None
    when no two distinct vertices are connected.
    """
    config = config or EngineConfig()
    log = advisories if advisories is not None else AdvisoryLog(graph.name, config.emit_warnings)
    components = components or extract_components(graph)

    n = graph.num_vertices
    m = graph.num_edges
    directed = graph.directed
    dyads = _simple_dyads(graph)

    degrees = _column_values(node_table, "total_degree")
    if degrees is None:
        degrees = graph.degree("all").astype(np.float64)

    row: dict[str, Any] = {
        "network": network_name,
        "layer": graph.name if layer is None else layer,
        "directed": directed,
        "weighted": graph.is_weighted,
        "num_nodes": n,
        "num_edges": m,
        "num_self_loops": graph.num_self_loops,
        "num_multi_edges": graph.num_multi_edges,
        "num_isolates": int(graph.isolates().shape[0]),
        "density": _density(n, len(dyads), directed),
        "mean_degree": float(degrees.mean()) if n else 0.0,
    }

    if directed:
        reciprocated = sum(1 for (u, v) in dyads if (v, u) in dyads)
        row["reciprocity"] = reciprocated / len(dyads) if dyads else 0.0
        mutual = reciprocated // 2
        asymmetric = len(dyads) - reciprocated
        row["mutual_dyads"] = mutual
        row["asymmetric_dyads"] = asymmetric
        row["null_dyads"] = n * (n - 1) // 2 - mutual - asymmetric

    U = to_nx(graph, simple=True, directed=False, drop_loops=True, include_attributes=False)
    row["transitivity"] = float(nx.transitivity(U)) if U.number_of_edges() else 0.0

    row["num_components"] = components.num_components
    if directed:
        if n:
            n_strong, _ = csgraph.connected_components(graph.adjacency(), directed=True, connection="strong")
        else:
            n_strong = 0
        row["num_strong_components"] = int(n_strong)
    row["largest_component_size"] = components.largest_component_size
    row["largest_component_proportion"] = components.largest_component_size / n if n else 0.0
    row["num_bicomponents"] = components.num_bicomponents
    row["largest_bicomponent_size"] = components.largest_bicomponent_size

    all_paths = _finite_offdiag(_hop_distances(graph))
    if components.is_connected:
        diameter_paths, restricted = all_paths, False
    else:
        diameter_paths = _finite_offdiag(_hop_distances(components.largest_component))
        restricted = True
        log.add(
            "diameter computed on the largest component of a disconnected graph",
            metric="diameter",
            kind=SUBSTITUTED,
        )
    row["diameter"] = float(diameter_paths.max()) if diameter_paths.size else 0.0
    row["diameter_restricted"] = restricted
    row["avg_path_length"] = float(all_paths.mean()) if all_paths.size else None

    row["degree_assortativity"] = _degree_assortativity(graph)

    # Freeman centralization against the star-graph maximum
    if n >= 3:
        deg_max = (n - 1) * (n - 2) * (2 if directed else 1)
        btw_max = (n - 1) ** 2 * (n - 2) / (1 if directed else 2)
    else:
        deg_max = btw_max = 0
    row["degree_centralization"] = _centralization(degrees, deg_max)
    betweenness = _column_values(node_table, "betweenness")
    if betweenness is not None:
        row["betweenness_centralization"] = _centralization(betweenness, btw_max)

    logger.debug("System measures for %r: n=%d m=%d", row["layer"], n, m)
    return SystemMeasures(row, log)


__all__ = ["SystemMeasures", "compute_system_measures"]
