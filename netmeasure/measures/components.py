"""Largest connected and largest biconnected component extraction."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import networkx as nx
import numpy as np
from scipy.sparse import csgraph

from ..adapters.networkx import to_nx

if TYPE_CHECKING:
    from ..core.graph import Graph


@dataclass(frozen=True)
class Components:
    """
    Component structure of one graph.

    Attributes
    ----------
    membership : numpy.ndarray
        Component label per vertex; labels are numbered in the order of each
        component's smallest vertex index.
    component_sizes : tuple[int, ...]
        Size per component label.
    bicomponents : tuple[tuple[int, ...], ...]
        Vertex indices of every biconnected component, in discovery order.
    largest_component : Graph
        Induced subgraph of the largest (weakly) connected component.
    largest_biconnected_component : Graph
        Induced subgraph of the largest biconnected component (empty when the
        graph has no edge between distinct vertices).
    """

    membership: np.ndarray
    component_sizes: tuple
    bicomponents: tuple
    largest_component: "Graph"
    largest_biconnected_component: "Graph"

    @property
    def num_components(self) -> int:
        return len(self.component_sizes)

    @property
    def num_bicomponents(self) -> int:
        return len(self.bicomponents)

    @property
    def bicomponent_sizes(self) -> tuple:
        return tuple(len(c) for c in self.bicomponents)

    @property
    def largest_component_size(self) -> int:
        return self.largest_component.num_vertices

    @property
    def largest_bicomponent_size(self) -> int:
        return self.largest_biconnected_component.num_vertices

    @property
    def is_connected(self) -> bool:
        return self.num_components <= 1


def weak_components(graph: "Graph") -> tuple[np.ndarray, tuple]:
    """
    Connected components (weak for directed graphs).

    Returns
    -------
    (numpy.ndarray, tuple[int, ...])
        Label per vertex, ordered by smallest member index, and sizes.
    """
    n = graph.num_vertices
    if n == 0:
        return np.zeros(0, dtype=np.int64), ()
    _, labels = csgraph.connected_components(graph.adjacency(), directed=graph.directed, connection="weak")
    # renumber by first occurrence so label order never depends on the solver
    _, first = np.unique(labels, return_index=True)
    order = np.argsort(first, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(order.shape[0])
    membership = rank[labels].astype(np.int64)
    sizes = tuple(int(s) for s in np.bincount(membership))
    return membership, sizes


def biconnected_components(graph: "Graph") -> tuple:
    """
    Biconnected components of the undirected, simple, loop-free structure.

    Direction and parallel edges are collapsed on a private copy only.
    Discovery follows networkx's depth-first traversal over vertices in
    universe order, so the result is deterministic.
    """
    H = to_nx(graph, simple=True, directed=False, drop_loops=True, include_attributes=False)
    return tuple(tuple(sorted(c)) for c in nx.biconnected_components(H))


def _first_largest(sizes) -> int:
    # max() keeps the first of equal keys
    return max(range(len(sizes)), key=lambda i: sizes[i])


def extract_components(graph: "Graph") -> Components:
    """
    Identify and extract the largest connected and biconnected components.

    Parameters
    ----------
    graph : Graph

    Returns
    -------
    Components
        Both subgraphs are independent copies and survive the parent graph.

    Notes
    -----
    Ties between equally large components go to the one containing the
    smallest vertex index (connected) or the first discovered (biconnected).
    """
    membership, sizes = weak_components(graph)
    if sizes:
        label = _first_largest(sizes)
        largest = graph.subgraph(np.flatnonzero(membership == label))
    else:
        largest = graph.subgraph([])

    bicomponents = biconnected_components(graph)
    if bicomponents:
        best = _first_largest([len(c) for c in bicomponents])
        largest_bi = graph.subgraph(bicomponents[best])
    else:
        largest_bi = graph.subgraph([])

    return Components(
        membership=membership,
        component_sizes=sizes,
        bicomponents=bicomponents,
        largest_component=largest,
        largest_biconnected_component=largest_bi,
    )


__all__ = ["Components", "biconnected_components", "extract_components", "weak_components"]
