"""
Output assembly.

Per-layer and aggregate results are merged into one :class:`NetworkBundle`.
With a single layer nothing is prefixed and the by-layer mappings point at the
same objects as the aggregate fields. With several layers aggregate node
columns stay unprefixed and every layer's columns are prefixed with
``"<layer><separator>"``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import polars as pl

from .advisories import LAYER_FAILURE, Advisory
from .core.graph import Graph
from .core.structure import AGGREGATE_LAYER
from .utils.validation import obj_canonicalized_hash

if TYPE_CHECKING:
    from .core.layers import LayerPlan
    from .core.reconcile import VertexUniverse
    from .measures.components import Components

logger = logging.getLogger(__name__)

_KEY_COLUMNS = ("vertex_index", "id")


@dataclass(frozen=True)
class LayerResult:
    """Everything computed for one work item (a layer or the aggregate)."""

    key: str
    graph: "Graph"
    node_measures: pl.DataFrame
    system_row: dict
    components: "Components"
    advisories: tuple


@dataclass(repr=False)
class NetworkBundle:
    """
    Result of one engine invocation.

    Attributes
    ----------
    network_name : str | None
    layers : list[str]
        Layer names in first-seen order (``["default"]`` for unlabeled input).
    is_multilayer : bool
    edgelist : polars.DataFrame
        ``dyad_id, source_index, target_index, source, target, weight, layer``;
        all layers concatenated in layer order.
    edgelist_by_layer : dict[str, polars.DataFrame]
    node_attributes : polars.DataFrame
        Attribute table joined to the universe by ``vertex_index``.
    node_measures : polars.DataFrame
        Aggregate measures unprefixed, layer measures prefixed when multilayer.
    node_measures_by_layer : dict[str, polars.DataFrame]
        Unprefixed table per layer.
    system_measures : polars.DataFrame
        One row per layer, plus an ``aggregate`` row when multilayer.
    graph : Graph
        Aggregate graph.
    graph_by_layer : dict[str, Graph]
    largest_component, largest_biconnected_component : Graph
        Of the aggregate graph.
    largest_component_by_layer, largest_biconnected_component_by_layer : dict[str, Graph]
    advisory_records : list[Advisory]
    failures : list[LayerFailure]
        Non-empty only when partial results were requested.
    """

    network_name: Optional[str]
    layers: list
    is_multilayer: bool
    edgelist: pl.DataFrame
    edgelist_by_layer: dict
    node_attributes: pl.DataFrame
    node_measures: pl.DataFrame
    node_measures_by_layer: dict
    system_measures: pl.DataFrame
    graph: Optional["Graph"]
    graph_by_layer: dict
    largest_component: Optional["Graph"]
    largest_component_by_layer: dict
    largest_biconnected_component: Optional["Graph"]
    largest_biconnected_component_by_layer: dict
    advisory_records: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def advisories(self) -> list[str]:
        """Advisory messages, layer-tagged, in the order they were raised."""
        return [str(a) for a in self.advisory_records]

    @property
    def largest_bipartite_component(self) -> Optional["Graph"]:
        """Alias of :attr:`largest_biconnected_component`."""
        return self.largest_biconnected_component

    def __repr__(self) -> str:
        n = self.graph.num_vertices if self.graph is not None else 0
        m = self.graph.num_edges if self.graph is not None else 0
        return (
            f"NetworkBundle(network_name={self.network_name!r}, layers={self.layers!r}, "
            f"|V|={n}, |E|={m}, advisories={len(self.advisory_records)}, failures={len(self.failures)})"
        )

    def fingerprint(self) -> str:
        """SHA-256 over every table and component vertex set; equal for equal runs."""

        def _graph_key(g):
            if g is None:
                return None
            return {"vertices": list(g.universe.ids), "edges": g.edges_view()}

        payload = {
            "network_name": self.network_name,
            "layers": list(self.layers),
            "edgelist": self.edgelist,
            "node_measures": self.node_measures,
            "system_measures": self.system_measures,
            "largest_component": _graph_key(self.largest_component),
            "largest_biconnected_component": _graph_key(self.largest_biconnected_component),
            "by_layer": {
                name: {
                    "node_measures": self.node_measures_by_layer.get(name),
                    "largest_component": _graph_key(self.largest_component_by_layer.get(name)),
                    "largest_biconnected_component": _graph_key(
                        self.largest_biconnected_component_by_layer.get(name)
                    ),
                }
                for name in self.layers
            },
            "advisories": self.advisories,
        }
        return obj_canonicalized_hash(payload)


def prefix_columns(table: pl.DataFrame, layer: str, separator: str = "_") -> pl.DataFrame:
    """Prefix every metric column of ``table`` with ``layer``."""
    return table.rename(
        {c: f"{layer}{separator}{c}" for c in table.columns if c not in _KEY_COLUMNS}
    )


def _universe_frame(universe: "VertexUniverse") -> pl.DataFrame:
    return pl.DataFrame(
        [
            pl.Series("vertex_index", list(range(len(universe))), dtype=pl.Int64),
            universe.id_series("id"),
        ]
    )


def _merge_node_measures(
    aggregate: Optional[pl.DataFrame],
    by_layer: dict,
    universe: "VertexUniverse",
    separator: str,
) -> pl.DataFrame:
    merged = aggregate if aggregate is not None else _universe_frame(universe)
    for name, table in by_layer.items():
        layer_cols = prefix_columns(table, name, separator).drop("id")
        merged = merged.join(layer_cols, on="vertex_index", how="left")
    return merged.sort("vertex_index")


def assemble_bundle(
    plan: "LayerPlan",
    results: dict,
    *,
    universe: "VertexUniverse",
    attributes: pl.DataFrame,
    network_name: Optional[str] = None,
    advisories: tuple = (),
    failures: tuple = (),
    separator: str = "_",
) -> NetworkBundle:
    """
    Merge per-layer and aggregate results into a :class:`NetworkBundle`.

    Parameters
    ----------
    plan : LayerPlan
    results : dict[str, LayerResult]
        Keyed by layer name, plus ``"aggregate"`` when multilayer. Failed
        work items are simply absent.
    universe : VertexUniverse
    attributes : polars.DataFrame
    network_name : str, optional
    advisories : tuple[Advisory, ...]
        Run-level advisories (raised before any graph was built).
    failures : tuple[LayerFailure, ...]
    separator : str
        Joins layer names and metric names in prefixed columns.

    Returns
    -------
    NetworkBundle
    """
    layers = [name for name in plan.layers if name in results]
    agg = results.get(plan.aggregate_key)

    edgelist_by_layer = {name: results[name].graph.edges_view() for name in layers}
    node_by_layer = {name: results[name].node_measures for name in layers}

    if plan.is_multilayer:
        node_measures = _merge_node_measures(
            agg.node_measures if agg is not None else None, node_by_layer, universe, separator
        )
        row_keys = layers + ([AGGREGATE_LAYER] if agg is not None else [])
    else:
        node_measures = agg.node_measures if agg is not None else _universe_frame(universe)
        row_keys = layers

    if edgelist_by_layer:
        edgelist = pl.concat(list(edgelist_by_layer.values()), how="vertical")
    else:
        edgelist = Graph(universe).edges_view()

    rows = [results[key].system_row for key in row_keys]
    system_measures = pl.from_dicts(rows, infer_schema_length=None) if rows else pl.DataFrame()

    records: list[Advisory] = list(advisories)
    for key, _ in plan.work_items():
        if key in results:
            records.extend(results[key].advisories)
    for failure in failures:
        records.append(Advisory(failure.message, layer=failure.layer, kind=LAYER_FAILURE))

    bundle = NetworkBundle(
        network_name=network_name,
        layers=list(plan.layers),
        is_multilayer=plan.is_multilayer,
        edgelist=edgelist,
        edgelist_by_layer=edgelist_by_layer,
        node_attributes=attributes,
        node_measures=node_measures,
        node_measures_by_layer=node_by_layer,
        system_measures=system_measures,
        graph=agg.graph if agg is not None else None,
        graph_by_layer={name: results[name].graph for name in layers},
        largest_component=agg.components.largest_component if agg is not None else None,
        largest_component_by_layer={
            name: results[name].components.largest_component for name in layers
        },
        largest_biconnected_component=(
            agg.components.largest_biconnected_component if agg is not None else None
        ),
        largest_biconnected_component_by_layer={
            name: results[name].components.largest_biconnected_component for name in layers
        },
        advisory_records=records,
        failures=list(failures),
    )
    logger.info("Assembled %r", bundle)
    return bundle


__all__ = ["LayerResult", "NetworkBundle", "assemble_bundle", "prefix_columns"]
