"""
Layer management: partition reconciled edges by layer label.

Every network has a non-empty layer list. Unlabeled input has one implicit
layer (``DEFAULT_LAYER``). With two or more layers the plan also carries an
aggregate pseudo-layer (``AGGREGATE_LAYER``) holding the union of all edges;
aggregate measures are recomputed on that union graph, never derived from
per-layer values.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np

from ..errors import InvalidConfigurationError
from ..utils.validation import unique_iter
from .reconcile import EdgeRecords
from .structure import AGGREGATE_LAYER, DEFAULT_LAYER


@dataclass(frozen=True)
class LayerPlan:
    """
    Per-layer construction inputs plus the aggregate input.

    Attributes
    ----------
    layers : tuple[str, ...]
        Layer names in first-seen order (``(DEFAULT_LAYER,)`` when unlabeled).
    records_by_layer : dict[str, EdgeRecords]
        Edges of each layer, input order preserved.
    aggregate : EdgeRecords
        All edges, input order, every edge tagged with its resolved layer.
    """

    layers: tuple
    records_by_layer: dict
    aggregate: EdgeRecords

    @property
    def is_multilayer(self) -> bool:
        return len(self.layers) > 1

    @property
    def aggregate_key(self) -> str:
        """Key under which aggregate results are stored."""
        return AGGREGATE_LAYER if self.is_multilayer else self.layers[0]

    def work_items(self) -> Iterator[tuple[str, EdgeRecords]]:
        """
        Yield ``(key, records)`` for every graph to build.

        One item for single-layer input (the sole layer, which is also the
        aggregate); otherwise one per layer followed by the aggregate.
        """
        for name in self.layers:
            yield name, self.records_by_layer[name]
        if self.is_multilayer:
            yield AGGREGATE_LAYER, self.aggregate


def partition_layers(records: EdgeRecords) -> LayerPlan:
    """
    Split edge records by layer label.

    Parameters
    ----------
    records : EdgeRecords
        Reconciled edges; ``layer`` holds a label or ``None`` per edge.

    Returns
    -------
    LayerPlan

    Raises
    ------
    InvalidConfigurationError
        When labeled and unlabeled edges are mixed, or a layer of a multilayer
        network is named like the aggregate pseudo-layer.
    """
    labels = records.layer
    n_missing = sum(1 for lab in labels if lab is None)
    if n_missing and n_missing != len(labels):
        first = next(i for i, lab in enumerate(labels) if lab is None)
        position = int(records.position[first])
        raise InvalidConfigurationError(
            f"{n_missing} edge(s) have no layer label while others do; unlabeled edges are "
            f"not allowed in a multilayer input (first unlabeled edge at input position {position})",
            context={"unlabeled_edges": n_missing, "first_unlabeled_edge": position},
        )

    if not labels or n_missing:
        resolved = EdgeRecords(
            records.source, records.target, records.weight,
            (DEFAULT_LAYER,) * len(records), records.position,
        )
        return LayerPlan((DEFAULT_LAYER,), {DEFAULT_LAYER: resolved}, resolved)

    layers = tuple(unique_iter(labels))
    if len(layers) > 1 and AGGREGATE_LAYER in layers:
        raise InvalidConfigurationError(
            f"Layer name {AGGREGATE_LAYER!r} is reserved for the combined network",
            context={"layer": AGGREGATE_LAYER},
        )
    label_arr = np.asarray(labels, dtype=object)
    by_layer = {name: records.take(label_arr == name) for name in layers}
    return LayerPlan(layers, by_layer, records)


__all__ = ["LayerPlan", "partition_layers"]
