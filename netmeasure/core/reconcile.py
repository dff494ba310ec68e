"""
Identifier reconciliation.

Edges and the optional node table are supplied independently. This module
normalizes both into one ordered vertex universe (external id -> dense index)
and a typed attribute table joined to it by ``vertex_index``.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import polars as pl

from ..config import EngineConfig
from ..errors import IdentifierConflictError, InvalidConfigurationError
from ..utils.validation import is_missing, unique_iter

logger = logging.getLogger(__name__)

DEFAULT_NODE_ID_COLUMN = "id"


def _scalar(x: Any) -> Any:
    """Unwrap numpy scalars so ``np.int64(1)`` and ``1`` name the same vertex."""
    if isinstance(x, np.generic):
        return x.item()
    return x


def _values_equal(a: Any, b: Any) -> bool:
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return a is b


def _id_kind(ids: Sequence[Any]) -> str:
    """Column kind for a set of external ids: "int", "str", "float" or "text"."""
    kinds = {type(x) for x in ids}
    if kinds <= {int}:
        return "int"
    if kinds <= {str}:
        return "str"
    if kinds <= {int, float}:
        return "float"
    return "text"


def _id_series(ids: Sequence[Any], name: str = "id", kind: Optional[str] = None) -> pl.Series:
    """Typed polars column for external ids (Int64, Float64 or Utf8)."""
    kind = kind or _id_kind(ids)
    if kind == "int":
        return pl.Series(name, list(ids), dtype=pl.Int64)
    if kind == "str":
        return pl.Series(name, list(ids), dtype=pl.Utf8)
    if kind == "float":
        return pl.Series(name, [float(x) for x in ids], dtype=pl.Float64)
    return pl.Series(name, [str(x) for x in ids], dtype=pl.Utf8)


def _attribute_series(name: str, values: list) -> pl.Series:
    try:
        return pl.Series(name, values)
    except (TypeError, ValueError, pl.exceptions.PolarsError):
        # mixed value types in one attribute column: keep them as text
        return pl.Series(name, [None if v is None else str(v) for v in values], dtype=pl.Utf8)


class VertexUniverse:
    """
    Ordered, deduplicated set of external vertex identifiers.

    Each identifier maps 1:1 to a dense internal index ``0..n-1`` in first-seen
    order. Instances are built once per engine invocation and then only read.

    Parameters
    ----------
    ids : Iterable[Hashable]
        External identifiers; repeats are ignored after their first occurrence.
    """

    def __init__(self, ids: Iterable[Hashable] = ()):
        self._ids: list = []
        self._index: dict = {}
        for vertex_id in ids:
            self._add(vertex_id)

    def _add(self, vertex_id: Hashable) -> int:
        vertex_id = _scalar(vertex_id)
        idx = self._index.get(vertex_id)
        if idx is None:
            idx = len(self._ids)
            self._index[vertex_id] = idx
            self._ids.append(vertex_id)
        return idx

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(self._ids)

    def __contains__(self, vertex_id) -> bool:
        try:
            return _scalar(vertex_id) in self._index
        except TypeError:
            return False

    def __getitem__(self, index: int):
        return self._ids[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, VertexUniverse):
            return NotImplemented
        return self._ids == other._ids

    def __repr__(self) -> str:
        return f"VertexUniverse(n={len(self._ids)})"

    @property
    def ids(self) -> tuple:
        """External identifiers in index order."""
        return tuple(self._ids)

    def index(self, vertex_id) -> int:
        """Internal index of ``vertex_id``; raises ``KeyError`` when unknown."""
        try:
            return self._index[_scalar(vertex_id)]
        except KeyError:
            raise KeyError(f"Vertex {vertex_id!r} not found") from None

    def indices(self, vertex_ids: Iterable) -> np.ndarray:
        return np.fromiter((self.index(v) for v in vertex_ids), dtype=np.int64)

    def subset(self, indices: Iterable[int]) -> "VertexUniverse":
        """Universe over ``indices`` (kept in ascending index order)."""
        return VertexUniverse(self._ids[i] for i in sorted(set(int(i) for i in indices)))

    def id_series(self, name: str = "id", indices: Optional[Sequence[int]] = None) -> pl.Series:
        """Typed id column; the dtype depends on the whole universe, not the subset."""
        ids = self._ids if indices is None else [self._ids[int(i)] for i in indices]
        return _id_series(ids, name=name, kind=_id_kind(self._ids))


@dataclass(frozen=True)
class EdgeRecords:
    """
    Reconciled edges: parallel arrays over internal vertex indices.

    Attributes
    ----------
    source, target : numpy.ndarray
        ``int64`` endpoint indices into the vertex universe.
    weight : numpy.ndarray
        ``float64`` weights (1.0 where the caller gave none).
    layer : tuple
        Layer label per edge (``None`` when unlabeled).
    position : numpy.ndarray
        Index of each edge in the caller's input sequence.
    """

    source: np.ndarray
    target: np.ndarray
    weight: np.ndarray
    layer: tuple
    position: np.ndarray

    def __len__(self) -> int:
        return int(self.source.shape[0])

    @classmethod
    def empty(cls) -> "EdgeRecords":
        z = np.zeros(0, dtype=np.int64)
        return cls(z, z.copy(), np.zeros(0, dtype=np.float64), (), z.copy())

    def take(self, rows) -> "EdgeRecords":
        """Subset of rows (boolean mask or integer positions), order preserved."""
        rows = np.asarray(rows)
        if rows.dtype == bool:
            rows = np.flatnonzero(rows)
        rows = rows.astype(np.int64, copy=False)
        return EdgeRecords(
            source=self.source[rows],
            target=self.target[rows],
            weight=self.weight[rows],
            layer=tuple(self.layer[i] for i in rows.tolist()),
            position=self.position[rows],
        )


@dataclass
class RawEdges:
    """Caller edges normalized to Python lists, before index resolution."""

    sources: list = field(default_factory=list)
    targets: list = field(default_factory=list)
    weights: list = field(default_factory=list)
    layers: list = field(default_factory=list)
    positions: list = field(default_factory=list)
    dangling: list = field(default_factory=list)  # endpoints of edges dropped via missing_code
    dropped: int = 0

    def __len__(self) -> int:
        return len(self.sources)

    def resolve(self, universe: VertexUniverse) -> EdgeRecords:
        if not self.sources:
            return EdgeRecords.empty()
        return EdgeRecords(
            source=universe.indices(self.sources),
            target=universe.indices(self.targets),
            weight=np.asarray(self.weights, dtype=np.float64),
            layer=tuple(self.layers),
            position=np.asarray(self.positions, dtype=np.int64),
        )


def _check_endpoint(value: Any, position: int, role: str) -> Any:
    value = _scalar(value)
    if is_missing(value):
        raise InvalidConfigurationError(
            f"Edge {position} has a missing {role}",
            context={"edge": position, "role": role},
        )
    if not isinstance(value, Hashable):
        raise InvalidConfigurationError(
            f"Edge {position} has an unhashable {role}: {value!r}",
            context={"edge": position, "role": role, "value": repr(value)},
        )
    return value


def _check_weight(value: Any, position: int) -> float:
    value = _scalar(value)
    if is_missing(value):
        return 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigurationError(
            f"Edge {position} has a non-numeric weight: {value!r}",
            context={"edge": position, "weight": repr(value)},
        )
    value = float(value)
    if math.isinf(value):
        raise InvalidConfigurationError(
            f"Edge {position} has an infinite weight",
            context={"edge": position, "weight": value},
        )
    return value


def _check_layer(value: Any, position: int) -> Optional[str]:
    """Layer label as text; integer relation codes and the like become strings."""
    value = _scalar(value)
    if is_missing(value):
        return None
    if isinstance(value, Hashable) and not isinstance(value, (str, tuple, frozenset)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidConfigurationError(
            f"Edge {position} has a malformed layer label: {value!r}",
            context={"edge": position, "layer": repr(value)},
        )
    return value


def _iter_edge_rows(edges: Any, config: EngineConfig):
    """Yield ``(source, target, weight, layer)`` per caller edge."""
    if isinstance(edges, pl.DataFrame):
        for col in (config.source_column, config.target_column):
            if col not in edges.columns:
                raise InvalidConfigurationError(
                    f"Edge table has no column {col!r}",
                    context={"column": col, "columns": list(edges.columns)},
                )
        src = edges.get_column(config.source_column).to_list()
        tgt = edges.get_column(config.target_column).to_list()
        n = edges.height
        wgt = (
            edges.get_column(config.weight_column).to_list()
            if config.weight_column in edges.columns
            else [None] * n
        )
        lay = (
            edges.get_column(config.layer_column).to_list()
            if config.layer_column in edges.columns
            else [None] * n
        )
        yield from zip(src, tgt, wgt, lay)
        return

    if isinstance(edges, (str, bytes)) or not isinstance(edges, Iterable):
        raise InvalidConfigurationError(
            f"edges must be a polars DataFrame or a sequence of records, got {type(edges).__name__}",
            context={"type": type(edges).__name__},
        )
    for position, row in enumerate(edges):
        if isinstance(row, Mapping):
            if config.source_column not in row or config.target_column not in row:
                raise InvalidConfigurationError(
                    f"Edge {position} lacks {config.source_column!r}/{config.target_column!r}",
                    context={"edge": position},
                )
            yield (
                row[config.source_column],
                row[config.target_column],
                row.get(config.weight_column),
                row.get(config.layer_column),
            )
        elif isinstance(row, (tuple, list)) and 2 <= len(row) <= 4:
            padded = tuple(row) + (None,) * (4 - len(row))
            yield padded
        else:
            raise InvalidConfigurationError(
                f"Edge {position} must be (source, target[, weight[, layer]]) or a mapping, got {row!r}",
                context={"edge": position},
            )


def read_edge_records(edges: Any, config: Optional[EngineConfig] = None) -> RawEdges:
    """
    Normalize caller edges into :class:`RawEdges` without touching the input.

    Parameters
    ----------
    edges : polars.DataFrame | Sequence[Mapping] | Sequence[tuple]
        Edge records ``(source, target[, weight[, layer]])``.
    config : EngineConfig, optional
        Supplies field names and ``missing_code``.

    Returns
    -------
    RawEdges

    Raises
    ------
    InvalidConfigurationError
        Missing endpoints, non-numeric or infinite weights, malformed layers.
    """
    config = config or EngineConfig()
    raw = RawEdges()
    missing_code = config.missing_code
    for position, (src, tgt, wgt, lay) in enumerate(_iter_edge_rows(edges, config)):
        if missing_code is not None:
            src_missing = _values_equal(_scalar(src), missing_code)
            tgt_missing = _values_equal(_scalar(tgt), missing_code)
            if src_missing or tgt_missing:
                for value, is_code in ((src, src_missing), (tgt, tgt_missing)):
                    if not is_code and not is_missing(_scalar(value)):
                        raw.dangling.append(_check_endpoint(value, position, "endpoint"))
                raw.dropped += 1
                continue
        raw.sources.append(_check_endpoint(src, position, "source"))
        raw.targets.append(_check_endpoint(tgt, position, "target"))
        raw.weights.append(_check_weight(wgt, position))
        raw.layers.append(_check_layer(lay, position))
        raw.positions.append(position)
    return raw


def _iter_node_rows(nodes: Any, node_id_column: Optional[str]):
    """Yield ``(id, {attr: value})`` per node-table row."""
    id_col = node_id_column or DEFAULT_NODE_ID_COLUMN
    if isinstance(nodes, pl.DataFrame):
        if id_col not in nodes.columns:
            raise InvalidConfigurationError(
                f"Node table has no id column {id_col!r}",
                context={"node_id_column": id_col, "columns": list(nodes.columns)},
            )
        for row in nodes.iter_rows(named=True):
            attrs = {k: v for k, v in row.items() if k != id_col}
            yield row[id_col], attrs
        return

    if isinstance(nodes, (str, bytes)) or not isinstance(nodes, Iterable):
        raise InvalidConfigurationError(
            f"nodes must be a polars DataFrame or a sequence of records, got {type(nodes).__name__}",
            context={"type": type(nodes).__name__},
        )
    for position, row in enumerate(nodes):
        if isinstance(row, Mapping):
            if id_col not in row:
                raise InvalidConfigurationError(
                    f"Node row {position} has no id field {id_col!r}",
                    context={"row": position, "node_id_column": id_col},
                )
            yield row[id_col], {k: v for k, v in row.items() if k != id_col}
        elif isinstance(row, tuple) and len(row) == 2 and isinstance(row[1], Mapping):
            yield row[0], dict(row[1])
        elif isinstance(row, tuple) and len(row) == 1:
            yield row[0], {}
        elif isinstance(row, Hashable) and not isinstance(row, tuple):
            yield row, {}
        else:
            raise InvalidConfigurationError(
                f"Node row {position} must be an id, (id,), (id, attrs) or a mapping, got {row!r}",
                context={"row": position},
            )


def _merge_node_rows(nodes: Any, node_id_column: Optional[str]) -> tuple[list, dict, list]:
    """Collapse duplicate node rows; return (ids in order, attrs by id, attribute names)."""
    order: list = []
    merged: dict = {}
    attr_names: list = []
    for position, (vertex_id, attrs) in enumerate(_iter_node_rows(nodes, node_id_column)):
        vertex_id = _scalar(vertex_id)
        if is_missing(vertex_id):
            raise InvalidConfigurationError(
                f"Node row {position} has a missing id",
                context={"row": position},
            )
        if not isinstance(vertex_id, Hashable):
            raise InvalidConfigurationError(
                f"Node row {position} has an unhashable id: {vertex_id!r}",
                context={"row": position},
            )
        for name in attrs:
            if name == "vertex_index":
                raise InvalidConfigurationError(
                    "Node attribute name 'vertex_index' is reserved",
                    context={"attribute": name},
                )
            if name not in attr_names:
                attr_names.append(name)
        clean = {k: (None if is_missing(_scalar(v)) else _scalar(v)) for k, v in attrs.items()}
        if vertex_id not in merged:
            order.append(vertex_id)
            merged[vertex_id] = clean
            continue
        current = merged[vertex_id]
        for name, value in clean.items():
            existing = current.get(name)
            if value is None:
                continue
            if existing is None:
                current[name] = value
            elif not _values_equal(existing, value):
                raise IdentifierConflictError(
                    f"Identifier {vertex_id!r} has conflicting values for attribute "
                    f"{name!r}: {existing!r} != {value!r}",
                    context={"id": vertex_id, "attribute": name},
                )
    return order, merged, attr_names


def reconcile_identifiers(
    sources: Sequence,
    targets: Sequence,
    nodes: Any = None,
    node_id_column: Optional[str] = None,
    extra_ids: Sequence = (),
) -> tuple[VertexUniverse, pl.DataFrame]:
    """
    Unify edge endpoints and node-table ids into one vertex universe.

    Parameters
    ----------
    sources, targets : Sequence
        Parallel edge endpoint sequences (external ids).
    nodes : polars.DataFrame | Sequence, optional
        Node table: a frame, mappings, ``(id, attrs)`` tuples, or bare ids.
    node_id_column : str, optional
        Id field of the node table (default ``"id"``).
    extra_ids : Sequence, optional
        Ids to register after the edge endpoints (e.g. the surviving endpoint
        of an edge dropped for a missing partner).

    Returns
    -------
    (VertexUniverse, polars.DataFrame)
        The universe and its attribute table (``vertex_index`` plus one column
        per attribute, null where a vertex has no value).

    Raises
    ------
    IdentifierConflictError
        One id carries two different non-missing values for an attribute.
    InvalidConfigurationError
        Malformed node table.

    Notes
    -----
    Order is first appearance: for each edge its source then its target, then
    ``extra_ids``, then node-table ids not seen in any edge (these become
    isolates).
    """
    endpoints = (v for pair in zip(sources, targets) for v in pair)
    universe = VertexUniverse(unique_iter(endpoints))
    for vertex_id in extra_ids:
        universe._add(vertex_id)

    merged: dict = {}
    attr_names: list = []
    if nodes is not None:
        node_ids, merged, attr_names = _merge_node_rows(nodes, node_id_column)
        n_edge_ids = len(universe)
        for vertex_id in node_ids:
            universe._add(vertex_id)
        logger.debug(
            "Reconciled %d edge ids with %d node-table ids -> %d vertices (%d isolates from node table)",
            n_edge_ids, len(node_ids), len(universe), len(universe) - n_edge_ids,
        )

    columns = [pl.Series("vertex_index", list(range(len(universe))), dtype=pl.Int64)]
    for name in attr_names:
        values = [merged.get(vertex_id, {}).get(name) for vertex_id in universe]
        columns.append(_attribute_series(name, values))
    attributes = pl.DataFrame(columns)
    return universe, attributes


__all__ = [
    "DEFAULT_NODE_ID_COLUMN",
    "EdgeRecords",
    "RawEdges",
    "VertexUniverse",
    "read_edge_records",
    "reconcile_identifiers",
]
