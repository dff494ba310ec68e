from .structure import AGGREGATE_LAYER, DEFAULT_LAYER, EdgeType
from .reconcile import EdgeRecords, VertexUniverse, read_edge_records, reconcile_identifiers
from .graph import Graph, build_graph
from .layers import LayerPlan, partition_layers

__all__ = [
    "AGGREGATE_LAYER",
    "DEFAULT_LAYER",
    "EdgeType",
    "EdgeRecords",
    "VertexUniverse",
    "read_edge_records",
    "reconcile_identifiers",
    "Graph",
    "build_graph",
    "LayerPlan",
    "partition_layers",
]
