from .applicability import (
    APPLICABILITY,
    METRIC_NAMES,
    METRIC_RULES,
    GraphCondition,
    applicable_metrics,
    validate_metric_request,
)
from .components import Components, extract_components
from .node import NodeMeasures, compute_node_measures
from .system import SystemMeasures, compute_system_measures

__all__ = [
    "APPLICABILITY",
    "METRIC_NAMES",
    "METRIC_RULES",
    "GraphCondition",
    "applicable_metrics",
    "validate_metric_request",
    "Components",
    "extract_components",
    "NodeMeasures",
    "compute_node_measures",
    "SystemMeasures",
    "compute_system_measures",
]
