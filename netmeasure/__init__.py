# netmeasure/__init__.py
"""netmeasure: relational records in, graphs and structural measures out."""
from __future__ import annotations

from importlib import import_module
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version
from typing import Any

# Lazily exposed submodules (imported on first attribute access)
_lazy_submodules = {
    # namespaces
    "adapters": "netmeasure.adapters",
    "core": "netmeasure.core",
    "measures": "netmeasure.measures",
    "utils": "netmeasure.utils",
    # adapter modules (direct convenience)
    "networkx": "netmeasure.adapters.networkx",
    "igraph": "netmeasure.adapters.igraph",
    "dataframe": "netmeasure.adapters.dataframe_adapter",
}

# Curated top-level symbols (lazy). name -> (module, attribute)
_lazy_symbols: dict[str, tuple[str, str]] = {
    # Engine
    "measure": ("netmeasure.engine", "measure"),
    "MeasurementEngine": ("netmeasure.engine", "MeasurementEngine"),
    "EngineConfig": ("netmeasure.config", "EngineConfig"),
    "NetworkBundle": ("netmeasure.bundle", "NetworkBundle"),

    # Core
    "Graph": ("netmeasure.core.graph", "Graph"),
    "VertexUniverse": ("netmeasure.core.reconcile", "VertexUniverse"),
    "reconcile_identifiers": ("netmeasure.core.reconcile", "reconcile_identifiers"),
    "partition_layers": ("netmeasure.core.layers", "partition_layers"),

    # Errors
    "NetMeasureError": ("netmeasure.errors", "NetMeasureError"),
    "IdentifierConflictError": ("netmeasure.errors", "IdentifierConflictError"),
    "InvalidConfigurationError": ("netmeasure.errors", "InvalidConfigurationError"),
    "LayerComputationError": ("netmeasure.errors", "LayerComputationError"),
    "MetricNotApplicableAdvisory": ("netmeasure.errors", "MetricNotApplicableAdvisory"),

    # Adapters
    "to_nx": ("netmeasure.adapters.networkx", "to_nx"),
    "to_igraph": ("netmeasure.adapters.igraph", "to_igraph"),
    "to_dataframes": ("netmeasure.adapters.dataframe_adapter", "to_dataframes"),
    "from_dataframes": ("netmeasure.adapters.dataframe_adapter", "from_dataframes"),
}

__all__ = sorted(set(list(_lazy_submodules) + list(_lazy_symbols)))


def __getattr__(name: str) -> Any:  # PEP 562: lazy attribute resolution
    if name in _lazy_submodules:
        return import_module(_lazy_submodules[name])
    if name in _lazy_symbols:
        mod, attr = _lazy_symbols[name]
        return getattr(import_module(mod), attr)
    raise AttributeError(name)


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(__all__))


try:
    __version__ = _pkg_version("netmeasure")
except PackageNotFoundError:
    __version__ = "0.0.0"
