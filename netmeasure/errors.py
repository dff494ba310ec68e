"""Error hierarchy for netmeasure."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


class NetMeasureError(Exception):
    """Base exception for netmeasure failures."""

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = message if user_message is None else user_message
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class IdentifierConflictError(NetMeasureError, ValueError):
    """One external identifier maps to inconsistent attribute rows."""


class InvalidConfigurationError(NetMeasureError, ValueError):
    """Invalid engine option, edge record, layer label or metric request."""


@dataclass(frozen=True)
class LayerFailure:
    """A per-layer computation that raised, with the layer it belongs to."""

    layer: str
    error: BaseException

    @property
    def message(self) -> str:
        return f"layer {self.layer!r} failed: {type(self.error).__name__}: {self.error}"


class LayerComputationError(NetMeasureError, RuntimeError):
    """One or more per-layer computations failed.

    Attributes
    ----------
    failures : list[LayerFailure]
        Every failed layer with the exception it raised.
    """

    def __init__(self, failures: Sequence[LayerFailure]) -> None:
        layers = [f.layer for f in failures]
        super().__init__(
            f"Computation failed for layer(s): {', '.join(map(str, layers))}",
            context={"layers": layers},
        )
        self.failures = list(failures)


class MetricNotApplicableAdvisory(UserWarning):
    """Warning category for metric applicability advisories."""


__all__ = [
    "NetMeasureError",
    "IdentifierConflictError",
    "InvalidConfigurationError",
    "LayerComputationError",
    "LayerFailure",
    "MetricNotApplicableAdvisory",
]
