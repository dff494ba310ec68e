"""Engine configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from netmeasure.errors import InvalidConfigurationError

WEIGHT_TYPES = ("frequency", "distance")


@dataclass(frozen=True)
class EngineConfig:
    """Options for one engine invocation.

    Parameters
    ----------
    weight_type : {"frequency", "distance"}
        How edge weights enter path-based measures. Frequency weights are tie
        strengths (path distance is ``1 / weight``); distance weights are used
        as path lengths directly.
    metrics : tuple[str, ...], optional
        Explicit subset of the node-level battery. ``None`` means every
        applicable metric.
    n_workers : int
        Thread workers for per-layer computation; 1 runs sequentially.
    return_partial : bool
        Return a bundle without the failed layers instead of raising
        :class:`~netmeasure.errors.LayerComputationError`.
    emit_warnings : bool
        Also emit advisories as :class:`MetricNotApplicableAdvisory` warnings.
    bonacich_exponent : float, optional
        Attenuation factor for Bonacich power centrality. ``None`` picks
        ``0.5 / lambda_max`` of the adjacency matrix.
    missing_code : Any, optional
        Endpoint value meaning "no tie partner". Edges carrying it are dropped
        (with an advisory); their other endpoint still enters the universe.
    source_column, target_column, weight_column, layer_column : str
        Field names used when edges arrive as frames or mappings.
    layer_separator : str
        Joins a layer name and a metric name in multilayer node tables.
    """

    weight_type: str = "frequency"
    metrics: Optional[tuple[str, ...]] = None
    n_workers: int = 1
    return_partial: bool = False
    emit_warnings: bool = False
    bonacich_exponent: Optional[float] = None
    missing_code: Any = None
    source_column: str = "source"
    target_column: str = "target"
    weight_column: str = "weight"
    layer_column: str = "layer"
    layer_separator: str = "_"

    def __post_init__(self) -> None:
        if self.weight_type not in WEIGHT_TYPES:
            raise InvalidConfigurationError(
                f"weight_type must be one of {WEIGHT_TYPES}, got {self.weight_type!r}",
                context={"weight_type": self.weight_type},
            )
        if isinstance(self.n_workers, bool) or not isinstance(self.n_workers, int) or self.n_workers < 1:
            raise InvalidConfigurationError(
                f"n_workers must be a positive integer, got {self.n_workers!r}",
                context={"n_workers": self.n_workers},
            )
        if self.metrics is not None:
            if isinstance(self.metrics, str):
                metrics = (self.metrics,)
            else:
                metrics = tuple(self.metrics)
            if not metrics or not all(isinstance(m, str) and m for m in metrics):
                raise InvalidConfigurationError(
                    f"metrics must be a non-empty sequence of metric names, got {self.metrics!r}",
                    context={"metrics": self.metrics},
                )
            # frozen: bypass __setattr__ to store the normalized tuple
            object.__setattr__(self, "metrics", metrics)
        if self.bonacich_exponent is not None and not isinstance(self.bonacich_exponent, (int, float)):
            raise InvalidConfigurationError(
                f"bonacich_exponent must be numeric, got {self.bonacich_exponent!r}",
                context={"bonacich_exponent": self.bonacich_exponent},
            )
        for name in ("source_column", "target_column", "weight_column", "layer_column"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise InvalidConfigurationError(
                    f"{name} must be a non-empty string, got {value!r}",
                    context={name: value},
                )
        if not isinstance(self.layer_separator, str):
            raise InvalidConfigurationError(
                f"layer_separator must be a string, got {self.layer_separator!r}",
                context={"layer_separator": self.layer_separator},
            )

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from keyword options, rejecting unknown names."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown engine option(s): {', '.join(unknown)}",
                context={"options": unknown},
            )
        return cls(**dict(options))


__all__ = ["EngineConfig", "WEIGHT_TYPES"]
