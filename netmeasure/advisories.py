"""Non-fatal diagnostics collected during a run and returned with the results."""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .errors import MetricNotApplicableAdvisory

logger = logging.getLogger(__name__)

# Advisory kinds
NOT_APPLICABLE = "metric_not_applicable"
SUBSTITUTED = "metric_substituted"
INPUT = "input"
LAYER_FAILURE = "layer_failure"


@dataclass(frozen=True)
class Advisory:
    """One advisory: what happened, to which metric, in which layer."""

    message: str
    layer: Optional[str] = None
    metric: Optional[str] = None
    kind: str = NOT_APPLICABLE

    def __str__(self) -> str:
        if self.layer is None:
            return self.message
        return f"[{self.layer}] {self.message}"


class AdvisoryLog:
    """
    Ordered advisory collector.

    Each per-layer worker owns its own log; logs are merged by the output
    assembler after all layers finish, so no locking is involved.

    Parameters
    ----------
    layer : str, optional
        Layer stamped on every advisory added through :meth:`add`.
    emit_warnings : bool
        Also emit each advisory as a :class:`MetricNotApplicableAdvisory`.
    """

    def __init__(self, layer: Optional[str] = None, emit_warnings: bool = False):
        self.layer = layer
        self.emit_warnings = emit_warnings
        self._items: list[Advisory] = []

    def add(self, message: str, *, metric: Optional[str] = None, kind: str = NOT_APPLICABLE) -> Advisory:
        item = Advisory(message=message, layer=self.layer, metric=metric, kind=kind)
        self._items.append(item)
        logger.info("advisory: %s", item)
        if self.emit_warnings:
            warnings.warn(str(item), MetricNotApplicableAdvisory, stacklevel=2)
        return item

    def extend(self, items: Iterable[Advisory]) -> None:
        self._items.extend(items)

    def __iter__(self) -> Iterator[Advisory]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def messages(self) -> list[str]:
        return [str(item) for item in self._items]

    def for_metric(self, metric: str) -> list[Advisory]:
        return [item for item in self._items if item.metric == metric]
