"""
Declarative metric applicability.

Which node-level metrics a graph gets is decided once per graph from its
``(directed, weighted, connected)`` condition by looking it up in
:data:`APPLICABILITY`, built from :data:`METRIC_RULES`. The node metric engine
never branches on graph flags itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from itertools import product
from typing import TYPE_CHECKING, Iterable, Optional

from scipy.sparse import csgraph

from ..errors import InvalidConfigurationError

if TYPE_CHECKING:
    from ..core.graph import Graph


@dataclass(frozen=True)
class GraphCondition:
    directed: bool
    weighted: bool
    connected: bool

    @classmethod
    def of(cls, graph: "Graph") -> "GraphCondition":
        """Condition of ``graph``; connectivity is weak for directed graphs."""
        if graph.num_vertices <= 1:
            connected = True
        else:
            n_comp, _ = csgraph.connected_components(
                graph.adjacency(), directed=graph.directed, connection="weak"
            )
            connected = n_comp == 1
        return cls(directed=graph.directed, weighted=graph.is_weighted, connected=connected)


@dataclass(frozen=True)
class MetricRule:
    """
    Applicability of one node-level metric (one output column).

    ``directed``/``weighted`` are ``None`` for "any", else the required value.
    ``omit_reason`` is reported whenever the metric is left out.
    ``notes`` maps a condition flag (``"directed"``, ``"disconnected"``) to an
    advisory attached when the metric is computed under that condition.
    """

    name: str
    directed: Optional[bool] = None
    weighted: Optional[bool] = None
    omit_reason: str = ""
    notes: dict = field(default_factory=dict)

    def eligible(self, condition: GraphCondition) -> bool:
        if self.directed is not None and condition.directed != self.directed:
            return False
        if self.weighted is not None and condition.weighted != self.weighted:
            return False
        return True


METRIC_RULES: tuple[MetricRule, ...] = (
    MetricRule("total_degree"),
    MetricRule("in_degree", directed=True, omit_reason="in-degree requires a directed graph"),
    MetricRule("out_degree", directed=True, omit_reason="out-degree requires a directed graph"),
    MetricRule("total_weighted_degree", weighted=True, omit_reason="weighted degree requires edge weights"),
    MetricRule(
        "in_weighted_degree", directed=True, weighted=True,
        omit_reason="weighted in-degree requires a directed, weighted graph",
    ),
    MetricRule(
        "out_weighted_degree", directed=True, weighted=True,
        omit_reason="weighted out-degree requires a directed, weighted graph",
    ),
    MetricRule("betweenness"),
    MetricRule(
        "closeness",
        notes={"disconnected": "closeness on a disconnected graph is scaled by the share of reachable vertices"},
    ),
    MetricRule(
        "eccentricity",
        notes={"disconnected": "eccentricity is infinite for vertices that cannot reach every other vertex"},
    ),
    MetricRule("reachable"),
    MetricRule("coreness"),
    MetricRule(
        "local_transitivity", directed=False,
        omit_reason="local transitivity requires an undirected graph",
    ),
    MetricRule(
        "eigen_centrality",
        notes={
            "directed": "eigenvector centrality computed on symmetrized graph",
            "disconnected": "eigenvector centrality on a disconnected graph concentrates on the dominant component",
        },
    ),
    MetricRule(
        "bonacich_power",
        notes={"directed": "Bonacich power centrality computed on symmetrized graph"},
    ),
    MetricRule(
        "burt_constraint", directed=False, weighted=True,
        omit_reason="Burt's constraint requires a weighted, undirected graph",
    ),
    MetricRule(
        "burt_effective_size", directed=False, weighted=True,
        omit_reason="Burt's effective size requires a weighted, undirected graph",
    ),
)

_RULES_BY_NAME = {rule.name: rule for rule in METRIC_RULES}
METRIC_NAMES: tuple[str, ...] = tuple(_RULES_BY_NAME)
DIRECTED_ONLY: frozenset = frozenset(r.name for r in METRIC_RULES if r.directed is True)


def _build_table() -> dict:
    table = {}
    for directed, weighted, connected in product((False, True), repeat=3):
        cond = GraphCondition(directed, weighted, connected)
        table[(directed, weighted, connected)] = {r.name: r.eligible(cond) for r in METRIC_RULES}
    return table


# (directed, weighted, connected) -> {metric name -> eligible}
APPLICABILITY: dict = _build_table()


@dataclass(frozen=True)
class MetricPlan:
    """Metrics to compute for one graph, plus the advisories the choice implies."""

    metrics: tuple[str, ...]
    omitted: dict
    notes: dict


def validate_metric_request(requested: Optional[Iterable[str]], directed: bool) -> None:
    """
    Reject unknown metric names and directed-only metrics on undirected input.

    Raises
    ------
    InvalidConfigurationError
    """
    if requested is None:
        return
    unknown = [m for m in requested if m not in _RULES_BY_NAME]
    if unknown:
        raise InvalidConfigurationError(
            f"Unknown metric(s): {', '.join(unknown)}",
            context={"metrics": unknown, "known": list(METRIC_NAMES)},
        )
    if not directed:
        bad = [m for m in requested if m in DIRECTED_ONLY]
        if bad:
            raise InvalidConfigurationError(
                f"Directed-only metric(s) requested for an undirected network: {', '.join(bad)}",
                context={"metrics": bad, "directed": directed},
            )


def applicable_metrics(condition: GraphCondition, requested: Optional[Iterable[str]] = None) -> MetricPlan:
    """
    Look up the metric plan for ``condition``.

    Parameters
    ----------
    condition : GraphCondition
    requested : Iterable[str], optional
        Explicit subset; ``None`` means the whole battery.

    Returns
    -------
    MetricPlan
        ``metrics`` in battery order; ``omitted`` maps left-out metrics to the
        reason they were left out; ``notes`` maps computed metrics to caveats.
    """
    eligible = APPLICABILITY[(condition.directed, condition.weighted, condition.connected)]
    wanted = set(METRIC_NAMES) if requested is None else set(requested)

    metrics, omitted, notes = [], {}, {}
    for rule in METRIC_RULES:
        if rule.name not in wanted:
            continue
        if not eligible[rule.name]:
            omitted[rule.name] = f"{rule.name} omitted: {rule.omit_reason}"
            continue
        metrics.append(rule.name)
        caveats = []
        if condition.directed and "directed" in rule.notes:
            caveats.append(rule.notes["directed"])
        if not condition.connected and "disconnected" in rule.notes:
            caveats.append(rule.notes["disconnected"])
        if caveats:
            notes[rule.name] = caveats
    return MetricPlan(tuple(metrics), omitted, notes)


__all__ = [
    "APPLICABILITY",
    "DIRECTED_ONLY",
    "GraphCondition",
    "METRIC_NAMES",
    "METRIC_RULES",
    "MetricPlan",
    "MetricRule",
    "applicable_metrics",
    "validate_metric_request",
]
