"""
Engine driver.

Runs one invocation end to end: reconcile identifiers, partition layers, then
for every work item (each layer, plus the aggregate when there are several
layers) build the graph, extract components and compute node and system
measures. Work items are independent and share only the read-only vertex
universe and attribute table; the output assembler runs once all of them
have finished.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import numpy as np
import polars as pl

from .advisories import INPUT, AdvisoryLog
from .bundle import LayerResult, NetworkBundle, assemble_bundle
from .config import EngineConfig
from .core.graph import build_graph
from .core.layers import LayerPlan, partition_layers
from .core.reconcile import EdgeRecords, VertexUniverse, read_edge_records, reconcile_identifiers
from .errors import InvalidConfigurationError, LayerComputationError, LayerFailure
from .measures.applicability import validate_metric_request
from .measures.components import extract_components
from .measures.node import compute_node_measures
from .measures.system import compute_system_measures
from .utils.logging_utils import log_exception

logger = logging.getLogger(__name__)


class MeasurementEngine:
    """
    Turn relational records into graphs and structural measures.

    Parameters
    ----------
    config : EngineConfig, optional
        Options for every :meth:`run`; defaults to ``EngineConfig()``.

    Examples
    --------
    >>> engine = MeasurementEngine(EngineConfig(n_workers=2))
    >>> bundle = engine.run([("a", "b"), ("b", "c")], directed=False)
    >>> bundle.node_measures["total_degree"].to_list()
    [1, 2, 1]
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def __repr__(self) -> str:
        return f"MeasurementEngine({self.config!r})"

    def run(
        self,
        edges: Any,
        directed: bool,
        nodes: Any = None,
        node_id_column: Optional[str] = None,
        network_name: Optional[str] = None,
    ) -> NetworkBundle:
        """
        Measure one network.

        Parameters
        ----------
        edges : polars.DataFrame | Sequence[Mapping] | Sequence[tuple]
            Edge records ``(source, target[, weight[, layer]])``. Never
            modified.
        directed : bool
            Edge semantics for every layer.
        nodes : polars.DataFrame | Sequence, optional
            Node table; ids that no edge touches become isolates.
        node_id_column : str, optional
            Id field of ``nodes`` (default ``"id"``).
        network_name : str, optional
            Label carried into the bundle and the ``network`` column.

        Returns
        -------
        NetworkBundle

        Raises
        ------
        InvalidConfigurationError
            Bad options, edge records or layer labels; raised before any
            graph is built.
        IdentifierConflictError
            Inconsistent node rows for one identifier.
        LayerComputationError
            One or more work items failed and ``return_partial`` is off.
        """
        config = self.config
        if not isinstance(directed, (bool, np.bool_)):
            raise InvalidConfigurationError(
                f"directed must be a boolean, got {directed!r}",
                context={"directed": repr(directed)},
            )
        directed = bool(directed)
        validate_metric_request(config.metrics, directed)

        run_log = AdvisoryLog(emit_warnings=config.emit_warnings)
        raw = read_edge_records(edges, config)
        if raw.dropped:
            run_log.add(
                f"{raw.dropped} edge(s) with a missing endpoint ({config.missing_code!r}) dropped",
                kind=INPUT,
            )
        universe, attributes = reconcile_identifiers(
            raw.sources,
            raw.targets,
            nodes=nodes,
            node_id_column=node_id_column,
            extra_ids=raw.dangling,
        )
        plan = partition_layers(raw.resolve(universe))
        logger.info(
            "Measuring %s: %d vertices, %d edges, layers=%s",
            network_name or "network", len(universe), len(raw), list(plan.layers),
        )

        results, failures = self._run_work_items(plan, universe, attributes, directed, network_name)

        if failures and not config.return_partial:
            raise LayerComputationError(failures)

        return assemble_bundle(
            plan,
            results,
            universe=universe,
            attributes=attributes,
            network_name=network_name,
            advisories=tuple(run_log),
            failures=tuple(failures),
            separator=config.layer_separator,
        )

    def _run_work_items(
        self,
        plan: LayerPlan,
        universe: VertexUniverse,
        attributes: pl.DataFrame,
        directed: bool,
        network_name: Optional[str],
    ) -> tuple[dict, list]:
        items = list(plan.work_items())

        def work(item):
            key, records = item
            return self._measure_layer(key, records, universe, attributes, directed, network_name)

        if self.config.n_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.config.n_workers) as executor:
                futures = [executor.submit(work, item) for item in items]
                # collected in submission order; exception() waits for each future
                outcomes = []
                for (key, _), future in zip(items, futures):
                    exc = future.exception()
                    outcomes.append((key, future.result() if exc is None else exc))
        else:
            outcomes = []
            for key, records in items:
                try:
                    outcomes.append((key, work((key, records))))
                except Exception as exc:
                    outcomes.append((key, exc))

        results: dict = {}
        failures: list = []
        for key, outcome in outcomes:
            if isinstance(outcome, BaseException):
                log_exception(logger, outcome)
                failures.append(LayerFailure(key, outcome))
            else:
                results[key] = outcome
        return results, failures

    def _measure_layer(
        self,
        key: str,
        records: EdgeRecords,
        universe: VertexUniverse,
        attributes: pl.DataFrame,
        directed: bool,
        network_name: Optional[str],
    ) -> LayerResult:
        config = self.config
        log = AdvisoryLog(layer=key, emit_warnings=config.emit_warnings)
        logger.debug("Layer %r: %d edge(s)", key, len(records))

        graph = build_graph(universe, records, directed=directed, attributes=attributes, name=key)
        components = extract_components(graph)
        node = compute_node_measures(graph, config, log)
        system = compute_system_measures(
            graph,
            node.table,
            layer=key,
            network_name=network_name,
            components=components,
            config=config,
            advisories=log,
        )
        return LayerResult(
            key=key,
            graph=graph,
            node_measures=node.table,
            system_row=system.row,
            components=components,
            advisories=tuple(log),
        )


def measure(
    edges: Any,
    directed: bool,
    nodes: Any = None,
    node_id_column: Optional[str] = None,
    network_name: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    **options: Any,
) -> NetworkBundle:
    """
    Measure one network with a throwaway :class:`MeasurementEngine`.

    Parameters
    ----------
    edges, directed, nodes, node_id_column, network_name
        See :meth:`MeasurementEngine.run`.
    config : EngineConfig, optional
        Full configuration. Mutually exclusive with ``**options``.
    **options
        :class:`EngineConfig` fields, e.g. ``weight_type="distance"``.

    Returns
    -------
    NetworkBundle

    Raises
    ------
    InvalidConfigurationError
        Unknown option names, or both ``config`` and options given.
    """
    if config is not None and options:
        raise InvalidConfigurationError(
            "Pass either config or keyword options, not both",
            context={"options": sorted(options)},
        )
    if config is None:
        config = EngineConfig.from_options(options)
    return MeasurementEngine(config).run(
        edges,
        directed,
        nodes=nodes,
        node_id_column=node_id_column,
        network_name=network_name,
    )


__all__ = ["MeasurementEngine", "measure"]
