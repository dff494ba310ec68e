# tests/test_engine.py
import copy
import os
import sys
import unittest
from unittest import mock

import numpy as np
import polars as pl
from polars.testing import assert_frame_equal

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from netmeasure import EngineConfig, MeasurementEngine, measure
from netmeasure.adapters.dataframe_adapter import from_dataframes, to_dataframes
from netmeasure.errors import (
    IdentifierConflictError,
    InvalidConfigurationError,
    LayerComputationError,
    MetricNotApplicableAdvisory,
)
from netmeasure.measures.node import compute_node_measures

MULTILAYER = [
    ("A", "B", 1.0, "marriage"),
    ("A", "C", 1.0, "business"),
]


def _edge_multiset(graph):
    return sorted(graph.edge_list(), key=repr)


class TestScenarios(unittest.TestCase):

    def test_directed_triangle(self):
        bundle = measure([(1, 2), (2, 3), (3, 1)], directed=True)
        self.assertEqual(bundle.layers, ["default"])
        self.assertFalse(bundle.is_multilayer)
        self.assertEqual(bundle.graph.num_vertices, 3)
        self.assertEqual(bundle.graph.num_edges, 3)
        self.assertEqual(bundle.largest_component.num_vertices, 3)
        bi = bundle.largest_biconnected_component
        self.assertEqual(bi.vertices(), [1, 2, 3])
        self.assertEqual(bi.num_edges, 3)
        self.assertIs(bundle.largest_bipartite_component, bi)
        system = bundle.system_measures
        self.assertEqual(system.height, 1)
        self.assertEqual(system.get_column("reciprocity").to_list(), [0.0])
        self.assertEqual(system.get_column("num_components").to_list(), [1])
        self.assertIn("[default] eigenvector centrality computed on symmetrized graph", bundle.advisories)

    def test_isolate_from_node_table(self):
        bundle = measure([(1, 2), (3, 4)], directed=False, nodes=[1, 2, 3, 4, 5])
        nm = bundle.node_measures
        self.assertEqual(nm.get_column("id").to_list(), [1, 2, 3, 4, 5])
        self.assertEqual(nm.get_column("total_degree").to_list(), [1, 1, 1, 1, 0])
        self.assertEqual(bundle.graph.num_vertices, 5)
        self.assertEqual(bundle.graph.isolates().tolist(), [4])
        self.assertEqual(bundle.largest_component.vertices(), [1, 2])
        row = bundle.system_measures.row(0, named=True)
        self.assertEqual(row["num_components"], 3)
        self.assertEqual(row["num_isolates"], 1)
        self.assertEqual(row["largest_component_size"], 2)

    def test_two_layers(self):
        bundle = measure(MULTILAYER, directed=False, network_name="village")
        self.assertEqual(bundle.layers, ["marriage", "business"])
        self.assertTrue(bundle.is_multilayer)
        self.assertEqual(bundle.graph.num_vertices, 3)
        self.assertEqual(bundle.graph.num_edges, 2)

        nm = bundle.node_measures
        for col in ("total_degree", "marriage_total_degree", "business_total_degree"):
            self.assertIn(col, nm.columns)
        a = nm.filter(pl.col("id") == "A").row(0, named=True)
        self.assertEqual(a["total_degree"], 2)
        self.assertEqual(a["marriage_total_degree"], 1)
        self.assertEqual(a["business_total_degree"], 1)

        self.assertEqual(bundle.system_measures.get_column("layer").to_list(), ["marriage", "business", "aggregate"])
        self.assertEqual(bundle.system_measures.get_column("network").to_list(), ["village"] * 3)
        self.assertEqual(bundle.edgelist.get_column("layer").to_list(), ["marriage", "business"])
        self.assertEqual(set(bundle.edgelist_by_layer), {"marriage", "business"})
        self.assertEqual(bundle.edgelist_by_layer["business"].get_column("target").to_list(), ["C"])
        # every layer graph spans the whole universe
        self.assertEqual(bundle.graph_by_layer["marriage"].num_vertices, 3)
        self.assertEqual(set(bundle.largest_component_by_layer), {"marriage", "business"})
        self.assertIn("total_degree", bundle.node_measures_by_layer["marriage"].columns)


class TestProperties(unittest.TestCase):

    def test_universe_size_is_distinct_id_count(self):
        edges = [("a", "b"), ("b", "c"), ("c", "a"), ("a", "b")]
        nodes = ["c", "d", "d", "e"]
        bundle = measure(edges, directed=True, nodes=nodes)
        self.assertEqual(bundle.graph.num_vertices, 5)
        self.assertEqual(bundle.node_measures.height, 5)

    def test_single_layer_tables_match(self):
        bundle = measure([(1, 2), (2, 3)], directed=False)
        assert_frame_equal(bundle.node_measures, bundle.node_measures_by_layer["default"])
        self.assertIs(bundle.graph, bundle.graph_by_layer["default"])

    def test_aggregate_degree_is_sum_of_layers(self):
        edges = [
            (1, 2, 1.0, "x"), (2, 3, 1.0, "x"), (1, 2, 1.0, "y"),
            (3, 4, 1.0, "y"), (4, 4, 1.0, "z"), (1, 4, 1.0, "z"),
        ]
        nm = measure(edges, directed=True).node_measures
        total = nm.get_column("total_degree").to_numpy()
        layered = sum(nm.get_column(f"{k}_total_degree").to_numpy() for k in ("x", "y", "z"))
        self.assertTrue(np.array_equal(total, layered))

    def test_round_trip_through_edgelist(self):
        nodes = [{"id": "a", "kind": "p"}, {"id": "z", "kind": "q"}]
        bundle = measure([("a", "b", 2.0), ("b", "c", 1.0), ("b", "c", 1.0)], directed=True, nodes=nodes)
        rebuilt = from_dataframes(bundle.edgelist, to_dataframes(bundle.graph)["nodes"], directed=True)
        self.assertEqual(rebuilt.num_vertices, bundle.graph.num_vertices)
        self.assertEqual(_edge_multiset(rebuilt), _edge_multiset(bundle.graph))
        self.assertEqual(rebuilt.vertices_view().get_column("kind").to_list(), ["p", None, None, "q"])

    def test_idempotent(self):
        edges = [(i, (i * 7) % 11, 1.0 + (i % 3), "odd" if i % 2 else "even") for i in range(20)]
        first = measure(edges, directed=False)
        second = measure(edges, directed=False)
        threaded = measure(edges, directed=False, n_workers=3)
        self.assertEqual(first.fingerprint(), second.fingerprint())
        self.assertEqual(first.fingerprint(), threaded.fingerprint())
        assert_frame_equal(first.node_measures, threaded.node_measures)

    def test_input_not_mutated(self):
        edges = [{"source": 1, "target": 2, "weight": 2, "layer": "k"}]
        nodes = [{"id": 1, "age": 3}]
        before = (copy.deepcopy(edges), copy.deepcopy(nodes))
        measure(edges, directed=True, nodes=nodes)
        self.assertEqual((edges, nodes), before)


class TestConfigurationAndErrors(unittest.TestCase):

    def test_directed_must_be_bool(self):
        with self.assertRaises(InvalidConfigurationError):
            measure([(1, 2)], directed="yes")

    def test_unknown_option(self):
        with self.assertRaises(InvalidConfigurationError):
            measure([(1, 2)], directed=True, colour="red")

    def test_config_and_options_are_exclusive(self):
        with self.assertRaises(InvalidConfigurationError):
            measure([(1, 2)], directed=True, config=EngineConfig(), n_workers=2)

    def test_bad_config_values(self):
        with self.assertRaises(InvalidConfigurationError):
            EngineConfig(weight_type="cost")
        with self.assertRaises(InvalidConfigurationError):
            EngineConfig(n_workers=0)
        with self.assertRaises(InvalidConfigurationError):
            EngineConfig(metrics=())

    def test_directed_only_metric_on_undirected_input(self):
        with self.assertRaises(InvalidConfigurationError) as ctx:
            measure([(1, 2)], directed=False, metrics=["in_degree"])
        self.assertEqual(ctx.exception.context["metrics"], ["in_degree"])

    def test_mixed_layer_labels(self):
        with self.assertRaises(InvalidConfigurationError):
            measure([(1, 2, 1.0, "a"), (2, 3)], directed=True)

    def test_identifier_conflict_aborts(self):
        nodes = [{"id": 1, "sex": "f"}, {"id": 1, "sex": "m"}]
        with self.assertRaises(IdentifierConflictError):
            measure([(1, 2)], directed=True, nodes=nodes)

    def test_missing_code(self):
        bundle = measure([(1, 2), (3, 0)], directed=False, missing_code=0)
        self.assertEqual(bundle.graph.vertices(), [1, 2, 3])
        self.assertEqual(bundle.graph.num_edges, 1)
        self.assertTrue(any("dropped" in m for m in bundle.advisories))

    def test_emit_warnings(self):
        with self.assertWarns(MetricNotApplicableAdvisory):
            measure([(1, 2), (2, 3), (3, 1)], directed=True, emit_warnings=True)

    def test_dataframe_input_with_custom_columns(self):
        df = pl.DataFrame({"ego": ["a", "b"], "alter": ["b", "c"], "tie": ["kin", "kin"]})
        bundle = measure(df, directed=False, source_column="ego", target_column="alter", layer_column="tie")
        self.assertEqual(bundle.layers, ["kin"])
        self.assertEqual(bundle.node_measures.get_column("total_degree").to_list(), [1, 2, 1])

    def test_custom_layer_separator(self):
        config = EngineConfig(layer_separator=".")
        nm = MeasurementEngine(config).run(MULTILAYER, directed=False).node_measures
        self.assertIn("marriage.total_degree", nm.columns)

    def test_integer_layer_labels(self):
        bundle = measure([(1, 2, 1.0, 1), (2, 3, 1.0, 2)], directed=False)
        self.assertEqual(bundle.layers, ["1", "2"])
        self.assertIn("1_total_degree", bundle.node_measures.columns)
        self.assertEqual(bundle.edgelist.get_column("layer").to_list(), ["1", "2"])

    def test_eccentricity_ignores_weights(self):
        bundle = measure([(1, 2, 4.0), (2, 3, 4.0)], directed=False)
        self.assertEqual(bundle.node_measures.get_column("eccentricity").to_list(), [2.0, 1.0, 2.0])

    def test_default_battery_reports_every_omission(self):
        advisories = measure([(1, 2), (2, 3)], directed=False).advisories
        self.assertIn("[default] in_degree omitted: in-degree requires a directed graph", advisories)
        self.assertIn("[default] total_weighted_degree omitted: weighted degree requires edge weights", advisories)

    def test_mixed_id_types_round_trip_as_text(self):
        bundle = measure([(1, "a"), ("a", 2)], directed=True)
        edgelist = bundle.edgelist
        self.assertEqual(edgelist.schema["source"], pl.Utf8)
        pairs = list(zip(edgelist.get_column("source").to_list(), edgelist.get_column("target").to_list()))
        self.assertEqual(pairs, [("1", "a"), ("a", "2")])
        self.assertEqual(bundle.node_measures.get_column("id").to_list(), ["1", "a", "2"])
        rebuilt = measure(edgelist, directed=True)
        self.assertEqual([e[:2] for e in rebuilt.graph.edge_list()], pairs)


class TestLayerFailures(unittest.TestCase):

    @staticmethod
    def _flaky(graph, config=None, advisories=None):
        if graph.name == "business":
            raise RuntimeError("boom")
        return compute_node_measures(graph, config, advisories)

    def test_failure_is_raised_with_layer(self):
        with mock.patch("netmeasure.engine.compute_node_measures", side_effect=self._flaky):
            with self.assertRaises(LayerComputationError) as ctx:
                measure(MULTILAYER, directed=False)
        self.assertEqual([f.layer for f in ctx.exception.failures], ["business"])
        self.assertIsInstance(ctx.exception.failures[0].error, RuntimeError)

    def test_partial_results(self):
        with mock.patch("netmeasure.engine.compute_node_measures", side_effect=self._flaky):
            bundle = measure(MULTILAYER, directed=False, return_partial=True, n_workers=2)
        self.assertEqual([f.layer for f in bundle.failures], ["business"])
        self.assertEqual(set(bundle.graph_by_layer), {"marriage"})
        self.assertIn("marriage_total_degree", bundle.node_measures.columns)
        self.assertNotIn("business_total_degree", bundle.node_measures.columns)
        self.assertEqual(bundle.system_measures.get_column("layer").to_list(), ["marriage", "aggregate"])
        self.assertTrue(any(m.startswith("[business] layer 'business' failed") for m in bundle.advisories))


if __name__ == "__main__":
    unittest.main()
