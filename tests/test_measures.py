# tests/test_measures.py
import math
import os
import sys
import unittest

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from netmeasure.advisories import AdvisoryLog
from netmeasure.config import EngineConfig
from netmeasure.core.graph import Graph, build_graph
from netmeasure.core.reconcile import VertexUniverse, read_edge_records, reconcile_identifiers
from netmeasure.errors import InvalidConfigurationError
from netmeasure.measures.applicability import (
    APPLICABILITY,
    GraphCondition,
    METRIC_NAMES,
    applicable_metrics,
    validate_metric_request,
)
from netmeasure.measures.components import extract_components
from netmeasure.measures.node import compute_node_measures
from netmeasure.measures.system import compute_system_measures


def _graph(edges, directed=True, nodes=None):
    raw = read_edge_records(edges)
    universe, attrs = reconcile_identifiers(raw.sources, raw.targets, nodes=nodes)
    return build_graph(universe, raw.resolve(universe), directed=directed, attributes=attrs, name="g")


TRIANGLE = [(1, 2), (2, 3), (3, 1)]


class TestApplicability(unittest.TestCase):

    def test_table_covers_every_condition(self):
        self.assertEqual(len(APPLICABILITY), 8)
        for eligible in APPLICABILITY.values():
            self.assertEqual(set(eligible), set(METRIC_NAMES))

    def test_undirected_unweighted(self):
        row = APPLICABILITY[(False, False, True)]
        self.assertTrue(row["total_degree"])
        self.assertFalse(row["in_degree"])
        self.assertTrue(row["local_transitivity"])
        self.assertFalse(row["burt_constraint"])

    def test_constraint_needs_weighted_undirected(self):
        self.assertTrue(APPLICABILITY[(False, True, False)]["burt_constraint"])
        self.assertFalse(APPLICABILITY[(True, True, True)]["burt_constraint"])

    def test_directed_plan_notes_symmetrization(self):
        plan = applicable_metrics(GraphCondition(directed=True, weighted=False, connected=True))
        self.assertIn("in_degree", plan.metrics)
        self.assertNotIn("local_transitivity", plan.metrics)
        self.assertIn("local_transitivity", plan.omitted)
        self.assertIn("eigenvector centrality computed on symmetrized graph", plan.notes["eigen_centrality"])
        self.assertEqual(
            plan.omitted["total_weighted_degree"],
            "total_weighted_degree omitted: weighted degree requires edge weights",
        )

    def test_every_omission_is_reported(self):
        plan = applicable_metrics(GraphCondition(directed=False, weighted=False, connected=True))
        self.assertEqual(
            set(plan.omitted),
            {
                "in_degree", "out_degree", "total_weighted_degree", "in_weighted_degree",
                "out_weighted_degree", "burt_constraint", "burt_effective_size",
            },
        )
        self.assertEqual(set(plan.metrics) | set(plan.omitted), set(METRIC_NAMES))

    def test_explicit_request_reports_omissions(self):
        cond = GraphCondition(directed=False, weighted=False, connected=True)
        plan = applicable_metrics(cond, ["total_degree", "total_weighted_degree"])
        self.assertEqual(plan.metrics, ("total_degree",))
        self.assertIn("total_weighted_degree", plan.omitted)

    def test_validate_metric_request(self):
        validate_metric_request(None, directed=False)
        validate_metric_request(["in_degree"], directed=True)
        with self.assertRaises(InvalidConfigurationError):
            validate_metric_request(["in_degree"], directed=False)
        with self.assertRaises(InvalidConfigurationError):
            validate_metric_request(["pagerank"], directed=True)


class TestNodeMeasures(unittest.TestCase):

    def test_directed_triangle(self):
        result = compute_node_measures(_graph(TRIANGLE))
        t = result.table
        self.assertEqual(t.get_column("total_degree").to_list(), [2, 2, 2])
        self.assertEqual(t.get_column("in_degree").to_list(), [1, 1, 1])
        self.assertEqual(t.get_column("betweenness").to_list(), [1.0, 1.0, 1.0])
        for value in t.get_column("closeness").to_list():
            self.assertAlmostEqual(value, 2 / 3)
        self.assertEqual(t.get_column("eccentricity").to_list(), [2.0, 2.0, 2.0])
        self.assertEqual(t.get_column("reachable").to_list(), [2, 2, 2])
        self.assertNotIn("local_transitivity", t.columns)
        self.assertNotIn("burt_constraint", t.columns)
        messages = result.advisories.messages()
        self.assertTrue(any("eigenvector centrality computed on symmetrized graph" in m for m in messages))
        self.assertTrue(any("local_transitivity omitted" in m for m in messages))

    def test_undirected_path(self):
        t = compute_node_measures(_graph([("a", "b"), ("b", "c")], directed=False)).table
        self.assertEqual(t.get_column("id").to_list(), ["a", "b", "c"])
        self.assertEqual(t.get_column("betweenness").to_list(), [0.0, 1.0, 0.0])
        self.assertEqual(t.get_column("local_transitivity").to_list(), [0.0, 0.0, 0.0])
        self.assertEqual(t.get_column("coreness").to_list(), [1, 1, 1])
        self.assertNotIn("in_degree", t.columns)

    def test_eccentricity_counts_hops(self):
        t = compute_node_measures(_graph([(1, 2, 4.0), (2, 3, 4.0)], directed=False)).table
        self.assertEqual(t.get_column("eccentricity").to_list(), [2.0, 1.0, 2.0])
        self.assertEqual(t.get_column("reachable").to_list(), [2, 2, 2])

    def test_disconnected_paths_are_infinite_not_errors(self):
        g = _graph([(1, 2), (3, 4)], directed=False)
        result = compute_node_measures(g)
        t = result.table
        self.assertTrue(all(math.isinf(v) for v in t.get_column("eccentricity").to_list()))
        self.assertEqual(t.get_column("reachable").to_list(), [1, 1, 1, 1])
        for value in t.get_column("closeness").to_list():
            self.assertAlmostEqual(value, 1 / 3)
        self.assertTrue(result.advisories.for_metric("closeness"))

    def test_isolate_gets_zero_degree(self):
        t = compute_node_measures(_graph([(1, 2)], nodes=[1, 2, 3], directed=False)).table
        self.assertEqual(t.get_column("total_degree").to_list(), [1, 1, 0])
        self.assertEqual(t.height, 3)

    def test_star_eigenvector(self):
        edges = [("hub", "l1"), ("hub", "l2"), ("hub", "l3")]
        values = compute_node_measures(_graph(edges, directed=False)).table.get_column("eigen_centrality")
        expected = [1.0] + [1 / math.sqrt(3)] * 3
        self.assertTrue(np.allclose(values.to_numpy(), expected))

    def test_bonacich_scaled_to_vertex_count(self):
        t = compute_node_measures(_graph(TRIANGLE, directed=False)).table
        values = t.get_column("bonacich_power").to_numpy()
        self.assertTrue(np.allclose(values, 1.0))
        self.assertAlmostEqual(float(np.sum(values ** 2)), 3.0)
        self.assertEqual(t.get_column("local_transitivity").to_list(), [1.0, 1.0, 1.0])
        self.assertEqual(t.get_column("coreness").to_list(), [2, 2, 2])

    def test_constraint_only_for_weighted_undirected(self):
        edges = [("a", "b", 2.0), ("b", "c", 1.0), ("c", "a", 1.0), ("c", "d", 3.0)]
        t = compute_node_measures(_graph(edges, directed=False)).table
        self.assertIn("burt_constraint", t.columns)
        self.assertIn("burt_effective_size", t.columns)
        self.assertIn("total_weighted_degree", t.columns)

        unweighted = compute_node_measures(_graph([("a", "b")], directed=False))
        self.assertNotIn("burt_constraint", unweighted.table.columns)
        self.assertTrue(unweighted.advisories.for_metric("burt_constraint"))

    def test_weight_type_changes_geodesics(self):
        edges = [("a", "b", 2.0), ("b", "c", 2.0), ("a", "c", 0.5)]
        g = _graph(edges, directed=False)
        frequency = compute_node_measures(g, EngineConfig(weight_type="frequency")).table
        distance = compute_node_measures(g, EngineConfig(weight_type="distance")).table
        # strong a-b and b-c ties route a..c through b
        self.assertEqual(frequency.get_column("betweenness").to_list(), [0.0, 1.0, 0.0])
        self.assertEqual(distance.get_column("betweenness").to_list(), [0.0, 0.0, 0.0])

    def test_non_positive_weights_fall_back_to_hops(self):
        result = compute_node_measures(_graph([(1, 2, 0.0), (2, 3, 1.0)], directed=False))
        self.assertTrue(any("non-positive" in m for m in result.advisories.messages()))
        self.assertEqual(result.table.get_column("betweenness").to_list(), [0.0, 1.0, 0.0])

    def test_metric_subset(self):
        config = EngineConfig(metrics=("total_degree", "betweenness"))
        t = compute_node_measures(_graph(TRIANGLE), config).table
        self.assertEqual(t.columns, ["vertex_index", "id", "total_degree", "betweenness"])

    def test_shared_advisory_log(self):
        log = AdvisoryLog(layer="kin")
        compute_node_measures(_graph(TRIANGLE), advisories=log)
        self.assertTrue(all(a.layer == "kin" for a in log))
        self.assertTrue(str(next(iter(log))).startswith("[kin] "))


class TestSystemMeasures(unittest.TestCase):

    def test_directed_triangle(self):
        g = _graph(TRIANGLE)
        row = compute_system_measures(g, compute_node_measures(g).table, network_name="tri").row
        self.assertEqual(row["network"], "tri")
        self.assertEqual(row["num_nodes"], 3)
        self.assertEqual(row["num_edges"], 3)
        self.assertEqual(row["reciprocity"], 0.0)
        self.assertEqual(row["density"], 0.5)
        self.assertEqual(row["transitivity"], 1.0)
        self.assertEqual(row["num_components"], 1)
        self.assertEqual(row["num_strong_components"], 1)
        self.assertEqual(row["diameter"], 2.0)
        self.assertFalse(row["diameter_restricted"])
        self.assertEqual(row["avg_path_length"], 1.5)
        self.assertEqual((row["mutual_dyads"], row["asymmetric_dyads"], row["null_dyads"]), (0, 3, 0))

    def test_reciprocated_multi_edges(self):
        row = compute_system_measures(_graph([(1, 2), (1, 2), (2, 1)])).row
        self.assertEqual(row["num_multi_edges"], 1)
        self.assertEqual(row["reciprocity"], 1.0)
        self.assertEqual(row["mutual_dyads"], 1)

    def test_undirected_has_no_reciprocity(self):
        row = compute_system_measures(_graph([("a", "b"), ("b", "c")], directed=False)).row
        self.assertNotIn("reciprocity", row)
        self.assertAlmostEqual(row["density"], 2 / 3)

    def test_disconnected_diameter_is_restricted(self):
        g = _graph([(1, 2), (2, 3), (4, 5)], directed=False)
        result = compute_system_measures(g)
        self.assertEqual(result.row["num_components"], 2)
        self.assertEqual(result.row["largest_component_size"], 3)
        self.assertAlmostEqual(result.row["largest_component_proportion"], 0.6)
        self.assertEqual(result.row["diameter"], 2.0)
        self.assertTrue(result.row["diameter_restricted"])
        self.assertTrue(result.advisories.for_metric("diameter"))

    def test_trivial_graphs_do_not_raise(self):
        for universe in (VertexUniverse(), VertexUniverse([1])):
            row = compute_system_measures(Graph(universe, directed=False)).row
            self.assertEqual(row["density"], 0.0)
            self.assertEqual(row["diameter"], 0.0)
            self.assertIsNone(row["avg_path_length"])
            self.assertIsNone(row["degree_assortativity"])

    def test_isolates_counted(self):
        row = compute_system_measures(_graph([(1, 2)], nodes=[1, 2, 3], directed=False)).row
        self.assertEqual(row["num_isolates"], 1)

    def test_star_degree_centralization(self):
        edges = [("hub", "l1"), ("hub", "l2"), ("hub", "l3")]
        row = compute_system_measures(_graph(edges, directed=False)).row
        self.assertAlmostEqual(row["degree_centralization"], 1.0)


class TestComponents(unittest.TestCase):

    def test_largest_component_tie_goes_to_first(self):
        comps = extract_components(_graph([(1, 2), (3, 4)], nodes=[1, 2, 3, 4, 5], directed=False))
        self.assertEqual(comps.component_sizes, (2, 2, 1))
        self.assertEqual(comps.membership.tolist(), [0, 0, 1, 1, 2])
        self.assertEqual(comps.largest_component.vertices(), [1, 2])
        self.assertEqual(comps.largest_component_size, 2)

    def test_directed_triangle_is_biconnected(self):
        comps = extract_components(_graph(TRIANGLE))
        bi = comps.largest_biconnected_component
        self.assertEqual(bi.vertices(), [1, 2, 3])
        self.assertEqual(bi.num_edges, 3)
        self.assertTrue(bi.directed)

    def test_bicomponent_ignores_direction_and_multi_edges(self):
        g = _graph([(1, 2), (2, 1), (2, 3), (3, 1), (3, 4)])
        comps = extract_components(g)
        self.assertEqual(comps.largest_biconnected_component.vertices(), [1, 2, 3])
        self.assertEqual(comps.num_bicomponents, 2)
        self.assertEqual(sorted(comps.bicomponent_sizes), [2, 3])
        self.assertEqual(g.num_edges, 5)

    def test_bicomponent_tie_goes_to_first_discovered(self):
        edges = [(1, 2), (2, 3), (3, 1), (4, 5), (5, 6), (6, 4)]
        comps = extract_components(_graph(edges, directed=False))
        self.assertEqual(comps.largest_biconnected_component.vertices(), [1, 2, 3])

    def test_edgeless_graph(self):
        comps = extract_components(_graph([], nodes=["solo"], directed=False))
        self.assertEqual(comps.largest_component_size, 1)
        self.assertEqual(comps.largest_bicomponent_size, 0)
        self.assertEqual(comps.num_bicomponents, 0)

    def test_component_survives_parent(self):
        g = _graph([("a", "b"), ("c", "d"), ("d", "e")], directed=False)
        comps = extract_components(g)
        del g
        self.assertEqual(comps.largest_component.vertices(), ["c", "d", "e"])
        self.assertEqual(comps.largest_component.parent_index.tolist(), [2, 3, 4])


if __name__ == "__main__":
    unittest.main()
