from __future__ import annotations

import unittest

from linkrank.models import Neighborhood
from linkrank.rank.adjacency import adjacency_from_neighborhood, build_adjacency


class AdjacencyTests(unittest.TestCase):
    def test_every_node_has_initialized_entries(self) -> None:
        model = build_adjacency("T", ["R1", "R2"], {"R1": ("T",)})
        self.assertEqual(model.nodes, ["T", "R1", "R2"])
        for node in model.nodes:
            self.assertIn(node, model.out_links)
            self.assertIn(node, model.in_links)
        self.assertEqual(model.out_links["R2"], ())
        self.assertEqual(model.out_links["T"], ())

    def test_duplicate_referrers_are_listed_once(self) -> None:
        model = build_adjacency("T", ["R1", "R1", "R2"], {"R1": ("T",), "R2": ("T",)})
        self.assertEqual(model.nodes, ["T", "R1", "R2"])
        self.assertEqual(model.in_links["T"], ["R1", "R2"])

    def test_edges_outside_the_neighborhood_are_ignored(self) -> None:
        model = build_adjacency("T", ["R1", "R2"], {"R1": ("T", "R2", "X")})
        self.assertEqual(model.in_links["R2"], ["R1"])
        self.assertNotIn("X", model.in_links)
        self.assertEqual(model.out_degree("R1"), 3)

    def test_target_hears_referrers_that_omit_the_back_edge(self) -> None:
        model = build_adjacency("T", ["R1", "R2"], {"R1": ("X",), "R2": ("T",)})
        self.assertEqual(model.in_links["T"], ["R1", "R2"])

    def test_single_node_model_is_degenerate(self) -> None:
        self.assertTrue(build_adjacency("T", [], {}).is_degenerate)
        self.assertFalse(build_adjacency("T", ["R"], {"R": ("T",)}).is_degenerate)

    def test_self_reference_keeps_one_node(self) -> None:
        model = build_adjacency("T", ["T"], {"T": ("T",)})
        self.assertEqual(model.nodes, ["T"])
        self.assertEqual(model.in_links["T"], ["T"])
        self.assertTrue(model.is_degenerate)

    def test_builds_from_loaded_neighborhood(self) -> None:
        neighborhood = Neighborhood(
            target_id="T",
            referrers=("R1",),
            referrer_out_links={"R1": ("T",)},
        )
        model = adjacency_from_neighborhood(neighborhood)
        self.assertEqual(model.size, 2)
        self.assertEqual(model.in_links["T"], ["R1"])


if __name__ == "__main__":
    unittest.main()
