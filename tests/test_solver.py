from __future__ import annotations

import unittest

from linkrank.models import AdjacencyModel, RankParameters
from linkrank.rank.adjacency import build_adjacency
from linkrank.rank.solver import solve


class SolverTests(unittest.TestCase):
    def _two_referrer_model(self) -> AdjacencyModel:
        return build_adjacency(
            "T",
            ["R1", "R2"],
            {"R1": ("T",), "R2": ("T", "X")},
        )

    def test_first_iteration_matches_hand_computed_value(self) -> None:
        result = solve(
            self._two_referrer_model(),
            "T",
            RankParameters(damping_factor=0.85, tolerance=0.0001, max_iterations=1),
        )
        self.assertAlmostEqual(result.rank, 0.05 + 0.85 * 0.5, places=12)
        self.assertEqual(result.iterations, 1)
        self.assertFalse(result.converged)

    def test_converges_on_two_referrer_neighborhood(self) -> None:
        result = solve(self._two_referrer_model(), "T", RankParameters())
        # Referrers settle at 0.05 after one step, so T settles at
        # 0.05 + 0.85 * (0.05 + 0.025) on the second and repeats on the third.
        self.assertAlmostEqual(result.rank, 0.11375, places=12)
        self.assertEqual(result.iterations, 3)
        self.assertTrue(result.converged)

    def test_iteration_cap_is_soft(self) -> None:
        model = build_adjacency(
            "T",
            ["A", "B"],
            {"A": ("T", "B"), "B": ("T", "A")},
        )
        capped = solve(model, "T", RankParameters(tolerance=1e-15, max_iterations=2))
        self.assertEqual(capped.iterations, 2)
        self.assertFalse(capped.converged)
        self.assertGreater(capped.rank, 0.0)

    def test_degenerate_model_returns_base_rank(self) -> None:
        model = build_adjacency("T", [], {})
        result = solve(model, "T", RankParameters(damping_factor=0.85))
        self.assertAlmostEqual(result.rank, 0.15, places=12)
        self.assertEqual(result.iterations, 0)
        self.assertTrue(result.converged)

    def test_base_rank_follows_damping_factor(self) -> None:
        result = solve(build_adjacency("T", [], {}), "T", RankParameters(damping_factor=0.5))
        self.assertAlmostEqual(result.rank, 0.5, places=12)

    def test_dangling_referrer_contributes_nothing(self) -> None:
        model = build_adjacency("T", ["R"], {"R": ()})
        result = solve(model, "T", RankParameters())
        self.assertAlmostEqual(result.rank, 0.15 / 2, places=12)
        self.assertTrue(result.converged)

    def test_cycle_among_referrers_converges_deterministically(self) -> None:
        model = build_adjacency(
            "T",
            ["A", "B"],
            {"A": ("T", "B"), "B": ("T", "A")},
        )
        params = RankParameters(tolerance=1e-9, max_iterations=500)
        first = solve(model, "T", params)
        second = solve(model, "T", params)
        self.assertTrue(first.converged)
        self.assertEqual(first, second)
        # Fixed point: a = b = 0.05 + 0.425 * a, t = 0.05 + 0.85 * a.
        referrer_rank = 0.05 / (1 - 0.425)
        self.assertAlmostEqual(first.rank, 0.05 + 0.85 * referrer_rank, places=6)

    def test_missing_target_falls_back_to_base_rank(self) -> None:
        model = AdjacencyModel(
            nodes=["A", "B"],
            out_links={"A": ("B",), "B": ()},
            in_links={"A": [], "B": ["A"]},
        )
        result = solve(model, "Z", RankParameters())
        self.assertAlmostEqual(result.rank, 0.15, places=12)

    def test_rank_parameters_reject_invalid_values(self) -> None:
        with self.assertRaises(ValueError):
            RankParameters(damping_factor=1.0)
        with self.assertRaises(ValueError):
            RankParameters(damping_factor=0.0)
        with self.assertRaises(ValueError):
            RankParameters(tolerance=0.0)
        with self.assertRaises(ValueError):
            RankParameters(max_iterations=0)


if __name__ == "__main__":
    unittest.main()
