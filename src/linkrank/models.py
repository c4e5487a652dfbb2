"""Shared typed models used across storage, ranking, and transport layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

UNCOMPUTED_RANK = 0.0
DEFAULT_DAMPING_FACTOR = 0.85
DEFAULT_TOLERANCE = 0.0001
DEFAULT_MAX_ITERATIONS = 100

RANK_SOURCE_CACHE = "cache"
RANK_SOURCE_COMPUTED = "computed"
RANK_SOURCE_BASE = "base"


@dataclass(frozen=True)
class PageRecord:
    id: str
    rank: float = UNCOMPUTED_RANK
    out_links: tuple[str, ...] = ()
    in_links: frozenset[str] = frozenset()

    @property
    def has_cached_rank(self) -> bool:
        return self.rank > 0.0


@dataclass(frozen=True)
class RankParameters:
    damping_factor: float = DEFAULT_DAMPING_FACTOR
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    def __post_init__(self) -> None:
        if not 0.0 < self.damping_factor < 1.0:
            raise ValueError(
                f"damping_factor must be in (0, 1), got {self.damping_factor}"
            )
        if self.tolerance <= 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )

    @property
    def base_rank(self) -> float:
        """Rank assigned to a page nobody is known to link to."""
        return 1.0 - self.damping_factor


@dataclass(frozen=True)
class Neighborhood:
    target_id: str
    referrers: tuple[str, ...] = ()
    referrer_out_links: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.referrers


@dataclass
class AdjacencyModel:
    nodes: list[str]
    out_links: dict[str, tuple[str, ...]]
    in_links: dict[str, list[str]]

    @property
    def size(self) -> int:
        return len(self.nodes)

    @property
    def is_degenerate(self) -> bool:
        return len(self.nodes) <= 1

    def out_degree(self, node: str) -> int:
        return len(self.out_links.get(node, ()))


@dataclass(frozen=True)
class SolveResult:
    rank: float
    iterations: int
    converged: bool


@dataclass(frozen=True)
class RankResult:
    page_id: str
    rank: float
    source: str
    iterations: int = 0
    converged: bool = True


@dataclass(frozen=True)
class RequestMetric:
    operation: str
    latency_ms: float
    success: bool
    page_id: str | None = None
    error_message: str | None = None


def rank_result_to_dict(result: RankResult) -> dict[str, Any]:
    return {
        "pageUrl": result.page_id,
        "pageRank": result.rank,
        "source": result.source,
        "iterations": result.iterations,
        "converged": result.converged,
    }
