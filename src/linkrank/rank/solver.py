"""Damped power iteration over a local adjacency model.

The result is a local rank estimate: only the target and its direct referrers
take part, so the value is not normalized against the whole graph. Referrers
with no outgoing links contribute nothing; their mass is not redistributed.
"""

from __future__ import annotations

import logging

from linkrank.models import AdjacencyModel, RankParameters, SolveResult

logger = logging.getLogger(__name__)


def solve(
    model: AdjacencyModel,
    target_id: str,
    params: RankParameters | None = None,
) -> SolveResult:
    params = params or RankParameters()
    base_rank = params.base_rank
    if model.is_degenerate:
        return SolveResult(rank=base_rank, iterations=0, converged=True)

    damping = params.damping_factor
    node_count = model.size
    teleport = (1.0 - damping) / node_count
    scores = {node: 1.0 / node_count for node in model.nodes}

    converged = False
    iterations = 0
    for iterations in range(1, params.max_iterations + 1):
        next_scores: dict[str, float] = {}
        for node in model.nodes:
            score = teleport
            for source in model.in_links.get(node, ()):
                out_degree = model.out_degree(source)
                if out_degree > 0:
                    score += damping * scores.get(source, 0.0) / out_degree
            next_scores[node] = score

        converged = all(
            abs(next_scores[node] - scores[node]) <= params.tolerance
            for node in model.nodes
        )
        scores = next_scores
        if converged:
            break

    if converged:
        logger.debug(
            "Rank for %s converged after %d iterations", target_id, iterations
        )
    else:
        logger.warning(
            "Rank for %s did not converge within %d iterations (tolerance=%g)",
            target_id,
            params.max_iterations,
            params.tolerance,
        )
    return SolveResult(
        rank=scores.get(target_id, base_rank),
        iterations=iterations,
        converged=converged,
    )
