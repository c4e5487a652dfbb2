"""Read-through rank lookups and reference recording over a graph store."""

from __future__ import annotations

import logging
from typing import Sequence

from linkrank.errors import PageNotFoundError
from linkrank.models import (
    RANK_SOURCE_BASE,
    RANK_SOURCE_CACHE,
    RANK_SOURCE_COMPUTED,
    UNCOMPUTED_RANK,
    RankParameters,
    RankResult,
    SolveResult,
)
from linkrank.rank.adjacency import adjacency_from_neighborhood
from linkrank.rank.inflight import InFlightRegistry
from linkrank.rank.neighborhood import load_neighborhood
from linkrank.rank.solver import solve
from linkrank.rank.writer import store_rank
from linkrank.store.database import FIELD_IN_LINKS, FIELD_OUT_LINKS, FIELD_RANK, GraphStore

logger = logging.getLogger(__name__)


class RankService:
    def __init__(
        self,
        store: GraphStore,
        params: RankParameters | None = None,
        loader_workers: int = 1,
        coalesce: bool = True,
    ) -> None:
        self.store = store
        self.params = params or RankParameters()
        self.loader_workers = max(1, int(loader_workers))
        self._inflight: InFlightRegistry[RankResult] | None = (
            InFlightRegistry() if coalesce else None
        )

    def get_rank(self, page_id: str) -> RankResult:
        """Return the cached rank for ``page_id`` or compute and store it.

        Raises ``PageNotFoundError`` if the page has no record and
        ``StoreError`` if the store cannot be reached.
        """
        record = self.store.find_by_id(page_id)
        if record is None:
            logger.info("Page %s not found", page_id)
            raise PageNotFoundError(page_id)
        if record.has_cached_rank:
            logger.info("Found cached rank for %s: %s", page_id, record.rank)
            return RankResult(page_id=page_id, rank=record.rank, source=RANK_SOURCE_CACHE)

        logger.info("Rank for %s not computed yet, calculating", page_id)
        if self._inflight is None:
            return self._compute_and_store(page_id)
        result, joined = self._inflight.run(page_id, lambda: self._compute_and_store(page_id))
        if joined:
            logger.debug("Joined in-flight rank computation for %s", page_id)
        return result

    def calculate_rank(self, page_id: str) -> SolveResult:
        """Compute the local rank estimate without reading or writing the cache."""
        neighborhood = load_neighborhood(self.store, page_id, workers=self.loader_workers)
        if neighborhood.is_empty:
            return SolveResult(rank=self.params.base_rank, iterations=0, converged=True)
        model = adjacency_from_neighborhood(neighborhood)
        return solve(model, page_id, self.params)

    def _compute_and_store(self, page_id: str) -> RankResult:
        solved = self.calculate_rank(page_id)
        store_rank(self.store, page_id, solved.rank)
        source = RANK_SOURCE_COMPUTED if solved.iterations > 0 else RANK_SOURCE_BASE
        logger.info(
            "Calculated and stored rank for %s: %s (source=%s iterations=%d converged=%s)",
            page_id,
            solved.rank,
            source,
            solved.iterations,
            solved.converged,
        )
        return RankResult(
            page_id=page_id,
            rank=solved.rank,
            source=source,
            iterations=solved.iterations,
            converged=solved.converged,
        )

    def record_reference(self, from_id: str, to_ids: Sequence[str]) -> None:
        """Record that ``from_id`` links to each of ``to_ids``.

        Replaces the outgoing links of ``from_id`` and adds it to the incoming
        set of every target. Pages are created with an uncomputed rank.
        """
        targets = [str(target) for target in to_ids]
        self.store.upsert_fields(
            from_id,
            {FIELD_OUT_LINKS: targets},
            insert_defaults={FIELD_RANK: UNCOMPUTED_RANK},
        )
        for target in targets:
            self.store.add_to_set(
                target,
                FIELD_IN_LINKS,
                from_id,
                insert_defaults={FIELD_RANK: UNCOMPUTED_RANK, FIELD_OUT_LINKS: []},
            )
        logger.info("Updated references for %s: targets=%d", from_id, len(targets))
