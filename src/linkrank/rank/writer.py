"""Persist computed ranks so later lookups skip the solver."""

from __future__ import annotations

import logging

from linkrank.store.database import FIELD_RANK, GraphStore

logger = logging.getLogger(__name__)


def store_rank(store: GraphStore, target_id: str, rank: float) -> None:
    # Last writer wins; there is no version check on the record.
    store.upsert_fields(target_id, {FIELD_RANK: float(rank)})
    logger.debug("Stored rank %.6f for %s", rank, target_id)
