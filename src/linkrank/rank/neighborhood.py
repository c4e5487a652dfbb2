"""Load the one-hop incoming neighborhood of a page from the graph store."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from linkrank.errors import PageNotFoundError
from linkrank.models import Neighborhood
from linkrank.store.database import GraphStore

logger = logging.getLogger(__name__)


def _fetch_out_links(store: GraphStore, page_id: str) -> tuple[str, ...]:
    record = store.find_by_id(page_id)
    if record is None:
        return ()
    return record.out_links


def load_neighborhood(
    store: GraphStore,
    target_id: str,
    workers: int = 1,
) -> Neighborhood:
    """Read the target's referrers and each referrer's outgoing links.

    Raises ``PageNotFoundError`` when the target has no record. A referrer
    without a record counts as having no outgoing links. Store errors abort
    the whole load.
    """
    target = store.find_by_id(target_id)
    if target is None:
        raise PageNotFoundError(target_id)

    referrers = tuple(sorted(target.in_links))
    if not referrers:
        return Neighborhood(target_id=target_id)

    if workers > 1 and len(referrers) > 1:
        with ThreadPoolExecutor(
            max_workers=min(workers, len(referrers)),
            thread_name_prefix="linkrank-loader",
        ) as executor:
            futures = {
                referrer: executor.submit(_fetch_out_links, store, referrer)
                for referrer in referrers
            }
            referrer_out_links = {
                referrer: future.result() for referrer, future in futures.items()
            }
    else:
        referrer_out_links = {
            referrer: _fetch_out_links(store, referrer) for referrer in referrers
        }

    logger.debug(
        "Loaded neighborhood for %s: referrers=%d out_links=%d",
        target_id,
        len(referrers),
        sum(len(links) for links in referrer_out_links.values()),
    )
    return Neighborhood(
        target_id=target_id,
        referrers=referrers,
        referrer_out_links=referrer_out_links,
    )
