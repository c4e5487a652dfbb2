"""Error types raised by the rank engine and its store adapter."""

from __future__ import annotations


class LinkRankError(Exception):
    pass


class PageNotFoundError(LinkRankError, LookupError):
    """Raised when a page has no record at all.

    This is distinct from a page whose rank has not been computed yet, which
    is stored with ``rank == 0``.
    """

    def __init__(self, page_id: str) -> None:
        super().__init__(f"Page not found: {page_id}")
        self.page_id = page_id


class StoreError(LinkRankError):
    """Any failure talking to the persistent graph store."""