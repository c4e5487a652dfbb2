"""Request/response adapters for the rank service."""

from linkrank.api.client import HttpRankClient, RankApiError
from linkrank.api.http import RankHttpServer

__all__ = [
    "HttpRankClient",
    "RankApiError",
    "RankHttpServer",
]
