"""Source library: fetch and unpack election-reporting API responses.

Public API:
    - SourceClient: Bearer-token GET client with optional pagination params
    - SourcePage: Items plus pagination metadata from one response
    - SourceShape: Where an endpoint keeps its items
    - Pagination: Pagination block model
    - FetchError: HTTP/parse error type
"""

from election_sync.lib.source.fetcher import FetchError, SourceClient, SourcePage
from election_sync.lib.source.parser import Pagination, SourceShape, extract_items, extract_pagination

__all__ = [
    "FetchError",
    "Pagination",
    "SourceClient",
    "SourcePage",
    "SourceShape",
    "extract_items",
    "extract_pagination",
]
