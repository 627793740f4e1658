"""Reader GraphQL API adapter."""

from .client import BASE_SEARCH_QUERY, ReaderApiClient, ReaderApiError, compose_search_query
from .models import SearchPage

__all__ = [
    "BASE_SEARCH_QUERY",
    "ReaderApiClient",
    "ReaderApiError",
    "SearchPage",
    "compose_search_query",
]
