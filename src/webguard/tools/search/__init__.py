"""Web search and fetch tools for webguard."""

from webguard.tools.search.cache import SearchCache
from webguard.tools.search.client import WebSearchClient
from webguard.tools.search.fetcher import WebFetcher
from webguard.tools.search.models import (
    FetchOptions,
    FetchResult,
    SearchOptions,
    SearchResult,
    WebPageContent,
)
from webguard.tools.search.providers import (
    BingBackend,
    DuckDuckGoBackend,
    SearchBackend,
    SerpApiBackend,
    TavilyBackend,
    select_backend,
)
from webguard.tools.search.ratelimit import RateLimiter
from webguard.tools.search.web import WebSearchTool, FetchWebPageTool

__all__ = [
    # Clients
    "WebSearchClient",
    "WebFetcher",
    # Providers
    "SearchBackend",
    "TavilyBackend",
    "BingBackend",
    "SerpApiBackend",
    "DuckDuckGoBackend",
    "select_backend",
    # Shared state
    "SearchCache",
    "RateLimiter",
    # Models
    "SearchResult",
    "SearchOptions",
    "FetchOptions",
    "FetchResult",
    "WebPageContent",
    # Tools
    "WebSearchTool",
    "FetchWebPageTool",
]
