"""Rate-limited, cached web search client for webguard."""

import asyncio
import json

from webguard.config import Settings, get_settings
from webguard.errors import (
    InvalidInputError,
    ProviderUnavailableError,
    RateLimitedError,
    WebAccessError,
)
from webguard.logging import get_logger
from webguard.tools.search.cache import SearchCache
from webguard.tools.search.models import SearchOptions, SearchResult
from webguard.tools.search.providers import SearchBackend, select_backend
from webguard.tools.search.ratelimit import RateLimiter

logger = get_logger("webguard.tools.search.client")


def normalize_query(query: str) -> str:
    """Normalize a query for cache lookups (trim, lower-case, collapse spaces)."""
    return " ".join(query.split()).lower()


class WebSearchClient:
    """Async search client in front of one configured backend.

    The backend is chosen once, at construction, from the configured
    credentials. Each search is validated, charged against the caller's
    rate limit, and served from the cache when an identical query was
    answered within the TTL.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        backend: SearchBackend | None = None,
        cache: SearchCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize the search client.

        Args:
            settings: Settings to read limits and credentials from (global if None)
            backend: Explicit backend; selected from settings when None
            cache: Result cache (TTL from settings if None)
            rate_limiter: Per-identity limiter (limits from settings if None)
        """
        self.settings = settings or get_settings()
        self.backend = backend or select_backend(self.settings)
        if cache is None:
            cache = SearchCache(ttl_seconds=self.settings.search_cache_ttl)
        if rate_limiter is None:
            rate_limiter = RateLimiter(
                limit=self.settings.search_rate_limit,
                window=self.settings.search_rate_window,
            )
        self.cache = cache
        self.rate_limiter = rate_limiter
        self._key_locks: dict[str, asyncio.Lock] = {}
        # Callers holding or queued on each key lock
        self._key_waiters: dict[str, int] = {}

    def is_available(self) -> bool:
        """Check if web search is available."""
        return self.backend is not None

    @property
    def provider_name(self) -> str | None:
        """Name of the active backend, or None when search is disabled."""
        return self.backend.name if self.backend else None

    def _validate_query(self, query: str) -> str:
        if not query or not query.strip():
            raise InvalidInputError("Search query cannot be empty")
        limit = self.settings.search_max_query_length
        if len(query) > limit:
            raise InvalidInputError(f"Search query too long (max {limit} characters)")
        return query.strip()

    def cache_key(self, query: str, options: SearchOptions) -> str:
        """Build the cache key for a query and its effective options."""
        return json.dumps([normalize_query(query), *options.cache_key_parts()])

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        identity: str = "system",
    ) -> list[SearchResult]:
        """Search the web.

        Args:
            query: Search query string (1-500 characters by default)
            options: Result count, region and language
            identity: User id or client address the rate limit applies to

        Returns:
            list[SearchResult]: Search results

        Raises:
            InvalidInputError: If the query is empty or too long
            ProviderUnavailableError: If no search provider is configured
            RateLimitedError: If identity has used up its quota for this window
            ProviderError: If the backend fails
            RequestTimeoutError: If the backend does not answer in time
        """
        query = self._validate_query(query)
        options = options or SearchOptions()

        if self.backend is None:
            raise ProviderUnavailableError(
                "Web search is not configured. Set TAVILY_API_KEY, BING_SEARCH_KEY "
                "or SERP_API_KEY."
            )

        if not self.rate_limiter.allow(identity):
            raise RateLimitedError(identity, self.rate_limiter.retry_after(identity))

        key = self.cache_key(query, options)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for: '{query}'")
            return cached

        # Concurrent misses for the same key wait here so the backend runs once
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._key_waiters[key] = self._key_waiters.get(key, 0) + 1
        try:
            async with lock:
                cached = self.cache.get(key)
                if cached is not None:
                    return cached

                logger.info(
                    f"Searching {self.backend.name}: '{query}' (max {options.max_results} results)"
                )
                try:
                    results = await self.backend.search(query, options)
                except WebAccessError as e:
                    logger.error(f"Web search failed: {e}")
                    raise

                self.cache.set(key, results)
                logger.info(f"Found {len(results)} results for '{query}'")
                return results
        finally:
            # Drop the lock once nobody holds or awaits it
            self._key_waiters[key] -= 1
            if self._key_waiters[key] == 0:
                del self._key_waiters[key]
                del self._key_locks[key]

    def clear_cache(self) -> None:
        """Clear cached results (for testing or manual invalidation)."""
        self.cache.clear()

    def cache_stats(self) -> dict[str, int]:
        """Get cache statistics."""
        return self.cache.stats()
