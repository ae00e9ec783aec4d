"""Search backends for webguard.

Each backend translates a generic query and SearchOptions into one
provider's native request and normalizes the answer into SearchResult
objects. Failures of any kind surface as ProviderError (or
RequestTimeoutError), so callers see the same errors whichever backend is
active.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import httpx
from ddgs import DDGS

from webguard.config import Settings
from webguard.errors import ProviderError, RequestTimeoutError
from webguard.logging import get_logger
from webguard.tools.search.models import SearchOptions, SearchResult

logger = get_logger("webguard.tools.search.providers")

TAVILY_URL = "https://api.tavily.com/search"
BING_URL = "https://api.bing.microsoft.com/v7.0/search"
SERPAPI_URL = "https://serpapi.com/search"


class SearchBackend(ABC):
    """Abstract base class for search providers."""

    name: str

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        """Run a search.

        Args:
            query: Validated query string
            options: Search options

        Returns:
            list[SearchResult]: Normalized results

        Raises:
            ProviderError: If the provider fails or returns malformed data
            RequestTimeoutError: If the provider does not answer in time
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name='{self.name}'>"


class HttpSearchBackend(SearchBackend):
    """Base class for providers reached over a JSON HTTP API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the backend.

        Args:
            api_key: Provider API key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"{self.name} API timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                self.name, f"API error: {status} {e.response.reason_phrase}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(self.name, f"Request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, f"Invalid JSON response: {e}") from e

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        data = await self._call(query, options)
        try:
            return self._parse(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"Malformed response: {e}") from e

    @abstractmethod
    async def _call(self, query: str, options: SearchOptions) -> Any:
        pass

    @abstractmethod
    def _parse(self, data: Any) -> list[SearchResult]:
        pass


class TavilyBackend(HttpSearchBackend):
    """Tavily search, tuned for agent consumption."""

    name = "tavily"

    async def _call(self, query: str, options: SearchOptions) -> Any:
        return await self._request_json(
            "POST",
            TAVILY_URL,
            json={
                "api_key": self.api_key,
                "query": query,
                "search_depth": "basic",
                "max_results": options.max_results,
                "include_answer": False,
                "include_raw_content": False,
            },
        )

    def _parse(self, data: Any) -> list[SearchResult]:
        return [
            SearchResult.from_fields(
                title=item.get("title") or "",
                url=item.get("url") or "",
                snippet=item.get("content") or "",
                score=item.get("score"),
            )
            for item in data.get("results") or []
        ]


class BingBackend(HttpSearchBackend):
    """Bing Web Search API v7."""

    name = "bing"

    async def _call(self, query: str, options: SearchOptions) -> Any:
        market = f"{options.region}-{options.language or 'US'}" if options.region else "en-US"
        return await self._request_json(
            "GET",
            BING_URL,
            params={"q": query, "count": options.max_results, "mkt": market},
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
        )

    def _parse(self, data: Any) -> list[SearchResult]:
        web_pages = data.get("webPages") or {}
        return [
            SearchResult.from_fields(
                title=item.get("name") or "",
                url=item.get("url") or "",
                snippet=item.get("snippet") or "",
            )
            for item in web_pages.get("value") or []
        ]


class SerpApiBackend(HttpSearchBackend):
    """SerpAPI (Google results)."""

    name = "serpapi"

    async def _call(self, query: str, options: SearchOptions) -> Any:
        return await self._request_json(
            "GET",
            SERPAPI_URL,
            params={
                "q": query,
                "api_key": self.api_key,
                "num": options.max_results,
                "gl": options.region or "us",
                "hl": options.language or "en",
            },
        )

    def _parse(self, data: Any) -> list[SearchResult]:
        results = []
        for item in data.get("organic_results") or []:
            position = item.get("position")
            results.append(
                SearchResult.from_fields(
                    title=item.get("title") or "",
                    url=item.get("link") or "",
                    snippet=item.get("snippet") or "",
                    score=1 / position if position else None,
                )
            )
        return results


class DuckDuckGoBackend(SearchBackend):
    """Key-less DuckDuckGo search through the ddgs library."""

    name = "duckduckgo"

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        if options.region:
            region = f"{options.region}-{options.language or 'en'}".lower()
        else:
            region = "wt-wt"

        try:
            # Run sync search in thread pool
            raw_results = await asyncio.to_thread(
                self._sync_search,
                query=query,
                max_results=options.max_results,
                region=region,
            )
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        search_results = []
        for raw in raw_results:
            url = raw.get("href", raw.get("link", ""))
            search_results.append(
                SearchResult.from_fields(
                    title=raw.get("title", "No title"),
                    url=url,
                    snippet=raw.get("body", raw.get("snippet", "")),
                )
            )
        return search_results

    def _sync_search(self, query: str, max_results: int, region: str) -> list[dict[str, Any]]:
        """Synchronous search implementation.

        Args:
            query: Search query
            max_results: Maximum results to return
            region: ddgs region code

        Returns:
            list[dict]: Raw search results
        """
        with DDGS() as ddgs:
            results = ddgs.text(query, region=region, max_results=max_results)
            return list(results or [])


def select_backend(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SearchBackend | None:
    """Pick the search backend from configured credentials.

    Priority: Tavily, Bing, SerpAPI, then DuckDuckGo if explicitly enabled.

    Args:
        settings: Application settings
        transport: Optional httpx transport passed to HTTP backends

    Returns:
        SearchBackend | None: The selected backend, or None if none is configured
    """
    timeout = settings.search_provider_timeout
    backend: SearchBackend | None = None

    if settings.tavily_api_key:
        backend = TavilyBackend(settings.tavily_api_key, timeout, transport)
    elif settings.bing_key:
        backend = BingBackend(settings.bing_key, timeout, transport)
    elif settings.serp_api_key:
        backend = SerpApiBackend(settings.serp_api_key, timeout, transport)
    elif settings.search_duckduckgo_enabled:
        backend = DuckDuckGoBackend()

    if backend is None:
        logger.warning("No web search provider configured. Web search disabled.")
    else:
        logger.info(f"Using {backend.name} search provider")
    return backend
