"""Web search and fetch tools for an agent orchestrator."""

from pydantic import BaseModel, Field

from webguard.config import get_settings
from webguard.errors import WebAccessError
from webguard.logging import get_logger
from webguard.tools.base import BaseTool, ToolResult
from webguard.tools.search.client import WebSearchClient
from webguard.tools.search.fetcher import WebFetcher
from webguard.tools.search.models import SearchOptions

logger = get_logger("webguard.tools.search.web")


class WebSearchParams(BaseModel):
    """Input for WebSearchTool."""
    query: str = Field(
        min_length=1,
        description="Search query string"
    )
    max_results: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of results to return"
    )
    region: str | None = Field(
        default=None,
        description="Region code (e.g., 'us', 'gb', 'de')"
    )
    language: str | None = Field(
        default=None,
        description="Language code (e.g., 'en', 'fr')"
    )


class WebSearchTool(BaseTool[WebSearchParams]):
    """Search the web through the configured provider.

    Results come back with titles, URLs, and snippets. Searches are
    charged against the identity the tool was created for.
    """

    name = "web_search"
    description = (
        "Search the web for current information. "
        "Returns relevant results with titles, URLs, and snippets. "
        "Use this to find sources that can confirm or refute a claim, "
        "then fetch the most promising URLs with fetch_webpage."
    )
    parameters_schema = WebSearchParams

    def __init__(self, client: WebSearchClient | None = None, identity: str = "system"):
        """Initialize the web search tool.

        Args:
            client: Search client (created from global settings on first use if None)
            identity: Identity that searches are rate limited under
        """
        super().__init__()
        self._client = client
        self.identity = identity

    def _get_client(self) -> WebSearchClient:
        """Get or create the search client."""
        if self._client is None:
            self._client = WebSearchClient()
        return self._client

    async def execute(self, params: WebSearchParams) -> ToolResult:
        """Execute the web search tool.

        Args:
            params: Validated input parameters

        Returns:
            ToolResult: Search results
        """
        client = self._get_client()
        options = SearchOptions(
            max_results=params.max_results,
            region=params.region,
            language=params.language,
        )

        try:
            results = await client.search(params.query, options, identity=self.identity)
        except WebAccessError as e:
            logger.error(f"Web search failed: {e}")
            return ToolResult.from_error(e, provider=client.provider_name)

        if not results:
            return ToolResult.success_result(
                data={
                    "query": params.query,
                    "count": 0,
                    "results": [],
                    "message": f"No results found for: {params.query}",
                },
                provider=client.provider_name,
            )

        # Convert to dict for JSON serialization
        result_dicts = [result.model_dump() for result in results]

        return ToolResult.success_result(
            data={
                "query": params.query,
                "count": len(results),
                "results": result_dicts,
            },
            provider=client.provider_name,
        )


class FetchWebPageParams(BaseModel):
    """Input for FetchWebPageTool."""
    url: str = Field(
        description="HTTPS URL of the web page to fetch"
    )
    extract_text: bool = Field(
        default=True,
        description="If True, extract and clean text content; if False, return the raw body"
    )
    max_length: int = Field(
        default=10000,
        ge=100,
        le=50000,
        description="Maximum characters to return"
    )


class FetchWebPageTool(BaseTool[FetchWebPageParams]):
    """Fetch and extract content from a web page.

    Only public HTTPS sources are reachable; pages on private networks,
    insecure schemes and non-text content types are refused and reported
    as blocked.
    """

    name = "fetch_webpage"
    description = (
        "Fetch and extract content from a public HTTPS web page. "
        "Downloads the page and extracts main text content, removing navigation and scripts. "
        "Use this to read articles, documentation, or other sources found by web_search. "
        "Only HTML, plain text and JSON pages can be fetched."
    )
    parameters_schema = FetchWebPageParams

    def __init__(self, fetcher: WebFetcher | None = None):
        """Initialize the fetch webpage tool.

        Args:
            fetcher: Web fetcher (created from global settings on first use if None)
        """
        super().__init__()
        self._fetcher = fetcher

    def _get_fetcher(self) -> WebFetcher:
        """Get or create web page fetcher."""
        if self._fetcher is None:
            self._fetcher = WebFetcher.from_settings(get_settings())
        return self._fetcher

    async def execute(self, params: FetchWebPageParams) -> ToolResult:
        """Execute the fetch webpage tool.

        Args:
            params: Validated input parameters

        Returns:
            ToolResult: Page content
        """
        fetcher = self._get_fetcher()

        try:
            content = await fetcher.fetch_page(
                url=params.url,
                extract_text=params.extract_text,
                max_length=params.max_length,
            )
        except WebAccessError as e:
            logger.error(f"Failed to fetch webpage: {e}")
            return ToolResult.from_error(e, url=params.url)

        return ToolResult.success_result(
            data={
                "url": content.url,
                "final_url": content.final_url,
                "title": content.title,
                "text": content.text,
                "length": content.length,
                "truncated": content.truncated,
            }
        )
