"""Tests for web search tools."""

from unittest.mock import AsyncMock, patch, MagicMock

import httpx
import pytest
from pydantic import ValidationError

from webguard.errors import (
    BlockedProtocolError,
    ContentPolicyViolationError,
    ProviderUnavailableError,
    RateLimitedError,
)
from webguard.tools.search.web import (
    WebSearchTool,
    WebSearchParams,
    FetchWebPageTool,
    FetchWebPageParams,
)
from webguard.net.resolver import HostResolver
from webguard.tools.search.fetcher import WebFetcher
from webguard.tools.search.models import SearchOptions, SearchResult, WebPageContent


def mock_search_client(**search_kwargs) -> MagicMock:
    client = MagicMock()
    client.provider_name = "tavily"
    client.search = AsyncMock(**search_kwargs)
    return client


class TestWebSearchTool:
    """Tests for WebSearchTool."""

    def test_init(self):
        """Test tool initialization."""
        tool = WebSearchTool()
        assert tool.name == "web_search"
        assert tool.parameters_schema == WebSearchParams
        assert tool.identity == "system"

    def test_input_validation(self):
        """Test input validation."""
        # Valid input
        validated = WebSearchParams(query="python programming", max_results=5)
        assert validated.query == "python programming"
        assert validated.max_results == 5
        assert validated.region is None  # default
        assert validated.language is None  # default

        # Invalid max_results (too high)
        with pytest.raises(ValidationError):
            WebSearchParams(query="test", max_results=100)

        with pytest.raises(ValidationError):
            WebSearchParams(query="")

    @pytest.mark.asyncio
    async def test_execute_success(self):
        """Test successful web search."""
        mock_results = [
            SearchResult(
                title="Test Result 1",
                url="https://example.com/1",
                snippet="This is a test snippet 1",
                source="example.com",
            ),
            SearchResult(
                title="Test Result 2",
                url="https://example.com/2",
                snippet="This is a test snippet 2",
                source="example.com",
            ),
        ]
        client = mock_search_client(return_value=mock_results)
        tool = WebSearchTool(client=client, identity="user-42")

        params = WebSearchParams(query="test query", max_results=5, region="de", language="de")
        result = await tool.execute(params)

        assert result.success
        assert result.data["count"] == 2
        assert result.data["query"] == "test query"
        assert len(result.data["results"]) == 2
        assert result.data["results"][0]["title"] == "Test Result 1"
        assert result.metadata["provider"] == "tavily"
        client.search.assert_called_once_with(
            "test query",
            SearchOptions(max_results=5, region="de", language="de"),
            identity="user-42",
        )

    @pytest.mark.asyncio
    async def test_execute_no_results(self):
        """Test search with no results."""
        tool = WebSearchTool(client=mock_search_client(return_value=[]))

        result = await tool.execute(WebSearchParams(query="nonexistent query"))

        assert result.success
        assert result.data["count"] == 0
        assert len(result.data["results"]) == 0

    @pytest.mark.asyncio
    async def test_execute_rate_limited(self):
        """Test a rate limit is reported as a non-blocked error."""
        client = mock_search_client(side_effect=RateLimitedError("user-42", 30.0))
        tool = WebSearchTool(client=client, identity="user-42")

        result = await tool.execute(WebSearchParams(query="test"))

        assert not result.success
        assert "Rate limit exceeded" in result.error
        assert result.metadata["error_type"] == "RateLimitedError"
        assert result.blocked is False

    @pytest.mark.asyncio
    async def test_execute_unavailable(self):
        """Test a missing provider is reported as an error result."""
        client = mock_search_client(side_effect=ProviderUnavailableError("Web search is not configured"))
        client.provider_name = None
        tool = WebSearchTool(client=client)

        result = await tool.execute(WebSearchParams(query="test"))

        assert not result.success
        assert result.metadata["error_type"] == "ProviderUnavailableError"

    @pytest.mark.asyncio
    async def test_run_validates_raw_params(self):
        """Test run() rejects bad input before searching."""
        client = mock_search_client(return_value=[])
        tool = WebSearchTool(client=client)

        result = await tool.run({"query": "test", "max_results": 0})

        assert not result.success
        assert result.metadata["error_type"] == "InvalidInputError"
        client.search.assert_not_called()


class TestFetchWebPageTool:
    """Tests for FetchWebPageTool."""

    def test_init(self):
        """Test tool initialization."""
        tool = FetchWebPageTool()
        assert tool.name == "fetch_webpage"
        assert tool.parameters_schema == FetchWebPageParams

    def test_input_validation(self):
        """Test input validation."""
        validated = FetchWebPageParams(
            url="https://example.com", extract_text=True, max_length=5000
        )
        assert validated.url == "https://example.com"
        assert validated.extract_text is True
        assert validated.max_length == 5000

        # Required field
        with pytest.raises(ValidationError):
            FetchWebPageParams(extract_text=True)

        with pytest.raises(ValidationError):
            FetchWebPageParams(url="https://example.com", max_length=10)

    @pytest.mark.asyncio
    async def test_execute_success(self):
        """Test successful webpage fetch."""
        mock_content = WebPageContent(
            url="https://example.com",
            final_url="https://www.example.com/",
            title="Example Page",
            text="This is the main content of the page.",
            length=37,
            truncated=False,
        )
        fetcher = MagicMock()
        fetcher.fetch_page = AsyncMock(return_value=mock_content)
        tool = FetchWebPageTool(fetcher=fetcher)

        result = await tool.execute(FetchWebPageParams(url="https://example.com"))

        assert result.success
        assert result.data["url"] == "https://example.com"
        assert result.data["final_url"] == "https://www.example.com/"
        assert result.data["title"] == "Example Page"
        assert result.data["text"] == "This is the main content of the page."
        assert result.data["length"] == 37
        assert result.data["truncated"] is False
        fetcher.fetch_page.assert_called_once_with(
            url="https://example.com", extract_text=True, max_length=10000
        )

    @pytest.mark.asyncio
    async def test_execute_blocked(self):
        """Test a refused source is reported as blocked."""
        fetcher = MagicMock()
        fetcher.fetch_page = AsyncMock(
            side_effect=BlockedProtocolError("Only HTTPS protocol is allowed. Got: http")
        )
        tool = FetchWebPageTool(fetcher=fetcher)

        result = await tool.execute(FetchWebPageParams(url="http://example.com"))

        assert not result.success
        assert result.blocked is True
        assert result.metadata["url"] == "http://example.com"
        assert "HTTPS" in result.error

    @pytest.mark.asyncio
    async def test_execute_content_policy(self):
        """Test content policy refusals carry their error type."""
        fetcher = MagicMock()
        fetcher.fetch_page = AsyncMock(
            side_effect=ContentPolicyViolationError("Content-Type application/pdf not in allowed list")
        )
        tool = FetchWebPageTool(fetcher=fetcher)

        result = await tool.execute(FetchWebPageParams(url="https://example.com/file.pdf"))

        assert not result.success
        assert result.metadata["error_type"] == "ContentPolicyViolationError"

    def test_fetcher_created_from_settings(self, test_settings):
        """Test the default fetcher uses configured limits."""
        settings = test_settings.model_copy(update={"fetch_max_bytes": 2048, "fetch_max_redirects": 1})
        tool = FetchWebPageTool()

        with patch("webguard.tools.search.web.get_settings", return_value=settings):
            fetcher = tool._get_fetcher()

        assert fetcher.default_options.max_bytes == 2048
        assert fetcher.default_options.max_redirects == 1
        assert tool._get_fetcher() is fetcher

    @pytest.mark.asyncio
    async def test_run_reports_undecodable_page_as_error(self, fake_lookup):
        """Test a page whose body fails to decode becomes an error result."""

        class UndecodableStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield b"<html>"
                raise httpx.DecodingError("Error -3 while decompressing data")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers={"content-type": "text/html"}, stream=UndecodableStream()
            )

        fetcher = WebFetcher(
            resolver=HostResolver(lookup=fake_lookup({"example.com": ["93.184.216.34"]})),
            transport_factory=lambda pinned: httpx.MockTransport(handler),
        )
        tool = FetchWebPageTool(fetcher=fetcher)

        result = await tool.run({"url": "https://example.com/"})

        assert not result.success
        assert result.blocked is False
        assert result.metadata["error_type"] == "ProtocolViolationError"

    @pytest.mark.asyncio
    async def test_run_reports_compressed_page_as_blocked(self, fake_lookup):
        """Test a compressed page is refused and reported as blocked."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "text/html", "content-encoding": "gzip"},
                stream=httpx.ByteStream(b"this is not gzip data"),
            )

        fetcher = WebFetcher(
            resolver=HostResolver(lookup=fake_lookup({"example.com": ["93.184.216.34"]})),
            transport_factory=lambda pinned: httpx.MockTransport(handler),
        )
        tool = FetchWebPageTool(fetcher=fetcher)

        result = await tool.run({"url": "https://example.com/"})

        assert not result.success
        assert result.blocked is True
        assert result.metadata["error_type"] == "ContentPolicyViolationError"
