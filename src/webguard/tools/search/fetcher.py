"""SSRF-hardened web page fetcher and content extractor.

Every fetch is HTTPS-only and limited to an allowlist of ports. Each hop of a
redirect chain is resolved and validated on its own, and its connection is
pinned to the addresses that passed validation. Redirects are followed by
hand so that the next hop goes through the same checks. Responses must have
a success status, an allowed content type and a body within the size limit;
anything else raises a WebAccessError instead of returning partial content.
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
from bs4 import BeautifulSoup

from webguard.config import Settings
from webguard.errors import (
    BlockedProtocolError,
    ConnectionFailedError,
    ContentPolicyViolationError,
    InvalidInputError,
    ProtocolViolationError,
    RequestTimeoutError,
    TooManyRedirectsError,
    WebAccessError,
)
from webguard.logging import AsyncTimer, get_logger
from webguard.net.resolver import HostResolver, ValidatedAddressSet
from webguard.net.transport import PinnedTransport
from webguard.tools.search.models import FetchOptions, FetchResult, WebPageContent

logger = get_logger("webguard.tools.search.fetcher")

TransportFactory = Callable[[ValidatedAddressSet], httpx.AsyncBaseTransport]

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; webguard/0.1)"
DEFAULT_BATCH_CONCURRENCY = 3
REMOVED_HTML_ELEMENTS = [
    "title", "script", "style", "noscript", "template", "nav", "footer", "header", "aside",
]


def options_from_settings(settings: Settings) -> FetchOptions:
    """Build default fetch options from configuration."""
    return FetchOptions(
        max_bytes=settings.fetch_max_bytes,
        total_timeout=settings.fetch_timeout,
        connect_timeout=settings.fetch_connect_timeout,
        max_redirects=settings.fetch_max_redirects,
    )


def extract_html_text(html: str) -> tuple[str | None, str]:
    """Extract the title and readable text from an HTML document.

    Args:
        html: Raw HTML

    Returns:
        tuple: (title or None, cleaned text)
    """
    soup = BeautifulSoup(html, "lxml")

    # Extract title
    title = None
    if soup.title and soup.title.string:
        title = soup.title.string.strip()

    # Remove unwanted elements
    for element in soup(REMOVED_HTML_ELEMENTS):
        element.decompose()

    text = soup.get_text(separator="\n", strip=True)
    return title, clean_text(text)


def clean_text(text: str) -> str:
    """Clean extracted text.

    Args:
        text: Raw text

    Returns:
        str: Text with trimmed lines and no blank lines
    """
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


class WebFetcher:
    """Async fetcher that only ever connects to validated public addresses.

    A fetch is a small state machine over (current URL, redirect count):
    check the URL, resolve and validate its host, connect through a
    transport pinned to those addresses, then either follow a redirect
    (back to the start with the new URL) or enforce the content policy and
    return the body.
    """

    def __init__(
        self,
        resolver: HostResolver | None = None,
        transport_factory: TransportFactory | None = None,
        user_agent: str | None = None,
        default_options: FetchOptions | None = None,
    ):
        """Initialize the fetcher.

        Args:
            resolver: Hostname resolver (system DNS by default)
            transport_factory: Builds the transport for one validated hop
            user_agent: Optional custom user agent string
            default_options: Options used when a call passes none
        """
        self.resolver = resolver or HostResolver(timeout=None)
        self.transport_factory = transport_factory or PinnedTransport
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.default_options = default_options or FetchOptions()

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebFetcher":
        """Create a fetcher using configured limits and user agent."""
        return cls(
            user_agent=settings.fetch_user_agent,
            default_options=options_from_settings(settings),
        )

    async def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        """Fetch a URL with SSRF protection and content-policy enforcement.

        Args:
            url: HTTPS URL to fetch
            options: Limits for this call (fetcher defaults if None)

        Returns:
            FetchResult: The complete response body and metadata

        Raises:
            WebAccessError: A subclass naming the exact reason for failure
        """
        options = options or self.default_options
        try:
            start = self._check_url(url, options)
            logger.info(f"Fetching web page: {url}")
            async with AsyncTimer(f"fetch {url}", logger):
                async with asyncio.timeout(options.total_timeout):
                    return await self._follow(url, start, options)
        except TimeoutError as e:
            error = RequestTimeoutError(f"Request timeout after {options.total_timeout}s")
            logger.warning(f"Fetch failed for {url}: {error}")
            raise error from e
        except WebAccessError as e:
            if e.blocked:
                logger.warning(f"Fetch blocked for {url}: {e}")
            else:
                logger.warning(f"Fetch failed for {url}: {e}")
            raise

    async def _follow(
        self, requested_url: str, current: httpx.URL, options: FetchOptions
    ) -> FetchResult:
        redirect_count = 0
        while True:
            pinned = await self._resolve(current, options)
            try:
                async with self._client(pinned, options) as client:
                    async with client.stream("GET", current) as response:
                        if 300 <= response.status_code < 400:
                            location = response.headers.get("location")
                            if not location:
                                raise ProtocolViolationError(
                                    "Redirect without Location header",
                                    status_code=response.status_code,
                                )

                            redirect_count += 1
                            if redirect_count > options.max_redirects:
                                raise TooManyRedirectsError(options.max_redirects)

                            current = self._redirect_target(current, location, options)
                            logger.info(f"Redirect #{redirect_count}: {current}")
                            continue

                        content_type = self._check_response(response, options)
                        content = await self._read_body(response, options.max_bytes)
            except httpx.TimeoutException as e:
                raise RequestTimeoutError(f"Timed out talking to {current.host}: {e}") from e
            except (httpx.RemoteProtocolError, httpx.DecodingError) as e:
                raise ProtocolViolationError(f"Malformed response from {current.host}: {e}") from e
            except httpx.HTTPError as e:
                raise ConnectionFailedError(f"Connection to {current.host} failed: {e}") from e

            logger.info(
                f"Fetched {current} ({len(content)} bytes, {redirect_count} redirects)"
            )
            return FetchResult(
                requested_url=requested_url,
                final_url=str(current),
                content_type=content_type,
                content=content,
                size=len(content),
                redirect_count=redirect_count,
            )

    def _check_url(self, url: str | httpx.URL, options: FetchOptions) -> httpx.URL:
        """Structural checks made before any network activity."""
        try:
            parsed = url if isinstance(url, httpx.URL) else httpx.URL(url.strip())
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidInputError(f"Invalid URL: {url}") from e

        if not parsed.scheme:
            raise InvalidInputError(f"Invalid URL (no scheme): {url}")
        if parsed.scheme != "https":
            raise BlockedProtocolError(f"Only HTTPS protocol is allowed. Got: {parsed.scheme}")
        if not parsed.host:
            raise InvalidInputError(f"Invalid URL (no host): {url}")

        port = parsed.port or 443
        if port not in options.allowed_ports:
            allowed = ", ".join(str(p) for p in sorted(options.allowed_ports))
            raise BlockedProtocolError(f"Port {port} not allowed. Allowed ports: {allowed}")
        return parsed

    def _redirect_target(
        self, current: httpx.URL, location: str, options: FetchOptions
    ) -> httpx.URL:
        try:
            target = current.join(location)
        except httpx.InvalidURL as e:
            raise ProtocolViolationError(f"Invalid redirect location: {location}") from e
        try:
            return self._check_url(target, options)
        except BlockedProtocolError as e:
            raise BlockedProtocolError(f"Redirect to {target} blocked: {e}") from e

    async def _resolve(self, url: httpx.URL, options: FetchOptions) -> ValidatedAddressSet:
        hostname = url.raw_host.decode("ascii")
        try:
            async with asyncio.timeout(options.connect_timeout):
                return await self.resolver.resolve(hostname)
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"DNS resolution for {hostname} timed out after {options.connect_timeout}s"
            ) from e

    def _client(self, pinned: ValidatedAddressSet, options: FetchOptions) -> httpx.AsyncClient:
        # trust_env=False: an environment proxy would be dialed instead of the pinned address
        return httpx.AsyncClient(
            transport=self.transport_factory(pinned),
            timeout=httpx.Timeout(options.total_timeout, connect=options.connect_timeout),
            follow_redirects=False,
            trust_env=False,
            headers={
                "User-Agent": self.user_agent,
                "Accept": ", ".join(sorted(options.allowed_content_types)),
                # Compressed bodies would be inflated before the size cap sees them
                "Accept-Encoding": "identity",
            },
        )

    def _check_response(self, response: httpx.Response, options: FetchOptions) -> str:
        """Check status, type, encoding and declared length; return the content type."""
        if not response.is_success:
            raise ProtocolViolationError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type") or "text/plain"
        base_type = content_type.split(";")[0].strip().lower()
        if base_type not in options.allowed_content_types:
            allowed = ", ".join(sorted(options.allowed_content_types))
            raise ContentPolicyViolationError(
                f"Content-Type {content_type} not in allowed list: {allowed}"
            )

        content_encoding = response.headers.get("content-encoding", "identity").strip().lower()
        if content_encoding not in ("", "identity"):
            raise ContentPolicyViolationError(
                f"Content-Encoding {content_encoding} not allowed; only identity is accepted"
            )

        content_length = response.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError as e:
                raise ProtocolViolationError(
                    f"Invalid Content-Length header: {content_length}"
                ) from e
            if declared > options.max_bytes:
                raise ContentPolicyViolationError(
                    f"Content too large: {declared} bytes (max {options.max_bytes})"
                )

        return content_type

    async def _read_body(self, response: httpx.Response, max_bytes: int) -> bytes:
        """Stream the body, aborting as soon as it grows past max_bytes."""
        chunks: list[bytes] = []
        total = 0
        async for chunk in response.aiter_bytes():
            total += len(chunk)
            if total > max_bytes:
                raise ContentPolicyViolationError(
                    f"Content exceeded size limit of {max_bytes} bytes"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    async def fetch_json(self, url: str, options: FetchOptions | None = None) -> Any:
        """Fetch a URL that must return JSON and parse it.

        Raises:
            ContentPolicyViolationError: If the response is not application/json
            ProtocolViolationError: If the body is not valid JSON
        """
        options = (options or self.default_options).model_copy(
            update={"allowed_content_types": frozenset({"application/json"})}
        )
        result = await self.fetch(url, options)
        try:
            return json.loads(result.content)
        except ValueError as e:
            raise ProtocolViolationError(f"Failed to parse JSON from {url}: {e}") from e

    async def fetch_text(self, url: str, options: FetchOptions | None = None) -> str:
        """Fetch a URL and return its text, with markup stripped from HTML."""
        result = await self.fetch(url, options)
        if result.media_type == "text/html":
            _, text = extract_html_text(result.text)
            return text
        return result.text

    async def fetch_page(
        self,
        url: str,
        extract_text: bool = True,
        max_length: int = 10000,
        options: FetchOptions | None = None,
    ) -> WebPageContent:
        """Fetch a page and extract its content for display to a model.

        Args:
            url: HTTPS URL to fetch
            extract_text: If True, strip HTML down to text; if False, return raw body
            max_length: Maximum characters to return
            options: Limits for this call

        Returns:
            WebPageContent: Extracted page content (truncated flag set if cut)
        """
        result = await self.fetch(url, options)

        title = None
        text = result.text
        if extract_text and result.media_type == "text/html":
            title, text = extract_html_text(text)

        # Truncate if needed
        truncated = len(text) > max_length
        if truncated:
            text = text[:max_length]

        logger.info(f"Extracted {len(text)} characters from {result.final_url}")

        return WebPageContent(
            url=url,
            final_url=result.final_url,
            title=title,
            text=text,
            length=len(text),
            truncated=truncated,
        )

    async def fetch_batch(
        self,
        urls: list[str],
        options: FetchOptions | None = None,
        concurrency: int = DEFAULT_BATCH_CONCURRENCY,
    ) -> list[FetchResult | WebAccessError]:
        """Fetch several URLs, a few at a time.

        A failing URL does not cancel the others; its slot in the returned
        list holds the error instead of a result.

        Args:
            urls: URLs to fetch
            options: Limits applied to every fetch
            concurrency: Number of fetches in flight at once

        Returns:
            list: One FetchResult or WebAccessError per URL, in input order
        """
        if concurrency < 1:
            raise InvalidInputError("concurrency must be at least 1")

        outcomes: list[FetchResult | WebAccessError] = []
        for start in range(0, len(urls), concurrency):
            chunk = urls[start : start + concurrency]
            results = await asyncio.gather(
                *(self.fetch(url, options) for url in chunk),
                return_exceptions=True,
            )
            for url, result in zip(chunk, results):
                if isinstance(result, WebAccessError):
                    logger.error(f"Batch fetch failed for {url}: {result}")
                elif isinstance(result, BaseException):
                    raise result
                outcomes.append(result)
        return outcomes
