"""Data models for web search results and fetched content."""

from email.message import Message
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_ALLOWED_CONTENT_TYPES = frozenset({"text/html", "text/plain", "application/json"})
DEFAULT_ALLOWED_PORTS = frozenset({443})


def extract_domain(url: str) -> str:
    """Extract domain name from URL.

    Args:
        url: Full URL

    Returns:
        str: Domain name (e.g., 'example.com'), or "" if the URL has none
    """
    try:
        domain = urlparse(url).hostname or ""
    except ValueError:
        return ""
    # Remove 'www.' prefix if present
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


class SearchResult(BaseModel):
    """A single web search result."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Title of the search result")
    url: str = Field(description="URL of the result")
    snippet: str = Field(description="Text snippet from the result")
    score: float | None = Field(default=None, description="Provider relevance score")
    source: str = Field(default="", description="Source domain (e.g., 'example.com')")

    @classmethod
    def from_fields(
        cls, title: str, url: str, snippet: str, score: float | None = None
    ) -> "SearchResult":
        """Build a result, deriving the source domain from the URL."""
        return cls(
            title=title,
            url=url,
            snippet=snippet,
            score=score,
            source=extract_domain(url),
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"{self.title}\n{self.url}\n{self.snippet[:100]}..."


class SearchOptions(BaseModel):
    """Provider-independent search parameters."""

    model_config = ConfigDict(frozen=True)

    max_results: int = Field(default=10, ge=1, le=20, description="Maximum results to return")
    region: str | None = Field(default=None, description="Region code (e.g., 'us', 'de')")
    language: str | None = Field(default=None, description="Language code (e.g., 'en')")

    def cache_key_parts(self) -> tuple[int, str, str]:
        """Effective option values that distinguish cached result lists."""
        return (
            self.max_results,
            (self.region or "").lower(),
            (self.language or "").lower(),
        )


class CacheEntry(BaseModel):
    """Cached search results with their lifetime."""

    results: list[SearchResult]
    created_at: float = Field(description="Clock reading when the entry was stored")
    expires_at: float = Field(description="created_at + TTL")

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class RateWindow(BaseModel):
    """Fixed-window request counter for one identity."""

    count: int = Field(ge=0)
    reset_at: float


class FetchOptions(BaseModel):
    """Limits applied to a single fetch. Every field has a safe default."""

    model_config = ConfigDict(frozen=True)

    max_bytes: int = Field(default=DEFAULT_MAX_BYTES, ge=1, description="Body size limit")
    total_timeout: float = Field(default=10.0, gt=0, description="Seconds for the whole fetch")
    connect_timeout: float = Field(default=5.0, gt=0, description="Seconds for DNS and connect")
    max_redirects: int = Field(default=2, ge=0, description="Redirects followed before failing")
    allowed_content_types: frozenset[str] = Field(
        default=DEFAULT_ALLOWED_CONTENT_TYPES,
        description="Accepted media types, matched on the base type only",
    )
    allowed_ports: frozenset[int] = Field(
        default=DEFAULT_ALLOWED_PORTS,
        description="Ports a URL (or redirect target) may use",
    )

    @field_validator("allowed_content_types", mode="before")
    @classmethod
    def normalize_content_types(cls, v: object) -> frozenset[str]:
        """Lower-case media types and drop any parameters."""
        if isinstance(v, str):
            v = [v]
        return frozenset(str(item).split(";")[0].strip().lower() for item in v)

    @field_validator("allowed_content_types", "allowed_ports", mode="after")
    @classmethod
    def not_empty(cls, v: frozenset) -> frozenset:
        if not v:
            raise ValueError("allowlist must not be empty")
        return v


class FetchResult(BaseModel):
    """A fully received, policy-compliant response."""

    requested_url: str = Field(description="URL the caller asked for")
    final_url: str = Field(description="URL that produced the content after redirects")
    content_type: str = Field(description="Full Content-Type header, parameters included")
    content: bytes = Field(description="Complete response body")
    size: int = Field(description="Body size in bytes")
    redirect_count: int = Field(default=0, description="Redirects followed")

    @property
    def media_type(self) -> str:
        """Content type without parameters, lower-cased."""
        return self.content_type.split(";")[0].strip().lower()

    @property
    def charset(self) -> str:
        """Declared charset, or utf-8 when none is given."""
        message = Message()
        message["content-type"] = self.content_type
        return message.get_content_charset() or "utf-8"

    @property
    def text(self) -> str:
        """Body decoded with the declared charset; undecodable bytes are replaced."""
        try:
            return self.content.decode(self.charset, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


class WebPageContent(BaseModel):
    """Content extracted from a web page."""

    url: str = Field(description="URL of the fetched page")
    final_url: str | None = Field(default=None, description="URL after redirects")
    title: str | None = Field(default=None, description="Page title")
    text: str = Field(description="Extracted text content")
    length: int = Field(description="Length of extracted text in characters")
    truncated: bool = Field(default=False, description="Whether content was truncated")
