"""Exceptions raised by webguard search and fetch operations.

Every failure surfaces as a subclass of WebAccessError. The ``blocked``
class attribute separates refusals made for safety (private addresses,
insecure schemes, disallowed content) from failures that are transient or
caused by the caller, so callers can present them differently.
"""


class WebAccessError(Exception):
    """Base exception for search and fetch failures."""

    blocked: bool = False


class InvalidInputError(WebAccessError):
    """Exception raised for a malformed or oversized query or URL."""

    pass


class BlockedAddressError(WebAccessError):
    """Exception raised when a host is, or resolves to, a non-public address."""

    blocked = True

    def __init__(self, message: str, address: str | None = None):
        """Initialize with the offending address.

        Args:
            message: Human-readable reason
            address: The address or hostname that was refused
        """
        self.address = address
        super().__init__(message)


class BlockedProtocolError(WebAccessError):
    """Exception raised for a non-HTTPS scheme or a port outside the allowlist."""

    blocked = True


class ResolutionFailedError(WebAccessError):
    """Exception raised when a hostname cannot be resolved."""

    def __init__(self, hostname: str, reason: str | None = None):
        """Initialize with hostname.

        Args:
            hostname: The hostname that failed to resolve
            reason: Optional underlying cause
        """
        self.hostname = hostname
        message = f"DNS resolution failed for {hostname}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class TooManyRedirectsError(WebAccessError):
    """Exception raised when a fetch exceeds its redirect budget."""

    def __init__(self, max_redirects: int):
        """Initialize with the redirect limit.

        Args:
            max_redirects: The limit that was exceeded
        """
        self.max_redirects = max_redirects
        super().__init__(f"Too many redirects (max {max_redirects})")


class ProtocolViolationError(WebAccessError):
    """Exception raised for a redirect without Location or a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize with the response status.

        Args:
            message: Human-readable reason
            status_code: HTTP status of the offending response, if any
        """
        self.status_code = status_code
        super().__init__(message)


class ContentPolicyViolationError(WebAccessError):
    """Exception raised for a disallowed content type or an oversized body."""

    blocked = True


class RateLimitedError(WebAccessError):
    """Exception raised when an identity exceeds its request quota."""

    def __init__(self, identity: str, retry_after: float):
        """Initialize with identity and wait time.

        Args:
            identity: User id or client address that was limited
            retry_after: Seconds until the current window resets
        """
        self.identity = identity
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {identity}. Retry in {retry_after:.0f}s."
        )


class RequestTimeoutError(WebAccessError):
    """Exception raised when resolution, connection or transfer times out."""

    pass


class ConnectionFailedError(WebAccessError):
    """Exception raised when no validated address accepts a connection."""

    pass


class ProviderUnavailableError(WebAccessError):
    """Exception raised when no search provider is configured."""

    pass


class ProviderError(WebAccessError):
    """Exception raised when a search backend fails or returns bad data."""

    def __init__(self, provider: str, message: str):
        """Initialize with provider name.

        Args:
            provider: Name of the backend that failed
            message: Human-readable reason
        """
        self.provider = provider
        super().__init__(f"{provider} search failed: {message}")
