"""IP-pinned HTTP transport.

The transport never asks DNS where to connect. Its network backend is handed
a ValidatedAddressSet and dials only those addresses, so a hostname whose
answer changes after validation (DNS rebinding) still reaches the address
that was checked. TLS is negotiated for the URL's hostname, so certificate
verification and SNI are unaffected by pinning.
"""

import ssl
from collections.abc import Iterable
from typing import Any

import certifi
import httpcore
import httpx

from webguard.logging import get_logger
from webguard.net.resolver import ValidatedAddressSet

logger = get_logger("webguard.net.transport")


class PinnedNetworkBackend(httpcore.AsyncNetworkBackend):
    """Network backend that connects only to pre-validated addresses."""

    def __init__(
        self,
        pinned: ValidatedAddressSet,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ):
        """Initialize the backend.

        Args:
            pinned: Validated addresses for the single hostname this hop may reach
            backend: Backend used for the actual socket work (AnyIO by default)
        """
        self.pinned = pinned
        self._backend = backend or httpcore.AnyIOBackend()
        self.attempts: list[str] = []

    def _accepts(self, host: str) -> bool:
        host = host.lower().strip("[]")
        return host == self.pinned.hostname or host in self.pinned.addresses

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        """Open a TCP stream to the first reachable pinned address.

        Raises:
            httpcore.ConnectError: If the host is not pinned or every address fails
            httpcore.ConnectTimeout: If the last address attempted timed out
        """
        if not self._accepts(host):
            raise httpcore.ConnectError(f"Host {host} is not pinned for this request")

        last_error: Exception | None = None
        for address in self.pinned.addresses:
            self.attempts.append(address)
            try:
                return await self._backend.connect_tcp(
                    address,
                    port,
                    timeout=timeout,
                    local_address=local_address,
                    socket_options=socket_options,
                )
            except (httpcore.ConnectError, httpcore.ConnectTimeout) as e:
                logger.debug(f"Connect to {address}:{port} for {host} failed: {e}")
                last_error = e

        if last_error is None:
            raise httpcore.ConnectError(f"No validated addresses for {host}")
        raise last_error

    async def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        raise httpcore.ConnectError("Unix sockets are not permitted")

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)


def default_ssl_context() -> ssl.SSLContext:
    """Create a certificate-verifying TLS context using the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


class PinnedTransport(httpx.AsyncHTTPTransport):
    """httpx transport whose connections are pinned to validated addresses.

    One instance serves one redirect hop. HTTP/1.1 only, no connection
    retries.
    """

    def __init__(
        self,
        pinned: ValidatedAddressSet,
        ssl_context: ssl.SSLContext | None = None,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ):
        """Initialize the transport.

        Args:
            pinned: Validated addresses for this hop
            ssl_context: TLS context (certifi-backed default context if None)
            backend: Socket backend wrapped by the pinning layer
        """
        ssl_context = ssl_context or default_ssl_context()
        super().__init__(verify=ssl_context, http1=True, http2=False, retries=0)
        self.network_backend = PinnedNetworkBackend(pinned, backend=backend)
        # Replace the default pool so every connection goes through the pinned backend
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=ssl_context,
            max_connections=1,
            http1=True,
            http2=False,
            retries=0,
            network_backend=self.network_backend,
        )

    @property
    def attempts(self) -> tuple[str, ...]:
        """Addresses dialed so far, in order."""
        return tuple(self.network_backend.attempts)
