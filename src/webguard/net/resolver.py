"""Hostname resolution with public-address validation.

A hostname is usable only if every address it resolves to is public. The
validated addresses are returned as a ValidatedAddressSet, which the pinned
transport dials directly so that no later lookup can change the target.
"""

import asyncio
import socket
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from webguard.errors import BlockedAddressError, RequestTimeoutError, ResolutionFailedError
from webguard.logging import get_logger
from webguard.net.address import is_public_ip, parse_ip

logger = get_logger("webguard.net.resolver")

Lookup = Callable[[str], Awaitable[list[str]]]

BLOCKED_HOSTNAMES = frozenset({"localhost", "0.0.0.0"})


class ValidatedAddressSet(BaseModel):
    """Addresses a hostname resolved to, all already checked as public."""

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(description="Lower-cased ASCII hostname the addresses belong to")
    addresses: tuple[str, ...] = Field(description="Validated IP literals in resolution order")

    def __len__(self) -> int:
        return len(self.addresses)


async def system_lookup(hostname: str) -> list[str]:
    """Resolve A and AAAA records through the operating system resolver.

    Args:
        hostname: ASCII hostname

    Returns:
        list[str]: Unique addresses in resolver order

    Raises:
        OSError: If resolution fails (socket.gaierror is a subclass)
    """
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(
        hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM
    )
    return list(dict.fromkeys(str(info[4][0]) for info in infos))


def _normalize_hostname(hostname: str) -> str:
    host = hostname.strip().lower()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host


class HostResolver:
    """Resolves hostnames and refuses any that reach a non-public address."""

    def __init__(self, lookup: Lookup | None = None, timeout: float | None = 5.0):
        """Initialize the resolver.

        Args:
            lookup: Coroutine function returning the addresses for a hostname
            timeout: Seconds allowed for one lookup (None disables the bound)
        """
        self.lookup = lookup or system_lookup
        self.timeout = timeout

    async def resolve(self, hostname: str) -> ValidatedAddressSet:
        """Resolve a hostname and validate every address it returns.

        Args:
            hostname: Hostname or IP literal taken from a URL

        Returns:
            ValidatedAddressSet: The validated addresses

        Raises:
            BlockedAddressError: If the host is blocked or any address is non-public
            ResolutionFailedError: If the lookup fails or returns nothing
            RequestTimeoutError: If the lookup exceeds the timeout
        """
        host = _normalize_hostname(hostname)
        if not host:
            raise ResolutionFailedError(hostname, "empty hostname")

        literal = parse_ip(host)
        if literal is not None:
            if not is_public_ip(literal):
                logger.warning(f"Blocked private IP literal: {host}")
                raise BlockedAddressError(
                    f"Access to private IP address {host} is blocked", address=host
                )
            return ValidatedAddressSet(hostname=host, addresses=(str(literal),))

        bare = host.rstrip(".")
        if bare in BLOCKED_HOSTNAMES or bare.endswith(".localhost"):
            logger.warning(f"Blocked local hostname: {host}")
            raise BlockedAddressError(
                f"Access to {host} is blocked for security reasons", address=host
            )

        try:
            async with asyncio.timeout(self.timeout):
                addresses = await self.lookup(host)
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"DNS resolution for {host} timed out after {self.timeout}s"
            ) from e
        except OSError as e:
            raise ResolutionFailedError(host, str(e)) from e

        if not addresses:
            raise ResolutionFailedError(host, "no A or AAAA records")

        for address in addresses:
            if not is_public_ip(address):
                logger.warning(f"Hostname {host} resolves to private IP {address}")
                raise BlockedAddressError(
                    f"Hostname {host} resolves to private IP {address}. "
                    "Access blocked for security.",
                    address=address,
                )

        logger.debug(f"DNS validated: {host} -> {', '.join(addresses)}")
        return ValidatedAddressSet(hostname=host, addresses=tuple(addresses))
