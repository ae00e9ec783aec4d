"""Address validation, resolution and IP-pinned connections."""

from webguard.net.address import is_public_ip, parse_ip
from webguard.net.resolver import HostResolver, ValidatedAddressSet, system_lookup
from webguard.net.transport import PinnedNetworkBackend, PinnedTransport

__all__ = [
    "is_public_ip",
    "parse_ip",
    "HostResolver",
    "ValidatedAddressSet",
    "system_lookup",
    "PinnedNetworkBackend",
    "PinnedTransport",
]
