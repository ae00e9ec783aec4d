"""Classification of IP literals as publicly routable or not."""

import ipaddress

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

BLOCKED_IPV4_NETWORKS = tuple(
    ipaddress.IPv4Network(cidr)
    for cidr in (
        "0.0.0.0/8",  # "this" network
        "10.0.0.0/8",  # private
        "100.64.0.0/10",  # carrier-grade NAT
        "127.0.0.0/8",  # loopback
        "169.254.0.0/16",  # link-local, cloud metadata
        "172.16.0.0/12",  # private
        "192.0.0.0/24",  # IETF protocol assignments
        "192.168.0.0/16",  # private
        "198.18.0.0/15",  # benchmarking
        "224.0.0.0/4",  # multicast
        "240.0.0.0/4",  # reserved, broadcast
    )
)

BLOCKED_IPV6_NETWORKS = tuple(
    ipaddress.IPv6Network(cidr)
    for cidr in (
        "::/96",  # unspecified, loopback, deprecated IPv4-compatible
        "fe80::/10",  # link-local
        "fc00::/7",  # unique local
        "ff00::/8",  # multicast
    )
)

# Well-known NAT64 prefix; the low 32 bits carry an IPv4 destination.
NAT64_NETWORK = ipaddress.IPv6Network("64:ff9b::/96")


def parse_ip(value: str) -> IPAddress | None:
    """Parse an IP literal, accepting brackets and IPv6 zone ids.

    Args:
        value: Candidate literal such as "93.184.216.34" or "[2606:2800::1]"

    Returns:
        The parsed address, or None if the value is not an IP literal
    """
    candidate = value.strip()
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]
    try:
        return ipaddress.ip_address(candidate)
    except ValueError:
        return None


def _embedded_ipv4(address: ipaddress.IPv6Address) -> ipaddress.IPv4Address | None:
    """Return the IPv4 destination a 6to4 or NAT64 address tunnels to, if any."""
    if address.sixtofour is not None:
        return address.sixtofour
    if address in NAT64_NETWORK:
        return ipaddress.IPv4Address(int(address) & 0xFFFFFFFF)
    return None


def _is_public_ipv4(address: ipaddress.IPv4Address) -> bool:
    if any(address in network for network in BLOCKED_IPV4_NETWORKS):
        return False
    # Covers the remaining IANA special-purpose ranges (documentation, etc.)
    return address.is_global


def is_public_ip(ip: str | IPAddress) -> bool:
    """Check whether an address is safe to connect to.

    IPv4-mapped IPv6 addresses are judged as the IPv4 address they map.
    6to4 and NAT64 addresses must also embed a public IPv4 address.
    Anything that is not a valid literal is treated as non-public.

    Args:
        ip: IP literal or parsed address

    Returns:
        bool: True only for publicly routable unicast addresses
    """
    address = ip if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else parse_ip(ip)
    if address is None:
        return False

    if isinstance(address, ipaddress.IPv4Address):
        return _is_public_ipv4(address)

    if address.ipv4_mapped is not None:
        return _is_public_ipv4(address.ipv4_mapped)

    embedded = _embedded_ipv4(address)
    if embedded is not None and not _is_public_ipv4(embedded):
        return False

    if any(address in network for network in BLOCKED_IPV6_NETWORKS):
        return False
    return address.is_global
