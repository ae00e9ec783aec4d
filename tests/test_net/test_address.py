"""Tests for public address classification."""

import ipaddress

import pytest

from webguard.net.address import is_public_ip, parse_ip


class TestParseIP:
    """Test IP literal parsing."""

    def test_plain_literals(self):
        """Test IPv4 and IPv6 literals parse."""
        assert parse_ip("8.8.8.8") == ipaddress.IPv4Address("8.8.8.8")
        assert parse_ip("2606:4700::1111") == ipaddress.IPv6Address("2606:4700::1111")

    def test_bracketed_ipv6(self):
        """Test URL-style bracketed IPv6 parses."""
        assert parse_ip("[::1]") == ipaddress.IPv6Address("::1")

    def test_not_a_literal(self):
        """Test hostnames and garbage are not literals."""
        assert parse_ip("example.com") is None
        assert parse_ip("") is None
        assert parse_ip("999.1.1.1") is None


class TestIsPublicIP:
    """Test is_public_ip classification."""

    @pytest.mark.parametrize(
        "ip",
        [
            "8.8.8.8",
            "1.1.1.1",
            "93.184.216.34",
            "11.0.0.1",
            "172.15.255.255",
            "172.32.0.1",
            "100.63.255.255",
            "100.128.0.1",
            "169.253.255.255",
            "192.169.0.1",
            "198.17.255.255",
            "198.20.0.1",
            "223.255.255.254",
            "2606:4700:4700::1111",
            "2001:4860:4860::8888",
            "::ffff:8.8.8.8",
        ],
    )
    def test_public_addresses(self, ip):
        """Test routable unicast addresses are public."""
        assert is_public_ip(ip) is True

    @pytest.mark.parametrize(
        "ip",
        [
            "0.0.0.0",
            "0.1.2.3",
            "127.0.0.1",
            "127.255.255.254",
            "10.0.0.1",
            "10.255.255.255",
            "172.16.0.1",
            "172.31.255.255",
            "192.168.0.1",
            "192.168.255.255",
            "169.254.169.254",
            "100.64.0.1",
            "100.127.255.255",
            "198.18.0.1",
            "198.19.255.255",
            "192.0.0.8",
            "224.0.0.1",
            "239.255.255.250",
            "240.0.0.1",
            "255.255.255.255",
        ],
    )
    def test_private_ipv4(self, ip):
        """Test private, loopback, link-local, CGNAT, multicast and reserved IPv4."""
        assert is_public_ip(ip) is False

    @pytest.mark.parametrize(
        "ip",
        [
            "::1",
            "::",
            "[::1]",
            "fe80::1",
            "fe80::1%eth0",
            "febf:ffff::1",
            "fc00::1",
            "fd12:3456:789a::1",
            "ff02::1",
            "ff0e::1",
        ],
    )
    def test_private_ipv6(self, ip):
        """Test loopback, link-local, unique local and multicast IPv6."""
        assert is_public_ip(ip) is False

    @pytest.mark.parametrize(
        "ip",
        [
            "::ffff:127.0.0.1",
            "::FFFF:10.0.0.1",
            "::ffff:169.254.169.254",
            "::ffff:192.168.1.1",
        ],
    )
    def test_ipv4_mapped_private(self, ip):
        """Test IPv4-mapped IPv6 addresses are judged by their IPv4 form."""
        assert is_public_ip(ip) is False

    def test_tunnelled_private_ipv4(self):
        """Test 6to4 and NAT64 addresses that embed a private IPv4 address."""
        assert is_public_ip("2002:7f00:1::1") is False  # 6to4 of 127.0.0.1
        assert is_public_ip("64:ff9b::a9fe:a9fe") is False  # NAT64 of 169.254.169.254

    @pytest.mark.parametrize(
        "ip",
        ["192.0.2.1", "198.51.100.7", "203.0.113.9", "2001:db8::1"],
    )
    def test_documentation_ranges(self, ip):
        """Test IANA documentation ranges are not public."""
        assert is_public_ip(ip) is False

    @pytest.mark.parametrize(
        "value",
        ["", "not-an-ip", "example.com", "256.1.1.1", "1.2.3", "010.0.0.1", "1.1.1.1.1", ":::1"],
    )
    def test_invalid_literals_fail_closed(self, value):
        """Test anything unparsable is treated as non-public."""
        assert is_public_ip(value) is False

    def test_accepts_parsed_addresses(self):
        """Test ipaddress objects are accepted directly."""
        assert is_public_ip(ipaddress.ip_address("8.8.4.4")) is True
        assert is_public_ip(ipaddress.ip_address("10.0.0.1")) is False
