"""Tests for the IP-pinned transport."""

import httpcore
import httpx
import pytest

from webguard.net.resolver import ValidatedAddressSet
from webguard.net.transport import PinnedNetworkBackend, PinnedTransport


def pinned(*addresses: str, hostname: str = "example.com") -> ValidatedAddressSet:
    return ValidatedAddressSet(hostname=hostname, addresses=addresses)


class TestPinnedNetworkBackend:
    """Test PinnedNetworkBackend."""

    @pytest.mark.asyncio
    async def test_dials_pinned_address_not_hostname(self, recording_backend):
        """Test the hostname is replaced by the validated address."""
        inner = recording_backend()
        backend = PinnedNetworkBackend(pinned("93.184.216.34"), backend=inner)

        await backend.connect_tcp("example.com", 443)

        assert inner.dialed == ["93.184.216.34"]
        assert backend.attempts == ["93.184.216.34"]

    @pytest.mark.asyncio
    async def test_refuses_unpinned_host(self, recording_backend):
        """Test a host other than the pinned one is never dialed."""
        inner = recording_backend()
        backend = PinnedNetworkBackend(pinned("93.184.216.34"), backend=inner)

        with pytest.raises(httpcore.ConnectError):
            await backend.connect_tcp("internal.example", 443)
        assert inner.dialed == []

    @pytest.mark.asyncio
    async def test_falls_through_to_next_address(self, recording_backend):
        """Test a failed connect moves on to the next pinned address."""
        inner = recording_backend(unreachable={"93.184.216.34"})
        backend = PinnedNetworkBackend(
            pinned("93.184.216.34", "93.184.216.35"), backend=inner
        )

        await backend.connect_tcp("example.com", 443)

        assert inner.dialed == ["93.184.216.34", "93.184.216.35"]

    @pytest.mark.asyncio
    async def test_all_addresses_fail(self, recording_backend):
        """Test the hop fails once every pinned address has failed."""
        inner = recording_backend(unreachable={"93.184.216.34", "93.184.216.35"})
        backend = PinnedNetworkBackend(
            pinned("93.184.216.34", "93.184.216.35"), backend=inner
        )

        with pytest.raises(httpcore.ConnectError):
            await backend.connect_tcp("example.com", 443)
        assert inner.dialed == ["93.184.216.34", "93.184.216.35"]

    @pytest.mark.asyncio
    async def test_unix_sockets_refused(self, recording_backend):
        """Test unix socket connections are not available."""
        backend = PinnedNetworkBackend(pinned("93.184.216.34"), backend=recording_backend())

        with pytest.raises(httpcore.ConnectError):
            await backend.connect_unix_socket("/var/run/docker.sock")


class TestPinnedTransport:
    """Test PinnedTransport with httpx."""

    @pytest.mark.asyncio
    async def test_request_goes_to_pinned_address(self, recording_backend):
        """Test an httpx request is carried over the pinned connection."""
        inner = recording_backend()
        transport = PinnedTransport(pinned("93.184.216.34"), backend=inner)

        async with httpx.AsyncClient(transport=transport, trust_env=False) as client:
            response = await client.get("https://example.com/page")

        assert response.status_code == 200
        assert response.text == "hello"
        assert inner.dialed == ["93.184.216.34"]
        assert transport.attempts == ("93.184.216.34",)

    @pytest.mark.asyncio
    async def test_request_to_other_host_fails(self, recording_backend):
        """Test a transport pinned for one host cannot reach another."""
        inner = recording_backend()
        transport = PinnedTransport(pinned("93.184.216.34"), backend=inner)

        async with httpx.AsyncClient(transport=transport, trust_env=False) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("https://metadata.internal/")

        assert inner.dialed == []
