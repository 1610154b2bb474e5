"""Tests for the DNS lookup wrapper."""

from __future__ import annotations

from ipaddress import IPv4Address
from unittest.mock import patch

import dns.exception
import dns.resolver
import pytest
from dnsfakes import GOOGLE, FakeDNS, rrset

from gandi_dns_update.resolver import (
    DNSLookupError,
    DNSTransportError,
    RecordNotFoundError,
    ResolverConfig,
    ResourceRecord,
    ServerEndpoint,
    lookup,
)


class TestResolverConfig:
    """Tests for ResolverConfig constructors."""

    def test_google(self) -> None:
        config = ResolverConfig.google()
        assert config.kind == "recursive"
        assert config.nameservers == (IPv4Address("8.8.8.8"), IPv4Address("8.8.4.4"))
        assert config.port == 53
        assert config.timeout == 15.0
        assert config.domain is None

    def test_for_endpoint(self) -> None:
        endpoint = ServerEndpoint(address=IPv4Address("192.0.2.10"), zone="example.com.")
        config = ResolverConfig.for_endpoint(endpoint)
        assert config.kind == "authoritative"
        assert config.nameservers == (IPv4Address("192.0.2.10"),)
        assert config.domain == "example.com."
        assert config.port == 53

    def test_resolver_is_configured_from_config(self) -> None:
        """The dnspython resolver gets servers, port, timeout and domain, no system config."""
        endpoint = ServerEndpoint(address=IPv4Address("192.0.2.10"), zone="example.com.")
        with patch("dns.resolver.Resolver") as mock_resolver:
            instance = mock_resolver.return_value
            instance.resolve.return_value.response.answer = [
                rrset("home.example.com.", "A", "203.0.113.1")
            ]

            lookup(ResolverConfig.for_endpoint(endpoint), "home.example.com.", "A")

        mock_resolver.assert_called_once_with(configure=False)
        assert instance.nameservers == ["192.0.2.10"]
        assert instance.port == 53
        assert instance.lifetime == 15.0
        assert instance.retry_servfail is False
        assert instance.domain.to_text() == "example.com."


class TestLookup:
    """Tests for lookup."""

    def test_returns_a_record(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(GOOGLE, "host.example.com.", "A", [rrset("host.example.com.", "A", "192.0.2.1")])

        record = lookup(bootstrap, "host.example.com.", "A")

        assert record == ResourceRecord(rdtype="A", name="host.example.com.", value="192.0.2.1")
        assert record.address == IPv4Address("192.0.2.1")

    def test_returns_ns_record(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(GOOGLE, "example.com.", "NS", [rrset("example.com.", "NS", "ns1.example.com.")])

        record = lookup(bootstrap, "example.com.", "NS")

        assert record.rdtype == "NS"
        assert record.name == "example.com."
        assert record.target == "ns1.example.com."

    def test_name_without_trailing_dot_is_absolute(
        self, fake_dns: FakeDNS, bootstrap: ResolverConfig
    ) -> None:
        fake_dns.add(GOOGLE, "myip.opendns.com.", "A", [rrset("myip.opendns.com.", "A", "192.0.2.1")])

        record = lookup(bootstrap, "myip.opendns.com", "A")

        assert record.value == "192.0.2.1"
        assert fake_dns.queries == [(GOOGLE, "myip.opendns.com.", "A")]

    def test_skips_records_of_other_types(
        self, fake_dns: FakeDNS, bootstrap: ResolverConfig
    ) -> None:
        """CNAME records ahead of the A record are ignored."""
        fake_dns.add(
            GOOGLE,
            "www.example.com.",
            "A",
            [
                rrset("www.example.com.", "CNAME", "web.example.net."),
                rrset("web.example.net.", "A", "192.0.2.7"),
            ],
        )

        record = lookup(bootstrap, "www.example.com.", "A")

        assert record.rdtype == "A"
        assert record.name == "web.example.net."
        assert record.value == "192.0.2.7"

    def test_first_matching_record_wins(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(
            GOOGLE,
            "example.com.",
            "NS",
            [rrset("example.com.", "NS", "ns1.example.com.", "ns2.example.com.")],
        )

        record = lookup(bootstrap, "example.com.", "NS")

        assert record.target in {"ns1.example.com.", "ns2.example.com."}

    def test_only_other_types_is_not_found(
        self, fake_dns: FakeDNS, bootstrap: ResolverConfig
    ) -> None:
        fake_dns.add(
            GOOGLE,
            "www.example.com.",
            "A",
            [rrset("www.example.com.", "CNAME", "web.example.net.")],
        )

        with pytest.raises(RecordNotFoundError, match="Record type A not found"):
            lookup(bootstrap, "www.example.com.", "A")

    def test_empty_answer_is_not_found(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(GOOGLE, "example.com.", "NS", [])

        with pytest.raises(RecordNotFoundError) as exc_info:
            lookup(bootstrap, "example.com.", "NS")

        assert exc_info.value.name == "example.com."
        assert exc_info.value.rdtype == "NS"
        assert isinstance(exc_info.value, LookupError)

    def test_nxdomain_is_not_found(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        with pytest.raises(RecordNotFoundError, match="does not exist") as exc_info:
            lookup(bootstrap, "missing.example.com.", "A")

        assert isinstance(exc_info.value.__cause__, dns.resolver.NXDOMAIN)

    def test_timeout_is_transport_error(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(GOOGLE, "slow.example.com.", "A", dns.exception.Timeout())

        with pytest.raises(DNSTransportError) as exc_info:
            lookup(bootstrap, "slow.example.com.", "A")

        assert isinstance(exc_info.value.__cause__, dns.exception.Timeout)
        assert isinstance(exc_info.value, DNSLookupError)

    def test_no_nameservers_is_transport_error(
        self, fake_dns: FakeDNS, bootstrap: ResolverConfig
    ) -> None:
        fake_dns.add(GOOGLE, "refused.example.com.", "A", dns.resolver.NoNameservers())

        with pytest.raises(DNSTransportError, match="8.8.8.8"):
            lookup(bootstrap, "refused.example.com.", "A")

    def test_socket_error_is_transport_error(
        self, fake_dns: FakeDNS, bootstrap: ResolverConfig
    ) -> None:
        fake_dns.add(GOOGLE, "down.example.com.", "A", OSError("Network is unreachable"))

        with pytest.raises(DNSTransportError, match="Network is unreachable"):
            lookup(bootstrap, "down.example.com.", "A")

    def test_single_attempt(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        fake_dns.add(GOOGLE, "slow.example.com.", "A", dns.exception.Timeout())

        with pytest.raises(DNSTransportError):
            lookup(bootstrap, "slow.example.com.", "A")

        assert len(fake_dns.queries) == 1

    def test_unsupported_type(self, fake_dns: FakeDNS, bootstrap: ResolverConfig) -> None:
        with pytest.raises(ValueError, match="Unsupported record type"):
            lookup(bootstrap, "example.com.", "AAAA")

        assert fake_dns.queries == []


class TestResourceRecord:
    """Tests for ResourceRecord accessors."""

    def test_address_of_ns_record_raises(self) -> None:
        record = ResourceRecord(rdtype="NS", name="example.com.", value="ns1.example.com.")
        with pytest.raises(ValueError):
            _ = record.address

    def test_target_of_a_record_raises(self) -> None:
        record = ResourceRecord(rdtype="A", name="example.com.", value="192.0.2.1")
        with pytest.raises(ValueError):
            _ = record.target
