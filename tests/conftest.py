"""Shared pytest fixtures for gandi-dns-update tests."""

from __future__ import annotations

from collections.abc import Iterator
from ipaddress import IPv4Address
from pathlib import Path
from unittest.mock import patch

import pytest
from dnsfakes import GOOGLE, FakeDNS, rrset

from gandi_dns_update.config import Config, DomainConfig, GandiConfig, SettingsConfig
from gandi_dns_update.resolver import ResolverConfig


@pytest.fixture
def fake_dns() -> Iterator[FakeDNS]:
    """Patch dnspython's Resolver with a scripted fake."""
    with patch("dns.resolver.Resolver") as mock_resolver:
        yield FakeDNS(mock_resolver.return_value)


@pytest.fixture
def bootstrap() -> ResolverConfig:
    """Recursive bootstrap resolver."""
    return ResolverConfig.google()


@pytest.fixture
def delegation(fake_dns: FakeDNS) -> FakeDNS:
    """example.com. delegated to ns1.example.com. at 192.0.2.10."""
    fake_dns.add(
        GOOGLE,
        "example.com.",
        "NS",
        [rrset("example.com.", "NS", "ns1.example.com.", "ns2.example.com.")],
    )
    fake_dns.add(GOOGLE, "ns1.example.com.", "A", [rrset("ns1.example.com.", "A", "192.0.2.10")])
    return fake_dns


@pytest.fixture
def sample_config() -> Config:
    """Create a sample configuration for testing."""
    return Config(
        gandi=GandiConfig(api_key="test-key", base_url="https://dns.api.gandi.net/api/v5"),
        domain=DomainConfig(
            fqdn="example.com.",
            ip=IPv4Address("203.0.113.5"),
            dynamic_items=("home", "vpn"),
        ),
        settings=SettingsConfig(dry_run=False),
    )


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    """Create a sample YAML config file for testing."""
    config_content = """
gandi:
  api_key: "test-key"

domain:
  fqdn: "example.com."
  ip: "203.0.113.5"
  dynamic_items: [home, vpn]

settings:
  dry_run: false
  verify_delay: 2.5
"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(config_content)
    return config_file
