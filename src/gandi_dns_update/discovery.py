"""Discovery of our public IP and of a zone's authoritative name server."""

from __future__ import annotations

from ipaddress import IPv4Address

import structlog

from .resolver import ResolverConfig, ServerEndpoint, lookup

logger = structlog.get_logger()

# OpenDNS answers myip.opendns.com with the address of the querying client
ECHO_RESOLVER_HOST = "resolver1.opendns.com."
ECHO_HOST = "myip.opendns.com"


def discover_public_ip(bootstrap: ResolverConfig) -> IPv4Address:
    """Find our public IPv4 address by asking an OpenDNS resolver directly.

    Args:
        bootstrap: Recursive resolver used to locate the OpenDNS server

    Returns:
        The address the OpenDNS server saw our query come from
    """
    resolver_record = lookup(bootstrap, ECHO_RESOLVER_HOST, "A")
    echo_server = ServerEndpoint(
        address=resolver_record.address,
        zone=resolver_record.name,
        nameserver=resolver_record.name,
    )
    logger.debug("Echo resolver found", name=echo_server.zone, ip=str(echo_server.address))

    my_ip_record = lookup(ResolverConfig.for_endpoint(echo_server), ECHO_HOST, "A")
    return my_ip_record.address


def discover_authoritative_server(resolver: ResolverConfig, domain_fqdn: str) -> ServerEndpoint:
    """Resolve the first NS of ``domain_fqdn`` to an endpoint we can query directly.

    The zone on the returned endpoint is the owner name from the NS answer,
    not ``domain_fqdn`` as configured. Only the first NS record is used.

    Args:
        resolver: Recursive resolver for the NS and A lookups
        domain_fqdn: Zone name

    Returns:
        Endpoint for the zone's authoritative server
    """
    domain_record = lookup(resolver, domain_fqdn, "NS")
    zone = domain_record.name
    logger.debug("First NS of zone", zone=zone, nameserver=domain_record.target)

    ns_record = lookup(resolver, domain_record.target, "A")
    endpoint = ServerEndpoint(address=ns_record.address, zone=zone, nameserver=domain_record.target)
    logger.debug(
        "Authoritative server found",
        zone=zone,
        nameserver=endpoint.nameserver,
        ip=str(endpoint.address),
    )
    return endpoint
