"""Single DNS lookups against an explicitly chosen set of name servers."""

from __future__ import annotations

from ipaddress import IPv4Address
from typing import Literal

import dns.exception
import dns.name
import dns.rdatatype
import dns.resolver
import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger()

DNS_PORT = 53
DNS_TIMEOUT = 15.0

# Google public DNS, used as the recursive bootstrap resolver
GOOGLE_NAMESERVERS = (IPv4Address("8.8.8.8"), IPv4Address("8.8.4.4"))

RecordType = Literal["NS", "A"]
SUPPORTED_RECORD_TYPES: tuple[str, ...] = ("NS", "A")


class DNSLookupError(Exception):
    """A lookup did not produce a record of the requested type."""

    def __init__(self, message: str, name: str, rdtype: str) -> None:
        super().__init__(message)
        self.name = name
        self.rdtype = rdtype


class RecordNotFoundError(DNSLookupError, LookupError):
    """The query succeeded but the response holds no record of the requested type."""


class DNSTransportError(DNSLookupError):
    """The query itself failed (timeout, refusal, unreachable or malformed response)."""


class ResourceRecord(BaseModel):
    """One record taken from a DNS response.

    ``value`` holds the NS target host name for NS records and the
    dotted-quad address for A records.
    """

    model_config = ConfigDict(frozen=True)

    rdtype: RecordType
    name: str
    value: str

    @property
    def address(self) -> IPv4Address:
        if self.rdtype != "A":
            raise ValueError(f"{self.rdtype} record {self.name} has no address")
        return IPv4Address(self.value)

    @property
    def target(self) -> str:
        if self.rdtype != "NS":
            raise ValueError(f"{self.rdtype} record {self.name} has no name server target")
        return self.value


class ServerEndpoint(BaseModel):
    """A single name server reachable over UDP port 53."""

    model_config = ConfigDict(frozen=True)

    address: IPv4Address
    zone: str = Field(description="Dot-terminated zone the server is queried for")
    nameserver: str | None = Field(default=None, description="Host name the address came from")
    port: Literal[53] = DNS_PORT
    protocol: Literal["udp"] = "udp"


class ResolverConfig(BaseModel):
    """Which servers to ask and how.

    ``recursive`` configs point at public caching resolvers, ``authoritative``
    configs at exactly one server discovered at runtime.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["recursive", "authoritative"]
    nameservers: tuple[IPv4Address, ...] = Field(min_length=1)
    domain: str | None = None
    port: int = DNS_PORT
    timeout: float = DNS_TIMEOUT

    @classmethod
    def google(cls) -> ResolverConfig:
        return cls(kind="recursive", nameservers=GOOGLE_NAMESERVERS)

    @classmethod
    def for_endpoint(cls, endpoint: ServerEndpoint) -> ResolverConfig:
        return cls(
            kind="authoritative",
            nameservers=(endpoint.address,),
            domain=endpoint.zone,
            port=endpoint.port,
        )


def _build_resolver(config: ResolverConfig) -> dns.resolver.Resolver:
    # configure=False: neither /etc/resolv.conf nor the hosts file is consulted
    resolver = dns.resolver.Resolver(configure=False)
    # port first, nameservers pick it up when assigned
    resolver.port = config.port
    resolver.nameservers = [str(ip) for ip in config.nameservers]
    resolver.timeout = config.timeout
    resolver.lifetime = config.timeout
    resolver.retry_servfail = False
    if config.domain:
        resolver.domain = dns.name.from_text(config.domain)
    return resolver


def _rdata_value(rdata: object, rdtype: str) -> str:
    if rdtype == "A":
        return str(rdata.address)  # type: ignore[attr-defined]
    return rdata.target.to_text()  # type: ignore[attr-defined]


def lookup(config: ResolverConfig, name: str, rdtype: str) -> ResourceRecord:
    """Query ``name`` once and return the first record of type ``rdtype``.

    Records of other types in the answer (CNAME chains, for instance) are
    skipped. Nothing is retried.

    Args:
        config: Servers and options for this query
        name: Name to look up, with or without the trailing dot
        rdtype: "NS" or "A"

    Returns:
        The first matching record

    Raises:
        RecordNotFoundError: If the response holds no record of that type
        DNSTransportError: If the query could not be completed
    """
    if rdtype not in SUPPORTED_RECORD_TYPES:
        raise ValueError(f"Unsupported record type: {rdtype}")

    qname = name if name.endswith(".") else f"{name}."
    nameservers = [str(ip) for ip in config.nameservers]
    resolver = _build_resolver(config)

    logger.debug("DNS query", name=qname, rdtype=rdtype, nameservers=nameservers)

    try:
        answer = resolver.resolve(qname, rdtype, search=False, raise_on_no_answer=False)
    except dns.resolver.NXDOMAIN as e:
        raise RecordNotFoundError(f"Domain {qname} does not exist", qname, rdtype) from e
    except dns.exception.DNSException as e:
        raise DNSTransportError(
            f"DNS query for {rdtype} {qname} via {', '.join(nameservers)} failed: {e}",
            qname,
            rdtype,
        ) from e
    except OSError as e:
        raise DNSTransportError(
            f"Network error querying {rdtype} {qname}: {e}", qname, rdtype
        ) from e

    wanted = dns.rdatatype.from_text(rdtype)
    for rrset in answer.response.answer:
        if rrset.rdtype != wanted or len(rrset) == 0:
            continue
        rdata = next(iter(rrset))
        record = ResourceRecord(
            rdtype=rdtype,  # type: ignore[arg-type]
            name=rrset.name.to_text(),
            value=_rdata_value(rdata, rdtype),
        )
        logger.debug("DNS answer", name=record.name, rdtype=rdtype, value=record.value)
        return record

    raise RecordNotFoundError(f"Record type {rdtype} not found for {qname}", qname, rdtype)
