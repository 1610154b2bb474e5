"""Compare dynamic records on the authoritative server with the desired IP."""

from __future__ import annotations

import time
from ipaddress import IPv4Address
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict

from .resolver import DNSLookupError, ResolverConfig, lookup

logger = structlog.get_logger()

RECORD_TTL = 300


class UpdateSink(Protocol):
    """Writes A records to the DNS provider."""

    def update_a_record(self, domain: str, name: str, value: str, ttl: int) -> None:
        """Replace the A record ``name`` in ``domain`` (no trailing dot) with ``value``."""
        ...


class ReconciliationOutcome(BaseModel):
    """Result of checking one dynamic record."""

    model_config = ConfigDict(frozen=True)

    record_name: str
    fqdn: str
    desired: IPv4Address
    observed: IPv4Address
    updated: bool = False

    @property
    def update_required(self) -> bool:
        return self.observed != self.desired


def compose_record_name(record_name: str, domain_fqdn: str) -> str:
    """Join a record name and a zone into an absolute name, e.g. ``home.example.com.``."""
    return f"{record_name.strip('.')}.{domain_fqdn.strip('.')}."


def reconcile(
    resolver: ResolverConfig,
    record_name: str,
    domain_fqdn: str,
    desired: IPv4Address,
) -> ReconciliationOutcome:
    """Read the current A value of a dynamic record and compare it to ``desired``."""
    fqdn = compose_record_name(record_name, domain_fqdn)
    logger.info("Checking dynamic record", zone=domain_fqdn, fqdn=fqdn)

    record = lookup(resolver, fqdn, "A")
    return ReconciliationOutcome(
        record_name=record_name.strip("."),
        fqdn=fqdn,
        desired=desired,
        observed=record.address,
    )


def verify_record(resolver: ResolverConfig, fqdn: str, expected: IPv4Address) -> bool:
    """Re-read a record after an update.

    Never raises for lookup failures: the provider may not have published
    the change yet, so a mismatch is only reported.

    Returns:
        True if the server already answers with ``expected``
    """
    try:
        record = lookup(resolver, fqdn, "A")
    except DNSLookupError as e:
        logger.warning("DNS verification error", fqdn=fqdn, error=str(e))
        return False

    if record.address == expected:
        logger.debug("DNS verification passed", fqdn=fqdn, ip=str(expected))
        return True

    logger.warning(
        "DNS verification mismatch",
        fqdn=fqdn,
        expected=str(expected),
        actual=record.value,
    )
    return False


def sync_record(
    resolver: ResolverConfig,
    record_name: str,
    domain_fqdn: str,
    desired: IPv4Address,
    sink: UpdateSink,
    *,
    dry_run: bool = False,
    verify_delay: float | None = None,
) -> ReconciliationOutcome:
    """Reconcile one dynamic record and update it through ``sink`` if it differs.

    Args:
        resolver: Resolver bound to the zone's authoritative server
        record_name: Record name without zone suffix
        domain_fqdn: Dot-terminated zone name
        desired: Address the record should point at
        sink: Provider client performing the write
        dry_run: If True, log the decision without writing
        verify_delay: If set, wait this long after a write and re-read the record

    Returns:
        The outcome, with ``updated`` set when the sink was called
    """
    outcome = reconcile(resolver, record_name, domain_fqdn, desired)

    if not outcome.update_required:
        logger.info("Dynamic record is up to date", fqdn=outcome.fqdn, ip=str(outcome.observed))
        return outcome

    logger.info(
        "Dynamic record needs update",
        fqdn=outcome.fqdn,
        current=str(outcome.observed),
        desired=str(desired),
        dry_run=dry_run,
    )

    if dry_run:
        return outcome

    sink.update_a_record(domain_fqdn.strip("."), outcome.record_name, str(desired), RECORD_TTL)

    if verify_delay is not None:
        time.sleep(verify_delay)
        verify_record(resolver, outcome.fqdn, desired)

    return outcome.model_copy(update={"updated": True})
