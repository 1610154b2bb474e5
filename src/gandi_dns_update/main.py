"""Main entry point for gandi-dns-update."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from ipaddress import IPv4Address
from pathlib import Path

import structlog

from .config import DEFAULT_CONFIG_PATH, Config, load_config_auto
from .discovery import discover_authoritative_server, discover_public_ip
from .gandi import GandiClient
from .reconcile import ReconciliationOutcome, UpdateSink, sync_record
from .resolver import ResolverConfig

VERSION = "0.1.0"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str) -> None:
    """Configure structlog for stdout logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            LOG_LEVELS.get(level.lower(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Point Gandi LiveDNS A records at this host's public IPv4 address"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH} if exists, else env vars)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Don't make changes, just log what would be done",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging level (default: info)",
    )
    return parser.parse_args(argv)


def resolve_desired_ip(config: Config, bootstrap: ResolverConfig) -> IPv4Address:
    """Return the configured static IP, or discover our public one."""
    logger = structlog.get_logger()

    if config.domain.ip is not None:
        logger.info("Using given IP address", ip=str(config.domain.ip))
        return config.domain.ip

    logger.info("Looking up my IP address")
    return discover_public_ip(bootstrap)


def run_update(
    config: Config,
    sink: UpdateSink,
    dry_run: bool,
    bootstrap: ResolverConfig | None = None,
) -> list[ReconciliationOutcome]:
    """Run a single update pass over all dynamic records.

    The first error aborts the pass; records after it are not processed.
    """
    logger = structlog.get_logger()
    if bootstrap is None:
        bootstrap = ResolverConfig.google()

    my_ip = resolve_desired_ip(config, bootstrap)
    logger.info("My IP address", ip=str(my_ip))

    outcomes: list[ReconciliationOutcome] = []
    for record_name in config.domain.dynamic_items:
        logger.info("Processing dynamic record", domain=config.domain.fqdn, record=record_name)

        # Delegation can change between runs, so it is looked up every time
        endpoint = discover_authoritative_server(bootstrap, config.domain.fqdn)

        outcomes.append(
            sync_record(
                ResolverConfig.for_endpoint(endpoint),
                record_name,
                endpoint.zone,
                my_ip,
                sink,
                dry_run=dry_run,
                verify_delay=config.settings.verify_delay,
            )
        )

    if not any(outcome.update_required for outcome in outcomes):
        logger.info("No DNS changes needed, all records up to date")

    return outcomes


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.log_level)
    logger = structlog.get_logger()

    logger.info("gandi-dns-update starting", version=VERSION)

    try:
        config, config_source = load_config_auto(args.config)
        logger.info("Configuration loaded", source=config_source)
    except Exception as e:
        logger.error("Failed to load configuration", error=str(e))
        sys.exit(1)

    # Override dry_run from CLI if specified
    dry_run = args.dry_run or config.settings.dry_run

    logger.info(
        "Starting update",
        domain=config.domain.fqdn,
        records=list(config.domain.dynamic_items),
        dry_run=dry_run,
    )

    try:
        with GandiClient(config.gandi) as gandi:
            outcomes = run_update(config, gandi, dry_run)
    except Exception as e:
        logger.error("Update failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)

    logger.info(
        "Update complete",
        checked=len(outcomes),
        updated=sum(1 for outcome in outcomes if outcome.updated),
    )


if __name__ == "__main__":
    main()
