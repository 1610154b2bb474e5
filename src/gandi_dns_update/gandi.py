"""Gandi LiveDNS client for replacing A records."""

from __future__ import annotations

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .config import GandiConfig
from .retry import retry_with_backoff

logger = structlog.get_logger()

HTTP_TIMEOUT = 15.0

# Retryable HTTP status codes
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class GandiAPIError(Exception):
    """LiveDNS request failed or returned a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
        self.retry_after = retry_after


class RecordNameError(ValueError):
    """Domain or record name is not usable as a LiveDNS URL path segment."""


class GandiRRSet(BaseModel):
    """LiveDNS v5 record set, as used in request and response bodies."""

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = Field(default=None, alias="rrset_type")
    ttl: int = Field(alias="rrset_ttl")
    name: str | None = Field(default=None, alias="rrset_name")
    values: list[str] = Field(alias="rrset_values")

    def to_request(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _is_retryable(exc: Exception) -> bool:
    """Check if exception is retryable."""
    return isinstance(exc, GandiAPIError) and exc.status_code in RETRYABLE_STATUS_CODES


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def validate_record_path(domain: str, name: str) -> None:
    """Reject a domain or record name that would not form a valid record URL.

    Raises:
        RecordNameError: If domain ends with '.', or name contains '.'
    """
    if not domain:
        raise RecordNameError("Domain in Gandi LiveDNS request must not be empty")
    if domain.endswith("."):
        raise RecordNameError(f"Domain in Gandi LiveDNS request must not end with '.': {domain}")
    if not name:
        raise RecordNameError("Record name must not be empty")
    if "." in name:
        raise RecordNameError(f"Record name must not contain '.': {name}")
    if "/" in domain or "/" in name:
        raise RecordNameError(f"Domain and record name must not contain '/': {domain} {name}")


class GandiClient:
    """Client for the Gandi LiveDNS v5 REST API."""

    def __init__(self, config: GandiConfig) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._client = httpx.Client(
            headers={"X-Api-Key": config.api_key},
            timeout=HTTP_TIMEOUT,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> GandiClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @retry_with_backoff(
        max_retries=3,
        retryable_exceptions=(GandiAPIError,),
        should_retry=_is_retryable,
    )
    def update_a_record(self, domain: str, name: str, value: str, ttl: int) -> None:
        """Replace the A record set ``name`` in ``domain`` with a single value.

        Args:
            domain: Zone name without trailing dot
            name: Record name without zone suffix
            value: IPv4 address as text
            ttl: TTL in seconds

        Raises:
            RecordNameError: If domain or name is malformed (no request is sent)
            GandiAPIError: If the request fails or LiveDNS rejects it
        """
        validate_record_path(domain, name)

        url = f"{self.base_url}/domains/{domain}/records/{name}/A"
        body = GandiRRSet(ttl=ttl, values=[value]).to_request()

        logger.debug("Updating A record", url=url, body=body)

        try:
            response = self._client.put(url, json=body)
        except httpx.HTTPError as e:
            logger.error("Gandi request failed", url=url, error=str(e))
            raise GandiAPIError(f"Gandi request to {url} failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Gandi request rejected",
                url=url,
                status_code=response.status_code,
                response=response.text,
            )
            raise GandiAPIError(
                f"Gandi request failed, response is: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
                retry_after=_retry_after(response),
            )

        logger.info("Gandi update successful", domain=domain, name=name, value=value, ttl=ttl)
