"""Configuration loading and validation."""

import os
import re
from ipaddress import IPv4Address
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_CONFIG_PATH = Path("/etc/gandi-dns-update/config.yaml")
GANDI_LIVE_DNS_URL = "https://dns.api.gandi.net/api/v5"


class ConfigError(ValueError):
    """Missing or invalid configuration value."""


class GandiConfig(BaseModel):
    """Gandi LiveDNS API configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1, description="Gandi LiveDNS API key")
    base_url: str = Field(default=GANDI_LIVE_DNS_URL, description="LiveDNS API base URL")


class DomainConfig(BaseModel):
    """The zone and the dynamic records kept in sync with our public IP."""

    model_config = ConfigDict(frozen=True)

    fqdn: str = Field(description="Zone name, dot-terminated (e.g., example.com.)")
    ip: IPv4Address | None = Field(
        default=None, description="Static IP to publish instead of discovering it"
    )
    dynamic_items: tuple[str, ...] = Field(
        min_length=1, description="Record names (without zone suffix) to keep updated"
    )

    @field_validator("fqdn")
    @classmethod
    def _fqdn_is_absolute(cls, value: str) -> str:
        if not value.endswith("."):
            raise ValueError(f"domain fqdn does not end with '.': {value}")
        if value.strip(".") == "":
            raise ValueError("domain fqdn must not be the root zone")
        return value

    @field_validator("dynamic_items", mode="before")
    @classmethod
    def _split_items(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",")]
        return value

    @field_validator("dynamic_items")
    @classmethod
    def _items_are_labels(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for item in value:
            if not item:
                raise ValueError("dynamic record names must not be empty")
            if "." in item:
                raise ValueError(f"dynamic record name must not contain '.': {item}")
        return value


class SettingsConfig(BaseModel):
    """Application settings."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = Field(default=False, description="If true, don't make changes")
    verify_delay: float | None = Field(
        default=None,
        ge=0,
        description="Seconds to wait before re-reading an updated record (unset disables)",
    )


class Config(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(frozen=True)

    gandi: GandiConfig
    domain: DomainConfig
    settings: SettingsConfig = Field(default_factory=SettingsConfig)


def _substitute_env_vars(value: str) -> str:
    """Substitute ${VAR_NAME} patterns with environment variables."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ConfigError(f"Environment variable '{var_name}' not set")
        return env_value

    return pattern.sub(replacer, value)


def _process_env_vars(obj: object) -> object:
    """Recursively process environment variable substitution in a data structure."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_env_vars(item) for item in obj]
    return obj


def load_config(path: Path) -> Config:
    """Load and validate configuration from a YAML file."""
    try:
        with path.open() as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    processed_config = _process_env_vars(raw_config)

    try:
        return Config.model_validate(processed_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def _get_env(name: str, default: str | None = None) -> str:
    """Get environment variable or raise if not set and no default."""
    value = os.environ.get(name, default)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is required")
    return value


def _get_env_float(name: str) -> float | None:
    """Get optional environment variable as float."""
    value = os.environ.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"Environment variable '{name}' is not a number: {value}") from e


def _get_env_bool(name: str, default: bool) -> bool:
    """Get environment variable as bool."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Required environment variables:
        GANDI_API_KEY: Gandi LiveDNS API key
        DOMAIN_FQDN: Zone name, must end with '.' (e.g., example.com.)
        DOMAIN_DYNAMIC_ITEMS: Comma-separated record names (e.g., "home,vpn")

    Optional environment variables:
        DOMAIN_IP: Publish this IPv4 address instead of discovering it
        GANDI_API_URL: LiveDNS API base URL
        DRY_RUN: Don't make changes (default: false)
        VERIFY_DELAY: Seconds before re-reading an updated record (default: off)
    """
    try:
        return Config(
            gandi=GandiConfig(
                api_key=_get_env("GANDI_API_KEY"),
                base_url=_get_env("GANDI_API_URL", GANDI_LIVE_DNS_URL),
            ),
            domain=DomainConfig(
                fqdn=_get_env("DOMAIN_FQDN"),
                ip=os.environ.get("DOMAIN_IP") or None,
                dynamic_items=_get_env("DOMAIN_DYNAMIC_ITEMS"),
            ),
            settings=SettingsConfig(
                dry_run=_get_env_bool("DRY_RUN", False),
                verify_delay=_get_env_float("VERIFY_DELAY"),
            ),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in environment: {e}") from e


def load_config_auto(path: Path | None = None) -> tuple[Config, str]:
    """Load configuration from an explicit file, the default file, or the environment.

    Returns:
        The configuration and a short description of where it came from.
    """
    if path is not None:
        return load_config(path), str(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH), str(DEFAULT_CONFIG_PATH)
    return load_config_from_env(), "environment"
