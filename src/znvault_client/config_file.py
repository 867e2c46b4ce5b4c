"""Typed parsing and validation for client config files.

Example file:
    schema_version = 1

    [client]
    base_url = "https://vault.example.com:8443"
    api_key_file = "/run/znvault-agent/secrets/ZNVAULT_API_KEY"
    max_retries = 5
    ca_cert_path = "/etc/znvault/ca.pem"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ClientConfigFile:
    """Validated client config values loaded from a TOML file."""

    base_url: str | None = None
    api_key_file: str | None = None
    connect_timeout_seconds: float | None = None
    read_timeout_seconds: float | None = None
    max_retries: int | None = None
    backoff_initial_seconds: float | None = None
    backoff_max_seconds: float | None = None
    backoff_multiplier: float | None = None
    backoff_jitter_factor: float | None = None
    retry_on_connection_failure: bool | None = None
    refresh_skew_seconds: float | None = None
    ca_cert_path: str | None = None
    client_cert_path: str | None = None
    client_key_path: str | None = None
    environment: str | None = None


class _ClientSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str | None = None
    api_key_file: str | None = None
    connect_timeout_seconds: float | None = None
    read_timeout_seconds: float | None = None
    max_retries: int | None = None
    backoff_initial_seconds: float | None = None
    backoff_max_seconds: float | None = None
    backoff_multiplier: float | None = None
    backoff_jitter_factor: float | None = None
    retry_on_connection_failure: bool | None = None
    refresh_skew_seconds: float | None = None
    ca_cert_path: str | None = None
    client_cert_path: str | None = None
    client_key_path: str | None = None
    environment: str | None = None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        url = value.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError
        return url

    @field_validator(
        "api_key_file",
        "ca_cert_path",
        "client_cert_path",
        "client_key_path",
        "environment",
    )
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator("connect_timeout_seconds", "read_timeout_seconds")
    @classmethod
    def _validate_positive_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value

    @field_validator(
        "max_retries", "backoff_initial_seconds", "backoff_max_seconds", "refresh_skew_seconds"
    )
    @classmethod
    def _validate_non_negative(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator("backoff_multiplier")
    @classmethod
    def _validate_multiplier(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 1.0:
            raise ValueError
        return value

    @field_validator("backoff_jitter_factor")
    @classmethod
    def _validate_jitter(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0.0 or value > 1.0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    client: _ClientSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_client_config_file(path: Path) -> ClientConfigFile:
    """Load and validate a client TOML config file.

    API keys themselves are rejected (unknown field); point `api_key_file` at
    a key file instead.
    """
    if not path.is_file():
        raise ConfigFileNotFoundError(str(path))

    try:
        payload: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    return ClientConfigFile(**model.client.model_dump())
