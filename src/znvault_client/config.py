"""Centralised, injectable configuration for the ZnVault client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Self

from dotenv import load_dotenv

from .config_file import ClientConfigFile
from .infrastructure.resilience import BackoffPolicy
from .infrastructure.tls import TlsConfig

DEFAULT_BASE_URL = "https://vault.zincapp.com"
API_KEY_ENV = "ZNVAULT_API_KEY"


class NumberEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative number.")


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


@dataclass(frozen=True)
class VaultClientConfig:
    """Immutable configuration for `VaultClient`.

    Load from environment with `VaultClientConfig.from_env()` or construct directly for testing.
    """

    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = field(default=None, repr=False)
    api_key_file: str | None = None

    # Transport
    connect_timeout_seconds: float = 30.0
    read_timeout_seconds: float = 30.0

    # Retry
    max_retries: int = 3
    backoff_initial_seconds: float = 0.1
    backoff_max_seconds: float = 10.0
    backoff_multiplier: float = 2.0
    backoff_jitter_factor: float = 0.1
    retry_on_connection_failure: bool = True

    # Session
    refresh_skew_seconds: float = 300.0

    # TLS
    ca_cert_path: str | None = None
    client_cert_path: str | None = None
    client_key_path: str | None = None
    tls_insecure: bool = False

    environment: str = "production"
    debug: bool = False

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            VaultClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            base_url=os.getenv("ZNVAULT_URL", "").strip() or DEFAULT_BASE_URL,
            api_key=os.getenv(API_KEY_ENV, "").strip() or None,
            api_key_file=os.getenv(f"{API_KEY_ENV}_FILE", "").strip() or None,
            connect_timeout_seconds=_parse_number(
                os.getenv("ZNVAULT_CONNECT_TIMEOUT_SECONDS", ""),
                env_name="ZNVAULT_CONNECT_TIMEOUT_SECONDS",
                default=30.0,
            ),
            read_timeout_seconds=_parse_number(
                os.getenv("ZNVAULT_READ_TIMEOUT_SECONDS", ""),
                env_name="ZNVAULT_READ_TIMEOUT_SECONDS",
                default=30.0,
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("ZNVAULT_MAX_RETRIES", ""), env_name="ZNVAULT_MAX_RETRIES", default=3
            ),
            backoff_initial_seconds=_parse_number(
                os.getenv("ZNVAULT_BACKOFF_INITIAL_SECONDS", ""),
                env_name="ZNVAULT_BACKOFF_INITIAL_SECONDS",
                default=0.1,
            ),
            backoff_max_seconds=_parse_number(
                os.getenv("ZNVAULT_BACKOFF_MAX_SECONDS", ""),
                env_name="ZNVAULT_BACKOFF_MAX_SECONDS",
                default=10.0,
            ),
            backoff_multiplier=_parse_number(
                os.getenv("ZNVAULT_BACKOFF_MULTIPLIER", ""),
                env_name="ZNVAULT_BACKOFF_MULTIPLIER",
                default=2.0,
            ),
            backoff_jitter_factor=_parse_number(
                os.getenv("ZNVAULT_BACKOFF_JITTER_FACTOR", ""),
                env_name="ZNVAULT_BACKOFF_JITTER_FACTOR",
                default=0.1,
            ),
            retry_on_connection_failure=_parse_optional_bool(
                os.getenv("ZNVAULT_RETRY_ON_CONNECTION_FAILURE", ""),
                env_name="ZNVAULT_RETRY_ON_CONNECTION_FAILURE",
            )
            is not False,
            refresh_skew_seconds=_parse_number(
                os.getenv("ZNVAULT_REFRESH_SKEW_SECONDS", ""),
                env_name="ZNVAULT_REFRESH_SKEW_SECONDS",
                default=300.0,
            ),
            ca_cert_path=os.getenv("ZNVAULT_TLS_CA_CERT", "").strip() or None,
            client_cert_path=os.getenv("ZNVAULT_TLS_CLIENT_CERT", "").strip() or None,
            client_key_path=os.getenv("ZNVAULT_TLS_CLIENT_KEY", "").strip() or None,
            tls_insecure=_parse_optional_bool(
                os.getenv("ZNVAULT_TLS_INSECURE", ""), env_name="ZNVAULT_TLS_INSECURE"
            )
            or False,
            environment=os.getenv("ZNVAULT_ENVIRONMENT", "").strip().lower() or "production",
            debug=_parse_optional_bool(os.getenv("ZNVAULT_DEBUG", ""), env_name="ZNVAULT_DEBUG")
            or False,
        )

    def with_overrides(self, **changes: Any) -> Self:
        """Return a new config with explicit (non-None) values applied, e.g. from CLI options."""
        explicit = {name: value for name, value in changes.items() if value is not None}
        return replace(self, **explicit)

    def with_file_config(self, file_config: ClientConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            base_url=self.base_url if file_config.base_url is None else file_config.base_url,
            api_key_file=self.api_key_file
            if file_config.api_key_file is None
            else file_config.api_key_file,
            connect_timeout_seconds=self.connect_timeout_seconds
            if file_config.connect_timeout_seconds is None
            else file_config.connect_timeout_seconds,
            read_timeout_seconds=self.read_timeout_seconds
            if file_config.read_timeout_seconds is None
            else file_config.read_timeout_seconds,
            max_retries=self.max_retries
            if file_config.max_retries is None
            else file_config.max_retries,
            backoff_initial_seconds=self.backoff_initial_seconds
            if file_config.backoff_initial_seconds is None
            else file_config.backoff_initial_seconds,
            backoff_max_seconds=self.backoff_max_seconds
            if file_config.backoff_max_seconds is None
            else file_config.backoff_max_seconds,
            backoff_multiplier=self.backoff_multiplier
            if file_config.backoff_multiplier is None
            else file_config.backoff_multiplier,
            backoff_jitter_factor=self.backoff_jitter_factor
            if file_config.backoff_jitter_factor is None
            else file_config.backoff_jitter_factor,
            retry_on_connection_failure=self.retry_on_connection_failure
            if file_config.retry_on_connection_failure is None
            else file_config.retry_on_connection_failure,
            refresh_skew_seconds=self.refresh_skew_seconds
            if file_config.refresh_skew_seconds is None
            else file_config.refresh_skew_seconds,
            ca_cert_path=self.ca_cert_path
            if file_config.ca_cert_path is None
            else file_config.ca_cert_path,
            client_cert_path=self.client_cert_path
            if file_config.client_cert_path is None
            else file_config.client_cert_path,
            client_key_path=self.client_key_path
            if file_config.client_key_path is None
            else file_config.client_key_path,
            environment=self.environment
            if file_config.environment is None
            else file_config.environment.lower(),
        )

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            max_retries=self.max_retries,
            initial_delay_seconds=self.backoff_initial_seconds,
            max_delay_seconds=self.backoff_max_seconds,
            multiplier=self.backoff_multiplier,
            jitter_factor=self.backoff_jitter_factor,
            retry_on_connection_failure=self.retry_on_connection_failure,
        )

    def tls_config(self) -> TlsConfig:
        return TlsConfig(
            ca_cert_path=self.ca_cert_path,
            client_cert_path=self.client_cert_path,
            client_key_path=self.client_key_path,
            insecure=self.tls_insecure,
        )

    @property
    def refresh_skew(self) -> timedelta:
        return timedelta(seconds=self.refresh_skew_seconds)


def _parse_number(value: str, *, env_name: str, default: float) -> float:
    """Parse an optional non-negative number from an environment variable."""
    text = value.strip()
    if not text:
        return default
    try:
        parsed = float(text)
    except ValueError as exc:
        raise NumberEnvVarError(env_name) from exc
    if parsed < 0:
        raise NumberEnvVarError(env_name)
    return parsed


def _parse_non_negative_int(value: str, *, env_name: str, default: int) -> int:
    """Parse an optional non-negative integer from an environment variable."""
    text = value.strip()
    if not text:
        return default
    try:
        parsed = int(text)
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_optional_bool(value: str, *, env_name: str) -> bool | None:
    """Parse an optional boolean from an environment variable."""
    text = value.strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)
