"""TLS settings for the transport session.

Usage example:
    from znvault_client.infrastructure.tls import TlsConfig

    tls = TlsConfig(
        ca_cert_path="/etc/znvault/ca.pem",
        client_cert_path="/etc/znvault/client.pem",
        client_key_path="/etc/znvault/client.key",
    )
    tls.apply(session)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Self

import requests
import urllib3

from ..exceptions import InsecureTlsNotAllowedError, TlsConfigurationError
from ..observability import get_logger

logger = get_logger("znvault_client.infrastructure.tls")

PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod"})


@dataclass(frozen=True)
class TlsConfig:
    """Custom CA trust, optional mutual TLS, and a development-only insecure mode."""

    ca_cert_path: str | None = None
    client_cert_path: str | None = None
    client_key_path: str | None = None
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.client_key_path and not self.client_cert_path:
            raise TlsConfigurationError("a client key requires a client certificate")
        if self.insecure and self.ca_cert_path:
            raise TlsConfigurationError("insecure mode cannot be combined with a CA certificate")
        for label, path in (
            ("CA certificate", self.ca_cert_path),
            ("client certificate", self.client_cert_path),
            ("client key", self.client_key_path),
        ):
            if path and not Path(path).is_file():
                raise TlsConfigurationError(f"{label} not found at {path}")

    @classmethod
    def insecure_development(cls) -> Self:
        """Trust all certificates and skip hostname checks. Development only."""
        return cls(insecure=True)

    @property
    def verify(self) -> bool | str:
        if self.insecure:
            return False
        return self.ca_cert_path or True

    @property
    def cert(self) -> str | tuple[str, str] | None:
        if not self.client_cert_path:
            return None
        if self.client_key_path:
            return (self.client_cert_path, self.client_key_path)
        return self.client_cert_path

    def ensure_allowed(self, environment: str) -> None:
        """Reject insecure mode outside development-style environments."""
        if not self.insecure:
            return
        if environment.strip().lower() in PRODUCTION_ENVIRONMENTS:
            raise InsecureTlsNotAllowedError(environment)
        logger.warning(
            "TLS certificate verification is disabled (environment=%s). "
            "Never use this against a production vault.",
            environment,
        )

    def apply(self, session: requests.Session) -> None:
        """Install these settings as the session defaults."""
        session.verify = self.verify
        cert = self.cert
        if cert is not None:
            session.cert = cert
        if self.insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
