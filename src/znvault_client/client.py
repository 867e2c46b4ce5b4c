"""High-level ZnVault client wiring transport, credentials and retries together.

Usage example:
    from znvault_client.client import VaultClient
    from znvault_client.config import VaultClientConfig

    config = VaultClientConfig(
        base_url="https://vault.example.com:8443",
        api_key_file="/run/znvault-agent/secrets/ZNVAULT_API_KEY",
    )
    with VaultClient(config) as client:
        print(client.health().status)
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

import requests

from .config import VaultClientConfig
from .exceptions import SessionUnavailableError, VaultError
from .infrastructure.cancellation import CancellationToken
from .infrastructure.credentials import FileBackedCredential, StaticCredential
from .infrastructure.http import RequestPipeline, RequestSpec
from .infrastructure.session import SessionManager
from .io_contracts import HealthStatus, LoginResponse
from .observability import get_logger
from .protocols import CredentialProvider

logger = get_logger("znvault_client.client")

HEALTH_PATH = "/v1/health"
PING_PATH = "/ping"


class VaultClient:
    """Synchronous ZnVault client, safe to share across threads.

    Credentials come from, in order: the `credentials` argument, `config.api_key_file`,
    `config.api_key`. With none of those the client authenticates through
    `login()` and a `SessionManager`.
    """

    def __init__(
        self,
        config: VaultClientConfig,
        *,
        session: requests.Session | None = None,
        credentials: CredentialProvider | None = None,
    ) -> None:
        self.config = config
        tls = config.tls_config()
        tls.ensure_allowed(config.environment)

        self._owns_http_session = session is None
        self._http_session = session or requests.Session()
        tls.apply(self._http_session)

        if config.debug:
            get_logger("znvault_client.infrastructure.http").setLevel(logging.DEBUG)

        self._pipeline = RequestPipeline(
            base_url=config.base_url,
            session=self._http_session,
            backoff_policy=config.backoff_policy(),
            connect_timeout_seconds=config.connect_timeout_seconds,
            read_timeout_seconds=config.read_timeout_seconds,
            tls=tls,
            debug=config.debug,
        )
        self._sessions: SessionManager | None = None
        self._bind(credentials or self._default_credentials())

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        return cls(VaultClientConfig.from_env(dotenv_path))

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    @property
    def credentials(self) -> CredentialProvider | None:
        return self._pipeline.credentials

    def execute[ResponseT](
        self,
        spec: RequestSpec[ResponseT],
        *,
        cancellation: CancellationToken | None = None,
    ) -> ResponseT:
        return self._pipeline.execute(spec, cancellation=cancellation)

    def login(
        self,
        username: str,
        password: str,
        totp_code: str | None = None,
        *,
        tenant: str | None = None,
    ) -> LoginResponse:
        """Log in with username and password (session mode only).

        Raises:
            SessionUnavailableError: If the client was built with API key credentials.
        """
        if self._sessions is None:
            raise SessionUnavailableError()
        return self._sessions.login(username, password, totp_code, tenant=tenant)

    def logout(self) -> None:
        if self._sessions is not None:
            self._sessions.logout()

    def is_authenticated(self) -> bool:
        if self._sessions is not None:
            return self._sessions.is_authenticated()
        credentials = self._pipeline.credentials
        return credentials is not None and bool(credentials.raw_key())

    def use_credentials(self, credentials: CredentialProvider) -> None:
        """Replace the credential source; in-flight calls finish with the old one."""
        self._bind(credentials)
        logger.debug("Credential source replaced with %r", credentials)

    def health(self, *, cancellation: CancellationToken | None = None) -> HealthStatus:
        spec = RequestSpec(
            method="GET", path=HEALTH_PATH, response_type=HealthStatus, authenticated=False
        )
        return self._pipeline.execute(spec, cancellation=cancellation)

    def is_healthy(self) -> bool:
        try:
            return self.health().is_healthy
        except VaultError as exc:
            logger.debug("Health check failed: %s", exc.message)
            return False

    def ping(self) -> bool:
        spec = RequestSpec(method="GET", path=PING_PATH, response_type=str, authenticated=False)
        try:
            return self._pipeline.execute(spec).strip() == "pong"
        except VaultError as exc:
            logger.debug("Ping failed: %s", exc.message)
            return False

    def close(self) -> None:
        if self._owns_http_session:
            self._http_session.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _bind(self, credentials: CredentialProvider) -> None:
        self._sessions = credentials if isinstance(credentials, SessionManager) else None
        self._pipeline.bind_credentials(credentials)

    def _default_credentials(self) -> CredentialProvider:
        # The file wins so that rotation keeps working when both are set.
        if self.config.api_key_file:
            return FileBackedCredential(self.config.api_key_file)
        if self.config.api_key:
            return StaticCredential(self.config.api_key)
        return SessionManager(executor=self._pipeline, refresh_skew=self.config.refresh_skew)
