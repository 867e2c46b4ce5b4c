"""Session (JWT) credentials with proactive refresh.

Usage example:
    from znvault_client.infrastructure.session import SessionManager

    sessions = SessionManager(executor=pipeline)
    pipeline.bind_credentials(sessions)
    sessions.login("admin", "s3cret", tenant="acme")
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import override

from ..exceptions import AuthenticationError, VaultError
from ..io_contracts import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RefreshTokenResponse,
    UserInfo,
)
from ..observability import get_logger
from ..protocols import CredentialProvider, RefreshableCredential, RequestExecutor
from .http import RequestSpec

logger = get_logger("znvault_client.infrastructure.session")

LOGIN_PATH = "/auth/login"
REFRESH_PATH = "/auth/refresh"
DEFAULT_REFRESH_SKEW = timedelta(minutes=5)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Session:
    """Snapshot of the current login; replaced wholesale, never mutated."""

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None
    current_user: UserInfo | None = None

    def __post_init__(self) -> None:
        if self.access_token is not None and self.expires_at is None:
            raise ValueError("A session with an access token must carry an expiry.")


_EMPTY_SESSION = Session()


class SessionManager(CredentialProvider):
    """Holds the access/refresh token pair and renews it before expiry.

    All state changes happen under one re-entrant lock. A caller that finds a
    refresh due performs it while holding the lock; concurrent callers wait and
    then reuse the refreshed token instead of refreshing again.
    """

    def __init__(
        self,
        *,
        executor: RequestExecutor,
        refresh_skew: timedelta = DEFAULT_REFRESH_SKEW,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._executor = executor
        self._refresh_skew = refresh_skew
        self._clock = clock
        self._lock = threading.RLock()
        self._session = _EMPTY_SESSION
        self._refresh_generation = 0

    @property
    def session(self) -> Session:
        return self._session

    @property
    def current_user(self) -> UserInfo | None:
        return self._session.current_user

    def is_authenticated(self) -> bool:
        session = self._session
        return session.access_token is not None and not self._is_expired(session)

    def login(
        self,
        username: str,
        password: str,
        totp_code: str | None = None,
        *,
        tenant: str | None = None,
    ) -> LoginResponse:
        """Log in with a username (or email) and password.

        Args:
            username: "tenant/username", an email, or a bare username when `tenant` is given.
            password: Account password.
            totp_code: Second-factor code, if the account has 2FA enabled.
            tenant: Optional tenant prefix joined to `username` as "tenant/username".

        Raises:
            TwoFactorRequiredError: If a TOTP code is needed.
            InvalidTotpCodeError: If the TOTP code was rejected.
            AuthenticationError: For any other credential rejection.
        """
        full_username = f"{tenant}/{username}" if tenant else username
        spec = RequestSpec(
            method="POST",
            path=LOGIN_PATH,
            body=LoginRequest(username=full_username, password=password, totp_code=totp_code),
            response_type=LoginResponse,
            authenticated=False,
        )
        response = self._executor.execute(spec)
        with self._lock:
            self._session = Session(
                access_token=response.access_token,
                refresh_token=response.refresh_token,
                expires_at=self._clock() + timedelta(seconds=response.expires_in),
                current_user=response.user,
            )
            self._refresh_generation += 1
        logger.debug("Logged in as %s", full_username)
        return response

    def refresh(self) -> RefreshTokenResponse | None:
        """Exchange the refresh token for a new token pair.

        Returns:
            The refresh response, or None if another caller completed a refresh
            while this one waited for the lock.

        Raises:
            AuthenticationError: If there is no refresh token, or the server rejects it.
        """
        observed = self._refresh_generation
        with self._lock:
            if self._refresh_generation != observed:
                return None
            return self._refresh_locked()

    def logout(self) -> None:
        with self._lock:
            already_clear = self._session is _EMPTY_SESSION
            self._session = _EMPTY_SESSION
            self._refresh_generation += 1
        if not already_clear:
            logger.debug("Logged out")

    def set_tokens(self, access_token: str, refresh_token: str, expires_in: int) -> None:
        """Install an existing token pair (e.g. a restored session)."""
        with self._lock:
            self._session = Session(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=self._clock() + timedelta(seconds=expires_in),
                current_user=self._session.current_user,
            )
            self._refresh_generation += 1

    def get_valid_token(self) -> str:
        """Return an access token, refreshing first if it is close to expiry.

        Raises:
            AuthenticationError: If not logged in, or the token has expired and
                could not be refreshed.
        """
        with self._lock:
            if self._session.access_token is None:
                raise AuthenticationError("Not authenticated. Please login first.")
            if self._should_refresh(self._session):
                try:
                    self._refresh_locked()
                except VaultError as exc:
                    logger.warning("Failed to refresh access token: %s", exc.message)
                    if self._is_expired(self._session):
                        raise AuthenticationError("Token expired and refresh failed") from exc
            token = self._session.access_token
            if token is None:
                raise AuthenticationError("No valid token available")
            return token

    @override
    def auth_header(self) -> str | None:
        try:
            return f"Bearer {self.get_valid_token()}"
        except AuthenticationError as exc:
            logger.debug("No bearer token attached: %s", exc.message)
            return None

    @override
    def raw_key(self) -> str | None:
        return None

    @override
    def refreshable(self) -> RefreshableCredential | None:
        return None

    def _refresh_locked(self) -> RefreshTokenResponse:
        refresh_token = self._session.refresh_token
        if refresh_token is None:
            raise AuthenticationError("No refresh token available")
        spec = RequestSpec(
            method="POST",
            path=REFRESH_PATH,
            body=RefreshTokenRequest(refresh_token=refresh_token),
            response_type=RefreshTokenResponse,
            authenticated=False,
        )
        response = self._executor.execute(spec)
        self._session = Session(
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            expires_at=self._clock() + timedelta(seconds=response.expires_in),
            current_user=response.user or self._session.current_user,
        )
        self._refresh_generation += 1
        logger.debug("Refreshed access token")
        return response

    def _is_expired(self, session: Session) -> bool:
        if session.expires_at is None:
            return True
        return self._clock() > session.expires_at

    def _should_refresh(self, session: Session) -> bool:
        if session.expires_at is None:
            return True
        return self._clock() >= session.expires_at - self._refresh_skew
