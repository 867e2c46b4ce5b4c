"""API key credential providers.

`StaticCredential` holds a key for the process lifetime. `FileBackedCredential`
reads the key from a file (typically written by an agent) and re-reads it when
the server rejects the cached key, so rotation needs no restart.

Usage example:
    import os

    from znvault_client.infrastructure.credentials import credential_from_env

    # ZNVAULT_API_KEY_FILE=/run/znvault-agent/secrets/ZNVAULT_API_KEY
    credentials = credential_from_env("ZNVAULT_API_KEY", os.environ)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from ..exceptions import CredentialFileError, InvalidCredentialError, MissingCredentialError
from ..observability import get_logger, mask_secret
from ..protocols import CredentialProvider, RefreshableCredential
from .session import SessionManager

logger = get_logger("znvault_client.infrastructure.credentials")

FILE_SUFFIX = "_FILE"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StaticCredential(CredentialProvider):
    """Fixed API key sent as X-API-Key."""

    def __init__(self, api_key: str) -> None:
        key = api_key.strip()
        if not key:
            raise InvalidCredentialError()
        self._api_key = key

    @override
    def auth_header(self) -> str | None:
        return None

    @override
    def raw_key(self) -> str:
        return self._api_key

    @override
    def refreshable(self) -> RefreshableCredential | None:
        return None

    def __repr__(self) -> str:
        return f"StaticCredential(api_key={mask_secret(self._api_key)!r})"


@dataclass(frozen=True)
class KeySnapshot:
    """Immutable cached key; replaced wholesale on rotation."""

    value: str
    read_at: datetime


class FileBackedCredential(CredentialProvider, RefreshableCredential):
    """API key read from a file, re-read when the server returns 401.

    Readers of `raw_key()` only dereference the current snapshot, so they
    never see a half-updated key while a re-read is in progress.
    """

    def __init__(self, file_path: str | Path, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._path = Path(file_path)
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot = KeySnapshot(value=self._read_required(), read_at=clock())
        logger.debug("Loaded API key from %s", self._path)

    @property
    def file_path(self) -> Path:
        return self._path

    @property
    def last_read_at(self) -> datetime:
        return self._snapshot.read_at

    @override
    def auth_header(self) -> str | None:
        return None

    @override
    def raw_key(self) -> str:
        return self._snapshot.value

    @override
    def refreshable(self) -> RefreshableCredential:
        return self

    @override
    def on_auth_failure(self) -> bool:
        """Re-read the key file after a 401.

        Returns:
            True only if the file now holds a different key. A failed read or an
            unchanged key means the rejection was genuine.
        """
        with self._lock:
            previous = self._snapshot.value
            latest = self._reload_locked()
        if latest is None:
            return False
        if latest == previous:
            logger.debug("API key file unchanged after 401; treating as a genuine rejection")
            return False
        logger.info("API key rotation detected in %s; retrying with new key", self._path)
        return True

    def refresh(self) -> str:
        """Unconditionally re-read the key file.

        Returns:
            The cached key after the read, which is the previous key if the read failed.
        """
        with self._lock:
            self._reload_locked()
            return self._snapshot.value

    def _reload_locked(self) -> str | None:
        try:
            value = self._read_required()
        except CredentialFileError as exc:
            logger.warning("Could not re-read API key file; keeping cached key: %s", exc)
            return None
        self._snapshot = KeySnapshot(value=value, read_at=self._clock())
        return value

    def _read_required(self) -> str:
        path = str(self._path)
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise CredentialFileError.not_found(path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CredentialFileError.unreadable(path, type(exc).__name__) from exc
        value = content.strip()
        if not value:
            raise CredentialFileError.empty(path)
        return value

    def __repr__(self) -> str:
        return f"FileBackedCredential(file_path={str(self._path)!r})"


class CompositeCredential(CredentialProvider):
    """Session bearer token and/or API key.

    The bearer token takes precedence: while the session is authenticated the
    key provider's refresh capability is not offered, because a 401 on a
    bearer-authenticated call is a genuine authentication failure.
    """

    def __init__(
        self,
        *,
        session: SessionManager | None = None,
        api_key: CredentialProvider | None = None,
    ) -> None:
        self._session = session
        self._api_key = api_key

    @override
    def auth_header(self) -> str | None:
        if self._session is None:
            return None
        return self._session.auth_header()

    @override
    def raw_key(self) -> str | None:
        if self._api_key is None:
            return None
        return self._api_key.raw_key()

    @override
    def refreshable(self) -> RefreshableCredential | None:
        if self._api_key is None or self._bearer_active():
            return None
        return self._api_key.refreshable()

    def is_api_key_auth(self) -> bool:
        return self._api_key is not None and not self._bearer_active()

    def _bearer_active(self) -> bool:
        return self._session is not None and self._session.is_authenticated()


def credential_from_env(env_name: str, environ: Mapping[str, str]) -> CredentialProvider:
    """Build a key provider from `<NAME>_FILE` (preferred) or `<NAME>`.

    Raises:
        MissingCredentialError: If neither variable is set.
        CredentialFileError: If `<NAME>_FILE` points at a missing or empty file.
    """
    file_path = environ.get(f"{env_name}{FILE_SUFFIX}", "").strip()
    if file_path:
        return FileBackedCredential(file_path)
    value = environ.get(env_name, "").strip()
    if value:
        return StaticCredential(value)
    raise MissingCredentialError(env_name)
