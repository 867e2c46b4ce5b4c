"""Tests for VaultClient wiring."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

import znvault_client.config as config_module
from tests.fakes import RecordingCredential, ScriptedSession, make_response
from znvault_client.client import VaultClient
from znvault_client.config import VaultClientConfig
from znvault_client.exceptions import (
    InsecureTlsNotAllowedError,
    ServerError,
    SessionUnavailableError,
)
from znvault_client.infrastructure import (
    FileBackedCredential,
    RequestPipeline,
    RequestSpec,
    SessionManager,
    StaticCredential,
)
from znvault_client.observability import get_logger

BASE_URL = "https://vault.test"


def _config(**kwargs: object) -> VaultClientConfig:
    return VaultClientConfig(base_url=BASE_URL, max_retries=0, **kwargs)  # type: ignore[arg-type]


def _login_body() -> dict[str, object]:
    return {"accessToken": "jwt-1", "refreshToken": "refresh-1", "expiresIn": 3600}


class TestCredentialSelection:
    """Tests for provider priority."""

    def test_explicit_credentials_win(self, scripted_session: ScriptedSession) -> None:
        explicit = RecordingCredential(key="znv_explicit")
        client = VaultClient(
            _config(api_key="znv_config"), session=scripted_session, credentials=explicit
        )
        assert client.credentials is explicit

    def test_key_file_before_api_key(
        self, scripted_session: ScriptedSession, key_file: Path
    ) -> None:
        client = VaultClient(
            _config(api_key="znv_config", api_key_file=str(key_file)), session=scripted_session
        )
        assert isinstance(client.credentials, FileBackedCredential)
        assert client.credentials.raw_key() == "znv_initial"
        assert client.is_authenticated()

    def test_from_env_prefers_key_file(
        self, monkeypatch: pytest.MonkeyPatch, key_file: Path
    ) -> None:
        monkeypatch.setenv("ZNVAULT_API_KEY", "znv_literal")
        monkeypatch.setenv("ZNVAULT_API_KEY_FILE", str(key_file))
        monkeypatch.setattr(config_module, "load_dotenv", lambda *_args, **_kwargs: False)

        with VaultClient.from_env() as client:
            assert isinstance(client.credentials, FileBackedCredential)

    def test_api_key_without_key_file(self, scripted_session: ScriptedSession) -> None:
        client = VaultClient(_config(api_key="znv_config"), session=scripted_session)
        assert isinstance(client.credentials, StaticCredential)

    def test_key_file(self, scripted_session: ScriptedSession, key_file: Path) -> None:
        client = VaultClient(_config(api_key_file=str(key_file)), session=scripted_session)
        assert isinstance(client.credentials, FileBackedCredential)

    def test_session_mode_without_keys(self, scripted_session: ScriptedSession) -> None:
        client = VaultClient(_config(), session=scripted_session)
        assert isinstance(client.credentials, SessionManager)
        assert not client.is_authenticated()


class TestSessionMode:
    """Tests for login through the client."""

    def test_login_then_bearer_on_calls(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(200, _login_body()), make_response(200, {}))
        client = VaultClient(_config(), session=scripted_session)

        client.login("alice", "s3cret", tenant="acme")
        client.execute(RequestSpec("GET", "/v1/secrets", response_type=dict))

        assert client.is_authenticated()
        assert scripted_session.calls[1].headers == {"Authorization": "Bearer jwt-1"}

    def test_logout_clears_session(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(200, _login_body()))
        client = VaultClient(_config(), session=scripted_session)
        client.login("alice", "s3cret")

        client.logout()

        assert not client.is_authenticated()

    def test_login_unavailable_with_api_key(self, scripted_session: ScriptedSession) -> None:
        client = VaultClient(_config(api_key="znv_config"), session=scripted_session)
        with pytest.raises(SessionUnavailableError):
            client.login("alice", "s3cret")
        assert scripted_session.calls == []

    def test_session_manager_argument_enables_login(
        self, scripted_session: ScriptedSession
    ) -> None:
        scripted_session.add(make_response(200, _login_body()))
        sessions = SessionManager(
            executor=RequestPipeline(base_url=BASE_URL, session=scripted_session)
        )
        client = VaultClient(_config(), session=scripted_session, credentials=sessions)

        client.login("alice", "s3cret")

        assert client.credentials is sessions
        assert sessions.is_authenticated()

    def test_use_credentials_swaps_source(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(200, {}))
        client = VaultClient(_config(), session=scripted_session)

        client.use_credentials(StaticCredential("znv_swapped"))
        client.execute(RequestSpec("GET", "/v1/secrets"))

        assert scripted_session.sent_api_keys == ["znv_swapped"]
        with pytest.raises(SessionUnavailableError):
            client.login("alice", "s3cret")


class TestHealth:
    """Tests for health, ping and lifecycle helpers."""

    def test_health(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(
            make_response(200, {"status": "healthy", "version": "1.4.0", "database": "ok"})
        )
        client = VaultClient(_config(api_key="znv_config"), session=scripted_session)

        health = client.health()

        assert health.is_healthy
        assert health.version == "1.4.0"
        assert scripted_session.calls[0].url == f"{BASE_URL}/v1/health"
        assert scripted_session.calls[0].headers == {}

    def test_is_healthy_false_on_server_error(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(503, {"message": "down"}))
        client = VaultClient(_config(), session=scripted_session)
        assert client.is_healthy() is False

    def test_health_raises_server_error(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(500, {"message": "down"}))
        client = VaultClient(_config(), session=scripted_session)
        with pytest.raises(ServerError):
            client.health()

    def test_ping(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(200, "pong"), requests.ConnectionError("refused"))
        client = VaultClient(
            _config(retry_on_connection_failure=False), session=scripted_session
        )
        assert client.ping() is True
        assert client.ping() is False

    def test_injected_session_is_not_closed(self) -> None:
        session = MagicMock(spec=requests.Session)
        with VaultClient(_config(), session=session):
            pass
        session.close.assert_not_called()

    def test_insecure_tls_refused_in_production(self, scripted_session: ScriptedSession) -> None:
        with pytest.raises(InsecureTlsNotAllowedError):
            VaultClient(_config(tls_insecure=True), session=scripted_session)

    def test_insecure_tls_in_development(self, scripted_session: ScriptedSession) -> None:
        scripted_session.add(make_response(200, "pong"))
        client = VaultClient(
            _config(tls_insecure=True, environment="development"), session=scripted_session
        )

        client.ping()

        assert scripted_session.verify is False
        assert scripted_session.calls[0].verify is False

    def test_debug_raises_transport_log_level(self, scripted_session: ScriptedSession) -> None:
        logger = get_logger("znvault_client.infrastructure.http")
        previous = logger.level
        try:
            VaultClient(_config(debug=True), session=scripted_session)
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
