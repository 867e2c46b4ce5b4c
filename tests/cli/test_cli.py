"""Tests for CLI wiring and commands."""

import re
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from tests.fakes import RecordingCredential
from znvault_client import cli
from znvault_client.cli import CliClient, describe_credentials
from znvault_client.config import VaultClientConfig
from znvault_client.exceptions import CredentialFileError, VaultConnectionError
from znvault_client.infrastructure import StaticCredential
from znvault_client.io_contracts import HealthStatus
from znvault_client.protocols import CredentialProvider

runner = CliRunner()
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE_RE.sub("", text)


@dataclass
class FakeCliClient:
    """Client stub that never touches the network."""

    status: HealthStatus | Exception = field(
        default_factory=lambda: HealthStatus(status="healthy", version="1.4.0")
    )
    credentials: CredentialProvider | None = None
    closed: bool = False

    def health(self) -> HealthStatus:
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def empty_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_from_env(
        cls: type[VaultClientConfig], dotenv_path: str | None = None
    ) -> VaultClientConfig:
        _ = (cls, dotenv_path)
        return VaultClientConfig()

    monkeypatch.setattr(cli.VaultClientConfig, "from_env", classmethod(fake_from_env))


def _build_app(client: FakeCliClient, captured: dict[str, VaultClientConfig]) -> typer.Typer:
    def build_client(*, config: VaultClientConfig) -> CliClient:
        captured["config"] = config
        return client

    return cli.create_app(build_client)


def test_health_reports_status() -> None:
    client = FakeCliClient()
    result = runner.invoke(_build_app(client, {}), ["health"])

    assert result.exit_code == 0
    output = _strip_ansi(result.output)
    assert "Status: healthy" in output
    assert "Version: 1.4.0" in output
    assert client.closed


def test_health_unhealthy_exits_non_zero() -> None:
    client = FakeCliClient(status=HealthStatus(status="degraded"))
    result = runner.invoke(_build_app(client, {}), ["health"])
    assert result.exit_code == 1


def test_health_unreachable_exits_non_zero() -> None:
    client = FakeCliClient(status=VaultConnectionError("Connection failed: refused"))
    result = runner.invoke(_build_app(client, {}), ["health"])

    assert result.exit_code == 1
    assert "unreachable" in _strip_ansi(result.output)
    assert client.closed


def test_url_option_overrides_environment() -> None:
    captured: dict[str, VaultClientConfig] = {}
    runner.invoke(_build_app(FakeCliClient(), captured), ["--url", "https://cli.test", "health"])
    assert captured["config"].base_url == "https://cli.test"


def test_config_file_option(tmp_path: Path) -> None:
    path = tmp_path / "znvault.toml"
    path.write_text(
        'schema_version = 1\n[client]\nbase_url = "https://file.test"\nmax_retries = 6\n',
        encoding="utf-8",
    )
    captured: dict[str, VaultClientConfig] = {}

    result = runner.invoke(
        _build_app(FakeCliClient(), captured), ["--config", str(path), "health"]
    )

    assert result.exit_code == 0
    assert captured["config"].base_url == "https://file.test"
    assert captured["config"].max_retries == 6


def test_credentials_masks_key() -> None:
    client = FakeCliClient(credentials=StaticCredential("znv_abcdef_secret"))
    result = runner.invoke(_build_app(client, {}), ["credentials"])

    assert result.exit_code == 0
    output = _strip_ansi(result.output)
    assert "Credential mode: api-key" in output
    assert "znv_****" in output
    assert "secret" not in output


def test_invalid_configuration_exits_with_usage_code() -> None:
    def failing_builder(*, config: VaultClientConfig) -> CliClient:
        raise CredentialFileError.not_found("/run/secrets/missing")

    result = runner.invoke(cli.create_app(failing_builder), ["credentials"])

    assert result.exit_code == 2
    assert "Invalid client configuration" in _strip_ansi(result.output)


@pytest.mark.parametrize(
    ("credentials", "mode"),
    [
        (None, "none"),
        (StaticCredential("znv_abcdef_secret"), "api-key"),
        (RecordingCredential(key="znv_abcdef_secret"), "api-key-file"),
        (RecordingCredential(key=None), "session"),  # type: ignore[arg-type]
    ],
)
def test_describe_credentials(credentials: CredentialProvider | None, mode: str) -> None:
    assert describe_credentials(credentials)[0] == mode
