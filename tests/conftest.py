"""Pytest fixtures for the client test suite.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import os
import socket
from collections.abc import Iterator
from pathlib import Path

import pytest

from tests.fakes import FakeClock, ScriptedSession
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    raise NetworkIsolationError(repr(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Block all network access in tests.

    Tests that need HTTP should use ScriptedSession or MagicMock(spec=requests.Session).
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


@pytest.fixture(autouse=True)
def clean_vault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host ZNVAULT_* variables out of config tests."""
    for name in list(os.environ):
        if name.startswith("ZNVAULT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def scripted_session() -> ScriptedSession:
    return ScriptedSession()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    """API key file holding `znv_initial`, as an agent would write it."""
    path = tmp_path / "ZNVAULT_API_KEY"
    path.write_text("znv_initial\n", encoding="utf-8")
    return path
