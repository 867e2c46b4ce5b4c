"""Composition root for wiring CLI dependencies."""

from __future__ import annotations

from .cli import CliClient, create_app
from .client import VaultClient
from .config import VaultClientConfig


def build_cli_client(*, config: VaultClientConfig) -> CliClient:
    """Build the concrete client for CLI commands.

    Args:
        config: Client configuration (environment, config file and CLI overrides applied).
    """
    return VaultClient(config)


app = create_app(build_cli_client)
