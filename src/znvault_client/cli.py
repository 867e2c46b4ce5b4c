"""CLI for the ZnVault client.

Commands:
- health: Query the vault health endpoint
- credentials: Show which credential source the client would use (no network)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Protocol

import typer
from rich import print as rprint

from .config import VaultClientConfig
from .config_file import load_client_config_file
from .exceptions import CredentialFileError, VaultError
from .io_contracts import HealthStatus
from .observability import mask_secret
from .protocols import CredentialProvider


class CliClient(Protocol):
    """Subset of `VaultClient` used by CLI commands."""

    @property
    def credentials(self) -> CredentialProvider | None: ...

    def health(self) -> HealthStatus: ...

    def close(self) -> None: ...


class ClientBuilder(Protocol):
    """Protocol for constructing the client used by CLI commands."""

    def __call__(self, *, config: VaultClientConfig) -> CliClient:
        """Build a client for the given configuration."""
        ...


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: VaultClientConfig
    client_builder: ClientBuilder

    def build_client(self) -> CliClient:
        try:
            return self.client_builder(config=self.config)
        except (CredentialFileError, ValueError) as exc:
            rprint(f"[red]✗ Invalid client configuration:[/red] {exc}")
            raise typer.Exit(code=2) from exc


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the znvault entry point.")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def describe_credentials(credentials: CredentialProvider | None) -> tuple[str, str]:
    """Return (mode, masked key) for a credential source."""
    if credentials is None:
        return ("none", mask_secret(None))
    key = credentials.raw_key()
    if key is None:
        return ("session", mask_secret(None))
    if credentials.refreshable() is not None:
        return ("api-key-file", mask_secret(key))
    return ("api-key", mask_secret(key))


def create_app(client_builder: ClientBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided client builder."""
    app = typer.Typer(add_completion=False, help="ZnVault client utilities")

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="TOML config file ([client] section)"),
        ] = None,
        url: Annotated[
            str | None,
            typer.Option("--url", "-u", help="Vault base URL (overrides ZNVAULT_URL)"),
        ] = None,
        debug: Annotated[
            bool,
            typer.Option("--debug", help="Log each request at DEBUG level"),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        config = VaultClientConfig.from_env()
        if config_path is not None:
            config = config.with_file_config(load_client_config_file(config_path))
        config = config.with_overrides(base_url=url, debug=debug or None)
        ctx.obj = CliContext(config=config, client_builder=client_builder)

    @app.command()
    def health(ctx: typer.Context) -> None:
        """Check vault health; exits non-zero when unhealthy or unreachable."""
        cli_context = _get_context(ctx)
        client = cli_context.build_client()
        try:
            status = client.health()
        except VaultError as exc:
            rprint(f"[red]✗ {cli_context.config.base_url} unreachable:[/red] {exc.message}")
            raise typer.Exit(code=1) from exc
        finally:
            client.close()

        colour = "green" if status.is_healthy else "red"
        rprint(f"[{colour}]Status:[/{colour}] {status.status}")
        if status.version:
            rprint(f"  Version: {status.version}")
        if status.database:
            rprint(f"  Database: {status.database}")
        if not status.is_healthy:
            raise typer.Exit(code=1)

    @app.command()
    def credentials(ctx: typer.Context) -> None:
        """Show the credential source and a masked key."""
        cli_context = _get_context(ctx)
        client = cli_context.build_client()
        try:
            mode, masked = describe_credentials(client.credentials)
        finally:
            client.close()
        rprint(f"[green]Credential mode:[/green] {mode}")
        rprint(f"  Key: {masked}")
        if cli_context.config.api_key_file and mode == "api-key-file":
            rprint(f"  Key file: {cli_context.config.api_key_file}")

    return app
