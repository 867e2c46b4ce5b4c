"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that the request pipeline and
session manager depend on, enabling isolated unit testing with fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .infrastructure.cancellation import CancellationToken
    from .infrastructure.http import RequestSpec


@runtime_checkable
class RefreshableCredential(Protocol):
    """Capability to reload credentials after the server rejects them."""

    def on_auth_failure(self) -> bool:
        """Reload credentials from their source.

        Returns:
            True if the credentials changed and the request should be retried once.
        """
        ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Source of the credentials attached to every outgoing request."""

    def auth_header(self) -> str | None:
        """Return the Authorization header value (e.g. "Bearer <token>"), if any."""
        ...

    def raw_key(self) -> str | None:
        """Return the value for the X-API-Key header, if any."""
        ...

    def refreshable(self) -> RefreshableCredential | None:
        """Return the refresh-on-401 capability, or None if unsupported."""
        ...


@runtime_checkable
class RequestExecutor(Protocol):
    """Single entry point used by resource facades and the session manager."""

    def execute[ResponseT](
        self,
        spec: RequestSpec[ResponseT],
        *,
        cancellation: CancellationToken | None = None,
    ) -> ResponseT:
        """Execute one logical request and return the decoded response."""
        ...
