"""Credential fakes for tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import override

from znvault_client.protocols import CredentialProvider, RefreshableCredential


def _no_keys() -> list[str]:
    return []


@dataclass
class RecordingCredential(CredentialProvider, RefreshableCredential):
    """Refreshable key provider whose reloads hand out queued keys."""

    key: str = "znv_initial"
    bearer: str | None = None
    next_keys: list[str] = field(default_factory=_no_keys)
    refresh_calls: int = 0

    @override
    def auth_header(self) -> str | None:
        return self.bearer

    @override
    def raw_key(self) -> str | None:
        return self.key

    @override
    def refreshable(self) -> RefreshableCredential | None:
        return self

    @override
    def on_auth_failure(self) -> bool:
        self.refresh_calls += 1
        if not self.next_keys:
            return False
        self.key = self.next_keys.pop(0)
        return True
