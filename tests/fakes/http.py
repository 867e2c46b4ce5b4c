"""HTTP fakes for tests."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, override

import requests
from requests.structures import CaseInsensitiveDict

from tests.support.errors import ScriptExhaustedError


class TrackedResponse(requests.Response):
    """Real `requests.Response` that records whether it was closed."""

    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    @override
    def close(self) -> None:
        self.closed = True


def make_response(
    status_code: int,
    body: object = None,
    *,
    headers: Mapping[str, str] | None = None,
) -> TrackedResponse:
    """Build a canned response; dicts and lists are JSON-encoded."""
    response = TrackedResponse()
    response.status_code = status_code
    if body is None:
        content = b""
    elif isinstance(body, str):
        content = body.encode("utf-8")
    else:
        content = json.dumps(body).encode("utf-8")
    response._content = content
    response._content_consumed = True
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    return response


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    json: object
    params: object
    timeout: object
    verify: object = None
    cert: object = None


type ScriptStep = requests.Response | Exception | Callable[[RecordedRequest], requests.Response]


def _empty_script() -> list[ScriptStep]:
    return []


def _empty_calls() -> list[RecordedRequest]:
    return []


@dataclass
class ScriptedSession(requests.Session):
    """`requests.Session` stand-in that replays scripted responses in order.

    A step can be a response, an exception to raise, or a callable that
    receives the recorded request and returns a response.
    """

    script: list[ScriptStep] = field(default_factory=_empty_script)
    calls: list[RecordedRequest] = field(default_factory=_empty_calls)

    def __post_init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()

    def add(self, *steps: ScriptStep) -> ScriptedSession:
        self.script.extend(steps)
        return self

    @override
    def request(  # type: ignore[override]
        self, method: str | bytes, url: str | bytes, *args: Any, **kwargs: Any
    ) -> requests.Response:
        recorded = RecordedRequest(
            method=str(method),
            url=str(url),
            headers=dict(kwargs.get("headers") or {}),
            json=kwargs.get("json"),
            params=kwargs.get("params"),
            timeout=kwargs.get("timeout"),
            verify=kwargs.get("verify"),
            cert=kwargs.get("cert"),
        )
        with self._lock:
            self.calls.append(recorded)
            if not self.script:
                raise ScriptExhaustedError(recorded.method, recorded.url)
            step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if isinstance(step, requests.Response):
            return step
        return step(recorded)

    @property
    def sent_api_keys(self) -> list[str | None]:
        return [call.headers.get("X-API-Key") for call in self.calls]
