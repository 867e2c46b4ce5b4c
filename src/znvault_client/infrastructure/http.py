"""Resilient HTTP request pipeline.

Usage example:
    import requests

    from znvault_client.infrastructure.credentials import StaticCredential
    from znvault_client.infrastructure.http import RequestPipeline, RequestSpec
    from znvault_client.infrastructure.resilience import BackoffPolicy

    pipeline = RequestPipeline(
        base_url="https://vault.example.com:8443",
        session=requests.Session(),
        backoff_policy=BackoffPolicy(max_retries=3),
        credentials=StaticCredential("znv_xxxx_secretkey"),
    )
    health = pipeline.execute(RequestSpec("GET", "/v1/health", response_type=HealthStatus))
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, override

import requests

from ..exceptions import (
    TlsError,
    UnexpectedResponseError,
    VaultConnectionError,
    VaultTimeoutError,
)
from ..io_validation import IncomingDataError, dump_json_payload, validate_json_as
from ..observability import get_logger
from ..protocols import CredentialProvider, RefreshableCredential, RequestExecutor
from .cancellation import CancellationToken
from .errors import classify_error_response
from .resilience import BackoffPolicy, parse_retry_after
from .tls import TlsConfig

logger = get_logger("znvault_client.infrastructure.http")

AUTHORIZATION_HEADER = "Authorization"
API_KEY_HEADER = "X-API-Key"
UNAUTHORIZED = 401

TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


@dataclass(frozen=True)
class RequestSpec[ResponseT]:
    """One logical API call.

    `response_type` is anything pydantic's `TypeAdapter` accepts; `str` returns
    the raw body text and `None` discards the body.
    """

    method: str
    path: str
    body: object | None = None
    params: Mapping[str, str] | None = None
    response_type: type[ResponseT] | None = None
    authenticated: bool = True
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class Deliver:
    """Stop retrying and hand the response to classification."""


@dataclass(frozen=True)
class Backoff:
    """Wait, then retry and consume one slot of the retry budget."""

    delay_seconds: float


@dataclass(frozen=True)
class Reauthenticate:
    """Ask the credential source to reload, then re-send once without waiting."""


type AttemptPlan = Deliver | Backoff | Reauthenticate


def plan_after_response(
    *,
    status_code: int,
    headers: Mapping[str, str] | None,
    attempt: int,
    policy: BackoffPolicy,
    can_reauthenticate: bool,
) -> AttemptPlan:
    """Decide what follows a response.

    The one-shot reauthentication for a 401 is accounted separately from the
    retry budget, so it does not change `attempt`.
    """
    if status_code == UNAUTHORIZED and can_reauthenticate:
        return Reauthenticate()
    if policy.is_retryable_status(status_code) and policy.has_budget(attempt):
        retry_after = parse_retry_after(headers)
        if retry_after is not None and retry_after > 0:
            return Backoff(float(retry_after))
        return Backoff(policy.delay_for(attempt))
    return Deliver()


def plan_after_transport_failure(*, attempt: int, policy: BackoffPolicy) -> Backoff | None:
    """Return the wait before retrying a failed send, or None to give up."""
    if policy.retry_on_connection_failure and policy.has_budget(attempt):
        return Backoff(policy.delay_for(attempt))
    return None


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class RequestPipeline(RequestExecutor):
    """Attach credentials, send, retry transient failures, and classify errors.

    Behaviour per logical call:
    - Connection failures and timeouts retry with backoff while the budget lasts
    - The first 401 with a refreshable credential triggers one reload and one
      immediate re-send outside the retry budget
    - Retryable statuses honour Retry-After, otherwise use computed backoff
    - TLS failures are never retried
    - Other `requests` failures raise `VaultConnectionError` without retry
    - Non-2xx final responses raise the classified `VaultError`

    With `tls` set, `verify` and `cert` go on every request so that
    `REQUESTS_CA_BUNDLE` and `CURL_CA_BUNDLE` cannot replace them.
    """

    def __init__(
        self,
        *,
        base_url: str,
        session: requests.Session,
        backoff_policy: BackoffPolicy | None = None,
        credentials: CredentialProvider | None = None,
        connect_timeout_seconds: float = 30.0,
        read_timeout_seconds: float = 30.0,
        tls: TlsConfig | None = None,
        debug: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.backoff_policy = backoff_policy or BackoffPolicy.default()
        self.connect_timeout_seconds = connect_timeout_seconds
        self.read_timeout_seconds = read_timeout_seconds
        self.tls = tls
        self.debug = debug
        self._credentials_lock = threading.Lock()
        self._credentials = credentials

    @property
    def credentials(self) -> CredentialProvider | None:
        return self._credentials

    def bind_credentials(self, credentials: CredentialProvider | None) -> None:
        """Swap the credential source; calls already in flight keep their snapshot."""
        with self._credentials_lock:
            self._credentials = credentials

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @override
    def execute[ResponseT](
        self,
        spec: RequestSpec[ResponseT],
        *,
        cancellation: CancellationToken | None = None,
    ) -> ResponseT:
        """Execute one logical request.

        Raises:
            VaultError: The classified failure of the final attempt.
            RequestCancelledError: If `cancellation` fires or its deadline passes.
        """
        with self._credentials_lock:
            credentials = self._credentials if spec.authenticated else None

        attempt = 0
        reauthenticated = False
        while True:
            if cancellation is not None:
                cancellation.raise_if_cancelled()

            headers = self._credential_headers(credentials)
            try:
                response = self._send(spec, headers, cancellation)
            except requests.exceptions.SSLError as exc:
                raise TlsError(f"TLS error: {exc}") from exc
            except TRANSPORT_ERRORS as exc:
                backoff = plan_after_transport_failure(attempt=attempt, policy=self.backoff_policy)
                if backoff is None:
                    raise _transport_failure(exc) from exc
                logger.debug(
                    "Retrying %s %s after %.3fs (attempt %d/%d, error: %s)",
                    spec.method,
                    spec.path,
                    backoff.delay_seconds,
                    attempt + 1,
                    self.backoff_policy.max_retries,
                    exc,
                )
                self._wait(backoff.delay_seconds, cancellation)
                attempt += 1
                continue
            except requests.RequestException as exc:
                raise VaultConnectionError(f"Request failed: {exc}") from exc

            capability = self._refresh_capability(credentials, headers, reauthenticated)
            plan = plan_after_response(
                status_code=response.status_code,
                headers=response.headers,
                attempt=attempt,
                policy=self.backoff_policy,
                can_reauthenticate=capability is not None,
            )
            match plan:
                case Reauthenticate() if capability is not None:
                    response.close()
                    reauthenticated = True
                    if capability.on_auth_failure():
                        logger.debug("Credentials reloaded after 401; retrying %s", spec.path)
                    else:
                        logger.debug(
                            "Credentials unchanged after 401; confirming rejection of %s",
                            spec.path,
                        )
                    continue
                case Backoff(delay_seconds=delay):
                    logger.debug(
                        "Retrying %s %s after %.3fs (attempt %d/%d, status %d)",
                        spec.method,
                        spec.path,
                        delay,
                        attempt + 1,
                        self.backoff_policy.max_retries,
                        response.status_code,
                    )
                    response.close()
                    self._wait(delay, cancellation)
                    attempt += 1
                    continue
                case _:
                    return self._deliver(spec, response)

    def _credential_headers(self, credentials: CredentialProvider | None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if credentials is None:
            return headers
        auth_header = credentials.auth_header()
        if auth_header:
            headers[AUTHORIZATION_HEADER] = auth_header
        api_key = credentials.raw_key()
        if api_key:
            headers[API_KEY_HEADER] = api_key
        return headers

    def _refresh_capability(
        self,
        credentials: CredentialProvider | None,
        headers: Mapping[str, str],
        reauthenticated: bool,
    ) -> RefreshableCredential | None:
        # A bearer token outranks the key: its 401 is never treated as rotation.
        if credentials is None or reauthenticated or AUTHORIZATION_HEADER in headers:
            return None
        return credentials.refreshable()

    def _send(
        self,
        spec: RequestSpec[Any],
        headers: dict[str, str],
        cancellation: CancellationToken | None,
    ) -> requests.Response:
        tls_settings: dict[str, Any] = {}
        if self.tls is not None:
            tls_settings = {"verify": self.tls.verify, "cert": self.tls.cert}
        started = time.monotonic()
        response = self.session.request(
            spec.method,
            self.build_url(spec.path),
            params=spec.params,
            json=dump_json_payload(spec.body),
            headers=headers,
            timeout=self._timeout(spec, cancellation),
            **tls_settings,
        )
        if self.debug:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.debug(
                "%s %s -> %d (%.0fms)", spec.method, spec.path, response.status_code, elapsed_ms
            )
        return response

    def _timeout(
        self, spec: RequestSpec[Any], cancellation: CancellationToken | None
    ) -> tuple[float, float]:
        connect = self.connect_timeout_seconds
        read = self.read_timeout_seconds
        if spec.timeout_seconds is not None:
            connect = read = spec.timeout_seconds
        remaining = cancellation.remaining() if cancellation is not None else None
        if remaining is not None:
            connect = min(connect, remaining)
            read = min(read, remaining)
        return (connect, read)

    def _wait(self, delay_seconds: float, cancellation: CancellationToken | None) -> None:
        if cancellation is None:
            time.sleep(delay_seconds)
            return
        cancellation.sleep(delay_seconds)

    def _deliver[ResponseT](
        self, spec: RequestSpec[ResponseT], response: requests.Response
    ) -> ResponseT:
        try:
            body = response.text
        finally:
            response.close()

        if not _is_success(response.status_code):
            raise classify_error_response(response.status_code, body, response.headers)

        if spec.response_type is None:
            return None  # type: ignore[return-value]
        if spec.response_type is str:
            return body  # type: ignore[return-value]
        try:
            return validate_json_as(spec.response_type, body or "null")
        except IncomingDataError as exc:
            expected = getattr(spec.response_type, "__name__", str(spec.response_type))
            raise UnexpectedResponseError(response.status_code, expected) from exc


def _transport_failure(exc: Exception) -> VaultTimeoutError | VaultConnectionError:
    if isinstance(exc, requests.Timeout):
        return VaultTimeoutError(f"Request timed out: {exc}")
    return VaultConnectionError(f"Connection failed: {exc}")
