"""Concrete infrastructure implementations and shared helpers."""

from .cancellation import CancellationToken
from .credentials import (
    CompositeCredential,
    FileBackedCredential,
    StaticCredential,
    credential_from_env,
)
from .errors import classify_error_response
from .http import RequestPipeline, RequestSpec
from .resilience import BackoffPolicy, parse_retry_after
from .session import SessionManager
from .tls import TlsConfig

__all__ = [
    "BackoffPolicy",
    "CancellationToken",
    "CompositeCredential",
    "FileBackedCredential",
    "RequestPipeline",
    "RequestSpec",
    "SessionManager",
    "StaticCredential",
    "TlsConfig",
    "classify_error_response",
    "credential_from_env",
    "parse_retry_after",
]
