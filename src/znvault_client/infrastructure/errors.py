"""Classification of non-success responses into the typed failure taxonomy.

Usage example:
    from znvault_client.infrastructure.errors import classify_error_response

    error = classify_error_response(404, '{"error":"Not Found","message":"no such secret"}')
    raise error
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from ..exceptions import (
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExpiredError,
    InvalidTotpCodeError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    RequestValidationError,
    ServerError,
    TwoFactorRequiredError,
    VaultError,
)
from ..io_contracts import ErrorEnvelope
from ..io_validation import IncomingDataError, validate_json_as
from .resilience import parse_retry_after

_UNKNOWN_ERROR = "Unknown error"
_TWO_FACTOR_MARKERS = ("2fa", "two-factor")
_TOTP_MARKER = "totp"
_QUOTA_MARKER = "quota"


@dataclass(frozen=True)
class ParsedErrorBody:
    """Best-effort view of an error body."""

    message: str
    error_code: str | None
    details: tuple[str, ...]
    text: str


def parse_error_body(body_text: str | None) -> ParsedErrorBody:
    """Parse `{error, message, status_code, errors[]}`, falling back to the raw text."""
    text = (body_text or "").strip()
    envelope: ErrorEnvelope | None = None
    if text:
        try:
            envelope = validate_json_as(ErrorEnvelope, text)
        except IncomingDataError:
            envelope = None
    if envelope is None:
        return ParsedErrorBody(
            message=text or _UNKNOWN_ERROR, error_code=None, details=(), text=text
        )
    return ParsedErrorBody(
        message=envelope.message or envelope.error or text or _UNKNOWN_ERROR,
        error_code=envelope.error,
        details=tuple(envelope.errors or ()),
        text=text,
    )


def classify_error_response(
    status_code: int,
    body_text: str | None,
    headers: Mapping[str, str] | None = None,
) -> VaultError:
    """Map a non-2xx status and body to exactly one `VaultError`.

    Status decides the class; body text only breaks ties for 401 and 429.
    """
    parsed = parse_error_body(body_text)
    message = parsed.message
    haystack = parsed.text.lower()

    match status_code:
        case 400:
            return RequestValidationError(message, details=parsed.details)
        case 401:
            if any(marker in haystack for marker in _TWO_FACTOR_MARKERS):
                return TwoFactorRequiredError(message)
            if _TOTP_MARKER in haystack:
                return InvalidTotpCodeError(message)
            return AuthenticationError(message, error_code=parsed.error_code)
        case 403:
            return AuthorizationError(message, error_code=parsed.error_code)
        case 404:
            return NotFoundError(message)
        case 409:
            return ConflictError(message)
        case 410:
            return ExpiredError(message)
        case 423:
            return AccountLockedError(message)
        case 429:
            if _QUOTA_MARKER in haystack:
                return QuotaExceededError(message)
            return RateLimitError(message, retry_after_seconds=parse_retry_after(headers))
        case code if 500 <= code <= 599:
            return ServerError(message, status_code=code)
        case _:
            return VaultError(
                message,
                status_code=status_code,
                error_code=parsed.error_code,
                details=parsed.details,
            )
