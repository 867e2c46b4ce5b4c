"""Custom exceptions for the ZnVault client.

Every failure of a logical request surfaces as exactly one `VaultError`
subclass. Callers can branch on the class or on `VaultError.kind`.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum


class FailureKind(StrEnum):
    """Closed taxonomy of request failures."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TWO_FACTOR_REQUIRED = "two_factor_required"
    INVALID_TOTP_CODE = "invalid_totp_code"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    ACCOUNT_LOCKED = "account_locked"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVER_ERROR = "server_error"
    CONNECTION_ERROR = "connection_error"
    TIMEOUT = "timeout"
    TLS_ERROR = "tls_error"
    CANCELLED = "cancelled"
    GENERIC = "generic"


class VaultError(Exception):
    """Base exception for all ZnVault client errors."""

    kind: FailureKind = FailureKind.GENERIC

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        retry_after_seconds: int | None = None,
        details: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.retry_after_seconds = retry_after_seconds
        self.details = tuple(details)


class RequestValidationError(VaultError):
    """Raised when the server rejects a malformed request (400)."""

    kind = FailureKind.VALIDATION

    def __init__(self, message: str = "Validation failed", details: Sequence[str] = ()) -> None:
        super().__init__(message, status_code=400, error_code="VALIDATION_ERROR", details=details)


class AuthenticationError(VaultError):
    """Raised when credentials are missing, invalid or expired (401)."""

    kind = FailureKind.AUTHENTICATION

    def __init__(
        self, message: str = "Authentication failed", error_code: str | None = None
    ) -> None:
        super().__init__(message, status_code=401, error_code=error_code)


class TwoFactorRequiredError(AuthenticationError):
    """Raised when login needs a second-factor code."""

    kind = FailureKind.TWO_FACTOR_REQUIRED

    def __init__(self, message: str = "Two-factor authentication required") -> None:
        super().__init__(message, error_code="2FA_REQUIRED")


class InvalidTotpCodeError(AuthenticationError):
    """Raised when a supplied second-factor code is rejected."""

    kind = FailureKind.INVALID_TOTP_CODE

    def __init__(self, message: str = "Invalid TOTP code") -> None:
        super().__init__(message, error_code="INVALID_TOTP")


class AuthorizationError(VaultError):
    """Raised when the caller lacks permission (403)."""

    kind = FailureKind.AUTHORIZATION

    def __init__(self, message: str = "Access denied", error_code: str | None = None) -> None:
        super().__init__(message, status_code=403, error_code=error_code)


class NotFoundError(VaultError):
    """Raised when a resource does not exist (404)."""

    kind = FailureKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=404, error_code="NOT_FOUND")


class ConflictError(VaultError):
    """Raised when a resource already exists or is in a conflicting state (409)."""

    kind = FailureKind.CONFLICT

    def __init__(self, message: str = "Resource already exists") -> None:
        super().__init__(message, status_code=409, error_code="CONFLICT")


class ExpiredError(VaultError):
    """Raised when a resource has passed its TTL (410)."""

    kind = FailureKind.EXPIRED

    def __init__(self, message: str = "Resource has expired") -> None:
        super().__init__(message, status_code=410, error_code="EXPIRED")


class AccountLockedError(VaultError):
    """Raised when an account is locked after failed logins (423)."""

    kind = FailureKind.ACCOUNT_LOCKED

    def __init__(self, message: str = "Account is locked") -> None:
        super().__init__(message, status_code=423, error_code="ACCOUNT_LOCKED")


class RateLimitError(VaultError):
    """Raised when the API rate limit is exceeded (429).

    Retryable by the caller after `retry_after_seconds` when present.
    """

    kind = FailureKind.RATE_LIMITED

    def __init__(
        self, message: str = "Rate limit exceeded", retry_after_seconds: int | None = None
    ) -> None:
        super().__init__(
            message,
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            retry_after_seconds=retry_after_seconds,
        )


class QuotaExceededError(VaultError):
    """Raised when a tenant quota is exhausted (429)."""

    kind = FailureKind.QUOTA_EXCEEDED

    def __init__(self, message: str = "Quota exceeded") -> None:
        super().__init__(message, status_code=429, error_code="QUOTA_EXCEEDED")


class ServerError(VaultError):
    """Raised for 5xx responses that survive the retry budget."""

    kind = FailureKind.SERVER_ERROR

    def __init__(self, message: str = "Internal server error", status_code: int = 500) -> None:
        super().__init__(message, status_code=status_code, error_code="SERVER_ERROR")


class VaultConnectionError(VaultError):
    """Raised when the server cannot be reached."""

    kind = FailureKind.CONNECTION_ERROR

    def __init__(self, message: str = "Connection failed") -> None:
        super().__init__(message, error_code="CONNECTION_ERROR")


class VaultTimeoutError(VaultError):
    """Raised when a request times out after all retries."""

    kind = FailureKind.TIMEOUT

    def __init__(self, message: str = "Request timed out") -> None:
        super().__init__(message, error_code="TIMEOUT")


class TlsError(VaultError):
    """Raised when the TLS handshake or certificate validation fails."""

    kind = FailureKind.TLS_ERROR

    def __init__(self, message: str = "TLS error") -> None:
        super().__init__(message, error_code="TLS_ERROR")


class RequestCancelledError(VaultError):
    """Raised when a caller cancels a request or its deadline passes."""

    kind = FailureKind.CANCELLED

    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message, error_code="CANCELLED")

    @classmethod
    def for_deadline(cls) -> RequestCancelledError:
        return cls("Request deadline exceeded")


class UnexpectedResponseError(VaultError):
    """Raised when a successful response body does not match the expected shape."""

    def __init__(self, status_code: int, expected: str) -> None:
        super().__init__(
            f"Response body does not match expected type {expected}.",
            status_code=status_code,
            error_code="UNEXPECTED_RESPONSE",
        )


class SessionUnavailableError(RuntimeError):
    """Raised when login is attempted on a client bound to API-key credentials."""

    def __init__(self) -> None:
        super().__init__(
            "Session login is not available: this client uses API key credentials. "
            "Construct it without an API key to enable login."
        )


class CredentialFileError(OSError):
    """Raised when an API key file is missing, unreadable or empty."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"API key file {reason}: {path}")

    @classmethod
    def not_found(cls, path: str) -> CredentialFileError:
        return cls(path, "not found")

    @classmethod
    def unreadable(cls, path: str, detail: str) -> CredentialFileError:
        return cls(path, f"could not be read ({detail})")

    @classmethod
    def empty(cls, path: str) -> CredentialFileError:
        return cls(path, "is empty")


class MissingCredentialError(ValueError):
    """Raised when neither `<NAME>_FILE` nor `<NAME>` is set."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"Neither {env_name}_FILE nor {env_name} is set.")


class InvalidCredentialError(ValueError):
    """Raised when a static API key is empty."""

    def __init__(self) -> None:
        super().__init__("API key must not be empty.")


class InvalidBackoffPolicyError(ValueError):
    """Raised when backoff parameters are out of range."""

    def __init__(self, field_name: str, constraint: str) -> None:
        super().__init__(f"Backoff policy {field_name} must be {constraint}.")


class TlsConfigurationError(ValueError):
    """Raised when TLS settings are inconsistent or point at missing files."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid TLS configuration: {message}")


class InsecureTlsNotAllowedError(ValueError):
    """Raised when insecure TLS is requested for a production environment."""

    def __init__(self, environment: str) -> None:
        super().__init__(
            f"Insecure TLS (trust all certificates) is not allowed in the {environment!r} "
            "environment. Configure a CA certificate instead."
        )


class ConfigFileNotFoundError(FileNotFoundError):
    """Raised when a client config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(ValueError):
    """Raised when a client config file cannot be parsed as TOML."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {detail}")


class ConfigFileValidationError(ValueError):
    """Raised when a client config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is invalid: {detail}")
