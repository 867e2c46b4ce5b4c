"""Wire contracts for the authentication and error payloads the core consumes.

The API uses camelCase for most fields; the few snake_case fields carry an
explicit alias.

Usage example:
    from znvault_client.io_contracts import LoginResponse
    from znvault_client.io_validation import validate_json_as

    response = validate_json_as(LoginResponse, body)
    response.access_token
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class ErrorEnvelope(BaseModel):
    """Structured error body: {error, message, status_code, errors[]}."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    error: str | None = None
    message: str | None = None
    status_code: int | None = None
    errors: list[str] | None = None


class UserInfo(_ApiModel):
    """User record embedded in login responses."""

    id: str
    username: str
    email: str | None = None
    role: str | None = None
    tenant_id: str | None = None
    totp_enabled: bool = False
    permissions: list[str] = Field(default_factory=list)


class LoginRequest(_ApiModel):
    username: str
    password: str
    totp_code: str | None = Field(default=None, alias="totp_code")


class LoginResponse(_ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    requires_2fa: bool = Field(default=False, alias="requires_2fa")
    user: UserInfo | None = None


class RefreshTokenRequest(_ApiModel):
    refresh_token: str = Field(alias="refresh_token")


class RefreshTokenResponse(_ApiModel):
    access_token: str
    refresh_token: str
    expires_in: int
    user: UserInfo | None = None


class HealthStatus(_ApiModel):
    """Payload of the /v1/health endpoint."""

    status: str
    version: str | None = None
    database: str | None = None
    tls: str | None = None

    @property
    def is_healthy(self) -> bool:
        return self.status in {"healthy", "ok"}
