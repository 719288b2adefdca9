"""Pydantic schema for RADIUS client configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_AUTH_PORT = 1812

AuthMethod = Literal["mschapv2", "pap"]

DEFAULT_NAS_IDENTIFIER = "LinkMonitor"
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_RETRIES = 3


class RadiusServerConfig(BaseModel):
    """Connection parameters for one RADIUS server, secret already decrypted."""

    model_config = ConfigDict(extra="ignore", frozen=True)
    host: str = Field(..., min_length=1, description="RADIUS server host or IP")
    port: int = Field(default=DEFAULT_AUTH_PORT, ge=1, le=65535)
    shared_secret: str = Field(..., min_length=1, repr=False)
    nas_identifier: str = Field(default=DEFAULT_NAS_IDENTIFIER, min_length=1)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=100, le=60_000)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1, le=10)
    auth_method: AuthMethod = "mschapv2"
    message_authenticator: bool = True

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("host must not be blank")
        return v

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class RadiusSettings(BaseModel):
    """Primary/secondary RADIUS settings as stored by the host application.

    Secrets are kept in their at-rest (possibly encrypted) form and only
    decrypted for the duration of one authentication call.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)
    primary_host: str = Field(..., min_length=1)
    primary_port: int = Field(default=DEFAULT_AUTH_PORT, ge=1, le=65535)
    shared_secret_encrypted: str = Field(..., min_length=1, repr=False)
    secondary_host: str | None = None
    secondary_port: int | None = Field(default=None, ge=1, le=65535)
    secondary_secret_encrypted: str | None = Field(default=None, repr=False)
    nas_identifier: str = Field(default=DEFAULT_NAS_IDENTIFIER, min_length=1)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=100, le=60_000)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1, le=10)
    auth_method: AuthMethod = "mschapv2"
    message_authenticator: bool = True
    require_mutual_auth: bool = False

    @field_validator("secondary_host", "secondary_secret_encrypted")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _secondary_needs_secret(self) -> RadiusSettings:
        if self.secondary_host and not self.secondary_secret_encrypted:
            raise ValueError(
                "secondary_host is set but secondary_secret_encrypted is missing"
            )
        return self

    @property
    def has_secondary(self) -> bool:
        return bool(self.secondary_host and self.secondary_secret_encrypted)

    def server_config(self, role: str, shared_secret: str) -> RadiusServerConfig:
        """Build the per-server config for ``role`` ("primary" or "secondary")."""
        if role == "primary":
            host, port = self.primary_host, self.primary_port
        elif role == "secondary" and self.secondary_host:
            host, port = self.secondary_host, self.secondary_port or DEFAULT_AUTH_PORT
        else:
            raise ValueError(f"No {role} RADIUS server configured")
        return RadiusServerConfig(
            host=host,
            port=port,
            shared_secret=shared_secret,
            nas_identifier=self.nas_identifier,
            timeout_ms=self.timeout_ms,
            max_retries=self.max_retries,
            auth_method=self.auth_method,
            message_authenticator=self.message_authenticator,
        )


__all__ = [
    "AuthMethod",
    "DEFAULT_AUTH_PORT",
    "RadiusServerConfig",
    "RadiusSettings",
    "DEFAULT_NAS_IDENTIFIER",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_MAX_RETRIES",
]
