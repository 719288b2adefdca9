# nps_auth/exceptions.py
"""
Custom exceptions for the NPS/RADIUS authentication client.

These never cross the public authentication API: the transport and client
layers convert them into an ``AuthResult`` with a machine-readable code.
"""

from typing import Any


class NpsAuthError(Exception):
    """Base exception for all nps_auth errors."""

    error_code = "nps_auth_error"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Config exceptions
class ConfigError(NpsAuthError):
    """Base exception for configuration-related errors."""

    error_code = "config_error"


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    error_code = "config_validation_error"

    def __init__(
        self, message: str, field: str | None = None, value: Any = None, **kwargs: Any
    ):
        details = {"field": field, "value": value, **kwargs}
        super().__init__(message, details)
        self.field = field
        self.value = value


class SecretDecryptionError(ConfigError):
    """Raised when an at-rest shared secret cannot be decrypted."""

    error_code = "secret_decryption_error"


# Protocol exceptions
class ProtocolError(NpsAuthError, ValueError):
    """RADIUS protocol encoding/decoding error.

    Subclasses ValueError so low-level parsers keep the usual contract.
    """

    error_code = "protocol_error"


class EncodeError(ProtocolError):
    """Local packet construction failed (unknown attribute, value too long)."""

    error_code = "encode_error"


class DecodeError(ProtocolError):
    """A response could not be parsed or failed authenticator checks."""

    error_code = "decode_error"


__all__ = [
    "NpsAuthError",
    "ConfigError",
    "ConfigValidationError",
    "SecretDecryptionError",
    "ProtocolError",
    "EncodeError",
    "DecodeError",
]
