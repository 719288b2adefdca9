"""Outcome types shared by the transport, the client and the failover layer."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class AuthResultCode(str, Enum):
    """Why an authentication attempt ended the way it did."""

    ACCESS_ACCEPT = "ACCESS_ACCEPT"
    ACCESS_REJECT = "ACCESS_REJECT"
    ACCESS_CHALLENGE = "ACCESS_CHALLENGE"
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    ENCODE_ERROR = "ENCODE_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    SOCKET_ERROR = "SOCKET_ERROR"
    UNEXPECTED_RESPONSE = "UNEXPECTED_RESPONSE"
    CONFIG_ERROR = "CONFIG_ERROR"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        return self.value


@dataclass
class AuthResult:
    """Result of one login attempt, ready for the login UI and for logging.

    ``attributes`` is only set when a reply was decoded; ``groups`` is
    derived from it. ``mutual_auth`` is ``None`` unless an MS-CHAP2-Success
    value was checked.
    """

    success: bool
    message: str
    code: AuthResultCode
    attributes: dict[str, list[Any]] | None = None
    groups: list[str] = field(default_factory=list)
    used_server: str | None = None
    server: str | None = None
    mutual_auth: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (bytes values become hex strings)."""
        data = asdict(self)
        data["code"] = self.code.value
        data["attributes"] = _jsonable(self.attributes)
        return data


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


__all__ = ["AuthResult", "AuthResultCode"]
