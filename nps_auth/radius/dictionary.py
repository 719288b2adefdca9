"""Minimal RADIUS attribute dictionary.

Maps attribute names to their wire numbers and data types for the
attributes this client sends or interprets. It is intentionally not a full
FreeRADIUS dictionary: unknown attributes decode as ``Attr-<n>`` (or
``Vendor-<id>-Attr-<n>``) with their raw bytes.
"""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import Any

from nps_auth.exceptions import EncodeError

from .constants import (
    ATTR_CLASS,
    ATTR_FILTER_ID,
    ATTR_IDLE_TIMEOUT,
    ATTR_MESSAGE_AUTHENTICATOR,
    ATTR_NAS_IDENTIFIER,
    ATTR_NAS_IP_ADDRESS,
    ATTR_NAS_PORT,
    ATTR_NAS_PORT_TYPE,
    ATTR_REPLY_MESSAGE,
    ATTR_SERVICE_TYPE,
    ATTR_SESSION_TIMEOUT,
    ATTR_STATE,
    ATTR_USER_NAME,
    ATTR_USER_PASSWORD,
    ATTR_VENDOR_SPECIFIC,
    CISCO_AVPAIR,
    MS_CHAP2_RESPONSE,
    MS_CHAP2_SUCCESS,
    MS_CHAP_CHALLENGE,
    MS_CHAP_ERROR,
    MS_MPPE_ENCRYPTION_POLICY,
    MS_MPPE_ENCRYPTION_TYPES,
    MS_MPPE_RECV_KEY,
    MS_MPPE_SEND_KEY,
    VENDOR_CISCO,
    VENDOR_FORTINET,
    VENDOR_MICROSOFT,
    VENDOR_PALO_ALTO,
)

STRING = "string"
INTEGER = "integer"
IPADDR = "ipaddr"
OCTETS = "octets"


@dataclass(frozen=True)
class AttributeDef:
    """Dictionary entry for one (optionally vendor-scoped) attribute."""

    name: str
    attr_type: int
    data_type: str
    vendor_id: int | None = None


VENDOR_NAMES: dict[int, str] = {
    VENDOR_CISCO: "Cisco",
    VENDOR_MICROSOFT: "Microsoft",
    VENDOR_FORTINET: "Fortinet",
    VENDOR_PALO_ALTO: "PaloAlto",
}

_STANDARD: tuple[AttributeDef, ...] = (
    AttributeDef("User-Name", ATTR_USER_NAME, STRING),
    AttributeDef("User-Password", ATTR_USER_PASSWORD, OCTETS),
    AttributeDef("NAS-IP-Address", ATTR_NAS_IP_ADDRESS, IPADDR),
    AttributeDef("NAS-Port", ATTR_NAS_PORT, INTEGER),
    AttributeDef("Service-Type", ATTR_SERVICE_TYPE, INTEGER),
    AttributeDef("Filter-Id", ATTR_FILTER_ID, STRING),
    AttributeDef("Reply-Message", ATTR_REPLY_MESSAGE, STRING),
    AttributeDef("State", ATTR_STATE, OCTETS),
    AttributeDef("Class", ATTR_CLASS, OCTETS),
    AttributeDef("Vendor-Specific", ATTR_VENDOR_SPECIFIC, OCTETS),
    AttributeDef("Session-Timeout", ATTR_SESSION_TIMEOUT, INTEGER),
    AttributeDef("Idle-Timeout", ATTR_IDLE_TIMEOUT, INTEGER),
    AttributeDef("NAS-Identifier", ATTR_NAS_IDENTIFIER, STRING),
    AttributeDef("NAS-Port-Type", ATTR_NAS_PORT_TYPE, INTEGER),
    AttributeDef("Message-Authenticator", ATTR_MESSAGE_AUTHENTICATOR, OCTETS),
)

_VENDOR: tuple[AttributeDef, ...] = (
    AttributeDef("MS-CHAP-Error", MS_CHAP_ERROR, OCTETS, VENDOR_MICROSOFT),
    AttributeDef(
        "MS-MPPE-Encryption-Policy", MS_MPPE_ENCRYPTION_POLICY, INTEGER, VENDOR_MICROSOFT
    ),
    AttributeDef(
        "MS-MPPE-Encryption-Types", MS_MPPE_ENCRYPTION_TYPES, INTEGER, VENDOR_MICROSOFT
    ),
    AttributeDef("MS-CHAP-Challenge", MS_CHAP_CHALLENGE, OCTETS, VENDOR_MICROSOFT),
    AttributeDef("MS-MPPE-Send-Key", MS_MPPE_SEND_KEY, OCTETS, VENDOR_MICROSOFT),
    AttributeDef("MS-MPPE-Recv-Key", MS_MPPE_RECV_KEY, OCTETS, VENDOR_MICROSOFT),
    AttributeDef("MS-CHAP2-Response", MS_CHAP2_RESPONSE, OCTETS, VENDOR_MICROSOFT),
    AttributeDef("MS-CHAP2-Success", MS_CHAP2_SUCCESS, OCTETS, VENDOR_MICROSOFT),
    AttributeDef("Cisco-AVPair", CISCO_AVPAIR, STRING, VENDOR_CISCO),
    AttributeDef("Fortinet-Group-Name", 1, STRING, VENDOR_FORTINET),
    AttributeDef("PaloAlto-Admin-Role", 1, STRING, VENDOR_PALO_ALTO),
)

_BY_NAME: dict[str, AttributeDef] = {d.name: d for d in _STANDARD + _VENDOR}
_BY_TYPE: dict[int, AttributeDef] = {d.attr_type: d for d in _STANDARD}
_BY_VENDOR_TYPE: dict[tuple[int, int], AttributeDef] = {
    (d.vendor_id, d.attr_type): d for d in _VENDOR if d.vendor_id is not None
}


def lookup(name: str) -> AttributeDef:
    """Return the dictionary entry for ``name``.

    Raises:
        EncodeError: when the attribute is not in the dictionary.
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise EncodeError(f"Unknown RADIUS attribute: {name}") from None


def by_type(attr_type: int) -> AttributeDef | None:
    return _BY_TYPE.get(attr_type)


def by_vendor_type(vendor_id: int, vendor_type: int) -> AttributeDef | None:
    return _BY_VENDOR_TYPE.get((vendor_id, vendor_type))


def vendor_name(vendor_id: int) -> str:
    return VENDOR_NAMES.get(vendor_id, f"Vendor-{vendor_id}")


def encode_value(definition: AttributeDef, value: Any) -> bytes:
    """Encode a Python value according to the attribute's data type."""
    dt = definition.data_type
    try:
        if dt == STRING:
            if isinstance(value, bytes):
                return value
            if not isinstance(value, str):
                raise TypeError(f"expected str, got {type(value).__name__}")
            return value.encode("utf-8")
        if dt == INTEGER:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"expected int, got {type(value).__name__}")
            return struct.pack("!I", value)
        if dt == IPADDR:
            return ipaddress.IPv4Address(value).packed
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"expected bytes, got {type(value).__name__}")
        return bytes(value)
    except (TypeError, ValueError, struct.error) as exc:
        raise EncodeError(f"Invalid value for {definition.name}: {exc}") from exc


def decode_value(definition: AttributeDef | None, raw: bytes) -> Any:
    """Decode raw attribute bytes; malformed typed values fall back to bytes."""
    if definition is None:
        return _maybe_text(raw)
    dt = definition.data_type
    if dt == STRING:
        return raw.decode("utf-8", errors="replace")
    if dt == INTEGER and len(raw) == 4:
        return int(struct.unpack("!I", raw)[0])
    if dt == IPADDR and len(raw) == 4:
        return str(ipaddress.IPv4Address(raw))
    if dt == OCTETS and definition.attr_type == ATTR_CLASS:
        return _maybe_text(raw)
    return raw


def _maybe_text(raw: bytes) -> str | bytes:
    """Return printable UTF-8 as ``str``; anything else stays ``bytes``."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
    if text and text.isprintable():
        return text
    return raw


__all__ = [
    "AttributeDef",
    "STRING",
    "INTEGER",
    "IPADDR",
    "OCTETS",
    "lookup",
    "by_type",
    "by_vendor_type",
    "vendor_name",
    "encode_value",
    "decode_value",
]
