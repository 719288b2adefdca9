import secrets
import struct
from dataclasses import dataclass
from typing import Any

from nps_auth.exceptions import DecodeError, EncodeError
from nps_auth.utils.logger import get_logger

from . import dictionary
from .authenticator import (
    compute_message_authenticator,
    compute_response_authenticator,
    encrypt_password_value,
    message_authenticator_offset,
    verify_message_authenticator,
    verify_response_authenticator,
)
from .constants import (
    ATTR_MESSAGE_AUTHENTICATOR,
    ATTR_USER_PASSWORD,
    ATTR_VENDOR_SPECIFIC,
    AUTHENTICATOR_LENGTH,
    CODE_NAMES,
    MAX_ATTRIBUTE_VALUE_LENGTH,
    MAX_RADIUS_PACKET_LENGTH,
    RADIUS_ACCESS_REQUEST,
    RADIUS_HEADER_LENGTH,
)

logger = get_logger("nps_auth.radius.packet", component="radius")


@dataclass
class RADIUSAttribute:
    """RADIUS attribute"""

    attr_type: int
    value: bytes

    def pack(self) -> bytes:
        """Pack attribute into bytes"""
        if len(self.value) > MAX_ATTRIBUTE_VALUE_LENGTH:
            raise EncodeError(f"Attribute too long: {len(self.value) + 2} bytes")
        return struct.pack("BB", self.attr_type, len(self.value) + 2) + self.value

    @classmethod
    def unpack(cls, data: bytes) -> tuple["RADIUSAttribute", int]:
        """Unpack attribute from bytes"""
        if len(data) < 2:
            raise DecodeError("Incomplete attribute header")

        attr_type, length = struct.unpack("BB", data[:2])
        if length < 2 or length > len(data):
            raise DecodeError(f"Invalid attribute length: {length}")

        return cls(attr_type, data[2:length]), length

    def as_string(self) -> str:
        """Get value as string"""
        return self.value.decode("utf-8", errors="replace")

    def as_int(self) -> int:
        """Get value as integer"""
        if len(self.value) == 4:
            return int(struct.unpack("!I", self.value)[0])
        raise ValueError("Attribute is not an integer")


@dataclass
class VendorSpecificAttribute:
    """RADIUS Vendor-Specific Attribute (Type 26, RFC 2865 §5.26)

    Format: Type(1) Length(1) Vendor-Id(4) Vendor-Type(1) Vendor-Length(1) Vendor-Data(...)
    """

    vendor_id: int
    vendor_type: int
    vendor_data: bytes

    def pack(self) -> bytes:
        """Pack VSA into its value representation (no outer Type/Length).

        Returns:
            Vendor-Id(4) + Vendor-Type(1) + Vendor-Length(1) + Vendor-Data(...)
        """
        vendor_length = len(self.vendor_data) + 2
        if 4 + vendor_length > MAX_ATTRIBUTE_VALUE_LENGTH:
            raise EncodeError(
                f"VSA attribute too long: {2 + 4 + vendor_length} bytes (max 255)"
            )
        return (
            struct.pack("!LBB", self.vendor_id, self.vendor_type, vendor_length)
            + self.vendor_data
        )

    @classmethod
    def unpack(cls, data: bytes) -> tuple["VendorSpecificAttribute", int]:
        """Unpack VSA from wire format.

        Args:
            data: Raw attribute data starting after Type(26) and Length bytes

        Returns:
            Tuple of (VendorSpecificAttribute, bytes_consumed)

        Raises:
            DecodeError: If data is malformed or incomplete
        """
        if len(data) < 6:
            raise DecodeError(f"VSA data too short: {len(data)} bytes, need at least 6")

        vendor_id, vendor_type, vendor_length = struct.unpack("!LBB", data[:6])
        if vendor_length < 2:
            raise DecodeError(f"Invalid vendor-length: {vendor_length} (min 2)")

        total_consumed = 4 + vendor_length
        if len(data) < total_consumed:
            raise DecodeError(
                f"Incomplete VSA: need {total_consumed} bytes, got {len(data)}"
            )
        return cls(vendor_id, vendor_type, data[6:total_consumed]), total_consumed

    def as_string(self) -> str:
        """Get vendor data as UTF-8 string."""
        return self.vendor_data.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return (
            f"VSA({dictionary.vendor_name(self.vendor_id)}, type={self.vendor_type}, "
            f"len={len(self.vendor_data)})"
        )


def _unpack_vsas(value: bytes) -> list[VendorSpecificAttribute]:
    """Split one Vendor-Specific value into its sub-attributes.

    RFC 2865 allows several vendor sub-attributes behind a single Vendor-Id.
    """
    first, consumed = VendorSpecificAttribute.unpack(value)
    vsas = [first]
    offset = consumed
    while offset < len(value):
        if len(value) - offset < 2:
            raise DecodeError("Trailing bytes in Vendor-Specific attribute")
        vendor_type, vendor_length = value[offset], value[offset + 1]
        if vendor_length < 2 or offset + vendor_length > len(value):
            raise DecodeError(f"Invalid vendor-length: {vendor_length}")
        vsas.append(
            VendorSpecificAttribute(
                first.vendor_id,
                vendor_type,
                value[offset + 2 : offset + vendor_length],
            )
        )
        offset += vendor_length
    return vsas


def _vendor_entries(value: bytes) -> list[dict[str, Any]]:
    """Decoded dicts for one Vendor-Specific value."""
    try:
        vsas = _unpack_vsas(value)
    except DecodeError:
        # RFC 2865 §5.26 only recommends the sub-attribute layout
        vendor_id = struct.unpack("!L", value[:4])[0] if len(value) >= 4 else None
        return [
            {
                "vendor_id": vendor_id,
                "vendor": dictionary.vendor_name(vendor_id) if vendor_id is not None else None,
                "type": None,
                "name": f"Vendor-{vendor_id}-Opaque",
                "value": value[4:] if vendor_id is not None else value,
            }
        ]
    entries = []
    for vsa in vsas:
        definition = dictionary.by_vendor_type(vsa.vendor_id, vsa.vendor_type)
        entries.append(
            {
                "vendor_id": vsa.vendor_id,
                "vendor": dictionary.vendor_name(vsa.vendor_id),
                "type": vsa.vendor_type,
                "name": definition.name
                if definition
                else f"Vendor-{vsa.vendor_id}-Attr-{vsa.vendor_type}",
                "value": dictionary.decode_value(definition, vsa.vendor_data),
            }
        )
    return entries


class RADIUSPacket:
    """RADIUS packet structure"""

    def __init__(
        self,
        code: int,
        identifier: int,
        authenticator: bytes | None = None,
        attributes: list[RADIUSAttribute] | None = None,
    ):
        if not 0 <= identifier <= 255:
            raise EncodeError(f"Identifier out of range: {identifier}")
        self.code = code
        self.identifier = identifier
        self.authenticator = (
            authenticator
            if authenticator is not None
            else secrets.token_bytes(AUTHENTICATOR_LENGTH)
        )
        if len(self.authenticator) != AUTHENTICATOR_LENGTH:
            raise EncodeError("Authenticator must be 16 bytes")
        self.attributes = attributes or []

    @classmethod
    def access_request(cls, identifier: int | None = None) -> "RADIUSPacket":
        """New Access-Request with a random identifier and Request Authenticator."""
        if identifier is None:
            identifier = secrets.randbelow(256)
        return cls(RADIUS_ACCESS_REQUEST, identifier)

    @property
    def code_name(self) -> str:
        return CODE_NAMES.get(self.code, f"Code-{self.code}")

    @property
    def vsa_attributes(self) -> list[VendorSpecificAttribute]:
        """Parsed Vendor-Specific attributes; malformed ones are skipped."""
        vsas: list[VendorSpecificAttribute] = []
        for attr in self.attributes:
            if attr.attr_type != ATTR_VENDOR_SPECIFIC:
                continue
            try:
                vsas.extend(_unpack_vsas(attr.value))
            except DecodeError as exc:
                logger.debug(
                    "Failed to decode VSA attribute",
                    event="radius.vsa.decode_failed",
                    error=str(exc),
                )
        return vsas

    def pack(
        self, secret: bytes | None = None, request_auth: bytes | None = None
    ) -> bytes:
        """Pack RADIUS packet into bytes with proper authenticator calculation.

        Args:
            secret: Shared secret (hides User-Password in requests, signs replies)
            request_auth: Request authenticator when packing a reply

        Returns:
            Complete RADIUS packet as bytes

        Raises:
            EncodeError: attribute or packet exceeds protocol limits
        """
        raw_attrs: list[bytes] = []
        for attr in self.attributes:
            if attr.attr_type == ATTR_MESSAGE_AUTHENTICATOR:
                # zeroed now, filled in once the rest of the packet is final
                raw_attrs.append(
                    RADIUSAttribute(ATTR_MESSAGE_AUTHENTICATOR, b"\x00" * 16).pack()
                )
            elif (
                attr.attr_type == ATTR_USER_PASSWORD
                and secret
                and self.code == RADIUS_ACCESS_REQUEST
            ):
                try:
                    hidden = encrypt_password_value(attr.value, secret, self.authenticator)
                except ValueError as exc:
                    raise EncodeError(str(exc)) from exc
                raw_attrs.append(RADIUSAttribute(ATTR_USER_PASSWORD, hidden).pack())
            else:
                raw_attrs.append(attr.pack())
        attrs_data = b"".join(raw_attrs)

        length = RADIUS_HEADER_LENGTH + len(attrs_data)
        if length > MAX_RADIUS_PACKET_LENGTH:
            raise EncodeError(f"Packet too large: {length} bytes")
        header = struct.pack("!BBH", self.code, self.identifier, length)
        is_reply = self.code != RADIUS_ACCESS_REQUEST and secret and request_auth
        packet = bytearray(
            header + (request_auth if is_reply else self.authenticator) + attrs_data
        )

        pos = message_authenticator_offset(bytes(packet))
        if secret and pos is not None and pos >= 0:
            packet[pos : pos + 16] = compute_message_authenticator(
                bytes(packet), secret
            )

        if is_reply:
            packet[4:RADIUS_HEADER_LENGTH] = compute_response_authenticator(
                bytes(packet), request_auth, secret
            )
        return bytes(packet)

    @classmethod
    def unpack(cls, data: bytes) -> "RADIUSPacket":
        """Unpack RADIUS packet from bytes (structure only, no authentication)."""
        if len(data) < RADIUS_HEADER_LENGTH:
            raise DecodeError(f"Packet too short: {len(data)} bytes")

        code, identifier, length = struct.unpack("!BBH", data[:4])

        if length > MAX_RADIUS_PACKET_LENGTH:
            raise DecodeError(f"Packet too large: {length} bytes")
        if length < RADIUS_HEADER_LENGTH:
            raise DecodeError(f"Invalid packet length: {length}")
        if len(data) < length:
            raise DecodeError(f"Incomplete packet: got {len(data)}, expected {length}")

        authenticator = data[4:RADIUS_HEADER_LENGTH]

        attributes = []
        offset = RADIUS_HEADER_LENGTH
        while offset < length:
            try:
                attr, consumed = RADIUSAttribute.unpack(data[offset:length])
            except DecodeError as e:
                logger.warning(
                    "Error parsing attribute at offset",
                    offset=offset,
                    error=str(e),
                    event="radius.packet.parse_failed",
                )
                raise DecodeError(f"Invalid attribute at offset {offset}: {e}") from e
            attributes.append(attr)
            offset += consumed

        return cls(code, identifier, authenticator, attributes)

    @classmethod
    def decode_response(
        cls, data: bytes, request_auth: bytes, secret: bytes
    ) -> "RADIUSPacket":
        """Parse a reply and authenticate it against the request.

        Raises:
            DecodeError: malformed packet, wrong Response Authenticator (forged
                reply or wrong shared secret) or bad Message-Authenticator.
        """
        packet = cls.unpack(data)
        if not verify_response_authenticator(data, request_auth, secret):
            raise DecodeError(
                "Response authenticator mismatch (wrong shared secret?)"
            )
        if not verify_message_authenticator(data, secret, request_auth):
            raise DecodeError("Message-Authenticator verification failed")
        return packet

    def add_attribute(self, attr_type: int, value: bytes) -> None:
        """Add attribute to packet"""
        self.attributes.append(RADIUSAttribute(attr_type, value))

    def add_vsa(self, vendor_id: int, vendor_type: int, vendor_data: bytes) -> None:
        """Add Vendor-Specific Attribute to packet."""
        vsa = VendorSpecificAttribute(vendor_id, vendor_type, vendor_data)
        self.attributes.append(RADIUSAttribute(ATTR_VENDOR_SPECIFIC, vsa.pack()))

    def add(self, name: str, value: Any) -> None:
        """Add an attribute by dictionary name, encoding ``value`` per its type.

        Raises:
            EncodeError: unknown attribute name or value of the wrong type
        """
        definition = dictionary.lookup(name)
        raw = dictionary.encode_value(definition, value)
        if definition.vendor_id is not None:
            self.add_vsa(definition.vendor_id, definition.attr_type, raw)
        else:
            self.add_attribute(definition.attr_type, raw)

    def add_message_authenticator(self) -> None:
        """Reserve a Message-Authenticator; its HMAC is computed in pack()."""
        if self.get_attribute(ATTR_MESSAGE_AUTHENTICATOR) is None:
            self.add_attribute(ATTR_MESSAGE_AUTHENTICATOR, b"\x00" * 16)

    def get_attribute(self, attr_type: int) -> RADIUSAttribute | None:
        """Get first attribute of given type"""
        for attr in self.attributes:
            if attr.attr_type == attr_type:
                return attr
        return None

    def get_attributes(self, attr_type: int) -> list[RADIUSAttribute]:
        return [attr for attr in self.attributes if attr.attr_type == attr_type]

    def get_string(self, attr_type: int) -> str | None:
        """Get string attribute value"""
        attr = self.get_attribute(attr_type)
        return attr.as_string() if attr else None

    def get_vsas(self, vendor_id: int | None = None) -> list[VendorSpecificAttribute]:
        """Get all VSAs, optionally filtered by vendor_id."""
        vsas = self.vsa_attributes
        if vendor_id is None:
            return vsas
        return [vsa for vsa in vsas if vsa.vendor_id == vendor_id]

    def get_vsa(self, vendor_id: int, vendor_type: int) -> bytes | None:
        for vsa in self.get_vsas(vendor_id):
            if vsa.vendor_type == vendor_type:
                return vsa.vendor_data
        return None

    def decode_attributes(self) -> dict[str, list[Any]]:
        """Decoded attribute map keyed by dictionary name.

        Every key maps to a list (attributes may repeat). Vendor attributes
        are collected under ``"Vendor-Specific"`` as dicts; a value that is
        not in vendor sub-attribute form is kept whole with ``type`` None.
        """
        decoded: dict[str, list[Any]] = {}
        for attr in self.attributes:
            if attr.attr_type == ATTR_MESSAGE_AUTHENTICATOR:
                continue
            if attr.attr_type == ATTR_VENDOR_SPECIFIC:
                decoded.setdefault("Vendor-Specific", []).extend(
                    _vendor_entries(attr.value)
                )
                continue
            definition = dictionary.by_type(attr.attr_type)
            name = definition.name if definition else f"Attr-{attr.attr_type}"
            decoded.setdefault(name, []).append(
                dictionary.decode_value(definition, attr.value)
            )
        return decoded

    def __str__(self) -> str:
        """String representation for debugging"""
        return (
            f"RADIUSPacket(code={self.code_name}, "
            f"id={self.identifier}, attrs={len(self.attributes)})"
        )
