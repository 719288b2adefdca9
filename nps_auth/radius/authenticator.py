import hashlib
import hmac
import struct
import warnings

from nps_auth.utils.logger import get_logger

from .constants import (
    ATTR_MESSAGE_AUTHENTICATOR,
    AUTHENTICATOR_LENGTH,
    MAX_RADIUS_PACKET_LENGTH,
    RADIUS_HEADER_LENGTH,
)

logger = get_logger("nps_auth.radius.authenticator", component="radius")

_ZERO_MAC = b"\x00" * 16


def _md5(data: bytes) -> bytes:
    # MD5 is mandated by RFC 2865 for authenticators; not a general-purpose hash.
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        return hashlib.md5(data, usedforsecurity=False).digest()


def encrypt_password_value(
    password: bytes, secret: bytes, authenticator: bytes
) -> bytes:
    """Hide User-Password per RFC 2865 §5.2 (MD5-based obfuscation)."""
    if len(authenticator) != AUTHENTICATOR_LENGTH:
        raise ValueError("authenticator must be 16 bytes")
    if len(password) > 128:
        raise ValueError("User-Password longer than 128 bytes")
    padded = password.ljust(max(16, -(-len(password) // 16) * 16), b"\x00")
    encrypted = b""
    prev = authenticator
    for i in range(0, len(padded), 16):
        digest = _md5(secret + prev)
        block = bytes(a ^ b for a, b in zip(padded[i : i + 16], digest))
        encrypted += block
        prev = block
    return encrypted


def compute_response_authenticator(
    packet: bytes, request_auth: bytes, secret: bytes
) -> bytes:
    """MD5(Code+ID+Length+RequestAuth+Attributes+Secret) (RFC 2865 §3)."""
    return _md5(packet[:4] + request_auth + packet[RADIUS_HEADER_LENGTH:] + secret)


def verify_response_authenticator(
    data: bytes, request_auth: bytes, secret: bytes
) -> bool:
    """Check the Response Authenticator of a reply to ``request_auth``."""
    if len(data) < RADIUS_HEADER_LENGTH:
        return False
    _code, _identifier, length = struct.unpack("!BBH", data[:4])
    if length < RADIUS_HEADER_LENGTH or length > len(data):
        return False
    packet = data[:length]
    expected = compute_response_authenticator(packet, request_auth, secret)
    return hmac.compare_digest(expected, packet[4:RADIUS_HEADER_LENGTH])


def message_authenticator_offset(packet: bytes) -> int | None:
    """Return the packet offset of the Message-Authenticator value, if any."""
    offset = RADIUS_HEADER_LENGTH
    while offset + 2 <= len(packet):
        atype = packet[offset]
        alen = packet[offset + 1]
        if alen < 2 or offset + alen > len(packet):
            return None
        if atype == ATTR_MESSAGE_AUTHENTICATOR:
            return offset + 2 if alen == 18 else -1
        offset += alen
    return None


def compute_message_authenticator(
    packet: bytes, secret: bytes, authenticator: bytes | None = None
) -> bytes:
    """HMAC-MD5 over ``packet`` with the Message-Authenticator zeroed.

    For replies RFC 3579 §3.2 substitutes the Request Authenticator for the
    packet's own authenticator; pass it as ``authenticator``.
    """
    mutable = bytearray(packet)
    if authenticator is not None:
        mutable[4:RADIUS_HEADER_LENGTH] = authenticator
    pos = message_authenticator_offset(packet)
    if pos is not None and pos >= 0:
        mutable[pos : pos + 16] = _ZERO_MAC
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        return hmac.new(secret, bytes(mutable), digestmod=hashlib.md5).digest()


def verify_message_authenticator(
    data: bytes, secret: bytes, request_auth: bytes | None = None
) -> bool:
    """
    Verify Message-Authenticator (Attr 80) (RFC 3579 §3.2).

    Returns True when the attribute is absent; a present attribute of the
    wrong length or with a bad HMAC fails.
    """
    if len(data) < RADIUS_HEADER_LENGTH:
        return False
    _code, _identifier, length = struct.unpack("!BBH", data[:4])
    if length > MAX_RADIUS_PACKET_LENGTH or length < RADIUS_HEADER_LENGTH:
        return False
    packet = data[:length]
    pos = message_authenticator_offset(packet)
    if pos is None:
        return True
    if pos < 0:
        logger.debug(
            "Message-Authenticator with invalid length",
            event="radius.message_authenticator.bad_length",
        )
        return False
    received = packet[pos : pos + 16]
    calc = compute_message_authenticator(packet, secret, request_auth)
    return hmac.compare_digest(calc, received)


__all__ = [
    "encrypt_password_value",
    "compute_response_authenticator",
    "verify_response_authenticator",
    "compute_message_authenticator",
    "verify_message_authenticator",
    "message_authenticator_offset",
]
