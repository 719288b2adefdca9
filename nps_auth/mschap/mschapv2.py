"""MS-CHAPv2 peer-side engine (RFC 2759) for RADIUS (RFC 2548).

Builds the values a RADIUS client places in the Microsoft vendor attributes
MS-CHAP-Challenge and MS-CHAP2-Response, and checks the authenticator
response NPS returns in MS-CHAP2-Success.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from .crypto import (
    CHALLENGE_LENGTH,
    NT_RESPONSE_LENGTH,
    challenge_hash,
    challenge_response,
    hash_nt_password_hash,
    nt_password_hash,
)

MSCHAP2_RESPONSE_LENGTH = 50
_RESERVED = b"\x00" * 8

# RFC 2759 §8.7
_MAGIC1 = b"Magic server to client signing constant"
_MAGIC2 = b"Pad to make it do more than one iteration"


def new_challenge() -> bytes:
    """Return a fresh 16-byte challenge from the OS CSPRNG."""
    return secrets.token_bytes(CHALLENGE_LENGTH)


def generate_nt_response(
    auth_challenge: bytes, peer_challenge: bytes, username: str, password: str
) -> bytes:
    """GenerateNTResponse (RFC 2759 §8.1). Deterministic for fixed inputs."""
    challenge = challenge_hash(peer_challenge, auth_challenge, username)
    return challenge_response(challenge, nt_password_hash(password))


def build_mschap2_response(
    peer_challenge: bytes,
    nt_response: bytes,
    ident: int | None = None,
    flags: int = 0,
) -> bytes:
    """Assemble the 50-byte MS-CHAP2-Response value (RFC 2548 §2.3.2).

    Layout: Ident(1) Flags(1) Peer-Challenge(16) Reserved(8) Response(24).
    """
    if len(peer_challenge) != CHALLENGE_LENGTH:
        raise ValueError(f"peer_challenge must be {CHALLENGE_LENGTH} bytes")
    if len(nt_response) != NT_RESPONSE_LENGTH:
        raise ValueError(f"nt_response must be {NT_RESPONSE_LENGTH} bytes")
    if ident is None:
        ident = secrets.randbelow(256)
    if not 0 <= ident <= 255 or not 0 <= flags <= 255:
        raise ValueError("ident and flags must fit in one byte")
    return bytes([ident, flags]) + peer_challenge + _RESERVED + nt_response


def generate_authenticator_response(
    password: str,
    nt_response: bytes,
    peer_challenge: bytes,
    auth_challenge: bytes,
    username: str,
) -> str:
    """GenerateAuthenticatorResponse (RFC 2759 §8.7), e.g. ``S=407A...``."""
    password_hash_hash = hash_nt_password_hash(nt_password_hash(password))
    digest = hashlib.sha1(
        password_hash_hash + nt_response + _MAGIC1, usedforsecurity=False
    ).digest()
    challenge = challenge_hash(peer_challenge, auth_challenge, username)
    digest = hashlib.sha1(
        digest + challenge + _MAGIC2, usedforsecurity=False
    ).digest()
    return "S=" + digest.hex().upper()


def check_authenticator_response(
    received: bytes | str,
    password: str,
    nt_response: bytes,
    peer_challenge: bytes,
    auth_challenge: bytes,
    username: str,
) -> bool:
    """Verify the server's proof of password knowledge.

    ``received`` may be the raw MS-CHAP2-Success value (Ident byte followed
    by ``S=<40 hex>``) or just the ``S=...`` string.
    """
    if isinstance(received, str):
        received = received.encode("utf-8")
    if received[1:3] == b"S=":
        received = received[1:]
    expected = generate_authenticator_response(
        password, nt_response, peer_challenge, auth_challenge, username
    )
    return hmac.compare_digest(received[:42].upper(), expected.encode("ascii"))


__all__ = [
    "MSCHAP2_RESPONSE_LENGTH",
    "new_challenge",
    "generate_nt_response",
    "build_mschap2_response",
    "generate_authenticator_response",
    "check_authenticator_response",
]
