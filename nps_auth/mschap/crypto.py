"""Legacy cryptographic primitives for MS-CHAPv2 (RFC 2759).

MD4 and single DES are obsolete. They are used here only because the
MS-CHAPv2 exchange with NPS is defined in terms of them; nothing else in
the package should import from this module.

Inputs of the wrong length are programming errors and raise ValueError.
"""

from __future__ import annotations

import hashlib

from Crypto.Hash import MD4
from cryptography.hazmat.primitives.ciphers import Cipher, modes

try:
    from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
except ImportError:  # cryptography < 43
    from cryptography.hazmat.primitives.ciphers.algorithms import TripleDES

NT_HASH_LENGTH = 16
CHALLENGE_LENGTH = 16
CHALLENGE_HASH_LENGTH = 8
NT_RESPONSE_LENGTH = 24
DES_KEY_MATERIAL_LENGTH = 7
DES_BLOCK_LENGTH = 8


def _require_length(name: str, value: bytes, expected: int) -> None:
    if len(value) != expected:
        raise ValueError(f"{name} must be {expected} bytes, got {len(value)}")


def nt_password_hash(password: str) -> bytes:
    """NtPasswordHash (RFC 2759 §8.3): MD4 over the UTF-16LE password."""
    return MD4.new(password.encode("utf-16-le")).digest()


def hash_nt_password_hash(password_hash: bytes) -> bytes:
    """HashNtPasswordHash (RFC 2759 §8.4): MD4 of the NT hash."""
    _require_length("password_hash", password_hash, NT_HASH_LENGTH)
    return MD4.new(password_hash).digest()


def challenge_hash(
    peer_challenge: bytes, auth_challenge: bytes, username: str
) -> bytes:
    """ChallengeHash (RFC 2759 §8.2).

    First 8 bytes of SHA-1(PeerChallenge + AuthenticatorChallenge + UserName).
    """
    _require_length("peer_challenge", peer_challenge, CHALLENGE_LENGTH)
    _require_length("auth_challenge", auth_challenge, CHALLENGE_LENGTH)
    digest = hashlib.sha1(
        peer_challenge + auth_challenge + username.encode("utf-8"),
        usedforsecurity=False,
    ).digest()
    return digest[:CHALLENGE_HASH_LENGTH]


def _odd_parity(seven_bits: int) -> int:
    """Shift 7 key bits into the high bits and set the low bit to odd parity."""
    byte = (seven_bits & 0x7F) << 1
    ones = bin(byte).count("1")
    return byte | (0 if ones % 2 else 1)


def expand_des_key(key7: bytes) -> bytes:
    """Spread 56 key bits over 8 bytes, 7 per byte, adding DES parity bits."""
    _require_length("key", key7, DES_KEY_MATERIAL_LENGTH)
    material = int.from_bytes(key7, "big")
    return bytes(
        _odd_parity(material >> (7 * (7 - i))) for i in range(DES_BLOCK_LENGTH)
    )


def des_encrypt_block(key7: bytes, data: bytes) -> bytes:
    """DesEncrypt (RFC 2759 §8.6): one DES-ECB block, no padding."""
    _require_length("data", data, DES_BLOCK_LENGTH)
    # An 8-byte TripleDES key is K1=K2=K3, which is plain single DES.
    encryptor = Cipher(TripleDES(expand_des_key(key7)), modes.ECB()).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def challenge_response(challenge: bytes, password_hash: bytes) -> bytes:
    """ChallengeResponse (RFC 2759 §8.5): three DES blocks over the challenge."""
    _require_length("challenge", challenge, CHALLENGE_HASH_LENGTH)
    _require_length("password_hash", password_hash, NT_HASH_LENGTH)
    z_password_hash = password_hash.ljust(21, b"\x00")
    return b"".join(
        des_encrypt_block(z_password_hash[i : i + DES_KEY_MATERIAL_LENGTH], challenge)
        for i in range(0, 21, DES_KEY_MATERIAL_LENGTH)
    )


__all__ = [
    "nt_password_hash",
    "hash_nt_password_hash",
    "challenge_hash",
    "expand_des_key",
    "des_encrypt_block",
    "challenge_response",
]
