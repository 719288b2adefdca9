"""
MS-CHAPv2 (RFC 2759) peer implementation used inside RADIUS Access-Requests.
"""

from .crypto import challenge_hash, challenge_response, des_encrypt_block, nt_password_hash
from .mschapv2 import (
    build_mschap2_response,
    check_authenticator_response,
    generate_authenticator_response,
    generate_nt_response,
    new_challenge,
)

__all__ = [
    "nt_password_hash",
    "challenge_hash",
    "des_encrypt_block",
    "challenge_response",
    "new_challenge",
    "generate_nt_response",
    "build_mschap2_response",
    "generate_authenticator_response",
    "check_authenticator_response",
]
