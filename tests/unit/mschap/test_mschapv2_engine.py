"""MS-CHAPv2 engine: NT-Response, response layout and authenticator response."""

import pytest

from nps_auth.mschap.mschapv2 import (
    MSCHAP2_RESPONSE_LENGTH,
    build_mschap2_response,
    check_authenticator_response,
    generate_authenticator_response,
    generate_nt_response,
    new_challenge,
)

RFC_USER = "User"
RFC_PASSWORD = "clientPass"
RFC_AUTH_CHALLENGE = bytes.fromhex("5B5D7C7D7B3F2F3E3C2C602132262628")
RFC_PEER_CHALLENGE = bytes.fromhex("21402324255E262A28295F2B3A337C7E")
RFC_NT_RESPONSE = bytes.fromhex("82309ECD8D708B5EA08FAA3981CD83544233114A3D85D6DF")
RFC_AUTHENTICATOR_RESPONSE = "S=407A5589115FD0D6209F510FE9C04566932CDA56"


def test_rfc_nt_response():
    assert (
        generate_nt_response(
            RFC_AUTH_CHALLENGE, RFC_PEER_CHALLENGE, RFC_USER, RFC_PASSWORD
        )
        == RFC_NT_RESPONSE
    )


def test_golden_zero_challenges():
    zero = bytes(16)
    nt_response = generate_nt_response(zero, zero, "testuser", "testpass")
    assert nt_response.hex() == "c859a07b87c3522d4f249ee9034b9796da3d61a7ca758917"


def test_nt_response_is_deterministic():
    first = generate_nt_response(RFC_AUTH_CHALLENGE, RFC_PEER_CHALLENGE, "u", "p")
    second = generate_nt_response(RFC_AUTH_CHALLENGE, RFC_PEER_CHALLENGE, "u", "p")
    assert first == second


def test_peapuser_vector():
    auth = bytes.fromhex("59ff644c1462df4d59a4465d6bc8096c")
    peer = bytes.fromhex("0d605a24da8d6ef758ee23698f370446")
    nt_response = generate_nt_response(auth, peer, "peapuser", "password")
    assert nt_response.hex() == "d8f7d610a61f0c0b491d21acbbd36d86b9916f8e69a65f97"
    expected = "S=" + "0f91697e8e8fd6b725f33c30d81d67a747fcba01".upper()
    assert (
        generate_authenticator_response("password", nt_response, peer, auth, "peapuser")
        == expected
    )


def test_new_challenge_is_random_16_bytes():
    a, b = new_challenge(), new_challenge()
    assert len(a) == 16 and len(b) == 16
    assert a != b


class TestResponseLayout:
    def test_fixed_layout(self):
        value = build_mschap2_response(RFC_PEER_CHALLENGE, RFC_NT_RESPONSE, ident=0x42)
        assert len(value) == MSCHAP2_RESPONSE_LENGTH == 50
        assert value[0] == 0x42
        assert value[1] == 0
        assert value[2:18] == RFC_PEER_CHALLENGE
        assert value[18:26] == bytes(8)
        assert value[26:50] == RFC_NT_RESPONSE

    def test_random_ident(self):
        idents = {
            build_mschap2_response(RFC_PEER_CHALLENGE, RFC_NT_RESPONSE)[0]
            for _ in range(64)
        }
        assert len(idents) > 1

    def test_rejects_bad_lengths(self):
        with pytest.raises(ValueError):
            build_mschap2_response(bytes(15), RFC_NT_RESPONSE)
        with pytest.raises(ValueError):
            build_mschap2_response(RFC_PEER_CHALLENGE, bytes(23))

    def test_rejects_out_of_range_ident(self):
        with pytest.raises(ValueError):
            build_mschap2_response(RFC_PEER_CHALLENGE, RFC_NT_RESPONSE, ident=256)


class TestAuthenticatorResponse:
    def test_rfc_vector(self):
        assert (
            generate_authenticator_response(
                RFC_PASSWORD,
                RFC_NT_RESPONSE,
                RFC_PEER_CHALLENGE,
                RFC_AUTH_CHALLENGE,
                RFC_USER,
            )
            == RFC_AUTHENTICATOR_RESPONSE
        )

    def _check(self, received, password=RFC_PASSWORD):
        return check_authenticator_response(
            received,
            password,
            RFC_NT_RESPONSE,
            RFC_PEER_CHALLENGE,
            RFC_AUTH_CHALLENGE,
            RFC_USER,
        )

    def test_accepts_string(self):
        assert self._check(RFC_AUTHENTICATOR_RESPONSE)

    def test_accepts_ms_chap2_success_value_with_ident(self):
        assert self._check(b"\x07" + RFC_AUTHENTICATOR_RESPONSE.encode())

    def test_accepts_lowercase_hex(self):
        assert self._check("S=" + RFC_AUTHENTICATOR_RESPONSE[2:].lower())

    def test_accepts_trailing_message(self):
        assert self._check(RFC_AUTHENTICATOR_RESPONSE + " M=Access granted")

    def test_rejects_wrong_password(self):
        assert not self._check(RFC_AUTHENTICATOR_RESPONSE, password="wrong")

    def test_rejects_garbage(self):
        assert not self._check(b"\x00" * 43)
        assert not self._check("")
