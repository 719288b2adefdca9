import hashlib
import struct

import pytest

from nps_auth.exceptions import EncodeError
from nps_auth.radius import dictionary
from nps_auth.radius.authenticator import (
    compute_response_authenticator,
    encrypt_password_value,
    verify_message_authenticator,
    verify_response_authenticator,
)
from nps_auth.radius.constants import VENDOR_MICROSOFT


class TestDictionary:
    def test_lookup_standard(self):
        definition = dictionary.lookup("NAS-Port-Type")
        assert definition.attr_type == 61
        assert definition.vendor_id is None

    def test_lookup_vendor(self):
        definition = dictionary.lookup("MS-CHAP2-Response")
        assert (definition.vendor_id, definition.attr_type) == (VENDOR_MICROSOFT, 25)
        assert dictionary.by_vendor_type(VENDOR_MICROSOFT, 11).name == "MS-CHAP-Challenge"

    def test_lookup_unknown(self):
        with pytest.raises(EncodeError):
            dictionary.lookup("Framed-Banana")

    @pytest.mark.parametrize(
        "name, value, expected",
        [
            ("User-Name", "zoë", "zoë".encode()),
            ("Service-Type", 2, struct.pack("!I", 2)),
            ("NAS-IP-Address", "192.0.2.10", bytes([192, 0, 2, 10])),
            ("State", b"\x00\x01", b"\x00\x01"),
        ],
    )
    def test_encode(self, name, value, expected):
        assert dictionary.encode_value(dictionary.lookup(name), value) == expected

    @pytest.mark.parametrize(
        "name, value",
        [
            ("Service-Type", True),
            ("Service-Type", -1),
            ("NAS-IP-Address", "not-an-ip"),
            ("State", "text"),
            ("User-Name", 12),
        ],
    )
    def test_encode_rejects(self, name, value):
        with pytest.raises(EncodeError):
            dictionary.encode_value(dictionary.lookup(name), value)

    def test_decode_integer_and_ip(self):
        assert dictionary.decode_value(dictionary.by_type(27), struct.pack("!I", 60)) == 60
        assert dictionary.decode_value(dictionary.by_type(4), bytes([10, 0, 0, 1])) == "10.0.0.1"

    def test_malformed_integer_stays_bytes(self):
        assert dictionary.decode_value(dictionary.by_type(27), b"\x01") == b"\x01"


class TestPasswordHiding:
    AUTH = bytes(range(16))

    @pytest.mark.parametrize("length, hidden", [(0, 16), (1, 16), (16, 16), (17, 32), (128, 128)])
    def test_padding(self, length, hidden):
        assert len(encrypt_password_value(b"p" * length, b"s", self.AUTH)) == hidden

    def test_chaining(self):
        secret = b"secret"
        password = b"a-very-long-password-over-16"
        hidden = encrypt_password_value(password, secret, self.AUTH)
        b1 = hashlib.md5(secret + self.AUTH).digest()
        b2 = hashlib.md5(secret + hidden[:16]).digest()
        clear = bytes(a ^ b for a, b in zip(hidden, b1 + b2))
        assert clear == password.ljust(32, b"\x00")

    def test_limits(self):
        with pytest.raises(ValueError):
            encrypt_password_value(b"p" * 129, b"s", self.AUTH)
        with pytest.raises(ValueError):
            encrypt_password_value(b"p", b"s", b"short")


class TestResponseAuthenticator:
    def test_roundtrip(self):
        request_auth = b"\xaa" * 16
        body = struct.pack("!BBH", 3, 9, 20) + bytes(16)
        auth = compute_response_authenticator(body, request_auth, b"k")
        reply = body[:4] + auth
        assert verify_response_authenticator(reply, request_auth, b"k")
        assert not verify_response_authenticator(reply, request_auth, b"other")
        assert not verify_response_authenticator(reply, b"\xbb" * 16, b"k")

    def test_short_or_inconsistent_packets(self):
        assert not verify_response_authenticator(b"\x02\x01", bytes(16), b"k")
        bad_len = struct.pack("!BBH", 2, 1, 64) + bytes(16)
        assert not verify_response_authenticator(bad_len, bytes(16), b"k")

    def test_message_authenticator_absent_is_ok(self):
        packet = struct.pack("!BBH", 2, 1, 20) + bytes(16)
        assert verify_message_authenticator(packet, b"k", bytes(16))

    def test_message_authenticator_wrong_length_fails(self):
        attrs = bytes([80, 10]) + bytes(8)
        packet = struct.pack("!BBH", 2, 1, 20 + len(attrs)) + bytes(16) + attrs
        assert not verify_message_authenticator(packet, b"k", bytes(16))
