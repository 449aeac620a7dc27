import nacl.encoding
import nacl.signing
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from Switchboard.crypto import hex_to_bytes, verify_ed25519
from Switchboard.errors import MalformedHex

_KEY = nacl.signing.SigningKey(b"\x01" * 32)
_PUB = _KEY.verify_key.encode(encoder=nacl.encoding.HexEncoder).decode()


def _sig(ts: str, body: bytes) -> str:
    return _KEY.sign(ts.encode() + body).signature.hex()


def test_valid_signature_verifies():
    body = b'{"type":1}'
    assert verify_ed25519(_PUB, "1700000000", body, _sig("1700000000", body))


def test_timestamp_is_part_of_the_message():
    body = b'{"type":1}'
    sig = _sig("1700000000", body)
    assert not verify_ed25519(_PUB, "1700000001", body, sig)


@pytest.mark.parametrize("sig,ts", [(None, "1"), ("", "1"), ("ab" * 64, None), ("ab" * 64, ""), (123, "1")])
def test_missing_or_non_string_headers_fail(sig, ts):
    assert verify_ed25519(_PUB, ts, b"{}", sig) is False


def test_wrong_length_signature_fails_without_raising():
    assert verify_ed25519(_PUB, "1", b"{}", "ab" * 10) is False


def test_odd_length_hex_raises():
    with pytest.raises(MalformedHex):
        verify_ed25519(_PUB, "1", b"{}", "abc")


def test_non_hex_characters_raise():
    with pytest.raises(MalformedHex):
        hex_to_bytes("zz")


def test_hex_to_bytes_decodes():
    assert hex_to_bytes("00ff10") == b"\x00\xff\x10"
    # MalformedHex stays catchable as a ValueError
    with pytest.raises(ValueError):
        hex_to_bytes("0")


@settings(max_examples=50, deadline=None)
@given(body=st.binary(min_size=1, max_size=256), data=st.data())
def test_single_byte_flip_in_body_fails(body: bytes, data):
    ts = "1700000000"
    sig = _sig(ts, body)
    assert verify_ed25519(_PUB, ts, body, sig)

    index = data.draw(st.integers(min_value=0, max_value=len(body) - 1))
    tampered = bytearray(body)
    tampered[index] ^= 0x01
    assert not verify_ed25519(_PUB, ts, bytes(tampered), sig)


@settings(max_examples=50, deadline=None)
@given(index=st.integers(min_value=0, max_value=63))
def test_single_byte_flip_in_signature_fails(index: int):
    ts = "1700000000"
    body = b'{"type":2}'
    raw = bytearray(bytes.fromhex(_sig(ts, body)))
    raw[index] ^= 0x80
    assert not verify_ed25519(_PUB, ts, body, raw.hex())
