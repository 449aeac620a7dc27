# tests/conftest.py

import time

import nacl.encoding
import nacl.signing
import orjson
import pytest

from helpers import FakeRequest

from Switchboard.http_adapter import ResponseSink
from Switchboard.metrics import reset_counters


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def signing_key():
    return nacl.signing.SigningKey.generate()


@pytest.fixture
def public_key(signing_key):
    return signing_key.verify_key.encode(encoder=nacl.encoding.HexEncoder).decode()


@pytest.fixture
def sign(signing_key):
    """Return headers that validly sign ``body`` for the fixture key."""

    def _sign(body: bytes, timestamp: str | None = None) -> dict[str, str]:
        ts = timestamp or str(int(time.time()))
        sig = signing_key.sign(ts.encode() + body).signature.hex()
        return {
            "content-type": "application/json",
            "x-signature-ed25519": sig,
            "x-signature-timestamp": ts,
        }

    return _sign


@pytest.fixture
def signed_post(sign):
    """Build a signed POST FakeRequest for a JSON payload."""

    def _build(payload, url: str = "/interactions") -> FakeRequest:
        body = payload if isinstance(payload, bytes) else orjson.dumps(payload)
        return FakeRequest("POST", url, sign(body), body)

    return _build


@pytest.fixture
def sink():
    return ResponseSink()
