"""Ed25519 verification of Discord interaction webhooks."""

from __future__ import annotations

import nacl.exceptions
import nacl.signing

from Switchboard.errors import MalformedHex


def hex_to_bytes(value: str) -> bytes:
    if len(value) % 2 != 0:
        raise MalformedHex(value)
    try:
        return bytes.fromhex(value)
    except ValueError as err:
        raise MalformedHex(value) from err


def verify_ed25519(public_key: str, timestamp: object, body: bytes, signature: object) -> bool:
    """Return True when ``signature`` signs ``timestamp + body`` under ``public_key``.

    Absent or non-string signature/timestamp values count as a failed check.
    Odd-length hex raises MalformedHex.
    """
    if not signature or not timestamp:
        return False
    if not isinstance(signature, str) or not isinstance(timestamp, str):
        return False

    message = timestamp.encode("utf-8") + bytes(body)
    sig_bytes = hex_to_bytes(signature)
    key_bytes = hex_to_bytes(public_key)
    try:
        verify_key = nacl.signing.VerifyKey(key_bytes)
        verify_key.verify(message, sig_bytes)
    except (nacl.exceptions.BadSignatureError, ValueError):
        return False
    return True
