"""HTTP entry point: method/path/content-type checks, signature check, JSON decode."""

from __future__ import annotations

from functools import partial
from typing import Any

import nacl.exceptions
import nacl.signing
import orjson
import structlog

from Switchboard.adapter import HttpAdapter, HttpRequest, HttpResponse
from Switchboard.crypto import hex_to_bytes, verify_ed25519
from Switchboard.errors import MalformedHex
from Switchboard.metrics import inc_counter

log = structlog.get_logger()

SIGNATURE_HEADER = "x-signature-ed25519"
TIMESTAMP_HEADER = "x-signature-timestamp"
LIVENESS_TEXT = "Server is alive!"


def normalize_endpoint(endpoint: str) -> str:
    return endpoint if endpoint.startswith("/") else "/" + endpoint


class InteractionServer:
    """Receives and verifies interaction webhooks before handing them on.

    Subclasses override :meth:`handle_payload` to process the decoded body.
    Every rejection writes exactly one response and returns; nothing after a
    terminal write runs.
    """

    def __init__(self, public_key: str, adapter: HttpAdapter, debug: bool = False) -> None:
        if not public_key:
            raise ValueError("public_key must be provided")
        if adapter is None:
            raise ValueError("adapter must be provided")
        # Fail at startup rather than on every request
        try:
            nacl.signing.VerifyKey(hex_to_bytes(public_key))
        except nacl.exceptions.ValueError as err:
            raise ValueError(f"public_key is not an Ed25519 public key: {err}") from err
        self._public_key = public_key
        self.adapter = adapter
        self.debug = debug

    @property
    def public_key(self) -> str:
        return self._public_key

    def _debug(self, event: str, **kw: Any) -> None:
        if self.debug:
            log.debug(event, **kw)

    def _reject(self, status: int, reason: str, **kw: Any) -> None:
        inc_counter(f"gate.rejected.{status}")
        log.info("gate.rejected", http_status_code=status, reason=reason, **kw)

    async def handle_request(self, endpoint: str, req: HttpRequest, res: HttpResponse) -> None:
        inc_counter("gate.received")
        self._debug("gate.request.received", http_method=req.method, http_path=req.url)

        if req.method == "GET":
            res.write_head(200)
            res.end(LIVENESS_TEXT)
            return
        if req.method != "POST":
            self._reject(405, "method_not_allowed", http_method=req.method)
            res.write_head(405, {"Allow": "POST"})
            res.end()
            return

        # The URL must be the bare endpoint path; query strings are not tolerated.
        if req.url != endpoint:
            self._reject(404, "bad_endpoint", http_path=req.url)
            res.write_head(404, {"Content-Type": "text/plain"})
            res.end("Bad Endpoint")
            return

        if req.headers.get("content-type") != "application/json":
            self._reject(415, "unsupported_media_type")
            res.write_head(415)
            res.end()
            return

        self._debug("gate.body.reading")
        raw = await self.adapter.get_request_body(req)

        if not await self.verify_payload(req, raw):
            # No detail about why verification failed reaches the caller.
            self._reject(401, "bad_signature")
            res.write_head(401)
            res.end()
            return
        inc_counter("gate.verified")
        self._debug("gate.request.verified", body_len=len(raw))

        try:
            body = orjson.loads(raw)
        except orjson.JSONDecodeError:
            preview = raw[:200].decode("utf-8", errors="replace")
            log.error("gate.request.parse_error", raw_body_preview=preview)
            raise

        await self.handle_payload(body, res)

    async def verify_payload(self, req: HttpRequest, raw: bytes) -> bool:
        signature = req.headers.get(SIGNATURE_HEADER)
        timestamp = req.headers.get(TIMESTAMP_HEADER)
        try:
            return verify_ed25519(self._public_key, timestamp, raw, signature)
        except MalformedHex:
            self._debug("gate.signature.malformed_hex")
            return False

    async def handle_payload(self, payload: Any, res: HttpResponse) -> None:
        raise NotImplementedError("handle_payload must be overridden")

    def get_handler(self, endpoint: str):
        """Return a request handler bound to ``endpoint`` for an adapter to call."""
        return partial(self.handle_request, normalize_endpoint(endpoint))

    async def listen(self, endpoint: str, *args: Any) -> Any:
        endpoint = normalize_endpoint(endpoint)
        result = self.adapter.listen(endpoint, self.get_handler(endpoint), *args)
        # Some adapters return an awaitable from listen, others a plain value
        if hasattr(result, "__await__"):
            return await result
        return result
