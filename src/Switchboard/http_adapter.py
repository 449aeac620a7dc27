"""FastAPI transport adapter.

Each request runs the interaction server in its own task. The HTTP response is
returned as soon as a handler ends it, while the rest of the chain keeps
running in the background, so a handler can acknowledge within Discord's
three-second window and then carry on with slower work.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from structlog.contextvars import bound_contextvars

from Switchboard.adapter import HttpRequest, RequestHandler
from Switchboard.errors import HeadersSent

log = structlog.get_logger()

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@dataclass
class AdapterRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    raw: Request

    @classmethod
    def from_starlette(cls, request: Request) -> AdapterRequest:
        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
        return cls(method=request.method, url=url, headers=request.headers, raw=request)


class ResponseSink:
    """Collects one status/headers/body triple and signals when it is complete."""

    def __init__(self) -> None:
        self.status_code: int | None = None
        self.headers: dict[str, str] = {}
        self.body = b""
        self._finished = asyncio.Event()

    @property
    def headers_sent(self) -> bool:
        return self.status_code is not None

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def write_head(self, status: int, headers: Mapping[str, str] | None = None) -> None:
        if self.status_code is not None:
            raise HeadersSent()
        self.status_code = status
        self.headers = dict(headers or {})

    def end(self, body: str | bytes | None = None) -> None:
        if self._finished.is_set():
            raise HeadersSent()
        if self.status_code is None:
            self.status_code = 200
        if body is not None:
            self.body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self._finished.set()

    async def wait(self) -> None:
        await self._finished.wait()

    def to_response(self) -> Response:
        return Response(
            content=self.body,
            status_code=self.status_code or 500,
            headers=self.headers,
        )


class FastAPIAdapter:
    def __init__(self, app: FastAPI | None = None) -> None:
        self.app = app
        self._background: set[asyncio.Task] = set()

    async def get_request_body(self, req: HttpRequest) -> bytes:
        return await req.raw.body()  # type: ignore[attr-defined]

    def listen(self, endpoint: str, handler: RequestHandler, app: FastAPI | None = None) -> FastAPI:
        """Mount ``handler`` on a catch-all route and return the FastAPI app.

        Path matching is left to the handler so that wrong paths get its own
        404 rather than the framework's.
        """
        target = app or self.app or FastAPI(title="Switchboard")
        self.app = target

        async def interactions(request: Request) -> Response:
            return await self.serve(handler, request)

        target.add_api_route("/{full_path:path}", interactions, methods=ALL_METHODS)
        log.info("adapter.listening", endpoint=endpoint)
        return target

    async def serve(self, handler: RequestHandler, request: Request) -> Response:
        req = AdapterRequest.from_starlette(request)
        sink = ResponseSink()
        start = time.perf_counter()
        with bound_contextvars(request_id=str(uuid.uuid4())):
            task = asyncio.create_task(handler(req, sink))
            waiter = asyncio.create_task(sink.wait())
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)

            if not sink.finished:
                waiter.cancel()
                # Raises the handler's error, if any, for the framework to turn into a 500
                task.result()
                raise RuntimeError("request handler returned without writing a response")

            if task.done():
                self._report(task)
            else:
                self._background.add(task)
                task.add_done_callback(self._report)

            log.info(
                "http.request.completed",
                http_path=request.url.path,
                http_method=request.method,
                http_status_code=sink.status_code,
                duration_ms=int((time.perf_counter() - start) * 1000),
            )
        return sink.to_response()

    def _report(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            # The response is already out; the error can only be logged.
            log.error("adapter.handler.failed_after_response", exc_info=err)
