"""Transport contracts the interaction server consumes.

An adapter owns the listen loop and hands the server one request/response
pair per HTTP exchange. The server never opens sockets itself.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol


class HttpRequest(Protocol):
    method: str
    url: str
    headers: Mapping[str, str]


class HttpResponse(Protocol):
    @property
    def headers_sent(self) -> bool: ...

    def write_head(self, status: int, headers: Mapping[str, str] | None = None) -> None: ...

    def end(self, body: str | bytes | None = None) -> None: ...


RequestHandler = Callable[[HttpRequest, HttpResponse], Awaitable[None]]


class HttpAdapter(Protocol):
    def listen(self, endpoint: str, handler: RequestHandler, *args: Any) -> Any: ...

    async def get_request_body(self, req: HttpRequest) -> bytes: ...
