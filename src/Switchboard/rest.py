"""Thin async client for the Discord HTTP API.

Handlers receive an instance of this client untouched; the dispatcher never
calls it. The response capability uses it for follow-ups and for callbacks
sent after the HTTP response has already been written.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson
import structlog

from Switchboard.errors import DiscordAPIError

__all__ = ["DEFAULT_API_BASE", "RestClient"]

DEFAULT_API_BASE = "https://discord.com/api/v10"

log = structlog.get_logger()


class RestClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Injected transport lets tests and adapters route calls without a network
        self._transport = transport

    def set_token(self, token: str) -> None:
        self._token = token

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if auth:
            if not self._token:
                raise RuntimeError("A bot token is required for authenticated requests")
            headers["Authorization"] = f"Bot {self._token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        auth: bool = True,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        content = orjson.dumps(body) if body is not None else None
        log.debug("discord.rest.request", http_method=method, path=path, auth=auth)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                r = await client.request(
                    method, url, content=content, headers=self._headers(auth), params=params
                )
            except httpx.RequestError as e:
                log.error(
                    "discord.rest.network_error",
                    http_method=method,
                    path=path,
                    error=str(e),
                )
                raise
        if r.status_code >= 400:
            log.error(
                "discord.rest.http_error",
                http_method=method,
                path=path,
                http_status_code=r.status_code,
                text_preview=(r.text or "")[:200],
            )
            raise DiscordAPIError(method, path, r.status_code, r.text)
        log.debug("discord.rest.response", http_method=method, path=path, http_status_code=r.status_code)
        if r.status_code == 204 or not r.content:
            return None
        return orjson.loads(r.content)

    # --- Applications ---
    async def get_current_application(self) -> dict[str, Any]:
        return await self.request("GET", "/applications/@me")

    async def put_global_commands(
        self, application_id: str, commands: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return await self.request("PUT", f"/applications/{application_id}/commands", body=commands)

    async def put_guild_commands(
        self, application_id: str, guild_id: str, commands: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return await self.request(
            "PUT", f"/applications/{application_id}/guilds/{guild_id}/commands", body=commands
        )

    # --- Interaction callbacks and webhooks (token-authenticated) ---
    async def create_interaction_response(
        self,
        interaction_id: str,
        token: str,
        body: dict[str, Any],
        *,
        with_response: bool = False,
    ) -> dict[str, Any] | None:
        return await self.request(
            "POST",
            f"/interactions/{interaction_id}/{token}/callback",
            body=body,
            auth=False,
            params={"with_response": "true" if with_response else "false"},
        )

    async def create_followup(
        self, application_id: str, token: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.request(
            "POST", f"/webhooks/{application_id}/{token}", body=body, auth=False
        )

    async def edit_original_response(
        self, application_id: str, token: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.request(
            "PATCH", f"/webhooks/{application_id}/{token}/messages/@original", body=body, auth=False
        )

    async def delete_original_response(self, application_id: str, token: str) -> None:
        await self.request(
            "DELETE", f"/webhooks/{application_id}/{token}/messages/@original", auth=False
        )
