"""Publish collected command definitions to Discord."""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog

from Switchboard.discord_schemas import CommandDefinition
from Switchboard.errors import DiscordAPIError
from Switchboard.rest import RestClient

log = structlog.get_logger()


class CommandRegistrar:
    """Overwrites the application's global or guild command set.

    Registration failures, including a failed application lookup, are logged
    and reported through the return value so a deploy script can decide
    whether to abort.
    """

    def __init__(
        self,
        rest: RestClient,
        definitions: Sequence[CommandDefinition],
        *,
        application_id: str | None = None,
    ) -> None:
        self.rest = rest
        self.definitions = list(definitions)
        self.application_id = application_id

    def payload(self) -> list[dict]:
        return [d.to_payload() for d in self.definitions]

    async def resolve_application_id(self) -> str:
        if self.application_id:
            return self.application_id
        app = await self.rest.get_current_application()
        self.application_id = str(app["id"])
        log.info(
            "registrar.application.fetched",
            application_id=self.application_id,
            name=app.get("name"),
            approximate_guild_count=app.get("approximate_guild_count"),
        )
        return self.application_id

    async def register_global(self) -> bool:
        log.info("registrar.global.started", commands=len(self.definitions))
        try:
            app_id = await self.resolve_application_id()
            await self.rest.put_global_commands(app_id, self.payload())
        except DiscordAPIError as err:
            log.error("registrar.global.failed", http_status_code=err.status_code, error=str(err))
            return False
        except httpx.RequestError as err:
            log.error("registrar.global.failed", error=str(err))
            return False
        log.info("registrar.global.completed", commands=len(self.definitions))
        return True

    async def register_guild(self, guild_id: str) -> bool:
        log.info("registrar.guild.started", guild_id=guild_id, commands=len(self.definitions))
        try:
            app_id = await self.resolve_application_id()
            await self.rest.put_guild_commands(app_id, guild_id, self.payload())
        except DiscordAPIError as err:
            log.error(
                "registrar.guild.failed",
                guild_id=guild_id,
                http_status_code=err.status_code,
                error=str(err),
            )
            return False
        except httpx.RequestError as err:
            log.error("registrar.guild.failed", guild_id=guild_id, error=str(err))
            return False
        log.info("registrar.guild.completed", guild_id=guild_id, commands=len(self.definitions))
        return True
