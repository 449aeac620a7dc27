"""Client: the interaction server wired to a router and dispatcher."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import orjson
import structlog

from Switchboard.adapter import HttpAdapter, HttpResponse
from Switchboard.autocomplete import AutoCompleteKeyBuilder
from Switchboard.config import Settings
from Switchboard.discord_schemas import CommandDefinition, InteractionType, PongResponse
from Switchboard.dispatcher import Dispatcher
from Switchboard.errors import RouteTableFrozen
from Switchboard.registrar import CommandRegistrar
from Switchboard.rest import RestClient
from Switchboard.routing import (
    Handler,
    InteractionRouter,
    InteractionRouterCollector,
    ensure_handlers,
    flatten_routers,
)
from Switchboard.server import InteractionServer

log = structlog.get_logger()


class Client(InteractionServer):
    """Receives interactions and routes them to registered handlers.

    Example::

        client = Client(public_key=PUBLIC_KEY, adapter=FastAPIAdapter(), token=TOKEN)
        client.middleware(log_everything)
        client.command({"name": "ping", "description": "Replies with pong"}, ping)
        client.register(admin_routes, music_routes)
        app = await client.listen("/interactions")

    Routes are merged into one table in the order they are registered. The
    table is frozen on :meth:`listen` (or on the first request), after which
    any further registration raises RouteTableFrozen.
    """

    def __init__(
        self,
        *,
        public_key: str,
        adapter: HttpAdapter,
        token: str | None = None,
        debug: bool = False,
        rest: RestClient | None = None,
        application_id: str | None = None,
    ) -> None:
        super().__init__(public_key, adapter, debug)
        self.rest = rest if rest is not None else RestClient(token)
        self.application_id = application_id
        self._root = InteractionRouter()
        self._middlewares: list[Handler] = []
        self._unknown: list[Handler] = []
        self._dispatcher: Dispatcher | None = None

    @classmethod
    def from_settings(cls, settings: Settings, adapter: HttpAdapter) -> Client:
        token = settings.discord_bot_token.get_secret_value() if settings.discord_bot_token else None
        rest = RestClient(
            token,
            base_url=settings.discord_api_base_url,
            timeout=settings.rest_timeout_seconds,
        )
        return cls(
            public_key=settings.discord_public_key,
            adapter=adapter,
            debug=settings.debug,
            rest=rest,
            application_id=settings.discord_app_id,
        )

    # --- Wiring ---
    def _ensure_open(self) -> None:
        if self._dispatcher is not None:
            raise RouteTableFrozen()

    @property
    def frozen(self) -> bool:
        return self._dispatcher is not None

    @property
    def command_definitions(self) -> list[CommandDefinition]:
        return list(self._root.command_definitions)

    def register(self, *routes: InteractionRouter | InteractionRouterCollector) -> None:
        """Merge routers (or collectors of routers) into the client's route table."""
        self._ensure_open()
        for router in flatten_routers(routes):
            self._root.routes.merge(router.routes, router.middlewares)
            self._root.command_definitions.extend(router.command_definitions)
            log.debug("client.router.registered", routes=len(router.routes))

    def middleware(self, *fns: Handler) -> None:
        """Register global middleware that runs ahead of every routed handler."""
        self._ensure_open()
        self._middlewares.extend(ensure_handlers(fns))

    def unknown(self, *fns: Handler) -> None:
        """Register handlers for interactions the router does not classify."""
        self._ensure_open()
        self._unknown.extend(ensure_handlers(fns))

    def command(
        self, definition: CommandDefinition | Mapping[str, Any], *fns: Handler
    ) -> AutoCompleteKeyBuilder:
        self._ensure_open()
        return self._root.command(definition, *fns)

    def button(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.button(custom_id, *fns)

    def modal(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.modal(custom_id, *fns)

    def string_select(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.string_select(custom_id, *fns)

    def user_select(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.user_select(custom_id, *fns)

    def role_select(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.role_select(custom_id, *fns)

    def mentionable_select(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.mentionable_select(custom_id, *fns)

    def channel_select(self, custom_id: str, *fns: Handler) -> None:
        self._ensure_open()
        self._root.channel_select(custom_id, *fns)

    def user_context_menu(self, name_or_definition: Any, *fns: Handler) -> None:
        self._ensure_open()
        self._root.user_context_menu(name_or_definition, *fns)

    def message_context_menu(self, name_or_definition: Any, *fns: Handler) -> None:
        self._ensure_open()
        self._root.message_context_menu(name_or_definition, *fns)

    def autocomplete(self, key: AutoCompleteKeyBuilder, *fns: Handler) -> None:
        self._ensure_open()
        self._root.autocomplete(key, *fns)

    # --- Serving ---
    def build(self) -> Dispatcher:
        """Freeze the route table and return the dispatcher serving it."""
        if self._dispatcher is None:
            self._dispatcher = Dispatcher(
                self._root.routes.freeze(),
                global_middleware=self._middlewares,
                unknown_handlers=self._unknown,
                client=self.rest,
                debug=self.debug,
            )
            log.info(
                "client.routes.frozen",
                routes=len(self._root.routes),
                global_middleware=len(self._middlewares),
                unknown_handlers=len(self._unknown),
            )
        return self._dispatcher

    async def handle_payload(self, payload: Any, res: HttpResponse) -> None:
        if isinstance(payload, Mapping) and payload.get("type") == InteractionType.PING:
            self._debug("client.ping.received")
            res.write_head(200, {"Content-Type": "application/json"})
            res.end(orjson.dumps(PongResponse(type=1).model_dump()))
            return
        await self.build().dispatch(payload, res)

    async def listen(self, endpoint: str, *args: Any) -> Any:
        self.build()
        return await super().listen(endpoint, *args)

    def get_registrar(self) -> CommandRegistrar:
        return CommandRegistrar(
            self.rest, self.command_definitions, application_id=self.application_id
        )
