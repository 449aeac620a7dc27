"""Route tables and the routers that populate them.

Routes are keyed by ``(kind, key)``: the kind is the closed classification of
an interaction and the key is the command name, component custom id, or
resolved autocomplete path. Each route holds an ordered list of handlers;
registration order is execution order.

Routers are built independently per module, merged into one table in
registration order, and the result is frozen before any traffic is served.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping, Sequence
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog

from Switchboard.autocomplete import AutoCompleteKeyBuilder
from Switchboard.discord_schemas import ApplicationCommandType, CommandDefinition
from Switchboard.errors import (
    EmptyHandlerList,
    InvalidAutocompletePath,
    InvalidMiddleware,
    RouteTableFrozen,
)

if TYPE_CHECKING:
    from Switchboard.interactions import ResolvedInteraction

log = structlog.get_logger()


class RouteKind(str, Enum):
    COMMAND = "command"
    BUTTON = "button"
    MODAL = "modal"
    STRING_SELECT = "string_select"
    USER_SELECT = "user_select"
    ROLE_SELECT = "role_select"
    MENTIONABLE_SELECT = "mentionable_select"
    CHANNEL_SELECT = "channel_select"
    USER_CONTEXT_MENU = "user_context_menu"
    MESSAGE_CONTEXT_MENU = "message_context_menu"
    AUTOCOMPLETE = "autocomplete"
    UNKNOWN = "unknown"


ROUTABLE_KINDS: tuple[RouteKind, ...] = tuple(k for k in RouteKind if k is not RouteKind.UNKNOWN)

# Handlers receive (interaction, rest_client, flush) and may return HALT.
Handler = Callable[["ResolvedInteraction", Any, Callable[[], Any]], Awaitable[Any]]


def ensure_handlers(handlers: Iterable[Any]) -> list[Handler]:
    out = list(handlers)
    for fn in out:
        if not callable(fn):
            raise InvalidMiddleware(fn)
    return out


def _handler_name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


class RouteTable:
    """Mutable ``kind -> key -> [handler, ...]`` mapping used while wiring routes."""

    def __init__(self) -> None:
        self._routes: dict[RouteKind, dict[str, list[Handler]]] = {k: {} for k in ROUTABLE_KINDS}

    def register(self, kind: RouteKind | str, key: str, handlers: Sequence[Handler]) -> None:
        kind = RouteKind(kind)
        if kind is RouteKind.UNKNOWN:
            raise ValueError("unknown interactions are not routed by key")
        fns = ensure_handlers(handlers)
        if not fns:
            raise EmptyHandlerList(kind.value, key)
        self._routes[kind].setdefault(key, []).extend(fns)

    def merge(self, other: RouteTable, scoped_middleware: Sequence[Handler] = ()) -> None:
        """Append every route of ``other`` with ``scoped_middleware`` ahead of its handlers."""
        scoped = ensure_handlers(scoped_middleware)
        for kind, key, handlers in other.items():
            self._routes[kind].setdefault(key, []).extend([*scoped, *handlers])
            log.debug("routing.route.merged", kind=kind.value, key=key, handlers=len(handlers))

    def lookup(self, kind: RouteKind | str, key: str) -> list[Handler] | None:
        bucket = self._routes.get(RouteKind(kind), {}).get(key)
        return list(bucket) if bucket is not None else None

    def items(self) -> Iterator[tuple[RouteKind, str, list[Handler]]]:
        for kind, routes in self._routes.items():
            for key, handlers in routes.items():
                yield kind, key, list(handlers)

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def freeze(self) -> FrozenRouteTable:
        return FrozenRouteTable(self)


class FrozenRouteTable:
    """Read-only snapshot of a :class:`RouteTable`, safe to share across requests."""

    def __init__(self, table: RouteTable) -> None:
        routes: dict[RouteKind, dict[str, tuple[Handler, ...]]] = {k: {} for k in ROUTABLE_KINDS}
        for kind, key, handlers in table.items():
            routes[kind][key] = tuple(handlers)
        self._routes: Mapping[RouteKind, Mapping[str, tuple[Handler, ...]]] = MappingProxyType(
            {kind: MappingProxyType(bucket) for kind, bucket in routes.items()}
        )

    def register(self, kind: RouteKind | str, key: str, handlers: Sequence[Handler]) -> None:
        raise RouteTableFrozen()

    def merge(self, other: RouteTable, scoped_middleware: Sequence[Handler] = ()) -> None:
        raise RouteTableFrozen()

    def lookup(self, kind: RouteKind | str, key: str) -> tuple[Handler, ...] | None:
        return self._routes.get(RouteKind(kind), MappingProxyType({})).get(key)

    def items(self) -> Iterator[tuple[RouteKind, str, tuple[Handler, ...]]]:
        for kind, routes in self._routes.items():
            for key, handlers in routes.items():
                yield kind, key, handlers

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())


def _as_definition(definition: CommandDefinition | Mapping[str, Any]) -> CommandDefinition:
    if isinstance(definition, CommandDefinition):
        return definition
    return CommandDefinition.model_validate(definition)


class InteractionRouter:
    """Registers handlers for one module of interactions.

    Router-level middleware registered with :meth:`middleware` runs ahead of
    this router's handlers only, once the router is merged into a client.

    Example::

        router = InteractionRouter()
        weather = router.command(
            {"name": "weather", "description": "Query the weather", "options": [
                {"type": 3, "name": "city", "description": "City", "autocomplete": True},
            ]},
            handle_weather,
        )
        router.autocomplete(weather.get_autocomplete_key("city"), complete_city)
        router.button("refresh", handle_refresh)
    """

    def __init__(self) -> None:
        self.routes = RouteTable()
        self.middlewares: list[Handler] = []
        self.command_definitions: list[CommandDefinition] = []

    def middleware(self, *fns: Handler) -> None:
        self.middlewares.extend(ensure_handlers(fns))

    def _register(self, kind: RouteKind, key: str, fns: Sequence[Handler]) -> None:
        self.routes.register(kind, key, fns)
        log.debug(
            "routing.route.registered",
            kind=kind.value,
            key=key,
            handlers=[_handler_name(f) for f in fns],
        )

    def command(
        self, definition: CommandDefinition | Mapping[str, Any], *fns: Handler
    ) -> AutoCompleteKeyBuilder:
        """Register a slash command and return a builder for its autocomplete keys."""
        built = _as_definition(definition)
        self._register(RouteKind.COMMAND, built.name, fns)
        self.command_definitions.append(built)
        return AutoCompleteKeyBuilder(built)

    def button(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.BUTTON, custom_id, fns)

    def modal(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.MODAL, custom_id, fns)

    def string_select(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.STRING_SELECT, custom_id, fns)

    def user_select(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.USER_SELECT, custom_id, fns)

    def role_select(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.ROLE_SELECT, custom_id, fns)

    def mentionable_select(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.MENTIONABLE_SELECT, custom_id, fns)

    def channel_select(self, custom_id: str, *fns: Handler) -> None:
        self._register(RouteKind.CHANNEL_SELECT, custom_id, fns)

    def _context_menu(
        self,
        kind: RouteKind,
        command_type: ApplicationCommandType,
        name_or_definition: str | CommandDefinition | Mapping[str, Any],
        fns: Sequence[Handler],
    ) -> None:
        if isinstance(name_or_definition, str):
            self._register(kind, name_or_definition, fns)
            return
        built = _as_definition(name_or_definition)
        if built.type != command_type:
            built = built.model_copy(update={"type": command_type})
        self._register(kind, built.name, fns)
        self.command_definitions.append(built)

    def user_context_menu(
        self, name_or_definition: str | CommandDefinition | Mapping[str, Any], *fns: Handler
    ) -> None:
        self._context_menu(
            RouteKind.USER_CONTEXT_MENU, ApplicationCommandType.USER, name_or_definition, fns
        )

    def message_context_menu(
        self, name_or_definition: str | CommandDefinition | Mapping[str, Any], *fns: Handler
    ) -> None:
        self._context_menu(
            RouteKind.MESSAGE_CONTEXT_MENU, ApplicationCommandType.MESSAGE, name_or_definition, fns
        )

    def autocomplete(self, key: AutoCompleteKeyBuilder, *fns: Handler) -> None:
        if not isinstance(key, AutoCompleteKeyBuilder):
            names = ", ".join(_handler_name(f) for f in fns)
            raise InvalidAutocompletePath(repr(key), f"not an AutoCompleteKeyBuilder (for {names})")
        if not key.is_complete:
            raise InvalidAutocompletePath(key.key, "path does not end on an autocomplete option")
        self._register(RouteKind.AUTOCOMPLETE, key.key, fns)


class InteractionRouterCollector:
    """Groups routers (and other collectors) so they can be registered at once."""

    def __init__(self) -> None:
        self.routers: list[InteractionRouter] = []

    def register(self, *routes: InteractionRouter | InteractionRouterCollector):
        self.routers.extend(flatten_routers(routes))
        return self


def flatten_routers(
    routes: Iterable[InteractionRouter | InteractionRouterCollector],
) -> list[InteractionRouter]:
    out: list[InteractionRouter] = []
    for route in routes:
        if isinstance(route, InteractionRouter):
            out.append(route)
        elif isinstance(route, InteractionRouterCollector):
            out.extend(route.routers)
        else:
            raise TypeError(f"Invalid route was provided: {type(route).__name__}")
    return out
