"""Classify interactions, run their middleware chains, and guarantee a response.

Chain semantics:

* Known kinds run ``global middleware + route handlers``; a kind/key with no
  route skips straight to the auto-responder.
* Unknown kinds run the unknown handlers only. Global middleware is written
  for known interaction shapes and is not applied to them.
* Handlers run one at a time, in order. Calling ``flush()`` or returning
  ``HALT`` ends the chain without error. Any other exception propagates out
  of :meth:`Dispatcher.run` and the auto-responder does not run.
* After a chain ends normally, a 204 is written unless a response already was.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NoReturn

import structlog
from structlog.contextvars import bound_contextvars

from Switchboard.adapter import HttpResponse
from Switchboard.autocomplete import resolve_autocomplete_key
from Switchboard.discord_schemas import (
    ApplicationCommandType,
    ComponentType,
    Interaction,
    InteractionType,
)
from Switchboard.interactions import InteractionResponder, ResolvedInteraction
from Switchboard.metrics import inc_counter
from Switchboard.routing import FrozenRouteTable, Handler, RouteKind, RouteTable, ensure_handlers

log = structlog.get_logger()


class FlushSignal(BaseException):
    """Raised by ``flush()`` to end a chain early.

    Derives from BaseException so handler-level ``except Exception`` blocks do
    not absorb it. Only the chain runner catches it.
    """


class _Halt:
    _instance: _Halt | None = None

    def __new__(cls) -> _Halt:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "HALT"


# Returning HALT from a handler ends the chain, same as calling flush().
HALT = _Halt()


def flush() -> NoReturn:
    raise FlushSignal()


@dataclass(frozen=True)
class RoutingDecision:
    kind: RouteKind
    key: str | None
    interaction: Interaction


_COMMAND_KINDS: dict[int, RouteKind] = {
    ApplicationCommandType.CHAT_INPUT: RouteKind.COMMAND,
    ApplicationCommandType.USER: RouteKind.USER_CONTEXT_MENU,
    ApplicationCommandType.MESSAGE: RouteKind.MESSAGE_CONTEXT_MENU,
}

_COMPONENT_KINDS: dict[int, RouteKind] = {
    ComponentType.BUTTON: RouteKind.BUTTON,
    ComponentType.STRING_SELECT: RouteKind.STRING_SELECT,
    ComponentType.USER_SELECT: RouteKind.USER_SELECT,
    ComponentType.ROLE_SELECT: RouteKind.ROLE_SELECT,
    ComponentType.MENTIONABLE_SELECT: RouteKind.MENTIONABLE_SELECT,
    ComponentType.CHANNEL_SELECT: RouteKind.CHANNEL_SELECT,
}


def classify(interaction: Interaction) -> RoutingDecision:
    """Map an interaction to its route kind and key.

    Discriminants outside the known set classify as ``unknown``. An
    autocomplete interaction with no focused option raises NoFocusedOption.
    """
    data = interaction.data
    unknown = RoutingDecision(RouteKind.UNKNOWN, None, interaction)
    if interaction.type == InteractionType.APPLICATION_COMMAND_AUTOCOMPLETE:
        options = data.options if data is not None else None
        return RoutingDecision(RouteKind.AUTOCOMPLETE, resolve_autocomplete_key(options), interaction)

    if data is None:
        return unknown

    if interaction.type == InteractionType.APPLICATION_COMMAND:
        kind = _COMMAND_KINDS.get(data.type)
        if kind is None or data.name is None:
            return unknown
        return RoutingDecision(kind, data.name, interaction)

    if interaction.type == InteractionType.MESSAGE_COMPONENT:
        kind = _COMPONENT_KINDS.get(data.component_type)
        if kind is None or data.custom_id is None:
            return unknown
        return RoutingDecision(kind, data.custom_id, interaction)

    if interaction.type == InteractionType.MODAL_SUBMIT:
        if data.custom_id is None:
            return unknown
        return RoutingDecision(RouteKind.MODAL, data.custom_id, interaction)

    return unknown


def auto_respond(res: HttpResponse) -> bool:
    """Write a bodiless 204 unless a response was already sent. Returns True if written."""
    if res.headers_sent:
        return False
    res.write_head(204)
    res.end()
    return True


class Dispatcher:
    def __init__(
        self,
        routes: RouteTable | FrozenRouteTable,
        *,
        global_middleware: Sequence[Handler] = (),
        unknown_handlers: Sequence[Handler] = (),
        client: Any = None,
        debug: bool = False,
    ) -> None:
        self.routes = routes
        self.global_middleware = tuple(ensure_handlers(global_middleware))
        self.unknown_handlers = tuple(ensure_handlers(unknown_handlers))
        self.client = client
        self.debug = debug

    def _debug(self, event: str, **kw: Any) -> None:
        if self.debug:
            log.debug(event, **kw)

    async def dispatch(self, payload: Interaction | Mapping[str, Any], res: HttpResponse) -> None:
        interaction = (
            payload if isinstance(payload, Interaction) else Interaction.model_validate(payload)
        )
        decision = classify(interaction)
        with bound_contextvars(interaction_id=interaction.id, route_kind=decision.kind.value):
            await self.run(decision, res)

    def build_chain(self, decision: RoutingDecision) -> tuple[Handler, ...] | None:
        if decision.kind is RouteKind.UNKNOWN:
            return self.unknown_handlers
        matched = self.routes.lookup(decision.kind, decision.key or "")
        if matched is None:
            return None
        return (*self.global_middleware, *matched)

    async def run(self, decision: RoutingDecision, res: HttpResponse) -> None:
        inc_counter(f"dispatch.{decision.kind.value}")
        chain = self.build_chain(decision)
        if chain is None:
            inc_counter("dispatch.unmatched")
            log.info("dispatch.route.unmatched", kind=decision.kind.value, key=decision.key)
        else:
            self._debug(
                "dispatch.route.matched",
                kind=decision.kind.value,
                key=decision.key,
                chain_length=len(chain),
            )
            resolved = ResolvedInteraction(
                payload=decision.interaction,
                kind=decision.kind,
                key=decision.key,
                response=InteractionResponder(
                    decision.interaction, decision.kind, res, self.client
                ),
            )
            await self.run_chain(chain, resolved)

        if auto_respond(res):
            inc_counter("dispatch.auto_responded")
            self._debug("dispatch.auto_responded", http_status_code=204)

    async def run_chain(self, chain: Sequence[Handler], interaction: ResolvedInteraction) -> None:
        for index, handler in enumerate(chain):
            try:
                result = await handler(interaction, self.client, flush)
            except FlushSignal:
                inc_counter("dispatch.flushed")
                self._debug("dispatch.chain.flushed", position=index)
                return
            except Exception:
                inc_counter("dispatch.error")
                log.error(
                    "dispatch.handler.error",
                    kind=interaction.kind.value,
                    key=interaction.key,
                    position=index,
                    exc_info=True,
                )
                raise
            if result is HALT:
                inc_counter("dispatch.flushed")
                self._debug("dispatch.chain.halted", position=index)
                return
