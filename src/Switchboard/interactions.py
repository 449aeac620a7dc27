"""Resolved interactions and the response capability handed to handlers.

Which initial responses an interaction supports depends on its kind: only
component and modal interactions can update the message they came from,
only autocomplete interactions can return choices, and modals cannot be shown
in answer to a modal. Each kind maps to a fixed capability set, and the
responder refuses anything outside it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson
import structlog

from Switchboard.adapter import HttpResponse
from Switchboard.discord_schemas import (
    EPHEMERAL_FLAG,
    ApplicationCommandOptionType,
    Interaction,
    InteractionData,
    InteractionDataOption,
    InteractionResponseType,
    User,
)
from Switchboard.errors import HeadersSent, InteractionAlreadyReplied, UnsupportedResponse
from Switchboard.routing import RouteKind

log = structlog.get_logger()


class Capability(str, Enum):
    REPLY = "reply"
    DEFER = "defer"
    DEFER_UPDATE = "defer_update"
    UPDATE = "update"
    SHOW_MODAL = "show_modal"
    AUTOCOMPLETE = "autocomplete"
    FOLLOWUP = "followup"


_MESSAGE = frozenset({Capability.REPLY, Capability.DEFER, Capability.FOLLOWUP})
_COMMAND = _MESSAGE | {Capability.SHOW_MODAL}
_COMPONENT = _COMMAND | {Capability.DEFER_UPDATE, Capability.UPDATE}
_MODAL = _MESSAGE | {Capability.DEFER_UPDATE, Capability.UPDATE}

CAPABILITIES: Mapping[RouteKind, frozenset[Capability]] = {
    RouteKind.COMMAND: _COMMAND,
    RouteKind.USER_CONTEXT_MENU: _COMMAND,
    RouteKind.MESSAGE_CONTEXT_MENU: _COMMAND,
    RouteKind.BUTTON: _COMPONENT,
    RouteKind.STRING_SELECT: _COMPONENT,
    RouteKind.USER_SELECT: _COMPONENT,
    RouteKind.ROLE_SELECT: _COMPONENT,
    RouteKind.MENTIONABLE_SELECT: _COMPONENT,
    RouteKind.CHANNEL_SELECT: _COMPONENT,
    RouteKind.MODAL: _MODAL,
    RouteKind.AUTOCOMPLETE: frozenset({Capability.AUTOCOMPLETE}),
    # Unknown interactions are an escape hatch; nothing is withheld
    RouteKind.UNKNOWN: frozenset(Capability),
}


def message_payload(
    content: str | Mapping[str, Any] | None = None,
    *,
    ephemeral: bool = False,
    **fields: Any,
) -> dict[str, Any]:
    """Build message callback data from a string or a prepared mapping."""
    if isinstance(content, Mapping):
        data = dict(content)
    else:
        data = {}
        if content is not None:
            data["content"] = content
    data.update({k: v for k, v in fields.items() if v is not None})
    if ephemeral:
        data["flags"] = int(data.get("flags", 0)) | EPHEMERAL_FLAG
    return data


class InteractionResponder:
    """Writes the initial interaction response to the HTTP sink.

    The first response goes back on the webhook's own HTTP response. Follow-ups
    and edits go through the REST client.
    """

    def __init__(
        self,
        interaction: Interaction,
        kind: RouteKind,
        res: HttpResponse,
        client: Any = None,
    ) -> None:
        self._interaction = interaction
        self._kind = kind
        self._res = res
        self._client = client
        self.capabilities = CAPABILITIES[kind]
        self.deferred = False
        self.replied = False
        self.ephemeral: bool | None = None

    @property
    def raw(self) -> HttpResponse:
        """The underlying HTTP response sink."""
        return self._res

    @property
    def headers_sent(self) -> bool:
        return self._res.headers_sent

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            raise UnsupportedResponse(capability.value, self._kind.value)

    def _require_unanswered(self) -> None:
        if self.deferred or self.replied:
            raise InteractionAlreadyReplied()

    def _write(self, body: dict[str, Any]) -> None:
        if self._res.headers_sent:
            raise HeadersSent()
        self._res.write_head(200, {"Content-Type": "application/json"})
        self._res.end(orjson.dumps(body))
        log.debug(
            "interaction.response.sent",
            interaction_id=self._interaction.id,
            response_type=int(body["type"]),
        )

    async def defer(self, *, ephemeral: bool = False) -> None:
        self._require(Capability.DEFER)
        self._require_unanswered()
        flags = EPHEMERAL_FLAG if ephemeral else 0
        self._write(
            {
                "type": InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE,
                "data": {"flags": flags},
            }
        )
        self.deferred = True
        self.ephemeral = ephemeral

    async def reply(
        self,
        content: str | Mapping[str, Any] | None = None,
        *,
        ephemeral: bool = False,
        with_response: bool = False,
        **fields: Any,
    ) -> dict[str, Any] | None:
        """Reply with a message.

        When the HTTP response has already been written (for example by a
        middleware writing to the raw sink), the callback is posted through
        the REST client instead; ``with_response`` then returns Discord's
        callback resource.
        """
        self._require(Capability.REPLY)
        self._require_unanswered()
        data = message_payload(content, ephemeral=ephemeral, **fields)
        body = {"type": InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE, "data": data}
        result = None
        if not self._res.headers_sent:
            self._write(body)
        else:
            result = await self._rest().create_interaction_response(
                self._interaction.id,
                self._interaction.token,
                body,
                with_response=with_response,
            )
        self.replied = True
        self.ephemeral = bool(int(data.get("flags", 0)) & EPHEMERAL_FLAG)
        return result if with_response else None

    async def defer_update(self) -> None:
        self._require(Capability.DEFER_UPDATE)
        self._require_unanswered()
        self._write({"type": InteractionResponseType.DEFERRED_UPDATE_MESSAGE})
        self.deferred = True

    async def update(self, content: str | Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._require(Capability.UPDATE)
        self._require_unanswered()
        self._write(
            {
                "type": InteractionResponseType.UPDATE_MESSAGE,
                "data": message_payload(content, **fields),
            }
        )
        self.replied = True

    async def show_modal(self, modal: Mapping[str, Any]) -> None:
        self._require(Capability.SHOW_MODAL)
        self._require_unanswered()
        self._write({"type": InteractionResponseType.MODAL, "data": dict(modal)})
        self.replied = True

    async def autocomplete(self, choices: Sequence[Mapping[str, Any] | tuple[str, Any]]) -> None:
        """Return up to 25 choices; tuples are ``(name, value)`` pairs."""
        self._require(Capability.AUTOCOMPLETE)
        self._require_unanswered()
        normalized = [
            dict(c) if isinstance(c, Mapping) else {"name": c[0], "value": c[1]} for c in choices
        ]
        self._write(
            {
                "type": InteractionResponseType.APPLICATION_COMMAND_AUTOCOMPLETE_RESULT,
                "data": {"choices": normalized[:25]},
            }
        )
        self.replied = True

    # --- Follow-ups via REST ---
    def _rest(self):
        if self._client is None:
            raise RuntimeError("No REST client is configured for this interaction")
        return self._client

    async def followup(
        self, content: str | Mapping[str, Any] | None = None, *, ephemeral: bool = False, **fields: Any
    ) -> dict[str, Any]:
        self._require(Capability.FOLLOWUP)
        return await self._rest().create_followup(
            self._interaction.application_id,
            self._interaction.token,
            message_payload(content, ephemeral=ephemeral, **fields),
        )

    async def edit_reply(
        self, content: str | Mapping[str, Any] | None = None, **fields: Any
    ) -> dict[str, Any]:
        self._require(Capability.FOLLOWUP)
        return await self._rest().edit_original_response(
            self._interaction.application_id,
            self._interaction.token,
            message_payload(content, **fields),
        )

    async def delete_reply(self) -> None:
        self._require(Capability.FOLLOWUP)
        await self._rest().delete_original_response(
            self._interaction.application_id, self._interaction.token
        )


_NESTING_TYPES = (ApplicationCommandOptionType.SUB_COMMAND, ApplicationCommandOptionType.SUB_COMMAND_GROUP)


def _leaf_options(options: Sequence[InteractionDataOption] | None) -> list[InteractionDataOption]:
    opts = list(options or [])
    while opts and opts[0].type in _NESTING_TYPES:
        opts = list(opts[0].options or [])
    return opts


@dataclass(frozen=True)
class ResolvedInteraction:
    """A classified interaction: the payload, its route, and how to answer it."""

    payload: Interaction
    kind: RouteKind
    key: str | None
    response: InteractionResponder

    @property
    def id(self) -> str:
        return self.payload.id

    @property
    def token(self) -> str:
        return self.payload.token

    @property
    def application_id(self) -> str:
        return self.payload.application_id

    @property
    def data(self) -> InteractionData | None:
        return self.payload.data

    @property
    def command_name(self) -> str | None:
        return self.data.name if self.data else None

    @property
    def custom_id(self) -> str | None:
        return self.data.custom_id if self.data else None

    @property
    def values(self) -> list[str]:
        return list(self.data.values or []) if self.data else []

    @property
    def target_id(self) -> str | None:
        return self.data.target_id if self.data else None

    @property
    def user(self) -> User | None:
        if self.payload.member and self.payload.member.user:
            return self.payload.member.user
        return self.payload.user

    @property
    def user_id(self) -> str | None:
        user = self.user
        return user.id if user else None

    @property
    def guild_id(self) -> str | None:
        return self.payload.guild_id

    @property
    def channel_id(self) -> str | None:
        return self.payload.channel_id

    @property
    def subcommand_group(self) -> str | None:
        opts = (self.data.options or []) if self.data else []
        if opts and opts[0].type == ApplicationCommandOptionType.SUB_COMMAND_GROUP:
            return opts[0].name
        return None

    @property
    def subcommand(self) -> str | None:
        opts = list((self.data.options or []) if self.data else [])
        if opts and opts[0].type == ApplicationCommandOptionType.SUB_COMMAND_GROUP:
            opts = list(opts[0].options or [])
        if opts and opts[0].type == ApplicationCommandOptionType.SUB_COMMAND:
            return opts[0].name
        return None

    @property
    def options(self) -> dict[str, Any]:
        """Option values by name, below any subcommand group or subcommand."""
        return {o.name: o.value for o in _leaf_options(self.data.options if self.data else None)}

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    @property
    def focused_option(self) -> InteractionDataOption | None:
        for o in _leaf_options(self.data.options if self.data else None):
            if o.focused:
                return o
        return None

    def modal_values(self) -> dict[str, Any]:
        """Text input values of a modal submission, by custom id."""
        out: dict[str, Any] = {}
        for row in (self.data.components or []) if self.data else []:
            for component in row.get("components", []) or []:
                if "custom_id" in component:
                    out[component["custom_id"]] = component.get("value")
        return out
