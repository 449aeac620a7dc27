# discord_schemas.py

from enum import IntEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class ApplicationCommandType(IntEnum):
    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


class ComponentType(IntEnum):
    ACTION_ROW = 1
    BUTTON = 2
    STRING_SELECT = 3
    TEXT_INPUT = 4
    USER_SELECT = 5
    ROLE_SELECT = 6
    MENTIONABLE_SELECT = 7
    CHANNEL_SELECT = 8


class ApplicationCommandOptionType(IntEnum):
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class InteractionResponseType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    APPLICATION_COMMAND_AUTOCOMPLETE_RESULT = 8
    MODAL = 9


EPHEMERAL_FLAG = 1 << 6


class User(BaseModel):
    id: str | None = None
    username: str | None = None
    discriminator: str | None = None
    avatar: str | None = None
    global_name: str | None = None


class Member(BaseModel):
    user: User | None = None
    nick: str | None = None
    roles: list[str] = Field(default_factory=list)
    joined_at: str | None = None
    permissions: str | None = None


class Channel(BaseModel):
    id: str | None = None
    guild_id: str | None = None
    name: str | None = None
    type: int | None = None


class Guild(BaseModel):
    id: str | None = None
    locale: str | None = None
    features: list[str] = Field(default_factory=list)


class InteractionDataOption(BaseModel):
    """An option as sent on a live interaction (values, nesting, focus)."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: int
    value: str | int | float | bool | None = None
    focused: bool = False
    options: list["InteractionDataOption"] | None = None


class InteractionData(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    # Application commands and autocomplete
    id: str | None = None
    name: str | None = None
    type: int | None = None
    options: list[InteractionDataOption] | None = None
    target_id: str | None = None
    resolved: dict[str, Any] | None = None
    # Components and modals
    custom_id: str | None = None
    component_type: int | None = None
    values: list[str] | None = None
    components: list[dict[str, Any]] | None = None


class Interaction(BaseModel):
    """A verified, decoded interaction webhook body. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    type: int
    token: str
    application_id: str
    data: InteractionData | None = None
    guild_id: str | None = None
    channel_id: str | None = None
    member: Member | None = None
    user: User | None = None
    guild: Guild | None = None
    channel: Channel | None = None
    message: dict[str, Any] | None = None
    locale: str | None = None
    guild_locale: str | None = None
    version: int | None = None


# --- Command definitions (as PUT to the applications commands endpoint) ---
class CommandOptionChoice(BaseModel):
    name: str
    value: str | int | float


class CommandOption(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: ApplicationCommandOptionType
    name: str
    description: str = ""
    required: bool | None = None
    autocomplete: bool | None = None
    choices: list[CommandOptionChoice] | None = None
    options: list["CommandOption"] | None = None


class CommandDefinition(BaseModel):
    """Read-only command definition tree used for registration and key building."""

    model_config = ConfigDict(extra="allow")

    name: str
    description: str = ""
    type: ApplicationCommandType = ApplicationCommandType.CHAT_INPUT
    options: list[CommandOption] | None = None
    default_member_permissions: str | None = None
    nsfw: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PongResponse(BaseModel):
    type: Literal[1]  # PONG for pings (type 1)
