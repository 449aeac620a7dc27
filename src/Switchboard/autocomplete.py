"""Colon-delimited keys addressing a single autocomplete option.

A key is the path from the command root through any subcommand group and
subcommand down to the option, e.g. ``"user:ban:reason"``. It is built from a
command definition at registration time and resolved from the focused option
of a live autocomplete interaction at dispatch time; both sides must produce
the same string for the route lookup to work. The command name itself is not
part of the key.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from Switchboard.discord_schemas import ApplicationCommandOptionType as OptionType
from Switchboard.discord_schemas import (
    CommandDefinition,
    CommandOption,
    InteractionDataOption,
)
from Switchboard.errors import InvalidAutocompletePath, NoFocusedOption

KEY_SEPARATOR = ":"

AUTOCOMPLETE_OPTION_TYPES = (OptionType.STRING, OptionType.INTEGER, OptionType.NUMBER)


class AutoCompleteKeyBuilder:
    """Walks a command definition to produce a validated autocomplete key.

    Returned by ``InteractionRouter.command``::

        weather = router.command(definition, handle_weather)
        router.autocomplete(weather.get_autocomplete_key("city"), complete_city)

    Each step consumes the builder; use :meth:`clone` before the first step
    when one command has several autocomplete options.
    """

    def __init__(self, definition: CommandDefinition) -> None:
        self._definition = definition
        self._node: CommandDefinition | CommandOption | None = definition
        self._path: list[str] = []

    @property
    def command_name(self) -> str:
        return self._definition.name

    @property
    def path(self) -> tuple[str, ...]:
        return tuple(self._path)

    @property
    def key(self) -> str:
        return KEY_SEPARATOR.join(self._path)

    @property
    def is_complete(self) -> bool:
        """True once the walk has ended on an autocomplete-capable option."""
        return bool(self._path) and getattr(self._node, "type", None) in AUTOCOMPLETE_OPTION_TYPES

    def clone(self) -> AutoCompleteKeyBuilder:
        if len(self._path) > 1:
            raise InvalidAutocompletePath(self.key, "cannot clone a builder that has been walked")
        return AutoCompleteKeyBuilder(self._definition)

    def get_sub_command_group(self, name: str) -> AutoCompleteKeyBuilder:
        self._descend(name, (OptionType.SUB_COMMAND_GROUP,))
        return self

    def get_sub_command(self, name: str) -> AutoCompleteKeyBuilder:
        self._descend(name, (OptionType.SUB_COMMAND,))
        return self

    def get_autocomplete_key(self, name: str) -> AutoCompleteKeyBuilder:
        self._descend(name, AUTOCOMPLETE_OPTION_TYPES)
        return self

    def _descend(self, name: str, allowed: Iterable[OptionType]) -> None:
        options = getattr(self._node, "options", None)
        if not options:
            raise InvalidAutocompletePath(name, "current node has no options")
        allowed = tuple(allowed)
        match = next((o for o in options if o.name == name and o.type in allowed), None)
        if match is None:
            expected = "/".join(t.name.lower() for t in allowed)
            raise InvalidAutocompletePath(name, f"no {expected} option with that name")
        self._node = match
        self._path.append(name)

    def __repr__(self) -> str:
        return f"AutoCompleteKeyBuilder(command={self.command_name!r}, key={self.key!r})"


def _as_option(option: InteractionDataOption | dict[str, Any]) -> InteractionDataOption:
    if isinstance(option, InteractionDataOption):
        return option
    return InteractionDataOption.model_validate(option)


def _find_focused(
    options: Sequence[InteractionDataOption | dict[str, Any]], prefix: tuple[str, ...]
) -> tuple[str, ...] | None:
    for raw in options:
        option = _as_option(raw)
        path = prefix + (option.name,)
        if option.focused:
            return path
        if option.options:
            found = _find_focused(option.options, path)
            if found is not None:
                return found
    return None


def resolve_autocomplete_key(
    options: Sequence[InteractionDataOption | dict[str, Any]] | None,
) -> str:
    """Resolve the key of the focused option in a live autocomplete payload.

    Searches depth-first; raises NoFocusedOption when nothing is focused.
    """
    path = _find_focused(options or [], ())
    if path is None:
        raise NoFocusedOption()
    return KEY_SEPARATOR.join(path)
