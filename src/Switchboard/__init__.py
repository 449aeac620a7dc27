"""Switchboard public exports."""  # noqa: N999

from .autocomplete import AutoCompleteKeyBuilder, resolve_autocomplete_key
from .client import Client
from .config import Settings, load_settings
from .crypto import verify_ed25519
from .dispatcher import HALT, Dispatcher, FlushSignal, RoutingDecision, classify, flush
from .errors import (
    DiscordAPIError,
    EmptyHandlerList,
    HeadersSent,
    InteractionAlreadyReplied,
    InvalidAutocompletePath,
    InvalidMiddleware,
    MalformedHex,
    NoFocusedOption,
    RegistrationError,
    ResponseError,
    RouteTableFrozen,
    SwitchboardError,
    UnsupportedResponse,
)
from .http_adapter import FastAPIAdapter
from .interactions import Capability, InteractionResponder, ResolvedInteraction
from .registrar import CommandRegistrar
from .rest import RestClient
from .routing import InteractionRouter, InteractionRouterCollector, RouteKind

__all__ = [
    "AutoCompleteKeyBuilder",
    "resolve_autocomplete_key",
    "Client",
    "Settings",
    "load_settings",
    "verify_ed25519",
    "HALT",
    "Dispatcher",
    "FlushSignal",
    "RoutingDecision",
    "classify",
    "flush",
    "DiscordAPIError",
    "EmptyHandlerList",
    "HeadersSent",
    "InteractionAlreadyReplied",
    "InvalidAutocompletePath",
    "InvalidMiddleware",
    "MalformedHex",
    "NoFocusedOption",
    "RegistrationError",
    "ResponseError",
    "RouteTableFrozen",
    "SwitchboardError",
    "UnsupportedResponse",
    "FastAPIAdapter",
    "Capability",
    "InteractionResponder",
    "ResolvedInteraction",
    "CommandRegistrar",
    "RestClient",
    "InteractionRouter",
    "InteractionRouterCollector",
    "RouteKind",
]
