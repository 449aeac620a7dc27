"""Exception hierarchy for Switchboard.

Registration errors are raised while routes are being wired, before any
traffic is served. Response errors are raised from handlers that misuse the
response capability. Protocol rejections never surface as exceptions; the
gate answers those with a bare status code.
"""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base class for all Switchboard errors."""


# --- Registration-time misuse ---
class RegistrationError(SwitchboardError):
    pass


class EmptyHandlerList(RegistrationError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"At least one handler is required for {kind} route {key!r}")
        self.kind = kind
        self.key = key


class InvalidMiddleware(RegistrationError):
    def __init__(self, obj: object) -> None:
        super().__init__(f"Middleware must be callable, got {type(obj).__name__}")
        self.obj = obj


class InvalidAutocompletePath(RegistrationError):
    def __init__(self, segment: str, reason: str = "no matching option") -> None:
        super().__init__(f"Invalid autocomplete key segment {segment!r}: {reason}")
        self.segment = segment


class RouteTableFrozen(RegistrationError):
    def __init__(self) -> None:
        super().__init__("Route table is frozen; register routes before serving traffic")


# --- Payload / protocol ---
class MalformedHex(SwitchboardError, ValueError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid hex string of length {len(value)}")


class NoFocusedOption(SwitchboardError):
    """An autocomplete interaction arrived without a focused option."""

    def __init__(self) -> None:
        super().__init__("Autocomplete interaction has no focused option")


# --- Response misuse ---
class ResponseError(SwitchboardError):
    pass


class InteractionAlreadyReplied(ResponseError):
    def __init__(self) -> None:
        super().__init__("The reply to this interaction has already been sent or deferred")


class HeadersSent(ResponseError):
    def __init__(self) -> None:
        super().__init__("A response has already been written for this request")


class UnsupportedResponse(ResponseError):
    def __init__(self, action: str, kind: str) -> None:
        super().__init__(f"{kind} interactions do not support {action}")
        self.action = action
        self.kind = kind


# --- Remote API ---
class DiscordAPIError(SwitchboardError):
    def __init__(self, method: str, path: str, status_code: int, text: str = "") -> None:
        preview = (text or "")[:200]
        super().__init__(f"{method} {path} failed with HTTP {status_code}: {preview}")
        self.method = method
        self.path = path
        self.status_code = status_code
        self.text_preview = preview
