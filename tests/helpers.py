"""Test doubles and interaction payload builders shared by the tests."""

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass
class FakeRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class FakeAdapter:
    """Adapter double: hands the request body straight back and records listen calls."""

    def __init__(self):
        self.listened: list[tuple[str, object]] = []

    def listen(self, endpoint, handler, *args):
        self.listened.append((endpoint, handler))
        return handler

    async def get_request_body(self, req):
        return req.body


def command_payload(name: str = "ping", **extra) -> dict:
    data = {"id": "c1", "name": name, "type": 1}
    data.update(extra.pop("data", {}))
    out = {
        "id": "i1",
        "type": 2,
        "token": "tok",
        "application_id": "app1",
        "data": data,
        "guild_id": "g1",
        "channel_id": "ch1",
        "member": {"user": {"id": "u1", "username": "tester"}},
    }
    out.update(extra)
    return out


def component_payload(custom_id: str, component_type: int = 2, **data) -> dict:
    return {
        "id": "i2",
        "type": 3,
        "token": "tok",
        "application_id": "app1",
        "data": {"custom_id": custom_id, "component_type": component_type, **data},
        "user": {"id": "u2"},
    }


def modal_payload(custom_id: str, components=None) -> dict:
    return {
        "id": "i3",
        "type": 5,
        "token": "tok",
        "application_id": "app1",
        "data": {"custom_id": custom_id, "components": components or []},
    }


def autocomplete_payload(options, name: str = "weather") -> dict:
    return {
        "id": "i4",
        "type": 4,
        "token": "tok",
        "application_id": "app1",
        "data": {"id": "c4", "name": name, "type": 1, "options": options},
    }
