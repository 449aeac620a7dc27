import pytest
from helpers import autocomplete_payload, command_payload, component_payload, modal_payload

from Switchboard.discord_schemas import Interaction
from Switchboard.dispatcher import HALT, Dispatcher, FlushSignal, auto_respond, classify, flush
from Switchboard.errors import NoFocusedOption
from Switchboard.metrics import get_counter
from Switchboard.routing import RouteKind, RouteTable


def _classify(payload):
    decision = classify(Interaction.model_validate(payload))
    return decision.kind, decision.key


@pytest.mark.parametrize(
    "payload,expected",
    [
        (command_payload("ping"), (RouteKind.COMMAND, "ping")),
        (command_payload("Inspect", data={"type": 2, "target_id": "u9"}), (RouteKind.USER_CONTEXT_MENU, "Inspect")),
        (command_payload("Quote", data={"type": 3, "target_id": "m9"}), (RouteKind.MESSAGE_CONTEXT_MENU, "Quote")),
        (component_payload("ok", 2), (RouteKind.BUTTON, "ok")),
        (component_payload("pick", 3, values=["a"]), (RouteKind.STRING_SELECT, "pick")),
        (component_payload("who", 5), (RouteKind.USER_SELECT, "who")),
        (component_payload("role", 6), (RouteKind.ROLE_SELECT, "role")),
        (component_payload("any", 7), (RouteKind.MENTIONABLE_SELECT, "any")),
        (component_payload("chan", 8), (RouteKind.CHANNEL_SELECT, "chan")),
        (modal_payload("form"), (RouteKind.MODAL, "form")),
        (
            autocomplete_payload([{"type": 3, "name": "city", "value": "B", "focused": True}]),
            (RouteKind.AUTOCOMPLETE, "city"),
        ),
    ],
)
def test_classify_known_kinds(payload, expected):
    assert _classify(payload) == expected


@pytest.mark.parametrize(
    "payload",
    [
        command_payload("x", data={"type": 99}),
        component_payload("row", 1),
        component_payload("text", 4),
        component_payload("future", 42),
        {"id": "i", "type": 77, "token": "t", "application_id": "a", "data": {"name": "x"}},
        {"id": "i", "type": 2, "token": "t", "application_id": "a"},
    ],
)
def test_classify_falls_back_to_unknown(payload):
    assert _classify(payload) == (RouteKind.UNKNOWN, None)


def test_classify_autocomplete_without_focus_raises():
    with pytest.raises(NoFocusedOption):
        _classify(autocomplete_payload([{"type": 3, "name": "city", "value": "B"}]))


def test_classify_autocomplete_without_data_raises():
    payload = {"id": "i", "type": 4, "token": "t", "application_id": "a"}
    with pytest.raises(NoFocusedOption):
        _classify(payload)


def test_flush_raises_signal_outside_exception_hierarchy():
    with pytest.raises(FlushSignal):
        flush()
    assert not issubclass(FlushSignal, Exception)


def test_auto_respond_only_writes_once(sink):
    assert auto_respond(sink) is True
    assert sink.status_code == 204
    assert sink.body == b""
    assert auto_respond(sink) is False


def _dispatcher(routes, **kw):
    return Dispatcher(routes, **kw)


@pytest.mark.asyncio
async def test_chain_runs_global_middleware_then_handlers_in_order(sink):
    calls = []

    async def global_mw(interaction, client, flush_):
        calls.append(("global", interaction.kind, interaction.key))

    async def first(interaction, client, flush_):
        calls.append(("first", client))

    async def second(interaction, client, flush_):
        calls.append(("second", client))

    table = RouteTable()
    table.register(RouteKind.COMMAND, "ping", [first, second])
    rest = object()
    await _dispatcher(table.freeze(), global_middleware=[global_mw], client=rest).dispatch(
        command_payload("ping"), sink
    )
    assert calls == [("global", RouteKind.COMMAND, "ping"), ("first", rest), ("second", rest)]
    assert sink.status_code == 204
    assert get_counter("dispatch.auto_responded") == 1


@pytest.mark.asyncio
async def test_flush_stops_chain_and_auto_responds_once(sink):
    calls = []

    async def stopper(interaction, client, flush_):
        calls.append("stopper")
        flush_()
        calls.append("unreachable")

    async def never(interaction, client, flush_):
        calls.append("never")

    table = RouteTable()
    table.register(RouteKind.BUTTON, "ok", [stopper, never])
    await _dispatcher(table).dispatch(component_payload("ok"), sink)
    assert calls == ["stopper"]
    assert sink.status_code == 204
    assert get_counter("dispatch.flushed") == 1


@pytest.mark.asyncio
async def test_flush_is_not_absorbed_by_handler_exception_blocks(sink):
    calls = []

    async def guarded(interaction, client, flush_):
        try:
            flush_()
        except Exception:
            calls.append("absorbed")

    async def never(interaction, client, flush_):
        calls.append("never")

    table = RouteTable()
    table.register(RouteKind.BUTTON, "ok", [guarded, never])
    await _dispatcher(table).dispatch(component_payload("ok"), sink)
    assert calls == []
    assert sink.status_code == 204


@pytest.mark.asyncio
async def test_returning_halt_stops_chain(sink):
    calls = []

    async def halting(interaction, client, flush_):
        calls.append("halting")
        return HALT

    async def never(interaction, client, flush_):
        calls.append("never")

    table = RouteTable()
    table.register(RouteKind.MODAL, "form", [halting, never])
    await _dispatcher(table).dispatch(modal_payload("form"), sink)
    assert calls == ["halting"]
    assert sink.status_code == 204


@pytest.mark.asyncio
async def test_handler_reply_suppresses_auto_response(sink):
    async def replier(interaction, client, flush_):
        await interaction.response.reply("pong")

    table = RouteTable()
    table.register(RouteKind.COMMAND, "ping", [replier])
    await _dispatcher(table).dispatch(command_payload("ping"), sink)
    assert sink.status_code == 200
    assert b"pong" in sink.body
    assert get_counter("dispatch.auto_responded") == 0


@pytest.mark.asyncio
async def test_handler_error_propagates_without_auto_response(sink):
    calls = []

    async def broken(interaction, client, flush_):
        raise RuntimeError("boom")

    async def never(interaction, client, flush_):
        calls.append("never")

    table = RouteTable()
    table.register(RouteKind.COMMAND, "ping", [broken, never])
    with pytest.raises(RuntimeError, match="boom"):
        await _dispatcher(table).dispatch(command_payload("ping"), sink)
    assert calls == []
    assert not sink.headers_sent
    assert get_counter("dispatch.error") == 1


@pytest.mark.asyncio
async def test_unmatched_route_skips_middleware_and_auto_responds(sink):
    calls = []

    async def global_mw(interaction, client, flush_):
        calls.append("global")

    await _dispatcher(RouteTable(), global_middleware=[global_mw]).dispatch(
        command_payload("missing"), sink
    )
    assert calls == []
    assert sink.status_code == 204
    assert get_counter("dispatch.unmatched") == 1


@pytest.mark.asyncio
async def test_unknown_runs_unknown_handlers_without_global_middleware(sink):
    calls = []

    async def global_mw(interaction, client, flush_):
        calls.append("global")

    async def on_unknown(interaction, client, flush_):
        calls.append(("unknown", interaction.kind, interaction.payload.type))

    await _dispatcher(
        RouteTable(), global_middleware=[global_mw], unknown_handlers=[on_unknown]
    ).dispatch(component_payload("future", 42), sink)
    assert calls == [("unknown", RouteKind.UNKNOWN, 3)]
    assert sink.status_code == 204


@pytest.mark.asyncio
async def test_unknown_without_handlers_auto_responds(sink):
    await _dispatcher(RouteTable()).dispatch(component_payload("row", 1), sink)
    assert sink.status_code == 204
    assert get_counter("dispatch.unknown") == 1


@pytest.mark.asyncio
async def test_autocomplete_routes_by_resolved_key(sink):
    seen = []

    async def complete(interaction, client, flush_):
        seen.append(interaction.focused_option.value)
        await interaction.response.autocomplete([("Berlin", "berlin")])

    table = RouteTable()
    table.register(RouteKind.AUTOCOMPLETE, "city", [complete])
    payload = autocomplete_payload([{"type": 3, "name": "city", "value": "Ber", "focused": True}])
    await _dispatcher(table).dispatch(payload, sink)
    assert seen == ["Ber"]
    assert sink.status_code == 200
