import pytest

from Switchboard.discord_schemas import ApplicationCommandType
from Switchboard.errors import (
    EmptyHandlerList,
    InvalidAutocompletePath,
    InvalidMiddleware,
    RouteTableFrozen,
)
from Switchboard.routing import (
    InteractionRouter,
    InteractionRouterCollector,
    RouteKind,
    RouteTable,
    flatten_routers,
)


async def a(*_):
    return None


async def b(*_):
    return None


async def c(*_):
    return None


async def mw(*_):
    return None


def test_register_appends_rather_than_overwrites():
    table = RouteTable()
    table.register(RouteKind.BUTTON, "ok", [a])
    table.register(RouteKind.BUTTON, "ok", [b, c])
    assert table.lookup(RouteKind.BUTTON, "ok") == [a, b, c]
    assert len(table) == 1


def test_kinds_are_separate_namespaces():
    table = RouteTable()
    table.register(RouteKind.BUTTON, "x", [a])
    table.register(RouteKind.MODAL, "x", [b])
    assert table.lookup("button", "x") == [a]
    assert table.lookup("modal", "x") == [b]
    assert table.lookup(RouteKind.STRING_SELECT, "x") is None


def test_empty_handler_list_is_rejected():
    table = RouteTable()
    with pytest.raises(EmptyHandlerList):
        table.register(RouteKind.COMMAND, "ping", [])
    router = InteractionRouter()
    with pytest.raises(EmptyHandlerList):
        router.button("nothing")


def test_non_callable_handler_is_rejected():
    router = InteractionRouter()
    with pytest.raises(InvalidMiddleware):
        router.button("bad", a, "not callable")
    with pytest.raises(InvalidMiddleware):
        router.middleware(42)


def test_unknown_kind_is_not_routable():
    with pytest.raises(ValueError):
        RouteTable().register(RouteKind.UNKNOWN, "x", [a])


def test_lookup_returns_a_copy():
    table = RouteTable()
    table.register(RouteKind.BUTTON, "ok", [a])
    table.lookup(RouteKind.BUTTON, "ok").append(b)
    assert table.lookup(RouteKind.BUTTON, "ok") == [a]


def test_merge_puts_scoped_middleware_ahead_of_each_routes_handlers():
    base = RouteTable()
    base.register(RouteKind.BUTTON, "ok", [a])
    other = RouteTable()
    other.register(RouteKind.BUTTON, "ok", [b])
    other.register(RouteKind.MODAL, "form", [c])

    base.merge(other, [mw])
    assert base.lookup(RouteKind.BUTTON, "ok") == [a, mw, b]
    assert base.lookup(RouteKind.MODAL, "form") == [mw, c]


def test_frozen_table_rejects_changes_and_keeps_routes():
    table = RouteTable()
    table.register(RouteKind.COMMAND, "ping", [a, b])
    frozen = table.freeze()
    assert frozen.lookup(RouteKind.COMMAND, "ping") == (a, b)
    assert len(frozen) == 1
    with pytest.raises(RouteTableFrozen):
        frozen.register(RouteKind.COMMAND, "ping", [c])
    with pytest.raises(RouteTableFrozen):
        frozen.merge(RouteTable())

    # Later changes to the source table do not leak into the snapshot
    table.register(RouteKind.COMMAND, "ping", [c])
    assert frozen.lookup(RouteKind.COMMAND, "ping") == (a, b)


def test_router_registers_every_kind():
    router = InteractionRouter()
    router.command({"name": "ping", "description": "Ping"}, a)
    router.button("btn", a)
    router.modal("form", a)
    router.string_select("s", a)
    router.user_select("u", a)
    router.role_select("r", a)
    router.mentionable_select("m", a)
    router.channel_select("ch", a)
    router.user_context_menu("Inspect", a)
    router.message_context_menu("Quote", a)

    expected = {
        (RouteKind.COMMAND, "ping"),
        (RouteKind.BUTTON, "btn"),
        (RouteKind.MODAL, "form"),
        (RouteKind.STRING_SELECT, "s"),
        (RouteKind.USER_SELECT, "u"),
        (RouteKind.ROLE_SELECT, "r"),
        (RouteKind.MENTIONABLE_SELECT, "m"),
        (RouteKind.CHANNEL_SELECT, "ch"),
        (RouteKind.USER_CONTEXT_MENU, "Inspect"),
        (RouteKind.MESSAGE_CONTEXT_MENU, "Quote"),
    }
    assert {(kind, key) for kind, key, _ in router.routes.items()} == expected
    assert [d.name for d in router.command_definitions] == ["ping"]


def test_context_menu_definition_type_is_forced():
    router = InteractionRouter()
    router.user_context_menu({"name": "Inspect"}, a)
    router.message_context_menu({"name": "Quote", "type": 1}, b)
    types = {d.name: d.type for d in router.command_definitions}
    assert types == {"Inspect": ApplicationCommandType.USER, "Quote": ApplicationCommandType.MESSAGE}


def test_autocomplete_registration_uses_builder_key():
    router = InteractionRouter()
    weather = router.command(
        {
            "name": "weather",
            "description": "Weather",
            "options": [{"type": 3, "name": "city", "description": "City", "autocomplete": True}],
        },
        a,
    )
    router.autocomplete(weather.get_autocomplete_key("city"), b)
    assert router.routes.lookup(RouteKind.AUTOCOMPLETE, "city") == [b]


def test_autocomplete_requires_a_complete_builder():
    router = InteractionRouter()
    builder = router.command({"name": "weather", "description": "Weather"}, a)
    with pytest.raises(InvalidAutocompletePath):
        router.autocomplete(builder, b)
    with pytest.raises(InvalidAutocompletePath):
        router.autocomplete("city", b)


def test_collector_flattens_nested_collectors_in_order():
    r1, r2, r3 = InteractionRouter(), InteractionRouter(), InteractionRouter()
    inner = InteractionRouterCollector().register(r2, r3)
    outer = InteractionRouterCollector().register(r1, inner)
    assert outer.routers == [r1, r2, r3]
    assert flatten_routers([outer, r1]) == [r1, r2, r3, r1]


def test_flatten_rejects_other_objects():
    with pytest.raises(TypeError):
        flatten_routers([object()])
