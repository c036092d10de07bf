import inspect
import logging
from types import ModuleType

import pytest
from conftest import BASE
from mcp.server.fastmcp import FastMCP
from trello_mcp.core.errors import TrelloNotFoundError
from trello_mcp.core.registry import (
    discover_tool_modules,
    iter_tool_functions,
    register_discovered_tools,
)

EXPECTED_TOOLS = {
    "list_boards",
    "get_board_details",
    "get_lists",
    "trello_get_user_boards",
    "trello_get_member",
    "get_card",
    "create_card",
    "update_card",
    "move_card",
    "trello_get_list_cards",
    "trello_create_list",
    "trello_add_comment",
    "trello_search",
    "trello_get_board_cards",
    "trello_get_card_actions",
    "trello_get_card_attachments",
    "trello_get_card_checklists",
    "trello_get_board_members",
    "trello_get_board_labels",
    "trello_health_check",
}


def _make_module(name: str, code: str) -> ModuleType:
    module = ModuleType(name)
    exec(code, module.__dict__)
    return module


def _recording_app():
    app = FastMCP("test")
    registered = []

    # monkeypatch tool to record registrations
    def record_tool(name):
        def decorator(fn):
            registered.append((name, fn))
            return fn

        return decorator

    app.tool = record_tool  # type: ignore[attr-defined]
    return app, registered


@pytest.mark.asyncio
async def test_register_discovered_tools_registers_valid_tools_only(client):
    code = """
async def tool_fn(client, *, foo:int=1):
    return (client.base_url, foo)

async def _private(client):
    return None

async def wrong_first(arg1, client):
    return None

def sync_func(client):
    return None
"""
    mod = _make_module("fake_mod", code)
    app, registered = _recording_app()

    names = register_discovered_tools(app, client, modules=[mod])

    assert names == ["tool_fn"]
    assert [n for n, _ in registered] == ["tool_fn"]

    # wrapper signature should not expose client
    sig = inspect.signature(registered[0][1])
    assert "client" not in sig.parameters

    # call wrapper to ensure client injection works
    result = await registered[0][1](foo=5)
    assert result == (BASE, 5)


@pytest.mark.asyncio
async def test_client_provider_is_called_per_invocation(client):
    mod = _make_module("fake_mod", "async def tool_fn(client): return client")
    app, registered = _recording_app()
    calls = []

    def provider():
        calls.append(1)
        return client

    register_discovered_tools(app, provider, modules=[mod])
    assert await registered[0][1]() is client
    assert await registered[0][1]() is client
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_tool_call_event_records_outcome(client, caplog):
    code = """
from trello_mcp.core.errors import TrelloNotFoundError

async def ok_tool(client):
    return {"summary": "fine"}

async def missing_tool(client):
    raise TrelloNotFoundError("resource not found")
"""
    mod = _make_module("fake_tools", code)
    app, registered = _recording_app()
    register_discovered_tools(app, client, modules=[mod])
    tools = dict(registered)

    with caplog.at_level(logging.INFO, logger="trello_mcp.observability"):
        await tools["ok_tool"]()
        with pytest.raises(TrelloNotFoundError):
            await tools["missing_tool"]()

    events = [r for r in caplog.records if r.getMessage() == "tool_call"]
    assert [(r.tool, r.status) for r in events] == [
        ("ok_tool", "ok"),
        ("missing_tool", "not_found"),
    ]
    assert all(r.duration_ms >= 0 for r in events)


def test_register_discovered_tools_duplicate_names_raise(client):
    code1 = "async def tool_fn(client): return None"
    code2 = "async def tool_fn(client): return None"
    mod1 = _make_module("mod1", code1)
    mod2 = _make_module("mod2", code2)

    app = FastMCP("test")

    with pytest.raises(ValueError):
        register_discovered_tools(app, client, modules=[mod1, mod2])


def test_register_requires_tool_decorator(client):
    with pytest.raises(TypeError):
        register_discovered_tools(object(), client, modules=[])


def test_discover_finds_every_tool_module():
    modules = discover_tool_modules()
    names = {m.__name__.rsplit(".", 1)[-1] for m in modules}

    assert names == {
        "advanced",
        "boards",
        "cards",
        "lists",
        "members",
        "search",
        "system",
    }
    tools = {f.__name__ for m in modules for f in iter_tool_functions(m)}
    assert tools == EXPECTED_TOOLS


@pytest.mark.asyncio
async def test_tools_register_on_fastmcp(client):
    app = FastMCP("trello-mcp")

    names = register_discovered_tools(app, client)

    assert set(names) == EXPECTED_TOOLS
    listed = await app.list_tools()
    assert {t.name for t in listed} == EXPECTED_TOOLS
    search = next(t for t in listed if t.name == "trello_search")
    assert "client" not in search.inputSchema["properties"]
    assert "query" in search.inputSchema["required"]


def test_discover_tool_modules_skips_import_failures(monkeypatch, caplog):
    import importlib
    import pkgutil

    class Info:
        def __init__(self, name):
            self.name = name

    def fake_iter_modules(path, prefix):
        return [
            Info(prefix + "good"),
            Info(prefix + "bad"),
            Info(prefix + "_helpers"),
        ]

    good_mod = _make_module(
        "trello_mcp.core.tools.good", "async def tool_fn(client): return None"
    )

    real_import_module = importlib.import_module

    def fake_import_module(name, *args, **kwargs):
        if name == "trello_mcp.core.tools.bad":
            raise ImportError("boom")
        if name == "trello_mcp.core.tools.good":
            return good_mod
        if name == "trello_mcp.core.tools._helpers":
            raise AssertionError("private modules are not imported")
        return real_import_module(name, *args, **kwargs)

    monkeypatch.setattr(pkgutil, "iter_modules", fake_iter_modules)
    monkeypatch.setattr(importlib, "import_module", fake_import_module)

    with caplog.at_level("ERROR"):
        modules = discover_tool_modules()

    assert [m.__name__ for m in modules] == ["trello_mcp.core.tools.good"]
    assert any("Failed importing tool module" in rec.message for rec in caplog.records)
