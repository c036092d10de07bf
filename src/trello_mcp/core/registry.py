from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import time
from types import ModuleType
from typing import Callable, Iterable, List, get_origin, get_type_hints

from .client import TrelloClient
from .errors import TrelloError
from .models import InputValidationError
from .observability import log_event

log = logging.getLogger("trello_mcp.core.registry")

TOOLS_PACKAGE = "trello_mcp.core.tools"


# --- Discovery ------------------------------------------------------------- #


def discover_tool_modules(package_name: str = TOOLS_PACKAGE) -> List[ModuleType]:
    """Import every public module under the tools package, skipping failures."""
    modules: List[ModuleType] = []
    base_pkg = importlib.import_module(package_name)

    for info in pkgutil.iter_modules(base_pkg.__path__, base_pkg.__name__ + "."):
        if info.name.rsplit(".", 1)[-1].startswith("_"):
            continue
        try:
            modules.append(importlib.import_module(info.name))
        except Exception as exc:  # pragma: no cover - logged, not fatal
            log.error("Failed importing tool module %s: %s", info.name, exc)

    return modules


def _is_tool(module: ModuleType, func: Callable) -> bool:
    if func.__name__.startswith("_") or func.__module__ != module.__name__:
        return False

    params = list(inspect.signature(func).parameters.values())
    if not params or params[0].name != "client":
        log.debug(
            "Skipping %s.%s: first parameter must be 'client'",
            module.__name__,
            func.__name__,
        )
        return False

    # Type[...] parameters cannot be turned into a JSON schema by FastMCP
    if any(get_origin(p.annotation) is type for p in params[1:]):
        log.debug(
            "Skipping %s.%s: Type[...] parameter", module.__name__, func.__name__
        )
        return False
    return True


def iter_tool_functions(module: ModuleType) -> Iterable[Callable]:
    """Yield the module's own async functions whose first parameter is 'client'."""
    for _, func in inspect.getmembers(module, inspect.iscoroutinefunction):
        if _is_tool(module, func):
            yield func


# --- Wrapping / registration ---------------------------------------------- #


def _outcome(exc: BaseException) -> str:
    if isinstance(exc, TrelloError):
        return exc.kind.value
    if isinstance(exc, InputValidationError):
        return "invalid_input"
    return "exception"


def _wrap_tool(func: Callable, client_provider: Callable[[], TrelloClient]) -> Callable:
    """
    Return a wrapper that injects the client, hides it from the signature and
    emits one tool_call event per invocation. Exceptions propagate unchanged so
    the MCP layer can report them as tool errors.
    """
    original_sig = inspect.signature(func)
    type_hints = get_type_hints(func)

    new_params = []
    for i, (name, param) in enumerate(original_sig.parameters.items()):
        if i == 0 and name == "client":
            continue
        ann = type_hints.get(name, param.annotation)
        new_params.append(param.replace(annotation=ann))

    return_ann = type_hints.get("return", original_sig.return_annotation)
    new_sig = inspect.Signature(parameters=new_params, return_annotation=return_ann)
    tool_name = func.__name__

    async def wrapped(*args, **kwargs):
        client = client_provider()
        start = time.perf_counter()
        outcome = "ok"
        try:
            return await func(client, *args, **kwargs)
        except Exception as exc:
            outcome = _outcome(exc)
            raise
        finally:
            log_event(
                "tool_call",
                tool=tool_name,
                status=outcome,
                request_id=getattr(client, "request_id", None),
                duration_ms=int((time.perf_counter() - start) * 1000),
            )

    wrapped.__name__ = tool_name
    wrapped.__doc__ = func.__doc__
    wrapped.__module__ = func.__module__
    wrapped.__signature__ = new_sig  # type: ignore[attr-defined]
    return wrapped


def register_discovered_tools(
    app,
    client_provider: Callable[[], TrelloClient] | TrelloClient,
    modules: List[ModuleType] | None = None,
) -> List[str]:
    """
    Register discovered tools on an app that exposes a .tool decorator.
    The same client (or provider) is shared by every tool. Returns tool names.
    """
    if isinstance(client_provider, TrelloClient):
        shared = client_provider

        def client_provider() -> TrelloClient:
            return shared

    if not hasattr(app, "tool"):
        raise TypeError("app must expose a 'tool' decorator")

    modules = modules if modules is not None else discover_tool_modules()
    names: List[str] = []

    for module in modules:
        for func in iter_tool_functions(module):
            if func.__name__ in names:
                raise ValueError(f"Duplicate tool name detected: {func.__name__}")
            app.tool(name=func.__name__)(_wrap_tool(func, client_provider))
            names.append(func.__name__)
            log.info("Registered tool: %s (%s)", func.__name__, module.__name__)

    return names


__all__ = [
    "TOOLS_PACKAGE",
    "discover_tool_modules",
    "iter_tool_functions",
    "register_discovered_tools",
]
