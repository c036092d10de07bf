import importlib.util
from pathlib import Path

import pytest


def _load_guard():
    script = (
        Path(__file__).resolve().parent.parent / "scripts" / "check_core_imports.py"
    )
    spec = importlib.util.spec_from_file_location("check_core_imports", script)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None  # for mypy
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def guard():
    return _load_guard()


def test_core_import_guard_passes(guard):
    exit_code = guard.main()
    assert exit_code == 0, "core import guard failed"


def _core_file(root: Path, source: str) -> Path:
    path = root / "trello_mcp" / "core" / "tools" / "boards.py"
    path.parent.mkdir(parents=True)
    path.write_text(source)
    return path


@pytest.mark.parametrize(
    "source,module",
    [
        ("from mcp.server.fastmcp import FastMCP\n", "mcp.server.fastmcp"),
        ("import mcp.types\n", "mcp.types"),
        (
            "from trello_mcp.transports.stdio.main import run\n",
            "trello_mcp.transports.stdio.main",
        ),
        ("from ...transports.stdio import main\n", "trello_mcp.transports.stdio"),
        ("from ... import transports\n", "trello_mcp.transports"),
    ],
)
def test_guard_flags_transport_imports_in_core(guard, tmp_path, source, module):
    guard.SRC_DIR = tmp_path
    path = _core_file(tmp_path, source)

    errors = guard.scan_file(path)

    assert len(errors) == 1
    assert f"forbidden import '{module}'" in errors[0]
    assert f"{path}:1:" in errors[0]


def test_guard_allows_trello_core_dependencies(guard, tmp_path):
    guard.SRC_DIR = tmp_path
    path = _core_file(
        tmp_path,
        "import httpx\n"
        "from pydantic import BaseModel\n"
        "from ..client import TrelloClient\n"
        "from trello_mcp.core.models import Board\n",
    )

    assert guard.scan_file(path) == []
