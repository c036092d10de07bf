#!/usr/bin/env python3
"""
Keep the Trello core transport-agnostic.

Files under src/trello_mcp/core/ may talk to Trello over httpx and validate
with pydantic, but must not import the MCP SDK, a web stack, or any
trello_mcp.transports entry point. Tool modules are registered through the
duck-typed registry, so core never needs the SDK itself. Relative imports
are resolved against the package before checking.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = REPO_ROOT / "src"
CORE_DIR = SRC_DIR / "trello_mcp" / "core"

FORBIDDEN_PREFIXES = {
    "mcp": "MCP SDK belongs in trello_mcp.transports",
    "fastmcp": "MCP SDK belongs in trello_mcp.transports",
    "fastapi": "no HTTP server inside the Trello core",
    "starlette": "no HTTP server inside the Trello core",
    "uvicorn": "no HTTP server inside the Trello core",
    "trello_mcp.transports": "transports depend on core, never the reverse",
}


def forbidden_reason(module: str) -> Optional[str]:
    for prefix, reason in FORBIDDEN_PREFIXES.items():
        if module == prefix or module.startswith(prefix + "."):
            return reason
    return None


def is_forbidden(module: str) -> bool:
    return forbidden_reason(module) is not None


def _package_of(path: Path) -> list[str]:
    try:
        parts = list(path.resolve().relative_to(SRC_DIR.resolve()).parts)
    except ValueError:
        return []
    return parts[:-1]


def _absolute(node: ast.ImportFrom, package: list[str]) -> str:
    if not node.level:
        return node.module or ""
    # level 1 is the file's own package
    base = package[: len(package) - node.level + 1] if package else []
    return ".".join(base + ([node.module] if node.module else []))


def scan_file(path: Path) -> list[str]:
    errors: list[str] = []
    package = _package_of(path)
    tree = ast.parse(path.read_text(), filename=str(path))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            base = _absolute(node, package)
            # "from .. import transports" names the module in the alias
            modules = [base] + [f"{base}.{alias.name}" for alias in node.names]
        else:
            continue
        for mod in modules:
            reason = forbidden_reason(mod)
            if reason:
                errors.append(
                    f"{path}:{node.lineno}: forbidden import '{mod}' ({reason})"
                )
                break
    return errors


def main() -> int:
    violations: list[str] = []
    for py_file in sorted(CORE_DIR.rglob("*.py")):
        violations.extend(scan_file(py_file))

    if violations:
        for v in violations:
            print(v, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
