from __future__ import annotations

import asyncio
import logging
import uuid

from mcp.server.fastmcp import FastMCP

from trello_mcp.core.config import create_client_from_env
from trello_mcp.core.logging import setup_logging
from trello_mcp.core.registry import register_discovered_tools

log = logging.getLogger("trello_mcp.transports.stdio")


def build_app(client) -> FastMCP:
    app = FastMCP("trello-mcp")
    names = register_discovered_tools(app, client)
    log.info("Registered %d tools", len(names))
    return app


async def main() -> None:
    setup_logging()
    # One client per server process, shared by every tool call
    client = create_client_from_env(request_id=uuid.uuid4().hex[:12])
    try:
        app = build_app(client)
        await app.run_stdio_async()
    finally:
        await client.aclose()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
