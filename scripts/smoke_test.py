from __future__ import annotations

import asyncio
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.config import create_client_from_env
from trello_mcp.core.errors import TrelloError
from trello_mcp.core.tools.boards import get_lists, list_boards
from trello_mcp.core.tools.cards import create_card, get_card, move_card, update_card
from trello_mcp.core.tools.lists import trello_add_comment
from trello_mcp.core.tools.system import trello_health_check


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val else default


def _print_step(title: str) -> None:
    print(f"\n== {title}")


def _fail(msg: str) -> int:
    print(f"FAILED: {msg}")
    return 1


async def run_smoke_test() -> int:
    # --- Config ---
    try:
        client: TrelloClient = create_client_from_env()
    except ValueError as exc:
        return _fail(str(exc))

    cfg_board_id = _env("TEST_BOARD_ID")
    cleanup = _env("SMOKE_TEST_CLEANUP", "0") == "1"

    print("Config:")
    print(f"  base_url: {client.base_url}")
    print(f"  board_id: {cfg_board_id}")
    print(f"  cleanup: {cleanup}")

    async with client:
        _print_step("Health check")
        health = await trello_health_check(client)
        print(f"Authenticated as {health['member_name']} ({health['latency_ms']} ms)")

        # --- Pick board ---
        _print_step("List boards")
        boards = (await list_boards(client))["boards"]
        if not boards:
            return _fail("No open boards available.")
        selected = next((b for b in boards if b["id"] == cfg_board_id), boards[0])
        print(f"Selected board: {selected['name']} (id={selected['id']})")

        # --- Lists ---
        _print_step("Get lists")
        lists = (await get_lists(client, selected["id"]))["lists"]
        if not lists:
            return _fail("Selected board has no open lists.")
        source = lists[0]
        target = lists[1] if len(lists) > 1 else lists[0]
        print(f"Source list: {source['name']}, target list: {target['name']}")

        # --- Create / update / move ---
        _print_step("Create card")
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            created = await create_card(
                client,
                name=f"Smoke Test {stamp}",
                id_list=source["id"],
                desc="Automated smoke test artifact.",
                pos="top",
            )
        except TrelloError as exc:
            return _fail(f"Create failed: {exc}")
        card_id = created["card"]["id"]
        print(created["summary"])

        _print_step("Update, comment and move")
        try:
            await update_card(client, card_id, desc="Updated by smoke test.")
            await trello_add_comment(client, card_id, "Smoke test comment.")
            moved = await move_card(client, card_id, target["id"], pos="bottom")
        except TrelloError as exc:
            return _fail(f"Update failed: {exc}")
        print(moved["summary"])

        # --- Verify ---
        _print_step("Verify")
        card = (await get_card(client, card_id))["card"]
        if card["list_id"] != target["id"]:
            return _fail(
                f"Verification failed: expected list {target['id']}, "
                f"got {card['list_id']}"
            )
        print("Verification OK")

        # --- Cleanup (optional) ---
        _print_step("Cleanup")
        if cleanup:
            await client.delete_card(card_id)
            print(f"Deleted card {card_id}")
        else:
            print("Cleanup skipped (SMOKE_TEST_CLEANUP=0). Card left on the board.")

    print("\nPASSED smoke test.")
    return 0


def main() -> None:
    exit_code = asyncio.run(run_smoke_test())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
