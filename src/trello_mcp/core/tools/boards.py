from __future__ import annotations

from typing import Any, Dict

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import ListFilter, validate_trello_id
from trello_mcp.core.tools._common import (
    board_brief,
    card_brief,
    label_brief,
    list_brief,
    plural,
    rate_limit_of,
)


async def list_boards(
    client: TrelloClient, filter: ListFilter = "open"
) -> Dict[str, Any]:
    """
    List the boards of the authenticated member.
    filter: open (default), closed or all.
    """
    resp = await client.get_my_boards(filter, tool="list_boards")
    boards = resp.data
    return {
        "summary": f"Found {plural(len(boards), filter + ' board')}",
        "boards": [board_brief(b) for b in boards],
        "rate_limit": rate_limit_of(resp),
    }


async def get_board_details(
    client: TrelloClient, board_id: str, include_details: bool = False
) -> Dict[str, Any]:
    """
    Get a board by id. With include_details, open lists, visible cards and
    labels are included.
    """
    validate_trello_id(board_id, "board_id")
    resp = await client.get_board(board_id, include_details, tool="get_board_details")
    board = resp.data

    result: Dict[str, Any] = {
        "summary": f"Board: {board.name}",
        "board": {
            **board_brief(board),
            "description": board.desc,
            "permission_level": board.prefs.get("permissionLevel"),
        },
        "rate_limit": rate_limit_of(resp),
    }
    if include_details:
        cards_by_list: Dict[str, list] = {}
        for card in board.cards:
            cards_by_list.setdefault(card.id_list or "", []).append(card_brief(card))
        result["lists"] = [
            {**list_brief(lst), "cards": cards_by_list.get(lst.id, [])}
            for lst in board.lists
        ]
        result["labels"] = [label_brief(lb) for lb in board.labels]
    return result


async def get_lists(
    client: TrelloClient, board_id: str, filter: ListFilter = "open"
) -> Dict[str, Any]:
    """List the lists of a board (open, closed or all)."""
    validate_trello_id(board_id, "board_id")
    resp = await client.get_board_lists(board_id, filter, tool="get_lists")
    lists = resp.data
    return {
        "summary": f"Found {plural(len(lists), filter + ' list')} in board {board_id}",
        "board_id": board_id,
        "lists": [list_brief(lst) for lst in lists],
        "rate_limit": rate_limit_of(resp),
    }
