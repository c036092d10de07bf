from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import (
    CardFilter,
    InputValidationError,
    require_text,
    validate_trello_id,
)
from trello_mcp.core.tools._common import card_brief, list_brief, plural, rate_limit_of


async def trello_get_list_cards(
    client: TrelloClient, list_id: str, filter: CardFilter = "open"
) -> Dict[str, Any]:
    """Cards in a list. filter: open (default), closed, visible or all."""
    validate_trello_id(list_id, "list_id")
    resp = await client.get_list_cards(
        list_id, filter=filter, tool="trello_get_list_cards"
    )
    cards = resp.data
    return {
        "summary": f"Found {plural(len(cards), 'card')} in list {list_id}",
        "list_id": list_id,
        "cards": [card_brief(c) for c in cards],
        "rate_limit": rate_limit_of(resp),
    }


async def trello_create_list(
    client: TrelloClient,
    name: str,
    id_board: str,
    pos: Optional[Union[Literal["top", "bottom"], float]] = None,
) -> Dict[str, Any]:
    """Create a list on a board. pos: "top", "bottom" or a number >= 0."""
    require_text(name, "name")
    validate_trello_id(id_board, "id_board")
    if isinstance(pos, (int, float)) and pos < 0:
        raise InputValidationError("Validation error: pos: Position must be >= 0")

    resp = await client.create_list(name, id_board, pos, tool="trello_create_list")
    return {
        "summary": f"Created list: {resp.data.name}",
        "list": {**list_brief(resp.data), "board_id": resp.data.id_board},
        "rate_limit": rate_limit_of(resp),
    }


async def trello_add_comment(
    client: TrelloClient, card_id: str, text: str
) -> Dict[str, Any]:
    """Add a comment to a card."""
    validate_trello_id(card_id, "card_id")
    require_text(text, "text")
    resp = await client.add_comment_to_card(card_id, text, tool="trello_add_comment")
    action = resp.data
    return {
        "summary": f"Added comment to card {card_id}",
        "comment": {
            "id": action.id,
            "date": action.date,
            "text": action.data.get("text", text),
        },
        "rate_limit": rate_limit_of(resp),
    }
