from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import CardFilter, require_text, validate_trello_id
from trello_mcp.core.tools._common import (
    action_brief,
    attachment_brief,
    card_brief,
    checklist_brief,
    clamp,
    label_brief,
    member_brief,
    plural,
    rate_limit_of,
)

MAX_ACTIONS = 1000


async def trello_get_board_cards(
    client: TrelloClient,
    board_id: str,
    filter: CardFilter = "open",
    attachments: bool = False,
    members: bool = False,
) -> Dict[str, Any]:
    """All cards on a board, optionally with attachments and members."""
    validate_trello_id(board_id, "board_id")
    resp = await client.get_board_cards(
        board_id,
        filter=filter,
        attachments=attachments or None,
        members=members or None,
        tool="trello_get_board_cards",
    )
    cards = resp.data
    items = []
    for card in cards:
        item = card_brief(card)
        if attachments:
            item["attachments"] = [attachment_brief(a) for a in card.attachments]
        items.append(item)
    return {
        "summary": f"Found {plural(len(cards), 'card')} in board {board_id}",
        "board_id": board_id,
        "cards": items,
        "rate_limit": rate_limit_of(resp),
    }


async def trello_get_card_actions(
    client: TrelloClient,
    card_id: str,
    filter: str = "commentCard",
    limit: int = 50,
) -> Dict[str, Any]:
    """
    Activity on a card (comments by default).
    filter: a Trello action type list such as "commentCard,updateCard" or "all".
    """
    validate_trello_id(card_id, "card_id")
    require_text(filter, "filter", max_length=500)
    resp = await client.get_card_actions(
        card_id,
        filter=filter,
        limit=clamp(limit, 1, MAX_ACTIONS),
        tool="trello_get_card_actions",
    )
    actions = resp.data
    return {
        "summary": f"Found {plural(len(actions), 'action')} for card {card_id}",
        "card_id": card_id,
        "actions": [action_brief(a) for a in actions],
        "rate_limit": rate_limit_of(resp),
    }


async def trello_get_card_attachments(
    client: TrelloClient, card_id: str, fields: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Attachments on a card."""
    validate_trello_id(card_id, "card_id")
    resp = await client.get_card_attachments(
        card_id, fields=fields, tool="trello_get_card_attachments"
    )
    attachments = resp.data
    return {
        "summary": f"Found {plural(len(attachments), 'attachment')} for card {card_id}",
        "card_id": card_id,
        "attachments": [attachment_brief(a) for a in attachments],
        "rate_limit": rate_limit_of(resp),
    }


async def trello_get_card_checklists(
    client: TrelloClient,
    card_id: str,
    check_items: Literal["all", "none"] = "all",
    fields: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Checklists on a card with completion counts."""
    validate_trello_id(card_id, "card_id")
    resp = await client.get_card_checklists(
        card_id,
        check_items=check_items,
        fields=fields,
        tool="trello_get_card_checklists",
    )
    checklists = resp.data
    return {
        "summary": f"Found {plural(len(checklists), 'checklist')} for card {card_id}",
        "card_id": card_id,
        "checklists": [checklist_brief(c) for c in checklists],
        "rate_limit": rate_limit_of(resp),
    }


async def trello_get_board_members(
    client: TrelloClient, board_id: str
) -> Dict[str, Any]:
    """Members of a board."""
    validate_trello_id(board_id, "board_id")
    resp = await client.get_board_members(board_id, tool="trello_get_board_members")
    members = resp.data
    return {
        "summary": f"Found {plural(len(members), 'member')} on board {board_id}",
        "board_id": board_id,
        "members": [member_brief(m) for m in members],
        "rate_limit": rate_limit_of(resp),
    }


async def trello_get_board_labels(
    client: TrelloClient, board_id: str
) -> Dict[str, Any]:
    """Labels defined on a board, with usage counts."""
    validate_trello_id(board_id, "board_id")
    resp = await client.get_board_labels(board_id, tool="trello_get_board_labels")
    labels = resp.data
    return {
        "summary": f"Found {plural(len(labels), 'label')} on board {board_id}",
        "board_id": board_id,
        "labels": [{**label_brief(lb), "uses": lb.uses} for lb in labels],
        "rate_limit": rate_limit_of(resp),
    }
