from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import (
    CreateCardInput,
    MoveCardInput,
    UpdateCardInput,
    parse_input,
    validate_trello_id,
)
from trello_mcp.core.tools._common import (
    attachment_brief,
    card_brief,
    checklist_brief,
    rate_limit_of,
)

PositionArg = Optional[Union[Literal["top", "bottom"], float]]


async def get_card(
    client: TrelloClient, card_id: str, include_details: bool = False
) -> Dict[str, Any]:
    """
    Get a card by id. With include_details, checklists, attachments and
    members are included.
    """
    validate_trello_id(card_id, "card_id")
    resp = await client.get_card(card_id, include_details, tool="get_card")
    card = resp.data

    result: Dict[str, Any] = {
        "summary": f"Card: {card.name}",
        "card": {
            **card_brief(card),
            "description": card.desc,
            "last_activity": card.date_last_activity,
            "badges": {
                k: card.badges.get(k)
                for k in ("comments", "attachments", "checkItems", "checkItemsChecked")
                if k in card.badges
            },
        },
        "rate_limit": rate_limit_of(resp),
    }
    if include_details:
        result["checklists"] = [checklist_brief(c) for c in card.checklists]
        result["attachments"] = [attachment_brief(a) for a in card.attachments]
    return result


async def create_card(
    client: TrelloClient,
    name: str,
    id_list: str,
    desc: Optional[str] = None,
    pos: PositionArg = None,
    due: Optional[str] = None,
    id_members: Optional[List[str]] = None,
    id_labels: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create a card in a list.
    pos: "top", "bottom" or a number >= 0. due: ISO-8601 datetime.
    """
    payload = parse_input(
        CreateCardInput,
        {
            "name": name,
            "idList": id_list,
            "desc": desc,
            "pos": pos,
            "due": due,
            "idMembers": id_members,
            "idLabels": id_labels,
        },
    )
    resp = await client.create_card(payload, tool="create_card")
    return {
        "summary": f"Created card: {resp.data.name}",
        "card": card_brief(resp.data),
        "rate_limit": rate_limit_of(resp),
    }


async def update_card(
    client: TrelloClient,
    card_id: str,
    name: Optional[str] = None,
    desc: Optional[str] = None,
    closed: Optional[bool] = None,
    due: Optional[str] = None,
    clear_due: bool = False,
    due_complete: Optional[bool] = None,
    id_list: Optional[str] = None,
    pos: PositionArg = None,
    id_members: Optional[List[str]] = None,
    id_labels: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Update card fields. Omitted fields are left unchanged; clear_due removes
    the due date. closed=True archives the card.
    """
    validate_trello_id(card_id, "card_id")
    fields: Dict[str, Any] = {
        "name": name,
        "desc": desc,
        "closed": closed,
        "due": due,
        "dueComplete": due_complete,
        "idList": id_list,
        "pos": pos,
        "idMembers": id_members,
        "idLabels": id_labels,
    }
    fields = {k: v for k, v in fields.items() if v is not None}
    if clear_due:
        fields["due"] = None
    payload = parse_input(UpdateCardInput, fields)

    resp = await client.update_card(card_id, payload, tool="update_card")
    return {
        "summary": f"Updated card: {resp.data.name}",
        "card": card_brief(resp.data),
        "rate_limit": rate_limit_of(resp),
    }


async def move_card(
    client: TrelloClient, card_id: str, id_list: str, pos: PositionArg = None
) -> Dict[str, Any]:
    """Move a card to another list (optionally to a position within it)."""
    validate_trello_id(card_id, "card_id")
    payload = parse_input(MoveCardInput, {"idList": id_list, "pos": pos})
    resp = await client.move_card(card_id, payload, tool="move_card")
    card = resp.data
    return {
        "summary": f'Moved card "{card.name}" to list {card.id_list}',
        "card": card_brief(card),
        "rate_limit": rate_limit_of(resp),
    }
