"""
Shared helpers for shaping Trello payloads into compact tool results.
"""

from typing import Any, Dict, Optional

from trello_mcp.core.client import TrelloResponse
from trello_mcp.core.models import (
    Action,
    Attachment,
    Board,
    Card,
    Checklist,
    Label,
    Member,
    TrelloList,
)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}(s)"


def rate_limit_of(resp: TrelloResponse) -> Optional[Dict[str, Any]]:
    return resp.rate_limit.to_dict() if resp.rate_limit else None


def label_brief(label: Label) -> Dict[str, Any]:
    return {"id": label.id, "name": label.name, "color": label.color}


def member_brief(member: Member) -> Dict[str, Any]:
    return {
        "id": member.id,
        "full_name": member.full_name,
        "username": member.username,
    }


def card_brief(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "name": card.name,
        "list_id": card.id_list,
        "board_id": card.id_board,
        "url": card.short_url or card.url,
        "due": card.due,
        "due_complete": card.due_complete,
        "closed": card.closed,
        "labels": [label_brief(lb) for lb in card.labels],
        "members": [m.full_name or m.username for m in card.members],
    }


def list_brief(lst: TrelloList) -> Dict[str, Any]:
    return {"id": lst.id, "name": lst.name, "closed": lst.closed, "pos": lst.pos}


def board_brief(board: Board) -> Dict[str, Any]:
    return {
        "id": board.id,
        "name": board.name,
        "url": board.short_url or board.url,
        "closed": board.closed,
        "last_activity": board.date_last_activity,
    }


def checklist_brief(checklist: Checklist) -> Dict[str, Any]:
    done = sum(1 for item in checklist.check_items if item.state == "complete")
    return {
        "id": checklist.id,
        "name": checklist.name,
        "completed": done,
        "total": len(checklist.check_items),
        "items": [
            {"id": item.id, "name": item.name, "state": item.state}
            for item in checklist.check_items
        ],
    }


def attachment_brief(attachment: Attachment) -> Dict[str, Any]:
    return {
        "id": attachment.id,
        "name": attachment.name,
        "url": attachment.url,
        "mime_type": attachment.mime_type,
        "bytes": attachment.size_bytes,
        "date": attachment.date,
    }


def action_brief(action: Action) -> Dict[str, Any]:
    creator = action.member_creator
    return {
        "id": action.id,
        "type": action.type,
        "date": action.date,
        "member": (creator.full_name or creator.username) if creator else None,
        "text": action.data.get("text"),
    }


