from __future__ import annotations

import asyncio
from typing import Any, Dict

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import ListFilter, require_text
from trello_mcp.core.tools._common import (
    board_brief,
    member_brief,
    plural,
    rate_limit_of,
)


async def trello_get_user_boards(
    client: TrelloClient, filter: ListFilter = "open"
) -> Dict[str, Any]:
    """
    Boards the authenticated user belongs to, with who that user is.
    Runs the member and boards lookups concurrently.
    """
    me, boards = await asyncio.gather(
        client.get_current_user(tool="trello_get_user_boards"),
        client.get_my_boards(filter, tool="trello_get_user_boards"),
    )
    who = me.data.full_name or me.data.username or me.data.id
    return {
        "summary": f"{who} has {plural(len(boards.data), filter + ' board')}",
        "member": member_brief(me.data),
        "boards": [board_brief(b) for b in boards.data],
        "rate_limit": rate_limit_of(boards),
    }


async def trello_get_member(
    client: TrelloClient, member_id: str = "me"
) -> Dict[str, Any]:
    """Get a member by id or username ("me" for the authenticated user)."""
    require_text(member_id, "member_id", max_length=100)
    resp = await client.get_member(member_id, tool="trello_get_member")
    member = resp.data
    return {
        "summary": f"Member: {member.full_name or member.username}",
        "member": {
            **member_brief(member),
            "initials": member.initials,
            "url": member.url,
            "member_type": member.member_type,
        },
        "rate_limit": rate_limit_of(resp),
    }
