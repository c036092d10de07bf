from __future__ import annotations

from typing import Any, Dict, List, Optional

from trello_mcp.core.client import TrelloClient
from trello_mcp.core.models import (
    InputValidationError,
    require_text,
    validate_trello_id,
)
from trello_mcp.core.tools._common import (
    board_brief,
    card_brief,
    clamp,
    member_brief,
    rate_limit_of,
)

MODEL_TYPES = ("actions", "boards", "cards", "members", "organizations")
DEFAULT_MODEL_TYPES = ["boards", "cards"]
MAX_RESULTS = 1000


async def trello_search(
    client: TrelloClient,
    query: str,
    model_types: Optional[List[str]] = None,
    board_ids: Optional[List[str]] = None,
    cards_limit: int = 10,
    boards_limit: int = 10,
    partial: bool = True,
) -> Dict[str, Any]:
    """
    Search boards, cards and members.
    - model_types: subset of actions, boards, cards, members, organizations
    - board_ids: restrict card results to these boards
    - limits are clamped to 1..1000
    """
    require_text(query, "query", max_length=16384)
    model_types = model_types or list(DEFAULT_MODEL_TYPES)
    unknown = [m for m in model_types if m not in MODEL_TYPES]
    if unknown:
        raise InputValidationError(
            f"Validation error: model_types: unsupported value(s) {unknown}; "
            f"expected any of {list(MODEL_TYPES)}"
        )
    for board_id in board_ids or []:
        validate_trello_id(board_id, "board_ids")

    resp = await client.search(
        query,
        model_types=model_types,
        board_ids=board_ids,
        cards_limit=clamp(cards_limit, 1, MAX_RESULTS),
        boards_limit=clamp(boards_limit, 1, MAX_RESULTS),
        partial=partial,
        tool="trello_search",
    )
    found = resp.data
    total = len(found.boards) + len(found.cards) + len(found.members)
    return {
        "summary": (
            f'Found {total} result(s) for "{query}": '
            f"{len(found.boards)} board(s), {len(found.cards)} card(s), "
            f"{len(found.members)} member(s)"
        ),
        "boards": [board_brief(b) for b in found.boards],
        "cards": [card_brief(c) for c in found.cards],
        "members": [member_brief(m) for m in found.members],
        "rate_limit": rate_limit_of(resp),
    }
