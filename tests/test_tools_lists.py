import json

import pytest
import respx
from conftest import BASE, BOARD_ID, CARD_ID, LIST_ID
from httpx import Response
from trello_mcp.core.models import InputValidationError
from trello_mcp.core.tools.lists import (
    trello_add_comment,
    trello_create_list,
    trello_get_list_cards,
)


@pytest.mark.asyncio
@respx.mock
async def test_get_list_cards(client):
    route = respx.get(f"{BASE}/lists/{LIST_ID}/cards").mock(
        return_value=Response(
            200,
            json=[
                {"id": CARD_ID, "name": "One", "idList": LIST_ID},
                {"id": "c2", "name": "Two", "idList": LIST_ID},
            ],
        )
    )

    async with client:
        result = await trello_get_list_cards(client, LIST_ID)

    assert result["summary"] == f"Found 2 card(s) in list {LIST_ID}"
    assert [c["name"] for c in result["cards"]] == ["One", "Two"]
    assert route.calls[0].request.url.params["filter"] == "open"


@pytest.mark.asyncio
@respx.mock
async def test_create_list(client):
    route = respx.post(f"{BASE}/lists").mock(
        return_value=Response(
            200, json={"id": LIST_ID, "name": "Backlog", "idBoard": BOARD_ID}
        )
    )

    async with client:
        result = await trello_create_list(client, "Backlog", BOARD_ID, pos="top")

    assert json.loads(route.calls[0].request.content) == {
        "name": "Backlog",
        "idBoard": BOARD_ID,
        "pos": "top",
    }
    assert result["summary"] == "Created list: Backlog"
    assert result["list"]["board_id"] == BOARD_ID


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,board_id,pos,fragment",
    [
        ("", BOARD_ID, None, "name: Required"),
        ("Backlog", "nope", None, "id_board"),
        ("Backlog", BOARD_ID, -5, "pos"),
    ],
)
async def test_create_list_validation(client, name, board_id, pos, fragment):
    async with client:
        with pytest.raises(InputValidationError) as exc:
            await trello_create_list(client, name, board_id, pos=pos)

    assert fragment in str(exc.value)


@pytest.mark.asyncio
@respx.mock
async def test_add_comment(client):
    route = respx.post(f"{BASE}/cards/{CARD_ID}/actions/comments").mock(
        return_value=Response(
            200,
            json={
                "id": "act1",
                "type": "commentCard",
                "date": "2026-10-19T10:00:00.000Z",
                "data": {"text": "Looks good"},
            },
        )
    )

    async with client:
        result = await trello_add_comment(client, CARD_ID, "Looks good")

    assert json.loads(route.calls[0].request.content) == {"text": "Looks good"}
    assert result["summary"] == f"Added comment to card {CARD_ID}"
    assert result["comment"]["id"] == "act1"
    assert result["comment"]["text"] == "Looks good"


@pytest.mark.asyncio
async def test_add_comment_requires_text(client):
    async with client:
        with pytest.raises(InputValidationError, match="text: Required"):
            await trello_add_comment(client, CARD_ID, "")
