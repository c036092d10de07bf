import pytest
import respx
from conftest import BASE, BOARD_ID, CARD_ID, LABEL_ID, LIST_ID
from httpx import Response
from trello_mcp.core.errors import TrelloNotFoundError
from trello_mcp.core.models import InputValidationError
from trello_mcp.core.tools.boards import get_board_details, get_lists, list_boards

RATE_HEADERS = {
    "x-rate-limit-api-token-max": "100",
    "x-rate-limit-api-token-remaining": "99",
    "x-rate-limit-api-token-interval-ms": "10000",
}


@pytest.mark.asyncio
@respx.mock
async def test_list_boards(client):
    route = respx.get(f"{BASE}/members/me/boards").mock(
        return_value=Response(
            200,
            json=[
                {
                    "id": BOARD_ID,
                    "name": "Roadmap",
                    "shortUrl": "https://trello.com/b/x",
                },
                {"id": "b2", "name": "Ops", "closed": False},
            ],
            headers=RATE_HEADERS,
        )
    )

    async with client:
        result = await list_boards(client)

    assert result["summary"] == "Found 2 open board(s)"
    assert [b["name"] for b in result["boards"]] == ["Roadmap", "Ops"]
    assert result["boards"][0]["url"] == "https://trello.com/b/x"
    assert result["rate_limit"]["remaining"] == 99
    assert route.calls[0].request.url.params["filter"] == "open"


@pytest.mark.asyncio
@respx.mock
async def test_get_board_details_summary_only(client):
    route = respx.get(f"{BASE}/boards/{BOARD_ID}").mock(
        return_value=Response(
            200,
            json={
                "id": BOARD_ID,
                "name": "Roadmap",
                "desc": "Q3 plans",
                "prefs": {"permissionLevel": "private"},
            },
        )
    )

    async with client:
        result = await get_board_details(client, BOARD_ID)

    assert result["summary"] == "Board: Roadmap"
    assert result["board"]["description"] == "Q3 plans"
    assert result["board"]["permission_level"] == "private"
    assert "lists" not in result
    assert "lists" not in route.calls[0].request.url.params
    assert result["rate_limit"] is None


@pytest.mark.asyncio
@respx.mock
async def test_get_board_details_groups_cards_by_list(client):
    route = respx.get(f"{BASE}/boards/{BOARD_ID}").mock(
        return_value=Response(
            200,
            json={
                "id": BOARD_ID,
                "name": "Roadmap",
                "lists": [{"id": LIST_ID, "name": "Todo"}],
                "cards": [{"id": CARD_ID, "name": "Ship it", "idList": LIST_ID}],
                "labels": [{"id": LABEL_ID, "name": "urgent", "color": "red"}],
            },
        )
    )

    async with client:
        result = await get_board_details(client, BOARD_ID, include_details=True)

    params = route.calls[0].request.url.params
    assert params["lists"] == "open"
    assert params["cards"] == "visible"
    assert result["lists"][0]["name"] == "Todo"
    assert result["lists"][0]["cards"][0]["name"] == "Ship it"
    assert result["labels"] == [{"id": LABEL_ID, "name": "urgent", "color": "red"}]


@pytest.mark.asyncio
async def test_get_board_details_rejects_bad_id(client):
    async with client:
        with pytest.raises(InputValidationError) as exc:
            await get_board_details(client, "not-an-id")

    assert "board_id" in str(exc.value)


@pytest.mark.asyncio
@respx.mock
async def test_get_board_details_not_found(client, sleep):
    respx.get(f"{BASE}/boards/{BOARD_ID}").mock(
        return_value=Response(404, text="board not found")
    )

    async with client:
        with pytest.raises(TrelloNotFoundError):
            await get_board_details(client, BOARD_ID)

    assert sleep.delays == []


@pytest.mark.asyncio
@respx.mock
async def test_get_lists(client):
    route = respx.get(f"{BASE}/boards/{BOARD_ID}/lists").mock(
        return_value=Response(
            200,
            json=[
                {"id": LIST_ID, "name": "Todo", "pos": 1024},
                {"id": "l2", "name": "Done", "pos": 2048, "closed": True},
            ],
        )
    )

    async with client:
        result = await get_lists(client, BOARD_ID, filter="all")

    assert result["summary"] == f"Found 2 all list(s) in board {BOARD_ID}"
    assert result["lists"][1] == {
        "id": "l2",
        "name": "Done",
        "closed": True,
        "pos": 2048,
    }
    assert route.calls[0].request.url.params["filter"] == "all"
