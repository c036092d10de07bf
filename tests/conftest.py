from typing import List

import pytest
from trello_mcp.core.client import RetryPolicy, TrelloClient

BASE = "https://api.trello.com/1"
API_KEY = "key-0123456789abcdef"
TOKEN = "tok-fedcba9876543210secret"

BOARD_ID = "5f1a2b3c4d5e6f7a8b9c0d1e"
LIST_ID = "6a1b2c3d4e5f6a7b8c9d0e1f"
CARD_ID = "7b2c3d4e5f6a7b8c9d0e1f2a"
MEMBER_ID = "8c3d4e5f6a7b8c9d0e1f2a3b"
LABEL_ID = "9d4e5f6a7b8c9d0e1f2a3b4c"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_client(sleep):
    def _make(**kwargs) -> TrelloClient:
        kwargs.setdefault("retry", RetryPolicy(max_retries=3, base_delay=1.0))
        kwargs.setdefault("sleep", sleep)
        return TrelloClient(api_key=API_KEY, token=TOKEN, **kwargs)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
