import time

from trello_mcp.core.client import TrelloClient


async def trello_health_check(client: TrelloClient) -> dict:
    """
    Connectivity and latency check against the Trello API.
    Returns the authenticated member and the current rate-limit window.
    """
    start = time.perf_counter()

    resp = await client.get_current_user(tool="trello_health_check")

    latency_ms = (time.perf_counter() - start) * 1000

    return {
        "status": "ok",
        "latency_ms": round(latency_ms, 2),
        "member_id": resp.data.id,
        "member_name": resp.data.full_name or resp.data.username,
        "api_url": client.base_url,
        "rate_limit": resp.rate_limit.to_dict() if resp.rate_limit else None,
    }
