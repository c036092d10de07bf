import asyncio
import functools
import logging
import math
import random
import re
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)
from urllib.parse import quote

import anyio
import httpx
from pydantic import TypeAdapter, ValidationError

from .errors import (
    TrelloError,
    TrelloTimeoutError,
    TrelloUnknownError,
    TrelloValidationError,
    classify_exception,
    classify_response,
    parse_retry_after,
    redact,
)
from .models import (
    Action,
    Attachment,
    Board,
    Card,
    Checklist,
    CreateCardInput,
    Label,
    Member,
    MoveCardInput,
    SearchResult,
    TrelloList,
    UpdateCardInput,
    to_api_fields,
)
from .observability import log_event

D = TypeVar("D")

DEFAULT_BASE_URL = "https://api.trello.com/1"
DEFAULT_TIMEOUT_SECONDS = 30.0

_PARAM_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ParamValue = Union[str, int, float, bool, Sequence[Any], None]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True, repr=False)
class Credentials:
    """Trello API key + user token. Never rendered in repr, logs or errors."""

    api_key: str
    token: str

    def __post_init__(self) -> None:
        if not (self.api_key or "").strip():
            raise ValueError("api_key must be provided.")
        if not (self.token or "").strip():
            raise ValueError("token must be provided.")

    def __repr__(self) -> str:
        return "Credentials(api_key='***', token='***')"

    @property
    def secrets(self) -> tuple:
        return (self.api_key, self.token)

    def authorization_header(self) -> str:
        return (
            f'OAuth oauth_consumer_key="{self.api_key}", '
            f'oauth_token="{self.token}"'
        )


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3  # extra attempts after the first
    base_delay: float = 1.0  # seconds: 1, 2, 4, ... capped at max_delay
    max_delay: float = 10.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    def backoff_delay(
        self, attempt: int, *, rng: Callable[[], float] = random.random
    ) -> float:
        """Delay before retry number attempt+1: min(base * 2**attempt, max)."""
        delay = min(self.base_delay * (2 ** max(0, attempt)), self.max_delay)
        if self.jitter:
            # Stays within [delay / 2, delay], so never above max_delay
            delay = delay * (0.5 + 0.5 * rng())
        return delay


@dataclass(frozen=True)
class RateLimitInfo:
    limit: int
    remaining: int
    reset_time: float  # epoch seconds

    # Trello reports token- and key-scoped windows; token is the tighter one
    HEADER_SCOPES = ("x-rate-limit-api-token", "x-rate-limit-api-key")

    @classmethod
    def from_headers(
        cls, headers: Mapping[str, str], *, now: Optional[float] = None
    ) -> Optional["RateLimitInfo"]:
        now = time.time() if now is None else now

        for scope in cls.HEADER_SCOPES:
            limit = _int_header(headers, f"{scope}-max")
            remaining = _int_header(headers, f"{scope}-remaining")
            if limit is None or remaining is None:
                continue
            interval_ms = _int_header(headers, f"{scope}-interval-ms") or 0
            return cls(
                limit=limit,
                remaining=remaining,
                reset_time=now + interval_ms / 1000,
            )

        limit = _int_header(headers, "x-ratelimit-limit")
        remaining = _int_header(headers, "x-ratelimit-remaining")
        if limit is None or remaining is None:
            return None
        reset = _int_header(headers, "x-ratelimit-reset")
        return cls(
            limit=limit,
            remaining=remaining,
            reset_time=float(reset) if reset is not None else now,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_time": self.reset_time,
        }


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    # "inf" and "nan" parse as floats but are not usable counts
    return int(value) if math.isfinite(value) else None


@dataclass(frozen=True)
class TrelloResponse(Generic[D]):
    data: D
    rate_limit: Optional[RateLimitInfo] = None


@dataclass
class _CallState:
    """Per logical call; lives on the stack of TrelloClient.request only."""

    attempt: int = 0
    delay: float = 0.0
    status: Any = None
    last_error: Optional[TrelloError] = field(default=None, repr=False)


def build_query_params(
    params: Optional[Mapping[str, ParamValue]],
) -> Dict[str, str]:
    """
    Normalise query parameters for Trello.
    - names must be identifiers, otherwise TrelloValidationError (no request sent)
    - None values are dropped, bools become true/false, sequences are comma-joined
    Percent-encoding of values is left to httpx.
    """
    query: Dict[str, str] = {}
    for name, value in (params or {}).items():
        if not isinstance(name, str) or not _PARAM_NAME_RE.match(name):
            raise TrelloValidationError(f"invalid query parameter name: {name!r}")
        if value is None:
            continue
        if isinstance(value, bool):
            query[name] = "true" if value else "false"
        elif isinstance(value, (list, tuple, set, frozenset)):
            query[name] = ",".join(str(v) for v in value)
        else:
            query[name] = str(value)
    return query


def path_segment(value: Any) -> str:
    return quote(str(value), safe="")


@functools.lru_cache(maxsize=64)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class TrelloClient:
    """
    Shared async HTTP client for the Trello REST API.
    - Attaches credentials to every request (OAuth header)
    - Retries 429 / 5xx / transport failures with capped exponential backoff
    - Fails fast on other 4xx
    - Raises only TrelloError subclasses
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        token: str = "",
        credentials: Optional[Credentials] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        retry: Optional[RetryPolicy] = None,
        deadline_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.AsyncClient] = None,
        request_id: Optional[str] = None,
        sleep: Optional[SleepFn] = None,
    ):
        base_url = (base_url or "").rstrip("/")
        if not base_url:
            raise ValueError("base_url must be provided.")

        self.credentials = credentials or Credentials(api_key=api_key, token=token)
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.retry = retry if retry is not None else RetryPolicy()
        self.deadline_seconds = deadline_seconds
        self.request_id = request_id
        self.log = logger or logging.getLogger("trello_mcp.client")
        self._sleep: SleepFn = sleep or asyncio.sleep

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=timeout_seconds,
        )

    @classmethod
    def from_env(cls, **kwargs) -> "TrelloClient":
        from .config import create_client_from_env

        return create_client_from_env(**kwargs)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "TrelloClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Request executor -------------------------------------------------- #

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, str],
        json: Any = None,
    ) -> httpx.Response:
        """Exactly one HTTP call, credentials attached. No retries here."""
        headers = {"Authorization": self.credentials.authorization_header()}
        if json is None:
            return await self.http.request(
                method, path, params=params, headers=headers
            )
        return await self.http.request(
            method, path, params=params, json=json, headers=headers
        )

    # --- Retry orchestrator ------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, ParamValue]] = None,
        json: Any = None,
        operation: Optional[str] = None,
        tool: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> TrelloResponse[Any]:
        """
        Core request method.
        - path is relative to base_url ("/boards/{id}")
        - operation is a human-readable label used in errors and logs
        - deadline (seconds) bounds the whole logical call, sleeps included
        Returns TrelloResponse(data=parsed JSON, rate_limit=RateLimitInfo|None).
        Raises a TrelloError subclass on failure.
        """
        method = method.upper()
        label = operation or f"{method} {path}"
        query = build_query_params(params)
        deadline = deadline if deadline is not None else self.deadline_seconds

        state = _CallState()
        start = time.perf_counter()
        rate_limit: Optional[RateLimitInfo] = None
        error: Optional[BaseException] = None

        try:
            if deadline is None:
                resp = await self._attempt_loop(
                    method, path, query, json, label, tool, state
                )
            else:
                try:
                    with anyio.fail_after(deadline):
                        resp = await self._attempt_loop(
                            method, path, query, json, label, tool, state
                        )
                except TimeoutError as exc:
                    raise TrelloTimeoutError(
                        f"request timed out: deadline of {deadline:g}s exceeded "
                        f"({label})",
                        operation=label,
                    ) from exc

            rate_limit = RateLimitInfo.from_headers(resp.headers)
            data = self._parse_body(resp, label)
            state.status = resp.status_code
            return TrelloResponse(data=data, rate_limit=rate_limit)
        except BaseException as exc:
            error = exc
            raise
        finally:
            log_event(
                "trello_call",
                request_id=self.request_id,
                tool=tool,
                method=method,
                endpoint=path,
                status="ok" if error is None else (state.status or "exception"),
                attempts=state.attempt + 1,
                error_type=type(error).__name__ if error is not None else None,
                rate_limit_remaining=rate_limit.remaining if rate_limit else None,
                duration_ms=int((time.perf_counter() - start) * 1000),
            )

    async def _attempt_loop(
        self,
        method: str,
        path: str,
        query: Dict[str, str],
        json: Any,
        label: str,
        tool: Optional[str],
        state: _CallState,
    ) -> httpx.Response:
        secrets = self.credentials.secrets

        while True:
            attempt_start = time.perf_counter()
            try:
                resp = await self._send(method, path, params=query, json=json)
            except httpx.TransportError as exc:
                error = classify_exception(exc, operation=label, secrets=secrets)
                state.last_error = error
                state.status = None
                self.log.debug(
                    "trello.attempt",
                    extra={
                        "request_id": self.request_id,
                        "tool": tool,
                        "method": method,
                        "endpoint": path,
                        "attempt": state.attempt,
                        "error_type": type(exc).__name__,
                    },
                )
                if state.attempt >= self.retry.max_retries:
                    raise error from exc
                delay = self.retry.backoff_delay(state.attempt)
                await self._backoff(state, delay, label, tool, error)
                continue
            except httpx.HTTPError as exc:
                # Not a transport failure (e.g. malformed URL); retrying cannot help
                error = classify_exception(exc, operation=label, secrets=secrets)
                raise error from exc

            state.status = resp.status_code
            self.log.debug(
                "trello.attempt",
                extra={
                    "request_id": self.request_id,
                    "tool": tool,
                    "method": method,
                    "endpoint": path,
                    "status": resp.status_code,
                    "attempt": state.attempt,
                    "duration_ms": int((time.perf_counter() - attempt_start) * 1000),
                },
            )

            if 200 <= resp.status_code < 300:
                return resp

            delay = self.retry.backoff_delay(state.attempt)
            retry_after: Optional[float] = None
            if resp.status_code == 429:
                retry_after = parse_retry_after(resp.headers.get("retry-after"))
                if retry_after is not None:
                    delay = retry_after

            error = self._classify(
                resp, label, retry_after=delay if resp.status_code == 429 else None
            )
            state.last_error = error

            if not error.retryable or state.attempt >= self.retry.max_retries:
                raise error

            await self._backoff(state, delay, label, tool, error)

    async def _backoff(
        self,
        state: _CallState,
        delay: float,
        label: str,
        tool: Optional[str],
        error: TrelloError,
    ) -> None:
        state.delay = delay
        self.log.warning(
            "trello.retry",
            extra={
                "request_id": self.request_id,
                "tool": tool,
                "endpoint": label,
                "status": error.status_code,
                "attempt": state.attempt,
                "delay_s": round(delay, 3),
                "error_type": error.kind.value,
            },
        )
        await self._sleep(delay)
        state.attempt += 1

    # --- Response handling ------------------------------------------------- #

    def _classify(
        self,
        resp: httpx.Response,
        label: str,
        *,
        retry_after: Optional[float] = None,
    ) -> TrelloError:
        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
        return classify_response(
            resp.status_code,
            body=body,
            headers=resp.headers,
            operation=label,
            secrets=self.credentials.secrets,
            retry_after=retry_after,
        )

    def _parse_body(self, resp: httpx.Response, label: str) -> Any:
        # Handle empty responses (204 No Content, etc.)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            snippet = redact(resp.text or "", self.credentials.secrets)[:200]
            raise TrelloUnknownError(
                f"expected JSON from Trello ({label}), got: {snippet!r}",
                status_code=resp.status_code,
                operation=label,
            ) from exc

    async def request_model(
        self, shape: Any, method: str, path: str, **kwargs: Any
    ) -> TrelloResponse[Any]:
        """Like request(), but validates data against a model or typing shape."""
        resp = await self.request(method, path, **kwargs)
        try:
            data = _adapter(shape).validate_python(resp.data)
        except ValidationError as exc:
            label = kwargs.get("operation") or f"{method.upper()} {path}"
            raise TrelloUnknownError(
                f"unexpected response shape from Trello ({label}): "
                f"{exc.error_count()} validation error(s)",
                operation=label,
            ) from exc
        return TrelloResponse(data=data, rate_limit=resp.rate_limit)

    async def get(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, ParamValue]] = None,
        **kwargs: Any,
    ) -> TrelloResponse[Any]:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(
        self, path: str, *, json: Any = None, **kwargs: Any
    ) -> TrelloResponse[Any]:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(
        self, path: str, *, json: Any = None, **kwargs: Any
    ) -> TrelloResponse[Any]:
        return await self.request("PUT", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> TrelloResponse[Any]:
        return await self.request("DELETE", path, **kwargs)

    # --- Endpoint surface: boards ------------------------------------------ #

    async def get_my_boards(
        self, filter: str = "open", **kwargs: Any
    ) -> TrelloResponse[List[Board]]:
        return await self.request_model(
            List[Board],
            "GET",
            "/members/me/boards",
            params={"filter": filter},
            operation="list boards",
            **kwargs,
        )

    async def get_board(
        self, board_id: str, include_details: bool = False, **kwargs: Any
    ) -> TrelloResponse[Board]:
        params: Dict[str, ParamValue] = {}
        if include_details:
            params = {"lists": "open", "cards": "visible", "labels": "all"}
        return await self.request_model(
            Board,
            "GET",
            f"/boards/{path_segment(board_id)}",
            params=params,
            operation="get board",
            **kwargs,
        )

    async def get_board_lists(
        self, board_id: str, filter: str = "open", **kwargs: Any
    ) -> TrelloResponse[List[TrelloList]]:
        return await self.request_model(
            List[TrelloList],
            "GET",
            f"/boards/{path_segment(board_id)}/lists",
            params={"filter": filter},
            operation="get board lists",
            **kwargs,
        )

    async def get_board_cards(
        self,
        board_id: str,
        *,
        filter: str = "open",
        attachments: Optional[Union[bool, str]] = None,
        members: Optional[bool] = None,
        **kwargs: Any,
    ) -> TrelloResponse[List[Card]]:
        return await self.request_model(
            List[Card],
            "GET",
            f"/boards/{path_segment(board_id)}/cards",
            params={"filter": filter, "attachments": attachments, "members": members},
            operation="get board cards",
            **kwargs,
        )

    async def get_board_members(
        self, board_id: str, **kwargs: Any
    ) -> TrelloResponse[List[Member]]:
        return await self.request_model(
            List[Member],
            "GET",
            f"/boards/{path_segment(board_id)}/members",
            operation="get board members",
            **kwargs,
        )

    async def get_board_labels(
        self, board_id: str, **kwargs: Any
    ) -> TrelloResponse[List[Label]]:
        return await self.request_model(
            List[Label],
            "GET",
            f"/boards/{path_segment(board_id)}/labels",
            operation="get board labels",
            **kwargs,
        )

    # --- Endpoint surface: lists ------------------------------------------- #

    async def get_list_cards(
        self, list_id: str, *, filter: str = "open", **kwargs: Any
    ) -> TrelloResponse[List[Card]]:
        return await self.request_model(
            List[Card],
            "GET",
            f"/lists/{path_segment(list_id)}/cards",
            params={"filter": filter},
            operation="get list cards",
            **kwargs,
        )

    async def create_list(
        self,
        name: str,
        board_id: str,
        pos: Optional[Union[str, float]] = None,
        **kwargs: Any,
    ) -> TrelloResponse[TrelloList]:
        body: Dict[str, Any] = {"name": name, "idBoard": board_id}
        if pos is not None:
            body["pos"] = pos
        return await self.request_model(
            TrelloList, "POST", "/lists", json=body, operation="create list", **kwargs
        )

    # --- Endpoint surface: cards ------------------------------------------- #

    async def get_card(
        self, card_id: str, include_details: bool = False, **kwargs: Any
    ) -> TrelloResponse[Card]:
        params: Dict[str, ParamValue] = {}
        if include_details:
            params = {
                "checklists": "all",
                "attachments": True,
                "members": True,
                "labels": "all",
            }
        return await self.request_model(
            Card,
            "GET",
            f"/cards/{path_segment(card_id)}",
            params=params,
            operation="get card",
            **kwargs,
        )

    async def create_card(
        self, payload: CreateCardInput, **kwargs: Any
    ) -> TrelloResponse[Card]:
        return await self.request_model(
            Card,
            "POST",
            "/cards",
            json=to_api_fields(payload),
            operation="create card",
            **kwargs,
        )

    async def update_card(
        self, card_id: str, payload: UpdateCardInput, **kwargs: Any
    ) -> TrelloResponse[Card]:
        return await self.request_model(
            Card,
            "PUT",
            f"/cards/{path_segment(card_id)}",
            json=to_api_fields(payload, keep_explicit_none=True),
            operation="update card",
            **kwargs,
        )

    async def move_card(
        self, card_id: str, payload: MoveCardInput, **kwargs: Any
    ) -> TrelloResponse[Card]:
        return await self.request_model(
            Card,
            "PUT",
            f"/cards/{path_segment(card_id)}",
            json=to_api_fields(payload),
            operation="move card",
            **kwargs,
        )

    async def delete_card(self, card_id: str, **kwargs: Any) -> TrelloResponse[Any]:
        return await self.request(
            "DELETE",
            f"/cards/{path_segment(card_id)}",
            operation="delete card",
            **kwargs,
        )

    async def add_comment_to_card(
        self, card_id: str, text: str, **kwargs: Any
    ) -> TrelloResponse[Action]:
        return await self.request_model(
            Action,
            "POST",
            f"/cards/{path_segment(card_id)}/actions/comments",
            json={"text": text},
            operation="add comment",
            **kwargs,
        )

    async def get_card_actions(
        self,
        card_id: str,
        *,
        filter: str = "all",
        limit: Optional[int] = None,
        **kwargs: Any,
    ) -> TrelloResponse[List[Action]]:
        return await self.request_model(
            List[Action],
            "GET",
            f"/cards/{path_segment(card_id)}/actions",
            params={"filter": filter, "limit": limit},
            operation="get card actions",
            **kwargs,
        )

    async def get_card_attachments(
        self,
        card_id: str,
        *,
        fields: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> TrelloResponse[List[Attachment]]:
        return await self.request_model(
            List[Attachment],
            "GET",
            f"/cards/{path_segment(card_id)}/attachments",
            params={"fields": fields},
            operation="get card attachments",
            **kwargs,
        )

    async def get_card_checklists(
        self,
        card_id: str,
        *,
        check_items: str = "all",
        fields: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> TrelloResponse[List[Checklist]]:
        return await self.request_model(
            List[Checklist],
            "GET",
            f"/cards/{path_segment(card_id)}/checklists",
            params={"checkItems": check_items, "fields": fields},
            operation="get card checklists",
            **kwargs,
        )

    # --- Endpoint surface: members / search -------------------------------- #

    async def get_member(
        self, member_id: str = "me", **kwargs: Any
    ) -> TrelloResponse[Member]:
        return await self.request_model(
            Member,
            "GET",
            f"/members/{path_segment(member_id)}",
            operation="get member",
            **kwargs,
        )

    async def get_current_user(self, **kwargs: Any) -> TrelloResponse[Member]:
        return await self.get_member("me", **kwargs)

    async def search(
        self,
        query: str,
        *,
        model_types: Sequence[str] = ("boards", "cards"),
        board_ids: Optional[Sequence[str]] = None,
        cards_limit: int = 10,
        boards_limit: int = 10,
        members_limit: int = 10,
        partial: bool = True,
        **kwargs: Any,
    ) -> TrelloResponse[SearchResult]:
        return await self.request_model(
            SearchResult,
            "GET",
            "/search",
            params={
                "query": query,
                "modelTypes": model_types,
                "idBoards": board_ids,
                "cards_limit": cards_limit,
                "boards_limit": boards_limit,
                "members_limit": members_limit,
                "partial": partial,
            },
            operation="search",
            **kwargs,
        )


__all__ = [
    "DEFAULT_BASE_URL",
    "Credentials",
    "RetryPolicy",
    "RateLimitInfo",
    "TrelloResponse",
    "TrelloClient",
    "build_query_params",
    "path_segment",
]
