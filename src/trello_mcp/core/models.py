from __future__ import annotations

import re
from datetime import datetime
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Type,
    TypeVar,
    Union,
)

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
)

T = TypeVar("T", bound=BaseModel)

TRELLO_ID_PATTERN = r"^[a-fA-F0-9]{24}$"
MAX_TEXT_LENGTH = 16384
_TRELLO_ID_RE = re.compile(TRELLO_ID_PATTERN)

ListFilter = Literal["all", "open", "closed"]
CardFilter = Literal["all", "open", "closed", "visible"]


class InputValidationError(ValueError):
    """Raised when tool input fails validation; message is user-facing."""


def format_validation_error(exc: ValidationError) -> str:
    """Render pydantic errors as 'Validation error: field: message, ...'."""
    issues = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        if err.get("type") == "missing":
            msg = "Required"
        issues.append(f"{loc}: {msg}" if loc else msg)
    return "Validation error: " + ", ".join(issues)


def parse_input(model: Type[T], data: Dict[str, Any]) -> T:
    """Validate a tool payload, raising InputValidationError on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InputValidationError(format_validation_error(exc)) from exc


def _check_trello_id(value: str) -> str:
    if not isinstance(value, str) or not _TRELLO_ID_RE.match(value):
        raise ValueError("Must be a valid 24-character Trello ID")
    return value


def validate_trello_id(value: str, field: str) -> str:
    """Check a single id argument outside of a model."""
    try:
        return _check_trello_id(value)
    except ValueError as exc:
        raise InputValidationError(f"Validation error: {field}: {exc}") from exc


def require_text(value: str, field: str, *, max_length: int = MAX_TEXT_LENGTH) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InputValidationError(f"Validation error: {field}: Required")
    if len(value) > max_length:
        raise InputValidationError(
            f"Validation error: {field}: must be at most {max_length} characters"
        )
    return value


# --- Response models ------------------------------------------------------- #


class TrelloModel(BaseModel):
    """Base for Trello payloads; unknown fields are kept, not rejected."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Label(TrelloModel):
    id: str
    name: Optional[str] = None
    color: Optional[str] = None
    id_board: Optional[str] = Field(default=None, alias="idBoard")
    uses: Optional[int] = None


class Member(TrelloModel):
    id: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    username: Optional[str] = None
    initials: Optional[str] = None
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    member_type: Optional[str] = Field(default=None, alias="memberType")
    url: Optional[str] = None


class CheckItem(TrelloModel):
    id: str
    name: str
    state: str = "incomplete"
    pos: Optional[float] = None
    due: Optional[str] = None
    id_member: Optional[str] = Field(default=None, alias="idMember")


class Checklist(TrelloModel):
    id: str
    name: str
    id_card: Optional[str] = Field(default=None, alias="idCard")
    pos: Optional[float] = None
    check_items: List[CheckItem] = Field(default_factory=list, alias="checkItems")


class Attachment(TrelloModel):
    id: str
    name: Optional[str] = None
    url: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    date: Optional[str] = None
    size_bytes: Optional[int] = Field(default=None, alias="bytes")
    is_upload: Optional[bool] = Field(default=None, alias="isUpload")


class Card(TrelloModel):
    id: str
    name: str
    desc: str = ""
    closed: bool = False
    url: Optional[str] = None
    short_url: Optional[str] = Field(default=None, alias="shortUrl")
    pos: Optional[float] = None
    id_board: Optional[str] = Field(default=None, alias="idBoard")
    id_list: Optional[str] = Field(default=None, alias="idList")
    date_last_activity: Optional[str] = Field(default=None, alias="dateLastActivity")
    due: Optional[str] = None
    due_complete: bool = Field(default=False, alias="dueComplete")
    labels: List[Label] = Field(default_factory=list)
    members: List[Member] = Field(default_factory=list)
    checklists: List[Checklist] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    badges: Dict[str, Any] = Field(default_factory=dict)


class TrelloList(TrelloModel):
    id: str
    name: str
    closed: bool = False
    pos: Optional[float] = None
    subscribed: Optional[bool] = None
    id_board: Optional[str] = Field(default=None, alias="idBoard")
    cards: List[Card] = Field(default_factory=list)


class Board(TrelloModel):
    id: str
    name: str
    desc: str = ""
    closed: bool = False
    url: Optional[str] = None
    short_url: Optional[str] = Field(default=None, alias="shortUrl")
    date_last_activity: Optional[str] = Field(default=None, alias="dateLastActivity")
    prefs: Dict[str, Any] = Field(default_factory=dict)
    lists: List[TrelloList] = Field(default_factory=list)
    cards: List[Card] = Field(default_factory=list)
    labels: List[Label] = Field(default_factory=list)


class Action(TrelloModel):
    id: str
    type: str
    date: Optional[str] = None
    member_creator: Optional[Member] = Field(default=None, alias="memberCreator")
    data: Dict[str, Any] = Field(default_factory=dict)


class SearchResult(TrelloModel):
    boards: List[Board] = Field(default_factory=list)
    cards: List[Card] = Field(default_factory=list)
    members: List[Member] = Field(default_factory=list)
    organizations: List[Dict[str, Any]] = Field(default_factory=list)


# --- Input models (tool payloads) ----------------------------------------- #


def _validate_due(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("Must be an ISO-8601 datetime") from exc
    return value


def _validate_pos(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
        raise ValueError("Position must be >= 0")
    return value


TrelloId = Annotated[str, AfterValidator(_check_trello_id)]
Position = Annotated[
    Union[Literal["top", "bottom"], float], AfterValidator(_validate_pos)
]
DueDate = Annotated[Optional[str], AfterValidator(_validate_due)]
Text = Annotated[str, StringConstraints(max_length=MAX_TEXT_LENGTH)]
Name = Annotated[str, StringConstraints(min_length=1, max_length=MAX_TEXT_LENGTH)]


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CreateCardInput(_Input):
    name: Name
    id_list: TrelloId = Field(alias="idList")
    desc: Optional[Text] = None
    pos: Optional[Position] = None
    due: DueDate = None
    id_members: Optional[List[TrelloId]] = Field(default=None, alias="idMembers")
    id_labels: Optional[List[TrelloId]] = Field(default=None, alias="idLabels")


class UpdateCardInput(_Input):
    name: Optional[Name] = None
    desc: Optional[Text] = None
    closed: Optional[bool] = None
    # explicit None clears the due date
    due: DueDate = None
    due_complete: Optional[bool] = Field(default=None, alias="dueComplete")
    id_list: Optional[TrelloId] = Field(default=None, alias="idList")
    pos: Optional[Position] = None
    id_members: Optional[List[TrelloId]] = Field(default=None, alias="idMembers")
    id_labels: Optional[List[TrelloId]] = Field(default=None, alias="idLabels")


class MoveCardInput(_Input):
    id_list: TrelloId = Field(alias="idList")
    pos: Optional[Position] = None


def to_api_fields(
    payload: BaseModel, *, keep_explicit_none: bool = False
) -> Dict[str, Any]:
    """
    Dump an input model using Trello field names.
    Unset values are dropped; with keep_explicit_none, fields the caller set to
    None are kept so Trello clears them.
    """
    if keep_explicit_none:
        return payload.model_dump(by_alias=True, exclude_unset=True)
    return payload.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "TRELLO_ID_PATTERN",
    "MAX_TEXT_LENGTH",
    "ListFilter",
    "CardFilter",
    "InputValidationError",
    "format_validation_error",
    "parse_input",
    "validate_trello_id",
    "require_text",
    "Label",
    "Member",
    "CheckItem",
    "Checklist",
    "Attachment",
    "Card",
    "TrelloList",
    "Board",
    "Action",
    "SearchResult",
    "TrelloId",
    "Position",
    "CreateCardInput",
    "UpdateCardInput",
    "MoveCardInput",
    "to_api_fields",
]
