"""Core domain surface for trello-mcp (transport-agnostic)."""

from .client import (
    Credentials,
    RateLimitInfo,
    RetryPolicy,
    TrelloClient,
    TrelloResponse,
    build_query_params,
)
from .config import (
    create_client_from_env,
    load_env_config,
    load_retry_policy,
    load_timeout_seconds,
)
from .errors import (
    ErrorKind,
    TrelloAuthenticationError,
    TrelloAuthorizationError,
    TrelloError,
    TrelloNetworkError,
    TrelloNotFoundError,
    TrelloRateLimitError,
    TrelloServerError,
    TrelloTimeoutError,
    TrelloUnknownError,
    TrelloValidationError,
    classify_exception,
    classify_response,
)
from .models import InputValidationError
from .registry import (
    discover_tool_modules,
    iter_tool_functions,
    register_discovered_tools,
)

__all__ = [
    # Client
    "TrelloClient",
    "Credentials",
    "RetryPolicy",
    "RateLimitInfo",
    "TrelloResponse",
    "build_query_params",
    # Errors
    "ErrorKind",
    "TrelloError",
    "TrelloAuthenticationError",
    "TrelloAuthorizationError",
    "TrelloNotFoundError",
    "TrelloRateLimitError",
    "TrelloValidationError",
    "TrelloNetworkError",
    "TrelloTimeoutError",
    "TrelloServerError",
    "TrelloUnknownError",
    "InputValidationError",
    "classify_response",
    "classify_exception",
    # Config helpers
    "create_client_from_env",
    "load_env_config",
    "load_retry_policy",
    "load_timeout_seconds",
    # Registry helpers
    "discover_tool_modules",
    "iter_tool_functions",
    "register_discovered_tools",
]
