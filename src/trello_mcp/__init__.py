"""trello_mcp package exports."""

from .core import (
    Credentials,
    ErrorKind,
    RateLimitInfo,
    RetryPolicy,
    TrelloClient,
    TrelloError,
    TrelloResponse,
    create_client_from_env,
    discover_tool_modules,
    register_discovered_tools,
)

__all__ = [
    # Client
    "TrelloClient",
    "Credentials",
    "RetryPolicy",
    "RateLimitInfo",
    "TrelloResponse",
    # Exceptions
    "TrelloError",
    "ErrorKind",
    # Server utilities
    "create_client_from_env",
    "discover_tool_modules",
    "register_discovered_tools",
]
