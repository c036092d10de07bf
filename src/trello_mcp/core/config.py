from __future__ import annotations

import os
from typing import Optional, Tuple

from dotenv import load_dotenv

from .client import DEFAULT_TIMEOUT_SECONDS, RetryPolicy, TrelloClient

API_KEY_ENV = "TRELLO_API_KEY"
TOKEN_ENV = "TRELLO_TOKEN"
MAX_RETRIES_ENV = "TRELLO_MAX_RETRIES"
BASE_DELAY_MS_ENV = "TRELLO_BASE_DELAY_MS"
MAX_DELAY_MS_ENV = "TRELLO_MAX_DELAY_MS"
TIMEOUT_SECONDS_ENV = "TRELLO_TIMEOUT_SECONDS"

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10000


def load_env_config(*, use_dotenv: bool = True) -> Tuple[str, str]:
    """Load the Trello API key and token from environment (optional .env)."""
    if use_dotenv:
        load_dotenv()
    api_key = os.getenv(API_KEY_ENV, "").strip()
    token = os.getenv(TOKEN_ENV, "").strip()
    return api_key, token


def _number_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {raw!r}")
    return value


def load_retry_policy() -> RetryPolicy:
    """Build a RetryPolicy from TRELLO_MAX_RETRIES / TRELLO_*_DELAY_MS (ms)."""
    max_retries = _number_env(MAX_RETRIES_ENV, DEFAULT_MAX_RETRIES)
    if not float(max_retries).is_integer():
        raise ValueError(f"{MAX_RETRIES_ENV} must be an integer")
    base_delay_ms = _number_env(BASE_DELAY_MS_ENV, DEFAULT_BASE_DELAY_MS)
    max_delay_ms = _number_env(MAX_DELAY_MS_ENV, DEFAULT_MAX_DELAY_MS)
    return RetryPolicy(
        max_retries=int(max_retries),
        base_delay=base_delay_ms / 1000,
        max_delay=max_delay_ms / 1000,
    )


def load_timeout_seconds() -> float:
    return _number_env(TIMEOUT_SECONDS_ENV, DEFAULT_TIMEOUT_SECONDS)


def create_client_from_env(
    *, retry: Optional[RetryPolicy] = None, **kwargs
) -> TrelloClient:
    """Create a TrelloClient from environment variables."""
    api_key, token = load_env_config()
    if not api_key or not token:
        raise ValueError(f"Missing {API_KEY_ENV} or {TOKEN_ENV} in environment.")
    kwargs.setdefault("timeout_seconds", load_timeout_seconds())
    return TrelloClient(
        api_key=api_key,
        token=token,
        retry=retry if retry is not None else load_retry_policy(),
        **kwargs,
    )


__all__ = [
    "load_env_config",
    "load_retry_policy",
    "load_timeout_seconds",
    "create_client_from_env",
    "API_KEY_ENV",
    "TOKEN_ENV",
]
