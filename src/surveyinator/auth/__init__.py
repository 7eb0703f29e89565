"""Access-code hashing and signed session tokens."""

from .tokens import (
    DEFAULT_TOKEN_TTL_HOURS,
    hash_access_code,
    make_token,
    issue_session_token,
    verify_token,
)

__all__ = [
    "DEFAULT_TOKEN_TTL_HOURS",
    "hash_access_code",
    "make_token",
    "issue_session_token",
    "verify_token",
]
