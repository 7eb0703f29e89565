"""Surveyinator - backend for pairwise expert preference surveys.

This package provides:
- Access-code redemption and HMAC-signed session tokens
- Vote validation and idempotent storage (SQLAlchemy + optional SQLCipher)
- Champion-vs-challenger pairing of compared methods
- FastAPI edge API (POST /api/start, POST /api/vote)
- Survey API client and Click-based operator CLI
- Privacy-safe logging
"""

__version__ = "0.1.0"

from .logging import setup_logging, get_logger

from .errors import SurveyError, BadRequest, Forbidden, TokenError, ConfigError
from .config import SurveyConfig

from .auth import hash_access_code, issue_session_token, verify_token

from .database import AccessCode, Vote, SurveyRepository, create_database_engine

from .survey import next_pair, next_trial_id, build_vote_record, redeem_access_code

__all__ = [
    "__version__",
    "setup_logging",
    "get_logger",
    # Errors and config
    "SurveyError",
    "BadRequest",
    "Forbidden",
    "TokenError",
    "ConfigError",
    "SurveyConfig",
    # Tokens
    "hash_access_code",
    "issue_session_token",
    "verify_token",
    # Database
    "AccessCode",
    "Vote",
    "SurveyRepository",
    "create_database_engine",
    # Survey logic
    "next_pair",
    "next_trial_id",
    "build_vote_record",
    "redeem_access_code",
]
