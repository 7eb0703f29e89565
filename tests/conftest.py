"""Shared fixtures for Surveyinator tests."""

import os
import pytest

# Set test environment variables before imports
os.environ.setdefault('TOKEN_SECRET', 'test-token-secret')
os.environ.pop('ENCRYPTION_KEY', None)

from surveyinator.auth.tokens import hash_access_code
from surveyinator.config import SurveyConfig
from surveyinator.database import SurveyRepository, create_database_engine

ALLOWED_ORIGIN = "https://survey.example.org"


# ==================== Database Fixtures ====================

@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine shared across threads."""
    return create_database_engine(":memory:")


@pytest.fixture
def repo(in_memory_engine):
    """SurveyRepository backed by an in-memory database."""
    return SurveyRepository(in_memory_engine)


# ==================== Config Fixtures ====================

@pytest.fixture
def token_secret():
    return "test-token-secret"


@pytest.fixture
def allowed_origin():
    return ALLOWED_ORIGIN


@pytest.fixture
def config(token_secret, allowed_origin):
    """Survey config with one allowed origin."""
    return SurveyConfig(
        token_secret=token_secret,
        allowed_origins=[allowed_origin],
        db_path=":memory:",
    )


# ==================== Survey Data Fixtures ====================

@pytest.fixture
def sample_code():
    """Plaintext access code."""
    return "TOPA-EXPERT-2024"


@pytest.fixture
def sample_code_hash(sample_code):
    return hash_access_code(sample_code)


@pytest.fixture
def method_ids():
    """Methods compared in the survey, in manifest order."""
    return ["baseline", "rag", "topa", "cot"]


@pytest.fixture
def sample_vote():
    """A valid vote payload as sent by the survey page."""
    return {
        "participant_id": "P004211",
        "component": "action_space",
        "trial_id": 1,
        "left_method_id": "baseline",
        "right_method_id": "rag",
        "preferred": "left",
        "timestamp_utc": "2024-05-01T10:00:00.000Z",
        "user_agent": "Mozilla/5.0",
        "page_url": "https://survey.example.org/",
    }


@pytest.fixture
def clean_env():
    """Clean environment for testing - removes survey env vars."""
    env_vars = [
        "TOKEN_SECRET",
        "ALLOWED_ORIGINS",
        "DB_PATH",
        "ENCRYPTION_KEY",
        "REQUIRE_ENCRYPTION",
        "TOKEN_TTL_HOURS",
        "HOST",
        "PORT",
        "LOG_LEVEL",
        "LOG_SENSITIVE",
    ]
    original = {k: os.environ.get(k) for k in env_vars}
    for k in env_vars:
        os.environ.pop(k, None)
    yield
    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)
