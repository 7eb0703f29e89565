"""Database models and repository for Surveyinator."""

from .models import Base, AccessCode, Vote
from .engine import create_database_engine
from .repository import SurveyRepository

__all__ = [
    "Base",
    "AccessCode",
    "Vote",
    "create_database_engine",
    "SurveyRepository",
]
