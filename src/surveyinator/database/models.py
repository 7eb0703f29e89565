"""Database models for Surveyinator."""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, CheckConstraint, Index
from sqlalchemy.orm import declarative_base


def utc_now():
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


Base = declarative_base()


class AccessCode(Base):
    """Survey entry credential, stored by SHA-256 hash only.

    uses_remaining NULL means unlimited uses. expires_at is an ISO-8601
    string so operators can edit rows by hand.
    """

    __tablename__ = "access_codes"

    code_hash = Column(String(64), primary_key=True)
    active = Column(Boolean, nullable=False, default=True)
    uses_remaining = Column(Integer, nullable=True)
    expires_at = Column(String(40), nullable=True)
    label = Column(String(200))
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return (
            f"<AccessCode(hash={self.code_hash[:8]}..., active={self.active}, "
            f"uses_remaining={self.uses_remaining})>"
        )


class Vote(Base):
    """A single pairwise preference from one participant.

    The primary key is "<participant>__<component>__<trial>", so resubmitting
    the same trial overwrites instead of duplicating.
    """

    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("preferred IN ('left', 'right')", name="ck_votes_preferred"),
        Index("ix_votes_participant_component", "participant_id", "component"),
    )

    id = Column(String(400), primary_key=True)
    participant_id = Column(String(128), nullable=False)
    component = Column(String(128), nullable=False)
    trial_id = Column(Integer, nullable=False)
    left_method_id = Column(String(128), nullable=False)
    right_method_id = Column(String(128), nullable=False)
    preferred = Column(String(5), nullable=False)
    timestamp_utc = Column(String(40), nullable=False)
    user_agent = Column(Text, default="")
    page_url = Column(Text, default="")
    received_at = Column(String(40), nullable=False)

    def __repr__(self):
        return f"<Vote(id={self.id}, preferred={self.preferred})>"
