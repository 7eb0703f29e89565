"""Repository for Surveyinator database operations."""

from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker, Session

from ..logging import get_logger, anonymize_code_hash, anonymize_participant
from .models import Base, AccessCode, Vote

logger = get_logger(__name__)

VOTE_COLUMNS = (
    "participant_id",
    "component",
    "trial_id",
    "left_method_id",
    "right_method_id",
    "preferred",
    "timestamp_utc",
    "user_agent",
    "page_url",
    "received_at",
)


class SurveyRepository:
    """Repository for access codes and preference votes."""

    def __init__(self, engine):
        self.engine = engine
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)
        logger.info("Survey repository initialized")

    @contextmanager
    def get_session(self) -> Session:
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ==================== Access Codes ====================

    def get_access_code(self, code_hash: str) -> Optional[AccessCode]:
        """Get an access code row by its hash."""
        with self.get_session() as session:
            code = session.get(AccessCode, code_hash)
            if code:
                session.expunge(code)
            return code

    def create_access_code(
        self,
        code_hash: str,
        uses_remaining: int = None,
        expires_at: str = None,
        label: str = None,
        active: bool = True,
    ) -> AccessCode:
        """Create or update an access code.

        Args:
            code_hash: SHA-256 hex digest of the plaintext code
            uses_remaining: Remaining redemptions, None for unlimited
            expires_at: ISO-8601 expiry timestamp, None for no expiry
            label: Free-form operator note (e.g., cohort name)
            active: Whether the code may be redeemed

        Returns:
            The created or updated AccessCode
        """
        with self.get_session() as session:
            code = session.get(AccessCode, code_hash)
            if code:
                code.uses_remaining = uses_remaining
                code.expires_at = expires_at
                code.label = label
                code.active = active
            else:
                code = AccessCode(
                    code_hash=code_hash,
                    uses_remaining=uses_remaining,
                    expires_at=expires_at,
                    label=label,
                    active=active,
                )
                session.add(code)
            session.flush()
            session.expunge(code)
            logger.info(f"Stored access code {anonymize_code_hash(code_hash)}")
            return code

    def set_access_code_active(self, code_hash: str, active: bool) -> bool:
        """Activate or deactivate an access code. Returns False if not found."""
        with self.get_session() as session:
            code = session.get(AccessCode, code_hash)
            if code:
                code.active = active
                return True
            return False

    def decrement_uses_remaining(self, code_hash: str) -> bool:
        """Consume one use of a limited access code.

        Runs as a single UPDATE guarded by ``uses_remaining > 0`` so that
        concurrent redemptions can never drive the counter negative.

        Returns:
            True if a row was decremented
        """
        with self.get_session() as session:
            updated = session.query(AccessCode).filter(
                AccessCode.code_hash == code_hash,
                AccessCode.uses_remaining.isnot(None),
                AccessCode.uses_remaining > 0,
            ).update(
                {AccessCode.uses_remaining: AccessCode.uses_remaining - 1},
                synchronize_session=False,
            )
            return updated > 0

    def delete_access_code(self, code_hash: str) -> bool:
        """Delete an access code."""
        with self.get_session() as session:
            code = session.get(AccessCode, code_hash)
            if code:
                session.delete(code)
                return True
            return False

    def list_access_codes(self, active_only: bool = False) -> List[AccessCode]:
        """List access codes, newest first."""
        with self.get_session() as session:
            query = session.query(AccessCode)
            if active_only:
                query = query.filter(AccessCode.active == True)  # noqa: E712
            codes = query.order_by(AccessCode.created_at.desc()).all()
            for c in codes:
                session.expunge(c)
            return codes

    # ==================== Votes ====================

    def upsert_vote(self, vote_id: str, **fields) -> None:
        """Insert a vote, or overwrite every field if the id already exists.

        Args:
            vote_id: Composite key "<participant>__<component>__<trial>"
            **fields: Values for each name in VOTE_COLUMNS
        """
        values = {"id": vote_id}
        for column in VOTE_COLUMNS:
            values[column] = fields.get(column)
        values["user_agent"] = values["user_agent"] or ""
        values["page_url"] = values["page_url"] or ""

        dialect = self.engine.dialect.name
        with self.get_session() as session:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(Vote).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Vote.id],
                    set_={column: stmt.excluded[column] for column in VOTE_COLUMNS},
                )
                session.execute(stmt)
            else:
                session.merge(Vote(**values))

        logger.debug(
            f"Recorded vote trial={values['trial_id']} component={values['component']} "
            f"participant={anonymize_participant(values['participant_id'])}"
        )

    def get_vote(self, vote_id: str) -> Optional[Vote]:
        """Get a vote by id."""
        with self.get_session() as session:
            vote = session.get(Vote, vote_id)
            if vote:
                session.expunge(vote)
            return vote

    def get_votes(
        self,
        participant_id: str = None,
        component: str = None,
    ) -> List[Vote]:
        """Get votes in trial order, optionally filtered by participant and component."""
        with self.get_session() as session:
            query = session.query(Vote)
            if participant_id is not None:
                query = query.filter(Vote.participant_id == participant_id)
            if component is not None:
                query = query.filter(Vote.component == component)
            votes = query.order_by(Vote.trial_id, Vote.received_at).all()
            for v in votes:
                session.expunge(v)
            return votes

    def count_votes(self, participant_id: str = None) -> int:
        """Count stored votes."""
        with self.get_session() as session:
            query = session.query(func.count(Vote.id))
            if participant_id is not None:
                query = query.filter(Vote.participant_id == participant_id)
            return query.scalar() or 0

    def delete_votes_for_participant(self, participant_id: str) -> int:
        """Delete all votes of a participant. Returns the number removed."""
        with self.get_session() as session:
            deleted = session.query(Vote).filter(
                Vote.participant_id == participant_id
            ).delete(synchronize_session=False)
            return deleted
