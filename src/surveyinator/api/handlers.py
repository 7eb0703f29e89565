"""Request handlers for the two survey endpoints.

Handlers take the decoded JSON body and return the response payload. They
raise SurveyError subclasses for anything the caller should see.
"""

from typing import Any, Dict

from ..auth.tokens import issue_session_token, verify_token
from ..config import SurveyConfig
from ..database import SurveyRepository
from ..errors import BadRequest
from ..logging import get_logger, anonymize_participant
from ..survey.access import redeem_access_code
from ..survey.votes import build_vote_record

logger = get_logger(__name__)


def _absent(value: Any) -> bool:
    """Falsy scalars count as absent; empty objects and lists do not."""
    return value is None or (not value and not isinstance(value, (dict, list)))


def handle_start(config: SurveyConfig, repo: SurveyRepository, body: Dict[str, Any]) -> Dict[str, Any]:
    """POST /api/start: redeem an access code and issue a session token."""
    code_hash = redeem_access_code(repo, body.get("code"))
    token = issue_session_token(
        config.token_secret,
        code_hash,
        ttl_hours=config.token_ttl_hours,
    )
    return {"ok": True, "token": token}


def handle_vote(config: SurveyConfig, repo: SurveyRepository, body: Dict[str, Any]) -> Dict[str, Any]:
    """POST /api/vote: verify the session token and upsert one vote."""
    token = body.get("token")
    vote = body.get("vote")
    if _absent(token) or _absent(vote):
        raise BadRequest("Missing token or vote")

    verify_token(config.token_secret, str(token))

    record = build_vote_record(vote)
    repo.upsert_vote(record.id, **record.to_fields())
    logger.info(
        f"Vote stored: participant={anonymize_participant(record.participant_id)} "
        f"component={record.component} trial={record.trial_id}"
    )
    return {"ok": True}
