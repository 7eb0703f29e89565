"""Access-code redemption."""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateparser

from ..auth.tokens import hash_access_code
from ..errors import BadRequest, Forbidden, ServerError
from ..logging import get_logger, anonymize_code_hash

logger = get_logger(__name__)


def parse_expires_at(value: str) -> datetime:
    """Parse a stored expiry timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    parsed = dateparser.isoparse(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def code_text(value) -> str:
    """Render a submitted code as text, spelling JSON scalars the way JSON does."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def redeem_access_code(repo, code: str, now: Optional[datetime] = None) -> str:
    """Check an access code and consume one use of it.

    Args:
        repo: SurveyRepository
        code: Plaintext code as entered by the participant
        now: Current time (default: UTC now)

    Returns:
        The code hash, for embedding in the session token

    Raises:
        BadRequest: If no code was given
        Forbidden: If the code is unknown, inactive, used up or expired
        ServerError: If the stored expiry cannot be parsed
    """
    code = code_text(code or "").strip()
    if not code:
        raise BadRequest("Missing code")

    code_hash = hash_access_code(code)
    row = repo.get_access_code(code_hash)
    if not row:
        logger.info("Rejected unknown access code")
        raise Forbidden("Invalid code")

    if not row.active:
        raise Forbidden("Code inactive")

    if row.uses_remaining is not None and row.uses_remaining <= 0:
        raise Forbidden("Code has no remaining uses")

    if row.expires_at:
        try:
            expires = parse_expires_at(row.expires_at)
        except (ValueError, OverflowError):
            logger.error(f"Unparseable expires_at for {anonymize_code_hash(code_hash)}")
            raise ServerError("Bad expires_at format in DB")
        if (now or datetime.now(timezone.utc)) > expires:
            raise Forbidden("Code expired")

    if row.uses_remaining is not None:
        repo.decrement_uses_remaining(code_hash)

    logger.info(f"Redeemed access code {anonymize_code_hash(code_hash)}")
    return code_hash
