"""Vote payload validation and normalization."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import BadRequest

REQUIRED_FIELDS = (
    "participant_id",
    "component",
    "trial_id",
    "left_method_id",
    "right_method_id",
    "preferred",
    "timestamp_utc",
)

LEFT = "left"
RIGHT = "right"

# Older survey builds stacked the options vertically
PREFERRED_ALIASES = {
    "left": LEFT,
    "top": LEFT,
    "right": RIGHT,
    "bottom": RIGHT,
}


@dataclass
class VoteRecord:
    """A validated vote ready to be stored."""

    id: str
    participant_id: str
    component: str
    trial_id: int
    left_method_id: str
    right_method_id: str
    preferred: str
    timestamp_utc: str
    received_at: str
    user_agent: str = ""
    page_url: str = ""

    @property
    def preferred_method_id(self) -> str:
        return self.left_method_id if self.preferred == LEFT else self.right_method_id

    def to_fields(self) -> Dict[str, Any]:
        """Column values without the id, as accepted by SurveyRepository.upsert_vote."""
        fields = asdict(self)
        fields.pop("id")
        return fields


def utc_iso_now() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_preferred(value: Any) -> str:
    """Map a submitted preference to "left" or "right".

    Raises:
        BadRequest: If the value is not one of left/right/top/bottom
    """
    key = str(value if value is not None else "").strip().lower()
    try:
        return PREFERRED_ALIASES[key]
    except KeyError:
        raise BadRequest("preferred must be one of: left/right (or top/bottom)")


def parse_trial_id(value: Any) -> int:
    """Coerce a submitted trial id to int.

    Raises:
        BadRequest: If the value is not integral
    """
    if isinstance(value, bool):
        raise BadRequest("trial_id must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise BadRequest("trial_id must be an integer")
    try:
        return int(str(value).strip())
    except ValueError:
        raise BadRequest("trial_id must be an integer")


def vote_id(participant_id: str, component: str, trial_id: int) -> str:
    """Composite primary key for a vote."""
    return f"{participant_id}__{component}__{trial_id}"


def _missing(value: Any) -> bool:
    return value is None or value == ""


def build_vote_record(payload: Dict[str, Any], received_at: Optional[str] = None) -> VoteRecord:
    """Validate a raw vote payload and build the record to store.

    Args:
        payload: The "vote" object from the request body. Anything else
            is treated as an object with no fields.
        received_at: Server receive time (default: now, UTC ISO-8601)

    Returns:
        VoteRecord with normalized preference and composite id

    Raises:
        BadRequest: On missing fields, bad preference or non-integer trial id
    """
    if not isinstance(payload, dict):
        payload = {}

    for name in REQUIRED_FIELDS:
        if _missing(payload.get(name)):
            raise BadRequest(f"Missing field: {name}")

    preferred = normalize_preferred(payload["preferred"])
    participant = str(payload["participant_id"])
    component = str(payload["component"])
    trial = parse_trial_id(payload["trial_id"])

    return VoteRecord(
        id=vote_id(participant, component, trial),
        participant_id=participant,
        component=component,
        trial_id=trial,
        left_method_id=str(payload["left_method_id"]),
        right_method_id=str(payload["right_method_id"]),
        preferred=preferred,
        timestamp_utc=str(payload["timestamp_utc"]),
        user_agent=str(payload.get("user_agent") or ""),
        page_url=str(payload.get("page_url") or ""),
        received_at=received_at or utc_iso_now(),
    )
