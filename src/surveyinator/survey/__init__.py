"""Survey logic: access-code redemption, vote validation and pairing."""

from .access import redeem_access_code
from .votes import (
    REQUIRED_FIELDS,
    VoteRecord,
    build_vote_record,
    normalize_preferred,
    vote_id,
)
from .tournament import (
    next_pair,
    next_trial_id,
    is_complete,
    method_order,
    stable_shuffle,
    seed_for,
)

__all__ = [
    "redeem_access_code",
    "REQUIRED_FIELDS",
    "VoteRecord",
    "build_vote_record",
    "normalize_preferred",
    "vote_id",
    "next_pair",
    "next_trial_id",
    "is_complete",
    "method_order",
    "stable_shuffle",
    "seed_for",
]
