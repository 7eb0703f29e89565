"""Champion-vs-challenger pairing for pairwise surveys.

Each participant works through one component at a time. The first trial
shows the first two methods; afterwards the method preferred in the last
trial (the champion) stays on the left and faces a method that has not yet
appeared for that participant and component. The component is complete once
every method has appeared.
"""

import ctypes
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .votes import LEFT

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2 ** 32


def _field(row: Any, name: str) -> Any:
    # History rows are either request dicts or Vote/VoteRecord objects
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def champion_of(row: Any) -> str:
    """Return the method id preferred in a history row."""
    if _field(row, "preferred") == LEFT:
        return _field(row, "left_method_id")
    return _field(row, "right_method_id")


def rows_for(participant_id: str, component: str, history: Iterable[Any]) -> List[Any]:
    """History rows for one participant and component, in submission order."""
    return [
        r for r in history
        if _field(r, "participant_id") == participant_id and _field(r, "component") == component
    ]


def next_pair(
    participant_id: str,
    component: str,
    method_ids: Sequence[str],
    history: Iterable[Any],
) -> Optional[Tuple[str, str]]:
    """Pick the next (left, right) pair to show, or None when done.

    Args:
        participant_id: Participant being surveyed
        component: Component tab (e.g., "action_space")
        method_ids: Methods that have data for this component, in display order
        history: All votes seen so far, oldest first

    Returns:
        (champion, challenger) tuple, or None if fewer than two methods exist
        or every method has already appeared
    """
    if len(method_ids) < 2:
        return None

    rows = rows_for(participant_id, component, history)
    if not rows:
        return (method_ids[0], method_ids[1])

    champion = champion_of(rows[-1])

    appeared = set()
    for r in rows:
        appeared.add(_field(r, "left_method_id"))
        appeared.add(_field(r, "right_method_id"))

    unseen = [m for m in method_ids if m not in appeared and m != champion]
    if not unseen:
        return None

    return (champion, unseen[len(rows) % len(unseen)])


def is_complete(
    participant_id: str,
    component: str,
    method_ids: Sequence[str],
    history: Iterable[Any],
) -> bool:
    """True when no further pair remains for this participant and component."""
    return next_pair(participant_id, component, method_ids, history) is None


def next_trial_id(participant_id: str, history: Iterable[Any]) -> int:
    """Next trial number for a participant, counted across all components."""
    trials = [
        int(_field(r, "trial_id"))
        for r in history
        if _field(r, "participant_id") == participant_id
    ]
    return max(trials, default=0) + 1


def seed_for(*parts: str) -> int:
    """Derive a stable 32-bit seed from string parts.

    Uses the classic ``h * 31 + c`` string hash with int32 wraparound, so the
    same participant and component always get the same seed.
    """
    text = ":".join(str(p) for p in parts)
    hash_val = 0
    for char in text:
        hash_val = ((hash_val << 5) - hash_val) + ord(char)
        hash_val = ctypes.c_int32(hash_val).value
    return hash_val


def stable_shuffle(items: Sequence[Any], seed: int) -> List[Any]:
    """Fisher-Yates shuffle driven by a 32-bit linear congruential generator.

    Returns a new list; the input is not modified.
    """
    result = list(items)
    state = seed % LCG_MODULUS
    for i in range(len(result) - 1, 0, -1):
        state = (LCG_MULTIPLIER * state + LCG_INCREMENT) % LCG_MODULUS
        j = state % (i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def method_order(
    participant_id: str,
    component: str,
    method_ids: Sequence[str],
    shuffle: bool = True,
) -> List[str]:
    """Presentation order of methods for one participant and component.

    With shuffle=False the manifest order is kept.
    """
    if not shuffle:
        return list(method_ids)
    return stable_shuffle(method_ids, seed_for(participant_id, component))
