"""Status machine for verification records."""
from __future__ import annotations

from typing import Dict, List, Optional

from .enums import RecordStatus, ReviewAction
from .exceptions import InvalidTransitionError
from .models import utcnow

TRANSITIONS = {
    RecordStatus.PENDING: [RecordStatus.PROCESSING, RecordStatus.REVIEWABLE],
    RecordStatus.PROCESSING: [RecordStatus.REVIEWABLE],
    RecordStatus.REVIEWABLE: [RecordStatus.APPROVED, RecordStatus.REJECTED],
    # Only reachable through the administrative reopen action.
    RecordStatus.APPROVED: [RecordStatus.REVIEWABLE],
    RecordStatus.REJECTED: [RecordStatus.REVIEWABLE],
}

_missing = set(RecordStatus) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"Status machine has no entry for: {sorted(s.value for s in _missing)}")

DECISION_TARGETS = {
    ReviewAction.APPROVE: RecordStatus.APPROVED,
    ReviewAction.REJECT: RecordStatus.REJECTED,
}


def can_transition(current: RecordStatus, target: RecordStatus) -> bool:
    return target in TRANSITIONS.get(current, [])


def next_status_for(current: RecordStatus, action: ReviewAction) -> RecordStatus:
    """Target status for a review decision; only reviewable records may be decided."""
    target = DECISION_TARGETS[action]
    if current is not RecordStatus.REVIEWABLE or not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot {action.value} a record in status '{current.value}'"
        )
    return target


def check_reopen_allowed(current: RecordStatus, reopen_count: int, max_reopens: Optional[int]) -> None:
    if not current.is_terminal:
        raise InvalidTransitionError(f"Cannot reopen a record in status '{current.value}'")
    if max_reopens is not None and reopen_count >= max_reopens:
        raise InvalidTransitionError(
            f"Reopen limit reached ({reopen_count} of {max_reopens})"
        )


def record_history(history: List[Dict[str, str]] | None, user: str, action: str, comment: str | None) -> List[Dict[str, str]]:
    # New list so the JSON column registers the change
    history = list(history or [])
    history.append({
        "user": user,
        "action": action,
        "comment": comment,
        "at": utcnow().isoformat() + "Z",
    })
    return history
