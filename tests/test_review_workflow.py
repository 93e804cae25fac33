import pytest

from kyc_backend.enums import RecordStatus, ReviewAction
from kyc_backend.exceptions import InvalidTransitionError
from kyc_backend.review_workflow import (
    TRANSITIONS,
    can_transition,
    check_reopen_allowed,
    next_status_for,
    record_history,
)


def test_every_status_has_transitions_entry():
    assert set(TRANSITIONS) == set(RecordStatus)


def test_forward_path():
    assert can_transition(RecordStatus.PENDING, RecordStatus.PROCESSING)
    assert can_transition(RecordStatus.PROCESSING, RecordStatus.REVIEWABLE)
    assert can_transition(RecordStatus.REVIEWABLE, RecordStatus.APPROVED)
    assert not can_transition(RecordStatus.APPROVED, RecordStatus.REJECTED)
    assert not can_transition(RecordStatus.REVIEWABLE, RecordStatus.PENDING)


@pytest.mark.parametrize("status", [s for s in RecordStatus if s is not RecordStatus.REVIEWABLE])
def test_only_reviewable_can_be_decided(status):
    with pytest.raises(InvalidTransitionError):
        next_status_for(status, ReviewAction.APPROVE)


def test_decision_targets():
    assert next_status_for(RecordStatus.REVIEWABLE, ReviewAction.APPROVE) is RecordStatus.APPROVED
    assert next_status_for(RecordStatus.REVIEWABLE, ReviewAction.REJECT) is RecordStatus.REJECTED


def test_reopen_policy():
    check_reopen_allowed(RecordStatus.APPROVED, 5, None)
    check_reopen_allowed(RecordStatus.REJECTED, 1, 2)
    with pytest.raises(InvalidTransitionError):
        check_reopen_allowed(RecordStatus.REJECTED, 2, 2)
    with pytest.raises(InvalidTransitionError):
        check_reopen_allowed(RecordStatus.REVIEWABLE, 0, None)


def test_record_history_returns_new_list():
    history = [{"user": "a", "action": "APPROVED", "comment": None}]
    updated = record_history(history, "b", "REOPENED", "recheck")
    assert len(history) == 1
    assert updated[-1]["user"] == "b"
    assert updated[-1]["comment"] == "recheck"
