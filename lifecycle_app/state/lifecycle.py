"""
Lifecycle predicates over a profile snapshot.

Pure functions only: no I/O and no logging. The activity axis is only
consulted once the account is approved; before approval an "active" value
is a placeholder and is disregarded.
"""

from typing import Optional

from .models import (
    ActivityStatus,
    ApprovalStatus,
    Destination,
    DisplayState,
    InvariantIssue,
    Profile,
    collect_invariant_issues,
)

COMPLETION_BY_STATE = {
    DisplayState.APPROVED: 100,
    DisplayState.ACTIVE: 100,
    DisplayState.HOLD: 75,
    DisplayState.SUSPEND: 75,
    DisplayState.PENDING: 50,
    DisplayState.REJECTED: 25,
}

DESTINATION_BY_STATE = {
    DisplayState.APPROVED: Destination.MAIN_APP,
    DisplayState.ACTIVE: Destination.MAIN_APP,
    DisplayState.HOLD: Destination.HOLD,
    DisplayState.SUSPEND: Destination.SUSPENDED,
    DisplayState.PENDING: Destination.PENDING,
    DisplayState.REJECTED: Destination.REJECTED,
}


def is_pending(profile: Profile) -> bool:
    return profile.approval_status == ApprovalStatus.PENDING


def is_approved(profile: Profile) -> bool:
    return profile.approval_status == ApprovalStatus.APPROVED


def is_rejected(profile: Profile) -> bool:
    return profile.approval_status == ApprovalStatus.REJECTED


def is_on_hold(profile: Profile) -> bool:
    return is_approved(profile) and profile.activity_status == ActivityStatus.HOLD


def is_suspended(profile: Profile) -> bool:
    return is_approved(profile) and profile.activity_status == ActivityStatus.SUSPEND


def is_active(profile: Profile) -> bool:
    return is_approved(profile) and profile.activity_status == ActivityStatus.ACTIVE


def display_state(profile: Profile) -> DisplayState:
    """
    Effective state: the activity axis once approved, else the approval axis.

    An approved profile with no activity value yet displays as APPROVED.
    """
    if is_approved(profile):
        if profile.activity_status is None:
            return DisplayState.APPROVED
        return DisplayState(profile.activity_status.value)
    return DisplayState(profile.approval_status.value)


def destination_for(profile: Profile) -> Destination:
    """Screen an account in this state belongs on."""
    return DESTINATION_BY_STATE[display_state(profile)]


def completion_percentage(profile: Optional[Profile]) -> int:
    """Progress value for display; 0 when no profile is known."""
    if profile is None:
        return 0
    return COMPLETION_BY_STATE[display_state(profile)]


def validate_profile(profile: Profile) -> list[InvariantIssue]:
    """
    Re-check the lifecycle invariants of a profile.

    Returns an empty list for a valid record. Nothing is repaired; the
    caller decides whether to trust or discard the record.
    """
    return collect_invariant_issues(
        profile.approval_status,
        profile.activity_status,
        profile.hold_start,
        profile.hold_end,
        profile.hold_duration_days,
    )
