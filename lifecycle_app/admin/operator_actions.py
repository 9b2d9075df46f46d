"""
Operator-side profile updates.

Builders for the partial records a reviewer or operator writes to the
profile store. Hold and suspend are refused for accounts that are not
approved, so the store never receives a pending account on hold.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

import structlog

from ..errors import InvariantViolationError
from ..state.lifecycle import display_state, is_approved
from ..state.models import (
    ActivityStatus,
    ApprovalStatus,
    InvariantIssue,
    Profile,
)
from ..store.base import ProfileStore
from ..utils.time import format_timestamp

logger = structlog.get_logger(__name__)

_CLEARED_HOLD = {
    "hold_duration_days": None,
    "hold_start": None,
    "hold_end": None,
}


def _require_approved(profile: Profile, action: str) -> None:
    if is_approved(profile):
        return
    raise InvariantViolationError(
        f"Cannot {action} an account that is {display_state(profile).value}",
        issues=[InvariantIssue(
            field="approval_status",
            message=f"{action} requires an approved account",
            value=profile.approval_status.value
        )],
        context={"account_id": profile.account_id, "action": action}
    )


def approve_fields(employee_id: Optional[str] = None,
                   joining_date: Optional[datetime] = None) -> dict[str, Any]:
    """Approve a pending account; it starts out active."""
    fields = {
        "approval_status": ApprovalStatus.APPROVED.value,
        "activity_status": ActivityStatus.ACTIVE.value,
        "status_reason": None,
        **_CLEARED_HOLD,
    }
    if employee_id is not None:
        fields["employee_id"] = employee_id
    if joining_date is not None:
        fields["joining_date"] = format_timestamp(joining_date)
    return fields


def reject_fields(reason: str) -> dict[str, Any]:
    return {
        "approval_status": ApprovalStatus.REJECTED.value,
        "status_reason": reason,
    }


def hold_fields(profile: Profile, days: int, now: datetime,
                reason: Optional[str] = None) -> dict[str, Any]:
    """
    Put an approved account on hold for a whole number of days.

    hold_end is always written so clients never have to derive it.
    """
    _require_approved(profile, "hold")
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValueError("Hold duration must be a positive number of days")

    return {
        "activity_status": ActivityStatus.HOLD.value,
        "hold_duration_days": days,
        "hold_start": format_timestamp(now),
        "hold_end": format_timestamp(now + timedelta(days=days)),
        "status_reason": reason,
    }


def suspend_fields(profile: Profile, reason: Optional[str] = None) -> dict[str, Any]:
    _require_approved(profile, "suspend")
    return {
        "activity_status": ActivityStatus.SUSPEND.value,
        "status_reason": reason,
        **_CLEARED_HOLD,
    }


def lift_fields(reason: Optional[str] = None) -> dict[str, Any]:
    """Return a held or suspended account to active."""
    return {
        "activity_status": ActivityStatus.ACTIVE.value,
        "status_reason": reason,
        **_CLEARED_HOLD,
    }


async def apply_operator_action(store: ProfileStore, account_id: str,
                                fields: Mapping[str, Any]) -> None:
    """Write an operator update; store errors propagate to the caller."""
    logger.info(
        "Applying operator action",
        account_id=account_id,
        approval_status=fields.get("approval_status"),
        activity_status=fields.get("activity_status")
    )
    await store.update_profile(account_id, fields)
