"""
Data models for the account lifecycle state machine.

This module defines the immutable profile snapshot, the status vocabulary
of both status axes, the events the reconciliation engine consumes, and the
decision it produces for the hosting screen.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ..errors import InvariantViolationError


class ApprovalStatus(str, Enum):
    """One-time review outcome. PENDING is the only non-terminal value."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ActivityStatus(str, Enum):
    """Ongoing operational status, meaningful only after approval."""
    ACTIVE = "active"
    HOLD = "hold"
    SUSPEND = "suspend"


class DisplayState(str, Enum):
    """Effective state shown to the account holder."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    HOLD = "hold"
    SUSPEND = "suspend"


class Destination(str, Enum):
    """Screens the reconciliation engine can route to."""
    MAIN_APP = "main_app"
    PENDING = "pending"
    HOLD = "hold"
    SUSPENDED = "suspended"
    REJECTED = "rejected"
    LOGIN = "login"
    PROFILE_CREATION = "profile_creation"


class DecisionAction(str, Enum):
    """What the hosting screen should do with a reconciliation result."""
    REDIRECT = "redirect"       # navigate to decision.destination
    STAY = "stay"               # re-render with the latest record
    NOOP = "noop"               # identical re-delivery, nothing changes
    IGNORE = "ignore"           # stale or untrusted record discarded
    REQUEST_UPDATE = "request_update"  # send decision.update_fields to the store
    REJECT = "reject"           # user action refused locally


@dataclass(frozen=True)
class InvariantIssue:
    """A single invariant a profile record fails."""
    field: str
    message: str
    value: Any = None


def collect_invariant_issues(
    approval_status: Any,
    activity_status: Any,
    hold_start: Optional[datetime],
    hold_end: Optional[datetime],
    hold_duration_days: Any,
) -> list[InvariantIssue]:
    """Check the lifecycle invariants over raw status fields."""
    issues = []

    if not isinstance(approval_status, ApprovalStatus):
        issues.append(InvariantIssue(
            field="approval_status",
            message="Must be exactly one of pending, approved, rejected",
            value=approval_status
        ))

    if activity_status is not None and not isinstance(activity_status, ActivityStatus):
        issues.append(InvariantIssue(
            field="activity_status",
            message="Must be one of active, hold, suspend",
            value=activity_status
        ))

    if (approval_status == ApprovalStatus.PENDING and
            activity_status in (ActivityStatus.HOLD, ActivityStatus.SUSPEND)):
        issues.append(InvariantIssue(
            field="activity_status",
            message="A pending account cannot be on hold or suspended",
            value=activity_status
        ))

    if (hold_start is None) != (hold_end is None):
        issues.append(InvariantIssue(
            field="hold_start/hold_end",
            message="Hold start and end must be set together",
            value=(hold_start, hold_end)
        ))
    elif hold_start is not None and hold_end <= hold_start:
        issues.append(InvariantIssue(
            field="hold_end",
            message="Hold end must be after hold start",
            value=(hold_start, hold_end)
        ))

    on_hold = activity_status == ActivityStatus.HOLD
    if on_hold and hold_end is None:
        issues.append(InvariantIssue(
            field="hold_end",
            message="An account on hold must carry hold start and end",
            value=None
        ))
    if not on_hold and (hold_start is not None or hold_duration_days is not None):
        issues.append(InvariantIssue(
            field="hold_start",
            message="Hold fields are only allowed while on hold",
            value=hold_start
        ))

    if hold_duration_days is not None and (
            isinstance(hold_duration_days, bool) or
            not isinstance(hold_duration_days, int) or
            hold_duration_days < 0):
        issues.append(InvariantIssue(
            field="hold_duration_days",
            message="Must be a non-negative integer",
            value=hold_duration_days
        ))

    return issues


def _coerce_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Profile:
    """
    Status snapshot of one account.

    Construction enforces the lifecycle invariants and raises
    InvariantViolationError instead of repairing a bad record.
    """

    account_id: str
    approval_status: ApprovalStatus
    last_updated: datetime
    activity_status: Optional[ActivityStatus] = None
    status_reason: Optional[str] = None

    # Hold window; hold_end is authoritative
    hold_duration_days: Optional[int] = None
    hold_start: Optional[datetime] = None
    hold_end: Optional[datetime] = None

    # Populated after approval
    employee_id: Optional[str] = None
    joining_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "approval_status",
                           _coerce_enum(ApprovalStatus, self.approval_status))
        object.__setattr__(self, "activity_status",
                           _coerce_enum(ActivityStatus, self.activity_status))

        issues = collect_invariant_issues(
            self.approval_status,
            self.activity_status,
            self.hold_start,
            self.hold_end,
            self.hold_duration_days,
        )
        if issues:
            raise InvariantViolationError(
                f"Profile {self.account_id} violates lifecycle invariants",
                issues=issues,
                context={"account_id": self.account_id}
            )

    @property
    def hold_window(self) -> Optional[timedelta]:
        if self.hold_start is None or self.hold_end is None:
            return None
        return self.hold_end - self.hold_start

    def with_activated(self, status_reason: str) -> "Profile":
        """Copy of this profile moved off hold, keeping last_updated."""
        return Profile(
            account_id=self.account_id,
            approval_status=self.approval_status,
            last_updated=self.last_updated,
            activity_status=ActivityStatus.ACTIVE,
            status_reason=status_reason,
            hold_duration_days=None,
            hold_start=None,
            hold_end=None,
            employee_id=self.employee_id,
            joining_date=self.joining_date,
        )


ProfileInput = Union[Profile, Mapping[str, Any], None]


@dataclass(frozen=True)
class Loaded:
    """Result of the initial profile fetch. record is None when not found."""
    record: ProfileInput


@dataclass(frozen=True)
class PushUpdated:
    """Server-originated full replacement record."""
    record: ProfileInput


@dataclass(frozen=True)
class UserActivate:
    """Self-service "activate now" request from the hold screen."""
    eligible: bool
    timestamp: datetime


@dataclass(frozen=True)
class ActivationCommitted:
    """The store accepted the activate update built for UserActivate."""
    fields: Mapping[str, Any]
    timestamp: datetime


LifecycleEvent = Union[Loaded, PushUpdated, UserActivate, ActivationCommitted]


@dataclass(frozen=True)
class Decision:
    """Outcome of reconciling one event against the locally held profile."""

    action: DecisionAction
    reason: str
    destination: Optional[Destination] = None
    profile: Optional[Profile] = None
    display_state: Optional[DisplayState] = None

    # Hold timer control
    restart_timer: bool = False
    stop_timer: bool = False

    # Activation flow
    update_fields: Optional[dict[str, Any]] = None
    settle_delay_seconds: float = 0.0

    # Set when the event was refused or the record untrusted
    error: Optional[Exception] = field(default=None, compare=False)

    @property
    def is_redirect(self) -> bool:
        return self.action == DecisionAction.REDIRECT

    @property
    def changes_state(self) -> bool:
        return self.action in (DecisionAction.REDIRECT, DecisionAction.STAY)
