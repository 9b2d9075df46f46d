"""
Parsers between profile store records and Profile snapshots.

Store records are flat mappings keyed by the snake_case profile field
names. Timestamps may arrive as datetimes or ISO-8601 strings. Any record
that cannot be turned into a valid Profile raises InvariantViolationError;
nothing is guessed or repaired, with one exception: a hold written as
start + duration without an end gets hold_end = hold_start + duration days.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from ..errors import InvariantViolationError
from ..state.models import InvariantIssue, Profile, ProfileInput
from ..utils.time import format_timestamp, parse_timestamp

RECORD_FIELDS = (
    "account_id",
    "approval_status",
    "activity_status",
    "status_reason",
    "hold_duration_days",
    "hold_start",
    "hold_end",
    "employee_id",
    "joining_date",
    "last_updated",
)

TIMESTAMP_FIELDS = ("hold_start", "hold_end", "joining_date", "last_updated")


def _parse_time_field(record: Mapping[str, Any], name: str,
                      issues: list[InvariantIssue]) -> Optional[datetime]:
    raw = record.get(name)
    try:
        return parse_timestamp(raw)
    except (TypeError, ValueError):
        issues.append(InvariantIssue(
            field=name,
            message="Not a valid ISO-8601 timestamp",
            value=raw
        ))
        return None


def parse_profile_record(record: Mapping[str, Any]) -> Profile:
    """
    Convert a store record into a Profile.

    Raises:
        InvariantViolationError: Missing identity/timestamp, malformed
            values, or a record that breaks the lifecycle invariants
    """
    issues: list[InvariantIssue] = []

    account_id = record.get("account_id")
    if not account_id:
        issues.append(InvariantIssue(
            field="account_id",
            message="Record has no account id",
            value=account_id
        ))

    if record.get("last_updated") in (None, ""):
        issues.append(InvariantIssue(
            field="last_updated",
            message="Record has no last_updated timestamp",
            value=None
        ))

    timestamps = {
        name: _parse_time_field(record, name, issues)
        for name in TIMESTAMP_FIELDS
    }

    hold_duration_days = record.get("hold_duration_days")
    hold_start = timestamps["hold_start"]
    hold_end = timestamps["hold_end"]
    if (hold_end is None and hold_start is not None and
            isinstance(hold_duration_days, int) and
            not isinstance(hold_duration_days, bool)):
        hold_end = hold_start + timedelta(days=hold_duration_days)

    if issues:
        raise InvariantViolationError(
            f"Profile record for {account_id!r} is malformed",
            issues=issues,
            context={"account_id": account_id}
        )

    return Profile(
        account_id=str(account_id),
        approval_status=record.get("approval_status"),
        last_updated=timestamps["last_updated"],
        activity_status=record.get("activity_status"),
        status_reason=record.get("status_reason"),
        hold_duration_days=hold_duration_days,
        hold_start=hold_start,
        hold_end=hold_end,
        employee_id=record.get("employee_id"),
        joining_date=timestamps["joining_date"],
    )


def coerce_profile(value: ProfileInput) -> Optional[Profile]:
    """Accept a Profile, a store record, or None."""
    if value is None or isinstance(value, Profile):
        return value
    return parse_profile_record(value)


def profile_to_record(profile: Profile) -> dict[str, Any]:
    """Serialize a Profile into the store record format."""
    return {
        "account_id": profile.account_id,
        "approval_status": profile.approval_status.value,
        "activity_status": profile.activity_status.value if profile.activity_status else None,
        "status_reason": profile.status_reason,
        "hold_duration_days": profile.hold_duration_days,
        "hold_start": format_timestamp(profile.hold_start),
        "hold_end": format_timestamp(profile.hold_end),
        "employee_id": profile.employee_id,
        "joining_date": format_timestamp(profile.joining_date),
        "last_updated": format_timestamp(profile.last_updated),
    }
