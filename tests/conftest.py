"""Pytest configuration and shared fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from lifecycle_app.state.models import Profile

BASE_TIME = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_record(**overrides: Any) -> Dict[str, Any]:
    """Store record for an approved, active account."""
    record = {
        "account_id": "acct-001",
        "approval_status": "approved",
        "activity_status": "active",
        "status_reason": None,
        "hold_duration_days": None,
        "hold_start": None,
        "hold_end": None,
        "employee_id": "EMP-001",
        "joining_date": "2024-01-15T00:00:00+00:00",
        "last_updated": BASE_TIME.isoformat(),
    }
    record.update(overrides)
    return record


def make_hold_record(start: datetime = BASE_TIME, days: int = 2,
                     last_updated: datetime = BASE_TIME, **overrides: Any) -> Dict[str, Any]:
    """Store record for an approved account on hold."""
    return make_record(
        activity_status="hold",
        hold_duration_days=days,
        hold_start=start.isoformat(),
        hold_end=(start + timedelta(days=days)).isoformat(),
        status_reason="Policy review",
        last_updated=last_updated.isoformat(),
        **overrides,
    )


def make_profile(**overrides: Any) -> Profile:
    """Approved, active Profile."""
    fields = {
        "account_id": "acct-001",
        "approval_status": "approved",
        "activity_status": "active",
        "last_updated": BASE_TIME,
    }
    fields.update(overrides)
    return Profile(**fields)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def pending_record() -> Dict[str, Any]:
    return make_record(
        approval_status="pending",
        activity_status=None,
        employee_id=None,
        joining_date=None,
    )


@pytest.fixture
def hold_record() -> Dict[str, Any]:
    return make_hold_record()


@pytest.fixture
def hold_profile() -> Profile:
    return make_profile(
        activity_status="hold",
        hold_duration_days=2,
        hold_start=BASE_TIME,
        hold_end=BASE_TIME + timedelta(days=2),
    )
