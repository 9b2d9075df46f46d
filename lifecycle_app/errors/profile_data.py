"""
Profile data error classifications.

These exceptions describe records that cannot be trusted: missing profiles
and records that break the lifecycle invariants. Both are recoverable by
discarding the offending record.
"""

from typing import Any, Dict, Optional


class ProfileDataError(Exception):
    """Base class for profile record issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InvariantViolationError(ProfileDataError):
    """A record breaks the approval exclusivity or hold field pairing rules."""

    def __init__(self, message: str, issues: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.issues = issues or []


class ProfileMissingError(ProfileDataError):
    """No profile record exists for an authenticated account."""

    def __init__(self, message: str, account_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.account_id = account_id
