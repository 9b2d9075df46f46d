"""
Error classification system for the account lifecycle gate.

This module provides a structured exception hierarchy for untrusted
profile records, profile store failures, and the notices shown to users.
"""

from .profile_data import (
    ProfileDataError,
    InvariantViolationError,
    ProfileMissingError,
)
from .store_failures import (
    ProfileStoreError,
    FetchFailedError,
    UpdateFailedError,
    ActivationNotAllowedError,
)
from .recovery import RecoverableError
from .notices import ErrorKind, ErrorNotice, NoticeAction, notice_for

__all__ = [
    # Profile Data Errors
    "ProfileDataError",
    "InvariantViolationError",
    "ProfileMissingError",
    # Store Failures
    "ProfileStoreError",
    "FetchFailedError",
    "UpdateFailedError",
    "ActivationNotAllowedError",
    # Recovery Categories
    "RecoverableError",
    # User-visible notices
    "ErrorKind",
    "ErrorNotice",
    "NoticeAction",
    "notice_for",
]
