"""
Profile store failure classifications.

Store implementations raise ProfileStoreError. The session gate translates
it into the retryable FetchFailedError or UpdateFailedError, which carry
the account and operation for the user-visible notice.
"""

from typing import Any, Dict, Optional

from .recovery import RecoverableError


class ProfileStoreError(Exception):
    """Raised by a profile store when a query, update or subscription fails."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.operation = operation
        self.context = context or {}


class FetchFailedError(RecoverableError):
    """Profile lookup failed; the user may retry or return to login."""

    def __init__(self, message: str, account_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.account_id = account_id


class UpdateFailedError(RecoverableError):
    """The activate update was refused or errored; local state is unchanged."""

    def __init__(self, message: str, account_id: Optional[str] = None,
                 fields: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.account_id = account_id
        self.fields = fields or {}


class ActivationNotAllowedError(Exception):
    """Self-service activation requested while not on hold or before expiry."""

    def __init__(self, message: str, display_state: Optional[str] = None,
                 eligible: bool = False):
        super().__init__(message)
        self.display_state = display_state
        self.eligible = eligible
        self.recoverable = True
