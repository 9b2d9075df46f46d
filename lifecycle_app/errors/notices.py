"""User-visible error notices produced at the session gate boundary."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Error kinds surfaced to the hosting screen."""
    FETCH_FAILED = "fetch_failed"
    PROFILE_MISSING = "profile_missing"
    UPDATE_FAILED = "update_failed"
    INVARIANT_VIOLATION = "invariant_violation"


class NoticeAction(str, Enum):
    """Explicit actions offered next to an error message."""
    RETRY = "retry"
    RETURN_TO_LOGIN = "return_to_login"


@dataclass(frozen=True)
class ErrorNotice:
    """An explanation plus the actions the user can take."""
    kind: ErrorKind
    message: str
    actions: tuple[NoticeAction, ...] = ()
    detail: Optional[str] = None


_MESSAGES = {
    ErrorKind.FETCH_FAILED: "Failed to fetch profile data.",
    ErrorKind.PROFILE_MISSING: "No profile was found for this account.",
    ErrorKind.UPDATE_FAILED: "Failed to activate account.",
    ErrorKind.INVARIANT_VIOLATION: "Your profile record could not be read.",
}

_ACTIONS = {
    ErrorKind.FETCH_FAILED: (NoticeAction.RETRY, NoticeAction.RETURN_TO_LOGIN),
    ErrorKind.PROFILE_MISSING: (),
    ErrorKind.UPDATE_FAILED: (NoticeAction.RETRY,),
    ErrorKind.INVARIANT_VIOLATION: (),
}


def notice_for(kind: ErrorKind, detail: Optional[str] = None) -> ErrorNotice:
    """Build the notice shown for an error kind."""
    return ErrorNotice(
        kind=kind,
        message=_MESSAGES[kind],
        actions=_ACTIONS[kind],
        detail=detail,
    )
