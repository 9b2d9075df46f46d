"""
Core account lifecycle reconciliation logic.

reconcile() merges one incoming event with the locally held profile and
decides the resulting display state and navigation outcome. It performs no
I/O; the session gate receives events, calls reconcile(), and carries out
the decision.

Redirects depend only on the incoming profile's status fields. The screen
currently hosting the engine only decides whether a matching destination
means "stay" rather than "redirect".
"""

from datetime import datetime
from typing import Any, Optional

from ..config.defaults import ActivationParams
from ..data.parsers import coerce_profile
from ..errors import (
    ActivationNotAllowedError,
    InvariantViolationError,
    ProfileMissingError,
)
from ..logging.config import get_state_logger, log_redirect_decision, log_state_transition
from ..utils.time import format_audit_time
from .lifecycle import destination_for, display_state, is_on_hold
from .models import (
    ActivationCommitted,
    ActivityStatus,
    Decision,
    DecisionAction,
    Destination,
    LifecycleEvent,
    Loaded,
    Profile,
    PushUpdated,
    UserActivate,
)

state_logger = get_state_logger(__name__)

NEWER = "newer"
DUPLICATE = "duplicate"
STALE = "stale"


def reconcile(
    current: Optional[Profile],
    screen: Optional[Destination],
    event: LifecycleEvent,
    cfg: Optional[ActivationParams] = None
) -> Decision:
    """
    Reconcile one event against the locally held profile.

    Args:
        current: Profile the client currently trusts, if any
        screen: Destination currently displayed, None when not bound to a screen
        event: Loaded, PushUpdated, UserActivate or ActivationCommitted
        cfg: Activation parameters (settle delay, audit reason template)

    Returns:
        Decision describing the new profile, display state and navigation
    """
    cfg = cfg or ActivationParams()

    if isinstance(event, Loaded):
        decision = apply_record(current, screen, event.record, trigger="loaded")
    elif isinstance(event, PushUpdated):
        decision = apply_record(current, screen, event.record, trigger="push_updated")
    elif isinstance(event, UserActivate):
        decision = request_activation(current, event, cfg)
    elif isinstance(event, ActivationCommitted):
        decision = commit_activation(current, screen, event, cfg)
    else:
        raise TypeError(f"Unsupported lifecycle event: {type(event).__name__}")

    account_id = current.account_id if current else (
        decision.profile.account_id if decision.profile else None
    )
    log_redirect_decision(
        state_logger,
        account_id=account_id,
        action=decision.action.value,
        destination=decision.destination.value if decision.destination else None,
        reason=decision.reason,
        context={"trigger": type(event).__name__}
    )
    return decision


def check_ordering(current: Optional[Profile], incoming: Profile) -> str:
    """
    Classify an incoming record against the held one by last_updated.

    Equal stamps are only accepted as an identical re-delivery.
    """
    if current is None or incoming.last_updated > current.last_updated:
        return NEWER
    if incoming.last_updated == current.last_updated and incoming == current:
        return DUPLICATE
    return STALE


def apply_record(
    current: Optional[Profile],
    screen: Optional[Destination],
    record: Any,
    trigger: str
) -> Decision:
    """
    Apply a fetched or pushed full record.

    Only the initial load may send an account without a trusted profile to
    profile creation; an unreadable or empty push is always discarded.
    """
    initial_load = trigger == "loaded"
    try:
        incoming = coerce_profile(record)
    except InvariantViolationError as exc:
        state_logger.warning(
            "Discarding profile record that violates invariants",
            account_id=current.account_id if current else exc.context.get("account_id"),
            trigger=trigger,
            issues=[f"{issue.field}: {issue.message}" for issue in exc.issues]
        )
        if current is None and initial_load:
            return Decision(
                action=DecisionAction.REDIRECT,
                reason="invalid_record_without_trusted_profile",
                destination=Destination.PROFILE_CREATION,
                stop_timer=True,
                error=exc
            )
        return _keep(current, "invalid_record_discarded", error=exc)

    if incoming is None:
        if current is None and initial_load:
            return Decision(
                action=DecisionAction.REDIRECT,
                reason="profile_missing",
                destination=Destination.PROFILE_CREATION,
                stop_timer=True,
                error=ProfileMissingError("No profile found for account")
            )
        return _keep(current, "empty_record_ignored")

    if current is not None and incoming.account_id != current.account_id:
        return _keep(current, "foreign_account_ignored")

    ordering = check_ordering(current, incoming)
    if ordering == DUPLICATE:
        return Decision(
            action=DecisionAction.NOOP,
            reason="duplicate_delivery",
            profile=current,
            display_state=display_state(current)
        )
    if ordering == STALE:
        return _keep(current, "stale_record_ignored")

    new_state = display_state(incoming)
    destination = destination_for(incoming)
    log_state_transition(
        state_logger,
        account_id=incoming.account_id,
        from_state=display_state(current).value if current else None,
        to_state=new_state.value,
        trigger=trigger,
        context={
            "last_updated": incoming.last_updated.isoformat(),
            "screen": screen.value if screen else None,
            "destination": destination.value
        }
    )

    on_hold = destination == Destination.HOLD
    if destination == screen:
        return Decision(
            action=DecisionAction.STAY,
            reason="hold_refreshed" if on_hold else "record_refreshed",
            destination=destination,
            profile=incoming,
            display_state=new_state,
            restart_timer=on_hold,
            stop_timer=not on_hold
        )

    return Decision(
        action=DecisionAction.REDIRECT,
        reason=f"{new_state.value}_state",
        destination=destination,
        profile=incoming,
        display_state=new_state,
        restart_timer=on_hold,
        stop_timer=not on_hold
    )


def activation_fields(timestamp: datetime, cfg: ActivationParams) -> dict[str, Any]:
    """Partial update that moves an account off hold."""
    return {
        "activity_status": ActivityStatus.ACTIVE.value,
        "hold_duration_days": None,
        "hold_start": None,
        "hold_end": None,
        "status_reason": cfg.audit_reason_template.format(
            timestamp=format_audit_time(timestamp)
        ),
    }


def request_activation(
    current: Optional[Profile],
    event: UserActivate,
    cfg: ActivationParams
) -> Decision:
    """Guard the self-service activation before any store I/O."""
    if current is None or not is_on_hold(current):
        state = display_state(current) if current else None
        return Decision(
            action=DecisionAction.REJECT,
            reason="not_on_hold",
            profile=current,
            display_state=state,
            error=ActivationNotAllowedError(
                "Account is not on hold",
                display_state=state.value if state else None,
                eligible=event.eligible
            )
        )

    if not event.eligible:
        return Decision(
            action=DecisionAction.REJECT,
            reason="hold_not_elapsed",
            profile=current,
            display_state=display_state(current),
            error=ActivationNotAllowedError(
                "Hold period has not elapsed",
                display_state=display_state(current).value,
                eligible=False
            )
        )

    return Decision(
        action=DecisionAction.REQUEST_UPDATE,
        reason="activation_requested",
        profile=current,
        display_state=display_state(current),
        update_fields=activation_fields(event.timestamp, cfg)
    )


def commit_activation(
    current: Optional[Profile],
    screen: Optional[Destination],
    event: ActivationCommitted,
    cfg: ActivationParams
) -> Decision:
    """
    Apply an accepted activation locally without waiting for the push.

    The held last_updated is kept, so a late re-delivery of the old hold
    record is stale while any genuinely newer write still wins.
    """
    if current is None or not is_on_hold(current):
        return _keep(current, "activation_superseded")

    activated = current.with_activated(event.fields.get("status_reason"))
    log_state_transition(
        state_logger,
        account_id=activated.account_id,
        from_state=display_state(current).value,
        to_state=display_state(activated).value,
        trigger="activation_committed",
        context={"screen": screen.value if screen else None}
    )
    return Decision(
        action=DecisionAction.REDIRECT,
        reason="activated_by_user",
        destination=Destination.MAIN_APP,
        profile=activated,
        display_state=display_state(activated),
        stop_timer=True,
        settle_delay_seconds=cfg.settle_delay_seconds
    )


def _keep(current: Optional[Profile], reason: str,
          error: Optional[Exception] = None) -> Decision:
    return Decision(
        action=DecisionAction.IGNORE,
        reason=reason,
        profile=current,
        display_state=display_state(current) if current else None,
        error=error
    )
