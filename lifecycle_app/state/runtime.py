"""
Stateful reconciliation engine.

Holds the locally known profile and the screen it is displayed on, and
feeds every event through reconcile(). Only REDIRECT and STAY decisions
replace the held profile; NOOP, IGNORE and REJECT leave it untouched.
"""

from datetime import datetime
from typing import Any, Mapping, Optional

import structlog

from ..config.defaults import ActivationParams
from .lifecycle import completion_percentage, display_state
from .machine import reconcile
from .models import (
    ActivationCommitted,
    Decision,
    DecisionAction,
    Destination,
    DisplayState,
    LifecycleEvent,
    Loaded,
    Profile,
    ProfileInput,
    PushUpdated,
    UserActivate,
)

logger = structlog.get_logger(__name__)


class ReconciliationEngine:
    """Applies lifecycle events for one account on one screen."""

    def __init__(
        self,
        screen: Optional[Destination] = None,
        activation: Optional[ActivationParams] = None
    ):
        self.logger = logger
        self.screen = screen
        self.activation = activation or ActivationParams()
        self.profile: Optional[Profile] = None
        self.last_decision: Optional[Decision] = None

    @property
    def display_state(self) -> Optional[DisplayState]:
        return display_state(self.profile) if self.profile else None

    @property
    def completion_percentage(self) -> int:
        return completion_percentage(self.profile)

    def handle(self, event: LifecycleEvent) -> Decision:
        """Reconcile an event and update the held profile and screen."""
        decision = reconcile(self.profile, self.screen, event, self.activation)

        if decision.changes_state:
            self.profile = decision.profile
        if decision.action == DecisionAction.REDIRECT:
            self.logger.debug(
                "Engine screen changed",
                account_id=self.profile.account_id if self.profile else None,
                from_screen=self.screen.value if self.screen else None,
                to_screen=decision.destination.value
            )
            self.screen = decision.destination

        self.last_decision = decision
        return decision

    def load(self, record: ProfileInput) -> Decision:
        return self.handle(Loaded(record))

    def push(self, record: ProfileInput) -> Decision:
        return self.handle(PushUpdated(record))

    def request_activation(self, eligible: bool, timestamp: datetime) -> Decision:
        return self.handle(UserActivate(eligible=eligible, timestamp=timestamp))

    def commit_activation(self, fields: Mapping[str, Any], timestamp: datetime) -> Decision:
        return self.handle(ActivationCommitted(fields=fields, timestamp=timestamp))
