"""
Per-screen session gate.

Wires the profile store subscription, the hold countdown and the
reconciliation engine to one account screen on an asyncio event loop.
Store I/O errors are caught here and turned into user-visible notices.
The gate tears itself down when it redirects away or when close() is
called; events and ticks arriving after teardown are ignored.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

import structlog

from ..config.defaults import DefaultConfig, get_default_config
from ..errors import (
    ErrorKind,
    ErrorNotice,
    FetchFailedError,
    InvariantViolationError,
    ProfileMissingError,
    ProfileStoreError,
    UpdateFailedError,
    notice_for,
)
from ..state.hold_timer import HoldTimer
from ..state.models import (
    Decision,
    DecisionAction,
    Destination,
    DisplayState,
    Profile,
)
from ..state.runtime import ReconciliationEngine
from ..store.base import AuthSession, ProfileRecord, ProfileStore, Subscription
from ..utils.time import utc_now

logger = structlog.get_logger(__name__)


class ActivationStatus(Enum):
    """Outcome of the activate() action."""
    SUCCESS = "success"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class ActivationResult:
    """Result of a self-service activation attempt."""
    status: ActivationStatus
    message: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == ActivationStatus.SUCCESS


class SessionGate:
    """Keeps one account screen in sync with the account's lifecycle state."""

    def __init__(
        self,
        store: ProfileStore,
        auth: AuthSession,
        navigate: Callable[[str], None],
        screen: Destination,
        config: Optional[DefaultConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.logger = logger
        self.store = store
        self.auth = auth
        self.navigate = navigate
        self.config = config or get_default_config()
        self.clock = clock

        self.engine = ReconciliationEngine(screen=screen, activation=self.config.activation)
        self.timer = HoldTimer(timedelta(seconds=self.config.timer.tick_interval_seconds))

        self.account_id: Optional[str] = None
        self.loading = True
        self.activating = False
        self.closed = False
        self.error: Optional[ErrorNotice] = None
        self.failure: Optional[Exception] = None
        self.redirected_to: Optional[Destination] = None

        self._fetch_attempts = 0
        self._subscription: Optional[Subscription] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._redirect_task: Optional[asyncio.Task] = None

    # Exposed state

    @property
    def screen(self) -> Optional[Destination]:
        return self.engine.screen

    @property
    def profile(self) -> Optional[Profile]:
        return self.engine.profile

    @property
    def display_state(self) -> Optional[DisplayState]:
        return self.engine.display_state

    @property
    def countdown(self) -> str:
        return self.timer.countdown

    @property
    def eligible_to_activate(self) -> bool:
        return self.timer.eligible_to_activate

    # Lifecycle

    async def __aenter__(self) -> "SessionGate":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def start(self) -> None:
        """Wait for auth bootstrap, subscribe, then load the profile."""
        await self.auth.wait_until_ready()
        if self.closed:
            return

        account_id = self.auth.current_account_id()
        if not account_id:
            self.logger.info("No authenticated account, redirecting to login")
            self.loading = False
            self._redirect_now(Destination.LOGIN)
            return

        self.account_id = account_id
        if self._subscribe():
            await self._fetch()

    def close(self) -> None:
        """Cancel the subscription, the tick task and any pending redirect."""
        if self.closed:
            return
        self.closed = True

        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._cancel_tick_task()
        if self._redirect_task is not None:
            self._redirect_task.cancel()
            self._redirect_task = None

        self.logger.debug(
            "Session gate closed",
            account_id=self.account_id,
            screen=self.screen.value if self.screen else None
        )

    # User actions

    async def retry(self) -> None:
        """Re-fetch the profile after a failed load."""
        if self.closed or self.account_id is None:
            return
        self.error = None
        self.failure = None
        if self._subscription is None and not self._subscribe():
            return
        await self._fetch()

    async def activate(self) -> ActivationResult:
        """Self-service activation from the hold screen."""
        if self.closed:
            return ActivationResult(ActivationStatus.REJECTED, message="Screen is closed")
        if self.activating:
            return ActivationResult(ActivationStatus.REJECTED, message="Activation already in progress")

        decision = self.engine.request_activation(
            eligible=self.timer.eligible_to_activate,
            timestamp=self.clock()
        )
        if decision.action == DecisionAction.REJECT:
            return ActivationResult(
                ActivationStatus.REJECTED,
                message=str(decision.error),
                error=decision.error
            )

        self.activating = True
        try:
            await self.store.update_profile(self.account_id, decision.update_fields)
        except ProfileStoreError as exc:
            failure = UpdateFailedError(
                "Failed to activate account.",
                account_id=self.account_id,
                fields=decision.update_fields
            )
            self.logger.error(
                "Account activation failed",
                account_id=self.account_id,
                error=str(exc)
            )
            if not self.closed:
                self.failure = failure
                self.error = notice_for(ErrorKind.UPDATE_FAILED, detail=str(exc))
            return ActivationResult(ActivationStatus.FAILED, message=str(failure), error=failure)
        finally:
            self.activating = False

        self.logger.info("Account activated by user", account_id=self.account_id)
        if not self.closed:
            self.error = None
            self.failure = None
            self._apply(self.engine.commit_activation(decision.update_fields, self.clock()))
        return ActivationResult(ActivationStatus.SUCCESS)

    async def back_to_login(self) -> None:
        """Sign out and go to login; navigation happens even if sign-out fails."""
        try:
            await self.auth.sign_out()
        except Exception:
            self.logger.exception("Sign out failed", account_id=self.account_id)
        self._redirect_now(Destination.LOGIN)

    # Event intake

    def _subscribe(self) -> bool:
        """Open the push feed; a refused feed is reported like a failed fetch."""
        try:
            self._subscription = self.store.subscribe_to_profile_updates(
                self.account_id, self._on_push
            )
        except ProfileStoreError as exc:
            self._fetch_attempts += 1
            self._fetch_failed(exc, "Profile subscription failed")
            return False
        return True

    async def _fetch(self) -> None:
        self.loading = True
        self._fetch_attempts += 1
        try:
            record = await self.store.fetch_profile(self.account_id)
        except ProfileStoreError as exc:
            self.loading = False
            if not self.closed:
                self._fetch_failed(exc, "Profile fetch failed")
            return

        self.loading = False
        if self.closed:
            return
        self._apply(self.engine.load(record))

    def _fetch_failed(self, exc: ProfileStoreError, message: str) -> None:
        self.loading = False
        self.failure = FetchFailedError(
            "Failed to fetch profile data.",
            account_id=self.account_id,
            retry_count=self._fetch_attempts - 1
        )
        self.error = notice_for(ErrorKind.FETCH_FAILED, detail=str(exc))
        self.logger.error(
            message,
            account_id=self.account_id,
            attempt=self._fetch_attempts,
            operation=exc.operation,
            error=str(exc)
        )

    def _on_push(self, record: ProfileRecord) -> None:
        if self.closed:
            return
        self._apply(self.engine.push(record))

    def _apply(self, decision: Decision) -> None:
        if isinstance(decision.error, ProfileMissingError):
            self.failure = decision.error
            self.error = notice_for(ErrorKind.PROFILE_MISSING)
        elif isinstance(decision.error, InvariantViolationError):
            self.failure = decision.error
            if decision.action == DecisionAction.REDIRECT:
                self.error = notice_for(ErrorKind.INVARIANT_VIOLATION)

        if decision.action in (DecisionAction.STAY, DecisionAction.REDIRECT):
            if decision.restart_timer:
                self._restart_timer(decision.profile)
            elif decision.stop_timer:
                self._stop_timer()
            if decision.error is None and isinstance(self.failure, InvariantViolationError):
                self.failure = None

        if decision.action != DecisionAction.REDIRECT:
            return

        if decision.settle_delay_seconds > 0:
            self._schedule_redirect(decision.destination, decision.settle_delay_seconds)
        else:
            self._redirect_now(decision.destination)

    # Navigation

    def _redirect_now(self, destination: Destination) -> None:
        path = self.config.routes.path_for(destination)
        self.redirected_to = destination
        self.close()
        self.logger.info(
            "Navigating",
            account_id=self.account_id,
            destination=destination.value,
            path=path
        )
        self.navigate(path)

    def _schedule_redirect(self, destination: Destination, delay: float) -> None:
        if self._redirect_task is not None:
            self._redirect_task.cancel()
        self._redirect_task = asyncio.create_task(self._delayed_redirect(destination, delay))

    async def _delayed_redirect(self, destination: Destination, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.closed:
            return
        self._redirect_task = None
        self._redirect_now(destination)

    # Hold countdown

    def _restart_timer(self, profile: Profile) -> None:
        self._cancel_tick_task()
        self.timer.sync(profile, self.clock())
        if self.timer.running:
            self._tick_task = asyncio.create_task(self._tick_loop())

    def _stop_timer(self) -> None:
        self._cancel_tick_task()
        self.timer.reset()

    def _cancel_tick_task(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick_loop(self) -> None:
        interval = self.timer.tick_interval.total_seconds()
        while self.timer.running:
            await asyncio.sleep(interval)
            if self.closed:
                return
            if self.timer.tick():
                self.logger.info(
                    "Account eligible to activate",
                    account_id=self.account_id
                )
