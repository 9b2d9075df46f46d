"""End-to-end tests for the session gate on an asyncio event loop."""

import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from lifecycle_app.admin.operator_actions import (
    apply_operator_action,
    approve_fields,
    suspend_fields,
)
from lifecycle_app.config.defaults import (
    ActivationParams,
    DefaultConfig,
    LoggingParams,
    RouteParams,
    TimerParams,
)
from lifecycle_app.errors import (
    ErrorKind,
    FetchFailedError,
    InvariantViolationError,
    NoticeAction,
    ProfileMissingError,
    ProfileStoreError,
    UpdateFailedError,
)
from lifecycle_app.session.gate import ActivationStatus, SessionGate
from lifecycle_app.state.models import ActivityStatus, Destination, DisplayState
from lifecycle_app.store.base import AuthSession, ProfileStore
from lifecycle_app.store.memory import InMemoryProfileStore, StaticAuthSession

from conftest import BASE_TIME, FrozenClock, make_hold_record, make_profile, make_record

SETTLE = 0.02


class FlakyStore(InMemoryProfileStore):
    """In-memory store that fails a set number of fetches or updates."""

    def __init__(self, clock, failed_fetches=0, failed_updates=0, failed_subscribes=0):
        super().__init__(clock=clock)
        self.failed_fetches = failed_fetches
        self.failed_updates = failed_updates
        self.failed_subscribes = failed_subscribes

    def subscribe_to_profile_updates(self, account_id, on_update):
        if self.failed_subscribes > 0:
            self.failed_subscribes -= 1
            raise ProfileStoreError("realtime channel refused", operation="subscribe")
        return super().subscribe_to_profile_updates(account_id, on_update)

    async def fetch_profile(self, account_id):
        if self.failed_fetches > 0:
            self.failed_fetches -= 1
            raise ProfileStoreError("connection reset", operation="fetch_profile")
        return await super().fetch_profile(account_id)

    async def update_profile(self, account_id, fields):
        if self.failed_updates > 0:
            self.failed_updates -= 1
            raise ProfileStoreError("permission denied", operation="update_profile")
        await super().update_profile(account_id, fields)


class SlowFetchStore(InMemoryProfileStore):
    """In-memory store whose fetches wait until released."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.release = asyncio.Event()

    async def fetch_profile(self, account_id):
        await self.release.wait()
        return await super().fetch_profile(account_id)


def fast_config(tick_interval=1.0):
    return DefaultConfig(
        timer=TimerParams(tick_interval_seconds=tick_interval),
        activation=ActivationParams(settle_delay_seconds=SETTLE),
        routes=RouteParams(),
        logging=LoggingParams(),
    )


@pytest.fixture
def clock():
    return FrozenClock(BASE_TIME)


@pytest.fixture
def store(clock):
    return InMemoryProfileStore(clock=clock)


@pytest.fixture
def navigated():
    return []


def make_gate(store, navigated, screen, clock, auth=None, config=None):
    return SessionGate(
        store=store,
        auth=auth or StaticAuthSession("acct-001"),
        navigate=navigated.append,
        screen=screen,
        config=config or fast_config(),
        clock=clock,
    )


async def settle():
    """Let scheduled push deliveries run."""
    await asyncio.sleep(0)


class TestInitialLoad:
    """Test start-up routing."""

    @pytest.mark.asyncio
    async def test_matching_screen_stays(self, store, navigated, clock, pending_record):
        store.seed(pending_record)
        gate = make_gate(store, navigated, Destination.PENDING, clock)

        await gate.start()

        assert navigated == []
        assert not gate.loading
        assert gate.display_state == DisplayState.PENDING
        assert gate.profile.account_id == "acct-001"
        gate.close()

    @pytest.mark.asyncio
    async def test_wrong_screen_redirects(self, store, navigated, clock):
        store.seed(make_record(activity_status="suspend"))
        gate = make_gate(store, navigated, Destination.MAIN_APP, clock)

        await gate.start()

        assert navigated == ["/suspended"]
        assert gate.redirected_to == Destination.SUSPENDED
        assert gate.closed
        assert store.subscriber_count("acct-001") == 0

    @pytest.mark.asyncio
    async def test_no_account_goes_to_login(self, store, navigated, clock):
        gate = make_gate(store, navigated, Destination.HOLD, clock,
                         auth=StaticAuthSession(None))

        await gate.start()

        assert navigated == ["/login"]
        assert store.subscriber_count("acct-001") == 0

    @pytest.mark.asyncio
    async def test_missing_profile_goes_to_profile_creation(self, store, navigated, clock):
        gate = make_gate(store, navigated, Destination.PENDING, clock)

        await gate.start()

        assert navigated == ["/profile-completion"]
        assert gate.error.kind == ErrorKind.PROFILE_MISSING
        assert isinstance(gate.failure, ProfileMissingError)

    @pytest.mark.asyncio
    async def test_waits_for_auth_bootstrap(self, store, navigated, clock, pending_record):
        store.seed(pending_record)
        auth = StaticAuthSession("acct-001", ready=False)
        gate = make_gate(store, navigated, Destination.PENDING, clock, auth=auth)

        starting = asyncio.ensure_future(gate.start())
        await settle()
        assert store.subscriber_count("acct-001") == 0
        assert gate.loading

        auth.mark_ready()
        await asyncio.wait_for(starting, timeout=1)

        assert gate.display_state == DisplayState.PENDING
        gate.close()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, store, navigated, clock, pending_record):
        store.seed(pending_record)

        async with make_gate(store, navigated, Destination.PENDING, clock) as gate:
            assert store.subscriber_count("acct-001") == 1

        assert gate.closed
        assert store.subscriber_count("acct-001") == 0


class TestFetchFailure:
    """Test the retryable fetch failure path."""

    @pytest.mark.asyncio
    async def test_fetch_failure_then_retry(self, clock, navigated, pending_record):
        store = FlakyStore(clock, failed_fetches=1)
        store.seed(pending_record)
        gate = make_gate(store, navigated, Destination.PENDING, clock)

        await gate.start()

        assert not gate.loading
        assert gate.profile is None
        assert gate.error.kind == ErrorKind.FETCH_FAILED
        assert gate.error.actions == (NoticeAction.RETRY, NoticeAction.RETURN_TO_LOGIN)
        assert isinstance(gate.failure, FetchFailedError)
        assert navigated == []

        await gate.retry()

        assert gate.error is None
        assert gate.failure is None
        assert gate.display_state == DisplayState.PENDING
        gate.close()

    @pytest.mark.asyncio
    async def test_subscription_failure_reported_then_retried(
            self, clock, navigated, pending_record):
        store = FlakyStore(clock, failed_subscribes=1)
        store.seed(pending_record)
        gate = make_gate(store, navigated, Destination.PENDING, clock)

        await gate.start()

        assert not gate.loading
        assert gate.error.kind == ErrorKind.FETCH_FAILED
        assert gate.error.detail == "realtime channel refused"
        assert isinstance(gate.failure, FetchFailedError)
        assert store.subscriber_count("acct-001") == 0

        await gate.retry()

        assert gate.error is None
        assert store.subscriber_count("acct-001") == 1
        assert gate.display_state == DisplayState.PENDING
        gate.close()

    @pytest.mark.asyncio
    async def test_push_recovers_after_failed_fetch(self, clock, navigated, pending_record):
        """The subscription is live even when the first fetch fails."""
        store = FlakyStore(clock, failed_fetches=1)
        store.seed(pending_record)
        gate = make_gate(store, navigated, Destination.PENDING, clock)
        await gate.start()

        clock.now = BASE_TIME + timedelta(minutes=1)
        await apply_operator_action(store, "acct-001", approve_fields())
        await settle()

        assert navigated == ["/"]


class TestPushUpdates:
    """Test live updates while a screen is displayed."""

    @pytest.mark.asyncio
    async def test_pending_then_approved_redirects_to_main_app(
            self, store, navigated, clock, pending_record):
        store.seed(pending_record)
        gate = make_gate(store, navigated, Destination.PENDING, clock)
        await gate.start()

        clock.now = BASE_TIME + timedelta(minutes=1)
        await apply_operator_action(store, "acct-001", approve_fields(employee_id="EMP-7"))
        await settle()

        assert navigated == ["/"]
        assert gate.display_state == DisplayState.ACTIVE
        assert gate.closed

    @pytest.mark.asyncio
    async def test_suspend_mid_hold_cancels_timer(self, store, navigated, clock):
        store.seed(make_hold_record())
        clock.now = BASE_TIME + timedelta(days=1)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()
        assert gate.timer.running
        assert gate.countdown == "1d 00:00:00"

        await apply_operator_action(store, "acct-001", suspend_fields(gate.profile, "Audit"))
        await settle()

        assert navigated == ["/suspended"]
        assert not gate.timer.running
        assert gate._tick_task is None

        result = await gate.activate()
        assert result.status == ActivationStatus.REJECTED
        record = await store.fetch_profile("acct-001")
        assert record["activity_status"] == "suspend"

    @pytest.mark.asyncio
    async def test_invalid_push_keeps_screen(self, store, navigated, clock):
        store.seed(make_hold_record())
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()

        gate._on_push(make_record(
            activity_status="hold",
            last_updated=(BASE_TIME + timedelta(minutes=1)).isoformat()
        ))

        assert navigated == []
        assert gate.display_state == DisplayState.HOLD
        assert isinstance(gate.failure, InvariantViolationError)
        assert gate.error is None
        gate.close()

    @pytest.mark.asyncio
    async def test_valid_record_clears_invalid_push_failure(self, store, navigated, clock):
        store.seed(make_hold_record())
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()
        gate._on_push(make_record(
            activity_status="hold",
            last_updated=(BASE_TIME + timedelta(minutes=1)).isoformat()
        ))
        assert isinstance(gate.failure, InvariantViolationError)

        gate._on_push(make_hold_record(days=3, last_updated=BASE_TIME + timedelta(minutes=2)))

        assert gate.failure is None
        assert gate.profile.hold_duration_days == 3
        gate.close()

    @pytest.mark.asyncio
    async def test_invalid_push_during_initial_fetch_is_discarded(self, navigated, clock):
        store = SlowFetchStore(clock)
        store.seed(make_record())
        gate = make_gate(store, navigated, Destination.MAIN_APP, clock)
        starting = asyncio.ensure_future(gate.start())
        await settle()

        gate._on_push(make_record(
            activity_status="hold",
            last_updated=(BASE_TIME + timedelta(minutes=1)).isoformat()
        ))
        assert not gate.closed
        assert isinstance(gate.failure, InvariantViolationError)

        store.release.set()
        await asyncio.wait_for(starting, timeout=1)

        assert navigated == []
        assert gate.display_state == DisplayState.ACTIVE
        assert gate.failure is None
        assert not gate.loading
        gate.close()

    @pytest.mark.asyncio
    async def test_push_redirect_during_initial_fetch_ends_loading(self, navigated, clock):
        store = SlowFetchStore(clock)
        store.seed(make_record())
        gate = make_gate(store, navigated, Destination.MAIN_APP, clock)
        starting = asyncio.ensure_future(gate.start())
        await settle()

        clock.now = BASE_TIME + timedelta(minutes=1)
        await apply_operator_action(store, "acct-001", suspend_fields(make_profile()))
        await settle()
        assert navigated == ["/suspended"]

        store.release.set()
        await asyncio.wait_for(starting, timeout=1)

        assert gate.closed
        assert not gate.loading
        assert navigated == ["/suspended"]

    @pytest.mark.asyncio
    async def test_events_after_close_are_ignored(self, store, navigated, clock):
        store.seed(make_hold_record())
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()
        gate.close()

        await apply_operator_action(store, "acct-001", suspend_fields(gate.profile))
        await settle()
        gate._on_push(make_record(
            activity_status="suspend",
            last_updated=(BASE_TIME + timedelta(hours=1)).isoformat()
        ))

        assert navigated == []
        assert gate.display_state == DisplayState.HOLD
        assert gate._tick_task is None


class TestHoldCountdown:
    """Test the countdown running on the event loop."""

    @pytest.mark.asyncio
    async def test_countdown_reaches_eligibility(self, store, navigated, clock):
        store.seed(make_hold_record())
        clock.now = BASE_TIME + timedelta(days=2) - timedelta(milliseconds=30)
        gate = make_gate(store, navigated, Destination.HOLD, clock,
                         config=fast_config(tick_interval=0.01))
        await gate.start()
        assert not gate.eligible_to_activate

        await asyncio.sleep(0.2)

        assert gate.eligible_to_activate
        assert gate.countdown == "00:00:00"
        assert not gate.timer.running
        gate.close()

    @pytest.mark.asyncio
    async def test_countdown_keeps_ticking_during_fetch(self, navigated, clock):
        store = AsyncMock(spec=ProfileStore)
        release = asyncio.Event()
        fetches = []

        async def fetch(account_id):
            fetches.append(account_id)
            if len(fetches) > 1:
                await release.wait()
            return make_hold_record()

        store.fetch_profile.side_effect = fetch
        clock.now = BASE_TIME + timedelta(days=2) - timedelta(milliseconds=30)
        gate = make_gate(store, navigated, Destination.HOLD, clock,
                         config=fast_config(tick_interval=0.01))
        await gate.start()
        assert not gate.eligible_to_activate

        refetch = asyncio.ensure_future(gate.retry())
        await asyncio.sleep(0.2)

        assert not refetch.done()
        assert gate.loading
        assert gate.eligible_to_activate

        release.set()
        await asyncio.wait_for(refetch, timeout=1)
        assert not gate.loading
        gate.close()

    @pytest.mark.asyncio
    async def test_extended_hold_restarts_countdown(self, store, navigated, clock):
        store.seed(make_hold_record(days=1))
        clock.now = BASE_TIME + timedelta(days=1, hours=1)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()
        assert gate.eligible_to_activate

        store.seed(make_hold_record(days=3, last_updated=clock.now))
        gate._on_push(await store.fetch_profile("acct-001"))

        assert not gate.eligible_to_activate
        assert gate.countdown == "1d 23:00:00"
        assert navigated == []
        gate.close()


class TestActivation:
    """Test self-service activation from the hold screen."""

    @pytest.mark.asyncio
    async def test_activation_redirects_after_settle_delay(self, store, navigated, clock):
        store.seed(make_hold_record())
        clock.now = BASE_TIME + timedelta(days=2, seconds=1)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()
        assert gate.eligible_to_activate

        result = await gate.activate()

        assert result.ok
        assert navigated == []
        assert gate.display_state == DisplayState.ACTIVE

        await settle()
        assert navigated == []

        await asyncio.sleep(SETTLE * 5)
        assert navigated == ["/"]

        record = await store.fetch_profile("acct-001")
        assert record["activity_status"] == "active"
        assert record["hold_start"] is None
        assert record["hold_end"] is None
        assert record["status_reason"] == "Account activated by user on 2024-03-03 09:00:01 UTC"

    @pytest.mark.asyncio
    async def test_not_eligible_makes_no_store_call(self, navigated, clock):
        store = AsyncMock(spec=ProfileStore)
        store.fetch_profile.return_value = make_hold_record()
        clock.now = BASE_TIME + timedelta(days=1)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()

        result = await gate.activate()

        assert result.status == ActivationStatus.REJECTED
        store.update_profile.assert_not_awaited()
        assert gate.display_state == DisplayState.HOLD
        gate.close()

    @pytest.mark.asyncio
    async def test_update_failure_keeps_hold(self, clock, navigated):
        store = FlakyStore(clock, failed_updates=1)
        store.seed(make_hold_record())
        clock.now = BASE_TIME + timedelta(days=3)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()

        result = await gate.activate()

        assert result.status == ActivationStatus.FAILED
        assert isinstance(result.error, UpdateFailedError)
        assert gate.error.kind == ErrorKind.UPDATE_FAILED
        assert gate.error.actions == (NoticeAction.RETRY,)
        assert gate.profile.activity_status is ActivityStatus.HOLD
        assert not gate.activating
        assert not gate.closed

        retried = await gate.activate()
        assert retried.ok
        assert gate.error is None
        gate.close()

    @pytest.mark.asyncio
    async def test_suspend_during_settle_window_wins(self, store, navigated, clock):
        store.seed(make_hold_record())
        clock.now = BASE_TIME + timedelta(days=2, seconds=1)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()

        await gate.activate()
        activated = gate.profile
        await apply_operator_action(store, "acct-001", suspend_fields(activated, "Audit"))
        await settle()
        await asyncio.sleep(SETTLE * 5)

        assert navigated == ["/suspended"]

    @pytest.mark.asyncio
    async def test_concurrent_activation_refused(self, clock, navigated):
        store = AsyncMock(spec=ProfileStore)
        store.fetch_profile.return_value = make_hold_record()
        release = asyncio.Event()

        async def slow_update(account_id, fields):
            await release.wait()

        store.update_profile.side_effect = slow_update
        clock.now = BASE_TIME + timedelta(days=3)
        gate = make_gate(store, navigated, Destination.HOLD, clock)
        await gate.start()

        first = asyncio.ensure_future(gate.activate())
        await settle()
        second = await gate.activate()
        release.set()
        first_result = await first

        assert second.status == ActivationStatus.REJECTED
        assert first_result.ok
        store.update_profile.assert_awaited_once()
        gate.close()


class TestBackToLogin:
    """Test the explicit return-to-login action."""

    @pytest.mark.asyncio
    async def test_signs_out_and_navigates(self, store, navigated, clock, pending_record):
        store.seed(pending_record)
        auth = StaticAuthSession("acct-001")
        gate = make_gate(store, navigated, Destination.PENDING, clock, auth=auth)
        await gate.start()

        await gate.back_to_login()

        assert auth.signed_out
        assert navigated == ["/login"]
        assert gate.closed

    @pytest.mark.asyncio
    async def test_navigates_even_if_sign_out_fails(self, store, navigated, clock, pending_record):
        store.seed(pending_record)
        auth = AsyncMock(spec=AuthSession)
        auth.current_account_id.return_value = "acct-001"
        auth.sign_out.side_effect = RuntimeError("network down")
        gate = make_gate(store, navigated, Destination.PENDING, clock, auth=auth)
        await gate.start()

        await gate.back_to_login()

        assert navigated == ["/login"]
