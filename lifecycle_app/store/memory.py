"""
In-process profile store and auth session.

Used to run the session gate without a backend. Every update stamps a
strictly increasing last_updated and schedules delivery of the full new
record to that account's subscribers on the running event loop, in commit
order, after update_profile() has returned.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

import structlog

from ..errors import ProfileStoreError
from ..utils.time import format_timestamp, parse_timestamp, utc_now
from .base import AuthSession, ProfileRecord, ProfileStore, Subscription, UpdateCallback

logger = structlog.get_logger(__name__)

STAMP_RESOLUTION = timedelta(microseconds=1)


class _MemorySubscription(Subscription):

    def __init__(self, store: "InMemoryProfileStore", account_id: str,
                 on_update: UpdateCallback):
        self.store = store
        self.account_id = account_id
        self.on_update = on_update
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._remove_subscription(self)

    def deliver(self, record: ProfileRecord) -> None:
        # Delivery scheduled before cancel() must still be dropped.
        if self.active:
            self.on_update(record)


class InMemoryProfileStore(ProfileStore):
    """Dictionary-backed ProfileStore with a push feed."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.logger = logger
        self.clock = clock
        self.records: dict[str, dict[str, Any]] = {}
        self.subscriptions: dict[str, list[_MemorySubscription]] = {}

    def seed(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert or replace a record as-is, stamping it if unstamped."""
        account_id = record.get("account_id")
        if not account_id:
            raise ValueError("record requires an account_id")

        stored = dict(record)
        if not stored.get("last_updated"):
            stored["last_updated"] = format_timestamp(self._next_stamp(account_id))
        self.records[account_id] = stored
        return dict(stored)

    async def fetch_profile(self, account_id: str) -> Optional[ProfileRecord]:
        record = self.records.get(account_id)
        return dict(record) if record is not None else None

    async def update_profile(self, account_id: str, fields: Mapping[str, Any]) -> None:
        record = self.records.get(account_id)
        if record is None:
            raise ProfileStoreError(
                f"No profile for account {account_id}",
                operation="update_profile",
                context={"account_id": account_id}
            )

        updated = {**record, **fields}
        updated["account_id"] = account_id
        updated["last_updated"] = format_timestamp(self._next_stamp(account_id))
        self.records[account_id] = updated

        self.logger.info(
            "Profile updated",
            account_id=account_id,
            fields=sorted(fields),
            last_updated=updated["last_updated"]
        )
        self._publish(account_id, dict(updated))

    def subscribe_to_profile_updates(
        self,
        account_id: str,
        on_update: UpdateCallback
    ) -> Subscription:
        subscription = _MemorySubscription(self, account_id, on_update)
        self.subscriptions.setdefault(account_id, []).append(subscription)
        return subscription

    def subscriber_count(self, account_id: str) -> int:
        return len(self.subscriptions.get(account_id, []))

    def _remove_subscription(self, subscription: _MemorySubscription) -> None:
        subscribers = self.subscriptions.get(subscription.account_id, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def _publish(self, account_id: str, record: ProfileRecord) -> None:
        loop = asyncio.get_running_loop()
        for subscription in list(self.subscriptions.get(account_id, [])):
            loop.call_soon(subscription.deliver, dict(record))

    def _next_stamp(self, account_id: str) -> datetime:
        now = self.clock()
        previous = self.records.get(account_id, {}).get("last_updated")
        previous_ts = parse_timestamp(previous) if previous else None
        if previous_ts is not None and now <= previous_ts:
            return previous_ts + STAMP_RESOLUTION
        return now


class StaticAuthSession(AuthSession):
    """Auth session for a fixed account, with a controllable bootstrap gate."""

    def __init__(self, account_id: Optional[str], ready: bool = True):
        self.account_id = account_id
        self.signed_out = False
        self._ready = asyncio.Event()
        if ready:
            self._ready.set()

    def mark_ready(self) -> None:
        self._ready.set()

    def current_account_id(self) -> Optional[str]:
        return None if self.signed_out else self.account_id

    async def sign_out(self) -> None:
        self.signed_out = True

    async def wait_until_ready(self) -> None:
        await self._ready.wait()
