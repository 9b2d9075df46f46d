#!/usr/bin/env python3
"""
Hold Activation Demo - Account Lifecycle Gate

Walks one account through the lifecycle against the in-memory store:
- pending review, then approval while the pending screen is open
- an operator hold with a countdown on the hold screen
- self-service activation once the hold has elapsed

Run: python examples/hold_activation_demo.py
"""

import asyncio
from datetime import datetime, timedelta, timezone

from lifecycle_app.admin.operator_actions import (
    apply_operator_action,
    approve_fields,
    hold_fields,
)
from lifecycle_app.config.loader import ConfigLoader
from lifecycle_app.data.parsers import parse_profile_record
from lifecycle_app.logging.config import configure_logging
from lifecycle_app.session.gate import SessionGate
from lifecycle_app.state.models import Destination
from lifecycle_app.store.memory import InMemoryProfileStore, StaticAuthSession

ACCOUNT_ID = "demo-account"


async def main() -> None:
    config = ConfigLoader.create().load({"activation": {"settle_delay_seconds": 0.2}})
    configure_logging(level=config.logging.level, format_json=config.logging.format_json)

    store = InMemoryProfileStore()
    auth = StaticAuthSession(ACCOUNT_ID)
    store.seed({"account_id": ACCOUNT_ID, "approval_status": "pending"})

    print("📋 Opening the pending screen")
    navigations = []
    pending = SessionGate(store, auth, navigations.append, Destination.PENDING, config)
    await pending.start()
    print(f"  display state: {pending.display_state.value}")

    print("✅ Reviewer approves the account")
    await apply_operator_action(store, ACCOUNT_ID, approve_fields(employee_id="EMP-001"))
    await asyncio.sleep(0)
    print(f"  navigated to: {navigations[-1]}")

    print("⏸️  Operator places a hold that ends in two seconds")
    profile = parse_profile_record(await store.fetch_profile(ACCOUNT_ID))
    start = datetime.now(timezone.utc) - timedelta(days=1) + timedelta(seconds=2)
    await apply_operator_action(store, ACCOUNT_ID, hold_fields(profile, days=1, now=start))

    hold = SessionGate(store, auth, navigations.append, Destination.HOLD, config)
    await hold.start()
    while not hold.eligible_to_activate:
        print(f"  remaining: {hold.countdown}")
        await asyncio.sleep(config.timer.tick_interval_seconds)

    print("▶️  Hold period complete, activating")
    result = await hold.activate()
    print(f"  activation: {result.status.value}")
    await asyncio.sleep(config.activation.settle_delay_seconds + 0.1)
    print(f"  navigated to: {navigations[-1]}")


if __name__ == "__main__":
    asyncio.run(main())
