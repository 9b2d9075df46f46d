"""
Hold period countdown.

The timer has two layers. sync() recomputes the remaining time from the
authoritative hold_end whenever a fresh profile snapshot arrives, which
discards any drift. tick() is the cheap layer driven by a fixed interval:
it subtracts the interval from the last known value without reading the
clock. Eligibility to self-activate flips exactly once, when the remaining
time reaches zero.
"""

from datetime import datetime, timedelta
from typing import Optional

from ..logging.config import get_timer_logger
from .lifecycle import is_on_hold
from .models import Profile

timer_logger = get_timer_logger(__name__)

ZERO = timedelta(0)
DEFAULT_TICK_INTERVAL = timedelta(seconds=1)


def format_remaining(remaining: timedelta) -> str:
    """
    Render a countdown.

    "Nd HH:MM:SS" once at least one full day remains, otherwise "HH:MM:SS".
    Non-positive values render as "00:00:00".
    """
    if remaining <= ZERO:
        return "00:00:00"

    total_seconds = int(remaining.total_seconds())
    days, rest = divmod(total_seconds, 24 * 60 * 60)
    hours, rest = divmod(rest, 60 * 60)
    minutes, seconds = divmod(rest, 60)

    clock = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if days > 0:
        return f"{days}d {clock}"
    return clock


def remaining_hold(profile: Profile, now: datetime) -> timedelta:
    """max(0, hold_end - now); zero for a profile without a hold window."""
    if profile.hold_end is None:
        return ZERO
    return max(ZERO, profile.hold_end - now)


class HoldTimer:
    """Client-side countdown for an account on hold."""

    def __init__(self, tick_interval: timedelta = DEFAULT_TICK_INTERVAL):
        if tick_interval <= ZERO:
            raise ValueError("tick_interval must be positive")
        self.tick_interval = tick_interval
        self.logger = timer_logger
        self.account_id: Optional[str] = None
        self.hold_end: Optional[datetime] = None
        self._remaining = ZERO
        self._eligible = False
        self._running = False

    @property
    def remaining(self) -> timedelta:
        return self._remaining

    @property
    def eligible_to_activate(self) -> bool:
        return self._eligible

    @property
    def running(self) -> bool:
        """True while the countdown still has time left to decrement."""
        return self._running

    @property
    def countdown(self) -> str:
        return format_remaining(self._remaining)

    def sync(self, profile: Profile, now: datetime) -> timedelta:
        """
        Re-derive the countdown from a fresh profile snapshot.

        A profile that is not on hold resets the timer to an inactive,
        non-eligible zero state.
        """
        if not is_on_hold(profile):
            self.reset()
            return self._remaining

        self.account_id = profile.account_id
        self.hold_end = profile.hold_end
        self._remaining = remaining_hold(profile, now)
        self._eligible = self._remaining == ZERO
        self._running = not self._eligible

        self.logger.debug(
            "Hold countdown synced",
            account_id=profile.account_id,
            hold_end=profile.hold_end.isoformat(),
            remaining_seconds=self._remaining.total_seconds(),
            eligible=self._eligible
        )
        return self._remaining

    def tick(self) -> bool:
        """
        Advance by one tick interval.

        Returns True only on the tick that makes the account eligible to
        activate; ticks at zero or on an inactive timer do nothing.
        """
        if not self._running:
            return False

        new_remaining = self._remaining - self.tick_interval
        if new_remaining > ZERO:
            self._remaining = new_remaining
            return False

        self._remaining = ZERO
        self._running = False
        self._eligible = True
        self.logger.info(
            "Hold period elapsed",
            account_id=self.account_id,
            hold_end=self.hold_end.isoformat() if self.hold_end else None
        )
        return True

    def reset(self) -> None:
        """Drop the hold window; the timer becomes inactive and not eligible."""
        self.account_id = None
        self.hold_end = None
        self._remaining = ZERO
        self._eligible = False
        self._running = False
