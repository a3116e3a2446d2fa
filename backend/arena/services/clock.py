from __future__ import annotations
from datetime import datetime, timedelta, timezone as dt_tz
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(dt_tz.utc)


class FixedClock:
    """Clock pinned to a given instant; `advance` moves it forward."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            raise ValueError("FixedClock needs an aware datetime")
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, delta: timedelta) -> None:
        self._at = self._at + delta


def day_start(now_utc: datetime, tz_name: str) -> datetime:
    """
    Return the UTC instant of local midnight that opened the day containing `now_utc`
    in timezone `tz_name`.

    Examples:
        >>> day_start(datetime(2025, 1, 10, 3, 0, tzinfo=dt_tz.utc), "America/New_York").isoformat()
        '2025-01-09T05:00:00+00:00'
    """
    tz = ZoneInfo(tz_name)
    local_now = now_utc.astimezone(tz)
    midnight = datetime(local_now.year, local_now.month, local_now.day, tzinfo=tz)
    return midnight.astimezone(dt_tz.utc)


def next_day_start(now_utc: datetime, tz_name: str) -> datetime:
    """UTC instant of the next local midnight after `now_utc` (DST days are 23h or 25h long)."""
    return day_start(day_start(now_utc, tz_name) + timedelta(hours=25), tz_name)
