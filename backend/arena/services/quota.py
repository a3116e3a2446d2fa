from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID
from arena.services.clock import day_start
from arena.services.repositories import SubmissionRepository


class Limits(Protocol):
    id: UUID
    daily_submission_limit: int
    total_submission_limit: int


@dataclass(frozen=True)
class Quota:
    daily_limit: int
    total_limit: int
    daily_used: int
    total_used: int

    @property
    def daily_remaining(self) -> int:
        return max(0, self.daily_limit - self.daily_used)

    @property
    def total_remaining(self) -> int:
        return max(0, self.total_limit - self.total_used)

    @property
    def exhausted_scope(self) -> str | None:
        """'daily' or 'total' when no submission is left, else None."""
        if self.daily_remaining == 0:
            return "daily"
        if self.total_remaining == 0:
            return "total"
        return None


def remaining(ch: Limits, submissions_today: int, submissions_total: int) -> Quota:
    """Remaining allowance given counts of *valid* submissions (today / ever) for one competition."""
    return Quota(
        daily_limit=int(ch.daily_submission_limit),
        total_limit=int(ch.total_submission_limit),
        daily_used=int(submissions_today),
        total_used=int(submissions_total),
    )


class QuotaTracker:
    def __init__(self, submissions: SubmissionRepository, tz_name: str = "UTC"):
        self._submissions = submissions
        self._tz_name = tz_name

    def day_start(self, now: datetime) -> datetime:
        return day_start(now, self._tz_name)

    async def for_participant(self, participant_id: UUID, ch: Limits, now: datetime) -> Quota:
        # one boundary per evaluation so the count and the submit agree on "today"
        since = self.day_start(now)
        today = await self._submissions.count_since(participant_id, ch.id, since)
        total = await self._submissions.count_all(participant_id, ch.id)
        return remaining(ch, today, total)
