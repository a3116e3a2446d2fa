from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Protocol, Sequence
from uuid import UUID
from arena.services.metrics import ScoringMetric
from arena.services.phases import Timeline, SubmissionPhase, private_phase_started


class ScoredSubmission(Protocol):
    id: UUID
    participant_id: UUID
    phase: str
    score: float | None
    validation_status: str
    submitted_at: datetime


class RankedCompetition(Timeline, Protocol):
    scoring_metric: str


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    participant_id: UUID
    score: float
    submission_count: int
    best_public: ScoredSubmission
    best_private: ScoredSubmission | None = None

    @property
    def contributing(self) -> tuple[ScoredSubmission, ...]:
        if self.best_private is None:
            return (self.best_public,)
        return (self.best_public, self.best_private)


def _directional(metric: ScoringMetric, score: float) -> float:
    return -score if metric.higher_is_better else score


def submission_order(metric: ScoringMetric) -> Callable[[ScoredSubmission], tuple]:
    """Sort key: best score first in the metric's direction, earliest submission on ties."""
    return lambda s: (_directional(metric, s.score), s.submitted_at)


def best_per_participant(
    submissions: Iterable[ScoredSubmission], metric: ScoringMetric
) -> dict[UUID, ScoredSubmission]:
    """First submission per participant once all are ordered best-first; keeps that order."""
    best: dict[UUID, ScoredSubmission] = {}
    for s in sorted(submissions, key=submission_order(metric)):
        best.setdefault(s.participant_id, s)
    return best


def build_leaderboard(
    ch: RankedCompetition, submissions: Sequence[ScoredSubmission], now: datetime
) -> list[LeaderboardEntry]:
    """
    Rank participants from a snapshot of submissions.

    Before the private phase starts (or for 3-phase competitions) the ranking uses the
    best public submission. Once it has started, only participants with a valid
    submission in both phases are listed, ranked by the mean of their two best scores.
    Ties on the mean go to the earlier best private submission, then the earlier best
    public one. Ranks are positions; equal scores do not share a rank.
    """
    metric = ScoringMetric(ch.scoring_metric)
    valid = [s for s in submissions if s.validation_status == "valid" and s.score is not None]
    counts = Counter(s.participant_id for s in valid)

    public_best = best_per_participant((s for s in valid if s.phase == SubmissionPhase.PUBLIC), metric)

    if not private_phase_started(ch, now):
        return [
            LeaderboardEntry(
                rank=i, participant_id=pid, score=float(sub.score),
                submission_count=counts[pid], best_public=sub,
            )
            for i, (pid, sub) in enumerate(public_best.items(), start=1)
        ]

    private_best = best_per_participant((s for s in valid if s.phase == SubmissionPhase.PRIVATE), metric)
    combined = [
        (pid, (public_best[pid].score + private_best[pid].score) / 2)
        for pid in public_best
        if pid in private_best
    ]
    combined.sort(key=lambda row: (
        _directional(metric, row[1]),
        private_best[row[0]].submitted_at,
        public_best[row[0]].submitted_at,
        str(row[0]),
    ))
    return [
        LeaderboardEntry(
            rank=i, participant_id=pid, score=float(score), submission_count=counts[pid],
            best_public=public_best[pid], best_private=private_best[pid],
        )
        for i, (pid, score) in enumerate(combined, start=1)
    ]
