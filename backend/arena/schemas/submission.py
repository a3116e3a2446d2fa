from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime


class SubmissionPublic(BaseModel):
    id: UUID
    competition_id: UUID
    participant_id: UUID
    submitted_by: UUID
    phase: str
    file_name: str
    file_size_bytes: int
    score: float | None
    validation_status: str
    submitted_at: datetime
    # storage paths stay internal


class QuotaPublic(BaseModel):
    daily_limit: int
    total_limit: int
    daily_remaining: int
    total_remaining: int
    resets_at: datetime  # next quota-day boundary


class SubmitResult(BaseModel):
    submission: SubmissionPublic
    quota: QuotaPublic


class LeaderboardRow(BaseModel):
    rank: int
    participant_id: UUID
    display_name: str
    score: float
    score_text: str
    public_score: float
    private_score: float | None = None
    submission_count: int
    last_scored_at: datetime


class LeaderboardPublic(BaseModel):
    competition_id: UUID
    scoring_metric: str
    metric_name: str
    higher_is_better: bool
    combined: bool  # True once rows average public and private scores
    rows: list[LeaderboardRow]
