from __future__ import annotations
from pydantic import BaseModel, Field, model_validator
from typing import Literal
from uuid import UUID
from datetime import datetime
from arena.config import settings
from arena.services.metrics import ScoringMetric
from arena.services.phases import Phase

CompetitionType = Literal["3-phase", "4-phase"]
ParticipationType = Literal["individual", "team"]
RegistrationStatus = Literal["pending", "approved", "rejected"]

class CompetitionCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str | None = None
    competition_type: CompetitionType = "3-phase"
    participation_type: ParticipationType = "individual"
    scoring_metric: ScoringMetric = ScoringMetric.F1_SCORE
    registration_start: datetime
    registration_end: datetime
    public_test_start: datetime
    public_test_end: datetime
    private_test_start: datetime | None = None
    private_test_end: datetime | None = None
    daily_submission_limit: int = Field(ge=1, default=settings.default_daily_limit)
    total_submission_limit: int = Field(ge=1, default=settings.default_total_limit)
    max_file_size_mb: int = Field(ge=1, le=1024, default=settings.default_max_file_size_mb)
    min_team_size: int | None = Field(default=None, ge=1)
    max_team_size: int | None = Field(default=None, ge=1)
    dataset_url: str | None = None

    @model_validator(mode="after")
    def check_timeline(self):
        for name in ("registration_start", "registration_end", "public_test_start", "public_test_end",
                     "private_test_start", "private_test_end"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                raise ValueError(f"{name} must include a timezone offset")
        if not (self.registration_start < self.registration_end <= self.public_test_start < self.public_test_end):
            raise ValueError(
                "phases must satisfy registration_start < registration_end <= public_test_start < public_test_end"
            )
        if self.competition_type == "4-phase":
            if self.private_test_start is None or self.private_test_end is None:
                raise ValueError("4-phase competitions need private_test_start and private_test_end")
            if not (self.public_test_end <= self.private_test_start < self.private_test_end):
                raise ValueError("phases must satisfy public_test_end <= private_test_start < private_test_end")
        elif self.private_test_start is not None or self.private_test_end is not None:
            raise ValueError("3-phase competitions have no private test phase")
        if self.participation_type == "team":
            if self.min_team_size and self.max_team_size and self.min_team_size > self.max_team_size:
                raise ValueError("min_team_size must not exceed max_team_size")
        else:
            self.min_team_size = None
            self.max_team_size = None
        return self

class CompetitionPublic(BaseModel):
    id: UUID
    title: str
    description: str | None
    competition_type: CompetitionType
    participation_type: ParticipationType
    scoring_metric: ScoringMetric
    higher_is_better: bool
    registration_start: datetime
    registration_end: datetime
    public_test_start: datetime
    public_test_end: datetime
    private_test_start: datetime | None
    private_test_end: datetime | None
    daily_submission_limit: int
    total_submission_limit: int
    max_file_size_mb: int
    min_team_size: int | None
    max_team_size: int | None
    dataset_url: str | None
    created_at: datetime
    # Derived from "now" on every read
    phase: Phase
    next_deadline: datetime | None
    countdown_label: str

class RegistrationRequest(BaseModel):
    team_id: UUID | None = None

class RegistrationPublic(BaseModel):
    id: UUID
    competition_id: UUID
    user_id: UUID | None
    team_id: UUID | None
    status: RegistrationStatus
    registered_at: datetime
    reviewed_at: datetime | None = None
