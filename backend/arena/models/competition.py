from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, ForeignKey, UniqueConstraint, CheckConstraint, Uuid, func
from arena.db import Base, UTCDateTime

class Competition(Base):
    __tablename__ = "competitions"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text())
    competition_type: Mapped[str] = mapped_column(String(16), nullable=False)      # 3-phase|4-phase
    participation_type: Mapped[str] = mapped_column(String(16), nullable=False)    # individual|team
    scoring_metric: Mapped[str] = mapped_column(String(16), nullable=False)        # see services.metrics

    registration_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    registration_end: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    public_test_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    public_test_end: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    private_test_start: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)  # 4-phase only
    private_test_end: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    daily_submission_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    total_submission_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    max_file_size_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    min_team_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_team_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    dataset_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class Registration(Base):
    """A participant's entry into a competition: exactly one of user_id / team_id is set."""
    __tablename__ = "registrations"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    competition_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("competitions.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)
    team_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending|approved|rejected
    registered_at: Mapped[datetime] = mapped_column(UTCDateTime, server_default=func.now(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("competition_id", "user_id", name="uq_registration_user"),
        UniqueConstraint("competition_id", "team_id", name="uq_registration_team"),
        CheckConstraint("(user_id IS NULL) <> (team_id IS NULL)", name="ck_registration_one_participant"),
    )

    @property
    def participant_id(self) -> uuid.UUID:
        return self.team_id or self.user_id
