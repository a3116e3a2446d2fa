from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Float, ForeignKey, CheckConstraint, Uuid
from arena.db import Base, UTCDateTime


class Submission(Base):
    """Write-once record of one admitted prediction file."""
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    competition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("competitions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # exactly one of user_id / team_id, matching the competition's participation type
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)
    team_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    submitted_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    phase: Mapped[str] = mapped_column(String(16), nullable=False)  # public|private, fixed at submit time
    file_path: Mapped[str] = mapped_column(Text(), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)

    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    validation_status: Mapped[str] = mapped_column(String(16), nullable=False, default="valid")  # valid|invalid

    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True, nullable=False)

    __table_args__ = (
        CheckConstraint("(user_id IS NULL) <> (team_id IS NULL)", name="ck_submission_one_participant"),
    )

    @property
    def participant_id(self) -> uuid.UUID:
        return self.team_id or self.user_id
