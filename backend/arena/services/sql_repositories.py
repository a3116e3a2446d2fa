from __future__ import annotations
from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID
from sqlalchemy import select, func, or_, delete, text
from sqlalchemy.ext.asyncio import AsyncSession
from arena.models.competition import Competition, Registration
from arena.models.submission import Submission
from arena.models.team import Team, TeamMember
from arena.services.repositories import ActiveRegistration

ACTIVE_STATUSES = ("approved", "pending")


def _of_participant(participant_id: UUID):
    return or_(Submission.user_id == participant_id, Submission.team_id == participant_id)


class SqlSubmissionRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_valid(self, competition_id: UUID) -> Sequence[Submission]:
        return (await self._session.execute(
            select(Submission)
            .where(Submission.competition_id == competition_id, Submission.validation_status == "valid")
            .order_by(Submission.submitted_at.asc())
        )).scalars().all()

    async def list_for_participant(self, participant_id: UUID, competition_id: UUID) -> Sequence[Submission]:
        return (await self._session.execute(
            select(Submission)
            .where(Submission.competition_id == competition_id, _of_participant(participant_id))
            .order_by(Submission.submitted_at.desc())
        )).scalars().all()

    async def insert(self, submission: Submission) -> UUID:
        self._session.add(submission)
        await self._session.commit()
        await self._session.refresh(submission)
        return submission.id

    async def delete(self, submission_id: UUID) -> None:
        await self._session.execute(delete(Submission).where(Submission.id == submission_id))
        await self._session.commit()

    async def count_since(self, participant_id: UUID, competition_id: UUID, since: datetime) -> int:
        n = await self._session.scalar(
            select(func.count(Submission.id)).where(
                Submission.competition_id == competition_id,
                _of_participant(participant_id),
                Submission.validation_status == "valid",
                Submission.submitted_at >= since,
            )
        )
        return int(n or 0)

    async def count_all(self, participant_id: UUID, competition_id: UUID) -> int:
        n = await self._session.scalar(
            select(func.count(Submission.id)).where(
                Submission.competition_id == competition_id,
                _of_participant(participant_id),
                Submission.validation_status == "valid",
            )
        )
        return int(n or 0)

    async def lock(self, participant_id: UUID, competition_id: UUID) -> None:
        """Transaction-scoped advisory lock; released by the commit in `insert` (or session close)."""
        if self._session.bind.dialect.name != "postgresql":
            return
        await self._session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:k))"),
            {"k": f"submit:{participant_id}:{competition_id}"},
        )


class SqlRegistrationRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def find(self, participant_id: UUID, competition_id: UUID) -> Registration | None:
        return await self._session.scalar(
            select(Registration).where(
                Registration.competition_id == competition_id,
                or_(Registration.user_id == participant_id, Registration.team_id == participant_id),
            )
        )

    async def find_approved(self, participant_id: UUID, competition_id: UUID) -> Registration | None:
        reg = await self.find(participant_id, competition_id)
        return reg if reg is not None and reg.status == "approved" else None

    async def list_active(self, team_id: UUID) -> Sequence[ActiveRegistration]:
        rows = (await self._session.execute(
            select(Registration.status, Team.id, Team.name, Competition)
            .join(Team, Team.id == Registration.team_id)
            .join(Competition, Competition.id == Registration.competition_id)
            .where(
                Registration.team_id == team_id,
                Registration.status.in_(ACTIVE_STATUSES),
                Competition.deleted_at.is_(None),
            )
            .order_by(Registration.registered_at.asc())
        )).all()
        return [
            ActiveRegistration(
                team_id=tid, team_name=tname,
                competition_id=ch.id, competition_title=ch.title, status=status,
                min_team_size=ch.min_team_size, max_team_size=ch.max_team_size,
            )
            for (status, tid, tname, ch) in rows
        ]

    async def count_active(self, team_id: UUID) -> int:
        n = await self._session.scalar(
            select(func.count(Registration.id)).where(
                Registration.team_id == team_id, Registration.status.in_(ACTIVE_STATUSES)
            )
        )
        return int(n or 0)


class SqlTeamRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def member_count(self, team_id: UUID) -> int:
        n = await self._session.scalar(
            select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id)
        )
        return int(n or 0)

    async def member_ids(self, team_id: UUID) -> Sequence[UUID]:
        return (await self._session.execute(
            select(TeamMember.user_id).where(TeamMember.team_id == team_id).order_by(TeamMember.joined_at.asc())
        )).scalars().all()

    async def teams_of(self, user_id: UUID) -> Sequence[UUID]:
        return (await self._session.execute(
            select(TeamMember.team_id).where(TeamMember.user_id == user_id).order_by(TeamMember.joined_at.asc())
        )).scalars().all()

    async def other_teams_of(self, user_id: UUID, exclude_team_id: UUID | None = None) -> Sequence[UUID]:
        return [t for t in await self.teams_of(user_id) if t != exclude_team_id]

    async def lock(self, team_id: UUID, user_ids: Iterable[UUID] = ()) -> None:
        """Advisory xact locks: the team key first, then user keys in sorted order."""
        if self._session.bind.dialect.name != "postgresql":
            return
        keys = [f"team:{team_id}"] + [f"user:{u}" for u in sorted(set(user_ids), key=str)]
        for k in keys:
            await self._session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:k))"), {"k": k})
