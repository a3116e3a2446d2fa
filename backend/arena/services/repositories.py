"""Storage interfaces the competition core depends on."""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol, Sequence
from uuid import UUID
from arena.models.competition import Registration
from arena.models.submission import Submission


@dataclass(frozen=True)
class ActiveRegistration:
    """A pending/approved registration joined with the limits of its competition."""
    team_id: UUID
    team_name: str
    competition_id: UUID
    competition_title: str
    status: str
    min_team_size: int | None
    max_team_size: int | None


class SubmissionRepository(Protocol):
    async def list_valid(self, competition_id: UUID) -> Sequence[Submission]: ...
    async def insert(self, submission: Submission) -> UUID: ...
    async def delete(self, submission_id: UUID) -> None: ...
    async def count_since(self, participant_id: UUID, competition_id: UUID, since: datetime) -> int: ...
    async def count_all(self, participant_id: UUID, competition_id: UUID) -> int: ...
    async def lock(self, participant_id: UUID, competition_id: UUID) -> None:
        """Serialize admissions for one participant in one competition until the next insert."""
        ...


class RegistrationRepository(Protocol):
    async def find_approved(self, participant_id: UUID, competition_id: UUID) -> Registration | None: ...
    async def list_active(self, team_id: UUID) -> Sequence[ActiveRegistration]: ...


class TeamRepository(Protocol):
    async def member_count(self, team_id: UUID) -> int: ...
    async def member_ids(self, team_id: UUID) -> Sequence[UUID]: ...
    async def other_teams_of(self, user_id: UUID, exclude_team_id: UUID | None = None) -> Sequence[UUID]: ...
    async def teams_of(self, user_id: UUID) -> Sequence[UUID]: ...
    async def lock(self, team_id: UUID, user_ids: Iterable[UUID] = ()) -> None:
        """Serialize roster and registration changes touching this team or these users until commit."""
        ...


class FileStore(Protocol):
    def store(self, data: bytes, path: str, content_type: str = "text/csv") -> str: ...
    def remove(self, path: str) -> None: ...
