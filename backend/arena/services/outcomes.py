"""
Expected, recoverable outcomes of the competition core.

Every check returns either a success value or one of the rejections below; they are
never raised. Each rejection carries a stable `code` plus the fields a caller needs to
render or localize it, and `message()` gives the default English text.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, ClassVar
from uuid import UUID


@dataclass(frozen=True)
class Rejection:
    code: ClassVar[str] = "rejected"

    def message(self) -> str:
        return "Request rejected"

    def as_dict(self) -> dict[str, Any]:
        fields = {k: (str(v) if isinstance(v, UUID) else v) for k, v in asdict(self).items()}
        return {"code": self.code, "message": self.message(), **fields}


@dataclass(frozen=True)
class NotEligible(Rejection):
    code: ClassVar[str] = "not_eligible"
    competition_id: UUID

    def message(self) -> str:
        return "You are not approved for this competition"


@dataclass(frozen=True)
class WrongPhase(Rejection):
    code: ClassVar[str] = "wrong_phase"
    phase: str

    def message(self) -> str:
        return f"Submissions are not allowed in the current competition phase ({self.phase})"


@dataclass(frozen=True)
class QuotaExceeded(Rejection):
    code: ClassVar[str] = "quota_exceeded"
    scope: str  # daily|total
    limit: int

    def message(self) -> str:
        return f"{self.scope.capitalize()} submission limit of {self.limit} reached"


@dataclass(frozen=True)
class MalformedInput(Rejection):
    code: ClassVar[str] = "malformed_input"
    reason: str

    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class TeamSizeViolation(Rejection):
    code: ClassVar[str] = "team_size_violation"
    competition_id: UUID
    competition_title: str
    bound: str  # min|max
    limit: int
    resulting_size: int

    def message(self) -> str:
        if self.bound == "max":
            return (
                f"Team is registered for {self.competition_title} with a max team size of {self.limit}; "
                f"it would have {self.resulting_size} members"
            )
        return (
            f"Team is registered for {self.competition_title} with a min team size of {self.limit}; "
            f"it would have {self.resulting_size} members"
        )


@dataclass(frozen=True)
class TeamConflict(Rejection):
    code: ClassVar[str] = "team_conflict"
    user_id: UUID
    competition_id: UUID
    competition_title: str
    conflicting_team_id: UUID
    conflicting_team_name: str

    def message(self) -> str:
        return (
            f'User is already registered with team "{self.conflicting_team_name}" for '
            f"{self.competition_title} and cannot join multiple teams for the same competition"
        )


@dataclass(frozen=True)
class LeaderRemovalForbidden(Rejection):
    code: ClassVar[str] = "leader_removal_forbidden"
    team_id: UUID
    user_id: UUID

    def message(self) -> str:
        return "Cannot remove the team leader"


@dataclass(frozen=True)
class AlreadyMember(Rejection):
    code: ClassVar[str] = "already_member"
    team_id: UUID
    user_id: UUID

    def message(self) -> str:
        return "User is already a member of this team"


@dataclass(frozen=True)
class NotAMember(Rejection):
    code: ClassVar[str] = "not_a_member"
    team_id: UUID
    user_id: UUID

    def message(self) -> str:
        return "User is not a member of this team"


@dataclass(frozen=True)
class NotTeamLeader(Rejection):
    code: ClassVar[str] = "not_team_leader"
    team_id: UUID

    def message(self) -> str:
        return "Only the team leader can do this"


@dataclass(frozen=True)
class TeamHasRegistrations(Rejection):
    code: ClassVar[str] = "team_has_registrations"
    team_id: UUID
    count: int

    def message(self) -> str:
        return "Cannot delete a team with pending or approved competition registrations"


@dataclass(frozen=True)
class AlreadyRegistered(Rejection):
    code: ClassVar[str] = "already_registered"
    competition_id: UUID
    participant_id: UUID

    def message(self) -> str:
        return "Already registered for this competition"


@dataclass(frozen=True)
class RegistrationClosed(Rejection):
    code: ClassVar[str] = "registration_closed"
    competition_id: UUID

    def message(self) -> str:
        return "Registration period has ended"


@dataclass(frozen=True)
class ParticipationMismatch(Rejection):
    code: ClassVar[str] = "participation_mismatch"
    competition_id: UUID
    participation_type: str

    def message(self) -> str:
        if self.participation_type == "team":
            return "This is a team competition; register with a team"
        return "This is an individual competition; team registration is not allowed"
