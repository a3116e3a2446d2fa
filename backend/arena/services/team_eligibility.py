from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Protocol, Sequence
from uuid import UUID
import structlog
from arena.services.outcomes import (
    Rejection, AlreadyMember, NotAMember, TeamSizeViolation, TeamConflict, LeaderRemovalForbidden,
    NotTeamLeader, AlreadyRegistered, RegistrationClosed, ParticipationMismatch,
)
from arena.services.phases import Phase, ParticipationType, resolve_phase
from arena.services.repositories import ActiveRegistration, RegistrationRepository, TeamRepository

log = structlog.get_logger()


@dataclass(frozen=True)
class TeamSnapshot:
    id: UUID
    leader_id: UUID
    member_ids: frozenset[UUID]

    @property
    def size(self) -> int:
        return len(self.member_ids)


class RegistrableCompetition(Protocol):
    id: UUID
    title: str
    participation_type: str
    min_team_size: int | None
    max_team_size: int | None
    registration_start: datetime
    registration_end: datetime


def active_competition_ids(registrations: Iterable[ActiveRegistration]) -> set[UUID]:
    return {r.competition_id for r in registrations}


def first_conflict(
    competition_ids: set[UUID], commitments: Iterable[ActiveRegistration], team_id: UUID
) -> ActiveRegistration | None:
    """First commitment held through another team that overlaps `competition_ids`."""
    for c in commitments:
        if c.team_id != team_id and c.competition_id in competition_ids:
            return c
    return None


def can_add_member(
    team: TeamSnapshot,
    candidate_id: UUID,
    active_registrations: Sequence[ActiveRegistration],
    candidate_commitments: Sequence[ActiveRegistration] = (),
) -> Rejection | None:
    """
    Check that `candidate_id` may join `team`.

    `active_registrations` are the team's pending/approved registrations;
    `candidate_commitments` are those of every other team the candidate belongs to.
    """
    if candidate_id in team.member_ids:
        return AlreadyMember(team_id=team.id, user_id=candidate_id)

    new_size = team.size + 1
    for reg in active_registrations:
        cap = reg.max_team_size
        if cap and new_size > cap:
            return TeamSizeViolation(
                competition_id=reg.competition_id, competition_title=reg.competition_title,
                bound="max", limit=cap, resulting_size=new_size,
            )

    clash = first_conflict(active_competition_ids(active_registrations), candidate_commitments, team.id)
    if clash:
        return TeamConflict(
            user_id=candidate_id,
            competition_id=clash.competition_id, competition_title=clash.competition_title,
            conflicting_team_id=clash.team_id, conflicting_team_name=clash.team_name,
        )
    return None


def can_remove_member(
    team: TeamSnapshot, member_id: UUID, active_registrations: Sequence[ActiveRegistration]
) -> Rejection | None:
    if member_id == team.leader_id:
        return LeaderRemovalForbidden(team_id=team.id, user_id=member_id)
    if member_id not in team.member_ids:
        return NotAMember(team_id=team.id, user_id=member_id)

    new_size = team.size - 1
    for reg in active_registrations:
        floor = reg.min_team_size
        if floor and new_size < floor:
            return TeamSizeViolation(
                competition_id=reg.competition_id, competition_title=reg.competition_title,
                bound="min", limit=floor, resulting_size=new_size,
            )
    return None


def registration_open(ch: RegistrableCompetition, now: datetime) -> bool:
    return resolve_phase(ch, now) in (Phase.UPCOMING, Phase.REGISTRATION)


def can_register_individual(
    ch: RegistrableCompetition, user_id: UUID, now: datetime, already_registered: bool
) -> Rejection | None:
    if ch.participation_type != ParticipationType.INDIVIDUAL:
        return ParticipationMismatch(competition_id=ch.id, participation_type=ch.participation_type)
    if not registration_open(ch, now):
        return RegistrationClosed(competition_id=ch.id)
    if already_registered:
        return AlreadyRegistered(competition_id=ch.id, participant_id=user_id)
    return None


def can_register_team(
    ch: RegistrableCompetition,
    team: TeamSnapshot,
    caller_id: UUID,
    now: datetime,
    already_registered: bool,
    member_commitments: Mapping[UUID, Sequence[ActiveRegistration]],
) -> Rejection | None:
    """
    Check a team registration. `member_commitments` maps each member to the active
    registrations of the *other* teams they belong to.
    """
    if ch.participation_type != ParticipationType.TEAM:
        return ParticipationMismatch(competition_id=ch.id, participation_type=ch.participation_type)
    if not registration_open(ch, now):
        return RegistrationClosed(competition_id=ch.id)
    if caller_id != team.leader_id:
        return NotTeamLeader(team_id=team.id)
    outcome = _size_violation(ch, team)
    if outcome:
        return outcome
    if already_registered:
        return AlreadyRegistered(competition_id=ch.id, participant_id=team.id)
    return _member_conflict(ch, team, member_commitments)


def can_approve_team(
    ch: RegistrableCompetition,
    team: TeamSnapshot,
    member_commitments: Mapping[UUID, Sequence[ActiveRegistration]],
) -> Rejection | None:
    """Size and conflict rules for (re)activating an existing team registration; the window does not apply."""
    return _size_violation(ch, team) or _member_conflict(ch, team, member_commitments)


def _size_violation(ch: RegistrableCompetition, team: TeamSnapshot) -> TeamSizeViolation | None:
    if ch.min_team_size and team.size < ch.min_team_size:
        return TeamSizeViolation(
            competition_id=ch.id, competition_title=ch.title,
            bound="min", limit=ch.min_team_size, resulting_size=team.size,
        )
    if ch.max_team_size and team.size > ch.max_team_size:
        return TeamSizeViolation(
            competition_id=ch.id, competition_title=ch.title,
            bound="max", limit=ch.max_team_size, resulting_size=team.size,
        )
    return None


def _member_conflict(
    ch: RegistrableCompetition, team: TeamSnapshot, member_commitments: Mapping[UUID, Sequence[ActiveRegistration]]
) -> TeamConflict | None:
    for member_id in sorted(team.member_ids, key=str):
        clash = first_conflict({ch.id}, member_commitments.get(member_id, ()), team.id)
        if clash:
            return TeamConflict(
                user_id=member_id,
                competition_id=ch.id, competition_title=ch.title,
                conflicting_team_id=clash.team_id, conflicting_team_name=clash.team_name,
            )
    return None


class TeamEligibility:
    """Gathers team/registration snapshots from the repositories and runs the checks above."""

    def __init__(self, registrations: RegistrationRepository, teams: TeamRepository):
        self._registrations = registrations
        self._teams = teams

    async def lock(self, team_id: UUID, user_ids: Iterable[UUID] = ()) -> None:
        await self._teams.lock(team_id, user_ids)

    async def snapshot(self, team_id: UUID, leader_id: UUID) -> TeamSnapshot:
        members = await self._teams.member_ids(team_id)
        return TeamSnapshot(id=team_id, leader_id=leader_id, member_ids=frozenset(members))

    async def commitments_of(self, user_id: UUID, team_id: UUID) -> list[ActiveRegistration]:
        out: list[ActiveRegistration] = []
        for other in await self._teams.other_teams_of(user_id, exclude_team_id=team_id):
            out.extend(await self._registrations.list_active(other))
        return out

    async def check_add_member(self, team: TeamSnapshot, candidate_id: UUID) -> Rejection | None:
        active = await self._registrations.list_active(team.id)
        commitments = await self.commitments_of(candidate_id, team.id) if active else []
        outcome = can_add_member(team, candidate_id, active, commitments)
        if outcome:
            log.info("team.member_rejected", team_id=str(team.id), user_id=str(candidate_id), code=outcome.code)
        return outcome

    async def check_remove_member(self, team: TeamSnapshot, member_id: UUID) -> Rejection | None:
        active = await self._registrations.list_active(team.id)
        outcome = can_remove_member(team, member_id, active)
        if outcome:
            log.info("team.removal_rejected", team_id=str(team.id), user_id=str(member_id), code=outcome.code)
        return outcome

    async def check_team_registration(
        self, ch: RegistrableCompetition, team: TeamSnapshot, caller_id: UUID, now: datetime, already_registered: bool
    ) -> Rejection | None:
        commitments = {m: await self.commitments_of(m, team.id) for m in team.member_ids}
        outcome = can_register_team(ch, team, caller_id, now, already_registered, commitments)
        if outcome:
            log.info("registration.rejected", competition_id=str(ch.id), team_id=str(team.id), code=outcome.code)
        return outcome

    async def check_team_approval(self, ch: RegistrableCompetition, team: TeamSnapshot) -> Rejection | None:
        commitments = {m: await self.commitments_of(m, team.id) for m in team.member_ids}
        outcome = can_approve_team(ch, team, commitments)
        if outcome:
            log.info("registration.approval_rejected", competition_id=str(ch.id), team_id=str(team.id), code=outcome.code)
        return outcome
