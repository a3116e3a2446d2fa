from __future__ import annotations
from uuid import UUID
import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from arena.auth_deps import get_current_user
from arena.db import get_session
from arena.deps import get_clock, get_team_eligibility, rejection_to_http
from arena.models.team import Team, TeamInvitation, TeamMember
from arena.models.user import User
from arena.schemas.team import AddMemberRequest, InvitationPublic, TeamCreate, TeamMemberPublic, TeamPublic, TeamUpdate
from arena.services.clock import Clock
from arena.services.outcomes import NotTeamLeader, TeamHasRegistrations
from arena.services.sql_repositories import SqlRegistrationRepository
from arena.services.team_eligibility import TeamEligibility

router = APIRouter(prefix="/teams", tags=["teams"])
log = structlog.get_logger()


async def _load_team(session: AsyncSession, team_id: UUID) -> Team:
    team = await session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team

def _require_leader(team: Team, user: User) -> None:
    if team.leader_id != user.id:
        raise rejection_to_http(NotTeamLeader(team_id=team.id))

async def _find_user(session: AsyncSession, email: str) -> User:
    found = await session.scalar(select(User).where(User.email == email.lower().strip()))
    if not found:
        raise HTTPException(status_code=404, detail="User not found")
    return found

async def _to_public(session: AsyncSession, team: Team) -> TeamPublic:
    rows = (await session.execute(
        select(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .where(TeamMember.team_id == team.id)
        .order_by(TeamMember.joined_at.asc())
    )).all()
    return TeamPublic(
        id=team.id, name=team.name, description=team.description,
        leader_id=team.leader_id, created_at=team.created_at,
        members=[
            TeamMemberPublic(
                user_id=u.id, email=u.email, full_name=u.full_name,
                is_leader=u.id == team.leader_id, joined_at=m.joined_at,
            )
            for m, u in rows
        ],
    )

def _invitation_public(inv: TeamInvitation, team: Team) -> InvitationPublic:
    return InvitationPublic(
        id=inv.id, team_id=team.id, team_name=team.name, user_id=inv.user_id,
        invited_by=inv.invited_by, status=inv.status,
        created_at=inv.created_at, responded_at=inv.responded_at,
    )

async def _load_invitation(session: AsyncSession, invitation_id: UUID) -> tuple[TeamInvitation, Team]:
    row = (await session.execute(
        select(TeamInvitation, Team)
        .join(Team, Team.id == TeamInvitation.team_id)
        .where(TeamInvitation.id == invitation_id)
    )).first()
    if not row:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return row[0], row[1]

async def _pending_for_invitee(session: AsyncSession, invitation_id: UUID, user: User) -> tuple[TeamInvitation, Team]:
    inv, team = await _load_invitation(session, invitation_id)
    if inv.user_id != user.id:
        raise HTTPException(status_code=404, detail="Invitation not found")
    if inv.status != "pending":
        raise HTTPException(status_code=409, detail="Invitation is no longer pending")
    return inv, team


@router.post("", response_model=TeamPublic, status_code=201)
async def create_team(
    payload: TeamCreate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    name = payload.name.strip()
    if await session.scalar(select(Team).where(Team.name == name)):
        raise HTTPException(status_code=409, detail="Team name already taken")
    team = Team(name=name, description=payload.description, leader_id=user.id)
    session.add(team)
    try:
        await session.flush()
        session.add(TeamMember(team_id=team.id, user_id=user.id))
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Team name already taken")
    await session.refresh(team)
    log.info("team.created", team_id=str(team.id), leader_id=str(user.id))
    return await _to_public(session, team)

@router.get("/mine", response_model=list[TeamPublic])
async def my_teams(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    teams = (await session.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user.id)
        .order_by(Team.created_at.desc())
    )).scalars().all()
    return [await _to_public(session, t) for t in teams]


# --- invitations (invitee side) ---
@router.get("/invitations/mine", response_model=list[InvitationPublic])
async def my_invitations(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    rows = (await session.execute(
        select(TeamInvitation, Team)
        .join(Team, Team.id == TeamInvitation.team_id)
        .where(TeamInvitation.user_id == user.id, TeamInvitation.status == "pending")
        .order_by(TeamInvitation.created_at.desc())
    )).all()
    return [_invitation_public(inv, team) for inv, team in rows]

@router.post("/invitations/{invitation_id}/accept", response_model=TeamPublic)
async def accept_invitation(
    invitation_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    inv, team = await _pending_for_invitee(session, invitation_id, user)
    await eligibility.lock(team.id, [user.id])
    snapshot = await eligibility.snapshot(team.id, team.leader_id)
    outcome = await eligibility.check_add_member(snapshot, user.id)
    if outcome:
        raise rejection_to_http(outcome)

    session.add(TeamMember(team_id=team.id, user_id=user.id))
    inv.status = "accepted"
    inv.responded_at = clock.now()
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Already a member")
    log.info("team.invitation_accepted", team_id=str(team.id), user_id=str(user.id))
    return await _to_public(session, team)

@router.post("/invitations/{invitation_id}/reject", response_model=InvitationPublic)
async def reject_invitation(
    invitation_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    inv, team = await _pending_for_invitee(session, invitation_id, user)
    inv.status = "rejected"
    inv.responded_at = clock.now()
    await session.commit()
    log.info("team.invitation_rejected", team_id=str(team.id), user_id=str(user.id))
    return _invitation_public(inv, team)

@router.delete("/invitations/{invitation_id}", status_code=204)
async def cancel_invitation(
    invitation_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    inv, team = await _load_invitation(session, invitation_id)
    _require_leader(team, user)
    await session.delete(inv)
    await session.commit()
    log.info("team.invitation_cancelled", team_id=str(team.id), user_id=str(inv.user_id))


@router.get("/{team_id}", response_model=TeamPublic)
async def get_team(
    team_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return await _to_public(session, await _load_team(session, team_id))

@router.patch("/{team_id}", response_model=TeamPublic)
async def update_team(
    team_id: UUID,
    payload: TeamUpdate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    if payload.name is not None:
        name = payload.name.strip()
        if len(name) < 3:
            raise HTTPException(status_code=422, detail="Team name must be at least 3 characters")
        if name != team.name and await session.scalar(select(Team).where(Team.name == name)):
            raise HTTPException(status_code=409, detail="Team name already taken")
        team.name = name
    if "description" in payload.model_fields_set:
        team.description = (payload.description or "").strip() or None
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Team name already taken")
    await session.refresh(team)
    log.info("team.updated", team_id=str(team.id))
    return await _to_public(session, team)

@router.post("/{team_id}/members", response_model=TeamPublic, status_code=201)
async def add_member(
    team_id: UUID,
    payload: AddMemberRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    candidate = await _find_user(session, payload.email)

    await eligibility.lock(team.id, [candidate.id])
    snapshot = await eligibility.snapshot(team.id, team.leader_id)
    outcome = await eligibility.check_add_member(snapshot, candidate.id)
    if outcome:
        raise rejection_to_http(outcome)

    session.add(TeamMember(team_id=team.id, user_id=candidate.id))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Already a member")
    log.info("team.member_added", team_id=str(team.id), user_id=str(candidate.id))
    return await _to_public(session, team)

@router.delete("/{team_id}/members/{user_id}", response_model=TeamPublic)
async def remove_member(
    team_id: UUID,
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    await eligibility.lock(team.id)
    snapshot = await eligibility.snapshot(team.id, team.leader_id)
    outcome = await eligibility.check_remove_member(snapshot, user_id)
    if outcome:
        raise rejection_to_http(outcome)

    await session.execute(
        delete(TeamMember).where(TeamMember.team_id == team.id, TeamMember.user_id == user_id)
    )
    await session.commit()
    log.info("team.member_removed", team_id=str(team.id), user_id=str(user_id))
    return await _to_public(session, team)


# --- invitations (leader side) ---
@router.get("/{team_id}/invitations", response_model=list[InvitationPublic])
async def team_invitations(
    team_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    rows = (await session.execute(
        select(TeamInvitation)
        .where(TeamInvitation.team_id == team.id)
        .order_by(TeamInvitation.created_at.desc())
    )).scalars().all()
    return [_invitation_public(inv, team) for inv in rows]

@router.post("/{team_id}/invitations", response_model=InvitationPublic, status_code=201)
async def invite_member(
    team_id: UUID,
    payload: AddMemberRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    invitee = await _find_user(session, payload.email)

    # checked again on accept; the roster can change in between
    snapshot = await eligibility.snapshot(team.id, team.leader_id)
    outcome = await eligibility.check_add_member(snapshot, invitee.id)
    if outcome:
        raise rejection_to_http(outcome)

    inv = await session.scalar(
        select(TeamInvitation).where(TeamInvitation.team_id == team.id, TeamInvitation.user_id == invitee.id)
    )
    if inv is not None and inv.status == "pending":
        raise HTTPException(status_code=409, detail="Invitation already pending")
    if inv is None:
        inv = TeamInvitation(team_id=team.id, user_id=invitee.id)
        session.add(inv)
    inv.invited_by = user.id
    inv.status = "pending"
    inv.created_at = clock.now()
    inv.responded_at = None
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Invitation already pending")
    await session.refresh(inv)
    log.info("team.invited", team_id=str(team.id), user_id=str(invitee.id))
    return _invitation_public(inv, team)

@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    team = await _load_team(session, team_id)
    _require_leader(team, user)
    active = await SqlRegistrationRepository(session).count_active(team.id)
    if active:
        raise rejection_to_http(TeamHasRegistrations(team_id=team.id, count=active))
    await session.execute(delete(TeamInvitation).where(TeamInvitation.team_id == team.id))
    await session.execute(delete(TeamMember).where(TeamMember.team_id == team.id))
    await session.delete(team)
    await session.commit()
    log.info("team.deleted", team_id=str(team.id))
