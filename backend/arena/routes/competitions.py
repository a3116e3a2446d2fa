from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from fastapi import APIRouter, Body, Depends, File, HTTPException, Path, Query, UploadFile
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from arena.auth_deps import get_current_user, require_admin
from arena.config import settings
from arena.db import get_session
from arena.deps import get_admission, get_clock, get_team_eligibility, rejection_to_http
from arena.models.competition import Competition, Registration
from arena.models.submission import Submission
from arena.models.team import Team
from arena.models.user import User
from arena.schemas.competition import CompetitionCreate, CompetitionPublic, RegistrationPublic, RegistrationRequest
from arena.schemas.submission import LeaderboardPublic, LeaderboardRow, QuotaPublic, SubmissionPublic, SubmitResult
from arena.services.admission import SubmissionAdmission
from arena.services.clock import Clock, next_day_start
from arena.services.csv_check import MB
from arena.services.leaderboard import build_leaderboard
from arena.services.metrics import ScoringMetric
from arena.services.outcomes import AlreadyRegistered, NotEligible, Rejection
from arena.services.phases import countdown_label, next_deadline, private_phase_started, resolve_phase
from arena.services.quota import Quota, QuotaTracker
from arena.services.sql_repositories import SqlRegistrationRepository, SqlSubmissionRepository
from arena.services.team_eligibility import TeamEligibility, can_register_individual

router = APIRouter(prefix="/competitions", tags=["competitions"])
log = structlog.get_logger()


def to_public(ch: Competition, now: datetime) -> CompetitionPublic:
    phase = resolve_phase(ch, now)
    metric = ScoringMetric(ch.scoring_metric)
    return CompetitionPublic(
        id=ch.id, title=ch.title, description=ch.description,
        competition_type=ch.competition_type, participation_type=ch.participation_type,
        scoring_metric=metric, higher_is_better=metric.higher_is_better,
        registration_start=ch.registration_start, registration_end=ch.registration_end,
        public_test_start=ch.public_test_start, public_test_end=ch.public_test_end,
        private_test_start=ch.private_test_start, private_test_end=ch.private_test_end,
        daily_submission_limit=ch.daily_submission_limit, total_submission_limit=ch.total_submission_limit,
        max_file_size_mb=ch.max_file_size_mb,
        min_team_size=ch.min_team_size, max_team_size=ch.max_team_size,
        dataset_url=ch.dataset_url, created_at=ch.created_at,
        phase=phase, next_deadline=next_deadline(ch, phase), countdown_label=countdown_label(phase),
    )

def _registration_public(r: Registration) -> RegistrationPublic:
    return RegistrationPublic(
        id=r.id, competition_id=r.competition_id, user_id=r.user_id, team_id=r.team_id,
        status=r.status, registered_at=r.registered_at, reviewed_at=r.reviewed_at,
    )

def _submission_public(s: Submission) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id, competition_id=s.competition_id, participant_id=s.participant_id,
        submitted_by=s.submitted_by, phase=s.phase, file_name=s.file_name,
        file_size_bytes=s.file_size_bytes, score=s.score,
        validation_status=s.validation_status, submitted_at=s.submitted_at,
    )

def _quota_public(q: Quota, now: datetime) -> QuotaPublic:
    return QuotaPublic(
        daily_limit=q.daily_limit, total_limit=q.total_limit,
        daily_remaining=q.daily_remaining, total_remaining=q.total_remaining,
        resets_at=next_day_start(now, settings.quota_timezone),
    )

async def load_competition(session: AsyncSession, competition_id: UUID) -> Competition:
    ch = await session.get(Competition, competition_id)
    if not ch or ch.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Competition not found")
    return ch


@router.post("", response_model=CompetitionPublic, status_code=201)
async def create_competition(
    payload: CompetitionCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
    clock: Clock = Depends(get_clock),
):
    ch = Competition(
        **payload.model_dump(exclude={"scoring_metric"}),
        scoring_metric=payload.scoring_metric.value,
        created_by=admin.id,
    )
    session.add(ch)
    await session.commit()
    await session.refresh(ch)
    log.info("competition.created", competition_id=str(ch.id), type=ch.competition_type)
    return to_public(ch, clock.now())

@router.get("", response_model=list[CompetitionPublic])
async def list_competitions(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    rows = (await session.execute(
        select(Competition).where(Competition.deleted_at.is_(None)).order_by(Competition.registration_start.desc())
    )).scalars().all()
    now = clock.now()
    return [to_public(c, now) for c in rows]

@router.get("/{competition_id}", response_model=CompetitionPublic)
async def get_competition(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return to_public(await load_competition(session, competition_id), clock.now())

@router.put("/{competition_id}", response_model=CompetitionPublic)
async def update_competition(
    competition_id: UUID,
    payload: CompetitionCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
    clock: Clock = Depends(get_clock),
):
    ch = await load_competition(session, competition_id)
    if payload.participation_type != ch.participation_type:
        registered = await session.scalar(
            select(func.count(Registration.id)).where(Registration.competition_id == ch.id)
        )
        if registered:
            raise HTTPException(status_code=409, detail="Participation type is fixed once participants have registered")
    if payload.scoring_metric.value != ch.scoring_metric:
        submitted = await session.scalar(
            select(func.count(Submission.id)).where(Submission.competition_id == ch.id)
        )
        if submitted:
            raise HTTPException(status_code=409, detail="Scoring metric is fixed once submissions exist")

    for field, value in payload.model_dump(exclude={"scoring_metric"}).items():
        setattr(ch, field, value)
    ch.scoring_metric = payload.scoring_metric.value
    await session.commit()
    await session.refresh(ch)
    log.info("competition.updated", competition_id=str(ch.id), type=ch.competition_type)
    return to_public(ch, clock.now())

@router.delete("/{competition_id}", status_code=204)
async def delete_competition(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    ch = await load_competition(session, competition_id)
    ch.deleted_at = datetime.now(dt_tz.utc)
    await session.commit()
    log.info("competition.deleted", competition_id=str(ch.id))


# --- registration ---
@router.post("/{competition_id}/register", response_model=RegistrationPublic, status_code=201)
async def register(
    competition_id: UUID,
    body: RegistrationRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    ch = await load_competition(session, competition_id)
    now = clock.now()
    regs = SqlRegistrationRepository(session)
    team_id = body.team_id if body else None

    outcome: Rejection | None
    if team_id is None:
        existing = await regs.find(user.id, ch.id)
        outcome = can_register_individual(ch, user.id, now, existing is not None)
        reg = Registration(competition_id=ch.id, user_id=user.id, status="pending")
    else:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(status_code=404, detail="Team not found")
        await eligibility.lock(team.id)
        snapshot = await eligibility.snapshot(team.id, team.leader_id)
        await eligibility.lock(team.id, snapshot.member_ids)
        existing = await regs.find(team.id, ch.id)
        outcome = await eligibility.check_team_registration(ch, snapshot, user.id, now, existing is not None)
        reg = Registration(competition_id=ch.id, team_id=team.id, status="pending")
    if outcome:
        raise rejection_to_http(outcome)

    session.add(reg)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise rejection_to_http(AlreadyRegistered(competition_id=ch.id, participant_id=team_id or user.id))
    await session.refresh(reg)
    log.info("registration.created", competition_id=str(ch.id), participant_id=str(reg.participant_id))
    return _registration_public(reg)

@router.get("/{competition_id}/registrations", response_model=list[RegistrationPublic])
async def list_registrations(
    competition_id: UUID,
    status: str | None = Query(default=None, pattern="^(pending|approved|rejected)$"),
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    ch = await load_competition(session, competition_id)
    q = select(Registration).where(Registration.competition_id == ch.id)
    if status:
        q = q.where(Registration.status == status)
    rows = (await session.execute(q.order_by(Registration.registered_at.asc()))).scalars().all()
    return [_registration_public(r) for r in rows]

@router.post("/{competition_id}/registrations/{registration_id}/{decision}", response_model=RegistrationPublic)
async def review_registration(
    competition_id: UUID,
    registration_id: UUID,
    decision: str = Path(..., pattern="^(approve|reject)$"),
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
    clock: Clock = Depends(get_clock),
    eligibility: TeamEligibility = Depends(get_team_eligibility),
):
    ch = await load_competition(session, competition_id)
    reg = await session.scalar(
        select(Registration).where(Registration.id == registration_id, Registration.competition_id == ch.id)
    )
    if not reg:
        raise HTTPException(status_code=404, detail="Registration not found")
    if decision == "approve" and reg.team_id is not None:
        # the roster may have changed since the team registered
        team = await session.get(Team, reg.team_id)
        if not team:
            raise HTTPException(status_code=404, detail="Team not found")
        await eligibility.lock(team.id)
        snapshot = await eligibility.snapshot(team.id, team.leader_id)
        await eligibility.lock(team.id, snapshot.member_ids)
        outcome = await eligibility.check_team_approval(ch, snapshot)
        if outcome:
            raise rejection_to_http(outcome)
    reg.status = "approved" if decision == "approve" else "rejected"
    reg.reviewed_at = clock.now()
    reg.reviewed_by = admin.id
    await session.commit()
    await session.refresh(reg)
    log.info("registration.reviewed", registration_id=str(reg.id), status=reg.status)
    return _registration_public(reg)


# --- submissions ---
@router.get("/{competition_id}/quota", response_model=QuotaPublic)
async def my_quota(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    admission: SubmissionAdmission = Depends(get_admission),
):
    ch = await load_competition(session, competition_id)
    participant_id = await admission.resolve_participant(ch, user.id)
    if participant_id is None:
        raise rejection_to_http(NotEligible(competition_id=ch.id))
    now = clock.now()
    tracker = QuotaTracker(SqlSubmissionRepository(session), settings.quota_timezone)
    return _quota_public(await tracker.for_participant(participant_id, ch, now), now)

@router.post("/{competition_id}/submit", response_model=SubmitResult, status_code=201)
async def submit(
    competition_id: UUID,
    file: UploadFile = File(..., description="prediction file"),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    admission: SubmissionAdmission = Depends(get_admission),
):
    ch = await load_competition(session, competition_id)
    # one byte past the limit is enough for the size check to fail
    data = await file.read(ch.max_file_size_mb * MB + 1)
    outcome = await admission.admit(ch, user.id, file.filename or "", data)
    if isinstance(outcome, Rejection):
        raise rejection_to_http(outcome)
    return SubmitResult(
        submission=_submission_public(outcome.submission),
        quota=_quota_public(outcome.quota, outcome.submission.submitted_at),
    )

@router.get("/{competition_id}/submissions", response_model=list[SubmissionPublic])
async def my_submissions(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    admission: SubmissionAdmission = Depends(get_admission),
):
    ch = await load_competition(session, competition_id)
    participant_id = await admission.resolve_participant(ch, user.id)
    if participant_id is None:
        raise rejection_to_http(NotEligible(competition_id=ch.id))
    rows = await SqlSubmissionRepository(session).list_for_participant(participant_id, ch.id)
    return [_submission_public(s) for s in rows]

@router.get("/{competition_id}/leaderboard", response_model=LeaderboardPublic)
async def leaderboard(
    competition_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    ch = await load_competition(session, competition_id)
    now = clock.now()
    snapshot = await SqlSubmissionRepository(session).list_valid(ch.id)
    entries = build_leaderboard(ch, snapshot, now)
    if limit:
        entries = entries[:limit]

    ids = [e.participant_id for e in entries]
    names: dict[UUID, str] = {}
    if ids:
        for u in (await session.execute(select(User).where(User.id.in_(ids)))).scalars():
            names[u.id] = u.display_name
        for t in (await session.execute(select(Team).where(Team.id.in_(ids)))).scalars():
            names[t.id] = t.name

    metric = ScoringMetric(ch.scoring_metric)
    return LeaderboardPublic(
        competition_id=ch.id,
        scoring_metric=metric.value,
        metric_name=metric.display_name,
        higher_is_better=metric.higher_is_better,
        combined=private_phase_started(ch, now),
        rows=[
            LeaderboardRow(
                rank=e.rank,
                participant_id=e.participant_id,
                display_name=names.get(e.participant_id, "Unknown"),
                score=e.score,
                score_text=metric.format_score(e.score),
                public_score=float(e.best_public.score),
                private_score=float(e.best_private.score) if e.best_private else None,
                submission_count=e.submission_count,
                last_scored_at=max(s.submitted_at for s in e.contributing),
            )
            for e in entries
        ],
    )
