from __future__ import annotations
from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from arena.config import settings
from arena.db import get_session
from arena.services.admission import SubmissionAdmission
from arena.services.clock import Clock, SystemClock
from arena.services.outcomes import Rejection
from arena.services.repositories import FileStore
from arena.services.scoring import Scorer, placeholder_score
from arena.services.sql_repositories import SqlRegistrationRepository, SqlSubmissionRepository, SqlTeamRepository
from arena.services.storage import get_file_store
from arena.services.team_eligibility import TeamEligibility

_system_clock = SystemClock()

def get_clock() -> Clock:
    return _system_clock

def get_files() -> FileStore:
    return get_file_store()

def get_scorer() -> Scorer:
    return placeholder_score

def get_admission(
    session: AsyncSession = Depends(get_session),
    files: FileStore = Depends(get_files),
    clock: Clock = Depends(get_clock),
    scorer: Scorer = Depends(get_scorer),
) -> SubmissionAdmission:
    return SubmissionAdmission(
        submissions=SqlSubmissionRepository(session),
        registrations=SqlRegistrationRepository(session),
        teams=SqlTeamRepository(session),
        files=files,
        clock=clock,
        scorer=scorer,
        quota_tz=settings.quota_timezone,
        file_format=settings.submission_file_format,
        strict_csv=settings.strict_prediction_csv,
    )

def get_team_eligibility(session: AsyncSession = Depends(get_session)) -> TeamEligibility:
    return TeamEligibility(SqlRegistrationRepository(session), SqlTeamRepository(session))


_STATUS_BY_CODE = {
    "not_eligible": 403,
    "wrong_phase": 400,
    "quota_exceeded": 429,
    "malformed_input": 422,
    "team_size_violation": 409,
    "team_conflict": 409,
    "leader_removal_forbidden": 403,
    "already_member": 409,
    "not_a_member": 404,
    "not_team_leader": 403,
    "team_has_registrations": 409,
    "already_registered": 409,
    "registration_closed": 400,
    "participation_mismatch": 400,
}

def rejection_to_http(outcome: Rejection) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_CODE.get(outcome.code, 400), detail=outcome.as_dict())
