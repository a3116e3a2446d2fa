from __future__ import annotations
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from uuid import UUID
import structlog
from arena.models.competition import Competition
from arena.models.submission import Submission
from arena.services.clock import Clock
from arena.services.csv_check import check_submission_file
from arena.services.outcomes import Rejection, NotEligible, WrongPhase, QuotaExceeded
from arena.services.phases import ParticipationType, SubmissionPhase, resolve_phase, submission_phase_for
from arena.services.quota import Quota, QuotaTracker
from arena.services.repositories import FileStore, RegistrationRepository, SubmissionRepository, TeamRepository
from arena.services.scoring import Scorer, placeholder_score

log = structlog.get_logger()


@dataclass(frozen=True)
class Accepted:
    submission: Submission
    quota: Quota  # allowance left after this submission


class SubmissionAdmission:
    """
    Decide whether one submission attempt is admitted and, if so, persist it.

    Steps, first failure wins: approved registration -> open phase -> quota -> file checks
    -> store file + insert row -> recount, withdrawing the row and file on overshoot.
    The leaderboard is never touched here; it is derived from the stored rows on read.
    """

    def __init__(
        self,
        *,
        submissions: SubmissionRepository,
        registrations: RegistrationRepository,
        teams: TeamRepository,
        files: FileStore,
        clock: Clock,
        scorer: Scorer = placeholder_score,
        quota_tz: str = "UTC",
        file_format: str = "csv",
        strict_csv: bool = False,
    ):
        self._submissions = submissions
        self._registrations = registrations
        self._teams = teams
        self._files = files
        self._clock = clock
        self._scorer = scorer
        self._quota = QuotaTracker(submissions, quota_tz)
        self._file_format = file_format
        self._strict_csv = strict_csv

    async def resolve_participant(self, ch: Competition, caller_id: UUID) -> UUID | None:
        """The user or team id the caller submits as, if it holds an approved registration."""
        if ch.participation_type == ParticipationType.TEAM:
            for team_id in await self._teams.teams_of(caller_id):
                if await self._registrations.find_approved(team_id, ch.id):
                    return team_id
            return None
        if await self._registrations.find_approved(caller_id, ch.id):
            return caller_id
        return None

    async def admit(self, ch: Competition, caller_id: UUID, file_name: str, data: bytes) -> Accepted | Rejection:
        outcome = await self._admit(ch, caller_id, file_name, data)
        if isinstance(outcome, Rejection):
            log.info("submission.rejected", competition_id=str(ch.id), user_id=str(caller_id), code=outcome.code)
        return outcome

    async def _admit(self, ch: Competition, caller_id: UUID, file_name: str, data: bytes) -> Accepted | Rejection:
        participant_id = await self.resolve_participant(ch, caller_id)
        if participant_id is None:
            return NotEligible(competition_id=ch.id)

        now = self._clock.now()
        phase = resolve_phase(ch, now)
        tag = submission_phase_for(phase)
        if tag is None:
            return WrongPhase(phase=phase.value)

        await self._submissions.lock(participant_id, ch.id)
        quota = await self._quota.for_participant(participant_id, ch, now)
        scope = quota.exhausted_scope
        if scope:
            limit = quota.daily_limit if scope == "daily" else quota.total_limit
            return QuotaExceeded(scope=scope, limit=limit)

        bad = check_submission_file(
            file_name, data,
            max_file_size_mb=ch.max_file_size_mb, file_format=self._file_format, strict=self._strict_csv,
        )
        if bad:
            return bad

        sub = await self._persist(ch, participant_id, caller_id, tag, file_name, data, now)

        # a concurrent admission may have slipped past the same quota check
        after = await self._quota.for_participant(participant_id, ch, now)
        over = _overshoot(after)
        if over:
            await self._withdraw(sub)
            log.warning("submission.overshoot", competition_id=str(ch.id), participant_id=str(participant_id), scope=over)
            return QuotaExceeded(scope=over, limit=after.daily_limit if over == "daily" else after.total_limit)

        log.info(
            "submission.accepted", competition_id=str(ch.id), participant_id=str(participant_id),
            submission_id=str(sub.id), phase=tag.value,
        )
        return Accepted(submission=sub, quota=after)

    async def _persist(
        self, ch: Competition, participant_id: UUID, caller_id: UUID, tag: SubmissionPhase,
        file_name: str, data: bytes, now: datetime,
    ) -> Submission:
        score = self._scorer(data, tag)
        safe_name = PurePosixPath(file_name).name
        path = self._files.store(data, f"{participant_id}/{ch.id}/{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}_{safe_name}")

        is_team = ch.participation_type == ParticipationType.TEAM
        sub = Submission(
            competition_id=ch.id,
            user_id=None if is_team else participant_id,
            team_id=participant_id if is_team else None,
            submitted_by=caller_id,
            phase=tag.value,
            file_path=path,
            file_name=safe_name,
            file_size_bytes=len(data),
            score=float(score),
            validation_status="valid",
            submitted_at=now,
        )
        try:
            sub.id = await self._submissions.insert(sub)
        except Exception:
            log.warning("submission.rollback", competition_id=str(ch.id), path=path)
            try:
                self._files.remove(path)
            except Exception:
                log.exception("submission.rollback_failed", path=path)
            raise
        return sub

    async def _withdraw(self, sub: Submission) -> None:
        await self._submissions.delete(sub.id)
        self._files.remove(sub.file_path)


def _overshoot(q: Quota) -> str | None:
    if q.daily_used > q.daily_limit:
        return "daily"
    if q.total_used > q.total_limit:
        return "total"
    return None
