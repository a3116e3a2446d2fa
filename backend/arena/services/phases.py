from __future__ import annotations
import enum
from datetime import datetime
from typing import Protocol


class Phase(enum.StrEnum):
    UPCOMING = "upcoming"
    REGISTRATION = "registration"
    PUBLIC_TEST = "public_test"
    PRIVATE_TEST = "private_test"
    ENDED = "ended"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)

    @property
    def accepts_submissions(self) -> bool:
        return self in (Phase.PUBLIC_TEST, Phase.PRIVATE_TEST)


_PHASE_ORDER = list(Phase)


class SubmissionPhase(enum.StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


class CompetitionType(enum.StrEnum):
    THREE_PHASE = "3-phase"
    FOUR_PHASE = "4-phase"


class ParticipationType(enum.StrEnum):
    INDIVIDUAL = "individual"
    TEAM = "team"


class Timeline(Protocol):
    competition_type: str
    registration_start: datetime
    registration_end: datetime
    public_test_start: datetime
    public_test_end: datetime
    private_test_start: datetime | None
    private_test_end: datetime | None


def is_four_phase(ch: Timeline) -> bool:
    return ch.competition_type == CompetitionType.FOUR_PHASE


def resolve_phase(ch: Timeline, now: datetime) -> Phase:
    """
    Map a competition's configured timestamps and `now` to its lifecycle phase.

    Intervals are half-open and evaluated in order; the public test phase opens at
    registration_end. Never cache the result: it is only valid for `now`.
    """
    if now < ch.registration_start:
        return Phase.UPCOMING
    if now < ch.registration_end:
        return Phase.REGISTRATION
    if now < ch.public_test_end:
        return Phase.PUBLIC_TEST
    if is_four_phase(ch) and ch.private_test_end is not None and now < ch.private_test_end:
        return Phase.PRIVATE_TEST
    return Phase.ENDED


def submission_phase_for(phase: Phase) -> SubmissionPhase | None:
    """The phase tag a submission made during `phase` carries, or None if closed."""
    if phase == Phase.PUBLIC_TEST:
        return SubmissionPhase.PUBLIC
    if phase == Phase.PRIVATE_TEST:
        return SubmissionPhase.PRIVATE
    return None


def private_phase_started(ch: Timeline, now: datetime) -> bool:
    return is_four_phase(ch) and ch.private_test_start is not None and now >= ch.private_test_start


def next_deadline(ch: Timeline, phase: Phase) -> datetime | None:
    if phase == Phase.UPCOMING:
        return ch.registration_start
    if phase == Phase.REGISTRATION:
        return ch.registration_end
    if phase == Phase.PUBLIC_TEST:
        return ch.public_test_end
    if phase == Phase.PRIVATE_TEST:
        return ch.private_test_end
    return None


_COUNTDOWN_LABELS = {
    Phase.UPCOMING: "Registration starts in",
    Phase.REGISTRATION: "Registration ends in",
    Phase.PUBLIC_TEST: "Public test ends in",
    Phase.PRIVATE_TEST: "Private test ends in",
    Phase.ENDED: "Competition ended",
}

def countdown_label(phase: Phase) -> str:
    return _COUNTDOWN_LABELS[phase]
