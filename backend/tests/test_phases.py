from datetime import timedelta
import pytest
from arena.services.phases import (
    Phase, SubmissionPhase, resolve_phase, submission_phase_for, private_phase_started,
    next_deadline, countdown_label,
)
from fakes import Comp, four_phase, T0

DAY = timedelta(days=1)
SEC = timedelta(seconds=1)


@pytest.mark.parametrize("now, expected", [
    (T0 - SEC, Phase.UPCOMING),
    (T0, Phase.REGISTRATION),
    (T0 + 7 * DAY - SEC, Phase.REGISTRATION),
    (T0 + 7 * DAY, Phase.PUBLIC_TEST),
    (T0 + 21 * DAY - SEC, Phase.PUBLIC_TEST),
    (T0 + 21 * DAY, Phase.ENDED),
])
def test_three_phase_boundaries_are_half_open(now, expected):
    assert resolve_phase(Comp(), now) == expected


@pytest.mark.parametrize("now, expected", [
    (T0 + 21 * DAY - SEC, Phase.PUBLIC_TEST),
    (T0 + 21 * DAY, Phase.PRIVATE_TEST),
    (T0 + 28 * DAY - SEC, Phase.PRIVATE_TEST),
    (T0 + 28 * DAY, Phase.ENDED),
])
def test_four_phase_private_window(now, expected):
    assert resolve_phase(four_phase(), now) == expected


def test_public_test_opens_at_registration_end_even_with_gap():
    ch = Comp(public_test_start=T0 + 8 * DAY)
    assert resolve_phase(ch, T0 + 7 * DAY) == Phase.PUBLIC_TEST


def test_three_phase_never_reports_private():
    ch = Comp()
    for hours in range(0, 24 * 40, 7):
        assert resolve_phase(ch, T0 + timedelta(hours=hours)) != Phase.PRIVATE_TEST


def test_phase_is_monotonic_in_time():
    ch = four_phase()
    seen = [resolve_phase(ch, T0 - DAY + timedelta(hours=h)) for h in range(0, 24 * 32, 5)]
    assert [p.order for p in seen] == sorted(p.order for p in seen)


def test_submission_phase_tags():
    assert submission_phase_for(Phase.PUBLIC_TEST) == SubmissionPhase.PUBLIC
    assert submission_phase_for(Phase.PRIVATE_TEST) == SubmissionPhase.PRIVATE
    for closed in (Phase.UPCOMING, Phase.REGISTRATION, Phase.ENDED):
        assert submission_phase_for(closed) is None
        assert not closed.accepts_submissions


def test_private_phase_started():
    ch = four_phase()
    assert not private_phase_started(ch, T0 + 21 * DAY - SEC)
    assert private_phase_started(ch, T0 + 21 * DAY)
    # stays combined after the competition ends
    assert private_phase_started(ch, T0 + 60 * DAY)
    assert not private_phase_started(Comp(), T0 + 60 * DAY)


def test_deadlines_and_labels():
    ch = four_phase()
    assert next_deadline(ch, Phase.UPCOMING) == ch.registration_start
    assert next_deadline(ch, Phase.REGISTRATION) == ch.registration_end
    assert next_deadline(ch, Phase.PUBLIC_TEST) == ch.public_test_end
    assert next_deadline(ch, Phase.PRIVATE_TEST) == ch.private_test_end
    assert next_deadline(ch, Phase.ENDED) is None
    assert countdown_label(Phase.ENDED) == "Competition ended"
