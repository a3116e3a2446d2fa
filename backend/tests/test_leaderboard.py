import uuid
from datetime import timedelta
import pytest
from arena.services.leaderboard import build_leaderboard, best_per_participant
from arena.services.metrics import ScoringMetric
from fakes import Comp, Sub, four_phase, T0

PUBLIC_NOW = T0 + timedelta(days=10)
PRIVATE_NOW = T0 + timedelta(days=25)
H = timedelta(hours=1)


def test_best_public_score_wins_higher_is_better():
    a, b = uuid.uuid4(), uuid.uuid4()
    t = T0 + timedelta(days=8)
    subs = [Sub(a, 0.7, t), Sub(a, 0.8, t + H), Sub(b, 0.9, t + 2 * H)]
    board = build_leaderboard(Comp(), subs, PUBLIC_NOW)
    assert [(e.rank, e.participant_id, e.score) for e in board] == [(1, b, 0.9), (2, a, 0.8)]
    assert board[1].submission_count == 2


def test_lower_is_better_metric_sorts_ascending():
    a, b = uuid.uuid4(), uuid.uuid4()
    t = T0 + timedelta(days=8)
    subs = [Sub(a, 3.2, t), Sub(a, 2.5, t + H), Sub(b, 1.1, t)]
    board = build_leaderboard(Comp(scoring_metric="mae"), subs, PUBLIC_NOW)
    assert [(e.participant_id, e.score) for e in board] == [(b, 1.1), (a, 2.5)]


def test_equal_scores_earlier_submission_ranks_first():
    a, b = uuid.uuid4(), uuid.uuid4()
    t = T0 + timedelta(days=8)
    subs = [Sub(a, 0.8, t + H), Sub(b, 0.8, t)]
    board = build_leaderboard(Comp(), subs, PUBLIC_NOW)
    assert [e.participant_id for e in board] == [b, a]
    assert [e.rank for e in board] == [1, 2]


def test_best_keeps_earliest_of_equal_scores():
    a = uuid.uuid4()
    t = T0 + timedelta(days=8)
    first, second = Sub(a, 0.8, t), Sub(a, 0.8, t + H)
    best = best_per_participant([second, first], ScoringMetric.F1_SCORE)
    assert best[a] is first


def test_invalid_and_unscored_submissions_are_ignored():
    a, b = uuid.uuid4(), uuid.uuid4()
    t = T0 + timedelta(days=8)
    subs = [
        Sub(a, 0.99, t, validation_status="invalid"),
        Sub(a, 0.5, t),
        Sub(b, None, t),
    ]
    board = build_leaderboard(Comp(), subs, PUBLIC_NOW)
    assert [(e.participant_id, e.score) for e in board] == [(a, 0.5)]
    assert board[0].submission_count == 1


def test_private_phase_combines_and_requires_both_phases():
    x, y = uuid.uuid4(), uuid.uuid4()
    pub = T0 + timedelta(days=10)
    priv = T0 + timedelta(days=22)
    subs = [
        Sub(x, 0.9, pub), Sub(x, 0.7, priv, phase="private"),
        Sub(y, 0.95, pub),
    ]
    board = build_leaderboard(four_phase(), subs, PRIVATE_NOW)
    assert len(board) == 1
    assert board[0].participant_id == x
    assert board[0].score == pytest.approx(0.8)
    assert board[0].best_private.score == 0.7


def test_four_phase_before_private_start_is_public_only():
    x, y = uuid.uuid4(), uuid.uuid4()
    pub = T0 + timedelta(days=10)
    board = build_leaderboard(four_phase(), [Sub(x, 0.9, pub), Sub(y, 0.95, pub)], PUBLIC_NOW)
    assert [e.participant_id for e in board] == [y, x]
    assert all(e.best_private is None for e in board)


def test_combined_ranking_uses_best_of_each_phase():
    x, y = uuid.uuid4(), uuid.uuid4()
    pub = T0 + timedelta(days=10)
    priv = T0 + timedelta(days=22)
    subs = [
        Sub(x, 0.6, pub), Sub(x, 0.9, pub + H), Sub(x, 0.5, priv, phase="private"),
        Sub(y, 0.8, pub), Sub(y, 0.8, priv, phase="private"),
    ]
    board = build_leaderboard(four_phase(), subs, PRIVATE_NOW)
    assert [e.participant_id for e in board] == [y, x]
    assert board[0].score == pytest.approx(0.8)
    assert board[1].score == pytest.approx(0.7)
    assert board[1].submission_count == 3


def test_combined_tie_goes_to_earlier_private_submission():
    x, y = uuid.uuid4(), uuid.uuid4()
    pub = T0 + timedelta(days=10)
    priv = T0 + timedelta(days=22)
    subs = [
        Sub(x, 0.8, pub), Sub(x, 0.6, priv + H, phase="private"),
        Sub(y, 0.6, pub), Sub(y, 0.8, priv, phase="private"),
    ]
    board = build_leaderboard(four_phase(), subs, PRIVATE_NOW)
    assert [e.participant_id for e in board] == [y, x]


def test_combined_lower_is_better():
    x, y = uuid.uuid4(), uuid.uuid4()
    pub = T0 + timedelta(days=10)
    priv = T0 + timedelta(days=22)
    subs = [
        Sub(x, 2.0, pub), Sub(x, 4.0, priv, phase="private"),
        Sub(y, 1.0, pub), Sub(y, 2.0, priv, phase="private"),
    ]
    board = build_leaderboard(four_phase(scoring_metric="rmse"), subs, PRIVATE_NOW)
    assert [(e.participant_id, e.score) for e in board] == [(y, pytest.approx(1.5)), (x, pytest.approx(3.0))]


def test_rebuild_is_idempotent():
    ids = [uuid.uuid4() for _ in range(5)]
    pub = T0 + timedelta(days=10)
    priv = T0 + timedelta(days=22)
    subs = []
    for i, pid in enumerate(ids):
        subs.append(Sub(pid, 0.1 * i, pub + i * H))
        subs.append(Sub(pid, 0.5, priv + i * H, phase="private"))
    ch = four_phase()
    first = build_leaderboard(ch, subs, PRIVATE_NOW)
    second = build_leaderboard(ch, list(reversed(subs)), PRIVATE_NOW)
    assert first == second
    assert [e.rank for e in first] == [1, 2, 3, 4, 5]


def test_empty_snapshot():
    assert build_leaderboard(four_phase(), [], PRIVATE_NOW) == []


def test_metric_direction_and_format():
    assert ScoringMetric.ACCURACY.higher_is_better
    assert not ScoringMetric.MAE.higher_is_better
    assert not ScoringMetric.RMSE.higher_is_better
    assert ScoringMetric.F1_SCORE.format_score(0.123456) == "0.1235"
