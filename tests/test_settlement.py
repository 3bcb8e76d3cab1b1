from datetime import datetime
from decimal import Decimal
import pytest
from sqlmodel import select

from league_engine.exceptions import EntityNotFoundError, RoundNotCompletedError, SettlementError
from league_engine.models import (
    LeagueMemberStats,
    LeaguePrizeSetting,
    LeagueRoundResult,
    MatchStatus,
    PrizeType,
    RoundResult,
    RoundStatus,
    UserBoostUsage,
    Winning,
)
from league_engine.services import settlement
from league_engine.services.settlement import (
    MatchScore,
    recalculate_season,
    settle_round,
    update_match_results,
)

KICK_OFF = datetime(2025, 3, 8, 12, 30)
FULL_TIME = datetime(2025, 3, 8, 14, 30)


def test_unknown_round(session):
    with pytest.raises(EntityNotFoundError):
        update_match_results(session, 999, [])
    with pytest.raises(EntityNotFoundError):
        settle_round(session, 999)
    with pytest.raises(EntityNotFoundError):
        recalculate_season(session, 999)


def test_unknown_matches_change_nothing(session, rounds, league, make_match):
    make_match(rounds[0])
    assert update_match_results(session, rounds[0].id, [MatchScore(12345, 1, 0, MatchStatus.COMPLETED)]) == 0
    session.refresh(rounds[0])
    assert rounds[0].status == RoundStatus.PUBLISHED


def test_kick_off_starts_round_and_takes_snapshot(session, rounds, users, league, make_match, predict):
    match = make_match(rounds[0])
    make_match(rounds[0])
    predict(users[0], match, 1, 0)

    update_match_results(session, rounds[0].id, [MatchScore(match.id, 1, 0, MatchStatus.IN_PROGRESS)], now=KICK_OFF)

    session.refresh(rounds[0])
    assert rounds[0].status == RoundStatus.IN_PROGRESS
    assert rounds[0].completed_date_utc is None

    stats = {s.user_id: s for s in session.exec(select(LeagueMemberStats)).all()}
    assert stats[users[0].id].snapshot_overall_rank == 1
    assert stats[users[0].id].live_round_points == 3
    assert stats[users[0].id].live_round_rank == 1
    # Nothing has finished, so nothing is stable yet
    assert stats[users[0].id].stable_round_points == 0


def test_full_round_pipeline(session, rounds, users, league, double_up, make_match, predict):
    session.add(LeaguePrizeSetting(league_id=league.id, prize_type=PrizeType.ROUND, prize_amount=Decimal("5.00")))
    session.commit()
    alice, bob, cara = users
    round_ = rounds[0]
    first = make_match(round_)
    second = make_match(round_)
    predict(alice, first, 2, 1)
    predict(bob, first, 1, 0)
    predict(bob, second, 0, 0)
    predict(cara, second, 2, 2)
    session.add(UserBoostUsage(user_id=alice.id, league_id=league.id, season_id=round_.season_id,
                               round_id=round_.id, boost_code="DoubleUp"))
    session.commit()

    update_match_results(session, round_.id, [MatchScore(first.id, 2, 1, MatchStatus.COMPLETED)], now=KICK_OFF)
    session.refresh(round_)
    assert round_.status == RoundStatus.IN_PROGRESS
    assert session.exec(select(Winning)).all() == []

    update_match_results(session, round_.id, [MatchScore(second.id, 0, 0, MatchStatus.COMPLETED)], now=FULL_TIME)
    session.refresh(round_)
    assert round_.status == RoundStatus.COMPLETED
    assert round_.completed_date_utc == FULL_TIME

    counts = {r.user_id: (r.exact_score_count, r.correct_result_count) for r in session.exec(select(RoundResult)).all()}
    assert counts == {alice.id: (1, 0), bob.id: (1, 1), cara.id: (0, 1)}

    points = {r.user_id: (r.base_points, r.boosted_points) for r in session.exec(select(LeagueRoundResult)).all()}
    assert points == {alice.id: (3, 6), bob.id: (4, 4), cara.id: (1, 1)}

    stats = {s.user_id: s for s in session.exec(select(LeagueMemberStats)).all()}
    assert stats[alice.id].live_round_rank == 1
    assert stats[alice.id].live_round_points == 6
    # Stable points leave boosts out
    assert stats[alice.id].stable_round_points == 3
    assert stats[bob.id].stable_round_rank == 1

    won = session.exec(select(Winning)).all()
    assert [(w.user_id, w.amount, w.round_number) for w in won] == [(alice.id, Decimal("5.00"), 1)]


def test_settle_round_is_repeatable(session, rounds, users, league, make_match, predict):
    session.add(LeaguePrizeSetting(league_id=league.id, prize_type=PrizeType.ROUND, prize_amount=Decimal("5.00")))
    session.commit()
    match = make_match(rounds[0])
    predict(users[2], match, 3, 1)
    update_match_results(session, rounds[0].id, [MatchScore(match.id, 3, 1, MatchStatus.COMPLETED)], now=FULL_TIME)

    assert settle_round(session, rounds[0].id, now=FULL_TIME) == 1
    settle_round(session, rounds[0].id, now=FULL_TIME)

    won = session.exec(select(Winning)).all()
    assert [(w.user_id, w.amount) for w in won] == [(users[2].id, Decimal("5.00"))]
    assert len(session.exec(select(LeagueRoundResult)).all()) == 1


def test_recalculate_season_walks_completed_rounds(session, rounds, users, league, make_match, predict):
    session.add(LeaguePrizeSetting(league_id=league.id, prize_type=PrizeType.OVERALL, prize_amount=Decimal("30.00")))
    session.commit()
    for round_, (user, home, away) in zip(rounds, [(users[0], 1, 0), (users[1], 2, 2), (users[1], 0, 3)]):
        match = make_match(round_)
        predict(user, match, home, away)
        update_match_results(session, round_.id, [MatchScore(match.id, home, away, MatchStatus.COMPLETED)],
                             now=round_.start_date_utc)

    for winning in session.exec(select(Winning)).all():
        session.delete(winning)
    session.commit()

    assert recalculate_season(session, rounds[0].season_id, now=FULL_TIME) == 3

    won = session.exec(select(Winning)).all()
    assert [(w.user_id, w.amount) for w in won] == [(users[1].id, Decimal("30.00"))]


def test_recalculate_season_stops_at_failing_round(session, rounds, league, make_match, monkeypatch):
    for round_ in rounds:
        round_.status = RoundStatus.COMPLETED
        session.add(round_)
    session.commit()
    settled = []

    def fake_settle(db, round_id, now=None):
        settled.append(round_id)
        if round_id == rounds[1].id:
            raise RuntimeError("boom")
        return 1

    monkeypatch.setattr(settlement, "settle_round", fake_settle)

    with pytest.raises(SettlementError) as excinfo:
        recalculate_season(session, rounds[0].season_id)

    assert excinfo.value.round_number == 2
    assert settled == [rounds[0].id, rounds[1].id]


def test_settle_round_refuses_round_in_play(session, rounds, users, league, make_match, predict):
    session.add(LeaguePrizeSetting(league_id=league.id, prize_type=PrizeType.ROUND, prize_amount=Decimal("5.00")))
    session.commit()
    first = make_match(rounds[0])
    make_match(rounds[0])
    predict(users[0], first, 1, 0)
    update_match_results(session, rounds[0].id, [MatchScore(first.id, 1, 0, MatchStatus.IN_PROGRESS)], now=KICK_OFF)

    with pytest.raises(RoundNotCompletedError) as excinfo:
        settle_round(session, rounds[0].id, now=KICK_OFF)

    assert excinfo.value.round_number == 1
    assert session.exec(select(Winning)).all() == []


def test_settle_round_refuses_published_round(session, rounds, league):
    with pytest.raises(RoundNotCompletedError):
        settle_round(session, rounds[0].id)


def test_failed_boost_step_keeps_previous_points(session, rounds, users, league, make_match, predict, monkeypatch):
    alice = users[0]
    round_ = rounds[0]
    match = make_match(round_)
    predict(alice, match, 2, 1)
    session.add(UserBoostUsage(user_id=alice.id, league_id=league.id, season_id=round_.season_id,
                               round_id=round_.id, boost_code="DoubleUp"))
    session.commit()
    update_match_results(session, round_.id, [MatchScore(match.id, 2, 1, MatchStatus.COMPLETED)], now=FULL_TIME)

    def broken_boosts(db, round_id, commit=True):
        raise RuntimeError("boom")

    monkeypatch.setattr(settlement, "apply_round_boosts", broken_boosts)

    with pytest.raises(RuntimeError):
        settle_round(session, round_.id, now=FULL_TIME)

    row = session.exec(select(LeagueRoundResult)).one()
    assert (row.base_points, row.boosted_points, row.has_boost) == (3, 6, True)
