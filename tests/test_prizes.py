from datetime import datetime
from decimal import Decimal
import pytest
from sqlmodel import select

from league_engine.models import (
    LeaguePrizeSetting,
    LeagueRoundResult,
    PrizeType,
    Round,
    RoundStatus,
    Winning,
)
from league_engine.services import prizes
from league_engine.services.prizes import distribute_prize_money, process_prizes

AWARDED = datetime(2025, 6, 1)


def test_distribute_single_winner():
    assert distribute_prize_money(Decimal("25.00"), 1) == [Decimal("25.00")]


def test_distribute_even_split():
    assert distribute_prize_money(Decimal("30.00"), 3) == [Decimal("10.00")] * 3


def test_distribute_leftover_pennies_go_first():
    shares = distribute_prize_money(Decimal("10.00"), 3)
    assert shares == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]
    assert sum(shares) == Decimal("10.00")


def test_distribute_no_winners():
    assert distribute_prize_money(Decimal("10.00"), 0) == []


def add_setting(session, league, prize_type, amount, rank=1, description=None):
    setting = LeaguePrizeSetting(
        league_id=league.id,
        prize_type=prize_type,
        rank=rank,
        prize_amount=Decimal(amount),
        description=description,
    )
    session.add(setting)
    session.commit()
    session.refresh(setting)
    return setting


def add_results(session, league, round_, points_by_user, exact_by_user=None):
    """Results keyed by user id."""
    exact_by_user = exact_by_user or {}
    for user_id, points in points_by_user.items():
        session.add(LeagueRoundResult(
            league_id=league.id,
            round_id=round_.id,
            user_id=user_id,
            base_points=points,
            boosted_points=points,
            exact_score_count=exact_by_user.get(user_id, 0),
        ))
    session.commit()


def winnings(session):
    return sorted(
        (w.user_id, w.amount, w.round_number, w.month)
        for w in session.exec(select(Winning)).all()
    )


def test_round_prize_split_between_tied_winners(session, rounds, users, league):
    add_setting(session, league, PrizeType.ROUND, "5.00")
    alice, bob, cara = users
    add_results(session, league, rounds[0], {alice.id: 4, bob.id: 4, cara.id: 1})

    process_prizes(session, league.id, rounds[0].id, now=AWARDED)

    assert winnings(session) == [
        (alice.id, Decimal("2.50"), 1, None),
        (bob.id, Decimal("2.50"), 1, None),
    ]


def test_resettlement_replaces_winnings(session, rounds, users, league):
    add_setting(session, league, PrizeType.ROUND, "5.00")
    alice, bob, cara = users
    add_results(session, league, rounds[0], {alice.id: 4, bob.id: 2})
    process_prizes(session, league.id, rounds[0].id, now=AWARDED)
    process_prizes(session, league.id, rounds[0].id, now=AWARDED)
    assert winnings(session) == [(alice.id, Decimal("5.00"), 1, None)]

    # Score correction hands the round to Bob
    row = session.exec(select(LeagueRoundResult).where(LeagueRoundResult.user_id == bob.id)).one()
    row.boosted_points = 7
    session.add(row)
    session.commit()
    process_prizes(session, league.id, rounds[0].id, now=AWARDED)

    assert winnings(session) == [(bob.id, Decimal("5.00"), 1, None)]


def test_zero_point_round_pays_nobody(session, rounds, users, league):
    add_setting(session, league, PrizeType.ROUND, "5.00")
    add_results(session, league, rounds[0], {users[0].id: 0, users[1].id: 0})

    assert process_prizes(session, league.id, rounds[0].id, now=AWARDED) == []
    assert winnings(session) == []


def test_monthly_prize_waits_for_last_round_of_month(session, season, rounds, users, league):
    add_setting(session, league, PrizeType.MONTHLY, "20.00")
    late_march = Round(
        season_id=season.id,
        round_number=4,
        start_date_utc=datetime(2025, 3, 22, 12, 0),
        deadline_utc=datetime(2025, 3, 22, 11, 0),
        status=RoundStatus.COMPLETED,
    )
    session.add(late_march)
    session.commit()
    alice, bob, _ = users
    add_results(session, league, rounds[0], {alice.id: 5, bob.id: 1})
    add_results(session, league, late_march, {bob.id: 6})

    assert process_prizes(session, league.id, rounds[0].id, now=AWARDED) == []

    process_prizes(session, league.id, late_march.id, now=AWARDED)
    assert winnings(session) == [(bob.id, Decimal("20.00"), None, 3)]


def test_end_of_season_prizes_only_on_last_round(session, rounds, users, league):
    add_setting(session, league, PrizeType.OVERALL, "50.00", rank=1)
    add_setting(session, league, PrizeType.MOST_EXACT_SCORES, "10.00")
    alice, bob, cara = users
    add_results(session, league, rounds[0], {alice.id: 9, bob.id: 3}, {alice.id: 3})

    assert process_prizes(session, league.id, rounds[0].id, now=AWARDED) == []

    add_results(session, league, rounds[2], {bob.id: 3, cara.id: 1}, {bob.id: 1})
    process_prizes(session, league.id, rounds[2].id, now=AWARDED)

    assert winnings(session) == [
        (alice.id, Decimal("10.00"), None, None),
        (alice.id, Decimal("50.00"), None, None),
    ]


def test_overall_rank_swallowed_by_tie_pays_nobody(session, rounds, users, league):
    first = add_setting(session, league, PrizeType.OVERALL, "30.00", rank=1)
    add_setting(session, league, PrizeType.OVERALL, "15.00", rank=2)
    third = add_setting(session, league, PrizeType.OVERALL, "5.00", rank=3)
    alice, bob, cara = users
    add_results(session, league, rounds[2], {alice.id: 8, bob.id: 8, cara.id: 2})

    process_prizes(session, league.id, rounds[2].id, now=AWARDED)

    paid = {(w.user_id, w.league_prize_setting_id): w.amount for w in session.exec(select(Winning)).all()}
    assert paid == {
        (alice.id, first.id): Decimal("15.00"),
        (bob.id, first.id): Decimal("15.00"),
        (cara.id, third.id): Decimal("5.00"),
    }


def test_league_without_prizes_settles_nothing(session, rounds, users, league):
    add_results(session, league, rounds[0], {users[0].id: 3})
    assert process_prizes(session, league.id, rounds[0].id, now=AWARDED) == []


def test_failed_settlement_keeps_previous_winnings(session, rounds, users, league, monkeypatch):
    add_setting(session, league, PrizeType.ROUND, "5.00")
    add_setting(session, league, PrizeType.MONTHLY, "20.00")
    alice, bob, _ = users
    add_results(session, league, rounds[0], {alice.id: 4, bob.id: 2})
    process_prizes(session, league.id, rounds[0].id, now=AWARDED)
    before = winnings(session)
    assert before == [(alice.id, Decimal("5.00"), 1, None), (alice.id, Decimal("20.00"), None, 3)]

    row = session.exec(select(LeagueRoundResult).where(LeagueRoundResult.user_id == bob.id)).one()
    row.boosted_points = 9
    session.add(row)
    session.commit()

    def broken_monthly(*args):
        raise RuntimeError("boom")

    # Round prize is rewritten for Bob before the monthly strategy fails
    monkeypatch.setitem(prizes.PRIZE_STRATEGIES, PrizeType.MONTHLY, broken_monthly)

    with pytest.raises(RuntimeError):
        process_prizes(session, league.id, rounds[0].id, now=AWARDED)

    assert winnings(session) == before
