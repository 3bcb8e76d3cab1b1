"""
Prize settlement.

Each prize type has a strategy that decides whether the round triggers it,
deletes the Winning rows for the period it settles and writes the new set.
process_prizes runs every configured strategy for a league and commits once,
so a failure leaves the previous Winning rows in place.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Callable, Dict, List, Optional, Sequence
from sqlmodel import Session, select

from ..exceptions import EntityNotFoundError
from ..models.enums import PrizeType
from ..models.league import League, LeaguePrizeSetting
from ..models.season import Round, Season
from ..models.winning import Winning
from ..timeutils import month_key, utcnow
from .aggregation import get_round
from .winners import LeagueStandings

logger = logging.getLogger(__name__)

PENNY = Decimal("0.01")


def distribute_prize_money(total: Decimal, winner_count: int) -> List[Decimal]:
    """
    Split a prize evenly in whole pennies.

    Leftover pennies go one each to the first winners, so the shares always
    add up to the total. distribute_prize_money(Decimal("10"), 3) -> [3.34, 3.33, 3.33]
    """
    if winner_count <= 0:
        return []

    total = Decimal(total).quantize(PENNY, rounding=ROUND_DOWN)
    share = (total / winner_count).quantize(PENNY, rounding=ROUND_DOWN)
    remainder_pennies = int((total - share * winner_count) / PENNY)

    return [share + PENNY if i < remainder_pennies else share for i in range(winner_count)]


def _pay(
    db: Session,
    setting: LeaguePrizeSetting,
    winner_ids: Sequence[int],
    now: datetime,
    round_number: Optional[int] = None,
    month: Optional[int] = None,
) -> List[Winning]:
    winner_ids = sorted(winner_ids)
    amounts = distribute_prize_money(setting.prize_amount, len(winner_ids))
    winnings = [
        Winning(
            user_id=user_id,
            league_prize_setting_id=setting.id,
            amount=amount,
            round_number=round_number,
            month=month,
            awarded_date_utc=now,
        )
        for user_id, amount in zip(winner_ids, amounts)
    ]
    for winning in winnings:
        db.add(winning)
    return winnings


def _delete_winnings(db: Session, setting_ids: Sequence[int], **period) -> None:
    if not setting_ids:
        return
    statement = select(Winning).where(Winning.league_prize_setting_id.in_(setting_ids))
    for column, value in period.items():
        statement = statement.where(getattr(Winning, column) == value)
    for winning in db.exec(statement).all():
        db.delete(winning)
    db.flush()


def is_last_round_of_season(season: Season, round_: Round) -> bool:
    return round_.round_number == season.number_of_rounds


def rounds_in_month(db: Session, round_: Round) -> List[Round]:
    """Rounds of the season that start in the same calendar month as this one, by start date."""
    season_rounds = db.exec(
        select(Round).where(Round.season_id == round_.season_id).order_by(Round.start_date_utc, Round.id)
    ).all()
    return [r for r in season_rounds if month_key(r.start_date_utc) == month_key(round_.start_date_utc)]


def award_round_prize(db, league, settings, standings, round_, season, now) -> List[Winning]:
    setting = settings[0]
    _delete_winnings(db, [s.id for s in settings], round_number=round_.round_number)
    winners = standings.get_round_winners(round_.id)
    return _pay(db, setting, winners, now, round_number=round_.round_number)


def award_monthly_prize(db, league, settings, standings, round_, season, now) -> List[Winning]:
    month_rounds = rounds_in_month(db, round_)
    if month_rounds[-1].id != round_.id:
        return []

    month = round_.start_date_utc.month
    _delete_winnings(db, [s.id for s in settings], month=month)
    winners = standings.get_period_winners([r.id for r in month_rounds])
    return _pay(db, settings[0], winners, now, month=month)


def award_overall_prizes(db, league, settings, standings, round_, season, now) -> List[Winning]:
    if not is_last_round_of_season(season, round_):
        return []

    _delete_winnings(db, [s.id for s in settings])
    groups = {group.rank: group for group in standings.get_overall_rankings()}

    winnings = []
    for setting in sorted(settings, key=lambda s: s.rank):
        # A rank absorbed by a tie above it pays nobody
        group = groups.get(setting.rank)
        if group is None:
            continue
        winnings.extend(_pay(db, setting, group.user_ids, now))
    return winnings


def award_most_exact_scores_prize(db, league, settings, standings, round_, season, now) -> List[Winning]:
    if not is_last_round_of_season(season, round_):
        return []

    _delete_winnings(db, [s.id for s in settings])
    winners = standings.get_most_exact_scores_winners()
    return _pay(db, settings[0], winners, now)


PrizeStrategy = Callable[..., List[Winning]]

PRIZE_STRATEGIES: Dict[PrizeType, PrizeStrategy] = {
    PrizeType.ROUND: award_round_prize,
    PrizeType.MONTHLY: award_monthly_prize,
    PrizeType.OVERALL: award_overall_prizes,
    PrizeType.MOST_EXACT_SCORES: award_most_exact_scores_prize,
}


def process_prizes(db: Session, league_id: int, round_id: int, now: Optional[datetime] = None) -> List[Winning]:
    """
    Settle every configured prize type for a league after a round.
    Re-running for the same round replaces, never adds to, the Winning set.
    """
    round_ = get_round(db, round_id)
    league = db.get(League, league_id)
    if league is None:
        raise EntityNotFoundError("League", league_id)
    season = db.get(Season, round_.season_id)

    settings = db.exec(
        select(LeaguePrizeSetting)
        .where(LeaguePrizeSetting.league_id == league_id)
        .order_by(LeaguePrizeSetting.rank, LeaguePrizeSetting.id)
    ).all()
    if not settings:
        logger.warning(f"League {league_id} has no prize settings, nothing to settle")
        return []

    by_type: Dict[PrizeType, List[LeaguePrizeSetting]] = {}
    for setting in settings:
        by_type.setdefault(setting.prize_type, []).append(setting)

    standings = LeagueStandings.load(db, league_id)
    now = now or utcnow()

    winnings: List[Winning] = []
    try:
        for prize_type in PrizeType:
            if prize_type not in by_type:
                continue
            strategy = PRIZE_STRATEGIES[prize_type]
            winnings.extend(strategy(db, league, by_type[prize_type], standings, round_, season, now))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Prize settlement failed for league {league_id}, round {round_id}")
        raise

    logger.info(f"League {league_id}, round {round_.round_number}: awarded {len(winnings)} winnings")
    return winnings
