"""
Entry points that drive the engine.

update_match_results is the live trigger used while a round is being played,
settle_round re-runs settlement for one completed round, and
recalculate_season replays every completed round of a season in order.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional
from sqlmodel import Session, select

from ..exceptions import EntityNotFoundError, RoundNotCompletedError, SettlementError
from ..models.enums import MatchStatus, RoundStatus
from ..models.league import League
from ..models.season import Match, Round, Season
from ..timeutils import utcnow
from .aggregation import get_round, update_league_round_results, update_round_results
from .boosts import apply_round_boosts
from .outcomes import rescore_match
from .prizes import process_prizes
from .ranking import take_round_start_snapshots, update_live_stats, update_stable_stats

logger = logging.getLogger(__name__)

STARTED_STATUSES = (MatchStatus.IN_PROGRESS, MatchStatus.COMPLETED)


@dataclass
class MatchScore:
    match_id: int
    home_score: int
    away_score: int
    status: MatchStatus


def _recompute_points(db: Session, round_id: int) -> None:
    # One commit, so base points are never visible without their boosts
    try:
        update_round_results(db, round_id, commit=False)
        update_league_round_results(db, round_id, commit=False)
        apply_round_boosts(db, round_id, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise


def _league_ids_for_season(db: Session, season_id: int) -> List[int]:
    return list(db.exec(select(League.id).where(League.season_id == season_id).order_by(League.id)).all())


def _process_prizes_for_season(db: Session, round_: Round, now: datetime) -> int:
    league_ids = _league_ids_for_season(db, round_.season_id)
    for league_id in league_ids:
        process_prizes(db, league_id, round_.id, now)
    return len(league_ids)


def update_match_results(
    db: Session,
    round_id: int,
    scores: Iterable[MatchScore],
    now: Optional[datetime] = None,
) -> int:
    """
    Record match scores for a round and push them through the engine.

    Returns the number of matches updated. Unknown match ids are ignored.
    """
    round_ = get_round(db, round_id)
    now = now or utcnow()

    matches = {m.id: m for m in db.exec(select(Match).where(Match.round_id == round_id)).all()}

    updated: List[Match] = []
    newly_completed = False
    for score in scores:
        match = matches.get(score.match_id)
        if match is None:
            logger.warning(f"Match {score.match_id} is not in round {round_id}, skipping")
            continue
        if score.status == MatchStatus.COMPLETED and match.status != MatchStatus.COMPLETED:
            newly_completed = True
        match.update_score(score.home_score, score.away_score, score.status)
        db.add(match)
        updated.append(match)

    if not updated:
        return 0

    # Snapshots must capture the ranks from before this round scored anything
    if round_.status == RoundStatus.PUBLISHED and any(m.status in STARTED_STATUSES for m in updated):
        round_.update_status(RoundStatus.IN_PROGRESS, now)
        db.add(round_)
        db.commit()
        take_round_start_snapshots(db, round_id)
        logger.info(f"Round {round_.round_number} (id={round_id}) is now in progress")

    for match in updated:
        rescore_match(db, match, now)
    db.commit()

    _recompute_points(db, round_id)

    if newly_completed:
        update_stable_stats(db, round_id)
    update_live_stats(db, round_id)

    if all(m.status == MatchStatus.COMPLETED for m in matches.values()):
        if round_.status != RoundStatus.COMPLETED:
            round_.update_status(RoundStatus.COMPLETED, now)
            db.add(round_)
            db.commit()
            logger.info(f"Round {round_.round_number} (id={round_id}) completed")
        _process_prizes_for_season(db, round_, now)

    return len(updated)


def settle_round(db: Session, round_id: int, now: Optional[datetime] = None) -> int:
    """
    Aggregate, translate, boost and pay prizes for one round.
    Safe to repeat: every step replaces what the previous run wrote.
    Only completed rounds can be settled.
    Returns the number of leagues settled.
    """
    round_ = get_round(db, round_id)
    if round_.status != RoundStatus.COMPLETED:
        raise RoundNotCompletedError(round_id, round_.round_number, round_.status)
    now = now or utcnow()

    _recompute_points(db, round_id)
    leagues = _process_prizes_for_season(db, round_, now)
    logger.info(f"Settled round {round_.round_number} (id={round_id}) for {leagues} leagues")
    return leagues


def recalculate_season(db: Session, season_id: int, now: Optional[datetime] = None) -> int:
    """
    Replay settlement for every completed round of a season, oldest first.

    Stops at the first round that fails, since later months and season totals
    depend on it. Returns the number of rounds processed.
    """
    season = db.get(Season, season_id)
    if season is None:
        raise EntityNotFoundError("Season", season_id)

    rounds = db.exec(
        select(Round)
        .where(Round.season_id == season_id, Round.status == RoundStatus.COMPLETED)
        .order_by(Round.start_date_utc, Round.id)
    ).all()

    season_name = season.name
    for round_id, round_number in [(r.id, r.round_number) for r in rounds]:
        try:
            settle_round(db, round_id, now)
        except Exception as e:
            db.rollback()
            logger.error(f"Season {season_id} recalculation stopped at round {round_number}: {e}")
            raise SettlementError(round_id, round_number, e) from e

    logger.info(f"Recalculated season {season_name}: {len(rounds)} rounds")
    return len(rounds)
