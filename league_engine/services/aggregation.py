"""
Round aggregation and league points translation.

Both steps are full recomputes over the current contents of a round, written
back with upsert semantics on the natural key, so running them twice on the
same data leaves identical rows.
"""

import logging
from typing import Dict
from sqlmodel import Session, select

from ..exceptions import EntityNotFoundError
from ..models.enums import LeagueMemberStatus, PredictionOutcome
from ..models.league import League, LeagueMember
from ..models.prediction import Prediction
from ..models.results import LeagueRoundResult, RoundResult
from ..models.season import Match, Round

logger = logging.getLogger(__name__)


def get_round(db: Session, round_id: int) -> Round:
    round_ = db.get(Round, round_id)
    if round_ is None:
        raise EntityNotFoundError("Round", round_id)
    return round_


def approved_member_ids(db: Session, league_id: int) -> list[int]:
    statement = select(LeagueMember.user_id).where(
        LeagueMember.league_id == league_id,
        LeagueMember.status == LeagueMemberStatus.APPROVED,
    )
    return sorted(db.exec(statement).all())


def count_round_outcomes(db: Session, round_id: int) -> Dict[int, Dict[str, int]]:
    """Per-user counts of non-pending outcomes for the matches currently in a round."""
    statement = (
        select(Prediction.user_id, Prediction.outcome)
        .join(Match, Match.id == Prediction.match_id)
        .where(Match.round_id == round_id, Prediction.outcome != PredictionOutcome.PENDING)
    )

    counts: Dict[int, Dict[str, int]] = {}
    for user_id, outcome in db.exec(statement).all():
        user_counts = counts.setdefault(user_id, {"exact": 0, "correct": 0, "incorrect": 0})
        if outcome == PredictionOutcome.EXACT_SCORE:
            user_counts["exact"] += 1
        elif outcome == PredictionOutcome.CORRECT_RESULT:
            user_counts["correct"] += 1
        else:
            user_counts["incorrect"] += 1
    return counts


def update_round_results(db: Session, round_id: int, commit: bool = True) -> int:
    """
    Rebuild RoundResult rows for a round.
    Users who no longer have any scored prediction in the round lose their row.
    """
    get_round(db, round_id)
    counts = count_round_outcomes(db, round_id)

    existing = {
        row.user_id: row
        for row in db.exec(select(RoundResult).where(RoundResult.round_id == round_id)).all()
    }

    for user_id, user_counts in counts.items():
        row = existing.pop(user_id, None) or RoundResult(round_id=round_id, user_id=user_id)
        row.exact_score_count = user_counts["exact"]
        row.correct_result_count = user_counts["correct"]
        row.incorrect_count = user_counts["incorrect"]
        db.add(row)

    for stale in existing.values():
        db.delete(stale)

    if commit:
        db.commit()
    else:
        db.flush()
    if not counts:
        logger.warning(f"Round {round_id} has no scored predictions")
    logger.info(f"Round {round_id}: aggregated results for {len(counts)} users")
    return len(counts)


def calculate_base_points(league: League, round_result: RoundResult) -> int:
    return (
        round_result.exact_score_count * league.points_for_exact_score
        + round_result.correct_result_count * league.points_for_correct_result
    )


def update_league_round_results(db: Session, round_id: int, commit: bool = True) -> int:
    """
    Translate RoundResult counts into per-league points for every league in the round's season.

    Boosts are reset on every row: they have to be re-applied afterwards.
    Returns the number of leagues processed.
    """
    round_ = get_round(db, round_id)

    round_results = {
        row.user_id: row
        for row in db.exec(select(RoundResult).where(RoundResult.round_id == round_id)).all()
    }
    leagues = db.exec(select(League).where(League.season_id == round_.season_id)).all()

    for league in leagues:
        members = approved_member_ids(db, league.id)
        if not members:
            logger.warning(f"League {league.id} has no approved members, skipping round {round_id}")

        existing: Dict[int, LeagueRoundResult] = {
            row.user_id: row
            for row in db.exec(
                select(LeagueRoundResult).where(
                    LeagueRoundResult.league_id == league.id,
                    LeagueRoundResult.round_id == round_id,
                )
            ).all()
        }

        for user_id in members:
            round_result = round_results.get(user_id)
            if round_result is None:
                continue

            row = existing.pop(user_id, None) or LeagueRoundResult(
                league_id=league.id, round_id=round_id, user_id=user_id
            )
            row.base_points = calculate_base_points(league, round_result)
            row.boosted_points = row.base_points
            row.has_boost = False
            row.applied_boost_code = None
            row.exact_score_count = round_result.exact_score_count
            db.add(row)

        # Members who left, or whose predictions all went back to pending
        for stale in existing.values():
            db.delete(stale)

    if commit:
        db.commit()
    else:
        db.flush()
    logger.info(f"Round {round_id}: translated points for {len(leagues)} leagues")
    return len(leagues)
