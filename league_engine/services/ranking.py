"""
Ranking engine.

Ranks use competition ("1224") ordering: members on the same score share a
rank, and the next score down is ranked by how many members are above it.
Every stats update computes ranks for a league's whole member set in memory
and writes them back in one commit.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping
from sqlmodel import Session, select

from ..models.enums import MatchStatus, PredictionOutcome
from ..models.league import League
from ..models.prediction import Prediction
from ..models.results import LeagueRoundResult
from ..models.season import Match, Round
from ..models.stats import LeagueMemberStats
from ..timeutils import month_key
from .aggregation import approved_member_ids, get_round

logger = logging.getLogger(__name__)


@dataclass
class RankGroup:
    rank: int
    score: int
    user_ids: List[int] = field(default_factory=list)


def rank_groups(scores: Mapping[int, int]) -> List[RankGroup]:
    """
    Group members by score, highest first.

    Example: {1: 10, 2: 10, 3: 5} -> [RankGroup(1, 10, [1, 2]), RankGroup(3, 5, [3])]
    """
    by_score: Dict[int, List[int]] = {}
    for user_id, score in scores.items():
        by_score.setdefault(score, []).append(user_id)

    groups = []
    members_above = 0
    for score in sorted(by_score, reverse=True):
        user_ids = sorted(by_score[score])
        groups.append(RankGroup(rank=members_above + 1, score=score, user_ids=user_ids))
        members_above += len(user_ids)
    return groups


def rank_scores(scores: Mapping[int, int]) -> Dict[int, int]:
    """Map each member to their rank. {1: 10, 2: 10, 3: 5} -> {1: 1, 2: 1, 3: 3}"""
    return {
        user_id: group.rank
        for group in rank_groups(scores)
        for user_id in group.user_ids
    }


def _leagues_for_round(db: Session, round_: Round) -> List[League]:
    return db.exec(select(League).where(League.season_id == round_.season_id)).all()


def _stats_by_user(db: Session, league_id: int, member_ids: List[int]) -> Dict[int, LeagueMemberStats]:
    """Stats rows for every approved member, creating missing ones."""
    stats = {
        row.user_id: row
        for row in db.exec(select(LeagueMemberStats).where(LeagueMemberStats.league_id == league_id)).all()
    }
    for user_id in member_ids:
        if user_id not in stats:
            stats[user_id] = LeagueMemberStats(league_id=league_id, user_id=user_id)
    return stats


def _boosted_points_by_user(db: Session, league_id: int, round_ids: List[int]) -> Dict[int, int]:
    totals: Dict[int, int] = {}
    if not round_ids:
        return totals
    statement = select(LeagueRoundResult).where(
        LeagueRoundResult.league_id == league_id,
        LeagueRoundResult.round_id.in_(round_ids),
    )
    for row in db.exec(statement).all():
        totals[row.user_id] = totals.get(row.user_id, 0) + row.boosted_points
    return totals


def take_round_start_snapshots(db: Session, round_id: int) -> int:
    """
    Freeze each member's overall and month rank as it stood before the round started,
    and reset the round's live and stable figures.
    """
    round_ = get_round(db, round_id)
    leagues = _leagues_for_round(db, round_)

    for league in leagues:
        members = approved_member_ids(db, league.id)
        for stats in _stats_by_user(db, league.id, members).values():
            stats.snapshot_overall_rank = stats.overall_rank
            stats.snapshot_month_rank = stats.month_rank
            stats.live_round_rank = 1
            stats.live_round_points = 0
            stats.stable_round_rank = 1
            stats.stable_round_points = 0
            db.add(stats)

    db.commit()
    logger.info(f"Round {round_id}: took round-start snapshots for {len(leagues)} leagues")
    return len(leagues)


def update_live_stats(db: Session, round_id: int) -> int:
    """
    Recompute live round, overall and month ranks from the points currently known.
    Month ranks cover the rounds that start in the same calendar month as this one.
    """
    round_ = get_round(db, round_id)
    leagues = _leagues_for_round(db, round_)

    season_rounds = db.exec(select(Round).where(Round.season_id == round_.season_id)).all()
    season_round_ids = [r.id for r in season_rounds]
    month_round_ids = [r.id for r in season_rounds if month_key(r.start_date_utc) == month_key(round_.start_date_utc)]

    for league in leagues:
        members = approved_member_ids(db, league.id)
        if not members:
            continue

        round_totals = _boosted_points_by_user(db, league.id, [round_id])
        season_totals = _boosted_points_by_user(db, league.id, season_round_ids)
        month_totals = _boosted_points_by_user(db, league.id, month_round_ids)

        round_points = {user_id: round_totals.get(user_id, 0) for user_id in members}
        round_ranks = rank_scores(round_points)
        overall_ranks = rank_scores({user_id: season_totals.get(user_id, 0) for user_id in members})
        month_ranks = rank_scores({user_id: month_totals.get(user_id, 0) for user_id in members})

        stats = _stats_by_user(db, league.id, members)
        for user_id in members:
            row = stats[user_id]
            row.live_round_points = round_points[user_id]
            row.live_round_rank = round_ranks[user_id]
            row.overall_rank = overall_ranks[user_id]
            row.month_rank = month_ranks[user_id]
            db.add(row)

    db.commit()
    logger.info(f"Round {round_id}: updated live stats for {len(leagues)} leagues")
    return len(leagues)


def update_stable_stats(db: Session, round_id: int) -> int:
    """
    Recompute stable round points and ranks from completed matches only.
    Stable points are league base points; boosts are not included.
    """
    round_ = get_round(db, round_id)
    leagues = _leagues_for_round(db, round_)

    statement = (
        select(Prediction.user_id, Prediction.outcome)
        .join(Match, Match.id == Prediction.match_id)
        .where(Match.round_id == round_id, Match.status == MatchStatus.COMPLETED)
    )
    counts: Dict[int, List[int]] = {}
    for user_id, outcome in db.exec(statement).all():
        exact_correct = counts.setdefault(user_id, [0, 0])
        if outcome == PredictionOutcome.EXACT_SCORE:
            exact_correct[0] += 1
        elif outcome == PredictionOutcome.CORRECT_RESULT:
            exact_correct[1] += 1

    for league in leagues:
        members = approved_member_ids(db, league.id)
        if not members:
            continue

        points = {}
        for user_id in members:
            exact, correct = counts.get(user_id, (0, 0))
            points[user_id] = exact * league.points_for_exact_score + correct * league.points_for_correct_result
        ranks = rank_scores(points)

        stats = _stats_by_user(db, league.id, members)
        for user_id in members:
            row = stats[user_id]
            row.stable_round_points = points[user_id]
            row.stable_round_rank = ranks[user_id]
            db.add(row)

    db.commit()
    logger.info(f"Round {round_id}: updated stable stats for {len(leagues)} leagues")
    return len(leagues)
