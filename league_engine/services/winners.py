"""
Winner identification for each prize category.

All functions work on a league's approved members and their round results,
so they can be called (and tested) without a session.
"""

from typing import Dict, Iterable, List, Sequence
from sqlmodel import Session, select

from ..models.results import LeagueRoundResult
from .aggregation import approved_member_ids
from .ranking import RankGroup, rank_groups


class LeagueStandings:
    """Approved members of a league and all their round results for the season."""

    def __init__(self, member_ids: Sequence[int], results: Iterable[LeagueRoundResult]):
        self.member_ids = sorted(member_ids)
        members = set(self.member_ids)
        self.results: Dict[int, List[LeagueRoundResult]] = {user_id: [] for user_id in self.member_ids}
        for result in results:
            if result.user_id in members:
                self.results[result.user_id].append(result)

    @classmethod
    def load(cls, db: Session, league_id: int) -> "LeagueStandings":
        results = db.exec(select(LeagueRoundResult).where(LeagueRoundResult.league_id == league_id)).all()
        return cls(approved_member_ids(db, league_id), results)

    def _top_scorers(self, scores: Dict[int, int]) -> List[int]:
        if not scores:
            return []
        best = max(scores.values())
        # Nobody wins a zero
        if best == 0:
            return []
        return [user_id for user_id, score in scores.items() if score == best]

    def round_points(self, round_ids: Iterable[int]) -> Dict[int, int]:
        wanted = set(round_ids)
        return {
            user_id: sum(r.boosted_points for r in results if r.round_id in wanted)
            for user_id, results in self.results.items()
        }

    def get_round_winners(self, round_id: int) -> List[int]:
        return self._top_scorers(self.round_points([round_id]))

    def get_period_winners(self, round_ids: Iterable[int]) -> List[int]:
        return self._top_scorers(self.round_points(round_ids))

    def get_overall_rankings(self) -> List[RankGroup]:
        if not self.member_ids:
            return []
        totals = {
            user_id: sum(r.boosted_points for r in results)
            for user_id, results in self.results.items()
        }
        return rank_groups(totals)

    def get_most_exact_scores_winners(self) -> List[int]:
        exact_counts = {
            user_id: sum(r.exact_score_count for r in results)
            for user_id, results in self.results.items()
        }
        return self._top_scorers(exact_counts)
