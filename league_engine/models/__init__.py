from .enums import LeagueMemberStatus, MatchStatus, PredictionOutcome, PrizeType, RoundStatus
from .user import User
from .season import Season, Round, Match
from .prediction import Prediction
from .league import League, LeagueMember, LeaguePrizeSetting
from .results import RoundResult, LeagueRoundResult
from .boost import LeagueBoostRule, LeagueBoostWindow, UserBoostUsage
from .stats import LeagueMemberStats
from .winning import Winning

__all__ = [
    "LeagueMemberStatus",
    "MatchStatus",
    "PredictionOutcome",
    "PrizeType",
    "RoundStatus",
    "User",
    "Season",
    "Round",
    "Match",
    "Prediction",
    "League",
    "LeagueMember",
    "LeaguePrizeSetting",
    "RoundResult",
    "LeagueRoundResult",
    "LeagueBoostRule",
    "LeagueBoostWindow",
    "UserBoostUsage",
    "LeagueMemberStats",
    "Winning",
]
