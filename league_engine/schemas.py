from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from .models.enums import MatchStatus


class PrizeLine(BaseModel):
    name: str
    amount: Decimal
    winner: Optional[str] = None
    user_id: Optional[int] = None


class WinningsLeaderboardEntry(BaseModel):
    user_id: int
    player_name: str
    round_winnings: Decimal = Decimal("0")
    monthly_winnings: Decimal = Decimal("0")
    end_of_season_winnings: Decimal = Decimal("0")
    total_winnings: Decimal = Decimal("0")


class WinningsReport(BaseModel):
    winnings_calculated: bool = False
    entry_count: int = 0
    entry_cost: Decimal = Decimal("0")
    total_prize_pot: Decimal = Decimal("0")
    round_prizes: List[PrizeLine] = Field(default_factory=list)
    monthly_prizes: List[PrizeLine] = Field(default_factory=list)
    end_of_season_prizes: List[PrizeLine] = Field(default_factory=list)
    leaderboard: List[WinningsLeaderboardEntry] = Field(default_factory=list)


class MatchResultUpdate(BaseModel):
    match_id: int
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    status: MatchStatus


class BoostEligibilityResponse(BaseModel):
    boost_code: str
    league_id: int
    round_id: int
    can_use: bool
    reason: Optional[str] = None
    rejection: Optional[str] = None
    remaining_season_uses: int = 0
    remaining_window_uses: int = 0
    already_used_this_round: bool = False
    is_round_in_active_window: bool = True
    next_window_start_round: Optional[int] = None


class ApplyBoostResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    already_used_this_round: bool = False


class SettlementResponse(BaseModel):
    status: str
    round_id: Optional[int] = None
    season_id: Optional[int] = None
    rounds_processed: int = 0
    leagues_processed: int = 0
