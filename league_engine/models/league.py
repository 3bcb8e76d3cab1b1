from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..config import PUBLIC_LEAGUE_POINTS_FOR_CORRECT_RESULT, PUBLIC_LEAGUE_POINTS_FOR_EXACT_SCORE
from ..timeutils import utcnow
from .enums import LeagueMemberStatus, PrizeType


class League(SQLModel, table=True):
    __tablename__ = "leagues"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=100)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    administrator_user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    entry_deadline_utc: datetime

    # Scoring weights (each league scores the same round its own way)
    points_for_exact_score: int = Field(default=PUBLIC_LEAGUE_POINTS_FOR_EXACT_SCORE, ge=0)
    points_for_correct_result: int = Field(default=PUBLIC_LEAGUE_POINTS_FOR_CORRECT_RESULT, ge=0)

    # Entry cost per member
    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2, ge=0)
    created_at: datetime = Field(default_factory=utcnow)


class LeagueMember(SQLModel, table=True):
    __tablename__ = "league_members"
    __table_args__ = (UniqueConstraint("league_id", "user_id", name="unique_league_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    status: LeagueMemberStatus = Field(default=LeagueMemberStatus.PENDING)
    joined_at_utc: datetime = Field(default_factory=utcnow)
    approved_at_utc: Optional[datetime] = Field(default=None)


class LeaguePrizeSetting(SQLModel, table=True):
    __tablename__ = "league_prize_settings"
    __table_args__ = (UniqueConstraint("league_id", "prize_type", "rank", name="unique_league_prize_rank"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    prize_type: PrizeType
    rank: int = Field(default=1, ge=1)
    prize_amount: Decimal = Field(max_digits=10, decimal_places=2, ge=0)
    description: Optional[str] = Field(default=None, max_length=200)

    @property
    def name(self) -> str:
        return self.description or f"{self.prize_type.value} (rank {self.rank})"
