from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow
from .enums import MatchStatus, RoundStatus


class Season(SQLModel, table=True):
    __tablename__ = "seasons"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    start_date_utc: datetime
    end_date_utc: datetime
    is_active: bool = Field(default=True)
    number_of_rounds: int = Field(ge=1, le=52)


class Round(SQLModel, table=True):
    __tablename__ = "rounds"
    __table_args__ = (UniqueConstraint("season_id", "round_number", name="unique_season_round_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    round_number: int = Field(ge=1)
    start_date_utc: datetime
    deadline_utc: datetime
    status: RoundStatus = Field(default=RoundStatus.DRAFT)
    completed_date_utc: Optional[datetime] = Field(default=None)

    def update_status(self, status: RoundStatus, now: Optional[datetime] = None) -> None:
        """Change status, stamping or clearing the completion time on transitions."""
        previous = self.status
        self.status = status
        if previous != RoundStatus.COMPLETED and status == RoundStatus.COMPLETED:
            self.completed_date_utc = now or utcnow()
        elif previous == RoundStatus.COMPLETED and status != RoundStatus.COMPLETED:
            self.completed_date_utc = None


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
    home_team: str = Field(max_length=100)
    away_team: str = Field(max_length=100)
    match_datetime_utc: datetime

    # Actual results (null until the match kicks off)
    actual_home_score: Optional[int] = Field(default=None)
    actual_away_score: Optional[int] = Field(default=None)

    status: MatchStatus = Field(default=MatchStatus.SCHEDULED)

    def update_score(self, home_score: int, away_score: int, status: MatchStatus) -> None:
        if home_score < 0 or away_score < 0:
            raise ValueError("Scores cannot be negative.")

        if status == MatchStatus.SCHEDULED:
            self.actual_home_score = None
            self.actual_away_score = None
        else:
            self.actual_home_score = home_score
            self.actual_away_score = away_score
        self.status = status
