from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class RoundResult(SQLModel, table=True):
    """Per-user outcome counts for a round, rebuilt whenever the round is rescored."""
    __tablename__ = "round_results"
    __table_args__ = (UniqueConstraint("round_id", "user_id", name="unique_round_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    exact_score_count: int = Field(default=0)
    correct_result_count: int = Field(default=0)
    incorrect_count: int = Field(default=0)


class LeagueRoundResult(SQLModel, table=True):
    """A member's points for one round, scored with the league's own weights."""
    __tablename__ = "league_round_results"
    __table_args__ = (UniqueConstraint("league_id", "round_id", "user_id", name="unique_league_round_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    base_points: int = Field(default=0)
    boosted_points: int = Field(default=0)
    has_boost: bool = Field(default=False)
    applied_boost_code: Optional[str] = Field(default=None, max_length=50)
    exact_score_count: int = Field(default=0)
