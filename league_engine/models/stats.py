from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class LeagueMemberStats(SQLModel, table=True):
    """
    Standing of a member in a league.

    Holds three rank views at once: live (updated as any match is scored),
    stable (completed matches only) and snapshot (overall/month rank frozen
    at the start of the current round).
    """
    __tablename__ = "league_member_stats"
    __table_args__ = (UniqueConstraint("league_id", "user_id", name="unique_league_member_stats"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    overall_rank: int = Field(default=1)
    month_rank: int = Field(default=1)

    live_round_rank: int = Field(default=1)
    live_round_points: int = Field(default=0)

    stable_round_rank: int = Field(default=1)
    stable_round_points: int = Field(default=0)

    snapshot_overall_rank: Optional[int] = Field(default=None)
    snapshot_month_rank: Optional[int] = Field(default=None)
