from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field

from ..timeutils import utcnow


class Winning(SQLModel, table=True):
    """An actual payout. Never updated; re-settlement deletes and recreates the period's set."""
    __tablename__ = "winnings"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    league_prize_setting_id: int = Field(foreign_key="league_prize_settings.id", index=True)
    amount: Decimal = Field(max_digits=10, decimal_places=2, ge=0)
    round_number: Optional[int] = Field(default=None)
    month: Optional[int] = Field(default=None)
    awarded_date_utc: datetime = Field(default_factory=utcnow)
