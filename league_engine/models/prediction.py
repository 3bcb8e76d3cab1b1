from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow
from .enums import PredictionOutcome


class Prediction(SQLModel, table=True):
    __tablename__ = "predictions"
    __table_args__ = (UniqueConstraint("user_id", "match_id", name="unique_user_match"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    match_id: int = Field(foreign_key="matches.id", index=True)

    predicted_home_score: int = Field(ge=0)
    predicted_away_score: int = Field(ge=0)

    # Set by the outcome classifier whenever the match is rescored
    outcome: PredictionOutcome = Field(default=PredictionOutcome.PENDING)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
