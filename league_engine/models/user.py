from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from ..timeutils import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(default="", max_length=100)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        """First name plus last initial, e.g. "Sam T"."""
        if self.last_name:
            return f"{self.first_name} {self.last_name[0]}"
        return self.first_name
