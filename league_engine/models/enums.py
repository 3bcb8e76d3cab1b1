from enum import Enum


class MatchStatus(str, Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class RoundStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class PredictionOutcome(str, Enum):
    PENDING = "Pending"
    INCORRECT = "Incorrect"
    CORRECT_RESULT = "CorrectResult"
    EXACT_SCORE = "ExactScore"


class LeagueMemberStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PrizeType(str, Enum):
    # Declaration order is the display order of end-of-season prizes
    ROUND = "Round"
    MONTHLY = "Monthly"
    OVERALL = "Overall"
    MOST_EXACT_SCORES = "MostExactScores"

    @property
    def sort_order(self) -> int:
        return list(PrizeType).index(self)
