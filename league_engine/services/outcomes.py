import logging
from datetime import datetime
from typing import Optional
from sqlmodel import Session, select

from ..models.enums import MatchStatus, PredictionOutcome
from ..models.prediction import Prediction
from ..models.season import Match
from ..timeutils import utcnow

logger = logging.getLogger(__name__)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def classify_outcome(
    predicted_home: int,
    predicted_away: int,
    status: MatchStatus,
    actual_home: Optional[int],
    actual_away: Optional[int],
) -> PredictionOutcome:
    """
    Classify a single prediction against a match score.

    - Pending: match not kicked off, or either actual score missing
    - ExactScore: both scores match
    - CorrectResult: same winner (or both a draw)
    - Incorrect: anything else
    """
    # Can't classify until there is a score
    if status == MatchStatus.SCHEDULED or actual_home is None or actual_away is None:
        return PredictionOutcome.PENDING

    if predicted_home == actual_home and predicted_away == actual_away:
        return PredictionOutcome.EXACT_SCORE

    if _sign(predicted_home - predicted_away) == _sign(actual_home - actual_away):
        return PredictionOutcome.CORRECT_RESULT

    return PredictionOutcome.INCORRECT


def classify_prediction(prediction: Prediction, match: Match, now: Optional[datetime] = None) -> PredictionOutcome:
    """Set the prediction's outcome from the match and stamp updated_at."""
    prediction.outcome = classify_outcome(
        prediction.predicted_home_score,
        prediction.predicted_away_score,
        match.status,
        match.actual_home_score,
        match.actual_away_score,
    )
    prediction.updated_at = now or utcnow()
    return prediction.outcome


def rescore_match(db: Session, match: Match, now: Optional[datetime] = None) -> int:
    """
    Re-classify every prediction on a match.
    Called whenever a match score or status changes. Does not commit.
    """
    predictions = db.exec(select(Prediction).where(Prediction.match_id == match.id)).all()

    for prediction in predictions:
        classify_prediction(prediction, match, now)
        db.add(prediction)

    return len(predictions)
