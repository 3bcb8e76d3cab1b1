import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_api_key
from ..exceptions import EntityNotFoundError, RoundNotCompletedError, SettlementError
from ..schemas import MatchResultUpdate, SettlementResponse
from ..services.settlement import MatchScore, recalculate_season, settle_round, update_match_results

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_api_key)])


@router.post("/rounds/{round_id}/results", response_model=SettlementResponse)
async def record_results(
    round_id: int,
    results: List[MatchResultUpdate],
    db: Session = Depends(get_session)
):
    """Record match scores for a round and update points, ranks and prizes."""
    scores = [MatchScore(r.match_id, r.home_score, r.away_score, r.status) for r in results]

    try:
        updated = update_match_results(db, round_id, scores)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(f"Recorded {updated} match results for round {round_id}")
    return SettlementResponse(status="updated" if updated else "unchanged", round_id=round_id)


@router.post("/rounds/{round_id}/settle", response_model=SettlementResponse)
async def settle(round_id: int, db: Session = Depends(get_session)):
    try:
        leagues = settle_round(db, round_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RoundNotCompletedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return SettlementResponse(status="settled", round_id=round_id, leagues_processed=leagues)


@router.post("/seasons/{season_id}/recalculate", response_model=SettlementResponse)
async def recalculate(season_id: int, db: Session = Depends(get_session)):
    try:
        rounds = recalculate_season(db, season_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SettlementError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return SettlementResponse(status="recalculated", season_id=season_id, rounds_processed=rounds)
