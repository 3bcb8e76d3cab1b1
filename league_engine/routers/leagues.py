from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_api_key
from ..exceptions import EntityNotFoundError
from ..schemas import ApplyBoostResponse, BoostEligibilityResponse, WinningsReport
from ..services.boosts import BoostEligibility, apply_boost, get_boost_eligibility, remove_boost
from ..services.winnings import get_winnings

router = APIRouter(prefix="/leagues", tags=["leagues"])


def _eligibility_response(eligibility: BoostEligibility, league_id: int, round_id: int, boost_code: str):
    return BoostEligibilityResponse(
        boost_code=boost_code,
        league_id=league_id,
        round_id=round_id,
        can_use=eligibility.can_use,
        reason=eligibility.reason,
        rejection=eligibility.rejection.value if eligibility.rejection else None,
        remaining_season_uses=eligibility.remaining_season_uses,
        remaining_window_uses=eligibility.remaining_window_uses,
        already_used_this_round=eligibility.already_used_this_round,
        is_round_in_active_window=eligibility.is_round_in_active_window,
        next_window_start_round=eligibility.next_window_start_round,
    )


@router.get("/{league_id}/winnings", response_model=WinningsReport)
async def league_winnings(league_id: int, db: Session = Depends(get_session)):
    try:
        return get_winnings(db, league_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{league_id}/rounds/{round_id}/boosts/{boost_code}/eligibility", response_model=BoostEligibilityResponse)
async def boost_eligibility(
    league_id: int,
    round_id: int,
    boost_code: str,
    user_id: int,
    db: Session = Depends(get_session)
):
    try:
        eligibility = get_boost_eligibility(db, user_id, league_id, round_id, boost_code)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _eligibility_response(eligibility, league_id, round_id, boost_code)


@router.post(
    "/{league_id}/rounds/{round_id}/boosts/{boost_code}",
    response_model=ApplyBoostResponse,
    dependencies=[Depends(require_api_key)],
)
async def use_boost(
    league_id: int,
    round_id: int,
    boost_code: str,
    user_id: int,
    db: Session = Depends(get_session)
):
    """
    Spend a boost on behalf of user_id.

    The engine does not authenticate players: user_id is trusted, so only a
    caller holding the task API key (the front end) may spend or remove boosts.
    """
    try:
        eligibility = apply_boost(db, user_id, league_id, round_id, boost_code)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    # Ineligibility is an answer, not an error
    return ApplyBoostResponse(
        success=eligibility.can_use,
        error=eligibility.reason,
        already_used_this_round=eligibility.already_used_this_round,
    )


@router.delete("/{league_id}/rounds/{round_id}/boosts", dependencies=[Depends(require_api_key)])
async def delete_boost(
    league_id: int,
    round_id: int,
    user_id: int,
    db: Session = Depends(get_session)
):
    try:
        removed = remove_boost(db, user_id, league_id, round_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No boost to remove, or the round deadline has passed"
        )
    return {"removed": True}
