"""
Boost engine.

Eligibility is a pure function over a usage snapshot; the session-bound
helpers gather that snapshot, record or remove usages, and apply recorded
boosts to a round's league results at settlement time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, func

from ..exceptions import EntityNotFoundError
from ..models.boost import LeagueBoostRule, LeagueBoostWindow, UserBoostUsage
from ..models.enums import LeagueMemberStatus
from ..models.league import League, LeagueMember
from ..models.results import LeagueRoundResult
from ..models.season import Round
from ..timeutils import utcnow

logger = logging.getLogger(__name__)


class BoostKind(str, Enum):
    DOUBLE_UP = "DoubleUp"


BOOST_MULTIPLIERS: Dict[BoostKind, Callable[[int], int]] = {
    BoostKind.DOUBLE_UP: lambda points: points * 2,
}


def boosted_points(boost_code: Optional[str], base_points: int) -> int:
    """Points after applying a boost code. Unknown codes leave points unchanged."""
    try:
        kind = BoostKind(boost_code)
    except ValueError:
        return base_points
    return BOOST_MULTIPLIERS[kind](base_points)


class BoostRejection(str, Enum):
    ROUND_NOT_IN_SEASON = "RoundNotInSeason"
    NOT_A_MEMBER = "NotAMember"
    NOT_ENABLED = "NotEnabled"
    NOT_USABLE = "NotUsable"
    ALREADY_USED_THIS_ROUND = "AlreadyUsedThisRound"
    SEASON_LIMIT_REACHED = "SeasonLimitReached"
    NOT_AVAILABLE_THIS_ROUND = "NotAvailableThisRound"
    WINDOW_DISABLED = "WindowDisabled"
    WINDOW_LIMIT_REACHED = "WindowLimitReached"
    DEADLINE_PASSED = "DeadlinePassed"
    NOT_CONFIGURED = "NotConfigured"


REJECTION_MESSAGES = {
    BoostRejection.ROUND_NOT_IN_SEASON: "Round does not belong to this league's season.",
    BoostRejection.NOT_A_MEMBER: "User is not a member of this league.",
    BoostRejection.NOT_ENABLED: "Boost is not enabled for this league.",
    BoostRejection.NOT_USABLE: "Boost cannot be used in this league.",
    BoostRejection.ALREADY_USED_THIS_ROUND: "Boost already used for this league and round.",
    BoostRejection.SEASON_LIMIT_REACHED: "Season limit reached for this boost in this league.",
    BoostRejection.NOT_AVAILABLE_THIS_ROUND: "Boost is not available for this round.",
    BoostRejection.WINDOW_DISABLED: "Boost cannot be used in this window.",
    BoostRejection.WINDOW_LIMIT_REACHED: "Window limit reached for this boost in this league.",
    BoostRejection.DEADLINE_PASSED: "Cannot apply boost after round deadline has passed.",
    BoostRejection.NOT_CONFIGURED: "Boost is not available in this league.",
}


@dataclass(frozen=True)
class BoostWindowSpan:
    start_round_number: int
    end_round_number: int
    max_uses_in_window: int

    def contains(self, round_number: int) -> bool:
        return self.start_round_number <= round_number <= self.end_round_number


@dataclass(frozen=True)
class BoostUsageSnapshot:
    season_uses: int = 0
    window_uses: int = 0
    has_used_this_round: bool = False


@dataclass(frozen=True)
class BoostEligibility:
    can_use: bool
    rejection: Optional[BoostRejection] = None
    remaining_season_uses: int = 0
    remaining_window_uses: int = 0
    already_used_this_round: bool = False
    is_round_in_active_window: bool = True
    next_window_start_round: Optional[int] = None

    @property
    def reason(self) -> Optional[str]:
        return REJECTION_MESSAGES[self.rejection] if self.rejection else None

    @classmethod
    def allowed(cls, remaining_season_uses: int, remaining_window_uses: int) -> "BoostEligibility":
        return cls(
            can_use=True,
            remaining_season_uses=remaining_season_uses,
            remaining_window_uses=remaining_window_uses,
        )

    @classmethod
    def rejected(cls, rejection: BoostRejection) -> "BoostEligibility":
        return cls(
            can_use=False,
            rejection=rejection,
            already_used_this_round=rejection == BoostRejection.ALREADY_USED_THIS_ROUND,
        )


def find_window(round_number: int, windows: Sequence[BoostWindowSpan]) -> Optional[BoostWindowSpan]:
    for window in windows:
        if window.contains(round_number):
            return window
    return None


def evaluate_boost_eligibility(
    is_enabled: bool,
    total_uses_per_season: int,
    usage: BoostUsageSnapshot,
    round_number: int,
    windows: Sequence[BoostWindowSpan],
    is_member: bool,
    is_round_in_league_season: bool,
) -> BoostEligibility:
    """
    Decide whether a member may use a boost in a round.

    Checks run in a fixed order and the first failure wins:
    season, membership, enabled, already used this round, season limit,
    then the window that contains the round (if any windows are configured).
    """
    if not is_round_in_league_season:
        return BoostEligibility.rejected(BoostRejection.ROUND_NOT_IN_SEASON)

    if not is_member:
        return BoostEligibility.rejected(BoostRejection.NOT_A_MEMBER)

    if not is_enabled:
        return BoostEligibility.rejected(BoostRejection.NOT_ENABLED)

    if total_uses_per_season <= 0:
        return BoostEligibility.rejected(BoostRejection.NOT_USABLE)

    if usage.has_used_this_round:
        return BoostEligibility.rejected(BoostRejection.ALREADY_USED_THIS_ROUND)

    if usage.season_uses >= total_uses_per_season:
        return BoostEligibility.rejected(BoostRejection.SEASON_LIMIT_REACHED)

    remaining_season = max(0, total_uses_per_season - usage.season_uses)

    if not windows:
        return BoostEligibility.allowed(remaining_season, remaining_season)

    window = find_window(round_number, windows)
    if window is None:
        return BoostEligibility.rejected(BoostRejection.NOT_AVAILABLE_THIS_ROUND)

    if window.max_uses_in_window <= 0:
        return BoostEligibility.rejected(BoostRejection.WINDOW_DISABLED)

    if usage.window_uses >= window.max_uses_in_window:
        return BoostEligibility.rejected(BoostRejection.WINDOW_LIMIT_REACHED)

    return BoostEligibility.allowed(remaining_season, window.max_uses_in_window - usage.window_uses)


def window_status(round_number: int, windows: Sequence[BoostWindowSpan]) -> tuple[bool, Optional[int]]:
    """(is the round inside a window, start round of the next window if not)."""
    if not windows:
        return True, None

    if find_window(round_number, windows) is not None:
        return True, None

    upcoming = sorted(w.start_round_number for w in windows if w.start_round_number > round_number)
    return False, upcoming[0] if upcoming else None


def _load_round_and_league(db: Session, league_id: int, round_id: int) -> tuple[Round, League]:
    round_ = db.get(Round, round_id)
    if round_ is None:
        raise EntityNotFoundError("Round", round_id)
    league = db.get(League, league_id)
    if league is None:
        raise EntityNotFoundError("League", league_id)
    return round_, league


def _is_member(db: Session, user_id: int, league_id: int) -> bool:
    statement = select(LeagueMember.id).where(
        LeagueMember.league_id == league_id,
        LeagueMember.user_id == user_id,
        LeagueMember.status == LeagueMemberStatus.APPROVED,
    )
    return db.exec(statement).first() is not None


def load_windows(db: Session, rule: LeagueBoostRule) -> List[BoostWindowSpan]:
    rows = db.exec(
        select(LeagueBoostWindow)
        .where(LeagueBoostWindow.league_boost_rule_id == rule.id)
        .order_by(LeagueBoostWindow.start_round_number)
    ).all()
    return [
        BoostWindowSpan(row.start_round_number, row.end_round_number, row.max_uses_in_window)
        for row in rows
    ]


def get_usage_snapshot(
    db: Session,
    user_id: int,
    league_id: int,
    round_: Round,
    boost_code: str,
    windows: Sequence[BoostWindowSpan],
) -> BoostUsageSnapshot:
    """Season and window uses of one boost code, plus whether any boost is already used this round."""
    season_uses = db.exec(
        select(func.count(UserBoostUsage.id)).where(
            UserBoostUsage.user_id == user_id,
            UserBoostUsage.league_id == league_id,
            UserBoostUsage.season_id == round_.season_id,
            UserBoostUsage.boost_code == boost_code,
        )
    ).one()

    has_used_this_round = db.exec(
        select(UserBoostUsage.id).where(
            UserBoostUsage.user_id == user_id,
            UserBoostUsage.league_id == league_id,
            UserBoostUsage.round_id == round_.id,
        )
    ).first() is not None

    window_uses = 0
    window = find_window(round_.round_number, windows)
    if window is not None:
        window_uses = db.exec(
            select(func.count(UserBoostUsage.id))
            .join(Round, Round.id == UserBoostUsage.round_id)
            .where(
                UserBoostUsage.user_id == user_id,
                UserBoostUsage.league_id == league_id,
                UserBoostUsage.season_id == round_.season_id,
                UserBoostUsage.boost_code == boost_code,
                Round.round_number >= window.start_round_number,
                Round.round_number <= window.end_round_number,
            )
        ).one()

    return BoostUsageSnapshot(
        season_uses=season_uses,
        window_uses=window_uses,
        has_used_this_round=has_used_this_round,
    )


def get_boost_eligibility(
    db: Session,
    user_id: int,
    league_id: int,
    round_id: int,
    boost_code: str,
    now: Optional[datetime] = None,
) -> BoostEligibility:
    round_, league = _load_round_and_league(db, league_id, round_id)

    if round_.deadline_utc < (now or utcnow()):
        return BoostEligibility.rejected(BoostRejection.DEADLINE_PASSED)

    rule = db.exec(
        select(LeagueBoostRule).where(
            LeagueBoostRule.league_id == league_id,
            LeagueBoostRule.boost_code == boost_code,
        )
    ).first()
    if rule is None:
        return BoostEligibility.rejected(BoostRejection.NOT_CONFIGURED)

    windows = load_windows(db, rule)
    usage = get_usage_snapshot(db, user_id, league_id, round_, boost_code, windows)

    result = evaluate_boost_eligibility(
        is_enabled=rule.is_enabled,
        total_uses_per_season=rule.total_uses_per_season,
        usage=usage,
        round_number=round_.round_number,
        windows=windows,
        is_member=_is_member(db, user_id, league_id),
        is_round_in_league_season=league.season_id == round_.season_id,
    )

    in_window, next_start = window_status(round_.round_number, windows)
    return BoostEligibility(
        can_use=result.can_use,
        rejection=result.rejection,
        remaining_season_uses=result.remaining_season_uses,
        remaining_window_uses=result.remaining_window_uses,
        already_used_this_round=result.already_used_this_round,
        is_round_in_active_window=in_window,
        next_window_start_round=next_start,
    )


def apply_boost(
    db: Session,
    user_id: int,
    league_id: int,
    round_id: int,
    boost_code: str,
    now: Optional[datetime] = None,
) -> BoostEligibility:
    """Record a boost usage for a member if they are eligible. Returns the eligibility used."""
    eligibility = get_boost_eligibility(db, user_id, league_id, round_id, boost_code, now)
    if not eligibility.can_use:
        logger.info(
            f"Boost {boost_code} refused for user {user_id} in league {league_id}, round {round_id}: "
            f"{eligibility.reason}"
        )
        return eligibility

    round_ = db.get(Round, round_id)
    usage = UserBoostUsage(
        user_id=user_id,
        league_id=league_id,
        season_id=round_.season_id,
        round_id=round_id,
        boost_code=boost_code,
        used_at_utc=now or utcnow(),
    )
    db.add(usage)
    try:
        db.commit()
    except IntegrityError:
        # Another request recorded a boost for this round first
        db.rollback()
        logger.warning(f"Duplicate boost usage for user {user_id} in league {league_id}, round {round_id}")
        return BoostEligibility.rejected(BoostRejection.ALREADY_USED_THIS_ROUND)

    logger.info(f"Boost {boost_code} applied for user {user_id} in league {league_id}, round {round_id}")
    return eligibility


def remove_boost(
    db: Session,
    user_id: int,
    league_id: int,
    round_id: int,
    now: Optional[datetime] = None,
) -> bool:
    """
    Remove a member's boost for a round, giving the use back.
    Returns False if the deadline has passed or there was nothing to remove.
    """
    round_, _ = _load_round_and_league(db, league_id, round_id)

    if round_.deadline_utc < (now or utcnow()):
        return False

    usage = db.exec(
        select(UserBoostUsage).where(
            UserBoostUsage.user_id == user_id,
            UserBoostUsage.league_id == league_id,
            UserBoostUsage.round_id == round_id,
        )
    ).first()
    if usage is None:
        return False

    db.delete(usage)
    db.commit()
    logger.info(f"Boost {usage.boost_code} removed for user {user_id} in league {league_id}, round {round_id}")
    return True


def apply_round_boosts(db: Session, round_id: int, commit: bool = True) -> int:
    """
    Apply recorded boosts to every league result in a round.

    Boosted points are always recomputed from base points, so re-running
    never compounds. Results without a usage row are reset to unboosted.
    Returns the number of boosted results.
    """
    results = db.exec(select(LeagueRoundResult).where(LeagueRoundResult.round_id == round_id)).all()
    if not results:
        return 0

    usages = db.exec(select(UserBoostUsage).where(UserBoostUsage.round_id == round_id)).all()
    boost_lookup = {(u.league_id, u.user_id): u.boost_code for u in usages}

    applied = 0
    for result in results:
        boost_code = boost_lookup.get((result.league_id, result.user_id))
        if boost_code is None:
            result.boosted_points = result.base_points
            result.has_boost = False
            result.applied_boost_code = None
        else:
            result.boosted_points = boosted_points(boost_code, result.base_points)
            result.has_boost = True
            result.applied_boost_code = boost_code
            applied += 1
        db.add(result)

    if commit:
        db.commit()
    else:
        db.flush()
    logger.info(f"Round {round_id}: applied {applied} boosts")
    return applied
