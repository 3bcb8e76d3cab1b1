"""
Winnings report for a league.

Lists every prize line the league pays (won or still open), a per-member
money leaderboard and the prize pot. Read-only.
"""

import calendar
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from sqlmodel import Session, select

from ..exceptions import EntityNotFoundError
from ..models.enums import LeagueMemberStatus, PrizeType
from ..models.league import League, LeagueMember, LeaguePrizeSetting
from ..models.season import Season
from ..models.user import User
from ..models.winning import Winning
from ..schemas import PrizeLine, WinningsLeaderboardEntry, WinningsReport
from ..timeutils import utcnow

PER_PERIOD_TYPES = (PrizeType.ROUND, PrizeType.MONTHLY)


def season_months(start: datetime, end: datetime) -> List[int]:
    """Month numbers from the season's start month to its end month inclusive."""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(month)
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _month_sort_key(month: int, season_start: datetime) -> tuple[int, int]:
    # Months before the start month belong to the following calendar year
    year = season_start.year + 1 if month < season_start.month else season_start.year
    return year, month


def _build_round_lines(setting, winnings, user_names, number_of_rounds) -> List[PrizeLine]:
    lines = [
        (w.round_number, PrizeLine(
            name=str(w.round_number), amount=w.amount, winner=user_names.get(w.user_id), user_id=w.user_id
        ))
        for w in winnings
    ]
    won_rounds = {w.round_number for w in winnings}
    for round_number in range(1, number_of_rounds + 1):
        if round_number not in won_rounds:
            lines.append((round_number, PrizeLine(name=str(round_number), amount=setting.prize_amount)))

    lines.sort(key=lambda line: line[0])
    return [line for _, line in lines]


def _build_monthly_lines(setting, winnings, user_names, season: Season) -> List[PrizeLine]:
    lines = [
        (w.month, PrizeLine(
            name=calendar.month_name[w.month], amount=w.amount, winner=user_names.get(w.user_id), user_id=w.user_id
        ))
        for w in winnings
    ]
    won_months = {w.month for w in winnings}
    for month in season_months(season.start_date_utc, season.end_date_utc):
        if month not in won_months:
            lines.append((month, PrizeLine(name=calendar.month_name[month], amount=setting.prize_amount)))

    lines.sort(key=lambda line: _month_sort_key(line[0], season.start_date_utc))
    return [line for _, line in lines]


def _build_end_of_season_lines(settings, winnings_by_setting, user_names) -> List[PrizeLine]:
    lines = []
    ordered = sorted(settings, key=lambda s: (s.prize_type.sort_order, -s.prize_amount))
    for setting in ordered:
        winners = winnings_by_setting.get(setting.id, [])
        if not winners:
            lines.append(PrizeLine(name=setting.name, amount=setting.prize_amount))
            continue
        for w in winners:
            # Report what was actually paid, which differs from the setting when a tie split it
            lines.append(PrizeLine(name=setting.name, amount=w.amount, winner=user_names.get(w.user_id), user_id=w.user_id))
    return lines


def get_winnings(db: Session, league_id: int, now: Optional[datetime] = None) -> WinningsReport:
    league = db.get(League, league_id)
    if league is None:
        raise EntityNotFoundError("League", league_id)
    season = db.get(Season, league.season_id)

    members = db.exec(
        select(User)
        .join(LeagueMember, LeagueMember.user_id == User.id)
        .where(LeagueMember.league_id == league_id, LeagueMember.status == LeagueMemberStatus.APPROVED)
    ).all()
    settings = db.exec(select(LeaguePrizeSetting).where(LeaguePrizeSetting.league_id == league_id)).all()

    entry_count = len(members)
    entry_cost = league.price
    report = WinningsReport(
        entry_count=entry_count,
        entry_cost=entry_cost,
        total_prize_pot=entry_cost * entry_count,
    )

    if league.entry_deadline_utc > (now or utcnow()) or not settings:
        return report

    report.winnings_calculated = True

    setting_ids = [s.id for s in settings]
    settings_by_id = {s.id: s for s in settings}
    winnings = db.exec(
        select(Winning).where(Winning.league_prize_setting_id.in_(setting_ids)).order_by(Winning.id)
    ).all()

    winner_ids = {w.user_id for w in winnings} - {m.id for m in members}
    users = list(members)
    if winner_ids:
        users.extend(db.exec(select(User).where(User.id.in_(winner_ids))).all())
    user_names = {u.id: u.display_name for u in users}

    by_type: Dict[PrizeType, List[Winning]] = {}
    by_setting: Dict[int, List[Winning]] = {}
    for w in winnings:
        by_type.setdefault(settings_by_id[w.league_prize_setting_id].prize_type, []).append(w)
        by_setting.setdefault(w.league_prize_setting_id, []).append(w)

    round_setting = next((s for s in settings if s.prize_type == PrizeType.ROUND), None)
    if round_setting is not None:
        report.round_prizes = _build_round_lines(
            round_setting, by_type.get(PrizeType.ROUND, []), user_names, season.number_of_rounds
        )

    monthly_setting = next((s for s in settings if s.prize_type == PrizeType.MONTHLY), None)
    if monthly_setting is not None:
        report.monthly_prizes = _build_monthly_lines(
            monthly_setting, by_type.get(PrizeType.MONTHLY, []), user_names, season
        )

    report.end_of_season_prizes = _build_end_of_season_lines(
        [s for s in settings if s.prize_type not in PER_PERIOD_TYPES], by_setting, user_names
    )

    entries = []
    for member in members:
        totals = {prize_type: Decimal("0") for prize_type in PrizeType}
        for w in winnings:
            if w.user_id == member.id:
                totals[settings_by_id[w.league_prize_setting_id].prize_type] += w.amount
        round_total = totals[PrizeType.ROUND]
        monthly_total = totals[PrizeType.MONTHLY]
        total = sum(totals.values(), Decimal("0"))
        entries.append(WinningsLeaderboardEntry(
            user_id=member.id,
            player_name=member.display_name,
            round_winnings=round_total,
            monthly_winnings=monthly_total,
            end_of_season_winnings=total - round_total - monthly_total,
            total_winnings=total,
        ))
    report.leaderboard = sorted(entries, key=lambda e: (-e.total_winnings, e.player_name))
    return report
