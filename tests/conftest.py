import pytest
from datetime import datetime
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from league_engine import config
from league_engine.database import get_session
from league_engine.models import (
    League,
    LeagueBoostRule,
    LeagueBoostWindow,
    LeagueMember,
    LeagueMemberStatus,
    Match,
    MatchStatus,
    Prediction,
    Round,
    RoundStatus,
    Season,
    User,
)

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TEST_API_KEY = "test-key"


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session, monkeypatch):
    def get_session_override():
        return session

    monkeypatch.setattr(config, "TASKS_API_KEY", TEST_API_KEY)
    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="season")
def season_fixture(session: Session):
    season = Season(
        name="Spring 2025",
        start_date_utc=datetime(2025, 3, 1),
        end_date_utc=datetime(2025, 5, 31),
        number_of_rounds=3,
    )
    session.add(season)
    session.commit()
    session.refresh(season)
    return season


@pytest.fixture(name="rounds")
def rounds_fixture(session: Session, season: Season):
    """One round per month, March to May."""
    rounds = []
    for number, month in enumerate((3, 4, 5), start=1):
        round_ = Round(
            season_id=season.id,
            round_number=number,
            start_date_utc=datetime(2025, month, 8, 12, 0),
            deadline_utc=datetime(2025, month, 8, 11, 0),
            status=RoundStatus.PUBLISHED,
        )
        session.add(round_)
        rounds.append(round_)
    session.commit()
    for round_ in rounds:
        session.refresh(round_)
    return rounds


@pytest.fixture(name="users")
def users_fixture(session: Session):
    users = [
        User(email="alice@example.com", first_name="Alice", last_name="Smith"),
        User(email="bob@example.com", first_name="Bob", last_name="Jones"),
        User(email="cara@example.com", first_name="Cara", last_name="Brown"),
    ]
    for user in users:
        session.add(user)
    session.commit()
    for user in users:
        session.refresh(user)
    return users


@pytest.fixture(name="league")
def league_fixture(session: Session, season: Season, users):
    """Three approved members, 3 points for an exact score, 1 for a correct result, 10.00 entry."""
    league = League(
        name="Office League",
        season_id=season.id,
        administrator_user_id=users[0].id,
        entry_deadline_utc=datetime(2025, 3, 1),
        points_for_exact_score=3,
        points_for_correct_result=1,
        price=Decimal("10.00"),
    )
    session.add(league)
    session.commit()
    session.refresh(league)

    for user in users:
        session.add(LeagueMember(
            league_id=league.id,
            user_id=user.id,
            status=LeagueMemberStatus.APPROVED,
            approved_at_utc=datetime(2025, 2, 20),
        ))
    session.commit()
    return league


@pytest.fixture(name="make_match")
def make_match_fixture(session: Session):
    def make_match(round_, home_score=None, away_score=None, status=MatchStatus.SCHEDULED,
                   home_team="Home FC", away_team="Away FC"):
        match = Match(
            round_id=round_.id,
            home_team=home_team,
            away_team=away_team,
            match_datetime_utc=round_.start_date_utc,
            actual_home_score=home_score,
            actual_away_score=away_score,
            status=status,
        )
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    return make_match


@pytest.fixture(name="predict")
def predict_fixture(session: Session):
    def predict(user, match, home, away):
        prediction = Prediction(
            user_id=user.id,
            match_id=match.id,
            predicted_home_score=home,
            predicted_away_score=away,
        )
        session.add(prediction)
        session.commit()
        session.refresh(prediction)
        return prediction

    return predict


@pytest.fixture(name="double_up")
def double_up_fixture(session: Session, league: League):
    """DoubleUp enabled twice per season, no windows."""
    rule = LeagueBoostRule(league_id=league.id, boost_code="DoubleUp", is_enabled=True, total_uses_per_season=2)
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


@pytest.fixture(name="windowed_double_up")
def windowed_double_up_fixture(session: Session, double_up: LeagueBoostRule):
    """Restricts DoubleUp to one use in rounds 2-3."""
    window = LeagueBoostWindow(
        league_boost_rule_id=double_up.id,
        start_round_number=2,
        end_round_number=3,
        max_uses_in_window=1,
    )
    session.add(window)
    session.commit()
    return double_up
