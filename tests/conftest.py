"""
Test configuration and shared fixtures for the CF Tracker test suite.
Every test gets its own in-memory SQLite database with the full schema.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from app.app import create_app
from app.core.context import RequestContext
from app.core.database import SessionLocal, enable_sqlite_foreign_keys, init_db
from app.crowdfunding.models import Campaign, Category, Donation, Reward, User
from app.logging.query_logger import QueryLogger


# ===== DATABASE SETUP =====

@pytest.fixture
def engine():
    """In-memory SQLite engine with foreign keys enforced and all tables created"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Request-style session bound to the test engine"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def query_logger(engine) -> QueryLogger:
    return QueryLogger(SessionLocal)


@pytest.fixture
def context(db_session, query_logger) -> RequestContext:
    return RequestContext(db_session, session_id="test-session", caller="tests", query_logger=query_logger)


@pytest.fixture
def count_rows(engine) -> Callable[[str], int]:
    """Count rows of a table straight from the engine, bypassing the executor"""
    def _count(table: str) -> int:
        with engine.connect() as connection:
            return connection.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
    return _count


@pytest.fixture
def client(engine):
    """FastAPI test client running against the test engine"""
    app = create_app(engine)
    with TestClient(app) as test_client:
        yield test_client


# ===== SAMPLE DATA FIXTURES =====

@pytest.fixture
def sample_data(db_session) -> Dict[str, Any]:
    """Two categories, four campaigns (Arts/Tech x active/completed) and their donations.

    Completed donation totals: alice 1700, bob 400, carol 300, dave none.
    Funded campaigns: gallery and tool (2 of 4).
    """
    now = datetime.now()

    arts = Category(category_name="Arts", description="Art projects", icon="fa-paint-brush")
    tech = Category(category_name="Tech", description="Technology", icon="fa-microchip")
    db_session.add_all([arts, tech])
    db_session.flush()

    alice = User(username="alice", email="alice@example.com", password_hash="x", full_name="Alice Able",
                 user_role="donor", account_balance=5000)
    bob = User(username="bob", email="bob@example.com", password_hash="x", full_name="Bob Baker",
               user_role="donor", account_balance=2000)
    carol = User(username="carol", email="carol@example.com", password_hash="x", full_name="Carol Cole",
                 user_role="donor", account_balance=1000)
    dave = User(username="dave", email="dave@example.com", password_hash="x", full_name="Dave Dunn",
                user_role="donor", account_balance=100)
    erin = User(username="erin", email="erin@example.com", password_hash="x", full_name="Erin Evans",
                user_role="campaigner", account_balance=0)
    db_session.add_all([alice, bob, carol, dave, erin])
    db_session.flush()

    mural = Campaign(campaign_title="Mural Project", description="Paint the town", goal_amount=1000,
                     current_amount=600, creator_id=erin.user_id, category_id=arts.category_id, status="active")
    gallery = Campaign(campaign_title="Gallery Opening", description="A new gallery", goal_amount=300,
                       current_amount=300, creator_id=erin.user_id, category_id=arts.category_id, status="completed")
    robot = Campaign(campaign_title="Robot Kit", description="Build a 100% open robot", goal_amount=2000,
                     current_amount=300, creator_id=erin.user_id, category_id=tech.category_id, status="active")
    tool = Campaign(campaign_title="Open Source Tool", description="Developer tooling", goal_amount=1000,
                    current_amount=1200, creator_id=erin.user_id, category_id=tech.category_id, status="completed")
    db_session.add_all([mural, gallery, robot, tool])
    db_session.flush()

    donations = [
        Donation(campaign_id=mural.campaign_id, donor_id=alice.user_id, amount=500,
                 payment_method="credit_card", status="completed", donation_date=now - timedelta(days=2)),
        Donation(campaign_id=mural.campaign_id, donor_id=bob.user_id, amount=100,
                 payment_method="paypal", status="completed", donation_date=now - timedelta(days=1)),
        Donation(campaign_id=robot.campaign_id, donor_id=bob.user_id, amount=300,
                 payment_method="credit_card", status="completed", is_anonymous=True,
                 donation_date=now - timedelta(days=3)),
        Donation(campaign_id=gallery.campaign_id, donor_id=carol.user_id, amount=300,
                 payment_method="paypal", status="completed", donation_date=now - timedelta(days=5)),
        Donation(campaign_id=tool.campaign_id, donor_id=alice.user_id, amount=1200,
                 payment_method="bank_transfer", status="completed", donation_date=now - timedelta(days=10)),
        Donation(campaign_id=robot.campaign_id, donor_id=carol.user_id, amount=50,
                 payment_method="crypto", status="pending", donation_date=now - timedelta(days=1)),
    ]
    db_session.add_all(donations)

    reward = Reward(campaign_id=mural.campaign_id, title="Signed print", min_amount=50)
    db_session.add(reward)
    db_session.commit()

    return {
        "categories": {"arts": arts.category_id, "tech": tech.category_id},
        "users": {u.username: u.user_id for u in [alice, bob, carol, dave, erin]},
        "campaigns": {
            "mural": mural.campaign_id,
            "gallery": gallery.campaign_id,
            "robot": robot.campaign_id,
            "tool": tool.campaign_id,
        },
        "reward_id": reward.reward_id,
    }
