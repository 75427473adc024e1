# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Fixtures shared by the service and API tests.
#
# Key features:
# - Points the app at an in-memory SQLite database before any imports
# - Builds a fresh schema per test
# - Provides users, services and scenario helpers (active campaign, completed work)
# =============================================================================

import os
from datetime import datetime, timedelta

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# config.app_config reads these at import time

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TOSS_SECRET_KEY"] = ""
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PLATFORM_FEE_RATE", "0.1")
os.environ.setdefault("SUPERCHAT_FEE_RATE", "0.1")
os.environ.setdefault("INFLUENCER_FEE_RATE", "0")
os.environ.setdefault("MIN_SUPERCHAT_AMOUNT", "1000")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from auth.dependencies import create_access_token, to_current_user
from database.config import build_engine, get_db, init_db
from database.models import User, UserType
from services.application_service import ApplicationService
from services.campaign_service import CampaignService
from services.payment_service import PaymentService
from services.revenue_service import RevenueService
from services.settlement_service import SettlementService


START = datetime(2026, 11, 1)
END = START + timedelta(days=30)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = build_engine("sqlite:///:memory:")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def make_user(db):
    """Create a user row and return the CurrentUser the services act as."""
    counter = {"n": 0}

    def _make(user_type: UserType, name: str = None):
        counter["n"] += 1
        user = User(
            email=f"{user_type.value}{counter['n']}@revu.test",
            name=name or f"{user_type.value.title()} {counter['n']}",
            user_type=user_type,
            is_active=True,
        )
        db.add(user)
        db.commit()
        return to_current_user(user)

    return _make


@pytest.fixture
def business(make_user):
    return make_user(UserType.BUSINESS)


@pytest.fixture
def other_business(make_user):
    return make_user(UserType.BUSINESS)


@pytest.fixture
def influencer(make_user):
    return make_user(UserType.INFLUENCER)


@pytest.fixture
def other_influencer(make_user):
    return make_user(UserType.INFLUENCER)


@pytest.fixture
def admin(make_user):
    return make_user(UserType.ADMIN)


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def campaign_service(db):
    return CampaignService(db)


@pytest.fixture
def application_service(db):
    return ApplicationService(db)


@pytest.fixture
def payment_service(db):
    return PaymentService(db)


@pytest.fixture
def settlement_service(db):
    return SettlementService(db)


@pytest.fixture
def revenue_service(db):
    return RevenueService(db)


# =============================================================================
# Scenario helpers
# =============================================================================

@pytest.fixture
def campaign_data():
    def _data(**overrides):
        data = {
            "title": "Spring launch",
            "description": "Short-form reviews of the spring line",
            "budget": 1_000_000,
            "platform_fee_rate": "0.1",
            "start_date": START,
            "end_date": END,
        }
        data.update(overrides)
        return data
    return _data


@pytest.fixture
def make_campaign(campaign_service, campaign_data, business):
    def _make(owner=None, **overrides):
        return campaign_service.create_campaign(owner or business, campaign_data(**overrides))
    return _make


@pytest.fixture
def payable_campaign(make_campaign, campaign_service, business):
    """A campaign its owner has submitted for review; drafts cannot be paid for."""
    def _make(owner=None, **overrides):
        campaign = make_campaign(owner=owner, **overrides)
        return campaign_service.update_status(owner or business, campaign.id, "pending")
    return _make


@pytest.fixture
def pay_campaign(payment_service):
    """Open and confirm the exact payment for a campaign; returns the payment."""
    def _pay(campaign, owner, payment_key="pk_test"):
        payment = payment_service.create_payment(owner, campaign.id, campaign.required_payment_amount)
        return payment_service.confirm_payment(payment.order_id, payment_key, payment.amount)
    return _pay


@pytest.fixture
def active_campaign(payable_campaign, campaign_service, pay_campaign, business, admin):
    """Submitted, approved by an admin, then paid."""
    def _make(**overrides):
        campaign = payable_campaign(**overrides)
        campaign_service.review_campaign(admin, campaign.id, True)
        pay_campaign(campaign, business)
        return campaign
    return _make


@pytest.fixture
def completed_application(application_service, business):
    """Apply, get approved, submit content and get it approved."""
    def _complete(campaign, creator, proposed_price=None, owner=None):
        application = application_service.apply_to_campaign(creator, campaign.id, "Hi!", proposed_price)
        application_service.update_application_status(owner or business, application.id, "approved")
        content = application_service.submit_content(creator, application.id, ["https://cdn.revu.test/v/1.mp4"])
        application_service.review_content(owner or business, content.id, "approved")
        return application
    return _complete


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client(session_factory):
    from server import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.user_id)}"}
    return _headers
