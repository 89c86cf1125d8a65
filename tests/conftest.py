"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- In-memory SQLite mirror store with the schema created from the ORM models
- Mock collaborators (recurring-contribution records, router)
- Mock gateway and a fully wired processor
- Sample payment requests
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Never touch a real database or Stripe account from tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STRIPE__SECRET_KEY", "sk_test_fake_key")
os.environ.setdefault("STRIPE__PUBLISHABLE_KEY", "pk_test_fake_key")

from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from contribution_gateway.collaborators import RecurringContributionRecords, UrlRouter  # noqa: E402
from contribution_gateway.config import ProcessorConfig, RoutingSettings  # noqa: E402
from contribution_gateway.gateway import MockGateway  # noqa: E402
from contribution_gateway.infrastructure.database import (  # noqa: E402
    create_db_engine,
    drop_all_tables,
    init_db,
)
from contribution_gateway.infrastructure.repository import MirrorStore  # noqa: E402
from contribution_gateway.models import PaymentRequest, RecurringTerms  # noqa: E402
from contribution_gateway.processor import StripePaymentProcessor  # noqa: E402
from contribution_gateway.services import (  # noqa: E402
    ChargeOrchestrator,
    ErrorClassifier,
    RecurringSubscriptionManager,
)

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    """Fresh in-memory database with all mirror tables."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Database session bound to the in-memory engine."""
    session = sessionmaker(bind=db_engine, autoflush=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def records() -> Mock:
    """Mock recurring-contribution records collaborator."""
    return Mock(spec=RecurringContributionRecords)


@pytest.fixture
def routing() -> RoutingSettings:
    """Routing settings with a fixed site URL."""
    return RoutingSettings(site_base_url="https://donate.example.org")


@pytest.fixture
def router(routing) -> UrlRouter:
    """URL router over the test site."""
    return UrlRouter(routing)


@pytest.fixture
def store(db_session, records) -> MirrorStore:
    """Mirror store over the test session."""
    return MirrorStore(db_session, records)


@pytest.fixture
def classifier(router, routing) -> ErrorClassifier:
    """Error classifier using the test router."""
    return ErrorClassifier(router, routing)


@pytest.fixture
def mock_gateway() -> MockGateway:
    """In-memory gateway."""
    return MockGateway()


@pytest.fixture
def recurring_manager(mock_gateway, store, classifier) -> RecurringSubscriptionManager:
    """Recurring manager in test mode with a frozen clock."""
    return RecurringSubscriptionManager(
        mock_gateway, store, classifier, is_live=False, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def orchestrator(mock_gateway, store, classifier, recurring_manager) -> ChargeOrchestrator:
    """Charge orchestrator over the mock gateway."""
    return ChargeOrchestrator(mock_gateway, store, classifier, recurring_manager)


@pytest.fixture
def processor(db_session, records, router, mock_gateway) -> StripePaymentProcessor:
    """Fully wired processor using the mock gateway."""
    config = ProcessorConfig(
        name="mock",
        secret_key="sk_test_fake_key",
        publishable_key="pk_test_fake_key",
        is_live=False,
    )
    return StripePaymentProcessor(
        config, db_session, records, router=router, gateway=mock_gateway
    )


@pytest.fixture
def make_request():
    """
    Factory for payment requests.

    Usage:
        def test_something(make_request):
            request = make_request(amount_cents=1000, recurring=RecurringTerms("month"))
    """

    def _make_request(**overrides) -> PaymentRequest:
        values = {
            "amount_cents": 2550,
            "currency": "USD",
            "email": "a@example.org",
            "payment_token": "tok_visa",
            "invoice_id": "inv_0001",
            "description": "Spring appeal",
            "form_key": "qf_abc123",
            "contribution_page_id": "1",
        }
        values.update(overrides)
        return PaymentRequest(**values)

    return _make_request


@pytest.fixture
def monthly_terms() -> RecurringTerms:
    """Open-ended monthly recurring terms."""
    return RecurringTerms(frequency_unit="month", frequency_interval=1, installments=0)
