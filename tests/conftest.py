import os
from decimal import Decimal

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-0123456789")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("DB_CREATE_TABLES", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import ppvgate.models  # noqa: F401  registers mappers
from ppvgate.db.base import Base
from ppvgate.ppv.access import AccessEvaluator
from ppvgate.ppv.ledger import PurchaseLedger

from fakes import FakeEventStore, FakeProcessor, FakeStreamProvider, make_event


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def ledger(db):
    return PurchaseLedger(db)


@pytest.fixture
def evaluator(ledger):
    return AccessEvaluator(ledger)


@pytest.fixture
def events():
    return FakeEventStore(
        make_event(id="evt-1"),
        make_event(id="evt-live", stream_status="live"),
        make_event(id="evt-ended", stream_status="ended"),
        make_event(id="evt-cancelled", stream_status="cancelled"),
        make_event(id="evt-free", is_ppv=False, price=None),
    )


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def stream_provider():
    return FakeStreamProvider()


@pytest.fixture
def complete_purchase(ledger, db):
    """Insert a completed purchase directly into the ledger."""

    def _complete(event_id="evt-1", user_email="fan@example.com", session_id=None):
        session_id = session_id or f"cs_seed_{event_id}_{user_email}"
        record = ledger.create_pending(event_id, user_email, session_id, amount=Decimal("19.99"), currency="usd")
        db.commit()
        ledger.mark_completed(session_id, payment_id=None, amount=None, currency=None)
        db.commit()
        return record

    return _complete
