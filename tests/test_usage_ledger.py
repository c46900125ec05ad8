"""
Unit tests for the usage ledger primitives.
Tests guarded counter increments, credit spending, expiry and the
balance bookkeeping invariant.
"""
import random
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobgate.core.timeutil import utcnow
from jobgate.db.base import Base
from jobgate.db import models  # noqa: F401
from jobgate.db.models.credit import CreditBalance
from jobgate.db.models.user import User
from jobgate.services.plan_service import seed_catalog
from jobgate.services.subscription_service import resolve_subscription
from jobgate.services.usage_ledger import (
    add_credits,
    decrement_credits_if_available,
    get_credit_balance,
    get_credit_balances,
    get_or_create_counter,
    get_usable_balance,
    get_usage,
    increment_usage_if_under_limit,
    read_counter,
)


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    seed_catalog(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def employer(db):
    user = User(full_name="Ana Employer", email="ana@example.com", role="employer_admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def subscription(db, employer):
    sub = resolve_subscription(db, employer.id)
    db.commit()
    return sub


def test_counter_created_at_zero(db, subscription):
    counter = get_or_create_counter(db, subscription, "resume_view")
    assert counter.used == 0
    assert get_or_create_counter(db, subscription, "resume_view").id == counter.id
    assert get_usage(db, subscription, "resume_view") == 0


def test_increment_stops_at_limit(db, subscription):
    counter = get_or_create_counter(db, subscription, "resume_view")

    results = [increment_usage_if_under_limit(db, counter.id, 1, 5) for _ in range(7)]
    db.commit()

    assert results == [True] * 5 + [False] * 2
    assert read_counter(db, counter.id) == 5


def test_increment_amount_must_fit(db, subscription):
    counter = get_or_create_counter(db, subscription, "direct_application")
    assert increment_usage_if_under_limit(db, counter.id, 8, 10)
    assert not increment_usage_if_under_limit(db, counter.id, 3, 10)
    assert increment_usage_if_under_limit(db, counter.id, 2, 10)
    assert read_counter(db, counter.id) == 10


def test_increment_unlimited(db, subscription):
    counter = get_or_create_counter(db, subscription, "ai_usage")
    for _ in range(20):
        assert increment_usage_if_under_limit(db, counter.id, 1, 0)
    assert read_counter(db, counter.id) == 20


def test_decrement_requires_balance(db, employer):
    assert not decrement_credits_if_available(db, employer.id, "resume_contact", 1)

    add_credits(db, employer.id, "resume_contact", 2)
    db.commit()

    assert decrement_credits_if_available(db, employer.id, "resume_contact", 1)
    assert decrement_credits_if_available(db, employer.id, "resume_contact", 1)
    assert not decrement_credits_if_available(db, employer.id, "resume_contact", 1)
    db.commit()

    credit = get_credit_balance(db, employer.id, "resume_contact")
    assert credit.balance == 0
    assert credit.used_credits == 2
    assert credit.last_used_at is not None


def test_expired_credits_not_spendable(db, employer):
    now = utcnow()
    add_credits(db, employer.id, "ai_credit", 10, expires_at=now - timedelta(days=1))
    db.commit()

    assert get_usable_balance(db, employer.id, "ai_credit", now) == 0
    assert not decrement_credits_if_available(db, employer.id, "ai_credit", 1, now)
    assert get_credit_balances(db, employer.id, now)["ai_credit"]["expired"] is True


def test_add_credits_keeps_later_expiry(db, employer):
    now = utcnow()
    add_credits(db, employer.id, "resume_contact", 10, expires_at=now + timedelta(days=90))
    add_credits(db, employer.id, "resume_contact", 5, expires_at=now + timedelta(days=30))
    db.commit()

    credit = get_credit_balance(db, employer.id, "resume_contact")
    assert credit.balance == 15
    assert credit.total_purchased == 15
    assert credit.expires_at == now + timedelta(days=90)


def test_add_credits_never_expiring_stays_never_expiring(db, employer):
    now = utcnow()
    add_credits(db, employer.id, "job_posting", 3)
    add_credits(db, employer.id, "job_posting", 3, expires_at=now + timedelta(days=30))
    db.commit()

    credit = get_credit_balance(db, employer.id, "job_posting")
    assert credit.balance == 6
    assert credit.expires_at is None


def test_add_credits_rejects_non_positive(db, employer):
    with pytest.raises(ValueError):
        add_credits(db, employer.id, "ai_credit", 0)


def test_balance_invariant_over_random_operations(db, employer):
    """balance == total_purchased - used_credits after any sequence of adds and spends."""
    rng = random.Random(20260118)
    credit_types = ["resume_contact", "ai_credit"]

    for _ in range(200):
        credit_type = rng.choice(credit_types)
        if rng.random() < 0.4:
            add_credits(db, employer.id, credit_type, rng.randint(1, 5))
        else:
            decrement_credits_if_available(db, employer.id, credit_type, rng.randint(1, 3))
        db.commit()

        for credit in db.query(CreditBalance).filter(CreditBalance.user_id == employer.id).all():
            db.refresh(credit)
            assert credit.balance >= 0
            assert credit.balance == credit.total_purchased - credit.used_credits
