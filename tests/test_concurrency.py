"""
Concurrency tests for the consume path.
Runs competing consumers on separate sessions against a file-backed
SQLite database and checks that a limit is never overrun.
"""
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from jobgate.core.actor import Actor
from jobgate.core.errors import InsufficientCredits
from jobgate.db.base import Base
from jobgate.db import models  # noqa: F401
from jobgate.db.models.subscription import Subscription
from jobgate.db.models.user import User
from jobgate.services.credit_service import add_credits, consume
from jobgate.services.plan_service import seed_catalog
from jobgate.services.subscription_service import resolve_subscription
from jobgate.services.usage_ledger import (
    get_credit_balance,
    get_or_create_counter,
    get_usage,
    increment_usage_if_under_limit,
)


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'metering.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SessionLocal
    engine.dispose()


@pytest.fixture
def employer_id(session_factory):
    db = session_factory()
    try:
        seed_catalog(db)
        user = User(full_name="Ana Employer", email="ana@example.com", role="employer_admin",
                    verification_status="verified")
        db.add(user)
        db.commit()
        # provision up front so the race is only over the counter
        sub = resolve_subscription(db, user.id)
        for resource_type in ("resume_view", "direct_application"):
            get_or_create_counter(db, sub, resource_type)
        db.commit()
        return user.id
    finally:
        db.close()


def run_concurrently(session_factory, actor, resource_type, workers):
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def worker():
        db = session_factory()
        try:
            barrier.wait()
            try:
                outcome = consume(db, actor, resource_type).source
            except InsufficientCredits:
                outcome = "denied"
            with lock:
                outcomes.append(outcome)
        finally:
            db.close()

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_limit_never_overrun(session_factory, employer_id):
    actor = Actor(id=employer_id, role="employer_admin", verification_status="verified")

    outcomes = run_concurrently(session_factory, actor, "resume_view", workers=12)

    assert len(outcomes) == 12
    assert outcomes.count("subscription") == 5
    assert outcomes.count("denied") == 7

    db = session_factory()
    try:
        sub = resolve_subscription(db, employer_id)
        assert get_usage(db, sub, "resume_view") == 5
    finally:
        db.close()


def test_last_unit_goes_to_one_consumer(session_factory, employer_id):
    """9 of 10 used: one consumer gets the last unit, the other pays with a credit or is denied."""
    db = session_factory()
    try:
        seeker = User(full_name="Sam Seeker", email="sam@example.com", role="job_seeker")
        db.add(seeker)
        db.commit()
        sub = resolve_subscription(db, seeker.id)
        counter = get_or_create_counter(db, sub, "direct_application")
        assert increment_usage_if_under_limit(db, counter.id, 9, 10)
        db.commit()
        seeker_id = seeker.id
    finally:
        db.close()

    actor = Actor(id=seeker_id, role="job_seeker")
    outcomes = run_concurrently(session_factory, actor, "direct_application", workers=2)
    assert sorted(outcomes) == ["denied", "subscription"]

    db = session_factory()
    try:
        add_credits(db, seeker_id, "direct_application", 1)
    finally:
        db.close()

    outcomes = run_concurrently(session_factory, actor, "direct_application", workers=2)
    assert sorted(outcomes) == ["credit", "denied"]

    db = session_factory()
    try:
        sub = resolve_subscription(db, seeker_id)
        assert get_usage(db, sub, "direct_application") == 10
        credit = get_credit_balance(db, seeker_id, "direct_application")
        assert credit.balance == 0
        assert credit.used_credits == 1
    finally:
        db.close()


def test_credit_fallback_under_contention(session_factory, employer_id):
    db = session_factory()
    try:
        add_credits(db, employer_id, "resume_contact", 3)
    finally:
        db.close()
    actor = Actor(id=employer_id, role="employer_admin", verification_status="verified")

    outcomes = run_concurrently(session_factory, actor, "resume_view", workers=10)

    assert outcomes.count("subscription") == 5
    assert outcomes.count("credit") == 3
    assert outcomes.count("denied") == 2

    db = session_factory()
    try:
        credit = get_credit_balance(db, employer_id, "resume_contact")
        assert credit.balance == 0
        assert credit.balance == credit.total_purchased - credit.used_credits
    finally:
        db.close()


def test_first_access_provisions_one_subscription(session_factory):
    db = session_factory()
    try:
        seed_catalog(db)
        user = User(full_name="Nia Employer", email="nia@example.com", role="employer_admin",
                    verification_status="verified")
        db.add(user)
        db.commit()
        user_id = user.id
    finally:
        db.close()
    actor = Actor(id=user_id, role="employer_admin", verification_status="verified")

    outcomes = run_concurrently(session_factory, actor, "resume_view", workers=8)

    assert outcomes.count("subscription") == 5
    assert outcomes.count("denied") == 3

    db = session_factory()
    try:
        subscriptions = db.query(Subscription).filter(Subscription.user_id == user_id).all()
        assert len(subscriptions) == 1
        assert subscriptions[0].status == "active"
        assert get_usage(db, subscriptions[0], "resume_view") == 5
    finally:
        db.close()
