"""
Unit tests for the entitlement engine.
Tests the fixed order of checks and that evaluation never charges anything.
"""
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobgate.core.actor import Actor
from jobgate.core.errors import StorageUnavailable
from jobgate.core.policy import INSUFFICIENT_ROLE, LIMIT_EXCEEDED, NOT_VERIFIED, PLACEMENT_RESTRICTED
from jobgate.db.base import Base
from jobgate.db import models  # noqa: F401
from jobgate.db.models.credit import CreditBalance
from jobgate.db.models.job_posting import JobPosting
from jobgate.db.models.usage import UsageCounter
from jobgate.db.models.user import User
from jobgate.services.entitlement_service import evaluate
from jobgate.services.plan_service import seed_catalog
from jobgate.services.subscription_service import activate_subscription, resolve_subscription
from jobgate.services.usage_ledger import add_credits, get_or_create_counter, increment_usage_if_under_limit


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


def make_user(db, email, role, status="unverified", parent=None):
    user = User(
        full_name=email.split("@")[0],
        email=email,
        role=role,
        verification_status=status,
        parent_user_id=parent.id if parent else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def as_actor(user, document=False):
    return Actor(
        id=user.id,
        role=user.role,
        verification_status=user.verification_status,
        has_verified_document=document,
        parent_user_id=user.parent_user_id,
    )


def use_up(db, user_id, resource_type, amount):
    sub = resolve_subscription(db, user_id)
    counter = get_or_create_counter(db, sub, resource_type)
    assert increment_usage_if_under_limit(db, counter.id, amount, 0)
    db.commit()


@pytest.fixture
def employer(db):
    return make_user(db, "employer@example.com", "employer_admin", status="verified")


@pytest.fixture
def seeker(db):
    return make_user(db, "seeker@example.com", "job_seeker")


def test_super_admin_always_allowed(db):
    admin = make_user(db, "admin@example.com", "super_admin")
    for resource_type in ("job_posting", "direct_application", "resume_view"):
        assert evaluate(db, as_actor(admin), resource_type).allowed


def test_role_checked_before_limits(db, seeker, employer):
    decision = evaluate(db, as_actor(seeker), "job_posting")
    assert not decision.allowed
    assert decision.reason == INSUFFICIENT_ROLE

    decision = evaluate(db, as_actor(employer), "direct_application")
    assert decision.reason == INSUFFICIENT_ROLE


def test_missing_actor_denied(db):
    assert evaluate(db, None, "ai_usage").reason == INSUFFICIENT_ROLE


def test_unknown_resource_type(db, employer):
    with pytest.raises(ValueError):
        evaluate(db, as_actor(employer), "ats_scan")


def test_within_allowance_uses_subscription(db, employer):
    decision = evaluate(db, as_actor(employer), "resume_view")
    assert decision.allowed
    assert decision.source == "subscription"


def test_used_equal_to_limit_is_exhausted(db, employer):
    use_up(db, employer.id, "resume_view", 5)
    decision = evaluate(db, as_actor(employer), "resume_view")
    assert not decision.allowed
    assert decision.reason == LIMIT_EXCEEDED


def test_exhausted_allowance_falls_back_to_credits(db, employer):
    use_up(db, employer.id, "resume_view", 5)
    add_credits(db, employer.id, "resume_contact", 1)
    db.commit()

    decision = evaluate(db, as_actor(employer), "resume_view")
    assert decision.allowed
    assert decision.source == "credit"

    assert not evaluate(db, as_actor(employer), "resume_view", amount=2).allowed


def test_credits_of_other_type_do_not_count(db, employer):
    use_up(db, employer.id, "resume_view", 5)
    add_credits(db, employer.id, "ai_credit", 10)
    db.commit()
    assert evaluate(db, as_actor(employer), "resume_view").reason == LIMIT_EXCEEDED


def test_zero_limit_is_unlimited(db, employer):
    activate_subscription(db, employer.id, plan_type="enterprise")
    use_up(db, employer.id, "resume_view", 10000)
    decision = evaluate(db, as_actor(employer), "resume_view")
    assert decision.allowed
    assert decision.source == "subscription"


def test_free_plan_zero_ai_credits_is_unlimited(db, seeker):
    """The free tier stores 0 for AI usage, which reads as unlimited."""
    assert evaluate(db, as_actor(seeker), "ai_usage").allowed


def test_sub_user_uses_parent_allowance(db, employer):
    sub_user = make_user(db, "recruiter@example.com", "sub_user", status="verified", parent=employer)
    use_up(db, employer.id, "resume_view", 5)

    decision = evaluate(db, as_actor(sub_user), "resume_view")
    assert decision.reason == LIMIT_EXCEEDED


def test_job_posting_unverified_first_posting_limited(db):
    unverified = make_user(db, "new@example.com", "employer_admin")
    decision = evaluate(db, as_actor(unverified), "job_posting")
    assert decision.allowed
    assert decision.limited


def test_job_posting_unverified_second_posting_denied(db):
    unverified = make_user(db, "new@example.com", "employer_admin")
    activate_subscription(db, unverified.id, plan_type="premium")
    db.add(JobPosting(posted_by_id=unverified.id, title="Cook", description="Kitchen"))
    db.commit()

    decision = evaluate(db, as_actor(unverified), "job_posting")
    assert not decision.allowed
    assert decision.reason == NOT_VERIFIED


def test_job_posting_closed_postings_not_counted(db):
    unverified = make_user(db, "new@example.com", "employer_admin")
    activate_subscription(db, unverified.id, plan_type="premium")
    db.add(JobPosting(posted_by_id=unverified.id, title="Cook", description="Kitchen", status="closed"))
    db.commit()

    assert evaluate(db, as_actor(unverified), "job_posting").allowed


def test_job_posting_placement_restricted(db):
    unverified = make_user(db, "new@example.com", "employer_admin")
    decision = evaluate(
        db,
        as_actor(unverified),
        "job_posting",
        context={"active_count": 0, "job_data": {"has_placement_fee": True}},
    )
    assert decision.reason == PLACEMENT_RESTRICTED


def test_verified_document_context_overrides_status(db):
    pending = make_user(db, "pending@example.com", "employer_admin", status="pending")
    decision = evaluate(
        db,
        as_actor(pending),
        "job_posting",
        context={"verified_document": True, "active_count": 3, "job_data": {"is_placement": True}},
    )
    assert decision.allowed
    assert not decision.limited


def test_limit_checked_before_job_posting_rules(db):
    unverified = make_user(db, "new@example.com", "employer_admin")
    use_up(db, unverified.id, "job_posting", 1)
    decision = evaluate(db, as_actor(unverified), "job_posting", context={"active_count": 1})
    assert decision.reason == LIMIT_EXCEEDED


def test_evaluate_does_not_mutate_ledger(db, employer):
    use_up(db, employer.id, "resume_view", 4)
    add_credits(db, employer.id, "resume_contact", 3)
    db.commit()

    def snapshot():
        counters = sorted((c.resource_type, c.used) for c in db.query(UsageCounter).all())
        credits = sorted((c.credit_type, c.balance, c.used_credits) for c in db.query(CreditBalance).all())
        return counters, credits

    before = snapshot()
    for _ in range(10):
        for resource_type in ("resume_view", "job_posting", "featured_job", "ai_usage"):
            evaluate(db, as_actor(employer), resource_type)
    db.commit()
    assert snapshot() == before


def test_storage_failure_fails_closed(db, employer):
    resolve_subscription(db, employer.id)
    db.commit()

    error = OperationalError("SELECT", {}, Exception("connection refused"))
    with patch("jobgate.services.entitlement_service.get_usage", side_effect=error):
        with pytest.raises(StorageUnavailable):
            evaluate(db, as_actor(employer), "resume_view")
