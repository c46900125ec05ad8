"""
Unit tests for the policy helpers.
No database: the rules work on plain objects.
"""
from types import SimpleNamespace

import pytest

from jobgate.core.actor import Actor
from jobgate.core.policy import (
    INSUFFICIENT_ROLE,
    NOT_VERIFIED,
    PLACEMENT_RESTRICTED,
    can_create_job,
    can_generate_shortlink,
    can_reveal_resume,
    can_view_contact_details,
    is_super_admin,
    is_verified,
)


def employer(user_id=1, status="unverified", document=False, role="employer_admin"):
    return Actor(id=user_id, role=role, verification_status=status, has_verified_document=document)


def test_super_admin_detection():
    assert is_super_admin(Actor(id=1, role="super_admin"))
    assert not is_super_admin(employer())
    assert not is_super_admin(None)


@pytest.mark.parametrize("status", ["verified", "approved", "active", "VERIFIED"])
def test_verified_statuses(status):
    assert is_verified(employer(status=status))


@pytest.mark.parametrize("status", ["pending", "unverified", "rejected", None])
def test_unverified_statuses(status):
    assert not is_verified(employer(status=status))


def test_verified_document_overrides_status():
    """A verified document wins over a pending status string."""
    assert is_verified(employer(status="pending"), verified_document=True)
    assert is_verified(employer(status="pending", document=True))


def test_missing_document_falls_back_to_status():
    assert is_verified(employer(status="verified"), verified_document=False)


def test_can_create_job_verified_no_active():
    decision = can_create_job(employer(status="verified"), verified=True, active_count=0)
    assert decision.allowed
    assert not decision.limited


def test_can_create_job_verified_ignores_active_count_and_placement():
    decision = can_create_job(
        employer(status="verified"),
        verified=True,
        active_count=7,
        job_data={"has_placement_fee": True, "is_placement": True},
    )
    assert decision.allowed


def test_can_create_job_unverified_with_active_posting():
    decision = can_create_job(employer(), verified=False, active_count=1)
    assert not decision.allowed
    assert decision.reason == NOT_VERIFIED


def test_can_create_job_unverified_placement_fee():
    decision = can_create_job(employer(), active_count=0, job_data={"has_placement_fee": True})
    assert not decision.allowed
    assert decision.reason == PLACEMENT_RESTRICTED


def test_can_create_job_unverified_placement_type():
    decision = can_create_job(employer(), active_count=0, job_data={"is_placement": True})
    assert not decision.allowed
    assert decision.reason == PLACEMENT_RESTRICTED


def test_can_create_job_unverified_first_posting_is_limited():
    decision = can_create_job(employer(), active_count=0, job_data={"title": "Cook"})
    assert decision.allowed
    assert decision.limited
    assert "verification" in decision.message.lower()


def test_can_create_job_job_seeker_denied():
    decision = can_create_job(Actor(id=3, role="job_seeker", verification_status="verified"))
    assert not decision.allowed
    assert decision.reason == INSUFFICIENT_ROLE


def test_can_create_job_super_admin():
    decision = can_create_job(Actor(id=1, role="super_admin"), active_count=50, job_data={"is_placement": True})
    assert decision.allowed
    assert not decision.limited


def test_shortlink_denied_for_other_verified_employer():
    job = SimpleNamespace(posted_by_id=10, company=SimpleNamespace(created_by_id=11))
    assert not can_generate_shortlink(employer(user_id=12, status="verified"), job)


def test_shortlink_allowed_for_poster_and_company_owner():
    job = SimpleNamespace(posted_by_id=10, company=SimpleNamespace(created_by_id=11))
    assert can_generate_shortlink(employer(user_id=10), job)
    assert can_generate_shortlink(employer(user_id=11), job)


def test_shortlink_admin_and_missing_inputs():
    job = SimpleNamespace(posted_by_id=10, company=None)
    assert can_generate_shortlink(Actor(id=99, role="super_admin"), job)
    assert not can_generate_shortlink(None, job)
    assert not can_generate_shortlink(employer(user_id=10), None)


def test_can_reveal_resume_by_status():
    assert not can_reveal_resume(employer(status="pending"))
    assert can_reveal_resume(employer(status="verified"))
    assert can_reveal_resume(Actor(id=1, role="super_admin"))
    assert not can_reveal_resume(None)


def test_can_view_contact_details():
    owner = SimpleNamespace(id=5)
    assert not can_view_contact_details(None, owner)
    assert can_view_contact_details(employer(user_id=2), None)
    assert can_view_contact_details(employer(user_id=5), owner)
    assert can_view_contact_details(Actor(id=1, role="super_admin"), owner)
    assert can_view_contact_details(employer(user_id=2, status="verified"), owner)
    assert not can_view_contact_details(employer(user_id=2, status="pending"), owner)


def test_missing_ids_are_not_the_same_user():
    viewer = SimpleNamespace(role="employer_admin", verification_status="pending")
    owner = SimpleNamespace(email="seeker@example.com")
    assert not can_view_contact_details(viewer, owner)


def test_decision_to_dict():
    decision = can_create_job(employer(), active_count=1)
    data = decision.to_dict()
    assert data["allowed"] is False
    assert data["reason"] == NOT_VERIFIED
    assert data["source"] is None
