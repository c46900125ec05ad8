"""
Integration tests for POST /resume/contact.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobgate.main import app
from jobgate.db.base import Base
from jobgate.db import models  # noqa: F401
from jobgate.db.models.resume_reveal import ResumeContactReveal
from jobgate.db.models.user import User
from jobgate.core.auth_dependency import get_db
from jobgate.core.security import create_access_token
from jobgate.services.credit_service import add_credits
from jobgate.services.plan_service import seed_catalog


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Create tables and point the app at them for each test."""
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    db = TestSessionLocal()
    seed_catalog(db)
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db_session, email, role, status="verified", parent=None):
    user = User(
        full_name=email.split("@")[0],
        email=email,
        phone="+63 917 555 0100",
        role=role,
        verification_status=status,
        parent_user_id=parent.id if parent else None,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


def resume_views_used(client, user):
    usage = client.get("/me/usage", headers=auth_headers(user)).json()
    return next(r for r in usage["resources"] if r["resource_type"] == "resume_view")["used"]


@pytest.fixture
def employer(db_session):
    return make_user(db_session, "employer@example.com", "employer_admin")


@pytest.fixture
def seekers(db_session):
    return [make_user(db_session, f"seeker{i}@example.com", "job_seeker", status="unverified") for i in range(6)]


def test_reveal_contact(client, employer, seekers):
    response = client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=auth_headers(employer))

    assert response.status_code == 200
    data = response.json()
    assert data["contact"]["email"] == "seeker0@example.com"
    assert data["contact"]["phone"] == "+63 917 555 0100"
    assert data["already_revealed"] is False
    assert data["source"] == "subscription"
    assert resume_views_used(client, employer) == 1


def test_repeat_reveal_is_free(client, employer, seekers):
    headers = auth_headers(employer)
    client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=headers)

    response = client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=headers)
    assert response.status_code == 200
    assert response.json()["already_revealed"] is True
    assert response.json()["source"] is None
    assert resume_views_used(client, employer) == 1


def test_sub_user_shares_reveals(client, employer, seekers, db_session):
    recruiter = make_user(db_session, "recruiter@example.com", "sub_user", parent=employer)
    client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=auth_headers(employer))

    response = client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=auth_headers(recruiter))
    assert response.json()["already_revealed"] is True

    response = client.post("/resume/contact", json={"job_seeker_id": seekers[1].id}, headers=auth_headers(recruiter))
    assert response.json()["already_revealed"] is False
    assert resume_views_used(client, employer) == 2

    reveal = db_session.query(ResumeContactReveal).filter(
        ResumeContactReveal.target_user_id == seekers[1].id
    ).one()
    assert reveal.revealed_by == employer.id
    assert reveal.requested_by == recruiter.id


def test_reveal_limit_then_credits(client, employer, seekers, db_session):
    headers = auth_headers(employer)
    for seeker in seekers[:5]:
        assert client.post("/resume/contact", json={"job_seeker_id": seeker.id}, headers=headers).status_code == 200

    response = client.post("/resume/contact", json={"job_seeker_id": seekers[5].id}, headers=headers)
    assert response.status_code == 402
    assert response.json()["detail"]["reason"] == "limit exceeded"

    add_credits(db_session, employer.id, "resume_contact", 1)
    response = client.post("/resume/contact", json={"job_seeker_id": seekers[5].id}, headers=headers)
    assert response.status_code == 200
    assert response.json()["source"] == "credit"


def test_unverified_employer_cannot_reveal(client, seekers, db_session):
    unverified = make_user(db_session, "new@example.com", "employer_admin", status="unverified")

    response = client.post("/resume/contact", json={"job_seeker_id": seekers[0].id}, headers=auth_headers(unverified))
    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "not verified"
    assert resume_views_used(client, unverified) == 0


def test_job_seeker_cannot_reveal(client, seekers):
    response = client.post("/resume/contact", json={"job_seeker_id": seekers[1].id}, headers=auth_headers(seekers[0]))
    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "insufficient role"


def test_reveal_unknown_user(client, employer):
    response = client.post("/resume/contact", json={"job_seeker_id": 999}, headers=auth_headers(employer))
    assert response.status_code == 404


def test_reveal_fails_closed_when_reveals_unreadable(client, employer, seekers, db_session):
    headers = auth_headers(employer)
    seeker_id = seekers[0].id
    db_session.commit()
    ResumeContactReveal.__table__.drop(bind=test_engine)

    response = client.post("/resume/contact", json={"job_seeker_id": seeker_id}, headers=headers)
    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "STORAGE_UNAVAILABLE"
    assert resume_views_used(client, employer) == 0
