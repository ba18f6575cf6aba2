"""
Shared fixtures: a throwaway SQLite database and helpers that create
users of every role through the real endpoints.
"""

import itertools
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="monera-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["ENVIRONMENT"] = "test"
os.environ["SMTP_HOST"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""

import pytest
from fastapi.testclient import TestClient

from monera.core.auth import create_user_token, hash_password
from monera.core.security import ALL_RATE_LIMITERS
from monera.db.postgres import engine
from monera.db.repository import db
from monera.db.schema import metadata
from monera.main import app

PASSWORD = "Password123!"

_ips = itertools.count(1)


def next_ip() -> str:
    n = next(_ips)
    return f"10.{(n >> 16) & 255}.{(n >> 8) & 255}.{n & 255}"


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def fresh_database():
    metadata.drop_all(engine)
    metadata.create_all(engine)
    for limiter in ALL_RATE_LIMITERS:
        limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


def register(client, email, role="TALENT", password=PASSWORD, company_name=None):
    body = {"email": email, "password": password, "role": role}
    if company_name:
        body["company_name"] = company_name
    return client.post("/api/auth/register", json=body, headers={"X-Forwarded-For": next_ip()})


def verification_code(email: str) -> str:
    return db.user.find_unique({"email": email.lower()})["verification_code"]


def register_verified(client, email, role="TALENT", company_name=None) -> dict:
    """Register + verify; returns {"id", "email", "token", "headers"}."""
    resp = register(client, email, role=role, company_name=company_name)
    assert resp.status_code == 201, resp.text
    verified = client.post("/api/auth/verify-email", json={"email": email, "code": verification_code(email)})
    assert verified.status_code == 200, verified.text
    token = verified.json()["access_token"]
    return {"id": resp.json()["user"]["id"], "email": email.lower(), "token": token, "headers": auth(token)}


def make_admin(role="SUPER_ADMIN", email=None) -> dict:
    email = email or f"{role.lower()}@monera.io"
    user = db.user.create({
        "email": email,
        "password_hash": hash_password(PASSWORD),
        "role": role,
        "status": "ACTIVE",
        "full_name": role.replace("_", " ").title(),
        "email_verified": True,
    })
    token = create_user_token(user)
    return {"id": user["id"], "email": email, "token": token, "headers": auth(token)}


def make_skill(name, category="Development") -> dict:
    return db.skill.create({"name": name, "category": category})


def submission(skill_ids, **overrides) -> dict:
    body = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "job_title": "Senior Python Backend API Engineer",
        "country": "Indonesia",
        "timezone": "Asia/Jakarta",
        "bio": "Backend engineer building APIs and data pipelines. " * 3,
        "phone": "+62 812 0000 0000",
        "location": "Jakarta",
        "experience": "8 years of Python, FastAPI and PostgreSQL.",
        "intro_video_url": "https://videos.example.com/ada.mp4",
        "skill_ids": skill_ids,
        "portfolio_url": "https://ada.dev",
        "linked_in_url": "https://linkedin.com/in/ada",
        "github_url": "https://github.com/ada",
        "hourly_rate": 45,
        "availability": "Open",
    }
    body.update(overrides)
    return body


@pytest.fixture
def talent(client):
    return register_verified(client, "talent@example.com")


@pytest.fixture
def recruiter(client):
    return register_verified(client, "recruiter@acme.io", role="CLIENT", company_name="Acme Corp")


@pytest.fixture
def super_admin():
    return make_admin("SUPER_ADMIN")


@pytest.fixture
def skills():
    return [make_skill("Python"), make_skill("FastAPI"), make_skill("PostgreSQL")]


@pytest.fixture
def submitted_talent(client, talent, skills):
    resp = client.post(
        "/api/user/profile/submit",
        json=submission([s["id"] for s in skills]),
        headers=talent["headers"],
    )
    assert resp.status_code == 200, resp.text
    talent["profile_id"] = resp.json()["talent_profile_id"]
    return talent


def create_job(client, recruiter, publish=True, **fields) -> dict:
    body = {"title": "Python API Developer", "description": "Build and maintain our FastAPI services."}
    body.update(fields)
    resp = client.post("/api/jobs", json=body, headers=recruiter["headers"])
    assert resp.status_code == 201, resp.text
    job = resp.json()
    if publish:
        resp = client.post(f"/api/jobs/{job['id']}/publish", headers=recruiter["headers"])
        assert resp.status_code == 200, resp.text
        job = resp.json()
    return job


@pytest.fixture
def published_job(client, recruiter):
    return create_job(client, recruiter)
