import pytest

from monera.db.repository import db

from conftest import create_job, make_admin, register_verified, submission


def approve(profile_id):
    db.talent_profile.update({"id": profile_id}, {"status": "APPROVED"})


@pytest.fixture
def approved_pool(client, submitted_talent, skills):
    """Ada (all three skills, Jakarta) approved, Bob (PostgreSQL, Lisbon) approved, Cy left SUBMITTED."""
    approve(submitted_talent["profile_id"])

    bob = register_verified(client, "bob@example.com")
    resp = client.post("/api/user/profile/submit", json=submission(
        [skills[2]["id"]], first_name="Bob", last_name="Stone", job_title="Database Reliability Engineer",
        location="Lisbon", country="Portugal",
    ), headers=bob["headers"])
    bob["profile_id"] = resp.json()["talent_profile_id"]
    approve(bob["profile_id"])

    cy = register_verified(client, "cy@example.com")
    resp = client.post("/api/user/profile/submit", json=submission(
        [skills[0]["id"]], first_name="Cy", last_name="Pending",
    ), headers=cy["headers"])
    cy["profile_id"] = resp.json()["talent_profile_id"]
    return {"ada": submitted_talent, "bob": bob, "cy": cy}


def names(resp):
    return sorted(c["first_name"] for c in resp.json()["candidates"])


class TestCandidateSearch:
    def test_client_sees_approved_only(self, client, recruiter, approved_pool):
        resp = client.get("/api/search/candidates", headers=recruiter["headers"])
        assert resp.status_code == 200
        assert names(resp) == ["Ada", "Bob"]
        assert resp.json()["pagination"]["total"] == 2

    def test_client_cannot_widen_status(self, client, recruiter, approved_pool):
        resp = client.get("/api/search/candidates", params={"status": "SUBMITTED"}, headers=recruiter["headers"])
        assert names(resp) == ["Ada", "Bob"]

    def test_admin_sees_every_status(self, client, super_admin, approved_pool):
        resp = client.get("/api/search/candidates", headers=super_admin["headers"])
        assert names(resp) == ["Ada", "Bob", "Cy"]
        resp = client.get("/api/search/candidates", params={"status": "SUBMITTED"}, headers=super_admin["headers"])
        assert names(resp) == ["Cy"]

    def test_query_matches_headline_and_name(self, client, recruiter, approved_pool):
        by_headline = client.get("/api/search/candidates", params={"query": "database"}, headers=recruiter["headers"])
        assert names(by_headline) == ["Bob"]
        by_name = client.get("/api/search/candidates", params={"query": "LOVELACE"}, headers=recruiter["headers"])
        assert names(by_name) == ["Ada"]

    def test_location_matches_city_or_country(self, client, recruiter, approved_pool):
        assert names(client.get("/api/search/candidates", params={"location": "lisbon"},
                                headers=recruiter["headers"])) == ["Bob"]
        assert names(client.get("/api/search/candidates", params={"location": "indonesia"},
                                headers=recruiter["headers"])) == ["Ada"]

    def test_skill_filter_matches_any(self, client, recruiter, approved_pool, skills):
        resp = client.get("/api/search/candidates", params={"skill_ids": skills[0]["id"]}, headers=recruiter["headers"])
        assert names(resp) == ["Ada"]
        both = f"{skills[0]['id']},{skills[2]['id']}"
        resp = client.get("/api/search/candidates", params={"skill_ids": both}, headers=recruiter["headers"])
        assert names(resp) == ["Ada", "Bob"]

    def test_candidate_shape(self, client, recruiter, approved_pool):
        job = create_job(client, recruiter)
        db.application.create({"job_id": job["id"], "candidate_id": approved_pool["ada"]["id"]})

        resp = client.get("/api/search/candidates", params={"query": "lovelace"}, headers=recruiter["headers"])
        candidate = resp.json()["candidates"][0]
        assert candidate["id"] == approved_pool["ada"]["profile_id"]
        assert candidate["user"] == {"id": approved_pool["ada"]["id"], "email": "talent@example.com"}
        assert [s["name"] for s in candidate["skills"]] == ["FastAPI", "PostgreSQL", "Python"]
        assert candidate["location"] == "Jakarta"
        assert candidate["hourly_rate"] == 45
        assert candidate["application_count"] == 1
        assert "password_hash" not in candidate

    def test_suspended_talent_hidden(self, client, recruiter, approved_pool):
        db.user.update({"id": approved_pool["bob"]["id"]}, {"status": "SUSPENDED"})
        resp = client.get("/api/search/candidates", headers=recruiter["headers"])
        assert names(resp) == ["Ada"]

    def test_pagination(self, client, super_admin, approved_pool):
        first = client.get("/api/search/candidates", params={"limit": 2}, headers=super_admin["headers"]).json()
        second = client.get("/api/search/candidates", params={"limit": 2, "page": 2},
                            headers=super_admin["headers"]).json()
        assert first["pagination"]["total"] == 3
        assert first["pagination"]["total_pages"] == 2
        assert len(first["candidates"]) == 2 and len(second["candidates"]) == 1
        seen = {c["id"] for c in first["candidates"]} | {c["id"] for c in second["candidates"]}
        assert len(seen) == 3

    def test_talent_forbidden(self, client, talent):
        assert client.get("/api/search/candidates", headers=talent["headers"]).status_code == 403

    def test_requires_auth(self, client):
        assert client.get("/api/search/candidates").status_code == 401

    def test_analyst_allowed(self, client):
        analyst = make_admin("ANALYST")
        assert client.get("/api/search/candidates", headers=analyst["headers"]).status_code == 200
