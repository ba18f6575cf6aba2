from monera.db.repository import db

from conftest import create_job, make_admin, register_verified


class TestCreateJob:
    def test_created_as_draft_with_company_and_skills(self, client, recruiter, skills):
        resp = client.post("/api/jobs", json={
            "title": "Data Engineer",
            "description": "Pipelines",
            "salary_min": 30,
            "salary_max": 60,
            "engagement_type": "Hourly",
            "skill_ids": [skills[0]["id"], skills[0]["id"], "unknown"],
        }, headers=recruiter["headers"])
        assert resp.status_code == 201
        job = resp.json()
        assert job["status"] == "DRAFT"
        assert job["published_at"] is None
        assert job["company"]["name"] == "Acme Corp"
        assert job["recruiter"]["email"] == recruiter["email"]
        assert [s["name"] for s in job["skills"]] == ["Python"]
        assert job["category"] == "Development & IT"

    def test_salary_range_validated(self, client, recruiter):
        resp = client.post("/api/jobs", json={
            "title": "X", "description": "Y", "salary_min": 100, "salary_max": 50,
        }, headers=recruiter["headers"])
        assert resp.status_code == 422

    def test_unknown_company(self, client, recruiter):
        resp = client.post("/api/jobs", json={"title": "X", "description": "Y", "company_id": "nope"},
                           headers=recruiter["headers"])
        assert resp.status_code == 400

    def test_talent_cannot_post(self, client, talent):
        resp = client.post("/api/jobs", json={"title": "X", "description": "Y"}, headers=talent["headers"])
        assert resp.status_code == 403

    def test_requires_auth(self, client):
        assert client.post("/api/jobs", json={"title": "X", "description": "Y"}).status_code == 401


class TestListJobs:
    def test_only_published_public(self, client, recruiter):
        create_job(client, recruiter, title="Published one")
        create_job(client, recruiter, publish=False, title="Draft one")

        body = client.get("/api/jobs").json()
        assert [j["title"] for j in body["jobs"]] == ["Published one"]
        assert body["pagination"]["total"] == 1

        # status filter is ignored for non-admins
        body = client.get("/api/jobs?status=DRAFT").json()
        assert [j["title"] for j in body["jobs"]] == ["Published one"]

    def test_own_jobs_every_status(self, client, recruiter):
        create_job(client, recruiter, title="Published one")
        create_job(client, recruiter, publish=False, title="Draft one")
        body = client.get("/api/jobs?recruiter_id=me", headers=recruiter["headers"]).json()
        assert body["pagination"]["total"] == 2
        body = client.get("/api/jobs?recruiter_id=me&status=draft", headers=recruiter["headers"]).json()
        assert [j["title"] for j in body["jobs"]] == ["Draft one"]

    def test_recruiter_me_needs_auth(self, client):
        assert client.get("/api/jobs?recruiter_id=me").status_code == 401

    def test_admin_can_list_drafts(self, client, recruiter, super_admin):
        create_job(client, recruiter, publish=False, title="Draft one")
        body = client.get("/api/jobs?status=DRAFT", headers=super_admin["headers"]).json()
        assert [j["title"] for j in body["jobs"]] == ["Draft one"]

    def test_filters(self, client, recruiter, skills):
        create_job(client, recruiter, title="Remote Python", remote=True, salary_min=50, salary_max=80,
                   skill_ids=[skills[0]["id"]], location="Berlin")
        create_job(client, recruiter, title="Onsite Java", remote=False, salary_min=10, salary_max=20,
                   location="Jakarta")

        def titles(query):
            return [j["title"] for j in client.get(f"/api/jobs?{query}").json()["jobs"]]

        assert titles("query=python") == ["Remote Python"]
        assert titles("remote=true") == ["Remote Python"]
        assert titles("remote=false") == ["Onsite Java"]
        assert titles("location=jak") == ["Onsite Java"]
        assert titles("salary_min=40") == ["Remote Python"]
        assert titles("salary_max=30") == ["Onsite Java"]
        assert titles(f"skill_ids={skills[0]['id']}") == ["Remote Python"]
        assert titles(f"skill_ids={skills[1]['id']},{skills[0]['id']}") == ["Remote Python"]

    def test_newest_first_and_pagination(self, client, recruiter):
        for i in range(3):
            create_job(client, recruiter, title=f"Job {i}")
        body = client.get("/api/jobs?limit=2&page=1").json()
        assert [j["title"] for j in body["jobs"]] == ["Job 2", "Job 1"]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
        body = client.get("/api/jobs?limit=2&page=2").json()
        assert [j["title"] for j in body["jobs"]] == ["Job 0"]


class TestJobDetail:
    def test_published_is_public(self, client, published_job):
        resp = client.get(f"/api/jobs/{published_job['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "PUBLISHED"
        assert resp.json()["published_at"] is not None

    def test_draft_hidden_from_others(self, client, recruiter, talent):
        job = create_job(client, recruiter, publish=False)
        assert client.get(f"/api/jobs/{job['id']}").status_code == 404
        assert client.get(f"/api/jobs/{job['id']}", headers=talent["headers"]).status_code == 404
        assert client.get(f"/api/jobs/{job['id']}", headers=recruiter["headers"]).status_code == 200

    def test_missing(self, client):
        assert client.get("/api/jobs/does-not-exist").status_code == 404


class TestUpdateJob:
    def test_owner_updates(self, client, recruiter, published_job, skills):
        resp = client.put(f"/api/jobs/{published_job['id']}", json={
            "title": "Renamed", "skill_ids": [skills[1]["id"]],
        }, headers=recruiter["headers"])
        assert resp.status_code == 200
        assert resp.json()["title"] == "Renamed"
        assert [s["name"] for s in resp.json()["skills"]] == ["FastAPI"]

    def test_salary_checked_against_stored_values(self, client, recruiter):
        job = create_job(client, recruiter, salary_min=50, salary_max=80)
        resp = client.put(f"/api/jobs/{job['id']}", json={"salary_max": 40}, headers=recruiter["headers"])
        assert resp.status_code == 400

    def test_other_recruiter_forbidden(self, client, published_job):
        other = register_verified(client, "other@globex.io", role="CLIENT", company_name="Globex")
        resp = client.put(f"/api/jobs/{published_job['id']}", json={"title": "Hijack"}, headers=other["headers"])
        assert resp.status_code == 403

    def test_publish_via_update_stamps_date(self, client, recruiter):
        job = create_job(client, recruiter, publish=False)
        resp = client.put(f"/api/jobs/{job['id']}", json={"status": "PUBLISHED"}, headers=recruiter["headers"])
        assert resp.json()["published_at"] is not None


class TestPublish:
    def test_publish_twice_rejected(self, client, recruiter, published_job):
        resp = client.post(f"/api/jobs/{published_job['id']}/publish", headers=recruiter["headers"])
        assert resp.status_code == 400

    def test_republish_closed(self, client, recruiter, published_job):
        client.put(f"/api/jobs/{published_job['id']}", json={"status": "CLOSED"}, headers=recruiter["headers"])
        resp = client.post(f"/api/jobs/{published_job['id']}/publish", headers=recruiter["headers"])
        assert resp.status_code == 200

    def test_archived_cannot_publish(self, client, recruiter, published_job):
        client.put(f"/api/jobs/{published_job['id']}", json={"status": "ARCHIVED"}, headers=recruiter["headers"])
        resp = client.post(f"/api/jobs/{published_job['id']}/publish", headers=recruiter["headers"])
        assert resp.status_code == 400


class TestDeleteJob:
    def test_delete_cascades(self, client, recruiter, submitted_talent, published_job):
        client.post("/api/applications", json={"job_id": published_job["id"]}, headers=submitted_talent["headers"])
        client.post("/api/saved-jobs", json={"job_id": published_job["id"]}, headers=submitted_talent["headers"])

        resp = client.delete(f"/api/jobs/{published_job['id']}", headers=recruiter["headers"])
        assert resp.status_code == 200
        assert db.job.find_unique({"id": published_job["id"]}) is None
        assert db.application.count({"job_id": published_job["id"]}) == 0
        assert db.saved_job.count({"job_id": published_job["id"]}) == 0

    def test_admin_can_delete(self, client, published_job):
        admin = make_admin("QUALITY_ADMIN")
        assert client.delete(f"/api/jobs/{published_job['id']}", headers=admin["headers"]).status_code == 200

    def test_talent_cannot_delete(self, client, talent, published_job):
        assert client.delete(f"/api/jobs/{published_job['id']}", headers=talent["headers"]).status_code == 403


class TestMatching:
    def test_matched_by_skill_and_headline(self, client, recruiter, submitted_talent, skills):
        create_job(client, recruiter, title="Python API Developer", skill_ids=[skills[0]["id"], skills[1]["id"]])
        create_job(client, recruiter, title="Backend Developer")
        create_job(client, recruiter, title="Graphic Designer")

        resp = client.get("/api/jobs/matched", headers=submitted_talent["headers"])
        assert resp.status_code == 200
        jobs = resp.json()["jobs"]
        assert [j["title"] for j in jobs] == ["Python API Developer", "Backend Developer"]
        # 2 shared skills + "python" + "api"
        assert jobs[0]["match_count"] == 4
        assert jobs[1]["match_count"] == 1

    def test_matched_empty_without_skills_or_headline(self, client, recruiter, talent):
        create_job(client, recruiter)
        body = client.get("/api/jobs/matched", headers=talent["headers"]).json()
        assert body["jobs"] == []

    def test_best_match_requires_ready_profile(self, client, recruiter, submitted_talent, skills):
        create_job(client, recruiter, title="Python API Developer", skill_ids=[s["id"] for s in skills],
                   salary_min=40, salary_max=50)
        create_job(client, recruiter, title="Graphic Designer")

        assert client.get("/api/candidate/jobs/best-match", headers=submitted_talent["headers"]).json() == []

        client.get("/api/candidate/profile/check", headers=submitted_talent["headers"])
        jobs = client.get("/api/candidate/jobs/best-match", headers=submitted_talent["headers"]).json()
        assert [j["title"] for j in jobs] == ["Python API Developer", "Graphic Designer"]
        assert jobs[0]["match_score"] > jobs[1]["match_score"]

    def test_best_match_skips_applied_jobs(self, client, recruiter, submitted_talent, skills):
        job = create_job(client, recruiter)
        client.get("/api/candidate/profile/check", headers=submitted_talent["headers"])
        client.post("/api/applications", json={"job_id": job["id"]}, headers=submitted_talent["headers"])
        assert client.get("/api/candidate/jobs/best-match", headers=submitted_talent["headers"]).json() == []

    def test_skill_links_loaded_in_batches(self, client, recruiter, submitted_talent, skills, monkeypatch):
        for i in range(5):
            create_job(client, recruiter, title=f"Role {i}", skill_ids=[skills[i % 3]["id"]])
        client.get("/api/candidate/profile/check", headers=submitted_talent["headers"])

        calls = []
        original = db.job_skill.find_many

        def counting_find_many(*args, **kwargs):
            calls.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(db.job_skill, "find_many", counting_find_many)

        matched = client.get("/api/jobs/matched", headers=submitted_talent["headers"]).json()
        assert len(matched["jobs"]) == 5
        assert all(j["match_count"] == 1 for j in matched["jobs"])
        # one lookup for scoring, one for the serialized skill lists
        assert len(calls) <= 2

        calls.clear()
        best = client.get("/api/candidate/jobs/best-match", headers=submitted_talent["headers"]).json()
        assert len(best) == 5
        assert len(calls) <= 2
