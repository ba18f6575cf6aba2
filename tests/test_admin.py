import pytest

from monera.db.repository import db

from conftest import create_job, make_admin, make_skill


def audit_actions():
    return [log["action"] for log in db.audit_log.find_many(order_by="created_at")]


class TestTalentReview:
    def test_queue_lists_submitted(self, client, super_admin, submitted_talent):
        body = client.get("/api/admin/talent-review", headers=super_admin["headers"]).json()
        assert body["total"] == 1
        item = body["talents"][0]
        assert item["id"] == submitted_talent["profile_id"]
        assert item["email"] == "talent@example.com"
        assert item["headline"] == "Senior Python Backend API Engineer"
        assert [s["name"] for s in item["skills"]] == ["FastAPI", "PostgreSQL", "Python"]

    def test_detail(self, client, super_admin, submitted_talent):
        resp = client.get(f"/api/admin/talent-review/{submitted_talent['profile_id']}", headers=super_admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["email"] == "talent@example.com"

    def test_approve(self, client, super_admin, submitted_talent):
        resp = client.post(
            f"/api/admin/talent-review/{submitted_talent['profile_id']}/approve", headers=super_admin["headers"]
        )
        assert resp.status_code == 200

        profile = db.talent_profile.find_unique({"id": submitted_talent["profile_id"]})
        assert profile["status"] == "APPROVED"
        assert profile["is_profile_ready"] is True
        assert db.notification.find_first({"user_id": submitted_talent["id"], "title": "Profile approved"})
        assert audit_actions() == ["TALENT_APPROVED"]

    def test_reject_needs_reason(self, client, super_admin, submitted_talent):
        url = f"/api/admin/talent-review/{submitted_talent['profile_id']}/reject"
        assert client.post(url, json={}, headers=super_admin["headers"]).status_code == 422

        resp = client.post(url, json={"reason": "Incomplete portfolio"}, headers=super_admin["headers"])
        assert resp.status_code == 200
        assert db.talent_profile.find_unique({"id": submitted_talent["profile_id"]})["status"] == "REJECTED"
        log = db.audit_log.find_first({"action": "TALENT_REJECTED"})
        assert log["details"] == {"reason": "Incomplete portfolio"}

    def test_request_revision_then_resubmit_is_reviewable(self, client, super_admin, submitted_talent):
        url = f"/api/admin/talent-review/{submitted_talent['profile_id']}/request-revision"
        resp = client.post(url, json={"notes": "Add a portfolio link"}, headers=super_admin["headers"])
        assert resp.status_code == 200

        profile = db.talent_profile.find_unique({"id": submitted_talent["profile_id"]})
        assert profile["status"] == "NEED_REVISION"
        assert profile["revision_notes"] == "Add a portfolio link"

        # Not SUBMITTED any more
        again = client.post(url, json={"notes": "Again"}, headers=super_admin["headers"])
        assert again.status_code == 400

    def test_draft_cannot_be_reviewed(self, client, super_admin, talent):
        profile = db.talent_profile.find_first({"user_id": talent["id"]})
        resp = client.post(f"/api/admin/talent-review/{profile['id']}/approve", headers=super_admin["headers"])
        assert resp.status_code == 400

    def test_unknown_profile(self, client, super_admin):
        assert client.post("/api/admin/talent-review/missing/approve", headers=super_admin["headers"]).status_code == 404

    @pytest.mark.parametrize("role,expected", [
        ("QUALITY_ADMIN", 200), ("SUPPORT_ADMIN", 403), ("ANALYST", 403),
    ])
    def test_review_roles(self, client, role, expected):
        admin = make_admin(role)
        assert client.get("/api/admin/talent-review", headers=admin["headers"]).status_code == expected

    def test_non_admin_forbidden(self, client, talent):
        assert client.get("/api/admin/talent-review", headers=talent["headers"]).status_code == 403


class TestUserManagement:
    def test_list_and_search(self, client, super_admin, talent, recruiter):
        body = client.get("/api/admin/users?role=client", headers=super_admin["headers"]).json()
        assert [u["email"] for u in body["users"]] == ["recruiter@acme.io"]

        body = client.get("/api/admin/users?query=TALENT@", headers=super_admin["headers"]).json()
        assert body["pagination"]["total"] == 1
        assert body["users"][0]["talent_status"] == "DRAFT"

    def test_create_client_with_company(self, client, super_admin):
        resp = client.post("/api/admin/users", json={
            "email": "New.Client@Globex.io",
            "password": "Secret123!",
            "role": "CLIENT",
            "company_name": "Globex",
        }, headers=super_admin["headers"])
        assert resp.status_code == 201
        user = resp.json()
        assert user["email"] == "new.client@globex.io"
        assert user["email_verified"] is True
        assert user["full_name"] == "Globex"

        recruiter = db.recruiter_profile.find_unique({"user_id": user["id"]})
        assert db.company.find_unique({"id": recruiter["company_id"]})["name"] == "Globex"
        assert "USER_CREATED" in audit_actions()

        login = client.post("/api/auth/login", json={"email": "new.client@globex.io", "password": "Secret123!"})
        assert login.status_code == 200

    def test_create_duplicate(self, client, super_admin, talent):
        resp = client.post("/api/admin/users", json={
            "email": "talent@example.com", "password": "Secret123!", "role": "TALENT",
        }, headers=super_admin["headers"])
        assert resp.status_code == 409

    def test_only_super_admin_creates(self, client):
        quality = make_admin("QUALITY_ADMIN")
        resp = client.post("/api/admin/users", json={
            "email": "x@example.com", "password": "Secret123!", "role": "TALENT",
        }, headers=quality["headers"])
        assert resp.status_code == 403

    def test_change_role_creates_profile(self, client, super_admin, talent):
        resp = client.put(f"/api/admin/users/{talent['id']}/role", json={"role": "CLIENT"},
                          headers=super_admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["role"] == "CLIENT"
        assert db.recruiter_profile.find_unique({"user_id": talent["id"]}) is not None

        log = db.audit_log.find_first({"action": "USER_ROLE_CHANGED"})
        assert log["details"] == {"from": "TALENT", "to": "CLIENT"}

    def test_cannot_change_own_role(self, client, super_admin):
        resp = client.put(f"/api/admin/users/{super_admin['id']}/role", json={"role": "ANALYST"},
                          headers=super_admin["headers"])
        assert resp.status_code == 400

    def test_suspend_blocks_access(self, client, talent):
        support = make_admin("SUPPORT_ADMIN")
        resp = client.post(f"/api/admin/users/{talent['id']}/suspend", json={"reason": "Spam"},
                           headers=support["headers"])
        assert resp.status_code == 200
        assert client.get("/api/user/profile", headers=talent["headers"]).status_code == 403

        resp = client.post(f"/api/admin/users/{talent['id']}/unsuspend", headers=support["headers"])
        assert resp.status_code == 200
        assert client.get("/api/user/profile", headers=talent["headers"]).status_code == 200
        assert audit_actions() == ["USER_SUSPENDED", "USER_UNSUSPENDED"]

    def test_cannot_suspend_self(self, client, super_admin):
        resp = client.post(f"/api/admin/users/{super_admin['id']}/suspend", headers=super_admin["headers"])
        assert resp.status_code == 400

    def test_delete_cascades(self, client, super_admin, recruiter, submitted_talent):
        job = create_job(client, recruiter)
        client.post("/api/applications", json={"job_id": job["id"]}, headers=submitted_talent["headers"])

        resp = client.delete(f"/api/admin/users/{recruiter['id']}", headers=super_admin["headers"])
        assert resp.status_code == 200
        assert db.user.find_unique({"id": recruiter["id"]}) is None
        assert db.job.find_unique({"id": job["id"]}) is None
        assert db.application.count() == 0
        assert db.recruiter_profile.count({"user_id": recruiter["id"]}) == 0

    def test_cannot_delete_self(self, client, super_admin):
        resp = client.delete(f"/api/admin/users/{super_admin['id']}", headers=super_admin["headers"])
        assert resp.status_code == 400


class TestAdminJobsAndApplications:
    def test_close_job(self, client, super_admin, published_job):
        resp = client.put(f"/api/admin/jobs/{published_job['id']}/status", json={"status": "CLOSED"},
                          headers=super_admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["status"] == "CLOSED"
        assert "JOB_STATUS_CHANGED" in audit_actions()

    def test_list_jobs_by_status(self, client, super_admin, recruiter, published_job):
        create_job(client, recruiter, publish=False, title="Draft role")
        body = client.get("/api/admin/jobs?status=draft", headers=super_admin["headers"]).json()
        assert [j["title"] for j in body["jobs"]] == ["Draft role"]

    def test_admin_overrides_final_status(self, client, super_admin, recruiter, submitted_talent, published_job):
        app = client.post("/api/applications", json={"job_id": published_job["id"]},
                          headers=submitted_talent["headers"]).json()
        client.put(f"/api/applications/{app['id']}", json={"status": "REJECTED"}, headers=recruiter["headers"])

        resp = client.put(f"/api/admin/applications/{app['id']}", json={"status": "REVIEWING"},
                          headers=super_admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["status"] == "REVIEWING"
        assert db.notification.count({"user_id": submitted_talent["id"], "type": "application"}) == 2

    def test_analyst_reads_but_cannot_update(self, client, submitted_talent, published_job):
        app = client.post("/api/applications", json={"job_id": published_job["id"]},
                          headers=submitted_talent["headers"]).json()
        analyst = make_admin("ANALYST")
        assert client.get("/api/admin/applications", headers=analyst["headers"]).json()["pagination"]["total"] == 1
        resp = client.put(f"/api/admin/applications/{app['id']}", json={"status": "ACCEPTED"},
                          headers=analyst["headers"])
        assert resp.status_code == 403


class TestAdminSkills:
    def test_create_duplicate_case_insensitive(self, client, super_admin):
        make_skill("Python")
        resp = client.post("/api/admin/skills", json={"name": "python"}, headers=super_admin["headers"])
        assert resp.status_code == 409

    def test_delete_removes_links(self, client, super_admin, submitted_talent, skills):
        resp = client.delete(f"/api/admin/skills/{skills[0]['id']}", headers=super_admin["headers"])
        assert resp.status_code == 200
        assert db.talent_skill.count({"skill_id": skills[0]["id"]}) == 0
        assert db.talent_skill.count() == 2
        assert "SKILL_DELETED" in audit_actions()


class TestStatsAndReports:
    def test_user_stats(self, client, super_admin, talent, recruiter):
        body = client.get("/api/admin/stats/users", headers=super_admin["headers"]).json()
        assert body["count"] == 3
        assert body["by_role"] == {"SUPER_ADMIN": 1, "TALENT": 1, "CLIENT": 1}

    def test_job_stats(self, client, super_admin, recruiter, published_job):
        create_job(client, recruiter, publish=False)
        assert client.get("/api/admin/stats/jobs", headers=super_admin["headers"]).json() == {"total": 2, "active": 1}

    def test_stats_roles(self, client):
        support = make_admin("SUPPORT_ADMIN")
        assert client.get("/api/admin/stats/jobs", headers=support["headers"]).status_code == 403
        assert client.get("/api/admin/stats/talent-requests", headers=support["headers"]).status_code == 200

        analyst = make_admin("ANALYST")
        assert client.get("/api/admin/stats/companies", headers=analyst["headers"]).status_code == 200
        assert client.get("/api/admin/stats/talent-requests", headers=analyst["headers"]).status_code == 403

    def test_companies_with_counts(self, client, super_admin, recruiter, published_job):
        body = client.get("/api/admin/companies", headers=super_admin["headers"]).json()
        company = body["companies"][0]
        assert company["name"] == "Acme Corp"
        assert company["job_count"] == 1
        assert company["recruiter_count"] == 1

    def test_audit_log_shows_admin_email(self, client, super_admin, talent):
        client.post(f"/api/admin/users/{talent['id']}/suspend", headers=super_admin["headers"])
        body = client.get("/api/admin/audit-logs", headers=super_admin["headers"]).json()
        assert body["logs"][0]["action"] == "USER_SUSPENDED"
        assert body["logs"][0]["admin_email"] == super_admin["email"]


class TestSettings:
    def test_update_and_read(self, client, super_admin):
        resp = client.put("/api/admin/settings", json={"maintenance_mode": True, "max_jobs": 10},
                          headers=super_admin["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"maintenance_mode": True, "max_jobs": 10}

        client.put("/api/admin/settings", json={"max_jobs": 20}, headers=super_admin["headers"])
        body = client.get("/api/admin/settings", headers=super_admin["headers"]).json()
        assert body == {"maintenance_mode": True, "max_jobs": 20}
        assert audit_actions() == ["SETTINGS_UPDATED", "SETTINGS_UPDATED"]

    def test_empty_update(self, client, super_admin):
        assert client.put("/api/admin/settings", json={}, headers=super_admin["headers"]).status_code == 400

    def test_super_admin_only(self, client):
        quality = make_admin("QUALITY_ADMIN")
        assert client.get("/api/admin/settings", headers=quality["headers"]).status_code == 403
