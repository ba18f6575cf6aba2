from monera.db.repository import db
from monera.utils import file_upload

from conftest import make_skill, submission


class TestTalentProfile:
    def test_get_new_profile(self, client, talent):
        resp = client.get("/api/user/profile", headers=talent["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "DRAFT"
        assert body["skills"] == []
        assert "password_hash" not in body

    def test_update_personal_and_talent_fields(self, client, talent, skills):
        resp = client.put("/api/user/profile", json={
            "first_name": "Grace",
            "last_name": "Hopper",
            "country": "US",
            "headline": "Compiler engineer",
            "hourly_rate": 80,
            "availability": "Open",
            "skill_ids": [skills[0]["id"], skills[1]["id"]],
        }, headers=talent["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["full_name"] == "Grace Hopper"
        assert body["headline"] == "Compiler engineer"
        assert body["availability"] == "Open"
        assert [s["name"] for s in body["skills"]] == ["FastAPI", "Python"]
        assert body["profile_completion"] > 0

    def test_invalid_url_rejected(self, client, talent):
        resp = client.put("/api/user/profile", json={"portfolio_url": "not a url"}, headers=talent["headers"])
        assert resp.status_code == 422

    def test_unknown_skill(self, client, talent):
        resp = client.put("/api/user/profile", json={"skill_ids": ["missing"]}, headers=talent["headers"])
        assert resp.status_code == 400

    def test_unknown_skill_leaves_profile_untouched(self, client, talent):
        resp = client.put("/api/user/profile", json={
            "first_name": "Changed",
            "headline": "Should not stick",
            "skill_ids": ["nope"],
        }, headers=talent["headers"])
        assert resp.status_code == 400

        user = db.user.find_unique({"id": talent["id"]})
        assert user["first_name"] != "Changed"
        profile = db.talent_profile.find_first({"user_id": talent["id"]})
        assert profile["headline"] is None

    def test_client_cannot_set_talent_fields(self, client, recruiter):
        resp = client.put("/api/user/profile", json={"headline": "Hi"}, headers=recruiter["headers"])
        assert resp.status_code == 403


class TestSubmitProfile:
    def test_submit(self, client, talent, skills):
        resp = client.post(
            "/api/user/profile/submit",
            json=submission([s["id"] for s in skills]),
            headers=talent["headers"],
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "SUBMITTED"
        assert body["submitted_at"] is not None
        assert body["full_name"] == "Ada Lovelace"
        assert body["headline"] == "Senior Python Backend API Engineer"
        assert body["profile_completion"] == 100
        assert len(body["skills"]) == 3

    def test_resubmit_rejected(self, client, submitted_talent, skills):
        resp = client.post(
            "/api/user/profile/submit",
            json=submission([s["id"] for s in skills]),
            headers=submitted_talent["headers"],
        )
        assert resp.status_code == 400

    def test_resubmit_after_revision(self, client, submitted_talent, skills):
        db.talent_profile.update({"id": submitted_talent["profile_id"]}, {"status": "NEED_REVISION", "revision_notes": "Add video"})
        resp = client.post(
            "/api/user/profile/submit",
            json=submission([s["id"] for s in skills]),
            headers=submitted_talent["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["revision_notes"] is None

    def test_requires_video_and_skills(self, client, talent, skills):
        body = submission([s["id"] for s in skills], intro_video_url="")
        assert client.post("/api/user/profile/submit", json=body, headers=talent["headers"]).status_code == 422
        body = submission([])
        assert client.post("/api/user/profile/submit", json=body, headers=talent["headers"]).status_code == 422

    def test_partial_completion(self, client, talent):
        skill = make_skill("Go")
        body = submission([skill["id"]], portfolio_url=None, hourly_rate=None, availability=None)
        for key in ("portfolio_url", "linked_in_url", "github_url"):
            body.pop(key)
        resp = client.post("/api/user/profile/submit", json=body, headers=talent["headers"])
        assert resp.status_code == 200
        # 16 fields, linked_in/github/portfolio/rate/availability missing
        assert resp.json()["profile_completion"] == 69

    def test_clients_cannot_submit(self, client, recruiter, skills):
        resp = client.post(
            "/api/user/profile/submit",
            json=submission([s["id"] for s in skills]),
            headers=recruiter["headers"],
        )
        assert resp.status_code == 403


class TestExperience:
    def test_empty_by_default(self, client, talent):
        resp = client.get("/api/user/profile/experience", headers=talent["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"work_history": [], "education": [], "languages": [], "certifications": []}

    def test_replace_lists(self, client, talent):
        resp = client.put("/api/user/profile/experience", json={
            "work_history": [{"title": "Backend Engineer", "company": "Initech", "start_date": "2019-01"}],
            "languages": [{"name": "English", "proficiency": "Fluent"}, {"name": "Bahasa"}],
        }, headers=talent["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["work_history"][0]["company"] == "Initech"
        assert [l["proficiency"] for l in body["languages"]] == ["Fluent", "Conversational"]

        stored = client.get("/api/user/profile/experience", headers=talent["headers"]).json()
        assert stored == body
        profile = db.talent_profile.find_first({"user_id": talent["id"]})
        assert profile["languages"][0]["name"] == "English"

    def test_omitted_lists_are_kept(self, client, talent):
        client.put("/api/user/profile/experience", json={
            "education": [{"institution": "MIT", "degree": "BSc", "field": "CS"}],
            "certifications": [{"name": "CKA", "issuer": "CNCF"}],
        }, headers=talent["headers"])
        body = client.put("/api/user/profile/experience", json={"certifications": []},
                          headers=talent["headers"]).json()
        assert body["education"][0]["institution"] == "MIT"
        assert body["certifications"] == []

    def test_item_validation(self, client, talent):
        resp = client.put("/api/user/profile/experience", json={"work_history": [{"company": "No title"}]},
                          headers=talent["headers"])
        assert resp.status_code == 422
        resp = client.put("/api/user/profile/experience", json={"certifications": [{"name": "X", "url": "nope"}]},
                          headers=talent["headers"])
        assert resp.status_code == 422

    def test_talent_only(self, client, recruiter):
        assert client.get("/api/user/profile/experience", headers=recruiter["headers"]).status_code == 403
        resp = client.put("/api/user/profile/experience", json={"languages": []}, headers=recruiter["headers"])
        assert resp.status_code == 403


class TestUserState:
    def test_draft(self, client, talent):
        body = client.get("/api/user/state", headers=talent["headers"]).json()
        assert body["status"] == "DRAFT"
        assert body["can_access_jobs"] is False
        assert body["redirect_path"] == "/user/onboarding"

    def test_submitted(self, client, submitted_talent):
        body = client.get("/api/user/state", headers=submitted_talent["headers"]).json()
        assert body["label"] == "Under Review"
        assert body["can_access_jobs"] is True
        assert body["redirect_path"] == "/user/status"

    def test_client(self, client, recruiter):
        body = client.get("/api/user/state", headers=recruiter["headers"]).json()
        assert body["redirect_path"] == "/dashboard"
        assert body["can_access_jobs"] is True

    def test_onboarding_complete(self, client, talent):
        client.post("/api/user/onboarding-complete", headers=talent["headers"])
        assert client.get("/api/user/state", headers=talent["headers"]).json()["onboarding_completed"] is True


class TestReadinessCheck:
    def test_ready_after_submission(self, client, submitted_talent):
        resp = client.get("/api/candidate/profile/check", headers=submitted_talent["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["is_ready"] is True
        assert body["completion"] == 100

        profile = db.talent_profile.find_unique({"id": submitted_talent["profile_id"]})
        assert profile["is_profile_ready"] is True
        assert profile["last_validated_at"] is not None

    def test_fresh_profile_not_ready(self, client, talent):
        body = client.get("/api/candidate/profile/check", headers=talent["headers"]).json()
        assert body["is_ready"] is False
        assert "Skills (min 3)" in body["missing_fields"]

    def test_talent_only(self, client, recruiter):
        assert client.get("/api/candidate/profile/check", headers=recruiter["headers"]).status_code == 403


class TestUploads:
    def test_avatar(self, client, talent):
        resp = client.post(
            "/api/user/avatar",
            files={"file": ("me.png", b"\x89PNG fake image bytes", "image/png")},
            headers=talent["headers"],
        )
        assert resp.status_code == 200
        url = resp.json()["url"]
        assert url.startswith("/uploads/avatars/") and url.endswith(".png")
        assert db.user.find_unique({"id": talent["id"]})["avatar_url"] == url
        assert client.get(url).status_code == 200

    def test_wrong_type(self, client, talent):
        resp = client.post(
            "/api/user/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=talent["headers"],
        )
        assert resp.status_code == 400

    def test_video_talent_only(self, client, recruiter):
        resp = client.post(
            "/api/user/video",
            files={"file": ("intro.mp4", b"data", "video/mp4")},
            headers=recruiter["headers"],
        )
        assert resp.status_code == 403

    def test_avatar_over_limit(self, client, talent, monkeypatch):
        monkeypatch.setattr(file_upload.settings, "max_image_size_mb", 1)
        resp = client.post(
            "/api/user/avatar",
            files={"file": ("big.png", b"x" * (1024 * 1024 + 10), "image/png")},
            headers=talent["headers"],
        )
        assert resp.status_code == 413
        assert db.user.find_unique({"id": talent["id"]})["avatar_url"] is None

    def test_video_over_limit(self, client, talent, monkeypatch):
        monkeypatch.setattr(file_upload.settings, "max_video_size_mb", 1)
        resp = client.post(
            "/api/user/video",
            files={"file": ("intro.mp4", b"x" * (2 * 1024 * 1024), "video/mp4")},
            headers=talent["headers"],
        )
        assert resp.status_code == 413

    def test_empty_file(self, client, talent):
        resp = client.post(
            "/api/user/avatar",
            files={"file": ("me.png", b"", "image/png")},
            headers=talent["headers"],
        )
        assert resp.status_code == 400


class TestRecruiterProfile:
    def test_get_and_update(self, client, recruiter):
        body = client.get("/api/profile/recruiter", headers=recruiter["headers"]).json()
        assert body["company_name"] == "Acme Corp"

        resp = client.put("/api/profile/recruiter", json={"first_name": "Rita", "last_name": "Cruz", "position": "CTO"},
                          headers=recruiter["headers"])
        assert resp.status_code == 200
        assert resp.json()["position"] == "CTO"

    def test_partial_name_keeps_other_part(self, client, recruiter):
        client.put("/api/profile/recruiter", json={"first_name": "Ann", "last_name": "Lee"}, headers=recruiter["headers"])
        resp = client.put("/api/profile/recruiter", json={"first_name": "Anna"}, headers=recruiter["headers"])
        assert resp.status_code == 200
        assert resp.json()["last_name"] == "Lee"
        assert db.user.find_unique({"id": recruiter["id"]})["full_name"] == "Anna Lee"

    def test_setup_links_new_company(self, client, recruiter):
        resp = client.post("/api/client/profile/setup", json={"company_name": "Globex", "industry": "Energy"},
                           headers=recruiter["headers"])
        assert resp.status_code == 200
        assert resp.json()["company_name"] == "Globex"
        company = db.company.find_unique({"id": resp.json()["company_id"]})
        assert company["industry"] == "Energy"

    def test_talent_forbidden(self, client, talent):
        assert client.get("/api/profile/recruiter", headers=talent["headers"]).status_code == 403
