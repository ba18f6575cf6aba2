"""
Shared helpers for route handlers - pagination and response shaping.
"""

import math
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException
from sqlalchemy import delete, update

from monera.db import schema
from monera.db.postgres import execute_raw_sql, get_db_session
from monera.db.repository import db
from monera.schemas.schemas import (
    ApplicationJobSummary, ApplicationResponse, CompanySummary, JobResponse,
    Pagination, RecruiterSummary, SkillResponse, UserSummary
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)


def split_ids(values: Optional[List[str]]) -> List[str]:
    """Ids may come as repeated query params or comma-separated."""
    ids = []
    for value in values or []:
        ids.extend(v.strip() for v in value.split(",") if v.strip())
    return ids


def user_summary(user: dict) -> UserSummary:
    return UserSummary(
        id=user["id"],
        email=user["email"],
        role=user["role"],
        status=user["status"],
        full_name=user.get("full_name"),
        avatar_url=user.get("avatar_url"),
        email_verified=bool(user.get("email_verified")),
        onboarding_completed=bool(user.get("onboarding_completed")),
    )


def display_name(user: Optional[dict]) -> Optional[str]:
    if not user:
        return None
    if user.get("full_name"):
        return user["full_name"]
    names = " ".join(p for p in (user.get("first_name"), user.get("last_name")) if p)
    return names or user["email"].split("@")[0]


def validate_skill_ids(skill_ids: Iterable[str]) -> List[str]:
    """Deduplicate, keep only skills that exist."""
    wanted = list(dict.fromkeys(skill_ids))
    if not wanted:
        return []
    found = {row["id"] for row in db.skill.find_many({"id": wanted})}
    return [sid for sid in wanted if sid in found]


def require_skill_ids(skill_ids: Iterable[str]) -> List[str]:
    """Like validate_skill_ids, but unknown ids are a 400."""
    wanted = list(dict.fromkeys(skill_ids))
    valid = validate_skill_ids(wanted)
    if len(valid) != len(wanted):
        raise HTTPException(status_code=400, detail="One or more skills are invalid")
    return valid


def skills_by_owner(link_repo, owner_column: str, owner_ids: List[str]) -> Dict[str, List[SkillResponse]]:
    """Map owner id -> skills for a link table (job_skills / talent_skills)."""
    if not owner_ids:
        return {}
    links = link_repo.find_many({owner_column: owner_ids})
    skill_rows = db.skill.find_many({"id": list({l["skill_id"] for l in links})}, order_by="name") if links else []
    skills = {s["id"]: SkillResponse(id=s["id"], name=s["name"], category=s["category"]) for s in skill_rows}
    result: Dict[str, List[SkillResponse]] = {oid: [] for oid in owner_ids}
    for link in links:
        if link["skill_id"] in skills:
            result[link[owner_column]].append(skills[link["skill_id"]])
    for items in result.values():
        items.sort(key=lambda s: s.name.lower())
    return result


def _company_summaries(company_ids: Iterable[str]) -> Dict[str, CompanySummary]:
    ids = [cid for cid in set(company_ids) if cid]
    if not ids:
        return {}
    return {
        c["id"]: CompanySummary(id=c["id"], name=c["name"], logo_url=c["logo_url"], location=c["location"])
        for c in db.company.find_many({"id": ids})
    }


def serialize_jobs(jobs: List[dict]) -> List[JobResponse]:
    """Attach company, recruiter and skills to job rows (batched lookups)."""
    if not jobs:
        return []
    companies = _company_summaries(j["company_id"] for j in jobs)
    recruiter_ids = list({j["recruiter_id"] for j in jobs})
    recruiters = {
        u["id"]: RecruiterSummary(id=u["id"], full_name=display_name(u), email=u["email"])
        for u in db.user.find_many({"id": recruiter_ids})
    }
    skills = skills_by_owner(db.job_skill, "job_id", [j["id"] for j in jobs])

    return [
        JobResponse(
            **job,
            company=companies.get(job["company_id"]),
            recruiter=recruiters.get(job["recruiter_id"]),
            skills=skills.get(job["id"], []),
        )
        for job in jobs
    ]


def serialize_job(job: dict) -> JobResponse:
    return serialize_jobs([job])[0]


def serialize_applications(applications: List[dict]) -> List[ApplicationResponse]:
    """Attach job, company and candidate name to application rows."""
    if not applications:
        return []
    jobs = {j["id"]: j for j in db.job.find_many({"id": list({a["job_id"] for a in applications})})}
    companies = _company_summaries(j["company_id"] for j in jobs.values())
    candidates = {u["id"]: u for u in db.user.find_many({"id": list({a["candidate_id"] for a in applications})})}

    result = []
    for app in applications:
        job = jobs.get(app["job_id"])
        candidate = candidates.get(app["candidate_id"])
        job_summary = None
        if job:
            job_summary = ApplicationJobSummary(
                id=job["id"], title=job["title"], status=job["status"],
                recruiter_id=job["recruiter_id"], company=companies.get(job["company_id"]),
            )
        result.append(ApplicationResponse(
            **app,
            candidate_name=display_name(candidate),
            candidate_email=candidate["email"] if candidate else None,
            job=job_summary,
        ))
    return result


def find_or_create_company(name: str) -> dict:
    """Reuse a company whose name matches case-insensitively, else create one."""
    name = name.strip()
    rows = execute_raw_sql(
        "SELECT id FROM companies WHERE LOWER(name) = :name ORDER BY created_at LIMIT 1",
        {"name": name.lower()},
    )
    if rows:
        return db.company.find_unique({"id": rows[0]["id"]})
    return db.company.create({"name": name})


def create_role_profile(user: dict, company_id: Optional[str] = None) -> None:
    """TALENT gets a DRAFT talent profile, CLIENT a recruiter profile. Admins get neither."""
    if user["role"] == "TALENT":
        db.talent_profile.create({"user_id": user["id"], "status": "DRAFT"})
    elif user["role"] == "CLIENT":
        db.recruiter_profile.create({"user_id": user["id"], "company_id": company_id})


def delete_job_cascade(job_id: str) -> None:
    """Remove a job with its applications, saved entries and skill links."""
    with get_db_session() as session:
        session.execute(delete(schema.applications).where(schema.applications.c.job_id == job_id))
        session.execute(delete(schema.saved_jobs).where(schema.saved_jobs.c.job_id == job_id))
        session.execute(delete(schema.job_skills).where(schema.job_skills.c.job_id == job_id))
        session.execute(
            update(schema.conversations).where(schema.conversations.c.job_id == job_id).values(job_id=None)
        )
        session.execute(delete(schema.jobs).where(schema.jobs.c.id == job_id))


def delete_user_cascade(user_id: str) -> None:
    """Remove a user with everything hanging off the account. Their jobs go through delete_job_cascade."""
    for job in db.job.find_many({"recruiter_id": user_id}):
        delete_job_cascade(job["id"])

    conversation_ids = [
        row["id"] for row in execute_raw_sql(
            "SELECT id FROM conversations WHERE talent_id = :uid OR recruiter_id = :uid", {"uid": user_id}
        )
    ]
    profile_ids = [p["id"] for p in db.talent_profile.find_many({"user_id": user_id})]

    with get_db_session() as session:
        if conversation_ids:
            session.execute(delete(schema.messages).where(schema.messages.c.conversation_id.in_(conversation_ids)))
            session.execute(delete(schema.conversations).where(schema.conversations.c.id.in_(conversation_ids)))
        if profile_ids:
            session.execute(delete(schema.talent_skills).where(schema.talent_skills.c.talent_id.in_(profile_ids)))
        session.execute(delete(schema.talent_profiles).where(schema.talent_profiles.c.user_id == user_id))
        session.execute(delete(schema.recruiter_profiles).where(schema.recruiter_profiles.c.user_id == user_id))
        session.execute(delete(schema.applications).where(schema.applications.c.candidate_id == user_id))
        session.execute(delete(schema.saved_jobs).where(schema.saved_jobs.c.user_id == user_id))
        session.execute(delete(schema.notifications).where(schema.notifications.c.user_id == user_id))
        session.execute(delete(schema.users).where(schema.users.c.id == user_id))
