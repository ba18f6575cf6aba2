"""
Job Routes

GET /jobs - List jobs with filters (published, or own jobs with recruiter_id=me)
POST /jobs - Create job (client or admin), starts as DRAFT
GET /jobs/matched - Jobs matching the talent's skills/headline (talent only)
GET /jobs/{job_id} - Job details
PUT /jobs/{job_id} - Update job (owner only)
DELETE /jobs/{job_id} - Delete job (owner or admin)
POST /jobs/{job_id}/publish - Publish a DRAFT or CLOSED job (owner only)
GET /candidate/jobs/best-match - Scored job recommendations (talent only)
"""

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user, get_current_talent, get_optional_user, require_roles
from monera.core.rbac import ADMIN_ROLES, is_admin
from monera.db.postgres import execute_raw_sql, in_clause
from monera.db.repository import db
from monera.db.schema import utcnow
from monera.api.helpers import (
    delete_job_cascade, paginate, serialize_job, serialize_jobs, split_ids, validate_skill_ids
)
from monera.services.profile_service import get_profile_service
from monera.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, JobListResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])

PUBLISHABLE_FROM = ("DRAFT", "CLOSED")
HEADLINE_KEYWORD_LIMIT = 5


def _fetch_ordered(job_ids: List[str]) -> List[dict]:
    """Load typed job rows keeping the given order."""
    if not job_ids:
        return []
    rows = {j["id"]: j for j in db.job.find_many({"id": job_ids})}
    return [rows[jid] for jid in job_ids if jid in rows]


def _get_owned_job(job_id: str, user: dict) -> dict:
    job = db.job.find_unique({"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job["recruiter_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail="You can only modify your own jobs")
    return job


def _replace_job_skills(job_id: str, skill_ids: List[str]) -> None:
    valid = validate_skill_ids(skill_ids)
    db.job_skill.replace({"job_id": job_id}, [{"job_id": job_id, "skill_id": sid} for sid in valid])


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    query: Optional[str] = Query(None, description="Search in title and description"),
    location: Optional[str] = Query(None),
    remote: Optional[bool] = Query(None),
    salary_min: Optional[int] = Query(None, ge=0),
    salary_max: Optional[int] = Query(None, ge=0),
    skill_ids: Optional[List[str]] = Query(None),
    company_id: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    recruiter_id: Optional[str] = Query(None, description="'me' lists your own jobs in every status"),
    user: Optional[dict] = Depends(get_optional_user),
):
    """List jobs with filters and pagination, newest first."""
    sql = " FROM jobs j WHERE 1=1"
    params = {}

    if recruiter_id == "me":
        if not user:
            raise HTTPException(status_code=401, detail="Not authenticated")
        sql += " AND j.recruiter_id = :recruiter_id"
        params["recruiter_id"] = user["user_id"]
        if status:
            sql += " AND j.status = :status"
            params["status"] = status.upper()
    else:
        if recruiter_id:
            sql += " AND j.recruiter_id = :recruiter_id"
            params["recruiter_id"] = recruiter_id
        # Only admins may look past published jobs
        wanted = (status or "PUBLISHED").upper()
        if not (user and is_admin(user["role"])):
            wanted = "PUBLISHED"
        sql += " AND j.status = :status"
        params["status"] = wanted

    if query:
        sql += " AND (LOWER(j.title) LIKE :query OR LOWER(j.description) LIKE :query)"
        params["query"] = f"%{query.lower()}%"
    if location:
        sql += " AND LOWER(j.location) LIKE :location"
        params["location"] = f"%{location.lower()}%"
    if remote is not None:
        sql += " AND j.remote = :remote"
        params["remote"] = remote
    if salary_min is not None:
        sql += " AND (j.salary_max IS NULL OR j.salary_max >= :salary_min)"
        params["salary_min"] = salary_min
    if salary_max is not None:
        sql += " AND (j.salary_min IS NULL OR j.salary_min <= :salary_max)"
        params["salary_max"] = salary_max
    ids = split_ids(skill_ids)
    if ids:
        fragment, skill_params = in_clause("sid", ids)
        sql += f" AND j.id IN (SELECT job_id FROM job_skills WHERE skill_id IN {fragment})"
        params.update(skill_params)
    if company_id:
        sql += " AND j.company_id = :company_id"
        params["company_id"] = company_id
    if category:
        sql += " AND j.category = :category"
        params["category"] = category

    total = execute_raw_sql("SELECT COUNT(*) AS total" + sql, params)[0]["total"]
    rows = execute_raw_sql(
        "SELECT j.id" + sql + " ORDER BY j.created_at DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )

    return JobListResponse(
        jobs=serialize_jobs(_fetch_ordered([r["id"] for r in rows])),
        pagination=paginate(page, limit, total),
    )


@router.post("/jobs", response_model=JobResponse, status_code=201)
async def create_job(payload: JobCreate, user: dict = Depends(require_roles("CLIENT", *ADMIN_ROLES))):
    """Create a job posting as DRAFT. Company defaults to the recruiter's company."""
    data = payload.model_dump(mode="json", exclude={"skill_ids"})

    if data["company_id"]:
        if not db.company.find_unique({"id": data["company_id"]}):
            raise HTTPException(status_code=400, detail="Company not found")
    else:
        recruiter = db.recruiter_profile.find_unique({"user_id": user["user_id"]})
        data["company_id"] = recruiter["company_id"] if recruiter else None

    job = db.job.create({**data, "status": "DRAFT", "recruiter_id": user["user_id"]})
    if payload.skill_ids:
        _replace_job_skills(job["id"], payload.skill_ids)

    logger.info("Job %s created by %s", job["id"], user["user_id"])
    return serialize_job(job)


@router.get("/jobs/matched", response_model=JobListResponse)
async def matched_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_talent),
):
    """Published jobs sharing a skill with the talent or a headline keyword in the title."""
    profile = db.talent_profile.find_unique({"user_id": user["user_id"]})
    if not profile:
        return JobListResponse(jobs=[], pagination=paginate(page, limit, 0))

    service = get_profile_service()
    talent_skills = set(service.get_talent_skill_ids(profile["id"]))
    keywords = [
        k for k in re.split(r"[\s/-]+", (profile["headline"] or "").lower()) if len(k) >= 3
    ][:HEADLINE_KEYWORD_LIMIT]

    if not talent_skills and not keywords:
        return JobListResponse(jobs=[], pagination=paginate(page, limit, 0))

    # Candidates in one query: any shared skill or a keyword in the title
    conditions = []
    params = {}
    if talent_skills:
        fragment, params = in_clause("sid", talent_skills)
        conditions.append(f"j.id IN (SELECT job_id FROM job_skills WHERE skill_id IN {fragment})")
    for i, keyword in enumerate(keywords):
        conditions.append(f"LOWER(j.title) LIKE :kw{i}")
        params[f"kw{i}"] = f"%{keyword}%"
    rows = execute_raw_sql(
        f"SELECT j.id FROM jobs j WHERE j.status = 'PUBLISHED' AND ({' OR '.join(conditions)}) "
        "ORDER BY j.created_at DESC",
        params,
    )
    candidates = _fetch_ordered([r["id"] for r in rows])

    shared_counts = {job["id"]: 0 for job in candidates}
    if candidates and talent_skills:
        for link in db.job_skill.find_many({"job_id": list(shared_counts), "skill_id": list(talent_skills)}):
            shared_counts[link["job_id"]] += 1

    scored = []
    for job in candidates:
        title = job["title"].lower()
        title_hits = sum(1 for k in keywords if k in title)
        count = shared_counts[job["id"]] + title_hits
        if count:
            scored.append((count, job))

    # stable sort keeps newest-first among equal counts
    scored.sort(key=lambda item: item[0], reverse=True)
    window = scored[(page - 1) * limit: page * limit]

    jobs = serialize_jobs([job for _, job in window])
    for job, (count, _) in zip(jobs, window):
        job.match_count = count
    return JobListResponse(jobs=jobs, pagination=paginate(page, limit, len(scored)))


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Published jobs are public; others only for their owner and admins."""
    job = db.job.find_unique({"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    if job["status"] != "PUBLISHED":
        allowed = user and (user["user_id"] == job["recruiter_id"] or is_admin(user["role"]))
        if not allowed:
            raise HTTPException(status_code=404, detail="Job not found")

    return serialize_job(job)


@router.put("/jobs/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, payload: JobUpdate, user: dict = Depends(get_current_user)):
    """Update own job. Skills are replaced when provided."""
    job = _get_owned_job(job_id, user)
    data = payload.model_dump(mode="json", exclude_unset=True, exclude={"skill_ids"})

    salary_min = data.get("salary_min", job["salary_min"])
    salary_max = data.get("salary_max", job["salary_max"])
    if salary_min is not None and salary_max is not None and salary_max < salary_min:
        raise HTTPException(status_code=400, detail="salary_max must be greater than or equal to salary_min")

    if data.get("company_id") and not db.company.find_unique({"id": data["company_id"]}):
        raise HTTPException(status_code=400, detail="Company not found")

    if data.get("status") == "PUBLISHED" and job["status"] != "PUBLISHED":
        data["published_at"] = utcnow()

    if data:
        job = db.job.update({"id": job_id}, data)
    if payload.skill_ids is not None:
        _replace_job_skills(job_id, payload.skill_ids)

    return serialize_job(job)


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, user: dict = Depends(get_current_user)):
    job = db.job.find_unique({"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job["recruiter_id"] != user["user_id"] and not is_admin(user["role"]):
        raise HTTPException(status_code=403, detail="You can only delete your own jobs")

    delete_job_cascade(job_id)
    logger.info("Job %s deleted by %s", job_id, user["user_id"])
    return MessageResponse(message="Job deleted successfully")


@router.post("/jobs/{job_id}/publish", response_model=JobResponse)
async def publish_job(job_id: str, user: dict = Depends(get_current_user)):
    job = _get_owned_job(job_id, user)
    if job["status"] not in PUBLISHABLE_FROM:
        raise HTTPException(status_code=400, detail=f"Cannot publish a job with status {job['status']}")

    job = db.job.update({"id": job_id}, {"status": "PUBLISHED", "published_at": utcnow()})
    return serialize_job(job)


@router.get("/candidate/jobs/best-match", response_model=List[JobResponse])
async def best_match_jobs(
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_talent),
):
    """Scored recommendations; empty until the profile passes the readiness check."""
    scored = get_profile_service().get_best_match_jobs(user["user_id"], limit)
    return serialize_jobs(scored)
