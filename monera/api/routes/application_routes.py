"""
Application Routes

GET /applications - List applications (scoped by role)
POST /applications - Apply to a published job (talent only)
GET /applications/{application_id} - Application details
PUT /applications/{application_id} - Update status/notes (job owner, admins) or cover letter (candidate)
DELETE /applications/{application_id} - Withdraw a pending application (candidate)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user, get_current_talent
from monera.core.rbac import QUALITY_ADMIN, SUPER_ADMIN, SUPPORT_ADMIN, is_admin
from monera.db.postgres import execute_raw_sql
from monera.db.repository import db
from monera.api.helpers import display_name, paginate, serialize_applications
from monera.services.email_service import email_templates, send_template
from monera.services.notification_service import create_notification
from monera.services.profile_service import can_access_jobs, pick_best_talent_profile
from monera.schemas.schemas import (
    ApplicationCreate, ApplicationUpdate, ApplicationResponse, ApplicationListResponse,
    MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])

# Allowed status moves; ACCEPTED and REJECTED are final
STATUS_TRANSITIONS = {
    "PENDING": {"REVIEWING", "SHORTLISTED", "REJECTED", "ACCEPTED"},
    "REVIEWING": {"SHORTLISTED", "REJECTED", "ACCEPTED"},
    "SHORTLISTED": {"ACCEPTED", "REJECTED"},
    "ACCEPTED": set(),
    "REJECTED": set(),
}

STATUS_MANAGER_ADMINS = (SUPER_ADMIN, QUALITY_ADMIN, SUPPORT_ADMIN)


def can_transition(current: str, new: str) -> bool:
    return current == new or new in STATUS_TRANSITIONS.get(current, set())


def list_applications_query(filters: dict, page: int, limit: int) -> ApplicationListResponse:
    """Shared by the scoped listing here and the admin listing."""
    sql = " FROM applications a JOIN jobs j ON a.job_id = j.id WHERE 1=1"
    params = {}
    for column, key in (("a.job_id", "job_id"), ("a.status", "status"),
                        ("a.candidate_id", "candidate_id"), ("j.recruiter_id", "recruiter_id")):
        if filters.get(key):
            sql += f" AND {column} = :{key}"
            params[key] = filters[key]

    total = execute_raw_sql("SELECT COUNT(*) AS total" + sql, params)[0]["total"]
    rows = execute_raw_sql(
        "SELECT a.id" + sql + " ORDER BY a.created_at DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    ids = [r["id"] for r in rows]
    found = {a["id"]: a for a in db.application.find_many({"id": ids})} if ids else {}
    ordered = [found[i] for i in ids if i in found]
    return ApplicationListResponse(
        applications=serialize_applications(ordered),
        pagination=paginate(page, limit, total),
    )


def apply_status_change(application: dict, job: dict, new_status: str) -> None:
    """Notify and e-mail the candidate about a status change."""
    candidate = db.user.find_unique({"id": application["candidate_id"]})
    company = db.company.find_unique({"id": job["company_id"]}) if job["company_id"] else None
    create_notification(
        application["candidate_id"],
        "application",
        "Application status updated",
        f"Your application for {job['title']} is now {new_status}.",
        f"/user/applications/{application['id']}",
    )
    if candidate:
        send_template(candidate["email"], email_templates.application_status_update(
            display_name(candidate), job["title"], new_status, company["name"] if company else None,
        ))


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    job_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    candidate_id: Optional[str] = Query(None, description="'me' for your own"),
    recruiter_id: Optional[str] = Query(None, description="'me' for applications on your jobs"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    """
    Talents only ever see their own applications, clients only those on
    their jobs. Admins are unrestricted.
    """
    filters = {"job_id": job_id, "status": status.upper() if status else None}

    if candidate_id:
        filters["candidate_id"] = user["user_id"] if candidate_id == "me" else candidate_id
    if recruiter_id:
        filters["recruiter_id"] = user["user_id"] if recruiter_id == "me" else recruiter_id

    if user["role"] == "TALENT":
        filters["candidate_id"] = user["user_id"]
    elif user["role"] == "CLIENT":
        filters["recruiter_id"] = user["user_id"]
    elif not is_admin(user["role"]):
        raise HTTPException(status_code=403, detail="Forbidden")

    return list_applications_query(filters, page, limit)


@router.post("", response_model=ApplicationResponse, status_code=201)
async def create_application(payload: ApplicationCreate, user: dict = Depends(get_current_talent)):
    """Apply to a published job."""
    profile = pick_best_talent_profile(db.talent_profile.find_many({"user_id": user["user_id"]}))
    if not profile or not can_access_jobs(profile["status"]):
        raise HTTPException(status_code=403, detail="Your profile must be submitted before applying to jobs")

    job = db.job.find_unique({"id": payload.job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    if job["status"] != "PUBLISHED":
        raise HTTPException(status_code=400, detail="This job is not accepting applications")

    if profile["availability"] == "Busy":
        raise HTTPException(status_code=400, detail="Your availability is set to Busy. Update it to apply for jobs.")

    if db.application.find_first({"job_id": job["id"], "candidate_id": user["user_id"]}):
        raise HTTPException(status_code=409, detail="You have already applied to this job")

    application = db.application.create({
        "job_id": job["id"],
        "candidate_id": user["user_id"],
        "cover_letter": payload.cover_letter,
        "expected_rate": payload.expected_rate,
        "resume_url": payload.resume_url,
        "status": "PENDING",
    })

    candidate = db.user.find_unique({"id": user["user_id"]})
    recruiter = db.user.find_unique({"id": job["recruiter_id"]})
    candidate_name = display_name(candidate)
    create_notification(
        job["recruiter_id"],
        "application",
        "New application received",
        f"{candidate_name} applied to {job['title']}.",
        f"/client/jobs/{job['id']}/applications",
    )
    if recruiter:
        send_template(recruiter["email"], email_templates.new_application(
            display_name(recruiter), candidate_name, job["title"],
        ))

    logger.info("Application %s created for job %s", application["id"], job["id"])
    return serialize_applications([application])[0]


def _get_visible_application(application_id: str, user: dict):
    application = db.application.find_unique({"id": application_id})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    job = db.job.find_unique({"id": application["job_id"]})
    is_candidate = application["candidate_id"] == user["user_id"]
    is_owner = job is not None and job["recruiter_id"] == user["user_id"]
    if not (is_candidate or is_owner or is_admin(user["role"])):
        raise HTTPException(status_code=403, detail="You do not have access to this application")
    return application, job, is_candidate, is_owner


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, user: dict = Depends(get_current_user)):
    application, _, _, _ = _get_visible_application(application_id, user)
    return serialize_applications([application])[0]


@router.put("/{application_id}", response_model=ApplicationResponse)
async def update_application(application_id: str, payload: ApplicationUpdate, user: dict = Depends(get_current_user)):
    """
    Job owner and SUPER/QUALITY/SUPPORT admins change status and notes;
    the candidate may only edit cover letter and resume URL.
    """
    application, job, is_candidate, is_owner = _get_visible_application(application_id, user)
    data = payload.model_dump(mode="json", exclude_unset=True)

    manages_status = is_owner or user["role"] in STATUS_MANAGER_ADMINS
    if ("status" in data or "notes" in data) and not manages_status:
        raise HTTPException(status_code=403, detail="Only the job owner or an admin can change status or notes")
    if ("cover_letter" in data or "resume_url" in data) and not is_candidate:
        raise HTTPException(status_code=403, detail="Only the candidate can edit the cover letter or resume")

    new_status = data.get("status")
    status_changed = False
    if new_status:
        if not can_transition(application["status"], new_status):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change status from {application['status']} to {new_status}",
            )
        status_changed = new_status != application["status"]
        if not status_changed:
            data.pop("status")
    elif "status" in data:
        data.pop("status")

    if data:
        application = db.application.update({"id": application_id}, data)
    if status_changed and job:
        apply_status_change(application, job, new_status)

    return serialize_applications([application])[0]


@router.delete("/{application_id}", response_model=MessageResponse)
async def withdraw_application(application_id: str, user: dict = Depends(get_current_user)):
    application = db.application.find_unique({"id": application_id})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    if application["candidate_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail="You can only withdraw your own applications")
    if application["status"] != "PENDING":
        raise HTTPException(status_code=400, detail="Only pending applications can be withdrawn")

    db.application.delete({"id": application_id})
    return MessageResponse(message="Application withdrawn")
