"""
Admin Routes

Talent review (super/quality):
GET /admin/talent-review - Talent profiles by status (default SUBMITTED)
GET /admin/talent-review/{talent_id} - Full profile of one talent
POST /admin/talent-review/{talent_id}/approve - Approve
POST /admin/talent-review/{talent_id}/reject - Reject with reason
POST /admin/talent-review/{talent_id}/request-revision - Send back with notes

Users:
GET /admin/users - Search users (super/quality)
POST /admin/users - Create a verified user of any role (super)
PUT /admin/users/{user_id} - Update name/status (super/quality)
PUT /admin/users/{user_id}/role - Change role (super)
POST /admin/users/{user_id}/suspend - Suspend (super/support)
POST /admin/users/{user_id}/unsuspend - Reactivate (super/support)
DELETE /admin/users/{user_id} - Delete (super)

Jobs, applications, skills:
GET /admin/jobs, PUT /admin/jobs/{job_id}/status, DELETE /admin/jobs/{job_id}
GET /admin/applications, PUT /admin/applications/{id}, DELETE /admin/applications/{id}
POST /admin/skills, PUT /admin/skills/{skill_id}, DELETE /admin/skills/{skill_id}

Reporting and settings:
GET /admin/stats/{users,jobs,companies,talent-requests}
GET /admin/companies - Companies with recruiter and job counts
GET /admin/audit-logs - Audit trail
GET /admin/settings, PUT /admin/settings - System settings (super)
GET /admin/capabilities - What the caller's admin role may do

Every write is recorded in the audit log. Role gates come from
ADMIN_ROUTE_PERMISSIONS (monera.core.rbac).
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import hash_password, require_admin_route
from monera.core.rbac import get_admin_capabilities
from monera.db.postgres import execute_raw_sql
from monera.db.repository import db
from monera.db.schema import utcnow
from monera.api.helpers import (
    create_role_profile, delete_job_cascade, delete_user_cascade, display_name, find_or_create_company,
    normalize_email, paginate, serialize_applications, serialize_job, serialize_jobs, skills_by_owner
)
from monera.api.routes.application_routes import apply_status_change, list_applications_query
from monera.api.routes.profile_routes import build_profile
from monera.api.routes.skill_routes import find_skill_by_name
from monera.services.audit_service import log_audit
from monera.services.notification_service import create_notification
from monera.services.profile_service import pick_best_talent_profile
from monera.schemas.schemas import (
    ReviewApprove, ReviewReject, ReviewRevision, TalentReviewItem, TalentReviewListResponse, TalentStatus,
    ProfileResponse, AdminUserCreate, AdminUserUpdate, RoleUpdate, SuspendRequest,
    AdminUserResponse, AdminUserListResponse, JobStatusUpdate, JobResponse, JobListResponse,
    ApplicationStatusUpdate, ApplicationResponse, ApplicationListResponse,
    SkillCreate, SkillUpdate, SkillResponse, CompanyResponse, CompanyListResponse,
    AuditLogResponse, AuditLogListResponse, UserStatsResponse, JobStatsResponse, CountResponse,
    TalentRequestStatsResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# TALENT REVIEW
# ============================================================

def _review_items(profiles: List[dict]) -> List[TalentReviewItem]:
    if not profiles:
        return []
    users = {u["id"]: u for u in db.user.find_many({"id": list({p["user_id"] for p in profiles})})}
    skills = skills_by_owner(db.talent_skill, "talent_id", [p["id"] for p in profiles])
    items = []
    for profile in profiles:
        user = users.get(profile["user_id"])
        if not user:
            continue
        items.append(TalentReviewItem(
            id=profile["id"],
            user_id=user["id"],
            email=user["email"],
            full_name=display_name(user),
            headline=profile["headline"],
            status=profile["status"],
            profile_completion=profile["profile_completion"] or 0,
            is_profile_ready=bool(profile["is_profile_ready"]),
            submitted_at=profile["submitted_at"],
            updated_at=profile["updated_at"],
            skills=skills.get(profile["id"], []),
        ))
    return items


def _get_reviewable(talent_id: str) -> dict:
    profile = db.talent_profile.find_unique({"id": talent_id})
    if not profile:
        raise HTTPException(status_code=404, detail="Talent profile not found")
    if profile["status"] != "SUBMITTED":
        raise HTTPException(status_code=400, detail=f"Only submitted profiles can be reviewed (status is {profile['status']})")
    return profile


@router.get("/talent-review", response_model=TalentReviewListResponse)
async def list_talent_reviews(
    status: TalentStatus = Query(TalentStatus.submitted),
    admin: dict = Depends(require_admin_route),
):
    where = {"status": status.value}
    profiles = db.talent_profile.find_many(where, order_by=["-submitted_at", "-updated_at"])
    return TalentReviewListResponse(talents=_review_items(profiles), total=len(profiles))


@router.get("/talent-review/{talent_id}", response_model=ProfileResponse)
async def get_talent_review(talent_id: str, admin: dict = Depends(require_admin_route)):
    profile = db.talent_profile.find_unique({"id": talent_id})
    if not profile:
        raise HTTPException(status_code=404, detail="Talent profile not found")
    return build_profile(profile["user_id"])


@router.post("/talent-review/{talent_id}/approve", response_model=MessageResponse)
async def approve_talent(talent_id: str, payload: Optional[ReviewApprove] = None, admin: dict = Depends(require_admin_route)):
    profile = _get_reviewable(talent_id)
    notes = payload.notes if payload else None
    db.talent_profile.update({"id": talent_id}, {
        "status": "APPROVED",
        "is_profile_ready": True,
        "last_validated_at": utcnow(),
        "revision_notes": None,
    })
    create_notification(
        profile["user_id"], "general", "Profile approved",
        "Your profile has been approved. You now have full access to jobs.", "/user/dashboard",
    )
    log_audit(admin["user_id"], "TALENT_APPROVED", "talent", talent_id, {"notes": notes})
    return MessageResponse(message="Talent approved")


@router.post("/talent-review/{talent_id}/reject", response_model=MessageResponse)
async def reject_talent(talent_id: str, payload: ReviewReject, admin: dict = Depends(require_admin_route)):
    profile = _get_reviewable(talent_id)
    db.talent_profile.update({"id": talent_id}, {
        "status": "REJECTED",
        "is_profile_ready": False,
        "last_validated_at": utcnow(),
    })
    create_notification(
        profile["user_id"], "general", "Profile not approved",
        f"Your profile was not approved: {payload.reason}", "/user/dashboard",
    )
    log_audit(admin["user_id"], "TALENT_REJECTED", "talent", talent_id, {"reason": payload.reason})
    return MessageResponse(message="Talent rejected")


@router.post("/talent-review/{talent_id}/request-revision", response_model=MessageResponse)
async def request_revision(talent_id: str, payload: ReviewRevision, admin: dict = Depends(require_admin_route)):
    profile = _get_reviewable(talent_id)
    db.talent_profile.update({"id": talent_id}, {
        "status": "NEED_REVISION",
        "revision_notes": payload.notes,
        "is_profile_ready": False,
    })
    create_notification(
        profile["user_id"], "general", "Profile needs changes",
        f"Please update your profile: {payload.notes}", "/user/profile",
    )
    log_audit(admin["user_id"], "TALENT_REVISION_REQUESTED", "talent", talent_id, {"notes": payload.notes})
    return MessageResponse(message="Revision requested")


# ============================================================
# USERS
# ============================================================

def _admin_user_responses(users: List[dict]) -> List[AdminUserResponse]:
    talent_ids = [u["id"] for u in users if u["role"] == "TALENT"]
    profiles: Dict[str, List[dict]] = {}
    if talent_ids:
        for profile in db.talent_profile.find_many({"user_id": talent_ids}):
            profiles.setdefault(profile["user_id"], []).append(profile)

    result = []
    for user in users:
        best = pick_best_talent_profile(profiles.get(user["id"], []))
        result.append(AdminUserResponse(
            id=user["id"],
            email=user["email"],
            role=user["role"],
            status=user["status"],
            full_name=display_name(user),
            email_verified=bool(user["email_verified"]),
            talent_status=best["status"] if best else None,
            created_at=user["created_at"],
        ))
    return result


def _get_user(user_id: str) -> dict:
    user = db.user.find_unique({"id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    query: Optional[str] = Query(None, description="Search in e-mail and name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin_route),
):
    sql = " FROM users WHERE 1=1"
    params = {}
    if role:
        sql += " AND role = :role"
        params["role"] = role.upper()
    if status:
        sql += " AND status = :status"
        params["status"] = status.upper()
    if query:
        sql += " AND (LOWER(email) LIKE :query OR LOWER(full_name) LIKE :query)"
        params["query"] = f"%{query.lower()}%"

    total = execute_raw_sql("SELECT COUNT(*) AS total" + sql, params)[0]["total"]
    rows = execute_raw_sql(
        "SELECT id" + sql + " ORDER BY created_at DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    ids = [r["id"] for r in rows]
    found = {u["id"]: u for u in db.user.find_many({"id": ids})} if ids else {}
    return AdminUserListResponse(
        users=_admin_user_responses([found[i] for i in ids if i in found]),
        pagination=paginate(page, limit, total),
    )


@router.post("/users", response_model=AdminUserResponse, status_code=201)
async def create_user(payload: AdminUserCreate, admin: dict = Depends(require_admin_route)):
    """Admin-created accounts skip e-mail verification."""
    email = normalize_email(payload.email)
    if db.user.find_unique({"email": email}):
        raise HTTPException(status_code=409, detail="User with this email already exists")

    role = payload.role.value
    company_id = None
    if role == "CLIENT" and payload.company_name:
        company_id = find_or_create_company(payload.company_name)["id"]

    user = db.user.create({
        "email": email,
        "password_hash": hash_password(payload.password),
        "role": role,
        "status": "ACTIVE",
        "full_name": payload.full_name or payload.company_name or email.split("@")[0],
        "email_verified": True,
        "onboarding_completed": False,
    })
    create_role_profile(user, company_id)

    log_audit(admin["user_id"], "USER_CREATED", "user", user["id"], {"email": email, "role": role})
    return _admin_user_responses([user])[0]


@router.put("/users/{user_id}", response_model=AdminUserResponse)
async def update_user(user_id: str, payload: AdminUserUpdate, admin: dict = Depends(require_admin_route)):
    _get_user(user_id)
    data = payload.model_dump(mode="json", exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if data.get("status") == "SUSPENDED" and user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot suspend your own account")

    user = db.user.update({"id": user_id}, data)
    log_audit(admin["user_id"], "USER_UPDATED", "user", user_id, data)
    return _admin_user_responses([user])[0]


@router.put("/users/{user_id}/role", response_model=AdminUserResponse)
async def update_user_role(user_id: str, payload: RoleUpdate, admin: dict = Depends(require_admin_route)):
    user = _get_user(user_id)
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot change your own role")

    old_role = user["role"]
    user = db.user.update({"id": user_id}, {"role": payload.role.value})

    # Make sure the new role has its profile row
    if user["role"] == "TALENT" and not db.talent_profile.find_first({"user_id": user_id}):
        create_role_profile(user)
    elif user["role"] == "CLIENT" and not db.recruiter_profile.find_unique({"user_id": user_id}):
        create_role_profile(user)

    log_audit(admin["user_id"], "USER_ROLE_CHANGED", "user", user_id, {"from": old_role, "to": user["role"]})
    return _admin_user_responses([user])[0]


@router.post("/users/{user_id}/suspend", response_model=MessageResponse)
async def suspend_user(user_id: str, payload: Optional[SuspendRequest] = None, admin: dict = Depends(require_admin_route)):
    _get_user(user_id)
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot suspend your own account")

    db.user.update({"id": user_id}, {"status": "SUSPENDED"})
    log_audit(admin["user_id"], "USER_SUSPENDED", "user", user_id, {"reason": payload.reason if payload else None})
    return MessageResponse(message="User suspended")


@router.post("/users/{user_id}/unsuspend", response_model=MessageResponse)
async def unsuspend_user(user_id: str, admin: dict = Depends(require_admin_route)):
    _get_user(user_id)
    db.user.update({"id": user_id}, {"status": "ACTIVE"})
    log_audit(admin["user_id"], "USER_UNSUSPENDED", "user", user_id)
    return MessageResponse(message="User reactivated")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, admin: dict = Depends(require_admin_route)):
    user = _get_user(user_id)
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    delete_user_cascade(user_id)
    log_audit(admin["user_id"], "USER_DELETED", "user", user_id, {"email": user["email"]})
    logger.info("User %s deleted by %s", user_id, admin["user_id"])
    return MessageResponse(message="User deleted")


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=JobListResponse)
async def list_all_jobs(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin_route),
):
    where = {"status": status.upper()} if status else None
    total = db.job.count(where)
    jobs = db.job.find_many(where, order_by="-created_at", skip=(page - 1) * limit, take=limit)
    return JobListResponse(jobs=serialize_jobs(jobs), pagination=paginate(page, limit, total))


@router.put("/jobs/{job_id}/status", response_model=JobResponse)
async def update_job_status(job_id: str, payload: JobStatusUpdate, admin: dict = Depends(require_admin_route)):
    job = db.job.find_unique({"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    data = {"status": payload.status.value}
    if payload.status.value == "PUBLISHED":
        data["published_at"] = utcnow()
    job = db.job.update({"id": job_id}, data)

    log_audit(admin["user_id"], "JOB_STATUS_CHANGED", "job", job_id, {"status": payload.status.value})
    return serialize_job(job)


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_any_job(job_id: str, admin: dict = Depends(require_admin_route)):
    job = db.job.find_unique({"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    delete_job_cascade(job_id)
    log_audit(admin["user_id"], "JOB_DELETED", "job", job_id, {"title": job["title"]})
    return MessageResponse(message="Job deleted successfully")


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=ApplicationListResponse)
async def list_all_applications(
    job_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin_route),
):
    filters = {"job_id": job_id, "status": status.upper() if status else None}
    return list_applications_query(filters, page, limit)


@router.put("/applications/{application_id}", response_model=ApplicationResponse)
async def admin_update_application(
    application_id: str,
    payload: ApplicationStatusUpdate,
    admin: dict = Depends(require_admin_route),
):
    """Admins may set any status; the candidate is still notified of a change."""
    application = db.application.find_unique({"id": application_id})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    data = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    status_changed = "status" in data and data["status"] != application["status"]
    application = db.application.update({"id": application_id}, data)

    job = db.job.find_unique({"id": application["job_id"]})
    if status_changed and job:
        apply_status_change(application, job, data["status"])

    log_audit(admin["user_id"], "APPLICATION_UPDATED", "application", application_id, data)
    return serialize_applications([application])[0]


@router.delete("/applications/{application_id}", response_model=MessageResponse)
async def admin_delete_application(application_id: str, admin: dict = Depends(require_admin_route)):
    if not db.application.delete({"id": application_id}):
        raise HTTPException(status_code=404, detail="Application not found")
    log_audit(admin["user_id"], "APPLICATION_DELETED", "application", application_id)
    return MessageResponse(message="Application deleted")


# ============================================================
# SKILLS
# ============================================================

@router.post("/skills", response_model=SkillResponse, status_code=201)
async def admin_create_skill(payload: SkillCreate, admin: dict = Depends(require_admin_route)):
    if find_skill_by_name(payload.name):
        raise HTTPException(status_code=409, detail="A skill with this name already exists")

    skill = db.skill.create({"name": payload.name.strip(), "category": payload.category})
    log_audit(admin["user_id"], "SKILL_CREATED", "skill", skill["id"], {"name": skill["name"]})
    return SkillResponse(id=skill["id"], name=skill["name"], category=skill["category"])


@router.put("/skills/{skill_id}", response_model=SkillResponse)
async def admin_update_skill(skill_id: str, payload: SkillUpdate, admin: dict = Depends(require_admin_route)):
    if not db.skill.find_unique({"id": skill_id}):
        raise HTTPException(status_code=404, detail="Skill not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        data["name"] = data["name"].strip()
        existing = find_skill_by_name(data["name"])
        if existing and existing["id"] != skill_id:
            raise HTTPException(status_code=409, detail="A skill with this name already exists")
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    skill = db.skill.update({"id": skill_id}, data)
    log_audit(admin["user_id"], "SKILL_UPDATED", "skill", skill_id, data)
    return SkillResponse(id=skill["id"], name=skill["name"], category=skill["category"])


@router.delete("/skills/{skill_id}", response_model=MessageResponse)
async def admin_delete_skill(skill_id: str, admin: dict = Depends(require_admin_route)):
    skill = db.skill.find_unique({"id": skill_id})
    if not skill:
        raise HTTPException(status_code=404, detail="Skill not found")

    db.talent_skill.delete({"skill_id": skill_id})
    db.job_skill.delete({"skill_id": skill_id})
    db.skill.delete({"id": skill_id})
    log_audit(admin["user_id"], "SKILL_DELETED", "skill", skill_id, {"name": skill["name"]})
    return MessageResponse(message="Skill deleted")


# ============================================================
# STATS
# ============================================================

@router.get("/stats/users", response_model=UserStatsResponse)
async def user_stats(admin: dict = Depends(require_admin_route)):
    rows = execute_raw_sql("SELECT role, COUNT(*) AS total FROM users GROUP BY role")
    by_role = {r["role"]: r["total"] for r in rows}
    return UserStatsResponse(count=sum(by_role.values()), by_role=by_role)


@router.get("/stats/jobs", response_model=JobStatsResponse)
async def job_stats(admin: dict = Depends(require_admin_route)):
    return JobStatsResponse(total=db.job.count(), active=db.job.count({"status": "PUBLISHED"}))


@router.get("/stats/companies", response_model=CountResponse)
async def company_stats(admin: dict = Depends(require_admin_route)):
    return CountResponse(count=db.company.count())


@router.get("/stats/talent-requests", response_model=TalentRequestStatsResponse)
async def talent_request_stats(admin: dict = Depends(require_admin_route)):
    rows = execute_raw_sql("SELECT status, COUNT(*) AS total FROM talent_requests GROUP BY status")
    by_status = {r["status"]: r["total"] for r in rows}
    return TalentRequestStatsResponse(count=sum(by_status.values()), by_status=by_status)


# ============================================================
# COMPANIES
# ============================================================

@router.get("/companies", response_model=CompanyListResponse)
async def list_companies_with_counts(
    query: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin_route),
):
    where = ""
    params = {}
    if query:
        where = " WHERE LOWER(c.name) LIKE :query"
        params["query"] = f"%{query.lower()}%"

    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM companies c{where}", params)[0]["total"]
    rows = execute_raw_sql(
        f"""
        SELECT c.*,
            (SELECT COUNT(*) FROM jobs j WHERE j.company_id = c.id) AS job_count,
            (SELECT COUNT(*) FROM recruiter_profiles r WHERE r.company_id = c.id) AS recruiter_count
        FROM companies c{where}
        ORDER BY c.name
        LIMIT :limit OFFSET :offset
        """,
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    return CompanyListResponse(
        companies=[CompanyResponse(**r) for r in rows],
        pagination=paginate(page, limit, total),
    )


# ============================================================
# AUDIT LOGS / SETTINGS / CAPABILITIES
# ============================================================

@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    action: Optional[str] = Query(None),
    admin_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: dict = Depends(require_admin_route),
):
    where = {}
    if action:
        where["action"] = action.upper()
    if admin_id:
        where["admin_id"] = admin_id

    total = db.audit_log.count(where)
    logs = db.audit_log.find_many(where, order_by="-created_at", skip=(page - 1) * limit, take=limit)
    admins = {u["id"]: u["email"] for u in db.user.find_many({"id": list({l["admin_id"] for l in logs})})} if logs else {}

    return AuditLogListResponse(
        logs=[AuditLogResponse(**l, admin_email=admins.get(l["admin_id"])) for l in logs],
        pagination=paginate(page, limit, total),
    )


@router.get("/settings", response_model=Dict[str, Any])
async def get_system_settings(admin: dict = Depends(require_admin_route)):
    return {s["key"]: s["value"] for s in db.system_setting.find_many(order_by="key")}


@router.put("/settings", response_model=Dict[str, Any])
async def update_system_settings(payload: Dict[str, Any], admin: dict = Depends(require_admin_route)):
    if not payload:
        raise HTTPException(status_code=400, detail="No settings to update")

    for key, value in payload.items():
        db.system_setting.upsert({"key": key}, {"value": value}, {"value": value})

    log_audit(admin["user_id"], "SETTINGS_UPDATED", "settings", None, payload)
    return {s["key"]: s["value"] for s in db.system_setting.find_many(order_by="key")}


@router.get("/capabilities", response_model=Dict[str, Any])
async def capabilities(admin: dict = Depends(require_admin_route)):
    return {"role": admin["role"], "capabilities": get_admin_capabilities(admin["role"])}
