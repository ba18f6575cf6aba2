"""
Talent Request Routes

POST /talent-requests - Submit a talent request (public)
POST /request-talent - Alias of POST /talent-requests
GET /talent-requests - List requests (clients see their own)
GET /talent-requests/{request_id} - Request details (owner client or admin)
PUT /talent-requests/{request_id} - Update request (admins)
DELETE /talent-requests/{request_id} - Delete request (super/quality/support admins)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request

from monera.core.auth import get_current_user, require_admin
from monera.core.config import get_settings
from monera.core.rbac import QUALITY_ADMIN, SUPER_ADMIN, SUPPORT_ADMIN, is_admin
from monera.core.security import api_rate_limiter
from monera.db.postgres import execute_raw_sql
from monera.db.repository import db
from monera.api.helpers import normalize_email, paginate
from monera.services.email_service import email_templates, send_template
from monera.schemas.schemas import (
    TalentRequestCreate, TalentRequestUpdate, TalentRequestResponse, TalentRequestListResponse,
    MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/talent-requests", tags=["Talent Requests"])
alias_router = APIRouter(tags=["Talent Requests"])

settings = get_settings()


def _owns_request(talent_request: dict, user: dict) -> bool:
    return user["role"] == "CLIENT" and talent_request["email"] == normalize_email(user["email"])


def _get_request(request_id: str) -> dict:
    talent_request = db.talent_request.find_unique({"id": request_id})
    if not talent_request:
        raise HTTPException(status_code=404, detail="Talent request not found")
    return talent_request


@router.post("", response_model=TalentRequestResponse, status_code=201)
async def create_talent_request(payload: TalentRequestCreate, request: Request):
    """Public form. The admin inbox gets an e-mail about it."""
    api_rate_limiter.enforce(request, "Too many requests. Please try again later.")

    talent_request = db.talent_request.create({
        "client_name": payload.client_name.strip(),
        "email": normalize_email(payload.email),
        "company": payload.company,
        "talent_type": payload.talent_type,
        "budget": payload.budget,
        "notes": payload.notes,
        "status": "PENDING",
    })
    send_template(settings.admin_email, email_templates.new_talent_request(talent_request))

    logger.info("Talent request %s submitted", talent_request["id"])
    return TalentRequestResponse(**talent_request)


alias_router.add_api_route(
    "/request-talent",
    create_talent_request,
    methods=["POST"],
    response_model=TalentRequestResponse,
    status_code=201,
)


@router.get("", response_model=TalentRequestListResponse)
async def list_talent_requests(
    query: Optional[str] = Query(None, description="Search in client name and company"),
    talent_type: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    company: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    sql = " FROM talent_requests WHERE 1=1"
    params = {}

    if user["role"] == "CLIENT":
        sql += " AND email = :email"
        params["email"] = normalize_email(user["email"])
    elif not is_admin(user["role"]):
        raise HTTPException(status_code=403, detail="Forbidden")
    else:
        if query:
            sql += " AND (LOWER(client_name) LIKE :query OR LOWER(company) LIKE :query)"
            params["query"] = f"%{query.lower()}%"
        if talent_type:
            sql += " AND LOWER(talent_type) LIKE :talent_type"
            params["talent_type"] = f"%{talent_type.lower()}%"
        if email:
            sql += " AND email = :email"
            params["email"] = normalize_email(email)
        if company:
            sql += " AND LOWER(company) LIKE :company"
            params["company"] = f"%{company.lower()}%"
    if status:
        sql += " AND status = :status"
        params["status"] = status.upper()

    total = execute_raw_sql("SELECT COUNT(*) AS total" + sql, params)[0]["total"]
    rows = execute_raw_sql(
        "SELECT id" + sql + " ORDER BY created_at DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    ids = [r["id"] for r in rows]
    found = {r["id"]: r for r in db.talent_request.find_many({"id": ids})} if ids else {}

    return TalentRequestListResponse(
        talent_requests=[TalentRequestResponse(**found[i]) for i in ids if i in found],
        pagination=paginate(page, limit, total),
    )


@router.get("/{request_id}", response_model=TalentRequestResponse)
async def get_talent_request(request_id: str, user: dict = Depends(get_current_user)):
    talent_request = _get_request(request_id)
    if not (is_admin(user["role"]) or _owns_request(talent_request, user)):
        raise HTTPException(status_code=403, detail="You do not have access to this request")
    return TalentRequestResponse(**talent_request)


@router.put("/{request_id}", response_model=TalentRequestResponse)
async def update_talent_request(
    request_id: str,
    payload: TalentRequestUpdate,
    user: dict = Depends(require_admin()),
):
    _get_request(request_id)
    data = payload.model_dump(mode="json", exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    return TalentRequestResponse(**db.talent_request.update({"id": request_id}, data))


@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_talent_request(
    request_id: str,
    user: dict = Depends(require_admin((SUPER_ADMIN, QUALITY_ADMIN, SUPPORT_ADMIN))),
):
    _get_request(request_id)
    db.talent_request.delete({"id": request_id})
    logger.info("Talent request %s deleted by %s", request_id, user["user_id"])
    return MessageResponse(message="Talent request deleted")
