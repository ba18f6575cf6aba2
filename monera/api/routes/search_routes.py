"""
Candidate Search Routes

GET /search/candidates - Search talent profiles (clients and admins)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from monera.core.auth import require_roles
from monera.core.rbac import ADMIN_ROLES, is_admin
from monera.db.postgres import execute_raw_sql, in_clause
from monera.db.repository import db
from monera.api.helpers import paginate, skills_by_owner, split_ids
from monera.schemas.schemas import (
    CandidateListResponse, CandidateResponse, CandidateUser, TalentStatus
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])


def _application_counts(user_ids: List[str]) -> dict:
    if not user_ids:
        return {}
    fragment, params = in_clause("uid", user_ids)
    rows = execute_raw_sql(
        f"SELECT candidate_id, COUNT(*) AS total FROM applications "
        f"WHERE candidate_id IN {fragment} GROUP BY candidate_id",
        params,
    )
    return {r["candidate_id"]: r["total"] for r in rows}


@router.get("/candidates", response_model=CandidateListResponse)
async def search_candidates(
    query: Optional[str] = Query(None, description="Search in name, headline and bio"),
    location: Optional[str] = Query(None, description="Matches location or country"),
    skill_ids: Optional[List[str]] = Query(None, description="Candidates with any of these skills"),
    status: Optional[TalentStatus] = Query(None, description="Admins only; clients always see APPROVED"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(require_roles("CLIENT", *ADMIN_ROLES)),
):
    """
    Search active talents, newest profile first.

    Clients only see approved profiles. Admins see every status unless
    they pass one.
    """
    sql = (
        " FROM talent_profiles tp JOIN users u ON u.id = tp.user_id"
        " WHERE u.role = 'TALENT' AND u.status = 'ACTIVE'"
    )
    params = {}

    wanted = status.value if status else None
    if not is_admin(user["role"]):
        wanted = TalentStatus.approved.value
    if wanted:
        sql += " AND tp.status = :status"
        params["status"] = wanted

    if query:
        sql += (
            " AND (LOWER(tp.headline) LIKE :query OR LOWER(tp.bio) LIKE :query"
            " OR LOWER(u.full_name) LIKE :query)"
        )
        params["query"] = f"%{query.lower()}%"
    if location:
        sql += " AND (LOWER(u.location) LIKE :location OR LOWER(u.country) LIKE :location)"
        params["location"] = f"%{location.lower()}%"
    ids = split_ids(skill_ids)
    if ids:
        fragment, skill_params = in_clause("sid", ids)
        sql += f" AND tp.id IN (SELECT talent_id FROM talent_skills WHERE skill_id IN {fragment})"
        params.update(skill_params)

    total = execute_raw_sql("SELECT COUNT(*) AS total" + sql, params)[0]["total"]
    rows = execute_raw_sql(
        "SELECT tp.id" + sql + " ORDER BY tp.created_at DESC, tp.id LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    profile_ids = [r["id"] for r in rows]

    profiles = {p["id"]: p for p in db.talent_profile.find_many({"id": profile_ids})} if profile_ids else {}
    user_ids = [p["user_id"] for p in profiles.values()]
    users = {u["id"]: u for u in db.user.find_many({"id": user_ids})} if user_ids else {}
    skills = skills_by_owner(db.talent_skill, "talent_id", profile_ids)
    app_counts = _application_counts(user_ids)

    candidates = []
    for pid in profile_ids:
        profile = profiles.get(pid)
        owner = users.get(profile["user_id"]) if profile else None
        if not owner:
            continue
        candidates.append(CandidateResponse(
            id=pid,
            first_name=owner["first_name"],
            last_name=owner["last_name"],
            headline=profile["headline"],
            bio=profile["bio"] or owner["bio"],
            location=owner["location"],
            country=owner["country"],
            hourly_rate=profile["hourly_rate"],
            availability=profile["availability"],
            portfolio_url=profile["portfolio_url"],
            linked_in_url=owner["linked_in_url"],
            github_url=owner["github_url"],
            avatar_url=owner["avatar_url"],
            user=CandidateUser(id=owner["id"], email=owner["email"]),
            skills=skills.get(pid, []),
            application_count=app_counts.get(owner["id"], 0),
        ))

    logger.debug("Candidate search by %s matched %d", user["user_id"], total)
    return CandidateListResponse(candidates=candidates, pagination=paginate(page, limit, total))
