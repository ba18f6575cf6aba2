"""
Skill Routes

GET /skills - List skills (name ascending, max 100)
POST /skills - Get-or-create a skill by name
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from monera.core.auth import get_current_user
from monera.db.postgres import execute_raw_sql
from monera.db.repository import db
from monera.schemas.schemas import SkillCreate, SkillResponse

router = APIRouter(prefix="/skills", tags=["Skills"])

MAX_SKILLS = 100


def find_skill_by_name(name: str) -> Optional[dict]:
    rows = execute_raw_sql(
        "SELECT id, name, category FROM skills WHERE LOWER(name) = :name LIMIT 1",
        {"name": name.strip().lower()},
    )
    return rows[0] if rows else None


@router.get("", response_model=List[SkillResponse])
async def list_skills(
    query: Optional[str] = Query(None, description="Search in name"),
    category: Optional[str] = Query(None),
):
    sql = "SELECT id, name, category FROM skills WHERE 1=1"
    params = {}
    if query:
        sql += " AND LOWER(name) LIKE :query"
        params["query"] = f"%{query.lower()}%"
    if category:
        sql += " AND category = :category"
        params["category"] = category
    sql += f" ORDER BY name LIMIT {MAX_SKILLS}"
    return [SkillResponse(**r) for r in execute_raw_sql(sql, params)]


@router.post("", response_model=SkillResponse, status_code=201)
async def create_skill(payload: SkillCreate, response: Response, user: dict = Depends(get_current_user)):
    """Existing skill (same name, any case) is returned with 200 instead of a duplicate."""
    existing = find_skill_by_name(payload.name)
    if existing:
        response.status_code = 200
        return SkillResponse(**existing)

    skill = db.skill.create({"name": payload.name.strip(), "category": payload.category})
    return SkillResponse(id=skill["id"], name=skill["name"], category=skill["category"])
