"""
Company Routes

GET /companies - Search companies (paginated)
POST /companies - Create company
GET /companies/{company_id} - Company details with published job count
PUT /companies/{company_id} - Update company (linked recruiter or admin)
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user
from monera.core.rbac import is_admin
from monera.db.postgres import execute_raw_sql
from monera.db.repository import db
from monera.api.helpers import paginate
from monera.schemas.schemas import (
    CompanyCreate, CompanyUpdate, CompanyResponse, CompanyListResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    query: Optional[str] = Query(None, description="Search in name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """List companies, name ascending."""
    where = ""
    params = {}
    if query:
        where = " WHERE LOWER(name) LIKE :query"
        params["query"] = f"%{query.lower()}%"

    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM companies{where}", params)[0]["total"]
    rows = execute_raw_sql(
        f"SELECT * FROM companies{where} ORDER BY name LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    return CompanyListResponse(
        companies=[CompanyResponse(**r) for r in rows],
        pagination=paginate(page, limit, total),
    )


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(payload: CompanyCreate, user: dict = Depends(get_current_user)):
    company = db.company.create(payload.model_dump())

    # A client without a company becomes its recruiter
    if user["role"] == "CLIENT":
        recruiter = db.recruiter_profile.find_unique({"user_id": user["user_id"]})
        if recruiter and not recruiter["company_id"]:
            db.recruiter_profile.update({"id": recruiter["id"]}, {"company_id": company["id"]})

    return CompanyResponse(**company)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: str):
    company = db.company.find_unique({"id": company_id})
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    job_count = db.job.count({"company_id": company_id, "status": "PUBLISHED"})
    return CompanyResponse(**company, job_count=job_count)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(company_id: str, payload: CompanyUpdate, user: dict = Depends(get_current_user)):
    """Only a recruiter linked to the company, or an admin, may edit it."""
    company = db.company.find_unique({"id": company_id})
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    if not is_admin(user["role"]):
        recruiter = db.recruiter_profile.find_unique({"user_id": user["user_id"]})
        if not recruiter or recruiter["company_id"] != company_id:
            raise HTTPException(status_code=403, detail="You can only update your own company")

    data = payload.model_dump(exclude_unset=True)
    if data:
        company = db.company.update({"id": company_id}, data)
    return CompanyResponse(**company)
