"""
Saved Job Routes

GET /saved-jobs - Saved job ids (optionally with published job details)
POST /saved-jobs - Save a job
DELETE /saved-jobs?job_id= - Remove a saved job
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user
from monera.db.repository import db
from monera.api.helpers import serialize_jobs
from monera.schemas.schemas import SavedJobCreate, SavedJobsResponse, MessageResponse

router = APIRouter(prefix="/saved-jobs", tags=["Saved Jobs"])


@router.get("", response_model=SavedJobsResponse)
async def list_saved_jobs(
    include_jobs: bool = Query(False),
    user: dict = Depends(get_current_user),
):
    saved = db.saved_job.find_many({"user_id": user["user_id"]}, order_by="-created_at")
    job_ids = [s["job_id"] for s in saved]

    jobs = None
    if include_jobs:
        published = {j["id"]: j for j in db.job.find_many({"id": job_ids, "status": "PUBLISHED"})} if job_ids else {}
        jobs = serialize_jobs([published[jid] for jid in job_ids if jid in published])

    return SavedJobsResponse(count=len(job_ids), job_ids=job_ids, jobs=jobs)


@router.post("", response_model=MessageResponse, status_code=201)
async def save_job(payload: SavedJobCreate, user: dict = Depends(get_current_user)):
    if not payload.job_id:
        raise HTTPException(status_code=400, detail="job_id is required")
    if not db.job.find_unique({"id": payload.job_id}):
        raise HTTPException(status_code=404, detail="Job not found")
    if db.saved_job.find_first({"user_id": user["user_id"], "job_id": payload.job_id}):
        raise HTTPException(status_code=400, detail="Job already saved")

    db.saved_job.create({"user_id": user["user_id"], "job_id": payload.job_id})
    return MessageResponse(message="Job saved")


@router.delete("", response_model=MessageResponse)
async def unsave_job(job_id: Optional[str] = Query(None), user: dict = Depends(get_current_user)):
    if not job_id:
        raise HTTPException(status_code=400, detail="job_id is required")
    if not db.saved_job.delete({"user_id": user["user_id"], "job_id": job_id}):
        raise HTTPException(status_code=404, detail="Saved job not found")
    return MessageResponse(message="Job removed from saved jobs")
