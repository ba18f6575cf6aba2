"""
Profile Routes

GET /user/profile - Merged personal + talent profile
PUT /user/profile - Partial profile update
POST /user/profile/submit - Submit talent profile for review
GET /user/state - Where the user should land + status helpers
POST /user/onboarding-complete - Mark onboarding done
POST /user/avatar - Upload avatar image
POST /user/video - Upload intro video
GET /user/profile/experience - Work history, education, languages, certifications
PUT /user/profile/experience - Replace any of those lists (talent)
GET /candidate/profile/check - Readiness check (persisted)
GET /profile/recruiter - Get recruiter profile (client)
PUT /profile/recruiter - Update recruiter profile (client)
POST /client/profile/setup - Create/link company and fill recruiter profile
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File

from monera.core.auth import get_current_user, get_current_talent, get_current_client
from monera.db.repository import db
from monera.db.schema import utcnow
from monera.api.helpers import find_or_create_company, require_skill_ids, skills_by_owner
from monera.services.profile_service import (
    PERSONAL_FIELDS, STORED_PROFILE_FIELDS, calculate_profile_completion, can_access_jobs,
    get_profile_service, get_redirect_path, get_status_message, pick_best_talent_profile,
    stored_profile_completion
)
from monera.utils.file_upload import save_avatar, save_video
from monera.schemas.schemas import (
    ProfileUpdate, ProfileSubmit, ProfileResponse, UserStateResponse, ReadinessResponse,
    UploadResponse, ExperienceUpdate, ExperienceResponse, RecruiterProfileUpdate,
    RecruiterProfileResponse, ClientProfileSetup, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])

USER_UPDATE_FIELDS = (
    "first_name", "last_name", "country", "timezone", "bio", "phone", "location",
    "linked_in_url", "github_url",
)
TALENT_UPDATE_FIELDS = (
    "headline", "experience", "portfolio_url", "intro_video_url", "hourly_rate", "availability",
)


def _talent_profile(user_id: str) -> Optional[dict]:
    return pick_best_talent_profile(db.talent_profile.find_many({"user_id": user_id}))


def _full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    name = " ".join(p.strip() for p in (first, last) if p and p.strip())
    return name or None


def build_profile(user_id: str) -> ProfileResponse:
    user = db.user.find_unique({"id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    profile = _talent_profile(user_id)
    skills = skills_by_owner(db.talent_skill, "talent_id", [profile["id"]]).get(profile["id"], []) if profile else []
    completion = stored_profile_completion(user, profile, len(skills))

    data = {k: user[k] for k in (
        "id", "email", "role", "full_name", "first_name", "last_name", "country", "timezone",
        "phone", "location", "linked_in_url", "github_url", "avatar_url", "onboarding_completed",
    )}
    data["bio"] = user["bio"]
    if profile:
        data.update({
            "talent_profile_id": profile["id"],
            "headline": profile["headline"],
            "experience": profile["experience"],
            "portfolio_url": profile["portfolio_url"],
            "intro_video_url": profile["intro_video_url"],
            "hourly_rate": profile["hourly_rate"],
            "availability": profile["availability"],
            "status": profile["status"],
            "revision_notes": profile["revision_notes"],
            "submitted_at": profile["submitted_at"],
            "is_profile_ready": profile["is_profile_ready"],
            "bio": user["bio"] or profile["bio"],
        })
    return ProfileResponse(**data, profile_completion=completion, skills=skills)


def _refresh_completion(user_id: str, profile_id: str) -> None:
    """Recompute stored completion from what is on file after an edit."""
    user = db.user.find_unique({"id": user_id})
    profile = db.talent_profile.find_unique({"id": profile_id})
    skill_count = db.talent_skill.count({"talent_id": profile_id})
    values = {name: user[name] for name in PERSONAL_FIELDS}
    values.update({
        "headline": profile["headline"],
        "experience": profile["experience"],
        "portfolio_url": profile["portfolio_url"],
        "intro_video_url": profile["intro_video_url"],
        "has_skills": skill_count > 0,
    })
    db.talent_profile.update({"id": profile_id}, {
        "profile_completion": calculate_profile_completion(values, STORED_PROFILE_FIELDS),
    })


@router.get("/user/profile", response_model=ProfileResponse)
async def get_profile(user: dict = Depends(get_current_user)):
    """Get own profile with skills, status and completion."""
    return build_profile(user["user_id"])


@router.put("/user/profile", response_model=ProfileResponse)
async def update_profile(payload: ProfileUpdate, user: dict = Depends(get_current_user)):
    """Update any subset of personal and talent fields."""
    data = payload.model_dump(exclude_unset=True, mode="json")

    talent_data = {k: data[k] for k in TALENT_UPDATE_FIELDS if k in data}
    if (talent_data or "skill_ids" in data) and user["role"] != "TALENT":
        raise HTTPException(status_code=403, detail="Only talents can update talent profile fields")

    # Reject unknown skills before anything is written
    skill_ids = None
    if data.get("skill_ids") is not None:
        skill_ids = require_skill_ids(data["skill_ids"])

    user_data = {k: data[k] for k in USER_UPDATE_FIELDS if k in data}
    if "first_name" in user_data or "last_name" in user_data:
        current = db.user.find_unique({"id": user["user_id"]})
        user_data["full_name"] = _full_name(
            user_data.get("first_name", current["first_name"]),
            user_data.get("last_name", current["last_name"]),
        ) or current["full_name"]
    if user_data:
        db.user.update({"id": user["user_id"]}, user_data)

    if user["role"] == "TALENT":
        profile = _talent_profile(user["user_id"]) or db.talent_profile.create(
            {"user_id": user["user_id"], "status": "DRAFT"}
        )
        if talent_data:
            db.talent_profile.update({"id": profile["id"]}, talent_data)
        if skill_ids is not None:
            db.talent_skill.replace(
                {"talent_id": profile["id"]},
                [{"talent_id": profile["id"], "skill_id": sid} for sid in skill_ids],
            )
        _refresh_completion(user["user_id"], profile["id"])

    return build_profile(user["user_id"])


@router.post("/user/profile/submit", response_model=ProfileResponse)
async def submit_profile(payload: ProfileSubmit, user: dict = Depends(get_current_talent)):
    """
    Submit the talent profile for admin review.

    Allowed from DRAFT, NEED_REVISION and REJECTED.
    """
    profile = _talent_profile(user["user_id"]) or db.talent_profile.create(
        {"user_id": user["user_id"], "status": "DRAFT"}
    )
    if profile["status"] == "SUBMITTED":
        raise HTTPException(status_code=400, detail="Profile is already submitted and under review")
    if profile["status"] == "APPROVED":
        raise HTTPException(status_code=400, detail="Profile is already approved")

    skill_ids = require_skill_ids(payload.skill_ids)
    data = payload.model_dump(mode="json")
    completion = calculate_profile_completion({**data, "has_skills": bool(skill_ids)})

    db.user.update({"id": user["user_id"]}, {
        "first_name": payload.first_name.strip(),
        "last_name": payload.last_name.strip(),
        "full_name": _full_name(payload.first_name, payload.last_name),
        "country": payload.country,
        "timezone": payload.timezone,
        "bio": payload.bio,
        "phone": payload.phone,
        "location": payload.location,
        "linked_in_url": payload.linked_in_url,
        "github_url": payload.github_url,
    })
    db.talent_profile.update({"id": profile["id"]}, {
        "headline": payload.job_title,
        "bio": payload.bio,
        "experience": payload.experience,
        "portfolio_url": payload.portfolio_url,
        "intro_video_url": payload.intro_video_url,
        "hourly_rate": payload.hourly_rate,
        "availability": data["availability"],
        "status": "SUBMITTED",
        "submitted_at": utcnow(),
        "profile_completion": completion,
        "is_profile_ready": False,
        "revision_notes": None,
    })
    db.talent_skill.replace(
        {"talent_id": profile["id"]},
        [{"talent_id": profile["id"], "skill_id": sid} for sid in skill_ids],
    )

    logger.info("Talent profile %s submitted for review", profile["id"])
    return build_profile(user["user_id"])


@router.get("/user/state", response_model=UserStateResponse)
async def get_user_state(user: dict = Depends(get_current_user)):
    row = db.user.find_unique({"id": user["user_id"]})

    if user["role"] != "TALENT":
        return UserStateResponse(
            role=user["role"], status=None, label="Active", description="",
            redirect_path="/dashboard", can_access_jobs=True,
            onboarding_completed=bool(row["onboarding_completed"]),
        )

    profile = _talent_profile(user["user_id"])
    status = profile["status"] if profile else None
    message = get_status_message(status)
    return UserStateResponse(
        role=user["role"],
        status=status,
        label=message["label"],
        description=message["description"],
        redirect_path=get_redirect_path(status),
        can_access_jobs=can_access_jobs(status),
        onboarding_completed=bool(row["onboarding_completed"]),
    )


@router.post("/user/onboarding-complete", response_model=MessageResponse)
async def onboarding_complete(user: dict = Depends(get_current_user)):
    db.user.update({"id": user["user_id"]}, {"onboarding_completed": True})
    return MessageResponse(message="Onboarding completed")


@router.post("/user/avatar", response_model=UploadResponse)
async def upload_avatar(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """Upload avatar image (JPG/PNG/WEBP, max 5MB)."""
    url = await save_avatar(file)
    db.user.update({"id": user["user_id"]}, {"avatar_url": url})
    return UploadResponse(message="Avatar uploaded successfully", url=url)


@router.post("/user/video", response_model=UploadResponse)
async def upload_video(file: UploadFile = File(...), user: dict = Depends(get_current_talent)):
    """Upload intro video (MP4/WEBM/MOV, max 50MB)."""
    url = await save_video(file)
    profile = _talent_profile(user["user_id"]) or db.talent_profile.create(
        {"user_id": user["user_id"], "status": "DRAFT"}
    )
    db.talent_profile.update({"id": profile["id"]}, {"intro_video_url": url})
    return UploadResponse(message="Video uploaded successfully", url=url)


EXPERIENCE_FIELDS = ("work_history", "education", "languages", "certifications")


def _experience_response(profile: Optional[dict]) -> ExperienceResponse:
    if not profile:
        return ExperienceResponse()
    return ExperienceResponse(**{name: profile[name] or [] for name in EXPERIENCE_FIELDS})


@router.get("/user/profile/experience", response_model=ExperienceResponse)
async def get_experience(user: dict = Depends(get_current_talent)):
    """Work history, education, languages and certifications."""
    return _experience_response(_talent_profile(user["user_id"]))


@router.put("/user/profile/experience", response_model=ExperienceResponse)
async def update_experience(payload: ExperienceUpdate, user: dict = Depends(get_current_talent)):
    """Replace the lists present in the body; the others are kept."""
    data = {k: v or [] for k, v in payload.model_dump(exclude_unset=True, mode="json").items()}
    profile = _talent_profile(user["user_id"]) or db.talent_profile.create(
        {"user_id": user["user_id"], "status": "DRAFT"}
    )
    if data:
        profile = db.talent_profile.update({"id": profile["id"]}, data)
    return _experience_response(profile)


@router.get("/candidate/profile/check", response_model=ReadinessResponse)
async def check_profile_readiness(user: dict = Depends(get_current_talent)):
    """Score readiness for job matching and store the result."""
    return ReadinessResponse(**get_profile_service().check_readiness(user["user_id"]))


# ============================================================
# CLIENT / RECRUITER PROFILE
# ============================================================

def _recruiter_response(user_id: str) -> RecruiterProfileResponse:
    user = db.user.find_unique({"id": user_id})
    profile = db.recruiter_profile.find_unique({"user_id": user_id})
    if not profile:
        profile = db.recruiter_profile.create({"user_id": user_id})
    company = db.company.find_unique({"id": profile["company_id"]}) if profile["company_id"] else None
    return RecruiterProfileResponse(
        id=profile["id"],
        user_id=user_id,
        email=user["email"],
        first_name=profile["first_name"],
        last_name=profile["last_name"],
        position=profile["position"],
        phone=profile["phone"],
        company_id=profile["company_id"],
        company_name=company["name"] if company else None,
    )


@router.get("/profile/recruiter", response_model=RecruiterProfileResponse)
async def get_recruiter_profile(user: dict = Depends(get_current_client)):
    return _recruiter_response(user["user_id"])


@router.put("/profile/recruiter", response_model=RecruiterProfileResponse)
async def update_recruiter_profile(payload: RecruiterProfileUpdate, user: dict = Depends(get_current_client)):
    data = payload.model_dump(exclude_unset=True)
    if data.get("company_id") and not db.company.find_unique({"id": data["company_id"]}):
        raise HTTPException(status_code=404, detail="Company not found")

    db.recruiter_profile.upsert({"user_id": user["user_id"]}, create=data, update=data)
    if "first_name" in data or "last_name" in data:
        profile = db.recruiter_profile.find_unique({"user_id": user["user_id"]})
        name = _full_name(profile["first_name"], profile["last_name"])
        if name:
            db.user.update({"id": user["user_id"]}, {"full_name": name})
    return _recruiter_response(user["user_id"])


@router.post("/client/profile/setup", response_model=RecruiterProfileResponse)
async def setup_client_profile(payload: ClientProfileSetup, user: dict = Depends(get_current_client)):
    """Create or link the client's company by name and fill recruiter fields."""
    company = find_or_create_company(payload.company_name)
    company_fields = {
        k: v for k, v in payload.model_dump(include={"website", "industry", "size", "location", "description"}).items()
        if v is not None
    }
    if company_fields:
        db.company.update({"id": company["id"]}, company_fields)

    recruiter_fields = payload.model_dump(include={"first_name", "last_name", "position", "phone"}, exclude_none=True)
    recruiter_fields["company_id"] = company["id"]
    db.recruiter_profile.upsert({"user_id": user["user_id"]}, create=recruiter_fields, update=recruiter_fields)
    db.user.update({"id": user["user_id"]}, {"onboarding_completed": True})

    logger.info("Client %s linked to company %s", user["user_id"], company["id"])
    return _recruiter_response(user["user_id"])
