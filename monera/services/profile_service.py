"""
Profile Service - completion, readiness and job matching for talents.

PROFILE COMPLETION:
Share of non-empty fields in a fixed list, as a rounded percentage.
- Submission form: 16 fields
- Stored profile: 13 fields (8 personal fields when there is no talent profile)

READINESS (max 100, ready at >= 80):
- Headline with at least 5 words: 15
- Skills: 20 x min(count / 3, 1)
- Bio: 20 x min(length / 100, 1)
- Hourly rate > 0: 15
- Portfolio URL: 10
- Availability set: 10
- First and last name: 10

BEST MATCH (per published job):
- Skill overlap: 60 x matching / max(job skills, talent skills)
- Rate fit: 20 x max(0, 1 - |rate - mid| / mid), or 10 when the job has no range
- Availability "Open": 10
- Profile completion x 0.1
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from monera.db.repository import db
from monera.db.schema import utcnow

logger = logging.getLogger(__name__)

READY_THRESHOLD = 80
BEST_MATCH_CANDIDATE_POOL = 100

SUBMISSION_FIELDS = (
    "first_name", "last_name", "job_title", "country", "timezone", "experience",
    "has_skills", "bio", "phone", "location", "portfolio_url", "linked_in_url",
    "github_url", "intro_video_url", "hourly_rate", "availability",
)

PERSONAL_FIELDS = (
    "full_name", "country", "timezone", "bio", "phone", "location",
    "linked_in_url", "github_url",
)

STORED_PROFILE_FIELDS = PERSONAL_FIELDS + (
    "headline", "experience", "portfolio_url", "intro_video_url", "has_skills",
)

STATUS_PRIORITY = {
    "APPROVED": 5,
    "SUBMITTED": 4,
    "NEED_REVISION": 3,
    "REJECTED": 2,
    "PENDING": 1,
    "DRAFT": 0,
}

STATUS_MESSAGES = {
    "DRAFT": (
        "Draft",
        "Your profile is still being completed. Finish your profile to submit for review.",
    ),
    "SUBMITTED": (
        "Under Review",
        "Your profile has been submitted and is being reviewed by the Monera team. "
        "The review process usually takes 24 hours or faster. You can explore available "
        "job openings while waiting for the review results.",
    ),
    "NEED_REVISION": (
        "Needs Revision",
        "Your profile needs some updates. Please review the feedback and make the necessary changes.",
    ),
    "APPROVED": (
        "Approved",
        "Your profile has been approved! You can now browse and apply to jobs.",
    ),
    "REJECTED": (
        "Rejected",
        "Your profile was not approved. Please contact support for more information.",
    ),
}

READINESS_LABELS = (
    "Full name", "Headline", "Skills", "Experience", "Hourly rate", "Portfolio", "Availability",
)


# ============================================================
# COMPLETION
# ============================================================

def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value > 0
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


def calculate_profile_completion(fields: Dict[str, object], field_names: Sequence[str] = SUBMISSION_FIELDS) -> int:
    """Rounded percentage of `field_names` that are non-empty in `fields`."""
    if not field_names:
        return 0
    filled = sum(1 for name in field_names if _is_filled(fields.get(name)))
    return round(filled / len(field_names) * 100)


def stored_profile_completion(user: dict, talent_profile: Optional[dict], skill_count: int) -> int:
    """Stored completion when non-zero, otherwise recomputed from what is on file."""
    if talent_profile and talent_profile.get("profile_completion"):
        return int(talent_profile["profile_completion"])

    values = {name: user.get(name) for name in PERSONAL_FIELDS}
    if not talent_profile:
        return calculate_profile_completion(values, PERSONAL_FIELDS)

    values.update({
        "headline": talent_profile.get("headline"),
        "experience": talent_profile.get("experience"),
        "portfolio_url": talent_profile.get("portfolio_url"),
        "intro_video_url": talent_profile.get("intro_video_url"),
        "has_skills": skill_count > 0,
    })
    return calculate_profile_completion(values, STORED_PROFILE_FIELDS)


# ============================================================
# READINESS
# ============================================================

def calculate_profile_readiness(profile: Optional[dict], skill_count: int) -> dict:
    """
    Score how ready a talent profile is for matching.

    `profile` is the talent profile merged with the user's first/last name.
    """
    if not profile:
        return {
            "is_ready": False,
            "completion": 0,
            "missing_fields": list(READINESS_LABELS),
            "scores": {key: 0 for key in ("headline", "skills", "experience", "rate", "portfolio", "availability", "name")},
        }

    headline = profile.get("headline") or ""
    bio = profile.get("bio") or ""
    hourly_rate = profile.get("hourly_rate") or 0
    has_name = bool(profile.get("first_name")) and bool(profile.get("last_name"))
    headline_ok = len(headline.split()) >= 5

    scores = {
        "headline": 15 if headline_ok else 0,
        "skills": min(skill_count / 3, 1) * 20,
        "experience": min(len(bio) / 100, 1) * 20,
        "rate": 15 if hourly_rate > 0 else 0,
        "portfolio": 10 if profile.get("portfolio_url") else 0,
        "availability": 10 if profile.get("availability") else 0,
        "name": 10 if has_name else 0,
    }

    missing = []
    if not has_name:
        missing.append("Full name")
    if not headline_ok:
        missing.append("Headline (min 5 words)")
    if skill_count < 3:
        missing.append("Skills (min 3)")
    if len(bio) < 100:
        missing.append("Experience/Bio (min 100 chars)")
    if hourly_rate <= 0:
        missing.append("Hourly rate")
    if not profile.get("portfolio_url"):
        missing.append("Portfolio URL")
    if not profile.get("availability"):
        missing.append("Availability")

    total = sum(scores.values())
    return {
        "is_ready": total >= READY_THRESHOLD,
        "completion": round(total),
        "missing_fields": missing,
        "scores": scores,
    }


# ============================================================
# MATCHING
# ============================================================

def score_job_match(
    profile: dict,
    profile_skill_ids: Iterable[str],
    job: dict,
    job_skill_ids: Iterable[str],
) -> float:
    profile_skills = set(profile_skill_ids)
    job_skills = set(job_skill_ids)

    skill_score = 0.0
    if job_skills:
        matching = len(profile_skills & job_skills)
        skill_score = matching / max(len(job_skills), len(profile_skills)) * 60

    rate = profile.get("hourly_rate") or 0
    rate_score = 0.0
    if job.get("salary_min") and job.get("salary_max") and rate > 0:
        mid = (job["salary_min"] + job["salary_max"]) / 2
        rate_score = max(0.0, (1 - abs(rate - mid) / mid) * 20)
    elif rate > 0:
        rate_score = 10.0

    availability_score = 10.0 if profile.get("availability") == "Open" else 0.0
    completion_score = (profile.get("profile_completion") or 0) / 100 * 10

    return skill_score + rate_score + availability_score + completion_score


# ============================================================
# STATUS HELPERS
# ============================================================

def can_access_jobs(status: Optional[str]) -> bool:
    return status in ("SUBMITTED", "APPROVED")


def get_status_message(status: Optional[str]) -> Dict[str, str]:
    label, description = STATUS_MESSAGES.get(
        status, ("Unknown", "Profile status is unknown. Please contact support.")
    )
    return {"label": label, "description": description}


def get_redirect_path(status: Optional[str]) -> str:
    if status == "APPROVED":
        return "/user/jobs"
    if status in ("SUBMITTED", "NEED_REVISION", "REJECTED"):
        return "/user/status"
    return "/user/onboarding"


def pick_best_talent_profile(records: List[dict]) -> Optional[dict]:
    """Ready profiles first, then by status priority, then most recently updated."""
    if not records:
        return None
    return max(
        records,
        key=lambda r: (
            bool(r.get("is_profile_ready")),
            STATUS_PRIORITY.get(r.get("status"), -1),
            r.get("updated_at") or datetime.min,
        ),
    )


# ============================================================
# SERVICE
# ============================================================

class ProfileService:
    """Database-backed profile operations."""

    def get_talent_skill_ids(self, talent_profile_id: str) -> List[str]:
        return [row["skill_id"] for row in db.talent_skill.find_many({"talent_id": talent_profile_id})]

    def get_job_skill_map(self, job_ids: List[str]) -> Dict[str, List[str]]:
        """job id -> skill ids, one query for all jobs."""
        result: Dict[str, List[str]] = {jid: [] for jid in job_ids}
        if job_ids:
            for row in db.job_skill.find_many({"job_id": list(job_ids)}):
                result[row["job_id"]].append(row["skill_id"])
        return result

    def check_readiness(self, user_id: str) -> dict:
        """Compute readiness and persist completion, flag and validation time."""
        user = db.user.find_unique({"id": user_id})
        profile = db.talent_profile.find_unique({"user_id": user_id})
        if not user or not profile:
            return calculate_profile_readiness(None, 0)

        skill_count = len(self.get_talent_skill_ids(profile["id"]))
        merged = {**profile, "first_name": user.get("first_name"), "last_name": user.get("last_name")}
        result = calculate_profile_readiness(merged, skill_count)

        db.talent_profile.update({"id": profile["id"]}, {
            "profile_completion": result["completion"],
            "is_profile_ready": result["is_ready"],
            "last_validated_at": utcnow(),
        })
        logger.info("Readiness for user %s: %s (ready=%s)", user_id, result["completion"], result["is_ready"])
        return result

    def get_best_match_jobs(self, user_id: str, limit: int = 20) -> List[dict]:
        """Published jobs scored against the talent, best first. Empty unless the profile is ready."""
        profile = db.talent_profile.find_unique({"user_id": user_id})
        if not profile or not profile["is_profile_ready"]:
            return []

        profile_skill_ids = self.get_talent_skill_ids(profile["id"])
        applied = {row["job_id"] for row in db.application.find_many({"candidate_id": user_id})}
        jobs = db.job.find_many({"status": "PUBLISHED"}, order_by="-created_at", take=BEST_MATCH_CANDIDATE_POOL)
        jobs = [job for job in jobs if job["id"] not in applied]
        job_skills = self.get_job_skill_map([job["id"] for job in jobs])

        scored = []
        for job in jobs:
            score = score_job_match(profile, profile_skill_ids, job, job_skills[job["id"]])
            scored.append({**job, "match_score": round(score, 2)})

        scored.sort(key=lambda j: j["match_score"], reverse=True)
        return scored[:limit]


def get_profile_service() -> ProfileService:
    """Get profile service instance."""
    return ProfileService()
