"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Any, Dict, Union
from datetime import datetime
from enum import Enum
from urllib.parse import urlparse


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    talent = "TALENT"
    client = "CLIENT"
    super_admin = "SUPER_ADMIN"
    quality_admin = "QUALITY_ADMIN"
    support_admin = "SUPPORT_ADMIN"
    analyst = "ANALYST"


class UserStatus(str, Enum):
    active = "ACTIVE"
    suspended = "SUSPENDED"


class TalentStatus(str, Enum):
    draft = "DRAFT"
    submitted = "SUBMITTED"
    need_revision = "NEED_REVISION"
    approved = "APPROVED"
    rejected = "REJECTED"


class JobStatus(str, Enum):
    draft = "DRAFT"
    published = "PUBLISHED"
    closed = "CLOSED"
    archived = "ARCHIVED"


class ApplicationStatus(str, Enum):
    pending = "PENDING"
    reviewing = "REVIEWING"
    shortlisted = "SHORTLISTED"
    accepted = "ACCEPTED"
    rejected = "REJECTED"


class TalentRequestStatus(str, Enum):
    pending = "PENDING"
    contacted = "CONTACTED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class Availability(str, Enum):
    open = "Open"
    busy = "Busy"


class NotificationType(str, Enum):
    application = "application"
    message = "message"
    job = "job"
    talent_request = "talent_request"
    general = "general"


class EngagementType(str, Enum):
    hourly = "Hourly"
    fixed = "Fixed"


class HoursPerWeek(str, Enum):
    under_30 = "Less than 30 hrs/week"
    over_30 = "More than 30 hrs/week"


class JobDuration(str, Enum):
    under_1_month = "Less than 1 month"
    one_to_three = "1-3 months"
    three_to_six = "3-6 months"
    over_six = "6+ months"


class ExperienceLevel(str, Enum):
    entry = "Entry"
    intermediate = "Intermediate"
    expert = "Expert"


class ProjectType(str, Enum):
    one_time = "One-time project"
    ongoing = "Ongoing project"


def _check_url(value: Optional[str]) -> Optional[str]:
    """Empty string clears the field; anything else must be an http(s) URL."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL")
    return value


def _clean_skill_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("Skill name cannot be blank")
    return value


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.talent
    company_name: Optional[str] = Field(None, max_length=200)

    @field_validator("role")
    @classmethod
    def public_roles_only(cls, v):
        if v not in (UserRole.talent, UserRole.client):
            raise ValueError("Role must be TALENT or CLIENT")
        return v

class VerifyEmailRequest(BaseModel):
    email: EmailStr
    code: str

class ResendCodeRequest(BaseModel):
    email: EmailStr

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)

class UserSummary(BaseModel):
    id: str
    email: str
    role: str
    status: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email_verified: bool = False
    onboarding_completed: bool = False

class RegisterResponse(BaseModel):
    message: str
    user: UserSummary

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary

class MeResponse(UserSummary):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    talent_status: Optional[str] = None
    company_id: Optional[str] = None

class CsrfTokenResponse(BaseModel):
    success: bool = True
    token: str


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = None
    timezone: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=5000)
    phone: Optional[str] = None
    location: Optional[str] = None
    linked_in_url: Optional[str] = None
    github_url: Optional[str] = None
    headline: Optional[str] = Field(None, max_length=200)
    experience: Optional[str] = None
    portfolio_url: Optional[str] = None
    intro_video_url: Optional[str] = None
    hourly_rate: Optional[float] = Field(None, gt=0)
    availability: Optional[Availability] = None
    skill_ids: Optional[List[str]] = None

    @field_validator("linked_in_url", "github_url", "portfolio_url", "intro_video_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class ProfileSubmit(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    job_title: str = Field(..., min_length=1, max_length=200)
    country: str = Field(..., min_length=1)
    timezone: str = Field(..., min_length=1)
    bio: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    experience: str = Field(..., min_length=1)
    intro_video_url: str
    skill_ids: List[str] = Field(..., min_length=1)
    portfolio_url: Optional[str] = None
    linked_in_url: Optional[str] = None
    github_url: Optional[str] = None
    hourly_rate: Optional[float] = Field(None, gt=0)
    availability: Optional[Availability] = None

    @field_validator("linked_in_url", "github_url", "portfolio_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

    @field_validator("intro_video_url")
    @classmethod
    def video_required(cls, v):
        v = _check_url(v)
        if not v:
            raise ValueError("Intro video URL is required")
        return v

class SkillResponse(BaseModel):
    id: str
    name: str
    category: Optional[str] = None

class ProfileResponse(BaseModel):
    id: str
    email: str
    role: str
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    linked_in_url: Optional[str] = None
    github_url: Optional[str] = None
    avatar_url: Optional[str] = None
    onboarding_completed: bool = False
    talent_profile_id: Optional[str] = None
    headline: Optional[str] = None
    experience: Optional[str] = None
    portfolio_url: Optional[str] = None
    intro_video_url: Optional[str] = None
    hourly_rate: Optional[float] = None
    availability: Optional[str] = None
    status: Optional[str] = None
    revision_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    is_profile_ready: bool = False
    profile_completion: int = 0
    skills: List[SkillResponse] = []

class UserStateResponse(BaseModel):
    role: str
    status: Optional[str] = None
    label: str
    description: str
    redirect_path: str
    can_access_jobs: bool
    onboarding_completed: bool

class ReadinessResponse(BaseModel):
    is_ready: bool
    completion: int
    missing_fields: List[str] = []
    scores: Dict[str, float] = {}

class UploadResponse(BaseModel):
    message: str
    url: str

class WorkHistoryItem(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    company: Optional[str] = Field(None, max_length=200)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None

class EducationItem(BaseModel):
    institution: str = Field(..., min_length=1, max_length=200)
    degree: Optional[str] = Field(None, max_length=200)
    field: Optional[str] = Field(None, max_length=200)
    start_year: Optional[str] = None
    end_year: Optional[str] = None

class LanguageItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    proficiency: str = Field("Conversational", max_length=50)

class CertificationItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    issuer: Optional[str] = Field(None, max_length=200)
    year: Optional[str] = None
    url: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class ExperienceUpdate(BaseModel):
    """Lists left out of the request keep their stored value; [] clears one."""
    work_history: Optional[List[WorkHistoryItem]] = None
    education: Optional[List[EducationItem]] = None
    languages: Optional[List[LanguageItem]] = None
    certifications: Optional[List[CertificationItem]] = None

class ExperienceResponse(BaseModel):
    work_history: List[WorkHistoryItem] = []
    education: List[EducationItem] = []
    languages: List[LanguageItem] = []
    certifications: List[CertificationItem] = []

class RecruiterProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    company_id: Optional[str] = None

class RecruiterProfileResponse(BaseModel):
    id: str
    user_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None

class ClientProfileSetup(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    @field_validator("website")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None

    @field_validator("website", "logo_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None

    @field_validator("website", "logo_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class CompanyResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    job_count: Optional[int] = None
    recruiter_count: Optional[int] = None
    created_at: datetime

class CompanyListResponse(BaseModel):
    companies: List[CompanyResponse]
    pagination: Pagination


# ============================================================
# SKILL SCHEMAS
# ============================================================

class SkillCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return _clean_skill_name(v)

class SkillUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return _clean_skill_name(v)


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    requirements: Optional[str] = None
    scope_of_work: Optional[str] = None
    location: Optional[str] = None
    remote: bool = False
    salary_min: Optional[int] = Field(None, gt=0)
    salary_max: Optional[int] = Field(None, gt=0)
    currency: str = "USD"
    engagement_type: Optional[EngagementType] = None
    hours_per_week: Optional[HoursPerWeek] = None
    duration: Optional[JobDuration] = None
    experience_level: Optional[ExperienceLevel] = None
    project_type: Optional[ProjectType] = None
    category: Optional[str] = "Development & IT"
    company_id: Optional[str] = None
    skill_ids: List[str] = []

    @model_validator(mode="after")
    def salary_range(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_max < self.salary_min:
            raise ValueError("salary_max must be greater than or equal to salary_min")
        return self

class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    requirements: Optional[str] = None
    scope_of_work: Optional[str] = None
    location: Optional[str] = None
    remote: Optional[bool] = None
    salary_min: Optional[int] = Field(None, gt=0)
    salary_max: Optional[int] = Field(None, gt=0)
    currency: Optional[str] = None
    engagement_type: Optional[EngagementType] = None
    hours_per_week: Optional[HoursPerWeek] = None
    duration: Optional[JobDuration] = None
    experience_level: Optional[ExperienceLevel] = None
    project_type: Optional[ProjectType] = None
    category: Optional[str] = None
    company_id: Optional[str] = None
    status: Optional[JobStatus] = None
    skill_ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def salary_range(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_max < self.salary_min:
            raise ValueError("salary_max must be greater than or equal to salary_min")
        return self

class JobStatusUpdate(BaseModel):
    status: JobStatus

class CompanySummary(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    location: Optional[str] = None

class RecruiterSummary(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: str

class JobResponse(BaseModel):
    id: str
    title: str
    description: str
    requirements: Optional[str] = None
    scope_of_work: Optional[str] = None
    location: Optional[str] = None
    remote: bool = False
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    currency: str = "USD"
    engagement_type: Optional[str] = None
    hours_per_week: Optional[str] = None
    duration: Optional[str] = None
    experience_level: Optional[str] = None
    project_type: Optional[str] = None
    category: Optional[str] = None
    status: str
    company_id: Optional[str] = None
    recruiter_id: str
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    company: Optional[CompanySummary] = None
    recruiter: Optional[RecruiterSummary] = None
    skills: List[SkillResponse] = []
    match_count: Optional[int] = None
    match_score: Optional[float] = None

class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    pagination: Pagination


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=2000)
    expected_rate: Optional[float] = Field(None, gt=0)
    resume_url: Optional[str] = None

    @field_validator("resume_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class ApplicationUpdate(BaseModel):
    status: Optional[ApplicationStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)
    cover_letter: Optional[str] = Field(None, max_length=2000)
    resume_url: Optional[str] = None

    @field_validator("resume_url")
    @classmethod
    def validate_urls(cls, v):
        return _check_url(v)

class ApplicationStatusUpdate(BaseModel):
    status: Optional[ApplicationStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)

class ApplicationJobSummary(BaseModel):
    id: str
    title: str
    status: str
    recruiter_id: str
    company: Optional[CompanySummary] = None

class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    candidate_id: str
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    cover_letter: Optional[str] = None
    expected_rate: Optional[float] = None
    resume_url: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    job: Optional[ApplicationJobSummary] = None

class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    pagination: Pagination


# ============================================================
# CANDIDATE SEARCH SCHEMAS
# ============================================================

class CandidateUser(BaseModel):
    id: str
    email: str

class CandidateResponse(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    hourly_rate: Optional[float] = None
    availability: Optional[str] = None
    portfolio_url: Optional[str] = None
    linked_in_url: Optional[str] = None
    github_url: Optional[str] = None
    avatar_url: Optional[str] = None
    user: CandidateUser
    skills: List[SkillResponse] = []
    application_count: int = 0

class CandidateListResponse(BaseModel):
    candidates: List[CandidateResponse]
    pagination: Pagination


# ============================================================
# SAVED JOB SCHEMAS
# ============================================================

class SavedJobCreate(BaseModel):
    job_id: Optional[str] = None

class SavedJobsResponse(BaseModel):
    count: int
    job_ids: List[str]
    jobs: Optional[List[JobResponse]] = None


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationCreate(BaseModel):
    user_id: Optional[str] = None
    type: NotificationType = NotificationType.general
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    link: Optional[str] = None

class NotificationUpdate(BaseModel):
    is_read: bool = True

class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool
    created_at: datetime

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


# ============================================================
# MESSAGING SCHEMAS
# ============================================================

class ChatMessageCreate(BaseModel):
    conversation_id: Optional[str] = None
    talent_id: Optional[str] = None
    recruiter_id: Optional[str] = None
    job_id: Optional[str] = None
    content: str = Field(..., min_length=1, max_length=5000)

class ChatMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    is_read: bool
    created_at: datetime

class ConversationSummary(BaseModel):
    id: str
    talent_id: str
    recruiter_id: str
    job_id: Optional[str] = None
    counterpart_id: Optional[str] = None
    counterpart_name: Optional[str] = None
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    updated_at: datetime

class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]

class ConversationDetailResponse(BaseModel):
    conversation: ConversationSummary
    messages: List[ChatMessage]


# ============================================================
# TALENT REQUEST SCHEMAS
# ============================================================

class TalentRequestCreate(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    company: Optional[str] = Field(None, max_length=200)
    talent_type: str = Field(..., min_length=1, max_length=200)
    budget: Union[str, float]
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("budget")
    @classmethod
    def budget_as_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Budget is required")
            return v
        if v <= 0:
            raise ValueError("Budget must be positive")
        return str(int(v)) if float(v).is_integer() else str(v)

class TalentRequestUpdate(BaseModel):
    client_name: Optional[str] = Field(None, min_length=1, max_length=200)
    company: Optional[str] = Field(None, max_length=200)
    talent_type: Optional[str] = Field(None, min_length=1, max_length=200)
    budget: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)
    status: Optional[TalentRequestStatus] = None

class TalentRequestResponse(BaseModel):
    id: str
    client_name: str
    email: str
    company: Optional[str] = None
    talent_type: str
    budget: str
    notes: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

class TalentRequestListResponse(BaseModel):
    talent_requests: List[TalentRequestResponse]
    pagination: Pagination


# ============================================================
# NEWSLETTER SCHEMAS
# ============================================================

class NewsletterSubscribe(BaseModel):
    email: EmailStr


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class ReviewApprove(BaseModel):
    notes: Optional[str] = None

class ReviewReject(BaseModel):
    reason: str = Field(..., min_length=1)

class ReviewRevision(BaseModel):
    notes: str = Field(..., min_length=1)

class TalentReviewItem(BaseModel):
    id: str
    user_id: str
    email: str
    full_name: Optional[str] = None
    headline: Optional[str] = None
    status: str
    profile_completion: int = 0
    is_profile_ready: bool = False
    submitted_at: Optional[datetime] = None
    updated_at: datetime
    skills: List[SkillResponse] = []

class TalentReviewListResponse(BaseModel):
    talents: List[TalentReviewItem]
    total: int

class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole
    full_name: Optional[str] = Field(None, max_length=200)
    company_name: Optional[str] = Field(None, max_length=200)

class AdminUserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    status: Optional[UserStatus] = None

class RoleUpdate(BaseModel):
    role: UserRole

class SuspendRequest(BaseModel):
    reason: Optional[str] = None

class AdminUserResponse(BaseModel):
    id: str
    email: str
    role: str
    status: str
    full_name: Optional[str] = None
    email_verified: bool = False
    talent_status: Optional[str] = None
    created_at: datetime

class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    pagination: Pagination

class AuditLogResponse(BaseModel):
    id: str
    admin_id: str
    admin_email: Optional[str] = None
    action: str
    target_type: str
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    pagination: Pagination

class UserStatsResponse(BaseModel):
    count: int
    by_role: Dict[str, int]

class JobStatsResponse(BaseModel):
    total: int
    active: int

class CountResponse(BaseModel):
    count: int

class TalentRequestStatsResponse(BaseModel):
    count: int
    by_status: Dict[str, int]


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
