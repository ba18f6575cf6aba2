"""
Database schema - SQLAlchemy Core table definitions.

Tables:
- users: accounts, personal profile, verification/reset state
- talent_profiles, talent_skills: job-seeker profile and skills
- recruiter_profiles, companies: employer side
- skills, jobs, job_skills, applications, saved_jobs
- notifications, conversations, messages
- talent_requests, audit_logs, system_settings, newsletter_subscribers

Ids are UUID strings generated by the repository layer.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData,
    String, Table, Text, UniqueConstraint
)

logger = logging.getLogger(__name__)

metadata = MetaData()


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _timestamps():
    return [
        Column("created_at", DateTime, nullable=False, default=utcnow),
        Column("updated_at", DateTime, nullable=False, default=utcnow),
    ]


users = Table(
    "users", metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255)),
    Column("role", String(20), nullable=False, default="TALENT"),
    Column("status", String(20), nullable=False, default="ACTIVE"),
    Column("full_name", String(200)),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("country", String(100)),
    Column("timezone", String(100)),
    Column("bio", Text),
    Column("phone", String(50)),
    Column("location", String(200)),
    Column("linked_in_url", String(500)),
    Column("github_url", String(500)),
    Column("avatar_url", String(500)),
    Column("google_id", String(100)),
    Column("onboarding_completed", Boolean, nullable=False, default=False),
    Column("email_verified", Boolean, nullable=False, default=False),
    Column("verification_code", String(6)),
    Column("verification_code_expires_at", DateTime),
    Column("verification_attempts", Integer, nullable=False, default=0),
    Column("last_code_sent_at", DateTime),
    Column("reset_token", String(64)),
    Column("reset_token_expires_at", DateTime),
    *_timestamps(),
)

companies = Table(
    "companies", metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("website", String(500)),
    Column("logo_url", String(500)),
    Column("industry", String(100)),
    Column("size", String(50)),
    Column("location", String(200)),
    *_timestamps(),
)

talent_profiles = Table(
    "talent_profiles", metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("headline", String(200)),
    Column("bio", Text),
    Column("experience", Text),
    Column("portfolio_url", String(500)),
    Column("intro_video_url", String(500)),
    Column("hourly_rate", Float),
    Column("availability", String(10)),
    Column("work_history", JSON),
    Column("education", JSON),
    Column("languages", JSON),
    Column("certifications", JSON),
    Column("status", String(20), nullable=False, default="DRAFT"),
    Column("revision_notes", Text),
    Column("submitted_at", DateTime),
    Column("profile_completion", Integer, nullable=False, default=0),
    Column("is_profile_ready", Boolean, nullable=False, default=False),
    Column("last_validated_at", DateTime),
    *_timestamps(),
)

recruiter_profiles = Table(
    "recruiter_profiles", metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="SET NULL")),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("position", String(100)),
    Column("phone", String(50)),
    *_timestamps(),
)

skills = Table(
    "skills", metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("category", String(100)),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

talent_skills = Table(
    "talent_skills", metadata,
    Column("talent_id", String(36), ForeignKey("talent_profiles.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", String(36), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)

jobs = Table(
    "jobs", metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False),
    Column("requirements", Text),
    Column("scope_of_work", Text),
    Column("location", String(200)),
    Column("remote", Boolean, nullable=False, default=False),
    Column("salary_min", Integer),
    Column("salary_max", Integer),
    Column("currency", String(10), nullable=False, default="USD"),
    Column("engagement_type", String(20)),
    Column("hours_per_week", String(50)),
    Column("duration", String(50)),
    Column("experience_level", String(20)),
    Column("project_type", String(50)),
    Column("category", String(100), default="Development & IT"),
    Column("status", String(20), nullable=False, default="DRAFT"),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="SET NULL")),
    Column("recruiter_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("published_at", DateTime),
    *_timestamps(),
)

job_skills = Table(
    "job_skills", metadata,
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", String(36), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)

applications = Table(
    "applications", metadata,
    Column("id", String(36), primary_key=True),
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("candidate_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("cover_letter", Text),
    Column("expected_rate", Float),
    Column("resume_url", String(500)),
    Column("status", String(20), nullable=False, default="PENDING"),
    Column("notes", Text),
    *_timestamps(),
    UniqueConstraint("job_id", "candidate_id", name="uq_application_job_candidate"),
)

saved_jobs = Table(
    "saved_jobs", metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    UniqueConstraint("user_id", "job_id", name="uq_saved_job"),
)

notifications = Table(
    "notifications", metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("type", String(30), nullable=False, default="general"),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("link", String(500)),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

conversations = Table(
    "conversations", metadata,
    Column("id", String(36), primary_key=True),
    Column("talent_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("recruiter_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="SET NULL")),
    *_timestamps(),
)

messages = Table(
    "messages", metadata,
    Column("id", String(36), primary_key=True),
    Column("conversation_id", String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
    Column("sender_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("content", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

talent_requests = Table(
    "talent_requests", metadata,
    Column("id", String(36), primary_key=True),
    Column("client_name", String(200), nullable=False),
    Column("email", String(255), nullable=False),
    Column("company", String(200)),
    Column("talent_type", String(200), nullable=False),
    Column("budget", String(100), nullable=False),
    Column("notes", Text),
    Column("status", String(20), nullable=False, default="PENDING"),
    *_timestamps(),
)

audit_logs = Table(
    "audit_logs", metadata,
    Column("id", String(36), primary_key=True),
    Column("admin_id", String(36), nullable=False),
    Column("action", String(100), nullable=False),
    Column("target_type", String(50), nullable=False),
    Column("target_id", String(36)),
    Column("details", JSON),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

system_settings = Table(
    "system_settings", metadata,
    Column("key", String(100), primary_key=True),
    Column("value", JSON),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
)

newsletter_subscribers = Table(
    "newsletter_subscribers", metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)


def init_schema(engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Database schema ready (%d tables)", len(metadata.tables))
