"""
Monera Talent Marketplace
Job board, applicant tracking and admin review workflows.

Architecture:
- PostgreSQL (SQLAlchemy): users, profiles, jobs, applications, messaging
- FastAPI routers under /api
- JWT auth via bearer header or http-only cookie
"""

__version__ = "1.0.0"
