"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from monera.api.routes.auth_routes import router as auth_router, csrf_router
from monera.api.routes.profile_routes import router as profile_router
from monera.api.routes.company_routes import router as company_router
from monera.api.routes.skill_routes import router as skill_router
from monera.api.routes.job_routes import router as job_router
from monera.api.routes.application_routes import router as application_router
from monera.api.routes.saved_job_routes import router as saved_job_router
from monera.api.routes.notification_routes import router as notification_router
from monera.api.routes.message_routes import router as message_router
from monera.api.routes.talent_request_routes import (
    router as talent_request_router, alias_router as request_talent_router
)
from monera.api.routes.search_routes import router as search_router
from monera.api.routes.newsletter_routes import router as newsletter_router
from monera.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(csrf_router)
api_router.include_router(profile_router)
api_router.include_router(company_router)
api_router.include_router(skill_router)
api_router.include_router(job_router)
api_router.include_router(application_router)
api_router.include_router(saved_job_router)
api_router.include_router(notification_router)
api_router.include_router(message_router)
api_router.include_router(talent_request_router)
api_router.include_router(request_talent_router)
api_router.include_router(search_router)
api_router.include_router(newsletter_router)
api_router.include_router(admin_router)
