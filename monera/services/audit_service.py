"""
Audit Service - record admin actions.

Actions: TALENT_APPROVED, TALENT_REJECTED, TALENT_REVISION_REQUESTED,
USER_CREATED, USER_UPDATED, USER_ROLE_CHANGED, USER_SUSPENDED,
USER_UNSUSPENDED, USER_DELETED, JOB_STATUS_CHANGED, JOB_DELETED,
APPLICATION_UPDATED, APPLICATION_DELETED, SKILL_CREATED, SKILL_UPDATED,
SKILL_DELETED, SETTINGS_UPDATED.
"""

import logging
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError

from monera.db.repository import db

logger = logging.getLogger(__name__)


def log_audit(
    admin_id: str,
    action: str,
    target_type: str,
    target_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Optional[dict]:
    """Write an audit entry. Failures are logged, never raised."""
    try:
        return db.audit_log.create({
            "admin_id": admin_id,
            "action": action,
            "target_type": target_type,
            "target_id": target_id,
            "details": jsonable_encoder(details) if details else None,
        })
    except SQLAlchemyError:
        logger.exception("Failed to write audit log %s for %s %s", action, target_type, target_id)
        return None
