"""
Notification Service - in-app notifications.

Creating a notification is a side effect of other operations (new
application, status change, message, review decision) and must never fail
the caller, so errors are logged and None is returned.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from monera.db.repository import db

logger = logging.getLogger(__name__)


def create_notification(
    user_id: str,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
) -> Optional[dict]:
    try:
        return db.notification.create({
            "user_id": user_id,
            "type": type,
            "title": title,
            "message": message,
            "link": link,
            "is_read": False,
        })
    except SQLAlchemyError:
        logger.exception("Error creating notification for user %s", user_id)
        return None


def unread_count(user_id: str) -> int:
    return db.notification.count({"user_id": user_id, "is_read": False})
