"""
Notification Routes

GET /notifications - Own notifications, newest first, with unread count
POST /notifications - Create a notification (self, or anyone for admins)
PUT /notifications/{notification_id} - Mark read/unread
POST /notifications/read-all - Mark all as read
DELETE /notifications/{notification_id} - Delete a notification
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user
from monera.core.rbac import is_admin
from monera.db.repository import db
from monera.services.notification_service import unread_count
from monera.schemas.schemas import (
    NotificationCreate, NotificationUpdate, NotificationResponse, NotificationListResponse,
    MessageResponse
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _get_own_notification(notification_id: str, user: dict) -> dict:
    notification = db.notification.find_unique({"id": notification_id, "user_id": user["user_id"]})
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: dict = Depends(get_current_user),
):
    where = {"user_id": user["user_id"]}
    if unread_only:
        where["is_read"] = False
    rows = db.notification.find_many(where, order_by="-created_at", take=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse(**n) for n in rows],
        unread_count=unread_count(user["user_id"]),
    )


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification_route(payload: NotificationCreate, user: dict = Depends(get_current_user)):
    target = payload.user_id or user["user_id"]
    if target != user["user_id"] and not is_admin(user["role"]):
        raise HTTPException(status_code=403, detail="You can only create notifications for yourself")
    if not db.user.find_unique({"id": target}):
        raise HTTPException(status_code=404, detail="User not found")

    # Direct insert so errors surface to the caller
    notification = db.notification.create({
        "user_id": target,
        "type": payload.type.value,
        "title": payload.title,
        "message": payload.message,
        "link": payload.link,
        "is_read": False,
    })
    return NotificationResponse(**notification)


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    updated = db.notification.update_many({"user_id": user["user_id"], "is_read": False}, {"is_read": True})
    return MessageResponse(message=f"{updated} notification(s) marked as read")


@router.put("/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: str,
    payload: Optional[NotificationUpdate] = None,
    user: dict = Depends(get_current_user),
):
    _get_own_notification(notification_id, user)
    notification = db.notification.update({"id": notification_id}, {"is_read": payload.is_read if payload else True})
    return NotificationResponse(**notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    _get_own_notification(notification_id, user)
    db.notification.delete({"id": notification_id})
    return MessageResponse(message="Notification deleted")
