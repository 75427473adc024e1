# Notifications Router for Revu
# Lets users read the notifications the lifecycle services write

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from database.config import get_db
from schemas.lifecycle import NotificationResponse
from auth.dependencies import CurrentUser, get_current_user
from services.notification_service import get_notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Get user's notifications.
    """
    notifications = get_notification_service(db).list_for_user(current_user.user_id, unread_only)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post("/{notification_id}/read")
def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Mark a notification as read.
    """
    if not get_notification_service(db).mark_read(notification_id, current_user.user_id):
        raise HTTPException(status_code=404, detail="Notification not found")

    db.commit()

    return {"status": "success"}
