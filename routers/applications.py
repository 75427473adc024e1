# Applications Router for Revu
# Application decisions, withdrawals and the content review loop

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database.config import get_db
from schemas.lifecycle import (
    ApplicationDecision,
    ApplicationResponse,
    ContentSubmit,
    ContentReview,
    ContentResponse,
)
from auth.roles import UserType
from auth.dependencies import CurrentUser
from auth.decorators import require_user_type
from services.application_service import ApplicationService

router = APIRouter(tags=["Applications"])


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def decide_application(
    application_id: str,
    decision: ApplicationDecision,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS, UserType.ADMIN))
):
    """Approve or reject a pending application. A decision cannot be changed."""
    application = ApplicationService(db).update_application_status(
        current_user, application_id, decision.status, decision.reason
    )
    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationResponse)
def withdraw_application(
    application_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
):
    application = ApplicationService(db).withdraw_application(current_user, application_id)
    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/content", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def submit_content(
    application_id: str,
    content_data: ContentSubmit,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
):
    """Submit or resubmit the deliverable for an approved application."""
    content = ApplicationService(db).submit_content(
        current_user, application_id, content_data.media_urls, content_data.caption
    )
    return ContentResponse.model_validate(content)


@router.patch("/content/{content_id}/review", response_model=ContentResponse)
def review_content(
    content_id: str,
    review: ContentReview,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS))
):
    """Approving content completes the application and makes it eligible for settlement."""
    content = ApplicationService(db).review_content(current_user, content_id, review.status, review.feedback)
    return ContentResponse.model_validate(content)
