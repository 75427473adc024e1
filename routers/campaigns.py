# Campaigns Router for Revu
# Campaign creation, review, status changes and influencer applications

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.marketplace_models import ApplicationStatus
from schemas.lifecycle import (
    CampaignCreate,
    CampaignUpdate,
    CampaignStatusUpdate,
    CampaignReview,
    FeeRateOverride,
    CampaignResponse,
    ApplicationCreate,
    ApplicationResponse,
)
from auth.roles import UserType
from auth.dependencies import CurrentUser, get_current_user
from auth.decorators import require_user_type, require_admin
from services.campaign_service import CampaignService
from services.application_service import ApplicationService

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


# ============================================================================
# BUSINESS ENDPOINTS
# ============================================================================

@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
def create_campaign(
    campaign_data: CampaignCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS, UserType.ADMIN))
):
    """Create a campaign in draft. The platform fee rate defaults to the configured rate."""
    campaign = CampaignService(db).create_campaign(current_user, campaign_data.model_dump())
    return CampaignResponse.model_validate(campaign)


@router.get("/{campaign_id}", response_model=CampaignResponse)
def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    campaign = CampaignService(db).get_campaign(campaign_id)
    return CampaignResponse.model_validate(campaign)


@router.patch("/{campaign_id}", response_model=CampaignResponse)
def update_campaign(
    campaign_id: str,
    campaign_data: CampaignUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS))
):
    """Edit a draft or pending campaign that has not been paid for."""
    campaign = CampaignService(db).update_campaign(current_user, campaign_id, campaign_data.model_dump(exclude_unset=True))
    return CampaignResponse.model_validate(campaign)


@router.patch("/{campaign_id}/status", response_model=CampaignResponse)
def update_campaign_status(
    campaign_id: str,
    status_data: CampaignStatusUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS, UserType.ADMIN))
):
    """
    Submit, pause, resume, complete or cancel a campaign.
    Going live happens only through payment confirmation.
    """
    campaign = CampaignService(db).update_status(current_user, campaign_id, status_data.status)
    return CampaignResponse.model_validate(campaign)


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@router.post("/{campaign_id}/review", response_model=CampaignResponse)
def review_campaign(
    campaign_id: str,
    review: CampaignReview,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin())
):
    campaign = CampaignService(db).review_campaign(current_user, campaign_id, review.approved, review.feedback)
    return CampaignResponse.model_validate(campaign)


@router.patch("/{campaign_id}/fee-rate", response_model=CampaignResponse)
def override_fee_rate(
    campaign_id: str,
    override: FeeRateOverride,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin())
):
    """Change the platform fee rate of an unpaid campaign with no payment in flight."""
    campaign = CampaignService(db).override_fee_rate(current_user, campaign_id, override.platform_fee_rate)
    return CampaignResponse.model_validate(campaign)


# ============================================================================
# APPLICATIONS
# ============================================================================

@router.post("/{campaign_id}/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def apply_to_campaign(
    campaign_id: str,
    application_data: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
):
    application = ApplicationService(db).apply_to_campaign(
        current_user,
        campaign_id,
        message=application_data.message,
        proposed_price=application_data.proposed_price,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/{campaign_id}/applications", response_model=List[ApplicationResponse])
def list_campaign_applications(
    campaign_id: str,
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS, UserType.ADMIN))
):
    applications = ApplicationService(db).list_applications(current_user, campaign_id, status_filter)
    return [ApplicationResponse.model_validate(a) for a in applications]
