# Application Workflow Service for Revu
# Influencer applications to campaigns and the content review loop that
# makes an application eligible for settlement.

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List
from urllib.parse import urlparse
from datetime import datetime
import logging

from auth.dependencies import CurrentUser
from auth.roles import Permission
from core.errors import Conflict, InvalidTransition, NotEligible, NotFound, ValidationError
from core.money import ensure_positive
from core.transitions import CONTENT_TRANSITIONS, ensure_transition
from database.config import transactional
from database.marketplace_models import (
    Application, ApplicationStatus, Campaign, CampaignStatus, Content, ContentReviewStatus,
)
from services.access import ensure_owner, ensure_owner_or_admin, ensure_permission
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

DECISIONS = {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
REVIEW_OUTCOMES = {ContentReviewStatus.APPROVED, ContentReviewStatus.REJECTED}


def _validate_media_urls(media_urls) -> List[str]:
    if not isinstance(media_urls, (list, tuple)) or not media_urls:
        raise ValidationError("At least one media URL is required")
    for url in media_urls:
        parsed = urlparse(url) if isinstance(url, str) else None
        if not parsed or parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"Invalid media URL: {url}")
    return list(media_urls)


class ApplicationService:
    """
    Application states: PENDING -> APPROVED -> COMPLETED, PENDING -> REJECTED,
    PENDING -> WITHDRAWN. Content: (none) -> SUBMITTED -> APPROVED | REJECTED,
    REJECTED -> SUBMITTED on resubmission.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def get_application(self, application_id: str, for_update: bool = False) -> Application:
        query = self.db.query(Application).filter(Application.id == application_id)
        if for_update:
            query = query.with_for_update()
        application = query.first()
        if not application:
            raise NotFound("Application not found")
        return application

    def get_content(self, content_id: str, for_update: bool = False) -> Content:
        query = self.db.query(Content).filter(Content.id == content_id)
        if for_update:
            query = query.with_for_update()
        content = query.first()
        if not content:
            raise NotFound("Content not found")
        return content

    def list_applications(self, actor: CurrentUser, campaign_id: str, status: Optional[ApplicationStatus] = None) -> List[Application]:
        campaign = self.db.query(Campaign).filter(Campaign.id == campaign_id).first()
        if not campaign:
            raise NotFound("Campaign not found")
        ensure_owner_or_admin(actor, campaign.business_id, "view applications for this campaign")

        query = self.db.query(Application).filter(Application.campaign_id == campaign_id)
        if status:
            query = query.filter(Application.status == status)
        return query.order_by(Application.created_at.desc()).all()

    # =========================================================================
    # APPLICATIONS
    # =========================================================================

    @transactional
    def apply_to_campaign(
        self,
        actor: CurrentUser,
        campaign_id: str,
        message: Optional[str] = None,
        proposed_price: Optional[int] = None,
    ) -> Application:
        """Apply to an active campaign. One application per (campaign, influencer)."""
        ensure_permission(actor, Permission.APPLY_TO_CAMPAIGNS, "apply to campaigns")
        if proposed_price is not None:
            ensure_positive(proposed_price, "proposed_price")

        campaign = self.db.query(Campaign).filter(Campaign.id == campaign_id).first()
        if not campaign:
            raise NotFound("Campaign not found")
        if campaign.status != CampaignStatus.ACTIVE:
            raise NotEligible(f"Campaign is not accepting applications (status '{campaign.status.value}')")

        application = Application(
            campaign_id=campaign.id,
            influencer_id=actor.user_id,
            message=message,
            proposed_price=proposed_price,
            status=ApplicationStatus.PENDING,
        )
        self.db.add(application)
        try:
            self.db.flush()
        except IntegrityError:
            raise Conflict("You have already applied to this campaign")

        self.notifications.notify_application_received(campaign.business_id, campaign.id, campaign.title, application.id)
        logger.info(f"Influencer {actor.user_id} applied to campaign {campaign.id}")
        return application

    @transactional
    def update_application_status(
        self,
        actor: CurrentUser,
        application_id: str,
        status,
        reason: Optional[str] = None,
    ) -> Application:
        """Business owner (or admin) approves or rejects a pending application, exactly once."""
        ensure_permission(actor, Permission.DECIDE_APPLICATIONS, "decide applications")
        try:
            target = ApplicationStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown application status: {status}")
        if target not in DECISIONS:
            raise ValidationError("Applications can only be approved or rejected")

        application = self.get_application(application_id, for_update=True)
        campaign = application.campaign
        ensure_owner_or_admin(actor, campaign.business_id, "decide applications for this campaign")
        ensure_transition("Application", application.status, target)

        # Conditional update so two concurrent decisions cannot both win
        now = datetime.utcnow()
        claimed = self.db.query(Application).filter(
            Application.id == application.id,
            Application.status == ApplicationStatus.PENDING,
        ).update({
            Application.status: target,
            Application.decision_reason: reason,
            Application.decided_at: now,
            Application.decided_by: actor.user_id,
        }, synchronize_session=False)
        if claimed != 1:
            self.db.refresh(application)
            raise InvalidTransition("Application", application.status, target, "already decided")
        self.db.refresh(application)

        self.notifications.notify_application_decided(
            application.influencer_id, campaign.title, application.id,
            approved=target == ApplicationStatus.APPROVED, reason=reason,
        )
        logger.info(f"Application {application.id} {target.value} by {actor.user_id}")
        return application

    @transactional
    def withdraw_application(self, actor: CurrentUser, application_id: str) -> Application:
        ensure_permission(actor, Permission.APPLY_TO_CAMPAIGNS, "withdraw applications")
        application = self.get_application(application_id, for_update=True)
        ensure_owner(actor, application.influencer_id, "withdraw this application")
        ensure_transition("Application", application.status, ApplicationStatus.WITHDRAWN)

        application.status = ApplicationStatus.WITHDRAWN
        application.withdrawn_at = datetime.utcnow()
        return application

    # =========================================================================
    # CONTENT
    # =========================================================================

    @transactional
    def submit_content(
        self,
        actor: CurrentUser,
        application_id: str,
        media_urls: List[str],
        caption: Optional[str] = None,
    ) -> Content:
        """
        Submit (or resubmit after rejection) the deliverable for an approved application.

        Media files are uploaded to storage beforehand; only their URLs arrive here.
        """
        ensure_permission(actor, Permission.SUBMIT_CONTENT, "submit content")
        urls = _validate_media_urls(media_urls)

        application = self.get_application(application_id, for_update=True)
        ensure_owner(actor, application.influencer_id, "submit content for this application")
        if application.status != ApplicationStatus.APPROVED:
            raise NotEligible(f"Content can only be submitted for approved applications (status '{application.status.value}')")

        content = application.content
        current = content.review_status if content else None
        ensure_transition("Content", current, ContentReviewStatus.SUBMITTED, CONTENT_TRANSITIONS)

        now = datetime.utcnow()
        if content is None:
            content = Content(
                application_id=application.id,
                media_urls=urls,
                caption=caption,
                review_status=ContentReviewStatus.SUBMITTED,
                revision_count=0,
                submitted_at=now,
            )
            self.db.add(content)
        else:
            content.media_urls = urls
            content.caption = caption
            content.review_status = ContentReviewStatus.SUBMITTED
            content.revision_count = (content.revision_count or 0) + 1
            content.submitted_at = now
        self.db.flush()

        campaign = application.campaign
        self.notifications.notify_content_submitted(campaign.business_id, content.id, campaign.title)
        logger.info(f"Content {content.id} submitted for application {application.id} (revision {content.revision_count})")
        return content

    @transactional
    def review_content(
        self,
        actor: CurrentUser,
        content_id: str,
        status,
        feedback: Optional[str] = None,
    ) -> Content:
        """Business owner approves content (completing the application) or requests a revision."""
        ensure_permission(actor, Permission.REVIEW_CONTENT, "review content")
        try:
            target = ContentReviewStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown review status: {status}")
        if target not in REVIEW_OUTCOMES:
            raise ValidationError("Content can only be approved or rejected")

        content = self.get_content(content_id, for_update=True)
        application = content.application
        campaign = application.campaign
        ensure_owner(actor, campaign.business_id, "review content for this campaign")
        ensure_transition("Content", content.review_status, target, CONTENT_TRANSITIONS)

        now = datetime.utcnow()
        content.review_status = target
        content.feedback = feedback
        content.reviewed_at = now

        if target == ContentReviewStatus.APPROVED:
            ensure_transition("Application", application.status, ApplicationStatus.COMPLETED)
            application.status = ApplicationStatus.COMPLETED
            application.completed_at = now

        self.notifications.notify_content_reviewed(
            application.influencer_id, content.id, campaign.title,
            approved=target == ContentReviewStatus.APPROVED, feedback=feedback,
        )
        logger.info(f"Content {content.id} {target.value} by {actor.user_id}")
        return content
