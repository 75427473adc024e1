# Campaign Lifecycle Service for Revu
# Owns campaign status transitions, fee computation and the payment gate on activation.

from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime
import logging

from auth.dependencies import CurrentUser
from auth.roles import Permission
from config.app_config import PLATFORM_FEE_RATE
from core.errors import Conflict, InvalidTransition, NotFound, ValidationError
from core.money import apply_rate, ensure_positive, to_rate
from core.transitions import CAMPAIGN_MANUAL_TRANSITIONS, ensure_transition, is_terminal
from database.config import transactional
from database.marketplace_models import (
    Campaign, CampaignStatus, Payment, PaymentStatus, PaymentType,
)
from services.access import ensure_owner, ensure_permission
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {CampaignStatus.DRAFT, CampaignStatus.PENDING}
EDITABLE_FIELDS = ("title", "description", "budget", "start_date", "end_date")


def _validate_dates(start_date, end_date):
    if not isinstance(start_date, datetime) or not isinstance(end_date, datetime):
        raise ValidationError("start_date and end_date are required")
    if start_date >= end_date:
        raise ValidationError("end_date must be later than start_date")


def _validate_title(title):
    if not title or not str(title).strip():
        raise ValidationError("Campaign title is required")


class CampaignService:
    """
    Campaign state machine:
    DRAFT -> PENDING -> APPROVED -> ACTIVE -> COMPLETED, ACTIVE <-> PAUSED,
    CANCELLED from any non-terminal state. ACTIVE always implies is_paid.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    # =========================================================================
    # READS
    # =========================================================================

    def get_campaign(self, campaign_id: str, for_update: bool = False) -> Campaign:
        query = self.db.query(Campaign).filter(Campaign.id == campaign_id)
        if for_update:
            query = query.with_for_update()
        campaign = query.first()
        if not campaign:
            raise NotFound("Campaign not found")
        return campaign

    @staticmethod
    def required_payment_amount(campaign: Campaign) -> int:
        return campaign.required_payment_amount

    def has_pending_payment(self, campaign_id: str) -> bool:
        return self.db.query(Payment.id).filter(
            Payment.campaign_id == campaign_id,
            Payment.type == PaymentType.CAMPAIGN,
            Payment.status == PaymentStatus.PENDING,
        ).first() is not None

    # =========================================================================
    # BUSINESS OPERATIONS
    # =========================================================================

    @transactional
    def create_campaign(self, actor: CurrentUser, data: dict) -> Campaign:
        """Create a campaign in DRAFT after validating budget, fee rate and dates."""
        ensure_permission(actor, Permission.CREATE_CAMPAIGNS, "create campaigns")

        _validate_title(data.get("title"))
        budget = ensure_positive(data.get("budget"), "budget")
        rate = data.get("platform_fee_rate")
        rate = to_rate(PLATFORM_FEE_RATE if rate is None else rate)
        _validate_dates(data.get("start_date"), data.get("end_date"))

        campaign = Campaign(
            business_id=actor.user_id,
            title=data["title"].strip(),
            description=data.get("description"),
            budget=budget,
            platform_fee_rate=rate,
            status=CampaignStatus.DRAFT,
            is_paid=False,
            start_date=data["start_date"],
            end_date=data["end_date"],
        )
        self.db.add(campaign)
        self.db.flush()

        logger.info(f"Campaign {campaign.id} created by {actor.user_id} (budget={budget}, fee_rate={rate})")
        return campaign

    @transactional
    def update_campaign(self, actor: CurrentUser, campaign_id: str, data: dict) -> Campaign:
        """Owner edits, only while the campaign is DRAFT/PENDING and unpaid."""
        ensure_permission(actor, Permission.MANAGE_OWN_CAMPAIGNS, "edit campaigns")
        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        if not changes:
            raise ValidationError("No editable fields supplied")
        if "title" in changes:
            _validate_title(changes["title"])
        if "budget" in changes:
            ensure_positive(changes["budget"], "budget")

        campaign = self.get_campaign(campaign_id, for_update=True)
        ensure_owner(actor, campaign.business_id, "edit this campaign")

        if campaign.status not in EDITABLE_STATUSES or campaign.is_paid:
            raise Conflict(f"Campaign can no longer be edited (status '{campaign.status.value}')")
        if "budget" in changes and self.has_pending_payment(campaign.id):
            raise Conflict("Budget cannot change while a payment is pending")

        _validate_dates(changes.get("start_date", campaign.start_date), changes.get("end_date", campaign.end_date))

        for field, value in changes.items():
            setattr(campaign, field, value.strip() if field == "title" else value)
        return campaign

    @transactional
    def update_status(self, actor: CurrentUser, campaign_id: str, new_status) -> Campaign:
        """
        Owner/admin status change through the restricted transition table.
        Resuming a paused campaign goes through the same paid check as activation.
        """
        try:
            target = CampaignStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown campaign status: {new_status}")

        campaign = self.get_campaign(campaign_id, for_update=True)
        if actor.is_admin:
            ensure_permission(actor, Permission.OVERRIDE_CAMPAIGNS, "change campaign status")
        else:
            ensure_permission(actor, Permission.MANAGE_OWN_CAMPAIGNS, "change campaign status")
            ensure_owner(actor, campaign.business_id, "change this campaign's status")

        ensure_transition("Campaign", campaign.status, target, CAMPAIGN_MANUAL_TRANSITIONS)

        if target == CampaignStatus.ACTIVE:
            self.activate(campaign)
        else:
            self._set_status(campaign, target)

        logger.info(f"Campaign {campaign.id} moved to {target.value} by {actor.user_id}")
        return campaign

    # =========================================================================
    # ADMIN OPERATIONS
    # =========================================================================

    @transactional
    def review_campaign(self, actor: CurrentUser, campaign_id: str, approved: bool, feedback: Optional[str] = None) -> Campaign:
        """Admin review: DRAFT/PENDING -> APPROVED (awaiting payment) or PENDING (needs changes)."""
        ensure_permission(actor, Permission.REVIEW_CAMPAIGNS, "review campaigns")

        campaign = self.get_campaign(campaign_id, for_update=True)
        target = CampaignStatus.APPROVED if approved else CampaignStatus.PENDING

        if campaign.status not in EDITABLE_STATUSES:
            raise InvalidTransition("Campaign", campaign.status, target, "only draft or pending campaigns can be reviewed")

        # A pending campaign sent back for changes stays pending
        if campaign.status != target:
            self._set_status(campaign, target)

        campaign.review_feedback = feedback
        campaign.reviewed_at = datetime.utcnow()
        campaign.reviewed_by = actor.user_id

        self.notifications.notify_campaign_reviewed(campaign.business_id, campaign.id, approved, feedback)
        logger.info(f"Campaign {campaign.id} reviewed by admin {actor.user_id}: {'approved' if approved else 'needs changes'}")
        return campaign

    @transactional
    def override_fee_rate(self, actor: CurrentUser, campaign_id: str, rate) -> Campaign:
        """Admin fee-rate override. Only before any payment is in flight; never touches is_paid."""
        ensure_permission(actor, Permission.OVERRIDE_CAMPAIGNS, "override campaign fee rates")
        new_rate = to_rate(rate)

        campaign = self.get_campaign(campaign_id, for_update=True)
        if campaign.is_paid or is_terminal(campaign.status):
            raise Conflict("Fee rate can only change on an unpaid, open campaign")
        if self.has_pending_payment(campaign.id):
            raise Conflict("Fee rate cannot change while a payment is pending")

        logger.info(f"Admin {actor.user_id} changed fee rate of campaign {campaign.id}: {campaign.platform_fee_rate} -> {new_rate}")
        campaign.platform_fee_rate = new_rate
        return campaign

    # =========================================================================
    # SYSTEM OPERATIONS (payment processor only)
    # =========================================================================

    @transactional
    def activate_campaign(self, campaign_id: str) -> Campaign:
        campaign = self.get_campaign(campaign_id, for_update=True)
        return self.activate(campaign)

    def activate(self, campaign: Campaign) -> Campaign:
        """Move a paid campaign to ACTIVE and persist its platform fee."""
        if campaign.status == CampaignStatus.ACTIVE:
            return campaign
        if not campaign.is_paid:
            raise InvalidTransition("Campaign", campaign.status, CampaignStatus.ACTIVE, "campaign has not been paid")

        first_activation = campaign.activated_at is None
        self._set_status(campaign, CampaignStatus.ACTIVE)
        campaign.platform_fee = apply_rate(campaign.budget, campaign.platform_fee_rate)
        if first_activation:
            campaign.activated_at = datetime.utcnow()
            self.notifications.notify_campaign_activated(campaign.business_id, campaign.id, campaign.title)
        return campaign

    def mark_unpaid(self, campaign: Campaign) -> Campaign:
        """Refund path: drop the paid flag and pull a live campaign back to PENDING."""
        if campaign.status == CampaignStatus.COMPLETED:
            raise InvalidTransition("Campaign", campaign.status, CampaignStatus.PENDING, "completed campaigns cannot be refunded")
        if campaign.status in (CampaignStatus.APPROVED, CampaignStatus.ACTIVE, CampaignStatus.PAUSED):
            self._set_status(campaign, CampaignStatus.PENDING)
        campaign.is_paid = False
        return campaign

    def _set_status(self, campaign: Campaign, target: CampaignStatus):
        ensure_transition("Campaign", campaign.status, target)
        if target == CampaignStatus.ACTIVE and not campaign.is_paid:
            raise InvalidTransition("Campaign", campaign.status, target, "campaign has not been paid")

        campaign.status = target
        now = datetime.utcnow()
        if target == CampaignStatus.COMPLETED:
            campaign.completed_at = now
        elif target == CampaignStatus.CANCELLED:
            campaign.cancelled_at = now
