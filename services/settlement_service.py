# Settlement Engine for Revu
# Influencers batch their completed, approved work into a payout request;
# admins approve or reject it and record the bank transfer.

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
import logging

from auth.dependencies import CurrentUser
from auth.roles import Permission
from config.app_config import INFLUENCER_FEE_RATE
from core.errors import Conflict, InvalidTransition, NotEligible, NotFound, NothingToSettle, ValidationError
from core.money import split_fee, to_rate
from core.transitions import ensure_transition
from database.config import transactional
from database.marketplace_models import (
    Application, ApplicationStatus, Content, ContentReviewStatus,
    Payment, PaymentMethod, PaymentStatus, PaymentType,
    Settlement, SettlementItem, SettlementStatus,
)
from services.access import ensure_permission
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class SettlementService:
    """
    Settlement states: REQUESTED -> APPROVED -> PAID, REQUESTED -> REJECTED.

    An application is claimed by at most one live settlement through a
    conditional update on applications.settlement_id; rejecting the
    settlement releases the claim.
    """

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    # =========================================================================
    # READS
    # =========================================================================

    def _get(self, settlement_id: str, for_update: bool = False) -> Settlement:
        query = self.db.query(Settlement).filter(Settlement.id == settlement_id)
        if for_update:
            query = query.with_for_update()
        settlement = query.first()
        if not settlement:
            raise NotFound("Settlement not found")
        return settlement

    def get_settlement(self, actor: CurrentUser, settlement_id: str) -> Settlement:
        settlement = self._get(settlement_id)
        if not actor.is_admin and settlement.influencer_id != actor.user_id:
            raise NotFound("Settlement not found")
        return settlement

    def list_settlements(self, actor: CurrentUser, status: Optional[SettlementStatus] = None) -> List[Settlement]:
        query = self.db.query(Settlement)
        if actor.is_admin:
            ensure_permission(actor, Permission.PROCESS_SETTLEMENTS, "view settlements")
        else:
            ensure_permission(actor, Permission.REQUEST_SETTLEMENT, "view settlements")
            query = query.filter(Settlement.influencer_id == actor.user_id)
        if status:
            query = query.filter(Settlement.status == status)
        return query.order_by(Settlement.created_at.desc()).all()

    def eligible_applications(self, influencer_id: str, application_ids: Optional[List[str]] = None) -> List[Application]:
        """Completed applications with approved content that no live settlement has claimed."""
        query = self.db.query(Application).join(Content, Content.application_id == Application.id).filter(
            Application.influencer_id == influencer_id,
            Application.status == ApplicationStatus.COMPLETED,
            Application.settlement_id.is_(None),
            Content.review_status == ContentReviewStatus.APPROVED,
        )
        if application_ids:
            query = query.filter(Application.id.in_(application_ids))
        return query.order_by(Application.completed_at).all()

    # =========================================================================
    # INFLUENCER OPERATIONS
    # =========================================================================

    @transactional
    def request_settlement(
        self,
        actor: CurrentUser,
        application_ids: Optional[List[str]] = None,
        bank_account: Optional[dict] = None,
    ) -> Settlement:
        """
        Request a payout for completed work.

        Without application_ids every eligible application is included; with
        them, each listed application must be eligible.
        """
        ensure_permission(actor, Permission.REQUEST_SETTLEMENT, "request settlements")
        if not isinstance(bank_account, dict) or not bank_account:
            raise ValidationError("Bank account details are required")
        requested = list(dict.fromkeys(application_ids or []))

        applications = self.eligible_applications(actor.user_id, requested or None)
        if not applications:
            raise NothingToSettle("No completed work is available for settlement")
        if requested and len(applications) != len(requested):
            eligible_ids = {a.id for a in applications}
            missing = [a_id for a_id in requested if a_id not in eligible_ids]
            raise NotEligible(f"Applications not eligible for settlement: {', '.join(missing)}")

        rate = to_rate(INFLUENCER_FEE_RATE)
        settlement = Settlement(
            influencer_id=actor.user_id,
            status=SettlementStatus.REQUESTED,
            bank_account=bank_account,
        )
        for application in applications:
            gross = application.agreed_price
            fee, net = split_fee(gross, rate)
            settlement.items.append(SettlementItem(
                application_id=application.id,
                campaign_title=application.campaign.title,
                gross_amount=gross,
                fee=fee,
                amount=net,
            ))
        settlement.total_amount = settlement.items_total()
        if settlement.total_amount <= 0:
            raise NothingToSettle("Settlement total would be zero after fees")

        self.db.add(settlement)
        self.db.flush()

        ids = [a.id for a in applications]
        claimed = self.db.query(Application).filter(
            Application.id.in_(ids),
            Application.influencer_id == actor.user_id,
            Application.settlement_id.is_(None),
        ).update({Application.settlement_id: settlement.id}, synchronize_session=False)
        if claimed != len(ids):
            logger.warning(f"Settlement claim conflict for {actor.user_id}: claimed {claimed} of {len(ids)}")
            raise Conflict("Some applications were claimed by another settlement request")

        logger.info(f"Settlement {settlement.id} requested by {actor.user_id}: {len(ids)} items, total {settlement.total_amount}")
        return settlement

    # =========================================================================
    # ADMIN OPERATIONS
    # =========================================================================

    def _claim_status(self, settlement: Settlement, target: SettlementStatus, updates: dict):
        ensure_transition("Settlement", settlement.status, target)
        expected = settlement.status
        updates = dict(updates, status=target)
        claimed = self.db.query(Settlement).filter(
            Settlement.id == settlement.id,
            Settlement.status == expected,
        ).update(updates, synchronize_session=False)
        self.db.refresh(settlement)
        if claimed != 1:
            raise InvalidTransition("Settlement", settlement.status, target, "already processed")

    @transactional
    def process_settlement(self, actor: CurrentUser, settlement_id: str, approved: bool, notes: Optional[str] = None) -> Settlement:
        """Approve (marks the items settled) or reject (releases them) a REQUESTED settlement."""
        ensure_permission(actor, Permission.PROCESS_SETTLEMENTS, "process settlements")
        settlement = self._get(settlement_id, for_update=True)
        target = SettlementStatus.APPROVED if approved else SettlementStatus.REJECTED

        now = datetime.utcnow()
        self._claim_status(settlement, target, {
            "admin_notes": notes,
            "processed_by": actor.user_id,
            "processed_at": now,
        })

        claimed_apps = self.db.query(Application).filter(Application.settlement_id == settlement.id)
        if approved:
            claimed_apps.update({Application.settled_at: now}, synchronize_session=False)
        else:
            claimed_apps.update({Application.settlement_id: None}, synchronize_session=False)
        self.db.expire_all()

        self.notifications.notify_settlement_processed(
            settlement.influencer_id, settlement.id, settlement.total_amount, approved, notes,
        )
        logger.info(f"Settlement {settlement.id} {target.value} by admin {actor.user_id}")
        return settlement

    @transactional
    def mark_settlement_paid(self, actor: CurrentUser, settlement_id: str, payout_reference: Optional[str] = None) -> Settlement:
        """Record the bank transfer for an approved settlement as an APPROVED settlement payment."""
        ensure_permission(actor, Permission.PROCESS_SETTLEMENTS, "pay out settlements")
        settlement = self._get(settlement_id, for_update=True)

        now = datetime.utcnow()
        self._claim_status(settlement, SettlementStatus.PAID, {
            "paid_at": now,
            "payout_reference": payout_reference,
        })

        self.db.add(Payment(
            order_id=f"SETTLEMENT_{settlement.id}",
            type=PaymentType.SETTLEMENT,
            settlement_id=settlement.id,
            payer_id=actor.user_id,
            recipient_id=settlement.influencer_id,
            amount=settlement.total_amount,
            method=PaymentMethod.BANK_TRANSFER,
            status=PaymentStatus.APPROVED,
            payment_key=payout_reference,
            approved_at=now,
            metadata_json={"bank_account": settlement.bank_account},
        ))
        try:
            self.db.flush()
        except IntegrityError:
            raise Conflict("Settlement has already been paid out")

        self.notifications.notify_settlement_paid(settlement.influencer_id, settlement.id, settlement.total_amount)
        logger.info(f"Settlement {settlement.id} paid out by admin {actor.user_id}: {settlement.total_amount}")
        return settlement
