# Payment Processor for Revu
# Campaign payments, SuperChats and offline payments. Confirmation is
# idempotent: the gateway may call back more than once for the same order.

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from datetime import datetime
import logging
import time
import uuid

from auth.dependencies import CurrentUser
from auth.roles import Permission
from config.app_config import APP_URL, MIN_SUPERCHAT_AMOUNT, SUPERCHAT_FEE_RATE
from core.errors import (
    AmountMismatch, Conflict, Internal, InvalidTransition, NotEligible, NotFound,
    PaymentDeclined, ValidationError,
)
from core.money import ensure_positive, to_rate
from core.payment_gateway import GatewayError, TossPaymentsGateway
from database.config import transactional
from database.marketplace_models import (
    Campaign, CampaignStatus, Payment, PaymentMethod, PaymentStatus, PaymentType,
    RevenueSource, RevenueType,
)
from database.models import User, UserType
from services.access import ensure_owner, ensure_permission
from services.campaign_service import CampaignService
from services.notification_service import NotificationService
from services.revenue_service import RevenueService

logger = logging.getLogger(__name__)

# Submitted campaigns only; a draft has to go to review first
PAYABLE_STATUSES = {CampaignStatus.PENDING, CampaignStatus.APPROVED}

# Toss refuses a repeated confirm or cancel with these codes
ALREADY_CONFIRMED_CODES = {"ALREADY_PROCESSED_PAYMENT"}
ALREADY_CANCELLED_CODES = {"ALREADY_CANCELED_PAYMENT"}


def generate_order_id() -> str:
    return f"ORDER_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class PaymentService:
    """
    Payment states: PENDING -> APPROVED | FAILED | CANCELLED, APPROVED -> CANCELLED (refund).

    Confirming a campaign payment marks the campaign paid, activates it and
    records the platform fee in one unit of work.
    """

    def __init__(
        self,
        db: Session,
        gateway: Optional[TossPaymentsGateway] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.notifications = notifications or NotificationService(db)
        self.campaigns = CampaignService(db, self.notifications)
        self.revenue = RevenueService(db)

    # =========================================================================
    # READS
    # =========================================================================

    def _get(self, payment_id: str, for_update: bool = False) -> Payment:
        query = self.db.query(Payment).filter(Payment.id == payment_id)
        if for_update:
            query = query.with_for_update()
        payment = query.first()
        if not payment:
            raise NotFound("Payment not found")
        return payment

    def get_by_order_id(self, order_id: str, for_update: bool = False) -> Payment:
        query = self.db.query(Payment).filter(Payment.order_id == order_id)
        if for_update:
            query = query.with_for_update()
        payment = query.first()
        if not payment:
            raise NotFound("Payment not found")
        return payment

    def get_payment(self, actor: CurrentUser, payment_id: str) -> Payment:
        payment = self._get(payment_id)
        if not actor.is_admin and actor.user_id not in (payment.payer_id, payment.recipient_id):
            raise NotFound("Payment not found")
        return payment

    def list_payments(
        self,
        actor: CurrentUser,
        type: Optional[PaymentType] = None,
        status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Payment], int]:
        """Own payments (sent or received) for users, every payment for admins."""
        ensure_permission(actor, Permission.VIEW_OWN_PAYMENTS, "view payments")
        query = self.db.query(Payment)
        if not actor.is_admin:
            query = query.filter(or_(Payment.payer_id == actor.user_id, Payment.recipient_id == actor.user_id))
        if type:
            query = query.filter(Payment.type == type)
        if status:
            query = query.filter(Payment.status == status)

        total = query.count()
        items = query.order_by(Payment.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def checkout_request(self, payment: Payment) -> dict:
        """Payload the client hands to the checkout widget."""
        if payment.type == PaymentType.CAMPAIGN and payment.campaign:
            order_name = f"Campaign: {payment.campaign.title}"
        else:
            order_name = "SuperChat"
        return {
            "order_id": payment.order_id,
            "amount": payment.amount,
            "order_name": order_name,
            "success_url": f"{APP_URL}/payments/callback/success",
            "fail_url": f"{APP_URL}/payments/callback/fail",
        }

    # =========================================================================
    # CREATION
    # =========================================================================

    def _insert(self, payment: Payment) -> Payment:
        self.db.add(payment)
        try:
            self.db.flush()
        except IntegrityError:
            raise Conflict(f"Order id {payment.order_id} already exists")
        return payment

    def _payable_campaign(self, campaign_id: str) -> Campaign:
        campaign = self.campaigns.get_campaign(campaign_id, for_update=True)
        if campaign.is_paid:
            raise Conflict("Campaign is already paid")
        if campaign.status not in PAYABLE_STATUSES:
            raise NotEligible(f"Campaign cannot be paid for (status '{campaign.status.value}')")
        return campaign

    @transactional
    def create_payment(self, actor: CurrentUser, campaign_id: str, amount: int, method=PaymentMethod.CARD) -> Payment:
        """Open a PENDING payment for exactly budget + platform fee."""
        ensure_permission(actor, Permission.PAY_CAMPAIGNS, "pay for campaigns")
        ensure_positive(amount)
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {method}")
        if method == PaymentMethod.OFFLINE:
            raise ValidationError("Offline payments are recorded by an admin")

        campaign = self._payable_campaign(campaign_id)
        ensure_owner(actor, campaign.business_id, "pay for this campaign")

        required = CampaignService.required_payment_amount(campaign)
        if amount != required:
            raise AmountMismatch(f"Payment amount {amount} does not match the required {required}")

        payment = self._insert(Payment(
            order_id=generate_order_id(),
            type=PaymentType.CAMPAIGN,
            campaign_id=campaign.id,
            payer_id=actor.user_id,
            amount=amount,
            method=method,
            status=PaymentStatus.PENDING,
            metadata_json={"campaign_title": campaign.title, "budget": campaign.budget},
        ))
        logger.info(f"Payment {payment.order_id} opened for campaign {campaign.id}: {amount}")
        return payment

    @transactional
    def create_superchat(self, actor: CurrentUser, creator_id: str, amount: int, message: Optional[str] = None) -> Payment:
        ensure_permission(actor, Permission.SEND_SUPERCHAT, "send SuperChats")
        ensure_positive(amount)
        if amount < MIN_SUPERCHAT_AMOUNT:
            raise ValidationError(f"SuperChat amount must be at least {MIN_SUPERCHAT_AMOUNT}")
        if creator_id == actor.user_id:
            raise ValidationError("You cannot send a SuperChat to yourself")

        creator = self.db.query(User).filter(User.id == creator_id).first()
        if not creator or not creator.is_active:
            raise NotFound("Creator not found")
        if creator.user_type != UserType.INFLUENCER:
            raise NotEligible("SuperChats can only be sent to influencers")

        # Rate is pinned at creation so a config change never re-prices an open order
        rate = to_rate(SUPERCHAT_FEE_RATE)
        payment = self._insert(Payment(
            order_id=generate_order_id(),
            type=PaymentType.SUPERCHAT,
            payer_id=actor.user_id,
            recipient_id=creator.id,
            amount=amount,
            method=PaymentMethod.CARD,
            status=PaymentStatus.PENDING,
            message=message,
            metadata_json={"fee_rate": str(rate)},
        ))
        logger.info(f"SuperChat {payment.order_id} opened from {actor.user_id} to {creator.id}: {amount}")
        return payment

    @transactional
    def record_offline_payment(self, actor: CurrentUser, campaign_id: str, reference: Optional[str] = None) -> Payment:
        """
        Admin records a bank/offline payment for a campaign.

        The payment is created for the exact required amount and confirmed through
        the normal path, so the campaign is never marked paid without a Payment row.
        """
        ensure_permission(actor, Permission.RECORD_OFFLINE_PAYMENTS, "record offline payments")
        campaign = self._payable_campaign(campaign_id)
        required = CampaignService.required_payment_amount(campaign)

        payment = self._insert(Payment(
            order_id=generate_order_id(),
            type=PaymentType.CAMPAIGN,
            campaign_id=campaign.id,
            payer_id=campaign.business_id,
            amount=required,
            method=PaymentMethod.OFFLINE,
            status=PaymentStatus.PENDING,
            metadata_json={"recorded_by": actor.user_id, "reference": reference},
        ))
        logger.info(f"Admin {actor.user_id} recorded offline payment {payment.order_id} for campaign {campaign.id}")
        return self.confirm_payment(payment.order_id, reference or f"OFFLINE_{payment.order_id}", required)

    # =========================================================================
    # GATEWAY CALLBACKS
    # =========================================================================

    def _claim(self, payment_id: str, expected: PaymentStatus, updates: dict) -> bool:
        """Conditional status change; False when another request already moved the payment."""
        claimed = self.db.query(Payment).filter(
            Payment.id == payment_id,
            Payment.status == expected,
        ).update(updates, synchronize_session=False)
        return claimed == 1

    def _claim_pending(self, payment_id: str, updates: dict) -> bool:
        return self._claim(payment_id, PaymentStatus.PENDING, updates)

    def _already_applied(self, error: GatewayError, payment_key: str, codes: set, expected: dict) -> bool:
        """
        True when the gateway refused a repeated call because an earlier one
        went through, e.g. our commit failed after Toss captured the money.
        The gateway's own record must match what we were about to write.
        """
        if not error.declined or error.code not in codes:
            return False
        try:
            remote = self.gateway.get_payment(payment_key)
        except GatewayError as e:
            raise Internal("Payment gateway unavailable, please retry") from e
        return all(remote.get(field) == value for field, value in expected.items())

    def _decline(self, payment: Payment, error: GatewayError) -> Payment:
        self._claim_pending(payment.id, {
            Payment.status: PaymentStatus.FAILED,
            Payment.failed_at: datetime.utcnow(),
            Payment.fail_reason: str(error),
        })
        self.db.refresh(payment)
        logger.warning(f"Gateway declined {payment.order_id}: {error}")
        return payment

    @transactional(retry=False)
    def confirm_payment(self, order_id: str, payment_key: str, amount: int) -> Payment:
        """
        Confirm a payment after the gateway's success callback.

        Returns the payment unchanged when it is already APPROVED. A gateway
        decline leaves the payment FAILED and is returned to the caller.
        Never retried on a dropped connection; a redelivered callback finds the
        capture on the gateway's side and records it.
        """
        if not payment_key:
            raise ValidationError("payment_key is required")
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("amount must be an integer amount in minor units")

        payment = self.get_by_order_id(order_id, for_update=True)
        if payment.status == PaymentStatus.APPROVED:
            return payment
        if payment.status != PaymentStatus.PENDING:
            raise InvalidTransition("Payment", payment.status, PaymentStatus.APPROVED)
        if payment.amount != amount:
            logger.warning(f"Amount mismatch confirming {order_id}: expected {payment.amount}, got {amount}")
            raise AmountMismatch(f"Payment amount {amount} does not match the order amount {payment.amount}")

        campaign = None
        if payment.type == PaymentType.CAMPAIGN:
            campaign = self.campaigns.get_campaign(payment.campaign_id, for_update=True)
            if campaign.is_paid:
                raise Conflict("Campaign is already paid by another payment")
            if campaign.status not in PAYABLE_STATUSES:
                raise NotEligible(f"Campaign cannot be paid for (status '{campaign.status.value}')")
            required = CampaignService.required_payment_amount(campaign)
            if payment.amount != required:
                raise AmountMismatch(f"Payment amount {payment.amount} does not match the required {required}")

        if self.gateway is not None and payment.method != PaymentMethod.OFFLINE:
            try:
                self.gateway.confirm(payment_key, order_id, amount)
            except GatewayError as e:
                if self._already_applied(e, payment_key, ALREADY_CONFIRMED_CODES, {
                    "status": "DONE", "orderId": order_id, "totalAmount": amount,
                }):
                    logger.info(f"Gateway had already captured {order_id}, recording the approval")
                elif not e.declined:
                    raise Internal("Payment gateway unavailable, please retry") from e
                else:
                    return self._decline(payment, e)

        now = datetime.utcnow()
        if not self._claim_pending(payment.id, {
            Payment.status: PaymentStatus.APPROVED,
            Payment.approved_at: now,
            Payment.payment_key: payment_key,
        }):
            # Lost the race to a concurrent confirmation; its result stands
            self.db.refresh(payment)
            logger.info(f"Payment {order_id} already settled by a concurrent request ({payment.status.value})")
            return payment
        self.db.refresh(payment)

        if campaign is not None:
            campaign.is_paid = True
            self.campaigns.activate(campaign)
            self.revenue.record_revenue(
                RevenueSource.CAMPAIGN_PAYMENT, payment.id,
                gross_amount=campaign.budget,
                fee_rate=campaign.platform_fee_rate,
                revenue_type=RevenueType.PLATFORM_FEE,
                occurred_at=now,
            )
        elif payment.type == PaymentType.SUPERCHAT:
            entry = self.revenue.record_revenue(
                RevenueSource.SUPERCHAT, payment.id,
                gross_amount=payment.amount,
                fee_rate=(payment.metadata_json or {}).get("fee_rate", SUPERCHAT_FEE_RATE),
                revenue_type=RevenueType.CREATOR_EARNING,
                beneficiary_id=payment.recipient_id,
                occurred_at=now,
            )
            self.notifications.notify_superchat_received(payment.recipient_id, payment.id, entry.net_amount, payment.message)

        logger.info(f"Payment {order_id} approved ({payment.type.value}, {payment.amount})")
        return payment

    @transactional
    def fail_payment(self, order_id: str, reason: Optional[str] = None) -> Payment:
        """Gateway fail callback. Only a PENDING payment changes; anything else is returned as-is."""
        payment = self.get_by_order_id(order_id, for_update=True)
        if payment.status != PaymentStatus.PENDING:
            return payment
        self._claim_pending(payment.id, {
            Payment.status: PaymentStatus.FAILED,
            Payment.failed_at: datetime.utcnow(),
            Payment.fail_reason: reason,
        })
        self.db.refresh(payment)
        logger.info(f"Payment {order_id} failed: {reason}")
        return payment

    # =========================================================================
    # CANCELLATION / REFUND
    # =========================================================================

    @transactional(retry=False)
    def cancel_payment(self, actor: CurrentUser, payment_id: str, reason: Optional[str] = None) -> Payment:
        """
        Cancel a pending payment, or refund an approved one.

        A refund reverses the recorded revenue and, for a campaign left without
        any approved payment, clears is_paid and pulls the campaign back to PENDING.
        """
        payment = self._get(payment_id, for_update=True)
        if actor.is_admin:
            ensure_permission(actor, Permission.REFUND_ANY_PAYMENT, "cancel payments")
        else:
            ensure_owner(actor, payment.payer_id, "cancel this payment")

        if payment.status == PaymentStatus.CANCELLED:
            return payment
        if payment.type == PaymentType.SETTLEMENT:
            raise InvalidTransition("Payment", payment.status, PaymentStatus.CANCELLED, "settlement payouts cannot be cancelled")
        if payment.status == PaymentStatus.FAILED:
            raise InvalidTransition("Payment", payment.status, PaymentStatus.CANCELLED)

        updates = {
            Payment.status: PaymentStatus.CANCELLED,
            Payment.cancelled_at: datetime.utcnow(),
            Payment.cancel_reason: reason,
        }
        if payment.status == PaymentStatus.PENDING:
            if not self._claim_pending(payment.id, updates):
                self.db.refresh(payment)
                raise InvalidTransition("Payment", payment.status, PaymentStatus.CANCELLED)
            self.db.refresh(payment)
            self.notifications.notify_payment_cancelled(payment.payer_id, payment.id, payment.amount, refunded=False)
            logger.info(f"Payment {payment.order_id} cancelled by {actor.user_id}")
            return payment

        return self._refund(actor, payment, updates, reason)

    def _refund(self, actor: CurrentUser, payment: Payment, updates: dict, reason: Optional[str]) -> Payment:
        campaign = None
        if payment.type == PaymentType.CAMPAIGN:
            campaign = self.campaigns.get_campaign(payment.campaign_id, for_update=True)
            if campaign.status == CampaignStatus.COMPLETED:
                raise InvalidTransition("Campaign", campaign.status, CampaignStatus.PENDING, "completed campaigns cannot be refunded")

        if self.gateway is not None and payment.method != PaymentMethod.OFFLINE and payment.payment_key:
            try:
                self.gateway.cancel(payment.payment_key, reason or "Refund requested")
            except GatewayError as e:
                if self._already_applied(e, payment.payment_key, ALREADY_CANCELLED_CODES, {
                    "status": "CANCELED", "orderId": payment.order_id,
                }):
                    logger.info(f"Gateway had already refunded {payment.order_id}, recording the refund")
                elif e.declined:
                    raise PaymentDeclined(f"Refund refused by the payment gateway: {e}") from e
                else:
                    raise Internal("Payment gateway unavailable, please retry") from e

        if not self._claim(payment.id, PaymentStatus.APPROVED, updates):
            self.db.refresh(payment)
            raise InvalidTransition("Payment", payment.status, PaymentStatus.CANCELLED)
        self.db.refresh(payment)

        source = RevenueSource.CAMPAIGN_PAYMENT if payment.type == PaymentType.CAMPAIGN else RevenueSource.SUPERCHAT
        self.revenue.reverse_revenue(source, payment.id)

        if campaign is not None:
            still_paid = self.db.query(Payment.id).filter(
                Payment.campaign_id == campaign.id,
                Payment.type == PaymentType.CAMPAIGN,
                Payment.status == PaymentStatus.APPROVED,
                Payment.id != payment.id,
            ).first() is not None
            if not still_paid:
                self.campaigns.mark_unpaid(campaign)

        self.notifications.notify_payment_cancelled(payment.payer_id, payment.id, payment.amount, refunded=True)
        logger.info(f"Payment {payment.order_id} refunded by {actor.user_id}")
        return payment
