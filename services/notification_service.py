# Notification Service for Revu
# Notifications are written inside the caller's unit of work, so they commit or
# roll back together with the lifecycle change that produced them.

from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from enum import Enum

from config.app_config import CURRENCY
from database.marketplace_models import Notification


class NotificationType(str, Enum):
    APPLICATION_RECEIVED = "application_received"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    CONTENT_SUBMITTED = "content_submitted"
    CONTENT_APPROVED = "content_approved"
    CONTENT_REJECTED = "content_rejected"
    CAMPAIGN_REVIEWED = "campaign_reviewed"
    CAMPAIGN_ACTIVATED = "campaign_activated"
    PAYMENT_CANCELLED = "payment_cancelled"
    SUPERCHAT_RECEIVED = "superchat_received"
    SETTLEMENT_APPROVED = "settlement_approved"
    SETTLEMENT_REJECTED = "settlement_rejected"
    SETTLEMENT_PAID = "settlement_paid"
    SYSTEM = "system"


def _money(amount: int) -> str:
    return f"{CURRENCY} {amount:,}"


class NotificationService:
    """
    Service for creating and managing user notifications.
    Use this service from any other service to send notifications.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Notification:
        """
        Create a new notification for a user.

        Args:
            user_id: The user to notify
            type: Notification type (use NotificationType enum)
            title: Short notification title
            message: Full notification message
            data: Optional additional data as JSON

        Returns:
            The created Notification object
        """
        if isinstance(type, str):
            try:
                type = NotificationType(type)
            except ValueError:
                type = NotificationType.SYSTEM

        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            data=data or {},
        )
        self.db.add(notification)
        self.db.flush()  # Get the ID without committing
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read == False)  # noqa: E712
        return query.order_by(Notification.created_at.desc()).all()

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if notification was marked read, False if not found
        """
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if notification:
            notification.read = True
            notification.read_at = datetime.utcnow()
            return True
        return False

    # =========================================================================
    # APPLICATION NOTIFICATION HELPERS
    # =========================================================================

    def notify_application_received(self, business_id: str, campaign_id: str, campaign_title: str, application_id: str):
        return self.create(
            user_id=business_id,
            type=NotificationType.APPLICATION_RECEIVED,
            title="New Application",
            message=f"A new influencer applied to '{campaign_title}'",
            data={"campaign_id": campaign_id, "application_id": application_id},
        )

    def notify_application_decided(
        self,
        influencer_id: str,
        campaign_title: str,
        application_id: str,
        approved: bool,
        reason: Optional[str] = None,
    ):
        """Notify influencer of the business's decision on their application."""
        if approved:
            return self.create(
                user_id=influencer_id,
                type=NotificationType.APPLICATION_APPROVED,
                title="Application Approved!",
                message=f"Your application to '{campaign_title}' was approved. You can now submit content.",
                data={"application_id": application_id},
            )
        return self.create(
            user_id=influencer_id,
            type=NotificationType.APPLICATION_REJECTED,
            title="Application Not Selected",
            message=f"Your application to '{campaign_title}' was not selected.",
            data={"application_id": application_id, "reason": reason},
        )

    # =========================================================================
    # CONTENT NOTIFICATION HELPERS
    # =========================================================================

    def notify_content_submitted(self, business_id: str, content_id: str, campaign_title: str):
        return self.create(
            user_id=business_id,
            type=NotificationType.CONTENT_SUBMITTED,
            title="Content Submitted",
            message=f"New content was submitted for '{campaign_title}' and is waiting for your review.",
            data={"content_id": content_id},
        )

    def notify_content_reviewed(
        self,
        influencer_id: str,
        content_id: str,
        campaign_title: str,
        approved: bool,
        feedback: Optional[str] = None,
    ):
        if approved:
            return self.create(
                user_id=influencer_id,
                type=NotificationType.CONTENT_APPROVED,
                title="Content Approved!",
                message=f"Your content for '{campaign_title}' was approved and is now eligible for settlement.",
                data={"content_id": content_id},
            )
        return self.create(
            user_id=influencer_id,
            type=NotificationType.CONTENT_REJECTED,
            title="Revision Requested",
            message=f"Your content for '{campaign_title}' needs changes.",
            data={"content_id": content_id, "feedback": feedback},
        )

    # =========================================================================
    # CAMPAIGN / PAYMENT NOTIFICATION HELPERS
    # =========================================================================

    def notify_campaign_reviewed(self, business_id: str, campaign_id: str, approved: bool, feedback: Optional[str]):
        message = "Your campaign was approved. Complete the payment to publish it." if approved \
            else "Your campaign needs changes before it can be approved."
        return self.create(
            user_id=business_id,
            type=NotificationType.CAMPAIGN_REVIEWED,
            title="Campaign Reviewed",
            message=message,
            data={"campaign_id": campaign_id, "approved": approved, "feedback": feedback},
        )

    def notify_campaign_activated(self, business_id: str, campaign_id: str, campaign_title: str):
        return self.create(
            user_id=business_id,
            type=NotificationType.CAMPAIGN_ACTIVATED,
            title="Campaign Live!",
            message=f"Payment confirmed. '{campaign_title}' is now live.",
            data={"campaign_id": campaign_id},
        )

    def notify_payment_cancelled(self, user_id: str, payment_id: str, amount: int, refunded: bool):
        message = f"Your payment of {_money(amount)} was refunded." if refunded \
            else f"Your payment of {_money(amount)} was cancelled."
        return self.create(
            user_id=user_id,
            type=NotificationType.PAYMENT_CANCELLED,
            title="Payment Cancelled",
            message=message,
            data={"payment_id": payment_id, "amount": amount, "refunded": refunded},
        )

    def notify_superchat_received(self, creator_id: str, payment_id: str, net_amount: int, message: Optional[str]):
        return self.create(
            user_id=creator_id,
            type=NotificationType.SUPERCHAT_RECEIVED,
            title="SuperChat Received!",
            message=f"You received a SuperChat worth {_money(net_amount)}",
            data={"payment_id": payment_id, "net_amount": net_amount, "message": message},
        )

    # =========================================================================
    # SETTLEMENT NOTIFICATION HELPERS
    # =========================================================================

    def notify_settlement_processed(self, influencer_id: str, settlement_id: str, total_amount: int, approved: bool, notes: Optional[str]):
        if approved:
            return self.create(
                user_id=influencer_id,
                type=NotificationType.SETTLEMENT_APPROVED,
                title="Settlement Approved",
                message=f"Your settlement of {_money(total_amount)} was approved and will be paid out shortly.",
                data={"settlement_id": settlement_id},
            )
        return self.create(
            user_id=influencer_id,
            type=NotificationType.SETTLEMENT_REJECTED,
            title="Settlement Rejected",
            message="Your settlement request was rejected. The items can be requested again.",
            data={"settlement_id": settlement_id, "notes": notes},
        )

    def notify_settlement_paid(self, influencer_id: str, settlement_id: str, total_amount: int):
        return self.create(
            user_id=influencer_id,
            type=NotificationType.SETTLEMENT_PAID,
            title="Settlement Paid",
            message=f"{_money(total_amount)} has been sent to your bank account.",
            data={"settlement_id": settlement_id},
        )


# Convenience function to get service
def get_notification_service(db: Session) -> NotificationService:
    """Get NotificationService instance."""
    return NotificationService(db)
