# Lifecycle Database Models for Revu
# Campaigns, applications, content, payments, settlements and the revenue ledger.
# All money columns are integers in minor units.

from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Text, JSON, Enum, Boolean,
    Numeric, UniqueConstraint, CheckConstraint, event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from core.money import gross_with_fee
from database.models import Base, generate_uuid


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"        # Submitted for review / needs changes
    APPROVED = "approved"      # Reviewed, waiting for payment
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class ContentReviewStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentType(str, enum.Enum):
    CAMPAIGN = "campaign"
    SUPERCHAT = "superchat"
    SETTLEMENT = "settlement"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    OFFLINE = "offline"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SettlementStatus(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class RevenueType(str, enum.Enum):
    PLATFORM_FEE = "platform_fee"
    CREATOR_EARNING = "creator_earning"


class RevenueEntryType(str, enum.Enum):
    ORIGINAL = "original"
    REVERSAL = "reversal"


class RevenueSource(str, enum.Enum):
    CAMPAIGN_PAYMENT = "campaign_payment"
    SUPERCHAT = "superchat"


# ============================================================================
# CAMPAIGN
# ============================================================================

class Campaign(Base):
    """Paid marketing engagement created by a business.

    A campaign can only be live once it has been paid for; the check
    constraint below keeps that true even for writes that bypass the services.
    """
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    business_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text)

    budget = Column(Integer, nullable=False)
    platform_fee_rate = Column(Numeric(5, 4), nullable=False)
    platform_fee = Column(Integer)  # Persisted at activation

    status = Column(Enum(CampaignStatus, values_callable=lambda x: [e.value for e in x], name="campaignstatus"), nullable=False, default=CampaignStatus.DRAFT)
    is_paid = Column(Boolean, nullable=False, default=False)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    # Admin review
    review_feedback = Column(Text)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    activated_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("status <> 'active' OR is_paid = true", name="ck_campaign_active_requires_paid"),
        CheckConstraint("budget > 0", name="ck_campaign_budget_positive"),
        CheckConstraint("platform_fee_rate >= 0 AND platform_fee_rate <= 1", name="ck_campaign_fee_rate_range"),
    )

    # Relationships
    business = relationship("User", foreign_keys=[business_id], backref="campaigns")
    applications = relationship("Application", back_populates="campaign")
    payments = relationship("Payment", back_populates="campaign")

    @property
    def required_payment_amount(self) -> int:
        """Budget plus the platform fee charged on top of it."""
        return gross_with_fee(self.budget, self.platform_fee_rate)

    def __repr__(self):
        return f"<Campaign(id={self.id}, status='{self.status.value if self.status else None}', paid={self.is_paid})>"


# ============================================================================
# APPLICATION
# ============================================================================

class Application(Base):
    """An influencer's request to take part in a campaign."""
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=False, index=True)
    influencer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    message = Column(Text)
    proposed_price = Column(Integer)  # Falls back to campaign budget when empty

    status = Column(Enum(ApplicationStatus, values_callable=lambda x: [e.value for e in x], name="applicationstatus"), nullable=False, default=ApplicationStatus.PENDING)
    decision_reason = Column(Text)
    decided_at = Column(DateTime)
    decided_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime)
    withdrawn_at = Column(DateTime)

    # Settlement claim: set when a settlement request picks this application up,
    # cleared again if that settlement is rejected.
    settlement_id = Column(String(36), ForeignKey("settlements.id"), nullable=True, index=True)
    settled_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("campaign_id", "influencer_id", name="uq_application_campaign_influencer"),
    )

    # Relationships
    campaign = relationship("Campaign", back_populates="applications")
    influencer = relationship("User", foreign_keys=[influencer_id], backref="applications")
    content = relationship("Content", back_populates="application", uselist=False)
    settlement = relationship("Settlement", foreign_keys=[settlement_id])

    @property
    def agreed_price(self) -> int:
        if self.proposed_price:
            return self.proposed_price
        return self.campaign.budget


# ============================================================================
# CONTENT
# ============================================================================

class Content(Base):
    """Deliverable submitted against an approved application."""
    __tablename__ = "contents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    application_id = Column(String(36), ForeignKey("applications.id"), unique=True, nullable=False)

    media_urls = Column(JSON, nullable=False)  # Already-uploaded URLs from storage
    caption = Column(Text)

    review_status = Column(Enum(ContentReviewStatus, values_callable=lambda x: [e.value for e in x], name="contentreviewstatus"), nullable=False, default=ContentReviewStatus.SUBMITTED)
    feedback = Column(Text)
    revision_count = Column(Integer, default=0)

    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    application = relationship("Application", back_populates="content")


# ============================================================================
# PAYMENT
# ============================================================================

class Payment(Base):
    """Money moving through the external gateway (or offline, by an admin)."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(100), unique=True, nullable=False, index=True)

    type = Column(Enum(PaymentType, values_callable=lambda x: [e.value for e in x], name="paymenttype"), nullable=False)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=True, index=True)
    payer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey("users.id"), nullable=True)  # SuperChat creator / settled influencer
    settlement_id = Column(String(36), ForeignKey("settlements.id"), nullable=True)

    amount = Column(Integer, nullable=False)
    method = Column(Enum(PaymentMethod, values_callable=lambda x: [e.value for e in x], name="paymentmethod"), nullable=False, default=PaymentMethod.CARD)
    status = Column(Enum(PaymentStatus, values_callable=lambda x: [e.value for e in x], name="paymentstatus"), nullable=False, default=PaymentStatus.PENDING)

    payment_key = Column(String(200))  # Gateway reference, set on confirmation
    message = Column(Text)  # SuperChat message

    approved_at = Column(DateTime)
    failed_at = Column(DateTime)
    fail_reason = Column(Text)
    cancelled_at = Column(DateTime)
    cancel_reason = Column(Text)
    metadata_json = Column(JSON)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )

    # Relationships
    campaign = relationship("Campaign", back_populates="payments")
    payer = relationship("User", foreign_keys=[payer_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    def __repr__(self):
        return f"<Payment(order_id={self.order_id}, status='{self.status.value if self.status else None}', amount={self.amount})>"


# ============================================================================
# SETTLEMENT
# ============================================================================

class Settlement(Base):
    """Batched payout request over an influencer's completed, reviewed work.

    Follows a strict approval workflow: REQUESTED -> APPROVED -> PAID, or
    REQUESTED -> REJECTED. total_amount always equals the sum of its items.
    """
    __tablename__ = "settlements"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    influencer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(Enum(SettlementStatus, values_callable=lambda x: [e.value for e in x], name="settlementstatus"), nullable=False, default=SettlementStatus.REQUESTED)
    bank_account = Column(JSON)

    admin_notes = Column(Text)
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime)
    paid_at = Column(DateTime)
    payout_reference = Column(String(200))

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    influencer = relationship("User", foreign_keys=[influencer_id])
    items = relationship("SettlementItem", back_populates="settlement", cascade="all, delete-orphan", order_by="SettlementItem.created_at")

    def items_total(self) -> int:
        return sum(item.amount for item in self.items)


class SettlementItem(Base):
    """One settled deliverable. Each application appears in at most one live settlement."""
    __tablename__ = "settlement_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    settlement_id = Column(String(36), ForeignKey("settlements.id", ondelete="CASCADE"), nullable=False, index=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=False, index=True)
    campaign_title = Column(String(255))

    gross_amount = Column(Integer, nullable=False)  # Agreed price
    fee = Column(Integer, nullable=False, default=0)  # Influencer-side fee
    amount = Column(Integer, nullable=False)  # gross_amount - fee

    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    settlement = relationship("Settlement", back_populates="items")
    application = relationship("Application")


# ============================================================================
# REVENUE LEDGER
# ============================================================================

class RevenueEntry(Base):
    """Append-only ledger row for platform revenue and creator earnings.

    Rows are never updated or deleted; a correction is a REVERSAL row with
    negated amounts for the same source.
    """
    __tablename__ = "revenue_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    revenue_type = Column(Enum(RevenueType, values_callable=lambda x: [e.value for e in x], name="revenuetype"), nullable=False)
    entry_type = Column(Enum(RevenueEntryType, values_callable=lambda x: [e.value for e in x], name="revenueentrytype"), nullable=False, default=RevenueEntryType.ORIGINAL)

    source_type = Column(Enum(RevenueSource, values_callable=lambda x: [e.value for e in x], name="revenuesource"), nullable=False)
    source_id = Column(String(36), nullable=False, index=True)
    beneficiary_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    gross_amount = Column(Integer, nullable=False)
    fee_rate = Column(Numeric(5, 4), nullable=False)
    fee = Column(Integer, nullable=False)
    net_amount = Column(Integer, nullable=False)

    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("source_type", "source_id", "entry_type", name="uq_revenue_source_entry"),
    )


class LedgerImmutableError(RuntimeError):
    pass


@event.listens_for(RevenueEntry, "before_update")
def _refuse_revenue_update(mapper, connection, target):
    raise LedgerImmutableError(f"Revenue entry {target.id} is immutable")


@event.listens_for(RevenueEntry, "before_delete")
def _refuse_revenue_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Revenue entry {target.id} cannot be deleted")


# ============================================================================
# NOTIFICATION
# ============================================================================

class Notification(Base):
    """User notifications."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(50), nullable=False)  # application_approved, settlement_paid, etc.
    title = Column(String(200), nullable=False)
    message = Column(Text)
    data = Column(JSON)  # Additional context (campaign_id, amount, etc.)

    read = Column(Boolean, default=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    user = relationship("User", backref="notifications")
