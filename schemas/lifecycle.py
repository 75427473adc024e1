# Pydantic Schemas for the Revu lifecycle API
# Request bodies validate shape only; business rules live in the services.

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from database.marketplace_models import (
    CampaignStatus,
    ApplicationStatus,
    ContentReviewStatus,
    PaymentType,
    PaymentMethod,
    PaymentStatus,
    SettlementStatus,
    RevenueType,
    RevenueEntryType,
    RevenueSource,
)


class ErrorResponse(BaseModel):
    error: str
    detail: str


# ============================================================================
# CAMPAIGN SCHEMAS
# ============================================================================

class CampaignCreate(BaseModel):
    """Schema for creating a campaign (starts in draft)."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    budget: int = Field(..., gt=0)  # Minor units
    platform_fee_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    start_date: datetime
    end_date: datetime


class CampaignUpdate(BaseModel):
    """Owner edits while the campaign is draft/pending and unpaid."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    budget: Optional[int] = Field(None, gt=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignStatusUpdate(BaseModel):
    status: CampaignStatus


class CampaignReview(BaseModel):
    """Admin review decision."""
    approved: bool
    feedback: Optional[str] = Field(None, max_length=2000)


class FeeRateOverride(BaseModel):
    platform_fee_rate: Decimal = Field(..., ge=0, le=1)


class CampaignResponse(BaseModel):
    id: str
    business_id: str
    title: str
    description: Optional[str]
    budget: int
    platform_fee_rate: float
    platform_fee: Optional[int]
    required_payment_amount: int
    status: CampaignStatus
    is_paid: bool
    start_date: datetime
    end_date: datetime
    review_feedback: Optional[str]
    reviewed_at: Optional[datetime]
    activated_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# APPLICATION & CONTENT SCHEMAS
# ============================================================================

class ApplicationCreate(BaseModel):
    message: Optional[str] = Field(None, max_length=2000)
    proposed_price: Optional[int] = Field(None, gt=0)


class ApplicationDecision(BaseModel):
    """Business decision on a pending application."""
    status: ApplicationStatus
    reason: Optional[str] = Field(None, max_length=1000)


class ApplicationResponse(BaseModel):
    id: str
    campaign_id: str
    influencer_id: str
    message: Optional[str]
    proposed_price: Optional[int]
    status: ApplicationStatus
    decision_reason: Optional[str]
    decided_at: Optional[datetime]
    completed_at: Optional[datetime]
    withdrawn_at: Optional[datetime]
    settlement_id: Optional[str]
    settled_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ContentSubmit(BaseModel):
    """URLs of media already uploaded to storage."""
    media_urls: List[str] = Field(..., min_length=1)
    caption: Optional[str] = Field(None, max_length=5000)


class ContentReview(BaseModel):
    status: ContentReviewStatus
    feedback: Optional[str] = Field(None, max_length=2000)


class ContentResponse(BaseModel):
    id: str
    application_id: str
    media_urls: List[str]
    caption: Optional[str]
    review_status: ContentReviewStatus
    feedback: Optional[str]
    revision_count: int
    submitted_at: Optional[datetime]
    reviewed_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================

class PaymentCreate(BaseModel):
    campaign_id: str
    amount: int = Field(..., gt=0)  # Must equal budget + platform fee
    method: PaymentMethod = PaymentMethod.CARD


class SuperChatCreate(BaseModel):
    creator_id: str
    amount: int = Field(..., gt=0)
    message: Optional[str] = Field(None, max_length=200)


class OfflinePaymentCreate(BaseModel):
    """Admin record of a bank/offline campaign payment."""
    campaign_id: str
    reference: Optional[str] = Field(None, max_length=200)


class PaymentConfirm(BaseModel):
    """Gateway success callback."""
    order_id: str
    payment_key: str = Field(..., min_length=1)
    amount: int


class PaymentFail(BaseModel):
    """Gateway fail callback."""
    order_id: str
    code: Optional[str] = None
    message: Optional[str] = None


class PaymentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentResponse(BaseModel):
    id: str
    order_id: str
    type: PaymentType
    campaign_id: Optional[str]
    payer_id: str
    recipient_id: Optional[str]
    settlement_id: Optional[str]
    amount: int
    method: PaymentMethod
    status: PaymentStatus
    message: Optional[str]
    approved_at: Optional[datetime]
    failed_at: Optional[datetime]
    fail_reason: Optional[str]
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class CheckoutRequest(BaseModel):
    """What the client passes to the checkout widget."""
    order_id: str
    amount: int
    order_name: str
    success_url: str
    fail_url: str


class PaymentCreateResponse(BaseModel):
    payment: PaymentResponse
    checkout: CheckoutRequest


class PaymentListResponse(BaseModel):
    items: List[PaymentResponse]
    total: int
    page: int
    limit: int


# ============================================================================
# SETTLEMENT SCHEMAS
# ============================================================================

class BankAccount(BaseModel):
    bank_name: str = Field(..., min_length=1, max_length=100)
    account_number: str = Field(..., min_length=4, max_length=50)
    account_holder: str = Field(..., min_length=1, max_length=100)


class SettlementRequest(BaseModel):
    """Omit application_ids to settle every eligible application."""
    application_ids: Optional[List[str]] = None
    bank_account: BankAccount


class SettlementProcess(BaseModel):
    approved: bool
    notes: Optional[str] = Field(None, max_length=2000)


class SettlementPaid(BaseModel):
    payout_reference: Optional[str] = Field(None, max_length=200)


class SettlementItemResponse(BaseModel):
    id: str
    application_id: str
    campaign_title: Optional[str]
    gross_amount: int
    fee: int
    amount: int

    class Config:
        from_attributes = True


class SettlementResponse(BaseModel):
    id: str
    influencer_id: str
    total_amount: int
    status: SettlementStatus
    bank_account: Optional[dict]
    admin_notes: Optional[str]
    processed_at: Optional[datetime]
    paid_at: Optional[datetime]
    payout_reference: Optional[str]
    created_at: Optional[datetime]
    items: List[SettlementItemResponse] = []

    class Config:
        from_attributes = True


# ============================================================================
# REVENUE SCHEMAS
# ============================================================================

class RevenueEntryResponse(BaseModel):
    id: str
    revenue_type: RevenueType
    entry_type: RevenueEntryType
    source_type: RevenueSource
    source_id: str
    gross_amount: int
    fee_rate: float
    fee: int
    net_amount: int
    year: int
    month: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RevenueSummaryResponse(BaseModel):
    year: int
    month: Optional[int]
    gross_volume: int
    platform_fee_total: int
    campaign_fee_total: int
    superchat_fee_total: int
    creator_earnings_total: int
    entry_count: int


class CreatorEarningsResponse(BaseModel):
    creator_id: str
    year: Optional[int]
    month: Optional[int]
    gross_total: int
    fee_total: int
    net_total: int
    entries: List[RevenueEntryResponse]


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================

class NotificationResponse(BaseModel):
    """Schema for notification response."""
    id: str
    type: str
    title: str
    message: Optional[str]
    data: Optional[dict] = None
    read: bool = False
    read_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
