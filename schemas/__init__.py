# Schemas module for Revu Platform
# Organizes all Pydantic schemas in a modular structure

from schemas.lifecycle import (
    ErrorResponse,

    # Campaign schemas
    CampaignCreate,
    CampaignUpdate,
    CampaignStatusUpdate,
    CampaignReview,
    FeeRateOverride,
    CampaignResponse,

    # Application & content schemas
    ApplicationCreate,
    ApplicationDecision,
    ApplicationResponse,
    ContentSubmit,
    ContentReview,
    ContentResponse,

    # Payment schemas
    PaymentCreate,
    SuperChatCreate,
    OfflinePaymentCreate,
    PaymentConfirm,
    PaymentFail,
    PaymentCancel,
    PaymentResponse,
    CheckoutRequest,
    PaymentCreateResponse,
    PaymentListResponse,

    # Settlement schemas
    BankAccount,
    SettlementRequest,
    SettlementProcess,
    SettlementPaid,
    SettlementItemResponse,
    SettlementResponse,

    # Revenue schemas
    RevenueEntryResponse,
    RevenueSummaryResponse,
    CreatorEarningsResponse,

    # Notification schemas
    NotificationResponse,
)
