# Payments Router for Revu
# Checkout creation, gateway callbacks, offline payments and refunds

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from core.errors import PaymentDeclined
from core.payment_gateway import get_payment_gateway
from database.config import get_db
from database.marketplace_models import PaymentStatus, PaymentType
from schemas.lifecycle import (
    PaymentCreate,
    SuperChatCreate,
    OfflinePaymentCreate,
    PaymentConfirm,
    PaymentFail,
    PaymentCancel,
    PaymentResponse,
    PaymentCreateResponse,
    PaymentListResponse,
    CheckoutRequest,
)
from auth.roles import UserType
from auth.dependencies import CurrentUser, get_current_user
from auth.decorators import require_user_type, require_admin
from services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db, gateway=get_payment_gateway())


def _checkout_response(service: PaymentService, payment) -> PaymentCreateResponse:
    return PaymentCreateResponse(
        payment=PaymentResponse.model_validate(payment),
        checkout=CheckoutRequest(**service.checkout_request(payment)),
    )


# ============================================================================
# CHECKOUT
# ============================================================================

@router.post("", response_model=PaymentCreateResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_data: PaymentCreate,
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS))
):
    """
    Open a campaign payment. The amount must be exactly budget + platform fee;
    the response carries what the client needs to start the checkout widget.
    """
    payment = service.create_payment(current_user, payment_data.campaign_id, payment_data.amount, payment_data.method)
    return _checkout_response(service, payment)


@router.post("/superchat", response_model=PaymentCreateResponse, status_code=status.HTTP_201_CREATED)
def create_superchat(
    superchat_data: SuperChatCreate,
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(require_user_type(UserType.BUSINESS, UserType.INFLUENCER))
):
    payment = service.create_superchat(current_user, superchat_data.creator_id, superchat_data.amount, superchat_data.message)
    return _checkout_response(service, payment)


@router.post("/offline", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_offline_payment(
    offline_data: OfflinePaymentCreate,
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(require_admin())
):
    """Admin: record a bank/offline payment; the campaign goes live as with a card payment."""
    payment = service.record_offline_payment(current_user, offline_data.campaign_id, offline_data.reference)
    return PaymentResponse.model_validate(payment)


# ============================================================================
# GATEWAY CALLBACKS (no user session)
# ============================================================================

@router.post("/confirm", response_model=PaymentResponse)
def confirm_payment(
    confirm_data: PaymentConfirm,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Success callback. Safe to call repeatedly: an approved payment is returned unchanged.
    """
    payment = service.confirm_payment(confirm_data.order_id, confirm_data.payment_key, confirm_data.amount)
    if payment.status == PaymentStatus.FAILED:
        raise PaymentDeclined(payment.fail_reason or "Payment was declined", order_id=payment.order_id)
    return PaymentResponse.model_validate(payment)


@router.post("/fail", response_model=PaymentResponse)
def fail_payment(
    fail_data: PaymentFail,
    service: PaymentService = Depends(get_payment_service),
):
    reason = " ".join(part for part in (fail_data.code, fail_data.message) if part) or None
    payment = service.fail_payment(fail_data.order_id, reason)
    return PaymentResponse.model_validate(payment)


# ============================================================================
# USER ENDPOINTS
# ============================================================================

@router.post("/{payment_id}/cancel", response_model=PaymentResponse)
def cancel_payment(
    payment_id: str,
    cancel_data: PaymentCancel,
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Cancel a pending payment or refund an approved one."""
    payment = service.cancel_payment(current_user, payment_id, cancel_data.reason)
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=PaymentListResponse)
def list_payments(
    type_filter: Optional[PaymentType] = Query(None, alias="type"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    items, total = service.list_payments(current_user, type_filter, status_filter, page, limit)
    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return PaymentResponse.model_validate(service.get_payment(current_user, payment_id))
