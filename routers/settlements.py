# Settlements Router for Revu
# Influencer payout requests and their admin approval workflow

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.marketplace_models import SettlementStatus
from schemas.lifecycle import (
    SettlementRequest,
    SettlementProcess,
    SettlementPaid,
    SettlementResponse,
)
from auth.roles import UserType
from auth.dependencies import CurrentUser
from auth.decorators import require_user_type, require_admin
from services.settlement_service import SettlementService

router = APIRouter(prefix="/settlements", tags=["Settlements"])


@router.get("", response_model=List[SettlementResponse])
def list_settlements(
    status_filter: Optional[SettlementStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER, UserType.ADMIN))
):
    """Own settlements for influencers, every settlement for admins."""
    settlements = SettlementService(db).list_settlements(current_user, status_filter)
    return [SettlementResponse.model_validate(s) for s in settlements]


@router.get("/{settlement_id}", response_model=SettlementResponse)
def get_settlement(
    settlement_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER, UserType.ADMIN))
):
    return SettlementResponse.model_validate(SettlementService(db).get_settlement(current_user, settlement_id))


@router.post("", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
def request_settlement(
    request_data: SettlementRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
):
    """
    Request a payout. Without application_ids, every completed application
    with approved content that has not been settled yet is included.
    """
    settlement = SettlementService(db).request_settlement(
        current_user,
        application_ids=request_data.application_ids,
        bank_account=request_data.bank_account.model_dump(),
    )
    return SettlementResponse.model_validate(settlement)


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@router.post("/{settlement_id}/process", response_model=SettlementResponse)
def process_settlement(
    settlement_id: str,
    process_data: SettlementProcess,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin())
):
    settlement = SettlementService(db).process_settlement(
        current_user, settlement_id, process_data.approved, process_data.notes
    )
    return SettlementResponse.model_validate(settlement)


@router.post("/{settlement_id}/paid", response_model=SettlementResponse)
def mark_settlement_paid(
    settlement_id: str,
    paid_data: SettlementPaid,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin())
):
    settlement = SettlementService(db).mark_settlement_paid(current_user, settlement_id, paid_data.payout_reference)
    return SettlementResponse.model_validate(settlement)
