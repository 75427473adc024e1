# Revenue Router for Revu
# Read-only views over the revenue ledger

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from database.config import get_db
from schemas.lifecycle import RevenueSummaryResponse, CreatorEarningsResponse, RevenueEntryResponse
from auth.roles import UserType
from auth.dependencies import CurrentUser
from auth.decorators import require_user_type, require_admin
from services.revenue_service import RevenueService

router = APIRouter(prefix="/revenue", tags=["Revenue"])


@router.get("/summary", response_model=RevenueSummaryResponse)
def revenue_summary(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin())
):
    """Platform revenue for a year, or one month of it. Defaults to the current year."""
    summary = RevenueService(db).summarize(current_user, year or datetime.utcnow().year, month)
    return RevenueSummaryResponse(**summary)


@router.get("/earnings", response_model=CreatorEarningsResponse)
def creator_earnings(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
):
    earnings = RevenueService(db).creator_earnings(current_user, year, month)
    earnings["entries"] = [RevenueEntryResponse.model_validate(e) for e in earnings["entries"]]
    return CreatorEarningsResponse(**earnings)
