# Revenue Recorder for Revu
# Append-only ledger of platform fees and creator earnings. Rows are inserted
# once per source event and corrected only by compensating reversal rows.

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
import logging

from auth.dependencies import CurrentUser
from auth.roles import Permission
from core.errors import Conflict, ValidationError
from core.money import split_fee, to_rate
from database.config import transactional
from database.marketplace_models import (
    RevenueEntry, RevenueType, RevenueEntryType, RevenueSource,
)
from services.access import ensure_permission

logger = logging.getLogger(__name__)


class RevenueService:
    """Writes and reads the revenue ledger."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, source_type: RevenueSource, source_id: str, entry_type: RevenueEntryType) -> Optional[RevenueEntry]:
        return self.db.query(RevenueEntry).filter(
            RevenueEntry.source_type == source_type,
            RevenueEntry.source_id == source_id,
            RevenueEntry.entry_type == entry_type,
        ).first()

    def _insert(self, entry: RevenueEntry) -> RevenueEntry:
        self.db.add(entry)
        try:
            self.db.flush()
        except IntegrityError:
            raise Conflict(f"Revenue for {entry.source_type.value} {entry.source_id} is already recorded")
        return entry

    @transactional
    def record_revenue(
        self,
        source_type: RevenueSource,
        source_id: str,
        gross_amount: int,
        fee_rate,
        revenue_type: RevenueType,
        beneficiary_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> RevenueEntry:
        """
        Record one immutable ledger row for a financial event.

        fee = round(gross × fee_rate), net = gross − fee. Recording the same
        source twice returns the row already on the ledger.
        """
        rate = to_rate(fee_rate)
        if isinstance(gross_amount, bool) or not isinstance(gross_amount, int) or gross_amount <= 0:
            raise ValidationError("Gross amount must be a positive integer")

        existing = self._find(source_type, source_id, RevenueEntryType.ORIGINAL)
        if existing:
            return existing

        fee, net = split_fee(gross_amount, rate)
        when = occurred_at or datetime.utcnow()

        entry = self._insert(RevenueEntry(
            revenue_type=revenue_type,
            entry_type=RevenueEntryType.ORIGINAL,
            source_type=source_type,
            source_id=source_id,
            beneficiary_id=beneficiary_id,
            gross_amount=gross_amount,
            fee_rate=rate,
            fee=fee,
            net_amount=net,
            year=when.year,
            month=when.month,
        ))
        logger.info(f"Recorded {revenue_type.value} for {source_type.value} {source_id}: gross={gross_amount} fee={fee} net={net}")
        return entry

    @transactional
    def reverse_revenue(self, source_type: RevenueSource, source_id: str, occurred_at: Optional[datetime] = None) -> Optional[RevenueEntry]:
        """Insert a compensating negative row for a source; returns None when nothing was recorded."""
        original = self._find(source_type, source_id, RevenueEntryType.ORIGINAL)
        if original is None:
            return None

        existing = self._find(source_type, source_id, RevenueEntryType.REVERSAL)
        if existing:
            return existing

        when = occurred_at or datetime.utcnow()
        entry = self._insert(RevenueEntry(
            revenue_type=original.revenue_type,
            entry_type=RevenueEntryType.REVERSAL,
            source_type=source_type,
            source_id=source_id,
            beneficiary_id=original.beneficiary_id,
            gross_amount=-original.gross_amount,
            fee_rate=original.fee_rate,
            fee=-original.fee,
            net_amount=-original.net_amount,
            year=when.year,
            month=when.month,
        ))
        logger.info(f"Reversed revenue for {source_type.value} {source_id}")
        return entry

    def entries_for_source(self, source_type: RevenueSource, source_id: str) -> List[RevenueEntry]:
        return self.db.query(RevenueEntry).filter(
            RevenueEntry.source_type == source_type,
            RevenueEntry.source_id == source_id,
        ).order_by(RevenueEntry.created_at).all()

    # =========================================================================
    # REPORTING
    # =========================================================================

    def summarize(self, actor: CurrentUser, year: int, month: Optional[int] = None) -> dict:
        """Platform revenue for a year or a single month bucket (admin only)."""
        ensure_permission(actor, Permission.VIEW_REVENUE, "view platform revenue")

        query = self.db.query(
            RevenueEntry.revenue_type,
            func.coalesce(func.sum(RevenueEntry.gross_amount), 0),
            func.coalesce(func.sum(RevenueEntry.fee), 0),
            func.coalesce(func.sum(RevenueEntry.net_amount), 0),
            func.count(RevenueEntry.id),
        ).filter(RevenueEntry.year == year)
        if month is not None:
            query = query.filter(RevenueEntry.month == month)
        rows = query.group_by(RevenueEntry.revenue_type).all()

        by_type = {
            revenue_type.value: {"gross": int(gross), "fee": int(fee), "net": int(net), "entries": count}
            for revenue_type, gross, fee, net, count in rows
        }
        empty = {"gross": 0, "fee": 0, "net": 0, "entries": 0}
        campaign = by_type.get(RevenueType.PLATFORM_FEE.value, empty)
        creator = by_type.get(RevenueType.CREATOR_EARNING.value, empty)

        return {
            "year": year,
            "month": month,
            "gross_volume": campaign["gross"] + creator["gross"],
            "platform_fee_total": campaign["fee"] + creator["fee"],
            "campaign_fee_total": campaign["fee"],
            "superchat_fee_total": creator["fee"],
            "creator_earnings_total": creator["net"],
            "entry_count": campaign["entries"] + creator["entries"],
        }

    def creator_earnings(self, actor: CurrentUser, year: Optional[int] = None, month: Optional[int] = None) -> dict:
        """SuperChat earnings credited to the calling creator."""
        ensure_permission(actor, Permission.VIEW_OWN_EARNINGS, "view creator earnings")

        query = self.db.query(RevenueEntry).filter(
            RevenueEntry.revenue_type == RevenueType.CREATOR_EARNING,
            RevenueEntry.beneficiary_id == actor.user_id,
        )
        if year is not None:
            query = query.filter(RevenueEntry.year == year)
        if month is not None:
            query = query.filter(RevenueEntry.month == month)
        entries = query.order_by(RevenueEntry.created_at.desc()).all()

        return {
            "creator_id": actor.user_id,
            "year": year,
            "month": month,
            "gross_total": sum(e.gross_amount for e in entries),
            "fee_total": sum(e.fee for e in entries),
            "net_total": sum(e.net_amount for e in entries),
            "entries": entries,
        }
