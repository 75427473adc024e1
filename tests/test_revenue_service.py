"""
Tests for the revenue ledger.

Covers:
- fee/net computation and rate boundaries
- One row per source event; recording again returns the existing row
- Corrections by reversal rows, never by mutation
- Monthly summaries and creator earnings
"""

from datetime import datetime

import pytest

from core.errors import Forbidden, ValidationError
from database.marketplace_models import (
    LedgerImmutableError, RevenueEntry, RevenueEntryType, RevenueSource, RevenueType,
)

MARCH = datetime(2026, 3, 15)
APRIL = datetime(2026, 4, 2)


class TestRecordRevenue:

    def test_records_fee_and_net(self, revenue_service):
        entry = revenue_service.record_revenue(
            RevenueSource.CAMPAIGN_PAYMENT, "pay-1", 1_000_000, "0.1", RevenueType.PLATFORM_FEE, occurred_at=MARCH,
        )

        assert entry.fee == 100_000
        assert entry.net_amount == 900_000
        assert entry.entry_type == RevenueEntryType.ORIGINAL
        assert (entry.year, entry.month) == (2026, 3)

    def test_rate_zero_and_one(self, revenue_service):
        free = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-0", 5_000, 0, RevenueType.CREATOR_EARNING)
        full = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, 1, RevenueType.CREATOR_EARNING)

        assert (free.fee, free.net_amount) == (0, 5_000)
        assert (full.fee, full.net_amount) == (5_000, 0)

    def test_same_source_recorded_once(self, revenue_service, db):
        first = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, "0.1", RevenueType.CREATOR_EARNING)
        second = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, "0.1", RevenueType.CREATOR_EARNING)

        assert second.id == first.id
        assert db.query(RevenueEntry).count() == 1

    @pytest.mark.parametrize("gross,rate", [(0, "0.1"), (-5, "0.1"), (100, "1.2"), (100, "-0.1")])
    def test_rejects_bad_input(self, revenue_service, gross, rate):
        with pytest.raises(ValidationError):
            revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-x", gross, rate, RevenueType.CREATOR_EARNING)


class TestImmutability:
    """Ledger rows are append-only."""

    def test_update_refused(self, revenue_service, db):
        entry = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, "0.1", RevenueType.CREATOR_EARNING)
        entry.fee = 0

        with pytest.raises(LedgerImmutableError):
            db.flush()
        db.rollback()

    def test_delete_refused(self, revenue_service, db):
        entry = revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, "0.1", RevenueType.CREATOR_EARNING)
        db.delete(entry)

        with pytest.raises(LedgerImmutableError):
            db.flush()
        db.rollback()


class TestReversal:

    def test_reversal_negates_original(self, revenue_service):
        original = revenue_service.record_revenue(
            RevenueSource.CAMPAIGN_PAYMENT, "pay-1", 1_000_000, "0.1", RevenueType.PLATFORM_FEE, occurred_at=MARCH,
        )
        reversal = revenue_service.reverse_revenue(RevenueSource.CAMPAIGN_PAYMENT, "pay-1", occurred_at=APRIL)

        assert reversal.entry_type == RevenueEntryType.REVERSAL
        assert reversal.gross_amount == -original.gross_amount
        assert reversal.fee == -original.fee
        assert reversal.net_amount == -original.net_amount
        # The reversal lands in the month it happened
        assert reversal.month == 4

    def test_reversal_is_idempotent(self, revenue_service, db):
        revenue_service.record_revenue(RevenueSource.SUPERCHAT, "sc-1", 5_000, "0.1", RevenueType.CREATOR_EARNING)
        first = revenue_service.reverse_revenue(RevenueSource.SUPERCHAT, "sc-1")
        second = revenue_service.reverse_revenue(RevenueSource.SUPERCHAT, "sc-1")

        assert second.id == first.id
        assert len(revenue_service.entries_for_source(RevenueSource.SUPERCHAT, "sc-1")) == 2

    def test_nothing_to_reverse(self, revenue_service):
        assert revenue_service.reverse_revenue(RevenueSource.SUPERCHAT, "never-recorded") is None


class TestReporting:

    @pytest.fixture
    def ledger(self, revenue_service, influencer):
        revenue_service.record_revenue(
            RevenueSource.CAMPAIGN_PAYMENT, "pay-1", 1_000_000, "0.1", RevenueType.PLATFORM_FEE, occurred_at=MARCH,
        )
        revenue_service.record_revenue(
            RevenueSource.SUPERCHAT, "sc-1", 10_000, "0.1", RevenueType.CREATOR_EARNING,
            beneficiary_id=influencer.user_id, occurred_at=MARCH,
        )
        revenue_service.record_revenue(
            RevenueSource.CAMPAIGN_PAYMENT, "pay-2", 500_000, "0.2", RevenueType.PLATFORM_FEE, occurred_at=APRIL,
        )
        revenue_service.reverse_revenue(RevenueSource.CAMPAIGN_PAYMENT, "pay-2", occurred_at=APRIL)

    def test_month_summary(self, revenue_service, ledger, admin):
        summary = revenue_service.summarize(admin, 2026, 3)

        assert summary["campaign_fee_total"] == 100_000
        assert summary["superchat_fee_total"] == 1_000
        assert summary["platform_fee_total"] == 101_000
        assert summary["creator_earnings_total"] == 9_000
        assert summary["gross_volume"] == 1_010_000
        assert summary["entry_count"] == 2

    def test_reversed_month_nets_to_zero(self, revenue_service, ledger, admin):
        summary = revenue_service.summarize(admin, 2026, 4)
        assert summary["campaign_fee_total"] == 0
        assert summary["entry_count"] == 2

    def test_year_summary(self, revenue_service, ledger, admin):
        assert revenue_service.summarize(admin, 2026)["platform_fee_total"] == 101_000
        assert revenue_service.summarize(admin, 2025)["entry_count"] == 0

    def test_summary_is_admin_only(self, revenue_service, business):
        with pytest.raises(Forbidden):
            revenue_service.summarize(business, 2026)

    def test_creator_earnings(self, revenue_service, ledger, influencer, other_influencer):
        earnings = revenue_service.creator_earnings(influencer, 2026)
        assert earnings["net_total"] == 9_000
        assert earnings["fee_total"] == 1_000
        assert len(earnings["entries"]) == 1

        assert revenue_service.creator_earnings(other_influencer)["net_total"] == 0
