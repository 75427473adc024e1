# Status transition tables for Revu
# Every mutating operation checks its status change against these tables.

from enum import Enum
from typing import Dict, FrozenSet, Type

from core.errors import InvalidTransition
from database.marketplace_models import (
    CampaignStatus,
    ApplicationStatus,
    ContentReviewStatus,
    PaymentStatus,
    SettlementStatus,
)


CAMPAIGN_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset({
        CampaignStatus.PENDING, CampaignStatus.APPROVED, CampaignStatus.CANCELLED,
    }),
    CampaignStatus.PENDING: frozenset({
        CampaignStatus.APPROVED, CampaignStatus.ACTIVE, CampaignStatus.CANCELLED,
    }),
    CampaignStatus.APPROVED: frozenset({
        CampaignStatus.ACTIVE, CampaignStatus.PENDING, CampaignStatus.CANCELLED,
    }),
    CampaignStatus.ACTIVE: frozenset({
        CampaignStatus.PAUSED, CampaignStatus.COMPLETED, CampaignStatus.CANCELLED, CampaignStatus.PENDING,
    }),
    CampaignStatus.PAUSED: frozenset({
        CampaignStatus.ACTIVE, CampaignStatus.CANCELLED, CampaignStatus.PENDING,
    }),
    CampaignStatus.COMPLETED: frozenset(),
    CampaignStatus.CANCELLED: frozenset(),
}

# Subset a business owner or admin may request directly through update_status.
# Activation from an unpaid state and refund rollbacks are system-only.
CAMPAIGN_MANUAL_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset({CampaignStatus.PENDING, CampaignStatus.CANCELLED}),
    CampaignStatus.PENDING: frozenset({CampaignStatus.CANCELLED}),
    CampaignStatus.APPROVED: frozenset({CampaignStatus.CANCELLED}),
    CampaignStatus.ACTIVE: frozenset({CampaignStatus.PAUSED, CampaignStatus.COMPLETED, CampaignStatus.CANCELLED}),
    CampaignStatus.PAUSED: frozenset({CampaignStatus.ACTIVE, CampaignStatus.CANCELLED}),
    CampaignStatus.COMPLETED: frozenset(),
    CampaignStatus.CANCELLED: frozenset(),
}

APPLICATION_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.COMPLETED}),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.COMPLETED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
}

# None stands for "no content submitted yet"
CONTENT_TRANSITIONS: Dict[object, FrozenSet[ContentReviewStatus]] = {
    None: frozenset({ContentReviewStatus.SUBMITTED}),
    ContentReviewStatus.SUBMITTED: frozenset({ContentReviewStatus.APPROVED, ContentReviewStatus.REJECTED}),
    ContentReviewStatus.REJECTED: frozenset({ContentReviewStatus.SUBMITTED}),
    ContentReviewStatus.APPROVED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.APPROVED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.APPROVED: frozenset({PaymentStatus.CANCELLED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

SETTLEMENT_TRANSITIONS: Dict[SettlementStatus, FrozenSet[SettlementStatus]] = {
    SettlementStatus.REQUESTED: frozenset({SettlementStatus.APPROVED, SettlementStatus.REJECTED}),
    SettlementStatus.APPROVED: frozenset({SettlementStatus.PAID}),
    SettlementStatus.PAID: frozenset(),
    SettlementStatus.REJECTED: frozenset(),
}

_TABLES: Dict[Type[Enum], dict] = {
    CampaignStatus: CAMPAIGN_TRANSITIONS,
    ApplicationStatus: APPLICATION_TRANSITIONS,
    ContentReviewStatus: CONTENT_TRANSITIONS,
    PaymentStatus: PAYMENT_TRANSITIONS,
    SettlementStatus: SETTLEMENT_TRANSITIONS,
}


def can_transition(current, target, table: dict = None) -> bool:
    """Check a status change against its entity's adjacency table."""
    if table is None:
        table = _TABLES[type(target)]
    return target in table.get(current, frozenset())


def ensure_transition(entity: str, current, target, table: dict = None):
    if not can_transition(current, target, table):
        raise InvalidTransition(entity, current, target)


def is_terminal(status) -> bool:
    return not _TABLES[type(status)].get(status)
