# Role-Based Access Control for Revu Platform
# This module defines user roles and permissions for the lifecycle engine

from enum import Enum
from typing import Set


class UserType(str, Enum):
    """User types on the platform."""
    BUSINESS = "business"
    INFLUENCER = "influencer"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained permissions for the platform."""

    # Business permissions
    CREATE_CAMPAIGNS = "create_campaigns"
    MANAGE_OWN_CAMPAIGNS = "manage_own_campaigns"
    DECIDE_APPLICATIONS = "decide_applications"
    REVIEW_CONTENT = "review_content"
    PAY_CAMPAIGNS = "pay_campaigns"

    # Influencer permissions
    APPLY_TO_CAMPAIGNS = "apply_to_campaigns"
    SUBMIT_CONTENT = "submit_content"
    REQUEST_SETTLEMENT = "request_settlement"
    VIEW_OWN_EARNINGS = "view_own_earnings"

    # Common permissions
    SEND_SUPERCHAT = "send_superchat"
    VIEW_OWN_PAYMENTS = "view_own_payments"

    # Admin permissions
    REVIEW_CAMPAIGNS = "review_campaigns"
    OVERRIDE_CAMPAIGNS = "override_campaigns"
    RECORD_OFFLINE_PAYMENTS = "record_offline_payments"
    REFUND_ANY_PAYMENT = "refund_any_payment"
    PROCESS_SETTLEMENTS = "process_settlements"
    VIEW_REVENUE = "view_revenue"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserType, Set[Permission]] = {
    UserType.BUSINESS: {
        # Business-specific
        Permission.CREATE_CAMPAIGNS,
        Permission.MANAGE_OWN_CAMPAIGNS,
        Permission.DECIDE_APPLICATIONS,
        Permission.REVIEW_CONTENT,
        Permission.PAY_CAMPAIGNS,
        # Common
        Permission.SEND_SUPERCHAT,
        Permission.VIEW_OWN_PAYMENTS,
    },

    UserType.INFLUENCER: {
        # Influencer-specific
        Permission.APPLY_TO_CAMPAIGNS,
        Permission.SUBMIT_CONTENT,
        Permission.REQUEST_SETTLEMENT,
        Permission.VIEW_OWN_EARNINGS,
        # Common
        Permission.SEND_SUPERCHAT,
        Permission.VIEW_OWN_PAYMENTS,
    },

    UserType.ADMIN: {
        # Admin permissions
        Permission.CREATE_CAMPAIGNS,
        Permission.DECIDE_APPLICATIONS,
        Permission.VIEW_OWN_PAYMENTS,
        Permission.REVIEW_CAMPAIGNS,
        Permission.OVERRIDE_CAMPAIGNS,
        Permission.RECORD_OFFLINE_PAYMENTS,
        Permission.REFUND_ANY_PAYMENT,
        Permission.PROCESS_SETTLEMENTS,
        Permission.VIEW_REVENUE,
    },
}


def get_permissions_for_role(user_type: UserType) -> Set[Permission]:
    """Get all permissions for a given user type."""
    return ROLE_PERMISSIONS.get(user_type, set())


def has_permission(user_type: UserType, permission: Permission) -> bool:
    """Check if a user type has a specific permission."""
    return permission in get_permissions_for_role(user_type)
