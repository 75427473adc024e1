# Authorization checks shared by the lifecycle services.

import logging

from auth.dependencies import CurrentUser
from auth.roles import Permission, has_permission
from core.errors import Forbidden

logger = logging.getLogger(__name__)

_ADMIN_PERMISSIONS = {
    Permission.REVIEW_CAMPAIGNS,
    Permission.OVERRIDE_CAMPAIGNS,
    Permission.RECORD_OFFLINE_PAYMENTS,
    Permission.PROCESS_SETTLEMENTS,
    Permission.VIEW_REVENUE,
}


def ensure_permission(actor: CurrentUser, permission: Permission, action: str):
    if has_permission(actor.role, permission):
        return
    if permission in _ADMIN_PERMISSIONS:
        # Audit trail for attempts at admin-only operations
        logger.warning(f"Denied admin action '{action}' for user {actor.user_id} ({actor.role.value})")
    raise Forbidden(f"You are not allowed to {action}")


def ensure_owner_or_admin(actor: CurrentUser, owner_id: str, action: str):
    if actor.is_admin or actor.user_id == owner_id:
        return
    raise Forbidden(f"You are not allowed to {action}")


def ensure_owner(actor: CurrentUser, owner_id: str, action: str):
    if actor.user_id != owner_id:
        raise Forbidden(f"You are not allowed to {action}")
