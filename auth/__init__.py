# Auth module for Revu Platform
# Provides role-based access control and authentication dependencies

from auth.roles import (
    UserType,
    Permission,
    ROLE_PERMISSIONS,
    get_permissions_for_role,
    has_permission,
)

from auth.dependencies import (
    CurrentUser,
    get_current_user,
    create_access_token,
    decode_access_token,
)

from auth.decorators import (
    AuthError,
    require_user_type,
    require_admin,
)

__all__ = [
    # Roles
    "UserType",
    "Permission",
    "ROLE_PERMISSIONS",
    "get_permissions_for_role",
    "has_permission",

    # Dependencies
    "CurrentUser",
    "get_current_user",
    "create_access_token",
    "decode_access_token",

    # Decorators
    "AuthError",
    "require_user_type",
    "require_admin",
]
