# Authorization Dependencies for Revu Platform
# Coarse role gates for routers; ownership checks live in the services.

from fastapi import HTTPException, status, Depends
import logging

from auth.roles import UserType
from auth.dependencies import CurrentUser, get_current_user

logger = logging.getLogger(__name__)


class AuthError(HTTPException):
    """Custom exception for authentication/authorization errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


def require_user_type(*allowed_types: UserType):
    """
    Dependency that requires the user to be one of the specified types.

    Usage:
        @router.post("/campaigns/{campaign_id}/apply")
        async def apply(
            user: CurrentUser = Depends(require_user_type(UserType.INFLUENCER))
        ):
            ...
    """
    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed_types:
            allowed_names = ", ".join(t.value for t in allowed_types)
            raise AuthError(
                detail=f"This endpoint requires user type: {allowed_names}",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return current_user

    return dependency


def require_admin():
    """
    Dependency that requires the user to be an admin.

    Usage:
        @router.post("/settlements/{settlement_id}/process")
        async def process(user: CurrentUser = Depends(require_admin())):
            ...
    """
    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not current_user.is_admin:
            logger.warning(f"Admin access denied for user {current_user.user_id} ({current_user.role.value})")
            raise AuthError(
                detail="Admin access required",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return current_user

    return dependency
