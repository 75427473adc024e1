# Authentication Dependencies for Revu Platform
# Turns a verified bearer token into the {user_id, role} pair the services act on.
# Token issuance/refresh belongs to the auth collaborator; create_access_token is
# only here so that collaborator and the tests mint compatible tokens.

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import jwt, JWTError
from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel

from config.app_config import JWT_SECRET, JWT_ALGORITHM
from database.config import get_db
from database.models import User
from auth.roles import UserType


security = HTTPBearer()


class TokenData(BaseModel):
    user_id: Optional[str] = None


class CurrentUser(BaseModel):
    """The authenticated caller as seen by the lifecycle services."""
    user_id: str
    role: UserType

    @property
    def is_admin(self) -> bool:
        return self.role == UserType.ADMIN


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=1))
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode and validate JWT token."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return TokenData(user_id=user_id)


def to_current_user(user: User) -> CurrentUser:
    role = user.user_type.value if hasattr(user.user_type, "value") else user.user_type
    return CurrentUser(user_id=user.id, role=UserType(role))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> CurrentUser:
    """
    Validate JWT token and return current user.
    This is the core authentication dependency.
    """
    token_data = decode_access_token(credentials.credentials)

    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return to_current_user(user)
