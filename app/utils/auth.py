"""
Bearer token authentication dependencies
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.models.enums import UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Identity extracted from a verified access token"""
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def create_access_token(user_id: int, role: UserRole = UserRole.STUDENT, expires_minutes: int = 60) -> str:
    """Issue a signed access token (used by tests and admin scripts)"""
    payload = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """
    Verify a token and build the current user
    
    Raises:
        HTTPException: 401 if the token is expired, tampered or malformed
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return CurrentUser(id=int(payload["sub"]), role=UserRole(payload.get("role", UserRole.STUDENT.value)))
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        logger.warning(f"Rejected access token: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid authentication token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> CurrentUser:
    """Require an authenticated user"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="User authentication required")

    return decode_access_token(credentials.credentials)


def require_roles(*roles: UserRole):
    """Build a dependency that only admits the given roles"""
    
    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="You do not have permission to perform this action")
        return user
    
    return dependency
