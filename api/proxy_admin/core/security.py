# api/proxy_admin/core/security.py

from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proxy_admin.core.config import settings
from proxy_admin.database import get_session
from proxy_admin.models import User
from proxy_admin.schemas import UserInDB

# Tokens are issued by the login service; this module only verifies them.
security_scheme = HTTPBearer()

ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def token_subject(token: str) -> Optional[str]:
    """Return the ``sub`` claim of a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
        session: AsyncSession = Depends(get_session)
) -> UserInDB:
    username = token_subject(credentials.credentials)
    if username is None:
        raise _unauthorized()

    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized()

    return UserInDB.model_validate(user)


def require_roles(*roles: str, detail: str) -> Callable:
    allowed = frozenset(roles)

    async def dependency(current_user: UserInDB = Depends(get_current_user)) -> UserInDB:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return dependency


# Editors may change proxy configuration; settings are admin-only.
get_current_editor_user = require_roles(
    ROLE_ADMIN, ROLE_EDITOR, detail="Not authorized to change proxy configuration"
)
get_current_admin_user = require_roles(ROLE_ADMIN, detail="Admin role is required for this action")
