"""FastAPI dependencies for authentication and authorization."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from podslice.database import get_db
from podslice.errors import AuthorizationError, NotFoundError
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.auth.security import decode_token

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Extract and validate the current user from the JWT Bearer token.
    Raises HTTPException 401 if the token is invalid or the user is gone.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.uuid == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Ensure the current user is active and belongs to an organization."""
    if current_user.status != "active" or not current_user.organization_id:
        raise AuthorizationError("User account is not active")
    return current_user


async def admin_required(current_user: User = Depends(get_current_active_user)) -> User:
    """Ensure the current user is an admin of their organization."""
    if current_user.user_role != "admin":
        raise AuthorizationError("Unauthorized. Admin access required.")
    return current_user


def ensure_organization_admin(user: User, organization_id: str) -> None:
    """Raise unless ``user`` is an admin of ``organization_id``."""
    if user.organization_id != organization_id or user.user_role != "admin":
        raise AuthorizationError()


async def get_current_organization(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Organization:
    """Load the organization the current user belongs to."""
    result = await db.execute(
        select(Organization).where(Organization.uuid == current_user.organization_id)
    )
    organization = result.scalar_one_or_none()
    if organization is None:
        raise NotFoundError("Organization not found")
    return organization
