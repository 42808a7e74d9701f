"""Authentication router for organization sign-up and login."""
import re
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from podslice.database import get_db
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.schemas.auth import UserRegister, UserLogin, Token
from podslice.auth.security import hash_password, verify_password, create_access_token, create_refresh_token

router = APIRouter()


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    # Suffix keeps slugs unique without a lookup
    return f"{slug or 'org'}-{uuid4().hex[:6]}"


def _tokens_for(user: User) -> dict:
    claims = {"sub": user.uuid, "email": user.email, "role": user.user_role, "org": user.organization_id}
    return {
        "access_token": create_access_token(data=claims),
        "refresh_token": create_refresh_token(data=claims),
        "token_type": "bearer",
    }


@router.post("/register", response_model=Token)
async def register(user_data: UserRegister, db: AsyncSession = Depends(get_db)):
    """
    Create an organization together with its first admin user.

    - Checks email uniqueness
    - Hashes password with bcrypt
    - Returns JWT tokens
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    organization = Organization(
        name=user_data.organization_name,
        slug=_slugify(user_data.organization_name),
    )
    db.add(organization)
    await db.flush()

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        status="active",
        user_role="admin",
        organization_id=organization.uuid,
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    return _tokens_for(new_user)


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    """Login with email and password."""
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    return _tokens_for(user)
