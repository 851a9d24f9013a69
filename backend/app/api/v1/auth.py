"""
Authentication endpoints.

Only admins use the API. The first admin is created through /bootstrap
while the users table is still empty.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.config import settings
from app.core.deps import get_current_user
from app.core.exceptions import ConflictError, ValidationError
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import User
from app.schemas.auth import AdminBootstrap, TokenResponse, UserEnvelope, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        is_admin=user.is_admin,
        is_active=user.is_active,
        created=user.created,
        updated=user.updated,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Exchange email and password for a bearer token."""
    result = await db.execute(
        select(User).where(func.lower(User.email) == credentials.email.lower())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled"
        )

    token = create_access_token(subject=user.id)
    return TokenResponse(token=token, user=user_to_response(user))


@router.get("/me", response_model=UserEnvelope)
async def me(current_user: User = Depends(get_current_user)):
    """Current user."""
    return UserEnvelope(user=user_to_response(current_user))


@router.post("/bootstrap", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def bootstrap_admin(
    data: AdminBootstrap,
    db: AsyncSession = Depends(get_db)
):
    """Create the first admin account. Refused once any user exists."""
    existing = await db.execute(select(func.count(User.id)))
    if (existing.scalar() or 0) > 0:
        raise ConflictError("An admin account already exists")

    email = data.email or settings.BOOTSTRAP_ADMIN_EMAIL
    password = data.password or settings.BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        raise ValidationError("email and password are required")

    user = User(
        email=email.lower(),
        name=data.name,
        password_hash=get_password_hash(password),
        is_admin=True,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info("Bootstrapped admin account %s", user.email)

    token = create_access_token(subject=user.id)
    return TokenResponse(message="Admin created", token=token, user=user_to_response(user))
