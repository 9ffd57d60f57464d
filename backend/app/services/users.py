"""User lookup and registration."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import PasswordHasher
from app.core.errors import EmailAlreadyTaken
from app.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    r = await session.execute(select(User).where(User.email == normalize_email(email)).limit(1))
    return r.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    r = await session.execute(select(User).where(User.id == user_id))
    return r.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    hasher: PasswordHasher,
    *,
    email: str,
    password: str,
    name: str,
    role: str = "user",
) -> User:
    """Insert a user with a hashed password. Raises EmailAlreadyTaken on duplicates."""
    email = normalize_email(email)
    if await get_user_by_email(session, email) is not None:
        raise EmailAlreadyTaken()
    user = User(email=email, name=name, role=role, password_hash=hasher.hash(password))
    session.add(user)
    try:
        # Concurrent registration can slip past the check above; the unique index decides.
        await session.flush()
    except IntegrityError as e:
        logger.warning("Register IntegrityError for duplicate email")
        raise EmailAlreadyTaken() from e
    await session.refresh(user)
    return user
