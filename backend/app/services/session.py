"""Login, logout, refresh and request authorization.

This is the only place that turns fine-grained token errors into the coarse
errors clients see (InvalidCredentials, LogoutFailed, Unauthorized), so a
caller can never tell which check failed.

Revocation policy:
  - logout deletes every refresh token of the user, not only the presented one;
  - authorize never reads the token store, so an access token stays usable
    until it expires even after logout. Its lifetime is kept short for that.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import PasswordHasher, TokenCodec, TokenKind
from app.core.errors import InvalidCredentials, LogoutFailed, TokenError, Unauthorized
from app.models.user import User
from app.services import users
from app.services.token_store import TokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenInfo:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class AuthTokenPair:
    access: TokenInfo
    refresh: TokenInfo


class SessionService:
    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        hasher: PasswordHasher,
        store: TokenStore | None = None,
    ) -> None:
        self.session = session
        self.codec = codec
        self.hasher = hasher
        self.store = store if store is not None else TokenStore(session)

    async def _issue_pair(self, user: User) -> AuthTokenPair:
        """Create access and refresh tokens; only the refresh token is persisted."""
        access, access_expires = self.codec.issue(user.id, TokenKind.ACCESS)
        refresh, refresh_expires = self.codec.issue(user.id, TokenKind.REFRESH)
        await self.store.save(user.id, TokenKind.REFRESH, refresh, refresh_expires)
        return AuthTokenPair(
            access=TokenInfo(token=access, expires_at=access_expires),
            refresh=TokenInfo(token=refresh, expires_at=refresh_expires),
        )

    async def login(self, email: str, password: str) -> tuple[User, AuthTokenPair]:
        user = await users.get_user_by_email(self.session, email)
        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Login failed: unknown account")
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed: bad password for user %s", user.id)
            raise InvalidCredentials()
        pair = await self._issue_pair(user)
        logger.info("User %s logged in", user.id)
        return user, pair

    async def logout(self, refresh_token: str) -> None:
        try:
            issued = self.codec.verify(refresh_token, TokenKind.REFRESH)
        except TokenError as e:
            logger.info("Logout rejected: %s", type(e).__name__)
            raise LogoutFailed() from e
        if await self.store.find(refresh_token, TokenKind.REFRESH) is None:
            logger.info("Logout rejected: refresh token not on record")
            raise LogoutFailed()
        user = await users.get_user_by_id(self.session, issued.subject_id)
        if user is None:
            logger.info("Logout rejected: user not found")
            raise LogoutFailed()
        removed = await self.store.delete_by_user(user.id, TokenKind.REFRESH)
        logger.info("User %s logged out, %d refresh tokens revoked", user.id, removed)

    async def refresh(self, refresh_token: str) -> tuple[User, AuthTokenPair]:
        """Exchange a live refresh token for a new pair (rotation)."""
        try:
            issued = self.codec.verify(refresh_token, TokenKind.REFRESH)
        except TokenError as e:
            logger.info("Refresh rejected: %s", type(e).__name__)
            raise Unauthorized() from e
        record = await self.store.find(refresh_token, TokenKind.REFRESH)
        if record is None:
            logger.info("Refresh rejected: refresh token not on record")
            raise Unauthorized()
        user = await users.get_user_by_id(self.session, issued.subject_id)
        if user is None:
            raise Unauthorized()
        await self.store.delete(record)
        return user, await self._issue_pair(user)

    async def authorize(self, access_token: str) -> User:
        """Resolve an access token to its user. Does not consult the token store."""
        try:
            issued = self.codec.verify(access_token, TokenKind.ACCESS)
        except TokenError as e:
            raise Unauthorized() from e
        user = await users.get_user_by_id(self.session, issued.subject_id)
        if user is None:
            raise Unauthorized()
        return user
