"""Refresh-token persistence.

Records are keyed by the SHA256 of the token string; the token itself is never
stored. Every call is a fresh query against the session, nothing is cached.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import TokenKind, hash_token
from app.models.token import Token

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def save(self, user_id: str, kind: TokenKind, token: str, expires_at: datetime) -> Token:
        """Append a record. Existing records for the same user are left alone (multiple sessions)."""
        record = Token(
            user_id=user_id,
            kind=TokenKind(kind).value,
            token_hash=hash_token(token),
            expires_at=expires_at,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def find(self, token: str, kind: TokenKind) -> Token | None:
        """Exact-match lookup; an expired record counts as not found."""
        r = await self.session.execute(
            select(Token)
            .where(
                Token.token_hash == hash_token(token),
                Token.kind == TokenKind(kind).value,
                Token.expires_at > _utcnow(),
            )
            .limit(1)
        )
        return r.scalar_one_or_none()

    async def delete(self, record: Token) -> None:
        await self.session.delete(record)
        await self.session.flush()

    async def delete_by_user(self, user_id: str, kind: TokenKind) -> int:
        """Remove every record of ``kind`` for the user, not only the one presented."""
        result = await self.session.execute(
            delete(Token).where(Token.user_id == user_id, Token.kind == TokenKind(kind).value)
        )
        await self.session.flush()
        return result.rowcount or 0

    async def purge_expired(self) -> int:
        result = await self.session.execute(
            delete(Token)
            .where(Token.expires_at <= _utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired tokens", removed)
        return removed
