"""FastAPI dependencies: session service wiring and current user from the bearer token."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import PasswordHasher, TokenCodec, get_password_hasher, get_token_codec
from app.core.errors import Unauthorized
from app.db.session import get_db
from app.models.user import User
from app.services.session import SessionService


def get_session_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> SessionService:
    return SessionService(session, codec, hasher)


async def get_current_user(
    request: Request,
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> User:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Please authenticate")
    token = auth_header[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Please authenticate")
    try:
        return await sessions.authorize(token)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=e.detail)
