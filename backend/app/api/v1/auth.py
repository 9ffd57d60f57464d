"""Auth: register, login, logout, refresh, me."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_session_service
from app.core.auth import PasswordHasher, get_password_hasher
from app.core.errors import EmailAlreadyTaken, InvalidCredentials, LogoutFailed, Unauthorized
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginBody,
    LogoutResponse,
    RefreshTokenBody,
    RegisterBody,
    TokenOut,
    TokenPairOut,
    UserOut,
)
from app.services import users
from app.services.session import AuthTokenPair, SessionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User, pair: AuthTokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserOut.model_validate(user),
        token=TokenPairOut(
            access=TokenOut(token=pair.access.token, expires_at=pair.access.expires_at),
            refresh=TokenOut(token=pair.refresh.token, expires_at=pair.refresh.expires_at),
        ),
    )


@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={
        400: {"description": "Email is already taken"},
        422: {"description": "Invalid name, email, password or role"},
    },
)
async def register(
    session: Annotated[AsyncSession, Depends(get_db)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    body: RegisterBody,
) -> UserOut:
    try:
        user = await users.create_user(
            session,
            hasher,
            email=body.email,
            password=body.password,
            name=body.name.strip(),
            role=body.role,
        )
    except EmailAlreadyTaken as e:
        raise HTTPException(status_code=400, detail=e.detail) from e
    logger.info("Registered user %s", user.id)
    return UserOut.model_validate(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login with email and password",
    responses={
        401: {"description": "Incorrect email or password"},
    },
)
async def login(
    sessions: Annotated[SessionService, Depends(get_session_service)],
    body: LoginBody,
) -> AuthResponse:
    try:
        user, pair = await sessions.login(body.email, body.password)
    except InvalidCredentials as e:
        raise HTTPException(status_code=401, detail=e.detail) from e
    return _auth_response(user, pair)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Revoke all refresh tokens of the token's owner",
    responses={
        401: {"description": "Logout failed"},
    },
)
async def logout(
    sessions: Annotated[SessionService, Depends(get_session_service)],
    body: RefreshTokenBody,
) -> LogoutResponse:
    try:
        await sessions.logout(body.refresh_token.strip())
    except LogoutFailed as e:
        raise HTTPException(status_code=401, detail=e.detail) from e
    return LogoutResponse()


@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Exchange refresh token for new access and refresh tokens",
    responses={
        401: {"description": "Refresh token invalid, expired or revoked"},
    },
)
async def refresh_tokens(
    sessions: Annotated[SessionService, Depends(get_session_service)],
    body: RefreshTokenBody,
) -> AuthResponse:
    """Exchange refresh_token for new access and refresh tokens (rotation)."""
    try:
        user, pair = await sessions.refresh(body.refresh_token.strip())
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=e.detail) from e
    return _auth_response(user, pair)


@router.get(
    "/me",
    response_model=UserOut,
    summary="Get current authenticated user",
    responses={
        401: {"description": "Not authenticated or invalid token"},
    },
)
async def me(user: Annotated[User, Depends(get_current_user)]) -> UserOut:
    return UserOut.model_validate(user)
