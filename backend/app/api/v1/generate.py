"""Mock image generation for the authenticated user."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.config import settings
from app.core.errors import ModelOverloaded
from app.db.session import get_db
from app.models.user import User
from app.schemas.generation import GenerationCreate, GenerationOut
from app.services.generation import create_generation, list_generations

router = APIRouter(prefix="/generate", tags=["generate"])


@router.post(
    "",
    response_model=GenerationOut,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an image from a prompt",
    responses={
        401: {"description": "Not authenticated"},
        503: {"description": "Model overloaded, retry later"},
    },
)
async def create(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    body: GenerationCreate,
) -> GenerationOut:
    try:
        generation = await create_generation(
            session,
            user.id,
            prompt=body.prompt,
            style=body.style,
            image_upload=body.image_upload,
        )
    except ModelOverloaded as e:
        raise HTTPException(status_code=503, detail=e.detail) from e
    return GenerationOut.model_validate(generation)


@router.get(
    "",
    response_model=list[GenerationOut],
    summary="List my most recent generations",
    responses={401: {"description": "Not authenticated"}},
)
async def list_mine(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    limit: int = Query(default=settings.generation_history_limit, ge=1, le=50),
) -> list[GenerationOut]:
    rows = await list_generations(session, user.id, limit)
    return [GenerationOut.model_validate(r) for r in rows]
