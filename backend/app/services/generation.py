"""Mock image generation: simulated latency, random overload, placeholder image URL."""

import asyncio
import logging
import random
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import ModelOverloaded
from app.models.generation import Generation

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = "https://picsum.photos/seed/{seed}/800/600"


async def _simulate_delay(rng: random.Random) -> None:
    low = settings.generation_min_delay_seconds
    high = max(low, settings.generation_max_delay_seconds)
    delay = rng.uniform(low, high)
    if delay > 0:
        await asyncio.sleep(delay)


def _is_model_overloaded(rng: random.Random) -> bool:
    return rng.random() < settings.generation_failure_rate


async def create_generation(
    session: AsyncSession,
    user_id: str,
    *,
    prompt: str,
    style: str | None = None,
    image_upload: str | None = None,
    rng: random.Random | None = None,
) -> Generation:
    """Store a completed generation or raise ModelOverloaded."""
    rng = rng or random.Random()
    await _simulate_delay(rng)
    if _is_model_overloaded(rng):
        logger.warning("Generation for user %s rejected: model overloaded", user_id)
        raise ModelOverloaded()
    generation = Generation(
        user_id=user_id,
        prompt=prompt,
        style=style,
        original_image=image_upload,
        image_url=PLACEHOLDER_IMAGE_URL.format(seed=int(time.time() * 1000)),
        status="completed",
    )
    session.add(generation)
    await session.flush()
    await session.refresh(generation)
    return generation


async def list_generations(session: AsyncSession, user_id: str, limit: int | None = None) -> list[Generation]:
    """Most recent generations of the user, newest first."""
    limit = limit or settings.generation_history_limit
    r = await session.execute(
        select(Generation)
        .where(Generation.user_id == user_id)
        .order_by(Generation.created_at.desc())
        .limit(limit)
    )
    return list(r.scalars().all())
