"""Request/response bodies for /generate."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GenerationCreate(BaseModel):
    prompt: str = Field(min_length=1, max_length=1000)
    style: str | None = Field(default=None, max_length=100)
    image_upload: str | None = None  # data URL or base64 of the source image


class GenerationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    prompt: str
    style: str | None = None
    original_image: str | None = None
    image_url: str
    status: str
    created_at: datetime | None = None
