"""Video schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from metastore.schemas.common import CamelModel
from metastore.utils.records import format_duration


def _normalize_duration(value):
    if value is None or value == "":
        return "00:00"
    if isinstance(value, bool):
        raise ValueError("duration must be seconds or a MM:SS / HH:MM:SS string")
    if isinstance(value, (int, float)):
        return format_duration(int(value))
    value = str(value).strip()
    if value.isdigit():
        return format_duration(int(value))
    return value


class VideoCreate(CamelModel):
    title: str
    description: str
    price: float = Field(ge=0)
    duration: str = "00:00"
    video_file_id: str = ""
    thumbnail_file_id: str = ""
    thumbnail_url: str | None = None
    product_link: str = ""
    is_active: bool = True
    is_purchased: bool = False

    @field_validator("duration", mode="before")
    @classmethod
    def normalize_duration(cls, value):
        return _normalize_duration(value)


class VideoUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    duration: str | None = None
    video_file_id: str | None = None
    thumbnail_file_id: str | None = None
    thumbnail_url: str | None = None
    product_link: str | None = None
    is_active: bool | None = None
    is_purchased: bool | None = None

    @field_validator("duration", mode="before")
    @classmethod
    def normalize_duration(cls, value):
        if value is None:
            return None
        return _normalize_duration(value)


class Video(VideoCreate):
    id: str
    created_at: datetime
    views: int = Field(default=0, ge=0)
    description: str = ""
    price: float = Field(default=0.0, ge=0)

    @field_validator("description", "product_link", "video_file_id", "thumbnail_file_id", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value
