from urllib.parse import urlsplit

from pydantic import BaseModel, Field, computed_field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime
from shortlink_app.config import settings
from shortlink_app.exceptions import InvalidArgumentError
from shortlink_app.models.url import UrlStatus


def validate_original_url(value: str) -> str:
    """
    Check that value is an absolute http/https URL with a host.

    Raises InvalidArgumentError (a ValueError, so pydantic validators can use it too).
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError("Original URL is required")
    if len(value) > settings.max_url_length:
        raise InvalidArgumentError(f"URL must not exceed {settings.max_url_length} characters")
    if any(char.isspace() for char in value):
        raise InvalidArgumentError("URL must not contain whitespace")

    try:
        parts = urlsplit(value)
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidArgumentError(f"Malformed URL: {e}") from e

    if parts.scheme not in ("http", "https") or not hostname:
        raise InvalidArgumentError("URL must be an absolute http or https URL")
    return value


class URLRecord(BaseModel):
    """
    Canonical snapshot of a URL row.

    Returned by the store, cached as JSON under id:<id> and user:<owner_id>,
    and handed to callers - there is no separate cached projection.
    """
    id: int
    short_code: str
    original_url: str
    owner_id: Optional[str] = None
    clicks: int = 0
    status: UrlStatus = UrlStatus.ACTIVE
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_active(self) -> bool:
        return self.status == UrlStatus.ACTIVE


class URLCreate(BaseModel):
    original_url: str = Field(..., description="The original URL to be shortened")

    @field_validator("original_url")
    @classmethod
    def check_original_url(cls, v: str) -> str:
        return validate_original_url(v)


class URLUpdate(URLCreate):
    pass


class StatusUpdate(BaseModel):
    status: UrlStatus


class URLResponse(URLRecord):
    """Response schema: the record plus its public short URL"""

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/r/{self.short_code}"


class URLStats(BaseModel):
    short_code: str
    clicks: int
    # Best-effort counter from the cache; may lag behind clicks or be missing
    recent_clicks: Optional[int] = None
    status: UrlStatus
    created_at: datetime
    # Last write of any kind: click, status change or URL update
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
