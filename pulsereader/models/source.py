"""Source model for RSS feed sources."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import DBModel


class Source(DBModel):
    """RSS feed source model."""

    name: str = Field(..., description="Source display name")
    url: str = Field(..., description="RSS feed URL")
    is_active: bool = Field(True, description="Whether the source is fetched")
    last_fetched_at: Optional[datetime] = Field(None, description="Last successful fetch")
    last_error: Optional[str] = Field(None, description="Error from the last failed fetch")
