"""Data models for ingestion."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FeedItem(BaseModel):
    """Normalized feed entry."""

    title: str = Field(..., description="Article title")
    link: str = Field(..., description="Canonical article link")
    publication_date: datetime = Field(..., description="Publication date")
    description: Optional[str] = Field(None, description="Plain text description")


class FeedResult(BaseModel):
    """Result of fetching a feed."""

    source_name: str = Field(..., description="Source name")
    source_url: str = Field(..., description="Feed URL")
    success: bool = Field(..., description="Whether fetch and parse succeeded")
    items: list[FeedItem] = Field(default_factory=list, description="Parsed feed items")
    error: Optional[str] = Field(None, description="Error message if failed")
    request_sent: bool = Field(True, description="Whether a request reached the network")

    @property
    def item_count(self) -> int:
        """Number of items parsed."""
        return len(self.items)
