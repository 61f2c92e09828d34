"""Article model for stored feed entries."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import DBModel


class Sentiment(str, Enum):
    """Sentiment labels an article can carry."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Article(DBModel):
    """Article model."""

    source_id: int = Field(..., description="Foreign key to sources table")
    title: str = Field(..., description="Article title")
    description: Optional[str] = Field(None, description="Plain text summary")
    link: str = Field(..., description="Canonical link, unique across articles")
    publication_date: datetime = Field(..., description="Publication timestamp")
    sentiment: Optional[Sentiment] = Field(None, description="AI sentiment label")


class NewArticle(BaseModel):
    """Insert command for a single article."""

    source_id: int
    title: str
    description: Optional[str] = None
    link: str
    publication_date: datetime


class ArticleAnalysis(BaseModel):
    """Sentiment and resolved topic ids to write back onto an article."""

    article_id: int
    sentiment: Sentiment
    topic_ids: List[int] = Field(default_factory=list)
