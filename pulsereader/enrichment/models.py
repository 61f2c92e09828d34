"""Data models for AI enrichment."""

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models import Article, Sentiment

MAX_TOPICS = 5
MAX_TOPIC_LENGTH = 50
MAX_ANALYSIS_TEXT = 1500

_WHITESPACE = re.compile(r"\s+")


def normalize_topics(topics: List[str], limit: int = MAX_TOPICS) -> List[str]:
    """Trim, collapse whitespace, drop empties and case-insensitive repeats."""
    cleaned: List[str] = []
    seen = set()
    for topic in topics:
        if not isinstance(topic, str):
            continue
        name = _WHITESPACE.sub(" ", topic).strip()[:MAX_TOPIC_LENGTH].strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        cleaned.append(name)
        if len(cleaned) >= limit:
            break
    return cleaned


class AnalysisInput(BaseModel):
    """Text sent to the provider for one article."""

    article_id: int = Field(..., description="Article database ID")
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    combined_text: str = Field(..., min_length=1, max_length=MAX_ANALYSIS_TEXT + 3)

    @classmethod
    def from_article(cls, article: Article) -> "AnalysisInput":
        """Combine title and description into the text to analyse."""
        title = article.title.strip()[:500]
        description = (article.description or "").strip() or None

        combined = title
        if description:
            combined = description if title in description else f"{title}\n\n{description}"

        combined = _WHITESPACE.sub(" ", combined).strip()
        if len(combined) > MAX_ANALYSIS_TEXT:
            combined = combined[:MAX_ANALYSIS_TEXT] + "..."

        return cls(
            article_id=article.id,
            title=title,
            description=description,
            combined_text=combined,
        )


class AnalysisResult(BaseModel):
    """Validated sentiment and topics for one article."""

    sentiment: Sentiment
    topics: List[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def lower_sentiment(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("topics", mode="before")
    @classmethod
    def clean_topics(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("topics must be a list")
        return normalize_topics(v)


class BatchAnalysisItem(AnalysisResult):
    """One entry of a batch response, keyed by article id."""

    id: int
