"""Run summary returned to the trigger caller."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class _CamelModel(BaseModel):
    class Config:
        populate_by_name = True


class SourceFailure(_CamelModel):
    """A source whose processing failed during the run."""

    source_id: int = Field(..., alias="sourceId")
    source_name: str = Field(..., alias="sourceName")
    error: str


class SkippedArticles(_CamelModel):
    """Items of a source left unattempted because the budget ran out."""

    source_id: int = Field(..., alias="sourceId")
    source_name: str = Field(..., alias="sourceName")
    skipped_count: int = Field(..., alias="skippedCount")


class AIAnalysisStats(_CamelModel):
    """Enrichment counters for one run."""

    attempted: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0


class RunSummary(_CamelModel):
    """Aggregated outcome of one pipeline run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    articles_created: int = Field(0, alias="articlesCreated")
    duplicates_skipped: int = Field(0, alias="duplicatesSkipped")
    errors: List[SourceFailure] = Field(default_factory=list)
    skipped_sources: int = Field(0, alias="skippedSources")
    skipped_articles: List[SkippedArticles] = Field(default_factory=list, alias="skippedArticles")
    has_more_work: bool = Field(False, alias="hasMoreWork")
    stopped_early: bool = Field(False, alias="stoppedEarly")
    ai_analysis: AIAnalysisStats = Field(default_factory=AIAnalysisStats, alias="aiAnalysis")
    total_operations: int = Field(0, alias="totalOperations")

    def record_failure(self, source_id: int, source_name: str, error: str) -> None:
        """Record a source-level failure."""
        self.errors.append(
            SourceFailure(source_id=source_id, source_name=source_name, error=error)
        )

    def record_skipped_articles(self, source_id: int, source_name: str, count: int) -> None:
        """Record items of a source skipped for budget reasons."""
        if count <= 0:
            return
        for entry in self.skipped_articles:
            if entry.source_id == source_id:
                entry.skipped_count += count
                return
        self.skipped_articles.append(
            SkippedArticles(source_id=source_id, source_name=source_name, skipped_count=count)
        )

    def source_failures(self) -> Dict[int, str]:
        """Recorded errors keyed by source id."""
        return {e.source_id: e.error for e in self.errors}

    def to_response(self) -> Dict[str, Any]:
        """Serialize with the camelCase field names of the trigger response."""
        return self.model_dump(by_alias=True)
