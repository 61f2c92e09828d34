"""Data models for PulseReader."""

from .article import Article, ArticleAnalysis, NewArticle, Sentiment
from .run import Run
from .source import Source
from .summary import AIAnalysisStats, RunSummary, SkippedArticles, SourceFailure
from .topic import Topic

__all__ = [
    "AIAnalysisStats",
    "Article",
    "ArticleAnalysis",
    "NewArticle",
    "Run",
    "RunSummary",
    "Sentiment",
    "SkippedArticles",
    "Source",
    "SourceFailure",
    "Topic",
]
