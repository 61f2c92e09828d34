"""AI sentiment and topic enrichment."""

from .coordinator import EnrichmentCoordinator
from .models import AnalysisInput, AnalysisResult, normalize_topics
from .provider import EnrichmentProvider, OpenAIEnrichmentProvider, build_provider

__all__ = [
    "AnalysisInput",
    "AnalysisResult",
    "EnrichmentCoordinator",
    "EnrichmentProvider",
    "OpenAIEnrichmentProvider",
    "build_provider",
    "normalize_topics",
]
