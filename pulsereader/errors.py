"""Exception hierarchy for the ingestion pipeline."""

from typing import Optional


class PulseReaderError(Exception):
    """Base error carrying a machine-readable code."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class ConfigurationError(PulseReaderError):
    """Configuration is missing or invalid."""

    code = "CONFIGURATION_ERROR"


class AuthenticationRequiredError(PulseReaderError):
    """Caller presented no valid credential."""

    code = "AUTHENTICATION_REQUIRED"


class ForbiddenError(PulseReaderError):
    """Caller is authenticated but not privileged."""

    code = "FORBIDDEN"


class RunInProgressError(PulseReaderError):
    """Another run currently holds the lease."""

    code = "RUN_IN_PROGRESS"


class StoreUnavailableError(PulseReaderError):
    """A store could not be reached at all."""

    code = "STORE_UNAVAILABLE"


class StoreError(PulseReaderError):
    """A single store operation failed."""

    code = "STORE_ERROR"


class DuplicateArticleError(StoreError):
    """An article with the same canonical link already exists."""

    code = "ARTICLE_ALREADY_EXISTS"


class EnrichmentError(PulseReaderError):
    """Enrichment of one or more articles failed."""

    code = "ENRICHMENT_FAILED"


class ProviderError(EnrichmentError):
    """The AI provider returned an error or timed out."""

    code = "AI_PROVIDER_ERROR"


class EnrichmentResponseError(EnrichmentError):
    """The AI provider response could not be parsed or validated."""

    code = "AI_RESPONSE_INVALID"


class BudgetExceededError(PulseReaderError):
    """More operations were consumed than the ceiling allows."""

    code = "BUDGET_EXCEEDED"
