"""Enrichment provider interface and OpenAI-compatible implementation."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence

import openai
from openai import OpenAI
from pydantic import ValidationError

from ..errors import EnrichmentResponseError, ProviderError
from .models import AnalysisInput, AnalysisResult, BatchAnalysisItem

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert news analyst specializing in sentiment analysis and topic classification for news articles.

Your task is to analyze news articles and provide structured analysis in JSON format only.

Key guidelines:
- Be objective and consistent in sentiment classification
- Focus on factual content rather than sensational headlines
- Extract meaningful, specific topics rather than generic categories
- If uncertain about sentiment, default to "neutral"
- Topics should be useful for content filtering

Return ONLY the JSON response, no additional text or explanations."""

ARTICLE_INSTRUCTIONS = """Instructions:
1. Classify the overall sentiment as exactly one of: "positive", "neutral", or "negative"
2. Extract 2-3 main topics that best describe the content
3. Topics should be concise (1-3 words each), unique, and lowercase unless proper nouns"""


class EnrichmentProvider(ABC):
    """Abstract base class for sentiment/topic providers."""

    supports_batch: bool = True

    @abstractmethod
    def analyze_article(self, item: AnalysisInput) -> AnalysisResult:
        """
        Analyze a single article.

        Raises:
            ProviderError: the provider failed or timed out
            EnrichmentResponseError: the response was malformed
        """

    @abstractmethod
    def analyze_batch(self, items: Sequence[AnalysisInput]) -> Dict[int, AnalysisResult]:
        """
        Analyze several articles with one provider call.

        Returns results keyed by article id. Articles the provider skipped or
        answered invalidly are absent from the result.
        """

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {}


class OpenAIEnrichmentProvider(EnrichmentProvider):
    """Chat-completion provider for any OpenAI-compatible API (OpenRouter by default)."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        max_topics: int = 5,
        client: Optional[OpenAI] = None,
    ) -> None:
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Model name to use
            base_url: Custom base URL (OpenRouter, local gateway)
            timeout: Per-request timeout in seconds
            max_topics: Topics kept per article
            client: Preconfigured client (for testing)
        """
        # Retries are the external scheduler's job, never the client's
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
        self.max_topics = max_topics
        self.total_tokens = 0
        self.api_calls = 0

    def _complete(self, prompt: str, max_tokens: int) -> str:
        try:
            self.api_calls += 1
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.1,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            raise ProviderError(f"AI provider timed out: {e}")
        except openai.RateLimitError as e:
            raise ProviderError(f"AI rate limit exceeded: {e}", code="AI_RATE_LIMIT_EXCEEDED")
        except openai.APIStatusError as e:
            if e.status_code == 402:
                raise ProviderError("AI provider reports insufficient credits", code="AI_INSUFFICIENT_CREDITS")
            raise ProviderError(f"AI provider error {e.status_code}: {e.message}")
        except openai.APIError as e:
            raise ProviderError(f"AI provider error: {e}")

        if response.usage:
            self.total_tokens += response.usage.total_tokens

        if not response.choices or not response.choices[0].message.content:
            raise EnrichmentResponseError("AI response content is empty")

        return response.choices[0].message.content.strip()

    @staticmethod
    def _parse_json(content: str) -> dict:
        # Some models wrap JSON in a markdown fence despite response_format
        if content.startswith("```"):
            content = content.strip("`")
            if content.startswith("json"):
                content = content[4:]
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise EnrichmentResponseError(f"AI response is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise EnrichmentResponseError("AI response is not a JSON object")
        return data

    def _limit(self, result: AnalysisResult) -> AnalysisResult:
        if len(result.topics) > self.max_topics:
            return AnalysisResult(sentiment=result.sentiment, topics=result.topics[:self.max_topics])
        return result

    def analyze_article(self, item: AnalysisInput) -> AnalysisResult:
        """Analyze one article."""
        prompt = f"""Please analyze this news article and provide sentiment classification and topic extraction.

Article Title: {item.title}

Article Content: {item.combined_text}

{ARTICLE_INSTRUCTIONS}

Return only valid JSON in this exact format:
{{"sentiment": "positive|neutral|negative", "topics": ["topic1", "topic2"]}}"""

        data = self._parse_json(self._complete(prompt, max_tokens=500))
        try:
            return self._limit(AnalysisResult.model_validate(data))
        except ValidationError as e:
            raise EnrichmentResponseError(f"AI response failed validation: {e}")

    def analyze_batch(self, items: Sequence[AnalysisInput]) -> Dict[int, AnalysisResult]:
        """Analyze several articles in one call."""
        if not items:
            return {}

        articles = "\n\n".join(
            f"[id={item.article_id}]\nTitle: {item.title}\nContent: {item.combined_text}"
            for item in items
        )
        prompt = f"""Please analyze each of the following {len(items)} news articles.

{articles}

{ARTICLE_INSTRUCTIONS}

Return only valid JSON in this exact format, with one entry per article id:
{{"results": [{{"id": 123, "sentiment": "positive|neutral|negative", "topics": ["topic1", "topic2"]}}]}}"""

        data = self._parse_json(self._complete(prompt, max_tokens=min(150 * len(items) + 100, 4000)))
        entries = data.get("results")
        if not isinstance(entries, list):
            raise EnrichmentResponseError("AI batch response has no results list")

        wanted = {item.article_id for item in items}
        results: Dict[int, AnalysisResult] = {}
        for entry in entries:
            try:
                parsed = BatchAnalysisItem.model_validate(entry)
            except ValidationError as e:
                logger.debug("Dropping invalid batch entry %r: %s", entry, e)
                continue
            if parsed.id in wanted and parsed.id not in results:
                results[parsed.id] = self._limit(
                    AnalysisResult(sentiment=parsed.sentiment, topics=parsed.topics)
                )

        if not results:
            raise EnrichmentResponseError("AI batch response contained no usable entries")
        return results

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "model": self.model,
        }


def build_provider(llm_settings) -> Optional[EnrichmentProvider]:
    """Create the provider, or None when no credential is configured."""
    if not llm_settings.api_key:
        logger.warning("No AI provider API key configured, enrichment disabled for this run")
        return None
    return OpenAIEnrichmentProvider(
        api_key=llm_settings.api_key,
        model=llm_settings.model,
        base_url=llm_settings.base_url,
        timeout=llm_settings.timeout,
        max_topics=llm_settings.max_topics,
    )
