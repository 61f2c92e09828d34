"""Tests for the OpenAI-compatible enrichment provider."""
import json
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from pulsereader.config import LLMSettings
from pulsereader.enrichment import AnalysisInput, OpenAIEnrichmentProvider, build_provider
from pulsereader.errors import EnrichmentResponseError, ProviderError
from pulsereader.models import Sentiment

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _input(article_id=1, title="Markets rally"):
    return AnalysisInput(article_id=article_id, title=title, combined_text=f"{title} after rate cut")


def _client(content=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = MagicMock(content=content)
        client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=message)],
            usage=MagicMock(total_tokens=42),
        )
    return client


def _provider(client, max_topics=5):
    return OpenAIEnrichmentProvider(api_key="test", model="test-model", client=client, max_topics=max_topics)


def test_analyze_article():
    client = _client(json.dumps({"sentiment": "Positive", "topics": ["economy", "Markets"]}))
    provider = _provider(client)

    result = provider.analyze_article(_input())

    assert result.sentiment == Sentiment.POSITIVE
    assert result.topics == ["economy", "Markets"]
    assert provider.get_usage_stats()["total_tokens"] == 42
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert "Markets rally" in kwargs["messages"][1]["content"]


def test_markdown_fenced_json_accepted():
    content = '```json\n{"sentiment": "neutral", "topics": []}\n```'

    result = _provider(_client(content)).analyze_article(_input())

    assert result.sentiment == Sentiment.NEUTRAL


def test_topics_capped():
    content = json.dumps({"sentiment": "neutral", "topics": ["a", "b", "c"]})

    result = _provider(_client(content), max_topics=2).analyze_article(_input())

    assert result.topics == ["a", "b"]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps(["neutral"]),
        json.dumps({"sentiment": "angry", "topics": []}),
        "",
    ],
)
def test_malformed_response(content):
    with pytest.raises(EnrichmentResponseError):
        _provider(_client(content)).analyze_article(_input())


def test_timeout_maps_to_provider_error():
    error = openai.APITimeoutError(request=REQUEST)

    with pytest.raises(ProviderError):
        _provider(_client(error=error)).analyze_article(_input())


def test_rate_limit_code():
    response = httpx.Response(429, request=REQUEST)
    error = openai.RateLimitError("slow down", response=response, body=None)

    with pytest.raises(ProviderError) as exc_info:
        _provider(_client(error=error)).analyze_article(_input())

    assert exc_info.value.code == "AI_RATE_LIMIT_EXCEEDED"


def test_insufficient_credits_code():
    response = httpx.Response(402, request=REQUEST)
    error = openai.APIStatusError("payment required", response=response, body=None)

    with pytest.raises(ProviderError) as exc_info:
        _provider(_client(error=error)).analyze_article(_input())

    assert exc_info.value.code == "AI_INSUFFICIENT_CREDITS"


def test_analyze_batch_keeps_valid_requested_entries():
    content = json.dumps(
        {
            "results": [
                {"id": 1, "sentiment": "negative", "topics": ["war"]},
                {"id": 2, "sentiment": "bogus", "topics": []},
                {"id": 99, "sentiment": "positive", "topics": []},
            ]
        }
    )

    results = _provider(_client(content)).analyze_batch([_input(1), _input(2, "Other")])

    assert list(results) == [1]
    assert results[1].sentiment == Sentiment.NEGATIVE


def test_analyze_batch_without_usable_entries():
    content = json.dumps({"results": [{"id": 5, "sentiment": "neutral", "topics": []}]})

    with pytest.raises(EnrichmentResponseError):
        _provider(_client(content)).analyze_batch([_input(1)])


def test_build_provider_without_key_disables_enrichment():
    assert build_provider(LLMSettings(model="m", api_key=None)) is None

    provider = build_provider(LLMSettings(model="m", api_key="k", base_url="http://localhost:1/v1"))
    assert isinstance(provider, OpenAIEnrichmentProvider)
    assert provider.client.max_retries == 0
