"""Tests for the provider backends with mocked transports."""

import json
from unittest.mock import Mock

import pytest
import requests
from diskcache import Cache

from reviewcheck.core.config import Settings
from reviewcheck.core.errors import ProviderCallFailed
from reviewcheck.core.models import Review
from reviewcheck.services.providers import (
    DeepSeekProvider,
    OllamaProvider,
    OpenAIProvider,
    build_providers,
    classify_error,
)

ANSWER = json.dumps({
    "scores": [
        {"id": "r1", "score": 15, "label": "genuine", "confidence": 0.9, "explanation": "specific"},
        {"id": "r2", "score": 92, "label": "fake", "confidence": 0.8, "explanation": "generic"},
    ],
    "fake_examples": [{"id": "r2", "text": "Best ever", "reason": "generic"}],
    "key_patterns": ["generic praise"],
    "explanation": "one suspicious review",
})


def _reviews():
    return [
        Review(id="r1", text="Battery lasts two days with heavy use", rating=4, verified=True),
        Review(id="r2", text="Best ever", rating=5),
    ]


def _openai_client(content):
    client = Mock()
    client.chat.completions.create.return_value = Mock(choices=[Mock(message=Mock(content=content))])
    return client


@pytest.mark.parametrize("exc,kind", [
    (ProviderCallFailed("x", "http_error", "bad"), "http_error"),
    (requests.Timeout("slow"), "timeout"),
    (TimeoutError("slow"), "timeout"),
    (requests.ConnectionError("down"), "connection_error"),
    (requests.HTTPError("500"), "http_error"),
    (ValueError("not json"), "parse_error"),
    (RuntimeError("?"), "unknown"),
])
def test_classify_error(exc, kind):
    assert classify_error(exc) == kind


class TestOpenAIProvider:

    def setup_method(self):
        self.client = _openai_client(ANSWER)

    def test_analyze(self, tmp_path):
        provider = OpenAIProvider(api_key="key", model="gpt-test", client=self.client, cache=Cache(str(tmp_path)))
        result = provider.analyze(_reviews(), "GLOBAL CONTEXT: x")

        assert result.scores["r2"].score == 92
        assert result.artifact.key_patterns == ["generic praise"]
        assert result.cost == pytest.approx(provider.estimated_cost(2))

        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][1]["content"].startswith("GLOBAL CONTEXT: x")

    def test_responses_are_cached(self, tmp_path):
        provider = OpenAIProvider(api_key="key", client=self.client, cache=Cache(str(tmp_path)))
        provider.analyze(_reviews())
        provider.analyze(_reviews())
        assert self.client.chat.completions.create.call_count == 1

    def test_empty_completion_is_parse_error(self, tmp_path):
        provider = OpenAIProvider(api_key="key", client=_openai_client(""), cache=Cache(str(tmp_path)))
        with pytest.raises(ProviderCallFailed) as exc_info:
            provider.analyze(_reviews())
        assert exc_info.value.error_kind == "parse_error"
        assert exc_info.value.provider == "openai"

    def test_availability_and_cost(self, tmp_path):
        provider = OpenAIProvider(api_key="", client=self.client, cache=Cache(str(tmp_path)))
        assert provider.is_available() is False
        # 50 input and 8 output tokens per review at 0.15 / 0.60 per million
        assert provider.estimated_cost(1000) == pytest.approx(0.0123)
        assert provider.max_batch_size == 100

    def test_empty_batch_skips_call(self, tmp_path):
        provider = OpenAIProvider(api_key="key", client=self.client, cache=Cache(str(tmp_path)))
        assert provider.analyze([]).scores == {}
        self.client.chat.completions.create.assert_not_called()


class TestDeepSeekProvider:

    def test_self_hosted_is_free_and_keyless(self, tmp_path):
        provider = DeepSeekProvider(
            api_key="", base_url="http://localhost:8000/v1",
            client=_openai_client(ANSWER), cache=Cache(str(tmp_path)),
        )
        assert provider.is_local
        assert provider.is_available()
        assert provider.estimated_cost(1000) == 0.0
        assert "Self-Hosted" in provider.display_name

    def test_hosted_api_pricing(self, tmp_path):
        provider = DeepSeekProvider(
            api_key="key", base_url="https://api.deepseek.com/v1",
            client=_openai_client(ANSWER), cache=Cache(str(tmp_path)),
        )
        assert provider.name == "deepseek"
        assert provider.estimated_cost(1000) == pytest.approx(0.0223)
        assert provider.analyze(_reviews()).scores["r1"].score == 15


class TestOllamaProvider:

    def setup_method(self):
        self.session = Mock()

    def _provider(self):
        return OllamaProvider(base_url="http://ollama:11434/", model="llama-test", session=self.session)

    def test_available_via_tags(self):
        self.session.get.return_value = Mock(ok=True)
        assert self._provider().is_available() is True
        assert self.session.get.call_args.args[0] == "http://ollama:11434/api/tags"

    def test_unreachable(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        assert self._provider().is_available() is False

    def test_analyze(self):
        response = Mock(status_code=200, text=json.dumps({"response": ANSWER}))
        response.json.return_value = {"response": ANSWER}
        self.session.post.return_value = response

        provider = self._provider()
        result = provider.analyze(_reviews())

        assert result.scores["r2"].score == 92
        assert result.cost == 0.0
        payload = self.session.post.call_args.kwargs["json"]
        assert payload["model"] == "llama-test"
        assert payload["stream"] is False

    def test_html_body_is_http_error(self):
        self.session.post.return_value = Mock(status_code=502, text="<html>Bad gateway</html>")
        with pytest.raises(ProviderCallFailed) as exc_info:
            self._provider().analyze(_reviews())
        assert exc_info.value.error_kind == "http_error"

    def test_connection_error(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderCallFailed) as exc_info:
            self._provider().analyze(_reviews())
        assert exc_info.value.error_kind == "connection_error"


def test_build_providers(tmp_path):
    s = Settings(
        enabled_providers="ollama, OpenAI ,bogus",
        openai_api_key="key",
        cache_dir=str(tmp_path),
        ollama_base_url="http://ollama:11434",
    )
    providers = build_providers(s)
    assert [p.name for p in providers] == ["ollama", "openai"]
    assert providers[0].base_url == "http://ollama:11434"
    assert providers[1].api_key == "key"
