"""LLM providers that score reviews for authenticity."""

import hashlib
import logging
from abc import ABC, abstractmethod
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional

import openai
import requests
from diskcache import Cache
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.config import Settings, load_provider_catalog, settings
from ..core.constants import CacheConstants, ErrorConstants, PromptConstants
from ..core.errors import ProviderCallFailed
from ..core.models import ProviderResult, Review
from .prompts import build_analysis_prompt, parse_analysis_response

logger = logging.getLogger(__name__)

_TRANSIENT_OPENAI_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def classify_error(exc: BaseException) -> str:
    """Map an exception onto the failure-event error kinds."""
    if isinstance(exc, ProviderCallFailed):
        return exc.error_kind
    if isinstance(exc, (openai.APITimeoutError, requests.Timeout, FutureTimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(exc, (openai.APIConnectionError, requests.ConnectionError)):
        return "connection_error"
    if isinstance(exc, (openai.APIStatusError, requests.HTTPError)):
        return "http_error"
    if isinstance(exc, ValueError):
        return "parse_error"
    return "unknown"


class ReviewAnalysisProvider(ABC):
    """Uniform contract for an analysis backend."""

    key: str = ""

    def __init__(self, catalog: Optional[Dict[str, Dict[str, Any]]] = None):
        catalog = catalog if catalog is not None else load_provider_catalog()
        self.pricing = catalog.get(self.key, {})

    @property
    def name(self) -> str:
        """Routing name; also the health tracker slot."""
        return self.key

    @property
    def display_name(self) -> str:
        return self.key

    @property
    def max_batch_size(self) -> Optional[int]:
        size = self.pricing.get("max_batch_size")
        return int(size) if size else None

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend can take requests right now."""

    @abstractmethod
    def _complete(self, system: str, user: str) -> str:
        """Send one prompt and return the raw text answer."""

    def estimated_cost(self, review_count: int) -> float:
        """USD estimate for scoring ``review_count`` reviews."""
        input_tokens = review_count * self.pricing.get("input_tokens_per_review", 50)
        output_tokens = review_count * self.pricing.get("output_tokens_per_review", 8)
        input_cost = (input_tokens / 1_000_000) * self.pricing.get("input_per_million", 0.0)
        output_cost = (output_tokens / 1_000_000) * self.pricing.get("output_per_million", 0.0)
        return input_cost + output_cost

    def analyze(self, reviews: List[Review], context_summary: Optional[str] = None) -> ProviderResult:
        """Score one chunk of reviews.

        Any failure surfaces as ProviderCallFailed with a classified error kind.
        """
        if not reviews:
            return ProviderResult()
        system, user = build_analysis_prompt(reviews, self.key, context_summary)
        logger.info(f"Sending {len(reviews)} reviews to {self.display_name} for analysis")
        try:
            content = self._complete(system, user)
            result = parse_analysis_response(content, reviews)
        except ProviderCallFailed:
            raise
        except Exception as e:
            kind = classify_error(e)
            logger.error(f"{self.display_name} analysis failed ({kind}): {e}")
            raise ProviderCallFailed(self.name, kind, str(e)) from e
        result.cost = self.estimated_cost(len(reviews))
        return result


class OpenAIProvider(ReviewAnalysisProvider):
    """OpenAI chat completions with response caching."""

    key = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Any = None,
        cache: Optional[Cache] = None,
        timeout: Optional[float] = None,
        catalog: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        super().__init__(catalog)
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = base_url
        self.timeout = timeout or settings.request_timeout
        self._client = client
        self.cache = cache if cache is not None else Cache(settings.cache_dir)

    @property
    def display_name(self) -> str:
        return f"OpenAI-{self.model}"

    @property
    def client(self):
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _cache_key(self, system: str, user: str) -> str:
        raw = f"{self.key}|{self.model}|{system}|{user}|{PromptConstants.ANALYSIS_PROMPT_VERSION}"
        return hashlib.md5(raw.encode()).hexdigest()

    def _complete(self, system: str, user: str) -> str:
        cache_key = self._cache_key(system, user)
        cached = self.cache.get(cache_key)
        if cached:
            logger.debug(f"Cache hit for {self.key} request: {cache_key[:CacheConstants.CACHE_KEY_LENGTH]}...")
            return cached

        result = self._create_completion(system, user)
        self.cache.set(cache_key, result, expire=3600 * CacheConstants.CACHE_TTL_HOURS)
        return result

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_OPENAI_ERRORS),
        stop=stop_after_attempt(settings.max_retries),
        wait=wait_exponential(multiplier=settings.retry_delay, max=settings.retry_backoff * 10),
        reraise=True,
    )
    def _create_completion(self, system: str, user: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=PromptConstants.TEMPERATURE,
            response_format={"type": "json_object"},
            timeout=self.timeout,
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("Empty completion")
        return content.strip()


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek through its OpenAI-compatible endpoint; self-hosted URLs are free."""

    key = "deepseek"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Any = None,
        cache: Optional[Cache] = None,
        timeout: Optional[float] = None,
        catalog: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.deepseek_api_key,
            model=model or settings.deepseek_model,
            base_url=base_url or settings.deepseek_base_url,
            client=client,
            cache=cache,
            timeout=timeout,
            catalog=catalog,
        )

    @property
    def is_local(self) -> bool:
        return any(host in self.base_url for host in ("localhost", "127.0.0.1", "192.168.", "10.0."))

    @property
    def display_name(self) -> str:
        deployment = "Self-Hosted" if self.is_local else "API"
        return f"DeepSeek-{deployment}-{self.model}"

    def is_available(self) -> bool:
        return bool(self.api_key) or self.is_local

    def estimated_cost(self, review_count: int) -> float:
        if self.is_local:
            return 0.0
        return super().estimated_cost(review_count)


class OllamaProvider(ReviewAnalysisProvider):
    """Local Ollama server."""

    key = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        catalog: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        super().__init__(catalog)
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.model = model or settings.ollama_model
        self.session = session or requests.Session()
        self.timeout = timeout or settings.request_timeout

    @property
    def display_name(self) -> str:
        return f"Ollama-{self.model}"

    def is_available(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/tags", timeout=ErrorConstants.AVAILABILITY_TIMEOUT)
            return response.ok
        except requests.RequestException:
            return False

    def estimated_cost(self, review_count: int) -> float:
        return 0.0

    def _complete(self, system: str, user: str) -> str:
        response = self.session.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model,
                "prompt": f"{system}\n\n{user}",
                "stream": False,
                "format": "json",
                "options": {
                    "temperature": 0.1,
                    "num_ctx": 4096,
                    "top_p": 0.9,
                    "num_predict": 2048,
                },
            },
            timeout=self.timeout,
        )
        body = response.text.strip()
        if body.startswith("<html") or body.startswith("<!DOCTYPE"):
            # Ollama down or a proxy answering instead
            raise ProviderCallFailed(
                self.name, "http_error",
                f"HTML instead of JSON (HTTP {response.status_code}) from {self.base_url}",
            )
        response.raise_for_status()
        return response.json().get("response", "")


def build_providers(s: Optional[Settings] = None) -> List[ReviewAnalysisProvider]:
    """Instantiate the enabled providers in preference order."""
    s = s or settings
    catalog = load_provider_catalog(s.provider_catalog_path)
    providers = []
    for name in s.provider_names:
        if name == "openai":
            providers.append(OpenAIProvider(
                api_key=s.openai_api_key, model=s.openai_model,
                cache=Cache(s.cache_dir), timeout=s.request_timeout, catalog=catalog,
            ))
        elif name == "deepseek":
            providers.append(DeepSeekProvider(
                api_key=s.deepseek_api_key, model=s.deepseek_model, base_url=s.deepseek_base_url,
                cache=Cache(s.cache_dir), timeout=s.request_timeout, catalog=catalog,
            ))
        elif name == "ollama":
            providers.append(OllamaProvider(
                base_url=s.ollama_base_url, model=s.ollama_model,
                timeout=s.request_timeout, catalog=catalog,
            ))
        else:
            logger.warning(f"Unknown provider '{name}' in configuration, skipping")
    return providers
