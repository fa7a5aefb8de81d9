"""Configuration management for ReviewCheck."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    ChunkConstants,
    ErrorConstants,
    FileConstants,
    ScoringConstants,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # OpenAI API
    openai_api_key: str = Field("", description="OpenAI API key")
    openai_model: str = Field("gpt-4o-mini", description="OpenAI model")

    # DeepSeek API (OpenAI-compatible)
    deepseek_api_key: str = Field("", description="DeepSeek API key")
    deepseek_base_url: str = Field("https://api.deepseek.com/v1", description="DeepSeek base URL")
    deepseek_model: str = Field("deepseek-chat", description="DeepSeek model")

    # Ollama (local)
    ollama_base_url: str = Field("http://localhost:11434", description="Ollama base URL")
    ollama_model: str = Field("llama3.2:3b", description="Ollama model")

    enabled_providers: str = Field("openai,deepseek,ollama", description="Comma-separated provider names")
    provider_catalog_path: str = Field("", description="Optional YAML override for provider pricing")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    # Retry settings
    max_retries: int = Field(3, description="Maximum retry attempts per provider request")
    retry_delay: float = Field(1.0, description="Base retry delay in seconds")
    retry_backoff: float = Field(2.0, description="Retry backoff multiplier")
    request_timeout: float = Field(ErrorConstants.REQUEST_TIMEOUT, description="Provider request timeout in seconds")

    # Analysis policy
    fake_threshold: int = Field(ScoringConstants.FAKE_THRESHOLD, description="Score at which a review counts as fake")
    chunk_threshold: int = Field(ChunkConstants.DEFAULT_CHUNK_THRESHOLD, description="Maximum reviews per provider call")
    chunk_concurrency: int = Field(ChunkConstants.DEFAULT_CHUNK_CONCURRENCY, description="Parallel chunk calls per analysis")
    chunk_timeout: float = Field(ChunkConstants.DEFAULT_CHUNK_TIMEOUT, description="Seconds allowed per chunk call")
    chunk_delay_ms: int = Field(ChunkConstants.DEFAULT_CHUNK_DELAY_MS, description="Pause between chunk waves")
    analysis_budget: float = Field(ErrorConstants.ANALYSIS_BUDGET, description="Seconds allowed per product analysis")
    max_chunk_failure_rate: float = Field(ChunkConstants.MAX_CHUNK_FAILURE_RATE, description="Failed chunk ratio treated as provider failure")
    max_fake_examples: int = Field(ScoringConstants.MAX_FAKE_EXAMPLES, description="Fake examples kept per product")
    worker_pool_size: int = Field(4, description="Concurrent product analyses")

    # Storage
    cache_dir: str = Field(FileConstants.CACHE_DIR, description="Provider response cache directory")
    store_dir: str = Field(FileConstants.STORE_DIR, description="Product record store directory")
    state_dir: str = Field(FileConstants.STATE_DIR, description="Router state directory")

    @property
    def provider_names(self) -> List[str]:
        """Enabled provider names in preference order."""
        return [p.strip().lower() for p in self.enabled_providers.split(",") if p.strip()]


# Global settings instance
settings = Settings()


@dataclass(frozen=True)
class AnalysisConfig:
    """Policy values handed to the orchestrator at construction."""

    fake_threshold: int = ScoringConstants.FAKE_THRESHOLD
    chunk_threshold: int = ChunkConstants.DEFAULT_CHUNK_THRESHOLD
    chunk_concurrency: int = ChunkConstants.DEFAULT_CHUNK_CONCURRENCY
    chunk_timeout: float = ChunkConstants.DEFAULT_CHUNK_TIMEOUT
    chunk_delay_ms: int = ChunkConstants.DEFAULT_CHUNK_DELAY_MS
    analysis_budget: float = ErrorConstants.ANALYSIS_BUDGET
    max_chunk_failure_rate: float = ChunkConstants.MAX_CHUNK_FAILURE_RATE
    max_fake_examples: int = ScoringConstants.MAX_FAKE_EXAMPLES

    def __post_init__(self):
        if self.chunk_threshold < 1:
            raise ValueError("chunk_threshold must be at least 1")
        if self.chunk_concurrency < 1:
            raise ValueError("chunk_concurrency must be at least 1")
        if not 0 <= self.fake_threshold <= 100:
            raise ValueError("fake_threshold must be within 0..100")

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "AnalysisConfig":
        s = s or settings
        return cls(
            fake_threshold=s.fake_threshold,
            chunk_threshold=s.chunk_threshold,
            chunk_concurrency=s.chunk_concurrency,
            chunk_timeout=s.chunk_timeout,
            chunk_delay_ms=s.chunk_delay_ms,
            analysis_budget=s.analysis_budget,
            max_chunk_failure_rate=s.max_chunk_failure_rate,
            max_fake_examples=s.max_fake_examples,
        )


# Pricing per 1M tokens and batch limits per provider
DEFAULT_PROVIDER_CATALOG: Dict[str, Dict[str, Any]] = {
    "openai": {
        "input_per_million": 0.15,
        "output_per_million": 0.60,
        "input_tokens_per_review": 50,
        "output_tokens_per_review": 8,
        "max_batch_size": 100,
    },
    "deepseek": {
        "input_per_million": 0.27,
        "output_per_million": 1.10,
        "input_tokens_per_review": 50,
        "output_tokens_per_review": 8,
        "max_batch_size": 80,
    },
    "ollama": {
        "input_per_million": 0.0,
        "output_per_million": 0.0,
        "input_tokens_per_review": 50,
        "output_tokens_per_review": 8,
        "max_batch_size": 80,
    },
}


def load_provider_catalog(path: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Load provider pricing, merging an optional YAML override over the defaults."""
    catalog = {name: dict(entry) for name, entry in DEFAULT_PROVIDER_CATALOG.items()}
    path = path if path is not None else settings.provider_catalog_path
    if not path:
        return catalog
    try:
        with open(path, "r", encoding="utf-8") as f:
            override = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load provider catalog from {path}: {e}. Using defaults.")
        return catalog
    if not isinstance(override, dict):
        logger.warning(f"Provider catalog {path} is not a mapping. Using defaults.")
        return catalog

    for name, entry in (override.get("providers") or {}).items():
        if isinstance(entry, dict):
            catalog.setdefault(name.lower(), {}).update(entry)
    return catalog
