"""Constants and configuration values for ReviewCheck."""

# Scoring Constants
class ScoringConstants:
    """Constants related to per-review fake scoring."""

    MIN_SCORE = 0
    MAX_SCORE = 100
    FAKE_THRESHOLD = 85  # score >= threshold counts toward fake percentage

    # Label derivation when a provider omits the label
    FAKE_LABEL_MIN = 80
    SUSPICIOUS_LABEL_MIN = 45

    # Artifacts
    MAX_FAKE_EXAMPLES = 3  # fake examples kept across chunks
    MAX_EXCERPT_LENGTH = 200  # chars kept for an example excerpt


# Grade Constants
class GradeConstants:
    """Grade threshold table. Upper bound (inclusive) of fake percentage per grade."""

    THRESHOLDS = (
        (15.0, "A"),
        (30.0, "B"),
        (50.0, "C"),
        (70.0, "D"),
    )
    FAILING_GRADE = "F"
    UNANALYZABLE_GRADE = "U"  # product with no reviews at all

    DESCRIPTIONS = {
        "A": "Excellent - Very few fake reviews detected",
        "B": "Good - Low fake review percentage",
        "C": "Fair - Moderate fake review concerns",
        "D": "Poor - High fake review percentage",
        "F": "Failing - Majority of reviews appear fake",
        "U": "Unanalyzable - No reviews available for analysis",
    }


# Chunking Constants
class ChunkConstants:
    """Constants for chunked provider calls."""

    DEFAULT_CHUNK_THRESHOLD = 80  # reviews per provider call
    DEFAULT_CHUNK_CONCURRENCY = 1  # sequential by default
    DEFAULT_CHUNK_TIMEOUT = 120  # seconds per chunk call
    DEFAULT_CHUNK_DELAY_MS = 0  # pause between waves
    MAX_CHUNK_FAILURE_RATE = 0.5  # above this the provider counts as failed


# Health Constants
class HealthConstants:
    """Constants for provider health scoring."""

    NEUTRAL_SCORE = 50.0  # provider with no recorded requests
    SUCCESS_WEIGHT = 0.8
    LATENCY_WEIGHT = 0.2
    FAST_LATENCY = 10.0  # seconds, full latency score at or below
    SLOW_LATENCY = 120.0  # seconds, zero latency score at or above
    FAILURE_STREAK_THRESHOLD = 3  # consecutive failures before degradation
    FAILURE_STREAK_PENALTY = 0.5
    OVERRIDE_TTL_HOURS = 24  # forced provider selection lifetime


# Global Context Constants
class ContextConstants:
    """Thresholds for batch-wide suspicious pattern detection."""

    FIVE_STAR_ALERT = 85.0
    FOUR_PLUS_ALERT = 95.0
    VERIFIED_ALERT = 30.0
    SHORT_TEXT_ALERT = 50
    HIGH_VOLUME_REVIEWS = 1000
    HIGH_VOLUME_FIVE_STAR = 90.0
    MAX_ALERTS_IN_SUMMARY = 2


# Prompt Constants
class PromptConstants:
    """Constants for LLM prompts and templates."""

    # Prompt version (for cache invalidation)
    ANALYSIS_PROMPT_VERSION = "v3.0"

    DEFAULT_TEXT_LIMIT = 300  # chars per review in a prompt
    TEXT_LIMITS = {
        "openai": 400,
        "deepseek": 300,
        "ollama": 300,
    }
    TEMPERATURE = 0.0


# Error Handling Constants
class ErrorConstants:
    """Constants for error handling and retries."""

    MAX_RETRY_ATTEMPTS = 3  # maximum retry attempts
    RETRY_BASE_DELAY = 2  # base delay for exponential backoff
    REQUEST_TIMEOUT = 120  # timeout for API requests
    AVAILABILITY_TIMEOUT = 5  # timeout for health probes
    ANALYSIS_BUDGET = 600  # seconds per product analysis, fallback included


# Cache Constants
class CacheConstants:
    """Constants for caching behavior."""

    CACHE_TTL_HOURS = 24  # cache time-to-live in hours
    CACHE_KEY_LENGTH = 8  # length of cache key for logging


# File and Path Constants
class FileConstants:
    """Constants for file operations."""

    CACHE_DIR = "cache/llm_cache"  # provider response cache
    STORE_DIR = "cache/products"  # product record store
    STATE_DIR = "cache/state"  # router override state
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
