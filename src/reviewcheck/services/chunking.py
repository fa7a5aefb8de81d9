"""Provider-sized chunking with deterministic merging of per-chunk results."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.constants import ChunkConstants, ScoringConstants
from ..core.context import extract_global_context
from ..core.errors import DataIntegrityViolation
from ..core.models import (
    AnalysisArtifact,
    ChunkedResult,
    FakeExample,
    ProviderResult,
    Review,
)
from ..core.normalizer import normalize
from .alerts import AlertSink, LoggingAlertSink
from .health import ProviderHealthTracker
from .providers import ReviewAnalysisProvider, classify_error

logger = logging.getLogger(__name__)


@dataclass
class _ChunkOutcome:
    result: Optional[ProviderResult] = None
    error: Optional[BaseException] = None
    latency: float = 0.0


def split_into_chunks(reviews: List[Review], size: int) -> List[List[Review]]:
    """Ordered, disjoint chunks covering every review once."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [reviews[i:i + size] for i in range(0, len(reviews), size)]


def merge_artifacts(
    examples: List[FakeExample],
    patterns: List[str],
    max_examples: int = ScoringConstants.MAX_FAKE_EXAMPLES,
) -> AnalysisArtifact:
    """Top-K examples unique by review id, patterns unique by normalized text."""
    best: Dict[str, FakeExample] = {}
    order: Dict[str, int] = {}
    for example in examples:
        current = best.get(example.review_id)
        if current is None:
            order[example.review_id] = len(order)
            best[example.review_id] = example
        elif example.score > current.score:
            best[example.review_id] = example
    ranked = sorted(best.values(), key=lambda e: (-e.score, order[e.review_id]))

    seen = set()
    unique_patterns = []
    for pattern in patterns:
        key = normalize(pattern) or pattern.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        unique_patterns.append(pattern)

    return AnalysisArtifact(fake_examples=ranked[:max_examples], key_patterns=unique_patterns)


class ChunkedAnalyzer:
    """Runs a provider over a review set in chunks and merges what comes back.

    A failed or timed-out chunk does not fail the batch: its reviews are
    reported in ``missing_ids`` and the caller decides what that means.
    """

    def __init__(
        self,
        tracker: ProviderHealthTracker,
        alerts: Optional[AlertSink] = None,
        chunk_threshold: int = ChunkConstants.DEFAULT_CHUNK_THRESHOLD,
        concurrency: int = ChunkConstants.DEFAULT_CHUNK_CONCURRENCY,
        chunk_timeout: float = ChunkConstants.DEFAULT_CHUNK_TIMEOUT,
        delay_ms: int = ChunkConstants.DEFAULT_CHUNK_DELAY_MS,
        max_fake_examples: int = ScoringConstants.MAX_FAKE_EXAMPLES,
    ):
        self.tracker = tracker
        self.alerts = alerts or LoggingAlertSink()
        self.chunk_threshold = chunk_threshold
        self.concurrency = max(1, concurrency)
        self.chunk_timeout = chunk_timeout
        self.delay_ms = delay_ms
        self.max_fake_examples = max_fake_examples

    def chunk_size_for(self, provider: ReviewAnalysisProvider) -> int:
        limit = provider.max_batch_size
        return min(limit, self.chunk_threshold) if limit else self.chunk_threshold

    def analyze(
        self,
        reviews: List[Review],
        provider: ReviewAnalysisProvider,
        deadline: Optional[float] = None,
    ) -> ChunkedResult:
        """Score ``reviews`` with ``provider``. ``deadline`` is a time.monotonic() value."""
        size = self.chunk_size_for(provider)
        chunks = split_into_chunks(reviews, size)
        result = ChunkedResult(provider=provider.name, total_chunks=len(chunks))
        if not chunks:
            return result

        if len(chunks) > 1:
            logger.info(
                f"Large review set ({len(reviews)} reviews > {size}), "
                f"processing {len(chunks)} chunks with {provider.display_name}"
            )
        context = extract_global_context(reviews).summary
        outcomes = self._run_chunks(chunks, provider, context, deadline)
        self._merge(result, chunks, outcomes, provider)

        result.missing_ids = [r.id for r in reviews if r.id not in result.scores]
        logger.info(
            f"Chunking completed: {result.total_chunks} chunks, {len(result.failed_chunks)} failed, "
            f"{len(result.scores)}/{len(reviews)} reviews scored"
        )
        return result

    def _call(self, provider: ReviewAnalysisProvider, chunk: List[Review], context: str) -> _ChunkOutcome:
        start = time.monotonic()
        try:
            result = provider.analyze(chunk, context)
        except Exception as e:
            return _ChunkOutcome(error=e, latency=time.monotonic() - start)
        return _ChunkOutcome(result=result, latency=time.monotonic() - start)

    def _run_chunks(
        self,
        chunks: List[List[Review]],
        provider: ReviewAnalysisProvider,
        context: str,
        deadline: Optional[float],
    ) -> List[_ChunkOutcome]:
        outcomes: List[Optional[_ChunkOutcome]] = [None] * len(chunks)
        for wave_start in range(0, len(chunks), self.concurrency):
            wave = list(range(wave_start, min(wave_start + self.concurrency, len(chunks))))
            timeout = self.chunk_timeout
            if deadline is not None:
                timeout = min(timeout, deadline - time.monotonic())
            if timeout <= 0:
                for i in wave:
                    outcomes[i] = _ChunkOutcome(error=FutureTimeoutError("analysis budget exhausted"))
                continue

            for i in wave:
                logger.info(f"Processing chunk {i + 1}/{len(chunks)} with {len(chunks[i])} reviews")
            # A fresh pool per wave so a hung call cannot hold a slot for the next wave
            executor = ThreadPoolExecutor(max_workers=len(wave))
            try:
                futures = {executor.submit(self._call, provider, chunks[i], context): i for i in wave}
                done, not_done = wait(futures, timeout=timeout)
                for future in done:
                    outcomes[futures[future]] = future.result()
                for future in not_done:
                    future.cancel()
                    outcomes[futures[future]] = _ChunkOutcome(
                        error=FutureTimeoutError(f"chunk exceeded {timeout:.1f}s"),
                        latency=timeout,
                    )
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

            if self.delay_ms and wave_start + self.concurrency < len(chunks):
                time.sleep(self.delay_ms / 1000.0)
        return outcomes

    def _merge(
        self,
        result: ChunkedResult,
        chunks: List[List[Review]],
        outcomes: List[_ChunkOutcome],
        provider: ReviewAnalysisProvider,
    ) -> None:
        examples: List[FakeExample] = []
        patterns: List[str] = []

        # Chunk order, not completion order, so the merge is deterministic
        for index, (chunk, outcome) in enumerate(zip(chunks, outcomes)):
            number = index + 1
            if outcome.error is not None:
                kind = classify_error(outcome.error)
                message = str(outcome.error)
                logger.warning(f"Chunk {number} failed with {provider.display_name}: {message}")
                result.failed_chunks.append(number)
                result.errors.append(message)
                self.tracker.record_result(provider.name, False, outcome.latency, error=message)
                self.alerts.failure(
                    provider.name, kind, message,
                    chunk_number=number, total_chunks=len(chunks), chunk_size=len(chunk),
                )
                continue

            if self.tracker.record_result(provider.name, True, outcome.latency):
                self.alerts.recovery(provider.name, chunk_number=number)

            chunk_ids = {r.id for r in chunk}
            for review_id, score in outcome.result.scores.items():
                if review_id not in chunk_ids:
                    logger.warning(f"Chunk {number} returned a score for review {review_id} outside the chunk")
                    continue
                if review_id in result.scores:
                    violation = DataIntegrityViolation(review_id, number)
                    logger.error(f"{violation}; keeping the first score")
                    result.integrity_violations.append(review_id)
                    continue
                result.scores[review_id] = score

            result.clamped_ids.extend(outcome.result.clamped_ids)
            result.cost += outcome.result.cost
            if outcome.result.explanation:
                result.explanations.append(outcome.result.explanation)
            examples.extend(outcome.result.artifact.fake_examples)
            patterns.extend(outcome.result.artifact.key_patterns)

        result.artifact = merge_artifacts(examples, patterns, self.max_fake_examples)
