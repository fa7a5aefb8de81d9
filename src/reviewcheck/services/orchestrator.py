"""End-to-end analysis of one product, and a pool that runs many of them."""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.config import AnalysisConfig, settings
from ..core.constants import GradeConstants
from ..core.dedup import reconcile
from ..core.errors import ProviderUnavailable, ReconciliationImpossible, ReviewCheckError
from ..core.metrics import MetricsReconciler
from ..core.models import (
    AnalysisArtifact,
    AnalysisStatus,
    ChunkedResult,
    ProductRecord,
    Review,
    record_key,
)
from ..utils.data_prep import coerce_reviews
from .alerts import AlertSink, LoggingAlertSink
from .chunking import ChunkedAnalyzer
from .router import ProviderRouter
from .store import ProductStore

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Coerce, dedupe, route, analyze, reconcile and persist one product.

    Provider fallback happens here and only here: if the selected provider
    fails as a whole, one retry is made with the next-best provider. Anything
    short of a completed analysis leaves the record ``failed`` with no scores.
    """

    def __init__(
        self,
        router: ProviderRouter,
        store: ProductStore,
        config: Optional[AnalysisConfig] = None,
        alerts: Optional[AlertSink] = None,
        analyzer: Optional[ChunkedAnalyzer] = None,
    ):
        self.router = router
        self.store = store
        self.config = config or AnalysisConfig.from_settings()
        self.alerts = alerts or LoggingAlertSink()
        self.analyzer = analyzer or ChunkedAnalyzer(
            router.tracker,
            alerts=self.alerts,
            chunk_threshold=self.config.chunk_threshold,
            concurrency=self.config.chunk_concurrency,
            chunk_timeout=self.config.chunk_timeout,
            delay_ms=self.config.chunk_delay_ms,
            max_fake_examples=self.config.max_fake_examples,
        )
        self.reconciler = MetricsReconciler(self.config.fake_threshold)

    def analyze(
        self,
        asin: str,
        raw_reviews: List[Any],
        reported_total: int = 0,
        country: str = "us",
    ) -> ProductRecord:
        """Run a full analysis pass and return the persisted record."""
        existing = self.store.get(asin, country)
        record = ProductRecord(asin=asin, country=country, reported_total=reported_total)
        record.first_analyzed_at = existing.first_analyzed_at if existing else None
        self.store.update_fields(asin, country, status=AnalysisStatus.ANALYZING, error_message=None)

        try:
            self._run(record, raw_reviews)
        except ReviewCheckError as e:
            logger.error(f"Analysis failed for {record.key}: {e}")
            self._mark_failed(record, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error analyzing {record.key}: {e}")
            self._mark_failed(record, f"Unexpected error: {e}")

        now = datetime.now()
        record.first_analyzed_at = record.first_analyzed_at or now
        record.last_analyzed_at = now
        self.store.save(record)
        return record

    def _run(self, record: ProductRecord, raw_reviews: List[Any]) -> None:
        deadline = time.monotonic() + self.config.analysis_budget

        reviews = coerce_reviews(raw_reviews)
        if raw_reviews and not reviews:
            raise ReconciliationImpossible(
                f"{len(raw_reviews)} raw reviews supplied but none could be used"
            )
        report = reconcile(reviews, record.reported_total)
        record.reviews = report.reviews

        if not record.reviews:
            self._complete_without_reviews(record)
            return

        result, cost = self._analyze_with_fallback(record.reviews, deadline)
        metrics = self.reconciler.reconcile(record.reviews, result.scores, result.artifact)

        record.scores = result.scores
        record.artifact = result.artifact
        record.fake_percentage = metrics.fake_percentage
        record.grade = metrics.grade
        record.amazon_rating = metrics.amazon_rating
        record.adjusted_rating = metrics.adjusted_rating
        record.explanation = metrics.explanation
        record.analysis_provider = result.provider
        record.total_cost = round(cost, 6)
        record.partial_note = self._partial_note(result, len(record.reviews))
        record.status = AnalysisStatus.COMPLETED
        logger.info(
            f"Analysis completed for {record.key}: {metrics.fake_percentage}% fake, "
            f"grade {metrics.grade}, provider {result.provider}"
        )

    def _analyze_with_fallback(self, reviews: List[Review], deadline: float):
        provider = self.router.select_optimal()
        if provider is None:
            raise ProviderUnavailable("No analysis provider available")

        result = self.analyzer.analyze(reviews, provider, deadline)
        cost = result.cost
        if not self._failed(result):
            return result, cost

        first_error = self._describe_failure(result)
        logger.warning(f"Provider {provider.name} failed for the whole batch: {first_error}")
        if time.monotonic() >= deadline:
            raise ProviderUnavailable(
                f"{provider.name} failed ({first_error}) and the analysis budget is exhausted"
            )

        fallback = self.router.select_optimal(excluding=[provider.name])
        if fallback is None:
            raise ProviderUnavailable(f"{provider.name} failed ({first_error}) and no fallback provider is available")

        logger.info(f"Retrying with fallback provider {fallback.name}")
        result = self.analyzer.analyze(reviews, fallback, deadline)
        cost += result.cost
        if self._failed(result):
            raise ProviderUnavailable(
                f"All providers failed: {provider.name} ({first_error}), "
                f"{fallback.name} ({self._describe_failure(result)})"
            )
        return result, cost

    def _failed(self, result: ChunkedResult) -> bool:
        return result.is_total_failure or result.failure_rate > self.config.max_chunk_failure_rate

    @staticmethod
    def _describe_failure(result: ChunkedResult) -> str:
        reason = result.errors[-1] if result.errors else "no scores returned"
        return f"{len(result.failed_chunks)}/{result.total_chunks} chunks failed, last error: {reason}"

    @staticmethod
    def _partial_note(result: ChunkedResult, total: int) -> Optional[str]:
        if not result.failed_chunks and not result.missing_ids:
            return None
        note = f"Partial analysis: {len(result.scores)} of {total} reviews scored"
        if result.failed_chunks:
            chunks = ", ".join(str(n) for n in result.failed_chunks)
            note += f"; chunk(s) {chunks} of {result.total_chunks} failed"
        return note

    def _complete_without_reviews(self, record: ProductRecord) -> None:
        record.scores = {}
        record.artifact = AnalysisArtifact()
        record.fake_percentage = 0.0
        record.grade = GradeConstants.UNANALYZABLE_GRADE
        record.amazon_rating = 0.0
        record.adjusted_rating = 0.0
        record.explanation = self.reconciler.explain(0, 0, 0.0)
        record.status = AnalysisStatus.COMPLETED
        logger.info(f"No reviews for {record.key}, recorded grade {record.grade}")

    @staticmethod
    def _mark_failed(record: ProductRecord, message: str) -> None:
        # No partial score set on a failed record
        record.scores = {}
        record.artifact = AnalysisArtifact()
        record.fake_percentage = None
        record.grade = None
        record.amazon_rating = None
        record.adjusted_rating = None
        record.explanation = ""
        record.partial_note = None
        record.analysis_provider = None
        record.status = AnalysisStatus.FAILED
        record.error_message = message


@dataclass
class AnalysisJob:
    """One queued product analysis."""
    asin: str
    raw_reviews: List[Any] = field(default_factory=list)
    reported_total: int = 0
    country: str = "us"

    @property
    def key(self) -> str:
        return record_key(self.asin, self.country)


class AnalysisWorkerPool:
    """Runs analysis jobs concurrently; each job owns its product record."""

    def __init__(self, orchestrator: AnalysisOrchestrator, max_workers: Optional[int] = None):
        self.orchestrator = orchestrator
        self.max_workers = max_workers or settings.worker_pool_size
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers)

    def submit(self, job: AnalysisJob) -> Future:
        return self._executor.submit(
            self.orchestrator.analyze, job.asin, job.raw_reviews, job.reported_total, job.country
        )

    def run_all(self, jobs: List[AnalysisJob]) -> Dict[str, ProductRecord]:
        """Analyze every job and return records keyed by product."""
        future_to_job = {self.submit(job): job for job in jobs}
        results = {}
        for future in as_completed(future_to_job):
            job = future_to_job[future]
            try:
                record = future.result()
            except Exception as e:
                logger.error(f"Analysis job {job.key} crashed: {e}")
                record = self.orchestrator.store.update_fields(
                    job.asin, job.country,
                    status=AnalysisStatus.FAILED,
                    error_message=f"Unexpected error: {e}",
                    scores={},
                )
            results[record.key] = record
        return results

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
