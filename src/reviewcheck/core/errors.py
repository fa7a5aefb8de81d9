"""Exception types raised by the analysis pipeline."""

from typing import Optional


class ReviewCheckError(Exception):
    """Base class for pipeline errors."""


class ProviderUnavailable(ReviewCheckError):
    """No healthy provider could be selected."""


class ProviderCallFailed(ReviewCheckError):
    """A provider request failed (network, timeout, bad status or unparseable body)."""

    def __init__(self, provider: str, error_kind: str, message: str):
        super().__init__(f"{provider} {error_kind}: {message}")
        self.provider = provider
        self.error_kind = error_kind
        self.message = message


class DataIntegrityViolation(ReviewCheckError):
    """The same review id was scored by more than one chunk."""

    def __init__(self, review_id: str, chunk_number: Optional[int] = None):
        where = f" (chunk {chunk_number})" if chunk_number is not None else ""
        super().__init__(f"Duplicate score for review {review_id}{where}")
        self.review_id = review_id
        self.chunk_number = chunk_number


class ReconciliationImpossible(ReviewCheckError):
    """A non-empty raw review list produced no usable reviews."""
