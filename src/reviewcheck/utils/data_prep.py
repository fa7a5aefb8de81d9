"""Raw input coercion and data preparation for export."""

import datetime
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from ..core.models import ProductRecord, Review

logger = logging.getLogger(__name__)


def _first(data: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


def _coerce_rating(value: Any) -> int:
    try:
        rating = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        # non-numeric, NaN or infinite
        return 0
    return rating if 1 <= rating <= 5 else 0


def _coerce_date(value: Any) -> Optional[datetime.date]:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _verified(item: Dict[str, Any]) -> bool:
    if "verified" in item:
        return bool(item["verified"])
    meta = item.get("meta_data")
    if isinstance(meta, dict):
        return bool(meta.get("verified_purchase", False))
    return False


def coerce_reviews(raw_reviews: List[Any]) -> List[Review]:
    """Turn scraped review dicts into Review objects.

    Field names vary by source: ``id``/``review_id``, ``text``/``review_text``,
    ``verified``/``meta_data.verified_purchase``, ``date``/``posted_at``.
    Review instances pass through and other non-dict items are skipped. A missing id is replaced by a hash of the
    item's position and content so re-running the same input gives the same id.
    """
    reviews = []
    for index, item in enumerate(raw_reviews or []):
        if isinstance(item, Review):
            reviews.append(item)
            continue
        if not isinstance(item, dict):
            logger.warning(f"Skipping review #{index}: expected an object, got {type(item).__name__}")
            continue
        text = _first(item, "text", "review_text") or ""
        rating = _coerce_rating(_first(item, "rating", "stars"))
        review_id = _first(item, "id", "review_id")
        if review_id is None:
            review_id = hashlib.md5(f"{index}|{text}|{rating}".encode()).hexdigest()[:12]
        reviews.append(Review(
            id=str(review_id),
            text=str(text),
            rating=rating,
            verified=_verified(item),
            posted_at=_coerce_date(_first(item, "posted_at", "date")),
        ))
    return reviews


def load_analysis_input(filename: str) -> Dict[str, Any]:
    """Read an analysis request from JSON.

    Either ``{"asin", "country", "reported_total", "reviews": [...]}`` or a
    bare list of reviews.
    """
    with open(filename, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"reviews": data}
    if not isinstance(data, dict):
        raise ValueError(f"{filename}: expected a JSON object or list")
    return {
        "asin": data.get("asin"),
        "country": data.get("country") or "us",
        "reported_total": int(data.get("reported_total") or data.get("total_reviews") or 0),
        "reviews": data.get("reviews") or [],
    }


def prepare_export(record: ProductRecord) -> Dict[str, Any]:
    """Prepare a product record for JSON export."""
    export_data = {
        "asin": record.asin,
        "country": record.country,
        "status": record.status.value,
        "summary": {
            "total_reviews": len(record.reviews),
            "reported_total": record.reported_total,
            "fake_percentage": record.fake_percentage,
            "grade": record.grade,
            "amazon_rating": record.amazon_rating,
            "adjusted_rating": record.adjusted_rating,
            "explanation": record.explanation,
            "partial_note": record.partial_note,
            "error_message": record.error_message,
        },
        "provider": record.analysis_provider,
        "total_cost": record.total_cost,
        "fake_examples": record.to_dict()["artifact"]["fake_examples"],
        "key_patterns": list(record.artifact.key_patterns),
        "scores": {rid: s.to_dict() for rid, s in record.scores.items()},
        "metadata": {
            "export_timestamp": None,  # Will be set by caller
            "last_analyzed_at": record.last_analyzed_at.isoformat() if record.last_analyzed_at else None,
        },
    }
    return export_data


def export_to_json(data: Dict[str, Any], filename: str) -> None:
    """Export data to JSON file."""
    data["metadata"]["export_timestamp"] = datetime.datetime.now().isoformat()

    with open(filename, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
