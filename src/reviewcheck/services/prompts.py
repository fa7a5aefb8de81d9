"""Prompt generation and response parsing shared by every provider."""

import json
import logging
import math
import re
from textwrap import dedent
from typing import Any, Dict, List, Optional, Tuple

from ..core.constants import PromptConstants, ScoringConstants
from ..core.models import (
    AnalysisArtifact,
    FakeExample,
    ProviderResult,
    Review,
    ReviewScore,
    ScoreLabel,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = dedent("""
You are an expert Amazon review authenticity analyst. Your goal is ACCURACY, not finding fakes.
Most reviews are genuine. Score each review 0-100 where 0=definitely genuine, 100=definitely fake.
Weight genuine signals strongly: verified purchases, detailed experiences, specific product knowledge,
balanced perspectives mentioning pros AND cons. High ratings for quality products are NORMAL.
Default to genuine when uncertain. Return ONLY JSON.
""").strip()

ANALYSIS_INSTRUCTIONS = dedent("""
Reviews are listed one per line as ID|V/U|RATING★|TEXT (V = verified purchase, U = unverified).

STRONG GENUINE SIGNALS (reduce score): verified purchase, detailed personal experience,
specific product knowledge, balanced perspective, constructive criticism, long detailed review.
FAKE SIGNALS (increase score): generic praise only, marketing language, repetitive phrases
across reviews, no personal context, unverified purchase (minor).

SCORING GUIDELINES:
0-20 clearly genuine, 21-40 likely genuine, 41-60 uncertain, 61-80 suspicious, 81-100 likely fake.

Respond with JSON using exactly this schema:
{
  "scores": [{"id": str, "score": int, "label": "genuine"|"suspicious"|"fake",
              "confidence": float 0-1, "explanation": str, "red_flags": [str]}],
  "fake_examples": [{"id": str, "text": "<brief excerpt>", "reason": str}],
  "key_patterns": [str],
  "explanation": "<short balanced summary of this batch>"
}
Score EVERY review id exactly once. Output strict JSON only. No comments, no trailing commas.
""").strip()

_LABEL_SYNONYMS = {
    "genuine": ScoreLabel.GENUINE,
    "likely_genuine": ScoreLabel.GENUINE,
    "authentic": ScoreLabel.GENUINE,
    "uncertain": ScoreLabel.SUSPICIOUS,
    "suspicious": ScoreLabel.SUSPICIOUS,
    "fake": ScoreLabel.FAKE,
    "likely_fake": ScoreLabel.FAKE,
}


def provider_text_limit(provider_key: str) -> int:
    return PromptConstants.TEXT_LIMITS.get(provider_key.lower(), PromptConstants.DEFAULT_TEXT_LIMIT)


def _clean_text(text: str) -> str:
    text = text.replace("\0", "").replace("\x1a", "")
    return " ".join(text.split())


def format_reviews(reviews: List[Review], max_text_length: int) -> str:
    """Compact ``ID|V/U|rating★|text`` lines."""
    lines = []
    for r in reviews:
        verified = "V" if r.verified else "U"
        rating = r.rating if r.rating else "?"
        lines.append(f"{r.id}|{verified}|{rating}★|{_clean_text(r.text[:max_text_length])}")
    return "\n".join(lines)


def build_analysis_prompt(
    reviews: List[Review],
    provider_key: str,
    context_summary: Optional[str] = None,
) -> Tuple[str, str]:
    """Return (system, user) messages for one chunk."""
    body = format_reviews(reviews, provider_text_limit(provider_key))
    parts = []
    if context_summary:
        parts.append(context_summary)
    parts.append(ANALYSIS_INSTRUCTIONS)
    parts.append(f"Reviews ({len(reviews)}):\n{body}")
    return SYSTEM_PROMPT, "\n\n".join(parts)


def _strip_code_fences(s: str) -> str:
    s = s.strip()
    return re.sub(r"^```(?:json)?|```$", "", s, flags=re.IGNORECASE | re.MULTILINE).strip()


def safe_json_loads(s: str) -> Any:
    """Parse JSON from an LLM response, handling common formatting issues."""
    cleaned = _strip_code_fences(s or "")
    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    # remove trailing commas before } or ]
    cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
    for candidate in (cleaned, *_embedded_json(cleaned)):
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    raise ValueError(f"Could not parse JSON from: {(s or '')[:200]}...")


def _embedded_json(s: str) -> List[str]:
    found = []
    obj_match = re.search(r"\{.*\}", s, re.S)
    if obj_match:
        found.append(obj_match.group(0))
    array_match = re.search(r"\[.*\]", s, re.S)
    if array_match:
        found.append(array_match.group(0))
    return found


def clamp_score(value: Any) -> Tuple[int, bool]:
    """Clamp a provider score into 0..100. Returns (score, was_clamped).

    Infinities clamp to the nearest bound; NaN raises ValueError.
    """
    number = float(value)
    if math.isnan(number):
        raise ValueError("score is NaN")
    if math.isinf(number):
        bound = ScoringConstants.MAX_SCORE if number > 0 else ScoringConstants.MIN_SCORE
        return bound, True
    score = int(round(number))
    clamped = max(ScoringConstants.MIN_SCORE, min(ScoringConstants.MAX_SCORE, score))
    return clamped, clamped != score


def label_for_score(score: int) -> ScoreLabel:
    if score >= ScoringConstants.FAKE_LABEL_MIN:
        return ScoreLabel.FAKE
    if score >= ScoringConstants.SUSPICIOUS_LABEL_MIN:
        return ScoreLabel.SUSPICIOUS
    return ScoreLabel.GENUINE


def _normalize_label(raw: Any, score: int) -> ScoreLabel:
    if isinstance(raw, str):
        label = _LABEL_SYNONYMS.get(raw.strip().lower().replace(" ", "_"))
        if label:
            return label
    return label_for_score(score)


def _normalize_confidence(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        # "high"/"medium"/"low" from aggregate-style answers
        return {"high": 0.9, "medium": 0.6, "low": 0.3}.get(str(raw).lower(), 0.0)
    if math.isnan(value):
        return 0.0
    if value > 1.0:
        value = value / 100.0
    return max(0.0, min(1.0, value))


def _red_flags(raw: Any) -> List[str]:
    if isinstance(raw, str):
        return [raw] if raw.strip() else []
    if isinstance(raw, (list, tuple)):
        return [str(f) for f in raw if f is not None]
    return []


def _score_entries(data: Any) -> List[Tuple[str, Any]]:
    """Yield (review_id, entry) from any accepted score layout."""
    if isinstance(data, dict):
        block = data.get("scores", data.get("detailed_scores"))
        if block is None:
            # bare {"id": score} mapping
            block = {k: v for k, v in data.items() if isinstance(v, (int, float)) and not isinstance(v, bool)}
    else:
        block = data

    if isinstance(block, dict):
        return [(str(k), v) for k, v in block.items()]
    entries = []
    for item in block or []:
        if isinstance(item, dict) and "id" in item:
            entries.append((str(item["id"]), item))
    return entries


def parse_analysis_response(content: str, reviews: List[Review]) -> ProviderResult:
    """Turn a provider answer into scores and artifacts for the given reviews.

    Raises ValueError when the answer is not JSON or scores none of the reviews.
    """
    data = safe_json_loads(content)
    valid_ids = {r.id for r in reviews}
    by_id = {r.id: r for r in reviews}
    result = ProviderResult()

    for review_id, entry in _score_entries(data):
        if review_id not in valid_ids:
            logger.warning(f"Provider scored unknown review id {review_id}, ignoring")
            continue
        raw = entry.get("score") if isinstance(entry, dict) else entry
        try:
            score, clamped = clamp_score(raw)
        except (TypeError, ValueError):
            logger.warning(f"Unusable score {raw!r} for review {review_id}")
            continue
        if clamped:
            logger.warning(f"Clamped out-of-range score {raw!r} for review {review_id} to {score}")
            result.clamped_ids.append(review_id)

        legacy = not isinstance(entry, dict) or not any(
            k in entry for k in ("label", "confidence", "explanation")
        )
        if legacy:
            result.scores[review_id] = ReviewScore.legacy(review_id, score)
            continue
        result.scores[review_id] = ReviewScore(
            review_id=review_id,
            score=score,
            label=_normalize_label(entry.get("label"), score),
            confidence=_normalize_confidence(entry.get("confidence")),
            explanation=str(entry.get("explanation") or ""),
            red_flags=_red_flags(entry.get("red_flags")),
        )

    if reviews and not result.scores:
        raise ValueError("Response contained no scores for the submitted reviews")

    if isinstance(data, dict):
        result.artifact = AnalysisArtifact(
            fake_examples=_parse_examples(data.get("fake_examples") or [], reviews, by_id, result.scores),
            key_patterns=[str(p) for p in data.get("key_patterns") or [] if isinstance(p, str) and p.strip()],
        )
        result.explanation = str(data.get("explanation") or "")
    return result


def _parse_examples(
    raw_examples: List[Any],
    reviews: List[Review],
    by_id: Dict[str, Review],
    scores: Dict[str, ReviewScore],
) -> List[FakeExample]:
    examples = []
    for item in raw_examples:
        if not isinstance(item, dict):
            continue
        review_id = str(item["id"]) if "id" in item else None
        if review_id is None and "review_number" in item:
            # 1-based position within the submitted reviews
            try:
                idx = int(item["review_number"]) - 1
            except (TypeError, ValueError):
                continue
            if 0 <= idx < len(reviews):
                review_id = reviews[idx].id
        if review_id not in by_id:
            continue
        score = scores[review_id].score if review_id in scores else 0
        excerpt = str(item.get("text") or by_id[review_id].text)[:ScoringConstants.MAX_EXCERPT_LENGTH]
        examples.append(FakeExample(review_id=review_id, score=score, excerpt=excerpt, reason=str(item.get("reason") or "")))
    return examples
