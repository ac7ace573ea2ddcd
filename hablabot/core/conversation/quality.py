"""Heuristics turning a learner utterance into an SM-2 response quality."""
from __future__ import annotations

import math
from typing import Protocol, Sequence

from hablabot.core.srs.sm2 import normalize_quality


class QualityStrategy(Protocol):
    """Callable scoring one utterance on the 0-5 review scale."""

    def __call__(self, user_text: str, confidence: float, matched_count: int) -> float:  # pragma: no cover - interface definition
        ...


def clamp_confidence(confidence: float) -> float:
    """Clamp a recognition confidence into 0-1; NaN counts as no confidence."""

    confidence = float(confidence)
    if math.isnan(confidence):
        return 0.0
    return max(0.0, min(1.0, confidence))


def utterance_quality(user_text: str, confidence: float, matched_count: int) -> float:
    """Score an utterance from recognition confidence, target-word use and length."""

    confidence = clamp_confidence(confidence)
    quality = confidence * 3
    quality += matched_count * 0.5

    word_count = len(user_text.split())
    if word_count >= 3:
        quality += 0.5
    if word_count >= 6:
        quality += 0.5

    return normalize_quality(quality)


def aggregate_word_quality(scores: Sequence[float]) -> int:
    """Collapse a word's per-utterance scores into one review quality."""

    if not scores:
        return 0
    return normalize_quality(sum(scores) / len(scores))


__all__ = ["QualityStrategy", "aggregate_word_quality", "clamp_confidence", "utterance_quality"]
