from __future__ import annotations

import math

from clipforge.models import Detection

DEFAULT_MIN_CONFIDENCE = 0.75
DEFAULT_MIN_DISTANCE_SECONDS = 45.0
DEFAULT_MAX_HIGHLIGHTS = 8
DEFAULT_CAP_DIVISOR_SECONDS = 120.0


def highlight_cap(
    duration_seconds: float,
    *,
    max_highlights: int = DEFAULT_MAX_HIGHLIGHTS,
    cap_divisor_seconds: float = DEFAULT_CAP_DIVISOR_SECONDS,
) -> int:
    """Roughly one highlight per ``cap_divisor_seconds`` of source, never above ``max_highlights``."""

    if duration_seconds <= 0 or cap_divisor_seconds <= 0:
        return 0
    return max(0, min(max_highlights, math.floor(duration_seconds / cap_divisor_seconds)))


def select_highlights(
    detections: list[Detection],
    duration_seconds: float,
    *,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    min_distance_seconds: float = DEFAULT_MIN_DISTANCE_SECONDS,
    max_highlights: int = DEFAULT_MAX_HIGHLIGHTS,
    cap_divisor_seconds: float = DEFAULT_CAP_DIVISOR_SECONDS,
) -> list[Detection]:
    """Greedy best-first pick of well-spaced, confident detections.

    Pipeline:
    1) drop detections under ``min_confidence``
    2) rank by confidence descending (stable, so earlier inputs win ties)
    3) accept when at least ``min_distance_seconds`` from every accepted detection
    4) stop at the duration-proportional cap
    5) return in timeline order
    """

    cap = highlight_cap(duration_seconds, max_highlights=max_highlights, cap_divisor_seconds=cap_divisor_seconds)
    if cap == 0:
        return []

    eligible = [detection for detection in detections if detection.confidence >= min_confidence]
    ranked = sorted(eligible, key=lambda detection: -detection.confidence)

    selected: list[Detection] = []
    for detection in ranked:
        too_close = any(
            abs(kept.timestamp_seconds - detection.timestamp_seconds) < min_distance_seconds
            for kept in selected
        )
        if too_close:
            continue

        selected.append(detection)
        if len(selected) >= cap:
            break

    return sorted(selected, key=lambda detection: detection.timestamp_seconds)
