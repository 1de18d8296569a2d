from __future__ import annotations

from dataclasses import replace

from clipforge.models import Detection

DEFAULT_WINDOW_SECONDS = 5.0
DEFAULT_CORROBORATION_BONUS = 0.10
DEFAULT_MAX_CONFIDENCE = 0.98


def merge_detections(
    detections: list[Detection],
    *,
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
    bonus: float = DEFAULT_CORROBORATION_BONUS,
    max_confidence: float = DEFAULT_MAX_CONFIDENCE,
) -> list[Detection]:
    """Coalesce detections that fall within ``window_seconds`` of an earlier merged event.

    Single left-to-right pass over a timestamp-sorted copy (ties ordered by confidence,
    category and source). A corroborating detection boosts
    the strongest nearby merged event (first one on confidence ties) by ``bonus``, capped at
    ``max_confidence``, and appends its source to that event's ``signals``. Category and
    timestamp of a merged event are fixed by the detection that established it.
    Inputs are never mutated.
    """

    ordered = sorted(detections, key=_order_key)
    merged: list[Detection] = []

    for detection in ordered:
        nearby = [
            candidate
            for candidate in merged
            if abs(candidate.timestamp_seconds - detection.timestamp_seconds) <= window_seconds
        ]

        if not nearby:
            merged.append(_seed(detection))
            continue

        strongest = nearby[0]
        for candidate in nearby[1:]:
            if candidate.confidence > strongest.confidence:
                strongest = candidate

        strongest.confidence = min(strongest.confidence + bonus, max_confidence)
        strongest.metadata["signals"].append(detection.source)
        corroborated = strongest.metadata.setdefault("corroborated_by", [])
        corroborated.append(
            {
                "category": detection.category,
                "timestamp_seconds": detection.timestamp_seconds,
                "confidence": detection.confidence,
            }
        )

    return merged


def _order_key(detection: Detection) -> tuple[float, float, str, str]:
    # total order so equal timestamps do not depend on input order
    return (detection.timestamp_seconds, -detection.confidence, detection.category, detection.source)


def _seed(detection: Detection) -> Detection:
    metadata = dict(detection.metadata)
    signals = metadata.get("signals")
    # an already-merged detection keeps its history; a raw one starts with its own source
    metadata["signals"] = list(signals) if signals else [detection.source]
    if "corroborated_by" in metadata:
        metadata["corroborated_by"] = list(metadata["corroborated_by"])
    return replace(detection, metadata=metadata)
