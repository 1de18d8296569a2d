from __future__ import annotations

import logging
import math
from typing import Protocol, Sequence

from clipforge.errors import ClipforgeError
from clipforge.models import Detection, TranscriptSegment
from clipforge.profiles import GameProfile
from clipforge.providers.polling import Deadline

logger = logging.getLogger(__name__)

DETECTOR_NAME = "transcript"

HYPE_KEYWORDS: tuple[str, ...] = (
    "nice",
    "wow",
    "holy",
    "insane",
    "crazy",
    "let's go",
    "lets go",
    "oh my god",
    "omg",
    "no way",
    "yes",
    "yeah",
    "sick",
    "fire",
)

# (profile keyword category, emitted detection category, confidence), checked in order.
# The order is arbitrary, not a tuned ranking.
KEYWORD_RULES: tuple[tuple[str, str, float], ...] = (
    ("kill", "kill", 0.85),
    ("clutch", "clutch", 0.90),
    ("victory", "highlight", 0.95),
)
HYPE_RULE: tuple[str, float] = ("hype", 0.70)


class TranscriptSource(Protocol):
    def transcribe(self, media_url: str, *, deadline: Deadline | None = None) -> list[TranscriptSegment]:
        ...


class StaticTranscriptSource:
    """Serves a pre-computed transcript instead of calling a provider."""

    def __init__(self, segments: Sequence[TranscriptSegment]) -> None:
        self._segments = list(segments)

    def transcribe(self, media_url: str, *, deadline: Deadline | None = None) -> list[TranscriptSegment]:
        return list(self._segments)


class TranscriptDetector:
    """Keyword-classifies transcript segments against the active game profile."""

    name = DETECTOR_NAME

    def __init__(self, source: TranscriptSource) -> None:
        self._source = source

    def detect(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        *,
        deadline: Deadline | None = None,
    ) -> list[Detection]:
        try:
            segments = self._source.transcribe(video_url, deadline=deadline)
        except ClipforgeError as exc:
            logger.warning("Transcript detector disabled for %s: %s", video_url, exc)
            return []

        detections: list[Detection] = []
        for segment in segments:
            detection = classify_segment(segment, profile)
            if detection is None:
                continue
            if duration_seconds > 0 and detection.timestamp_seconds >= duration_seconds:
                continue
            detections.append(detection)

        logger.info("Transcript detector matched %d of %d segments", len(detections), len(segments))
        return detections


def classify_segment(segment: TranscriptSegment, profile: GameProfile) -> Detection | None:
    """Classify one segment; the first matching rule wins, unmatched text yields ``None``."""

    text = segment.text.lower()
    if not text.strip():
        return None

    for keyword_category, category, confidence in KEYWORD_RULES:
        matched = _matches(text, profile.keywords_for(keyword_category))
        if matched:
            return _build(segment, profile, category, confidence, matched)

    matched = _matches(text, HYPE_KEYWORDS)
    if matched:
        category, confidence = HYPE_RULE
        return _build(segment, profile, category, confidence, matched)

    return None


def _matches(text: str, keywords: frozenset[str] | Sequence[str]) -> list[str]:
    return sorted(keyword for keyword in keywords if keyword and keyword in text)


def _build(
    segment: TranscriptSegment,
    profile: GameProfile,
    category: str,
    confidence: float,
    matched: list[str],
) -> Detection:
    return Detection(
        category=category,
        timestamp_seconds=float(math.floor(max(segment.start, 0.0))),
        confidence=confidence,
        metadata={
            "source": DETECTOR_NAME,
            "text": segment.text,
            "keywords_found": matched,
            "game": profile.name,
        },
    )
