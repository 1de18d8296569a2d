from __future__ import annotations

import math

import numpy as np

from clipforge.models import Detection
from clipforge.profiles import GameProfile
from clipforge.providers.polling import Deadline

DETECTOR_NAME = "fallback"
FALLBACK_CATEGORIES: tuple[str, ...] = ("kill", "highlight", "clutch")


class PatternFallbackDetector:
    """Spreads synthetic events evenly across the timeline.

    Last resort only: the pipeline invokes it when no real detector produced output
    or the analysis itself failed, so synthetic events never mix with real ones.
    """

    name = DETECTOR_NAME

    def __init__(
        self,
        *,
        step_seconds: float = 50.0,
        max_events: int = 12,
        edge_margin_seconds: float = 10.0,
        jitter_seconds: float = 2.0,
        confidence_low: float = 0.65,
        confidence_high: float = 0.90,
        seed: int | None = None,
    ) -> None:
        if step_seconds <= 0:
            raise ValueError("step_seconds must be positive.")
        self._step = step_seconds
        self._max_events = max(max_events, 0)
        self._margin = max(edge_margin_seconds, 0.0)
        self._jitter = max(jitter_seconds, 0.0)
        self._low = confidence_low
        self._high = max(confidence_high, confidence_low)
        self._rng = np.random.default_rng(seed)

    def event_count(self, duration_seconds: float) -> int:
        if duration_seconds <= 0:
            return 0
        return min(math.floor(duration_seconds / self._step), self._max_events)

    def detect(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        *,
        deadline: Deadline | None = None,
    ) -> list[Detection]:
        count = self.event_count(duration_seconds)
        if count == 0:
            return []

        lower = min(self._margin, duration_seconds / 2)
        upper = max(duration_seconds - self._margin, lower)
        spacing = duration_seconds / (count + 1)

        detections: list[Detection] = []
        for index in range(count):
            center = spacing * (index + 1)
            jitter = float(self._rng.uniform(-self._jitter, self._jitter)) if self._jitter else 0.0
            timestamp = min(max(center + jitter, lower), upper)
            detections.append(
                Detection(
                    category=FALLBACK_CATEGORIES[index % len(FALLBACK_CATEGORIES)],
                    timestamp_seconds=float(math.floor(timestamp)),
                    confidence=round(float(self._rng.uniform(self._low, self._high)), 4),
                    metadata={
                        "source": DETECTOR_NAME,
                        "synthetic": True,
                        "game": profile.name,
                    },
                )
            )

        return detections
