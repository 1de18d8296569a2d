"""Periodic intensity-threshold detectors.

The intensity signal comes from an ``IntensitySampler``. Only placeholder samplers ship
here (seeded random values, or a caller-supplied series); genuine audio/motion analysis
plugs in behind the same interface without touching merge or selection.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import numpy as np

from clipforge.detectors.base import clamp
from clipforge.models import Detection
from clipforge.profiles import GameProfile
from clipforge.providers.polling import Deadline

logger = logging.getLogger(__name__)


class IntensitySampler(Protocol):
    def sample(self, video_url: str, timestamp_seconds: float) -> float:
        """Return an intensity in [0, 1] for the given instant."""


class RandomIntensitySampler:
    """Uniform random intensities; a stand-in until real signal analysis exists."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)

    def sample(self, video_url: str, timestamp_seconds: float) -> float:
        return float(self._rng.random())


class SeriesIntensitySampler:
    """Linearly interpolates a precomputed ``(timestamp, intensity)`` series."""

    def __init__(self, points: Sequence[tuple[float, float]]) -> None:
        ordered = sorted((float(t), clamp(float(v))) for t, v in points)
        self._times = np.array([t for t, _ in ordered], dtype=np.float64)
        self._values = np.array([v for _, v in ordered], dtype=np.float64)

    def sample(self, video_url: str, timestamp_seconds: float) -> float:
        if len(self._times) == 0:
            return 0.0
        return float(np.interp(timestamp_seconds, self._times, self._values))


class IntensityThresholdDetector:
    """Samples the timeline at a fixed interval and flags samples above a threshold.

    Confidence scales linearly with the excess over the threshold into
    ``[confidence_floor, confidence_ceiling]``.
    """

    name = "intensity"
    category = "highlight"

    def __init__(
        self,
        sampler: IntensitySampler,
        *,
        interval_seconds: float = 2.5,
        threshold: float = 0.8,
        confidence_floor: float = 0.6,
        confidence_ceiling: float = 0.85,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        if not 0.0 <= threshold < 1.0:
            raise ValueError("threshold must be in [0, 1).")
        self._sampler = sampler
        self._interval = interval_seconds
        self._threshold = threshold
        self._floor = confidence_floor
        self._ceiling = max(confidence_ceiling, confidence_floor)

    def detect(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        *,
        deadline: Deadline | None = None,
    ) -> list[Detection]:
        detections: list[Detection] = []
        for timestamp in sample_times(duration_seconds, self._interval):
            if deadline is not None and deadline.expired():
                logger.warning("%s detector stopped at %.1fs: deadline reached", self.name, timestamp)
                break

            intensity = clamp(self._sampler.sample(video_url, timestamp))
            if intensity <= self._threshold:
                continue

            detections.append(
                Detection(
                    category=self.category,
                    timestamp_seconds=timestamp,
                    confidence=round(self.scale_confidence(intensity), 4),
                    metadata={
                        "source": self.name,
                        "intensity": round(intensity, 4),
                        "game": profile.name,
                    },
                )
            )
        return detections

    def scale_confidence(self, intensity: float) -> float:
        excess = (intensity - self._threshold) / (1.0 - self._threshold)
        return self._floor + clamp(excess) * (self._ceiling - self._floor)


class AmplitudeDetector(IntensityThresholdDetector):
    """Loudness-spike proxy; hits become ``hype`` detections."""

    name = "amplitude"
    category = "hype"


class MotionDetector(IntensityThresholdDetector):
    """Motion-burst proxy; hits become ``highlight`` detections."""

    name = "motion"
    category = "highlight"


def sample_times(duration_seconds: float, interval_seconds: float) -> list[float]:
    if duration_seconds <= 0:
        return []
    times = np.arange(0.0, duration_seconds, interval_seconds)
    return [round(float(t), 3) for t in times]
