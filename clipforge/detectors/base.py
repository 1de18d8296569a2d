from __future__ import annotations

from typing import Protocol

from clipforge.models import Detection
from clipforge.profiles import GameProfile
from clipforge.providers.polling import Deadline


class Detector(Protocol):
    """Independent analyzer scanning one video and emitting raw detections."""

    name: str

    def detect(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        *,
        deadline: Deadline | None = None,
    ) -> list[Detection]:
        ...


def clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(minimum, min(maximum, value))
