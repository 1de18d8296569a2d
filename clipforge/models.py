from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

DetectionCategory = Literal["kill", "death", "highlight", "clutch", "hype"]
ClipStatus = Literal["processing", "completed", "failed"]

DETECTION_CATEGORIES: tuple[str, ...] = ("kill", "death", "highlight", "clutch", "hype")


@dataclass(slots=True)
class Detection:
    """A single timestamped, categorized, confidence-scored highlight candidate."""

    category: str
    timestamp_seconds: float
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", "unknown"))

    @property
    def signals(self) -> list[str]:
        return list(self.metadata.get("signals", []))


@dataclass(slots=True, frozen=True)
class TranscriptSegment:
    start: float
    end: float
    text: str


@dataclass(slots=True)
class Clip:
    """Clip record owned by the storage layer; the engine reads it and appends derived clips."""

    id: str
    title: str
    duration_seconds: float
    video_url: str | None
    game_title: str | None = None
    user_id: str | None = None
    thumbnail_url: str | None = None
    source_url: str | None = None
    source_type: str = "upload"
    status: ClipStatus = "processing"
    parent_id: str | None = None


@dataclass(slots=True, frozen=True)
class StylePack:
    id: str
    name: str
    game: str = ""
    is_premium: bool = False
    assets_config: dict[str, Any] = field(default_factory=dict)

    @property
    def overlay_image(self) -> str | None:
        value = self.assets_config.get("overlay_image")
        return str(value) if value else None

    @property
    def title_style(self) -> str | None:
        value = self.assets_config.get("title_style")
        return str(value) if value else None


@dataclass(slots=True, frozen=True)
class ProcessingOptions:
    add_captions: bool = False
    reframe: bool = False
    add_overlay: bool = True
    add_b_roll: bool = False
    add_voiceover: bool = False
    enhance_speech: bool = False
    voiceover_script: str | None = None


@dataclass(slots=True, frozen=True)
class ExportSettings:
    format: str | None = None
    resolution: str | None = None
    fps: int | None = None
    width: int | None = None
    height: int | None = None
    crop_mode: str = "center"
    include_captions: bool = True


@dataclass(slots=True)
class PipelineResult:
    """Outcome of one detection pipeline run over a clip."""

    clip_id: str
    detections: list[Detection]
    highlights: list[Detection]
    derived_clips: list[Clip]
    used_fallback: bool
    detector_counts: dict[str, int] = field(default_factory=dict)
