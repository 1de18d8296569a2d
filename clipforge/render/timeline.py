from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class VideoSegment:
    source: str
    trim_start: float
    start: float
    length: float
    transition_in: str | None = None
    transition_out: str | None = None
    position: str | None = None
    fit: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "asset": {"type": "video", "src": self.source, "trim": _r(self.trim_start)},
            "start": _r(self.start),
            "length": _r(self.length),
        }
        if self.transition_in or self.transition_out:
            payload["transition"] = {
                key: value
                for key, value in (("in", self.transition_in), ("out", self.transition_out))
                if value
            }
        if self.position:
            payload["position"] = self.position
        if self.fit:
            payload["fit"] = self.fit
        return payload


@dataclass(slots=True)
class ImageSegment:
    source: str
    start: float
    length: float
    opacity: float = 1.0
    position: str = "center"

    def to_payload(self) -> dict[str, Any]:
        return {
            "asset": {"type": "image", "src": self.source},
            "start": _r(self.start),
            "length": _r(self.length),
            "opacity": self.opacity,
            "position": self.position,
        }


@dataclass(slots=True)
class TitleSegment:
    text: str
    start: float
    length: float
    position: str = "bottom"
    style: str = "blockbuster"

    def to_payload(self) -> dict[str, Any]:
        return {
            "asset": {"type": "title", "text": self.text, "style": self.style},
            "start": _r(self.start),
            "length": _r(self.length),
            "position": self.position,
        }


Segment = VideoSegment | ImageSegment | TitleSegment


@dataclass(slots=True)
class Track:
    name: str
    segments: list[Segment] = field(default_factory=list)

    @property
    def length(self) -> float:
        return max((segment.start + segment.length for segment in self.segments), default=0.0)

    def to_payload(self) -> dict[str, Any]:
        return {"clips": [segment.to_payload() for segment in self.segments]}


@dataclass(slots=True, frozen=True)
class OutputSpec:
    format: str = "mp4"
    resolution: str = "hd"
    fps: int = 30
    aspect_ratio: str = "16:9"

    def to_payload(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "resolution": self.resolution,
            "fps": self.fps,
            "aspectRatio": self.aspect_ratio,
        }


@dataclass(slots=True)
class RenderSpec:
    """Declarative render timeline; the first track is the main video track."""

    tracks: list[Track]
    output: OutputSpec
    soundtrack_url: str | None = None

    @property
    def main_track(self) -> Track:
        return self.tracks[0]

    @property
    def duration_seconds(self) -> float:
        return self.main_track.length if self.tracks else 0.0

    def to_payload(self) -> dict[str, Any]:
        timeline: dict[str, Any] = {"tracks": [track.to_payload() for track in self.tracks]}
        if self.soundtrack_url:
            timeline["soundtrack"] = {"src": self.soundtrack_url, "effect": "fadeIn"}
        return {"timeline": timeline, "output": self.output.to_payload()}


def _r(value: float) -> float:
    return round(float(value), 3)
