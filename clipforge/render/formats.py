from __future__ import annotations

from dataclasses import dataclass

from clipforge.errors import ValidationError


@dataclass(slots=True, frozen=True)
class FormatSpec:
    key: str
    name: str
    width: int
    height: int
    aspect_ratio: str
    max_duration_seconds: int


VERTICAL_ASPECT_RATIO = "9:16"
LANDSCAPE_ASPECT_RATIO = "16:9"

PLATFORM_FORMATS: dict[str, FormatSpec] = {
    "tiktok": FormatSpec("tiktok", "TikTok", 1080, 1920, VERTICAL_ASPECT_RATIO, 180),
    "reels": FormatSpec("reels", "Instagram Reels", 1080, 1920, VERTICAL_ASPECT_RATIO, 90),
    "shorts": FormatSpec("shorts", "YouTube Shorts", 1080, 1920, VERTICAL_ASPECT_RATIO, 60),
}


def get_format(key: str) -> FormatSpec:
    normalized = key.lower().strip()
    if normalized not in PLATFORM_FORMATS:
        msg = (
            f"Unsupported export format '{key}'. "
            f"Expected one of: {', '.join(sorted(PLATFORM_FORMATS))}."
        )
        raise ValidationError(msg)
    return PLATFORM_FORMATS[normalized]


def check_duration(spec: FormatSpec, duration_seconds: float) -> None:
    if duration_seconds > spec.max_duration_seconds:
        raise ValidationError(
            f"Clip duration ({_format_seconds(duration_seconds)}s) exceeds {spec.name} maximum "
            f"({spec.max_duration_seconds}s). Please trim your clip first."
        )


def _format_seconds(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"
