from __future__ import annotations

import logging
from typing import Sequence

from clipforge.config import RenderSettings
from clipforge.errors import ValidationError
from clipforge.models import Clip, Detection, ExportSettings, ProcessingOptions, StylePack, TranscriptSegment
from clipforge.render.formats import (
    LANDSCAPE_ASPECT_RATIO,
    PLATFORM_FORMATS,
    VERTICAL_ASPECT_RATIO,
    check_duration,
)
from clipforge.render.timeline import ImageSegment, OutputSpec, RenderSpec, TitleSegment, Track, VideoSegment

logger = logging.getLogger(__name__)

DEFAULT_TITLE_STYLE = "blockbuster"
MIN_CAPTION_LENGTH_SECONDS = 0.5


def build_render_spec(
    clip: Clip,
    style_pack: StylePack | None,
    detections: Sequence[Detection],
    processing_options: ProcessingOptions | None = None,
    settings: ExportSettings | None = None,
    *,
    captions: Sequence[TranscriptSegment] | None = None,
    render_settings: RenderSettings | None = None,
) -> RenderSpec:
    """Translate a clip plus export choices into a declarative render timeline.

    High-confidence detections become short back-to-back windows on the main track;
    without them the first ``trim_cap_seconds`` of the source are used. Overlay and
    caption tracks sit on separate tracks above the main one.
    """

    if not clip.video_url:
        raise ValidationError("No video URL available for clip.")

    options = processing_options or ProcessingOptions()
    export_settings = settings or ExportSettings()
    config = render_settings or RenderSettings()
    duration = clip.duration_seconds if clip.duration_seconds > 0 else config.trim_cap_seconds

    platform = PLATFORM_FORMATS.get((export_settings.format or "").lower())
    if platform is not None:
        check_duration(platform, duration)

    fit = "crop" if platform is not None or options.reframe else None
    main_track = Track(
        name="video",
        segments=_highlight_segments(clip.video_url, duration, detections, config, fit=fit),
    )
    if not main_track.segments:
        main_track.segments.append(
            VideoSegment(
                source=clip.video_url,
                trim_start=0.0,
                start=0.0,
                length=min(duration, config.trim_cap_seconds),
                fit=fit,
            )
        )

    tracks = [main_track]
    timeline_length = main_track.length

    overlay_image = style_pack.overlay_image if style_pack is not None else None
    if overlay_image and options.add_overlay:
        tracks.append(
            Track(
                name="overlay",
                segments=[
                    ImageSegment(
                        source=overlay_image,
                        start=0.0,
                        length=timeline_length,
                        opacity=config.overlay_opacity,
                        position="topRight",
                    )
                ],
            )
        )

    if options.add_captions and captions:
        title_style = (style_pack.title_style if style_pack is not None else None) or DEFAULT_TITLE_STYLE
        caption_track = _caption_track(captions, title_style, config.max_caption_segments)
        if caption_track.segments:
            tracks.append(caption_track)

    aspect_ratio = VERTICAL_ASPECT_RATIO if platform is not None or options.reframe else LANDSCAPE_ASPECT_RATIO
    output = OutputSpec(
        format=config.default_format,
        resolution=export_settings.resolution or config.default_resolution,
        fps=int(export_settings.fps or config.default_fps),
        aspect_ratio=aspect_ratio,
    )

    logger.debug(
        "Built render spec: %d main segments, %d tracks, aspect %s",
        len(main_track.segments),
        len(tracks),
        aspect_ratio,
    )
    return RenderSpec(tracks=tracks, output=output)


def _highlight_segments(
    source: str,
    duration: float,
    detections: Sequence[Detection],
    config: RenderSettings,
    *,
    fit: str | None,
) -> list[VideoSegment]:
    strong = sorted(
        (detection for detection in detections if detection.confidence > config.detection_confidence),
        key=lambda detection: detection.timestamp_seconds,
    )

    segments: list[VideoSegment] = []
    cursor = 0.0
    for detection in strong:
        if len(segments) >= config.max_segments:
            break
        trim_start = min(max(0.0, detection.timestamp_seconds - config.lead_in_seconds), duration)
        trim_end = min(trim_start + config.segment_length_seconds, duration)
        length = trim_end - trim_start
        if length <= 0:
            continue

        segments.append(
            VideoSegment(
                source=source,
                trim_start=trim_start,
                start=cursor,
                length=length,
                transition_in="fade",
                transition_out="fade",
                fit=fit,
            )
        )
        cursor += length

    return segments


def _caption_track(captions: Sequence[TranscriptSegment], style: str, limit: int) -> Track:
    segments: list[TitleSegment] = []
    for caption in captions[: max(limit, 0)]:
        if not caption.text.strip():
            continue
        start = max(caption.start, 0.0)
        length = caption.end - start if caption.end > start else MIN_CAPTION_LENGTH_SECONDS
        segments.append(TitleSegment(text=caption.text.strip(), start=start, length=length, position="bottom", style=style))
    return Track(name="captions", segments=segments)
