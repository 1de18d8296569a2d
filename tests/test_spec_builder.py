from __future__ import annotations

import pytest

from clipforge.config import RenderSettings
from clipforge.errors import ValidationError
from clipforge.models import Clip, Detection, ExportSettings, ProcessingOptions, StylePack, TranscriptSegment
from clipforge.render.spec_builder import build_render_spec


def _clip(duration: float = 120.0, video_url: str | None = "https://cdn/source.mp4") -> Clip:
    return Clip(id="clip-1", title="Ranked game", duration_seconds=duration, video_url=video_url, game_title="Valorant")


def _det(timestamp: float, confidence: float) -> Detection:
    return Detection(category="kill", timestamp_seconds=timestamp, confidence=confidence, metadata={"source": "transcript"})


def test_strong_detections_become_contiguous_segments() -> None:
    spec = build_render_spec(_clip(), None, [_det(40.0, 0.9), _det(10.0, 0.8), _det(70.0, 0.5)])

    segments = spec.main_track.segments
    assert [s.trim_start for s in segments] == [8.0, 38.0]
    assert [s.start for s in segments] == [0.0, 5.0]
    assert [s.length for s in segments] == [5.0, 5.0]
    assert all(s.transition_in == "fade" and s.transition_out == "fade" for s in segments)
    assert spec.duration_seconds == pytest.approx(10.0)


def test_segment_windows_clamp_to_clip_bounds() -> None:
    spec = build_render_spec(_clip(duration=20.0), None, [_det(1.0, 0.9), _det(19.0, 0.9)])

    segments = spec.main_track.segments
    assert segments[0].trim_start == 0.0
    assert segments[1].trim_start == pytest.approx(17.0)
    assert segments[1].length == pytest.approx(3.0)
    for segment in segments:
        assert segment.trim_start + segment.length <= 20.0


def test_segment_count_is_capped() -> None:
    detections = [_det(float(t), 0.9) for t in range(5, 100, 10)]

    spec = build_render_spec(_clip(), None, detections)

    assert len(spec.main_track.segments) == 5


def test_without_detections_uses_trimmed_source() -> None:
    spec = build_render_spec(_clip(duration=120.0), None, [])

    [segment] = spec.main_track.segments
    assert segment.trim_start == 0.0
    assert segment.length == pytest.approx(30.0)
    assert spec.output.aspect_ratio == "16:9"


def test_short_clip_fallback_segment_uses_clip_duration() -> None:
    spec = build_render_spec(_clip(duration=12.0), None, [])

    assert spec.main_track.segments[0].length == pytest.approx(12.0)


def test_overlay_and_captions_tracks() -> None:
    pack = StylePack(
        id="pack-1",
        name="Neon",
        assets_config={"overlay_image": "https://cdn/overlay.png", "title_style": "neon"},
    )
    captions = [TranscriptSegment(start=1.0, end=2.5, text="nice ace"), TranscriptSegment(start=3.0, end=3.0, text="gg")]

    spec = build_render_spec(
        _clip(),
        pack,
        [_det(40.0, 0.9)],
        ProcessingOptions(add_captions=True),
        captions=captions,
    )

    overlay, caption_track = spec.tracks[1], spec.tracks[2]
    assert overlay.segments[0].position == "topRight"
    assert overlay.segments[0].opacity == pytest.approx(0.2)
    assert overlay.segments[0].length == pytest.approx(spec.duration_seconds)
    assert [s.style for s in caption_track.segments] == ["neon", "neon"]
    assert caption_track.segments[1].length == pytest.approx(0.5)


def test_overlay_skipped_when_disabled() -> None:
    pack = StylePack(id="p", name="Neon", assets_config={"overlay_image": "https://cdn/overlay.png"})

    spec = build_render_spec(_clip(), pack, [], ProcessingOptions(add_overlay=False))

    assert len(spec.tracks) == 1


def test_platform_format_forces_vertical_crop() -> None:
    spec = build_render_spec(_clip(duration=50.0), None, [_det(20.0, 0.9)], settings=ExportSettings(format="shorts", fps=60))

    payload = spec.to_payload()
    assert payload["output"]["aspectRatio"] == "9:16"
    assert payload["output"]["fps"] == 60
    assert payload["timeline"]["tracks"][0]["clips"][0]["fit"] == "crop"


def test_reframe_without_platform_is_vertical() -> None:
    spec = build_render_spec(_clip(), None, [], ProcessingOptions(reframe=True))

    assert spec.output.aspect_ratio == "9:16"


def test_platform_duration_limit_enforced() -> None:
    with pytest.raises(ValidationError, match="YouTube Shorts maximum"):
        build_render_spec(_clip(duration=90.0), None, [], settings=ExportSettings(format="shorts"))


def test_missing_video_url_rejected() -> None:
    with pytest.raises(ValidationError):
        build_render_spec(_clip(video_url=None), None, [])


def test_render_settings_override_defaults() -> None:
    config = RenderSettings(detection_confidence=0.4, segment_length_seconds=8.0, lead_in_seconds=0.0)

    spec = build_render_spec(_clip(), None, [_det(30.0, 0.5)], render_settings=config)

    [segment] = spec.main_track.segments
    assert segment.trim_start == 30.0
    assert segment.length == pytest.approx(8.0)


def test_payload_shape() -> None:
    payload = build_render_spec(_clip(), None, [_det(40.0, 0.9)]).to_payload()

    clip_payload = payload["timeline"]["tracks"][0]["clips"][0]
    assert clip_payload["asset"] == {"type": "video", "src": "https://cdn/source.mp4", "trim": 38.0}
    assert clip_payload["transition"] == {"in": "fade", "out": "fade"}
    assert payload["output"] == {"format": "mp4", "resolution": "hd", "fps": 30, "aspectRatio": "16:9"}
