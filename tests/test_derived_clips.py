from __future__ import annotations

import pytest

from clipforge.models import Clip, Detection
from clipforge.profiles import resolve_profile
from clipforge.propose.derived_clips import build_derived_clips, format_timestamp


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0:00"), (12.9, "0:12"), (100, "1:40"), (3725, "1:02:05")],
)
def test_format_timestamp(seconds: float, expected: str) -> None:
    assert format_timestamp(seconds) == expected


def test_derived_clips_inherit_parent_and_profile_duration() -> None:
    parent = Clip(
        id="parent",
        title="Scrims",
        duration_seconds=900.0,
        video_url="https://cdn/source.mp4",
        game_title="League of Legends",
        user_id="user-1",
        thumbnail_url="https://cdn/thumb.jpg",
        source_url="https://twitch.tv/clip/abc",
        source_type="twitch",
    )
    highlights = [Detection("clutch", 125.4, 0.9, {"source": "transcript"})]
    ids = iter(["child-1"])

    [child] = build_derived_clips(parent, highlights, resolve_profile("lol"), id_factory=lambda: next(ids))

    assert child.id == "child-1"
    assert child.parent_id == "parent"
    assert child.title == "Scrims - clutch @ 2:05"
    assert child.duration_seconds == 35.0
    assert child.video_url == parent.video_url
    assert child.thumbnail_url == parent.thumbnail_url
    assert child.source_url == "https://twitch.tv/clip/abc?t=125"
    assert child.status == "completed"


def test_parent_without_source_url() -> None:
    parent = Clip(id="p", title="Upload", duration_seconds=300.0, video_url="file:///tmp/v.mp4")

    [child] = build_derived_clips(parent, [Detection("kill", 10.0, 0.8, {})], resolve_profile(None))

    assert child.source_url is None
