from __future__ import annotations

import uuid
from typing import Callable

from clipforge.models import Clip, Detection
from clipforge.profiles import GameProfile


def format_timestamp(seconds: float) -> str:
    """Format an offset as ``H:MM:SS`` when it spans hours, else ``M:SS``."""

    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def build_derived_clips(
    parent: Clip,
    highlights: list[Detection],
    profile: GameProfile,
    *,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[Clip]:
    """Create one completed sub-clip record per selected highlight.

    Sub-clips are logical trims: they share the parent's video and thumbnail URLs.
    """

    derived: list[Clip] = []
    for highlight in highlights:
        offset = int(highlight.timestamp_seconds)
        derived.append(
            Clip(
                id=id_factory(),
                title=f"{parent.title} - {highlight.category} @ {format_timestamp(offset)}",
                duration_seconds=float(profile.clip_duration_seconds),
                video_url=parent.video_url,
                game_title=parent.game_title,
                user_id=parent.user_id,
                thumbnail_url=parent.thumbnail_url,
                source_url=f"{parent.source_url}?t={offset}" if parent.source_url else None,
                source_type=parent.source_type,
                status="completed",
                parent_id=parent.id,
            )
        )
    return derived
