from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from clipforge.errors import ClipforgeError, ValidationError
from clipforge.ingest.probe import probe_duration
from clipforge.ingest.twitch import TwitchResolver
from clipforge.models import Clip
from clipforge.providers.http import fetch_bytes
from clipforge.providers.storage import VideoStore

logger = logging.getLogger(__name__)

SUPPORTED_SOURCES = ("twitch", "kick", "upload")


@dataclass(slots=True, frozen=True)
class IngestRequest:
    url: str
    title: str
    source_type: str
    game_title: str | None = None
    user_id: str | None = None


class IngestService:
    """Turns an ingest request into a stored clip record with a known, positive duration."""

    def __init__(
        self,
        *,
        twitch: TwitchResolver | None = None,
        store: VideoStore | None = None,
        probe: Callable[[str], float] = probe_duration,
        download: Callable[[str], bytes] = fetch_bytes,
    ) -> None:
        self._twitch = twitch
        self._store = store
        self._probe = probe
        self._download = download

    def ingest(self, request: IngestRequest) -> Clip:
        if not request.url or not request.title or not request.source_type:
            raise ValidationError("Missing required fields.")
        if request.source_type not in SUPPORTED_SOURCES:
            raise ValidationError(f"Unsupported source type '{request.source_type}'.")

        clip_id = str(uuid.uuid4())
        if request.source_type == "twitch":
            video_url, thumbnail_url, duration = self._from_twitch(request, clip_id)
        elif request.source_type == "kick":
            raise ValidationError("Kick integration not yet implemented. Please use Twitch or direct upload.")
        else:
            video_url, thumbnail_url, duration = self._from_upload(request, clip_id)

        if duration <= 0:
            raise ValidationError(f"Ingested video has non-positive duration ({duration}).")

        logger.info("Ingested %s clip %s (%.1fs)", request.source_type, clip_id, duration)
        return Clip(
            id=clip_id,
            title=request.title,
            duration_seconds=duration,
            video_url=video_url,
            game_title=request.game_title,
            user_id=request.user_id,
            thumbnail_url=thumbnail_url,
            source_url=request.url,
            source_type=request.source_type,
            status="processing",
        )

    def _from_twitch(self, request: IngestRequest, clip_id: str) -> tuple[str, str | None, float]:
        if self._twitch is None:
            raise ValidationError("Twitch ingestion is not available.")

        resolved = self._twitch.resolve(request.url)
        if resolved is None:
            raise ValidationError("Clip not found.")

        video_url = resolved.direct_media_url
        thumbnail_url = resolved.thumbnail_url
        if self._store is not None:
            data = self._download(resolved.direct_media_url)
            video_url = self._store.put(f"{request.user_id or 'anonymous'}/{clip_id}.mp4", data)
            if thumbnail_url:
                thumbnail_url = self._store_thumbnail(request, clip_id, thumbnail_url)
        return video_url, thumbnail_url, resolved.duration_seconds

    def _store_thumbnail(self, request: IngestRequest, clip_id: str, thumbnail_url: str) -> str:
        """Copy the thumbnail into the store; on failure keep the remote URL."""

        try:
            data = self._download(thumbnail_url)
            return self._store.put(
                f"{request.user_id or 'anonymous'}/{clip_id}_thumb.jpg",
                data,
                content_type="image/jpeg",
            )
        except (ClipforgeError, OSError, ValueError) as exc:
            logger.warning("Thumbnail upload failed for clip %s: %s", clip_id, exc)
            return thumbnail_url

    def _from_upload(self, request: IngestRequest, clip_id: str) -> tuple[str, str | None, float]:
        source_path = Path(request.url).expanduser()
        duration = self._probe(str(source_path))
        if self._store is not None:
            video_url = self._store.put(
                f"{request.user_id or 'anonymous'}/{clip_id}{source_path.suffix or '.mp4'}",
                source_path.read_bytes(),
            )
        else:
            video_url = source_path.resolve().as_uri()
        return video_url, None, duration
