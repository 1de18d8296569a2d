from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import quote, urlparse

from clipforge.config import TwitchSettings
from clipforge.errors import ConfigurationError, ProviderError
from clipforge.providers.http import request_json

logger = logging.getLogger(__name__)

CLIP_ID_PATTERN = re.compile(r"clip/([\w-]+)")
PREVIEW_SUFFIX = re.compile(r"-preview-\d+x\d+\.jpg$")

RequestFn = Callable[..., Any]


@dataclass(slots=True, frozen=True)
class ResolvedMedia:
    direct_media_url: str
    duration_seconds: float
    thumbnail_url: str | None


class TwitchResolver:
    """Resolves a Twitch clip URL to a direct media URL via the Helix API."""

    def __init__(self, settings: TwitchSettings, *, request_fn: RequestFn = request_json) -> None:
        self._settings = settings
        self._request = request_fn

    def resolve(self, url: str) -> ResolvedMedia | None:
        """Return media details, or ``None`` when the clip does not exist."""

        if not self._settings.client_id or not self._settings.client_secret:
            raise ConfigurationError("Twitch API credentials not configured.")

        clip_id = extract_clip_id(url)
        if not clip_id:
            return None

        token = self._access_token()
        payload = self._request(
            f"{self._settings.api_base.rstrip('/')}/clips?id={quote(clip_id)}",
            headers={
                "Client-ID": self._settings.client_id,
                "Authorization": f"Bearer {token}",
            },
            timeout_seconds=self._settings.timeout_seconds,
        )
        rows = (payload or {}).get("data") or []
        if not rows:
            logger.info("Twitch clip %s not found", clip_id)
            return None

        clip = rows[0]
        thumbnail = clip.get("thumbnail_url")
        if not thumbnail:
            raise ProviderError(f"Twitch clip {clip_id} has no thumbnail to derive media from.")

        return ResolvedMedia(
            direct_media_url=PREVIEW_SUFFIX.sub(".mp4", thumbnail),
            duration_seconds=float(clip.get("duration") or 0.0),
            thumbnail_url=thumbnail,
        )

    def _access_token(self) -> str:
        payload = self._request(
            self._settings.token_url,
            method="POST",
            form={
                "client_id": self._settings.client_id or "",
                "client_secret": self._settings.client_secret or "",
                "grant_type": "client_credentials",
            },
            timeout_seconds=self._settings.timeout_seconds,
        )
        token = (payload or {}).get("access_token")
        if not token:
            raise ProviderError("Twitch token response did not include an access token.")
        return str(token)


def extract_clip_id(url: str) -> str | None:
    match = CLIP_ID_PATTERN.search(url)
    if match:
        return match.group(1)
    path = urlparse(url).path.rstrip("/")
    last = path.rsplit("/", 1)[-1] if path else ""
    return last or None
