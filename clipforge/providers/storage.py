"""Blob storage seam for source videos and rendered exports."""

from __future__ import annotations

import hashlib
import hmac
import time
from pathlib import Path
from typing import Protocol
from urllib.parse import urlencode, urlparse


class VideoStore(Protocol):
    """Opaque blob storage addressed by URL."""

    def put(self, path: str, data: bytes, *, content_type: str = "video/mp4") -> str:
        """Persist ``data`` under ``path`` and return its URL."""

    def get(self, url: str) -> bytes:
        """Return the bytes previously stored at ``url``."""

    def signed_url(self, url: str, *, expires_in_seconds: int = 3600) -> str:
        """Return a time-limited URL granting read access to ``url``."""


class LocalVideoStore:
    """Filesystem-backed store returning ``file://`` URLs, used for local runs and tests."""

    def __init__(self, base_dir: Path | str, *, signing_key: str = "local") -> None:
        self.base_dir = Path(base_dir).expanduser().resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._signing_key = signing_key.encode("utf-8")

    def _resolve(self, path: str) -> Path:
        relative = path.lstrip("/").lstrip("\\")
        resolved = (self.base_dir / relative).resolve()
        if self.base_dir not in resolved.parents and resolved != self.base_dir:
            raise ValueError(f"Path escapes store root: {path}")
        return resolved

    def put(self, path: str, data: bytes, *, content_type: str = "video/mp4") -> str:
        destination = self._resolve(path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        return destination.as_uri()

    def get(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise ValueError(f"LocalVideoStore cannot read non-file URL: {url}")
        return self._resolve(str(Path(parsed.path).relative_to(self.base_dir))).read_bytes()

    def signed_url(self, url: str, *, expires_in_seconds: int = 3600) -> str:
        expires = int(time.time()) + max(expires_in_seconds, 1)
        signature = hmac.new(self._signing_key, f"{url}:{expires}".encode("utf-8"), hashlib.sha256).hexdigest()
        return f"{url}?{urlencode({'expires': expires, 'signature': signature})}"
