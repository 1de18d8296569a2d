from __future__ import annotations

import json
from typing import Any
from urllib import parse, request
from urllib.error import HTTPError, URLError

from clipforge.errors import ProviderError


def request_json(
    url: str,
    *,
    method: str = "GET",
    payload: dict[str, Any] | None = None,
    form: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 30,
) -> Any:
    """Send a JSON (or form-encoded) request and decode the JSON response.

    Transport failures, non-2xx responses and undecodable bodies all surface as ``ProviderError``.
    """

    request_headers = dict(headers or {})
    body: bytes | None = None
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/json")
    elif form is not None:
        body = parse.urlencode(form).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/x-www-form-urlencoded")

    req = request.Request(url, data=body, method=method, headers=request_headers)

    try:
        with request.urlopen(req, timeout=timeout_seconds) as response:
            raw = response.read().decode("utf-8")
    except HTTPError as exc:
        details = _read_error_body(exc)
        raise ProviderError(f"{method} {url} returned {exc.code}: {details}") from exc
    except (URLError, TimeoutError, OSError) as exc:
        raise ProviderError(f"{method} {url} failed: {exc}") from exc

    try:
        return json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as exc:
        raise ProviderError(f"{method} {url} returned invalid JSON.") from exc


def _read_error_body(exc: HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="replace").strip() or str(exc.reason)
    except OSError:
        return str(exc.reason)


def fetch_bytes(url: str, *, timeout_seconds: float = 120) -> bytes:
    """Download a binary body, wrapping transport failures as ``ProviderError``."""

    try:
        with request.urlopen(url, timeout=timeout_seconds) as response:
            return response.read()
    except HTTPError as exc:
        raise ProviderError(f"Download failed: {exc.code}") from exc
    except (URLError, TimeoutError, OSError) as exc:
        raise ProviderError(f"Download failed: {exc}") from exc
