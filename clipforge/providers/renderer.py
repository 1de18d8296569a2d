from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from clipforge.config import RendererSettings
from clipforge.errors import ConfigurationError, ProviderError
from clipforge.providers.http import request_json
from clipforge.providers.polling import Deadline, Sleeper, poll_until

logger = logging.getLogger(__name__)

PENDING_STATUSES = {"queued", "fetching", "preprocessing", "rendering", "saving", "unknown"}

RequestFn = Callable[..., Any]


@dataclass(slots=True, frozen=True)
class RenderOutcome:
    render_id: str
    url: str
    status: str


class RenderClient:
    """Timeline render client: submit a declarative spec, poll until done or failed."""

    def __init__(
        self,
        settings: RendererSettings,
        *,
        request_fn: RequestFn = request_json,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._settings = settings
        self._request = request_fn
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self._settings.api_key)

    @property
    def sandbox(self) -> bool:
        return "sandbox" in (self._settings.api_key or "")

    @property
    def endpoint(self) -> str:
        endpoint = self._settings.endpoint.rstrip("/")
        if self.sandbox:
            return endpoint.replace("/v1/", "/stage/")
        return endpoint

    def render(self, payload: dict[str, Any], *, deadline: Deadline | None = None) -> RenderOutcome:
        if not self.configured:
            raise ConfigurationError("Render API key not configured.")

        submitted = self._request(
            self.endpoint,
            method="POST",
            payload=payload,
            headers=self._headers(),
            timeout_seconds=self._settings.timeout_seconds,
        )
        render_id = ((submitted or {}).get("response") or {}).get("id")
        if not render_id:
            raise ProviderError("No render ID returned from render provider.")

        logger.info("Render job %s submitted (%s)", render_id, "sandbox" if self.sandbox else "production")

        status = poll_until(
            lambda: self._fetch_status(render_id),
            lambda state: state.get("status") not in PENDING_STATUSES,
            interval_seconds=self._settings.poll_interval_seconds,
            max_attempts=self._settings.max_attempts,
            label=f"Render {render_id}",
            deadline=deadline,
            sleep=self._sleep,
        )

        if status.get("status") == "failed":
            raise ProviderError(f"Render {render_id} failed: {status.get('error') or 'Unknown error'}")

        url = status.get("url")
        if status.get("status") != "done" or not url:
            raise ProviderError(f"No render URL returned (status: {status.get('status')}).")

        return RenderOutcome(render_id=render_id, url=str(url), status="done")

    def _fetch_status(self, render_id: str) -> dict[str, Any]:
        try:
            payload = self._request(
                f"{self.endpoint}/{render_id}",
                headers=self._headers(),
                timeout_seconds=self._settings.timeout_seconds,
            )
        except ProviderError as exc:
            # a failed status check is retried on the next poll
            logger.warning("Render status check failed for %s: %s", render_id, exc)
            return {"status": "unknown"}

        response = (payload or {}).get("response") or {}
        return {
            "status": response.get("status") or "unknown",
            "url": response.get("url"),
            "error": response.get("error"),
        }

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self._settings.api_key or ""}
