from __future__ import annotations

import logging
from typing import Callable, Sequence

from clipforge.config import Settings
from clipforge.errors import ClipforgeError, ProviderTimeoutError, ValidationError
from clipforge.jobs import Job
from clipforge.models import Clip, Detection, ExportSettings, ProcessingOptions, StylePack, TranscriptSegment
from clipforge.providers.http import fetch_bytes
from clipforge.providers.polling import Deadline
from clipforge.providers.renderer import RenderClient
from clipforge.providers.storage import VideoStore
from clipforge.render.formats import FormatSpec, check_duration, get_format
from clipforge.render.spec_builder import build_render_spec

logger = logging.getLogger(__name__)

RENDERER_NOT_CONFIGURED = "Video rendering service not configured. Please contact support."


def validate_export_request(clip: Clip | None, format_key: str, requester_id: str | None = None) -> FormatSpec:
    """Reject an export request before any job record exists."""

    if clip is None:
        raise ValidationError("Clip not found or access denied.")
    if requester_id is not None and clip.user_id != requester_id:
        raise ValidationError("Clip not found or access denied.")
    if not clip.video_url:
        raise ValidationError("No video URL available for export.")

    spec = get_format(format_key)
    check_duration(spec, clip.duration_seconds)
    return spec


class ExportService:
    """Creates platform export jobs and drives them through the render provider."""

    def __init__(
        self,
        settings: Settings,
        *,
        render_client: RenderClient | None = None,
        store: VideoStore | None = None,
        download: Callable[[str], bytes] = fetch_bytes,
    ) -> None:
        self._settings = settings
        self._render_client = render_client or RenderClient(settings.renderer)
        self._store = store
        self._download = download

    @property
    def mock_mode(self) -> bool:
        return self._settings.renderer.use_mock or not self._render_client.configured

    def create_export(
        self,
        clip: Clip | None,
        *,
        format_key: str = "shorts",
        requester_id: str | None = None,
        include_captions: bool = True,
        crop_mode: str = "center",
        style_pack: StylePack | None = None,
    ) -> Job:
        spec = validate_export_request(clip, format_key, requester_id)

        job = Job(
            kind="export",
            clip_id=clip.id,
            user_id=clip.user_id,
            style_pack_id=style_pack.id if style_pack is not None else None,
            settings={
                "format": spec.key,
                "vertical": True,
                "width": spec.width,
                "height": spec.height,
                "crop_mode": crop_mode,
                "include_captions": include_captions,
            },
            processing_options={
                "add_captions": include_captions,
                "reframe": crop_mode != "center",
                "add_b_roll": False,
                "add_voiceover": False,
                "enhance_speech": False,
            },
        )

        if not self._render_client.configured and not self._settings.renderer.use_mock:
            job.fail(RENDERER_NOT_CONFIGURED)
            return job

        logger.info("Export %s created for clip %s (%s)", job.id, clip.id, spec.name)
        return job

    def run_export(
        self,
        job: Job,
        clip: Clip,
        *,
        style_pack: StylePack | None = None,
        detections: Sequence[Detection] = (),
        captions: Sequence[TranscriptSegment] | None = None,
        deadline: Deadline | None = None,
    ) -> Job:
        """Render one pending export job to a terminal state; errors end up on the job, not raised."""

        job.start()

        try:
            render_spec = build_render_spec(
                clip,
                style_pack,
                detections,
                ProcessingOptions(**job.processing_options),
                _export_settings(job),
                captions=captions,
                render_settings=self._settings.render,
            )

            if self.mock_mode:
                logger.warning("Using mock export for %s; output is the source video.", job.id)
                job.complete(output_url=clip.video_url, output_size=None, mock=True)
                return job

            outcome = self._render_client.render(render_spec.to_payload(), deadline=deadline)
            output_url = outcome.url
            output_size: int | None = None
            if self._store is not None:
                data = self._download(outcome.url)
                output_url = self._store.put(f"{job.user_id or 'anonymous'}/{job.id}.mp4", data)
                output_size = len(data)

            job.complete(output_url=output_url, output_size=output_size, render_id=outcome.render_id)
        except ProviderTimeoutError as exc:
            job.fail(f"Render timeout: {exc}")
        except ClipforgeError as exc:
            job.fail(f"Render error: {exc}")
        except Exception as exc:
            logger.exception("Export %s failed unexpectedly", job.id)
            job.fail(f"Export error: {exc}")

        return job


def _export_settings(job: Job) -> ExportSettings:
    raw = job.settings
    return ExportSettings(
        format=raw.get("format"),
        resolution=raw.get("resolution"),
        fps=raw.get("fps"),
        width=raw.get("width"),
        height=raw.get("height"),
        crop_mode=str(raw.get("crop_mode", "center")),
        include_captions=bool(raw.get("include_captions", True)),
    )
