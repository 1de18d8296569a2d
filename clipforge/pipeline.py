from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Sequence

from clipforge.config import Settings
from clipforge.detectors.base import Detector
from clipforge.detectors.fallback import PatternFallbackDetector
from clipforge.detectors.heuristics import AmplitudeDetector, IntensitySampler, MotionDetector, RandomIntensitySampler
from clipforge.detectors.transcript import TranscriptDetector, TranscriptSource
from clipforge.errors import ValidationError
from clipforge.models import Clip, Detection, PipelineResult
from clipforge.profiles import DEFAULT_REGISTRY, GameProfile, ProfileRegistry
from clipforge.propose.derived_clips import build_derived_clips
from clipforge.providers.polling import Deadline
from clipforge.providers.transcription import TranscriptionClient
from clipforge.scoring.merge import merge_detections
from clipforge.scoring.select import select_highlights

logger = logging.getLogger(__name__)


class DetectionPipeline:
    """Runs detectors concurrently, merges their output and optionally auto-clips highlights."""

    def __init__(
        self,
        detectors: Sequence[Detector],
        *,
        settings: Settings,
        fallback: PatternFallbackDetector | None = None,
        registry: ProfileRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self._detectors = list(detectors)
        self._settings = settings
        self._fallback = fallback or _fallback_from_settings(settings)
        self._registry = registry

    def analyze(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        *,
        deadline: Deadline | None = None,
    ) -> tuple[list[Detection], bool, dict[str, int]]:
        """Return merged detections, whether the fallback supplied them, and per-detector counts."""

        deadline = deadline or Deadline.after(self._settings.detection.deadline_seconds)
        try:
            raw, counts = self._run_detectors(video_url, duration_seconds, profile, deadline)
            if raw:
                return self._merge(raw), False, counts
            logger.warning("No detector produced output for %s; using pattern fallback.", video_url)
        except Exception as exc:
            logger.warning("Analysis failed for %s; using pattern fallback: %s", video_url, exc)
            counts = {}

        synthetic = self._fallback.detect(video_url, duration_seconds, profile)
        counts[self._fallback.name] = len(synthetic)
        return self._merge(synthetic), True, counts

    def run(self, clip: Clip, *, auto_clip: bool = False, deadline: Deadline | None = None) -> PipelineResult:
        """Process one clip end to end, leaving its status terminal."""

        if not clip.video_url:
            raise ValidationError("No video URL available for processing.")
        if clip.duration_seconds <= 0:
            raise ValidationError(f"Clip {clip.id} has non-positive duration ({clip.duration_seconds}).")

        clip.status = "processing"
        profile = self._registry.resolve(clip.game_title)
        logger.info("Detecting highlights in %s (%s, %.0fs)", clip.id, profile.name, clip.duration_seconds)

        try:
            detections, used_fallback, counts = self.analyze(
                clip.video_url,
                clip.duration_seconds,
                profile,
                deadline=deadline,
            )

            highlights: list[Detection] = []
            derived: list[Clip] = []
            if auto_clip and detections:
                selection = self._settings.selection
                highlights = select_highlights(
                    detections,
                    clip.duration_seconds,
                    min_confidence=selection.min_confidence,
                    min_distance_seconds=selection.min_distance_seconds,
                    max_highlights=selection.max_highlights,
                    cap_divisor_seconds=selection.cap_divisor_seconds,
                )
                derived = build_derived_clips(clip, highlights, profile)
        except Exception:
            clip.status = "failed"
            raise

        clip.status = "completed"
        return PipelineResult(
            clip_id=clip.id,
            detections=detections,
            highlights=highlights,
            derived_clips=derived,
            used_fallback=used_fallback,
            detector_counts=counts,
        )

    def _run_detectors(
        self,
        video_url: str,
        duration_seconds: float,
        profile: GameProfile,
        deadline: Deadline,
    ) -> tuple[list[Detection], dict[str, int]]:
        if not self._detectors:
            return [], {}

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self._settings.detection.max_workers, len(self._detectors))),
            thread_name_prefix="detector",
        )
        futures: dict[Future[list[Detection]], str] = {
            executor.submit(detector.detect, video_url, duration_seconds, profile, deadline=deadline): detector.name
            for detector in self._detectors
        }
        try:
            done, pending = wait(futures, timeout=deadline.remaining())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        raw: list[Detection] = []
        counts: dict[str, int] = {}
        for future, name in futures.items():
            if future in pending:
                logger.warning("Detector %s did not finish before the deadline; ignoring it.", name)
                counts[name] = 0
                continue
            try:
                found = future.result()
            except Exception as exc:
                logger.warning("Detector %s failed: %s", name, exc)
                found = []
            counts[name] = len(found)
            raw.extend(detection for detection in found if _in_bounds(detection, duration_seconds))

        return raw, counts

    def _merge(self, detections: list[Detection]) -> list[Detection]:
        config = self._settings.detection
        return merge_detections(
            detections,
            window_seconds=config.merge_window_seconds,
            bonus=config.corroboration_bonus,
            max_confidence=config.max_merged_confidence,
        )


def build_pipeline(
    settings: Settings,
    *,
    transcript_source: TranscriptSource | None = None,
    amplitude_sampler: IntensitySampler | None = None,
    motion_sampler: IntensitySampler | None = None,
    registry: ProfileRegistry = DEFAULT_REGISTRY,
) -> DetectionPipeline:
    """Wire the standard detector set from settings."""

    detectors: list[Detector] = [TranscriptDetector(transcript_source or TranscriptionClient(settings.transcription))]

    heuristics = settings.heuristics
    if heuristics.enabled:
        seed = heuristics.seed
        detectors.append(
            AmplitudeDetector(
                amplitude_sampler or RandomIntensitySampler(seed),
                interval_seconds=heuristics.sample_interval_seconds,
                threshold=heuristics.amplitude_threshold,
                confidence_floor=heuristics.confidence_floor,
                confidence_ceiling=heuristics.confidence_ceiling,
            )
        )
        detectors.append(
            MotionDetector(
                motion_sampler or RandomIntensitySampler(None if seed is None else seed + 1),
                interval_seconds=heuristics.sample_interval_seconds,
                threshold=heuristics.motion_threshold,
                confidence_floor=heuristics.confidence_floor,
                confidence_ceiling=heuristics.confidence_ceiling,
            )
        )

    return DetectionPipeline(detectors, settings=settings, registry=registry)


def _fallback_from_settings(settings: Settings) -> PatternFallbackDetector:
    config = settings.fallback
    return PatternFallbackDetector(
        step_seconds=config.step_seconds,
        max_events=config.max_events,
        edge_margin_seconds=config.edge_margin_seconds,
        jitter_seconds=config.jitter_seconds,
        confidence_low=config.confidence_low,
        confidence_high=config.confidence_high,
        seed=config.seed,
    )


def _in_bounds(detection: Detection, duration_seconds: float) -> bool:
    return 0 <= detection.timestamp_seconds < duration_seconds and 0.0 <= detection.confidence <= 1.0
