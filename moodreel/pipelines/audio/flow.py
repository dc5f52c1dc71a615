"""End-to-end orchestration of one audio-to-video run.

Stages, in order:

1. ``segmentation`` - split the upload into fixed-duration WAV windows.
2. ``analysis`` - describe each window and derive an image prompt, sequentially.
3. ``generation`` - image jobs in batches of three, then one video job.

Nothing is persisted between runs; the returned ``FlowResult`` is the whole
record of a run.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from moodreel.domain.models import FlowResult, GeneratedMedia, SegmentAnalysis, VideoAssembly
from moodreel.services.generation_client import GenerationClient

from .analysis import ProgressCallback, SegmentAnalyzer
from .generation import create_video_from_images, generate_images_in_batches
from .segmentation import DEFAULT_SEGMENT_DURATION, split_audio_async

logger = logging.getLogger("moodreel.pipeline")

OVERALL_VIDEO_PROMPT = (
    "Create a cinematic music video that flows naturally between these scenes, "
    "following the mood of the music with smooth camera movement and consistent lighting"
)

StatusCallback = Callable[[str], None]


class VideoGenerationError(RuntimeError):
    """Raised when the final video job ends in the failed state."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class MoodReelFlow:
    def __init__(
        self,
        analyzer: SegmentAnalyzer,
        client: GenerationClient,
        *,
        segment_duration: float = DEFAULT_SEGMENT_DURATION,
    ) -> None:
        self._analyzer = analyzer
        self._client = client
        self._segment_duration = segment_duration

    async def analyze_audio(
        self,
        audio_bytes: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[SegmentAnalysis]:
        segments = await split_audio_async(audio_bytes, self._segment_duration)
        return await self._analyzer.analyze_segments(segments, on_progress=on_progress)

    async def generate_video(
        self,
        analyses: Sequence[SegmentAnalysis],
        audio_url: Optional[str] = None,
        on_image_progress: Optional[ProgressCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> tuple[list[GeneratedMedia], VideoAssembly]:
        """Generate the images, then the video; a failed video job raises ``VideoGenerationError``."""

        if on_status is not None:
            on_status("generating images")
        images = await generate_images_in_batches(self._client, analyses, on_progress=on_image_progress)

        if on_status is not None:
            on_status("generating video")
        assembly = await create_video_from_images(
            self._client,
            images,
            audio_url=audio_url,
            prompt=OVERALL_VIDEO_PROMPT,
        )
        if not assembly.job.succeeded:
            reason = assembly.job.failure_reason or "Video generation failed"
            logger.error("Video generation failed job=%s reason=%s", assembly.job.id, reason)
            raise VideoGenerationError(reason)

        if on_status is not None:
            on_status("completed")
        return images, assembly

    async def run(
        self,
        audio_bytes: bytes,
        audio_url: Optional[str] = None,
        *,
        on_analysis_progress: Optional[ProgressCallback] = None,
        on_image_progress: Optional[ProgressCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> FlowResult:
        if on_status is not None:
            on_status("analyzing audio")
        analyses = await self.analyze_audio(audio_bytes, on_progress=on_analysis_progress)
        images, assembly = await self.generate_video(
            analyses,
            audio_url=audio_url,
            on_image_progress=on_image_progress,
            on_status=on_status,
        )
        logger.info(
            "Flow finished segments=%s images=%s video=%s degraded=%s",
            len(analyses),
            assembly.used_images,
            assembly.job.id,
            assembly.degraded,
        )
        return FlowResult(analyses=analyses, images=images, video=assembly)


__all__ = [
    "MoodReelFlow",
    "OVERALL_VIDEO_PROMPT",
    "StatusCallback",
    "VideoGenerationError",
]
