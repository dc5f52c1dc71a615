"""Media generation stage (Stage 03): batched image jobs, then one video job."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from moodreel.domain.models import (
    GeneratedMedia,
    GenerationJob,
    Keyframe,
    SegmentAnalysis,
    VideoAssembly,
)
from moodreel.services.generation_client import GenerationClient

logger = logging.getLogger("moodreel.pipeline")

IMAGE_BATCH_SIZE = 3
DEGRADED_SUCCESS_RATIO = 0.5
DEFAULT_VIDEO_PROMPT = (
    "Create a smooth video transition between these images, "
    "maintaining the visual style and atmosphere"
)

ProgressCallback = Callable[[int, int], None]


class NoUsableImagesError(RuntimeError):
    """Raised when not a single image job completed with a usable URL."""


def image_prompt_for(analysis: SegmentAnalysis) -> str:
    """Use the synthesized prompt, or fall back to the visual and emotion descriptions."""

    if analysis.image_prompt.strip():
        return analysis.image_prompt
    return f"{analysis.visual.strip()}. Mood: {analysis.emotion.strip()}"


async def _generate_one(
    client: GenerationClient,
    index: int,
    analysis: SegmentAnalysis,
) -> GeneratedMedia:
    try:
        job = await client.generate_image(image_prompt_for(analysis))
    except Exception as exc:
        logger.exception("Image generation for segment %s raised unexpectedly", index)
        job = GenerationJob.failed(f"error-{index}", str(exc) or exc.__class__.__name__)
    return GeneratedMedia(
        segment_index=index,
        start_time=analysis.start_time,
        end_time=analysis.end_time,
        image_job=job,
    )


async def generate_images_in_batches(
    client: GenerationClient,
    analyses: Sequence[SegmentAnalysis],
    on_progress: Optional[ProgressCallback] = None,
    batch_size: int = IMAGE_BATCH_SIZE,
) -> list[GeneratedMedia]:
    """Run image jobs in fixed groups: concurrent inside a group, groups one after another.

    A failed job never aborts the run; it comes back as a ``GeneratedMedia``
    whose job is in the ``failed`` state.
    """

    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    total = len(analyses)
    results: list[GeneratedMedia] = []
    for start in range(0, total, batch_size):
        batch = [
            _generate_one(client, index, analyses[index])
            for index in range(start, min(start + batch_size, total))
        ]
        logger.info("Image batch %s-%s of %s submitted", start, start + len(batch) - 1, total)
        results.extend(await asyncio.gather(*batch))
        if on_progress is not None:
            on_progress(min(start + batch_size, total), total)

    failures = sum(1 for item in results if not item.usable)
    if failures:
        logger.warning("Image generation finished with %s/%s failures", failures, total)
    else:
        logger.info("Image generation finished: %s images", total)

    results.sort(key=lambda item: item.segment_index)
    return results


def build_keyframes(images: Sequence[GeneratedMedia]) -> list[Keyframe]:
    return [
        Keyframe(url=item.image_job.image_url or "", timing=item.start_time)
        for item in images
        if item.usable
    ]


async def create_video_from_images(
    client: GenerationClient,
    images: Sequence[GeneratedMedia],
    audio_url: Optional[str] = None,
    prompt: Optional[str] = None,
) -> VideoAssembly:
    """Assemble a video from whatever images succeeded.

    Raises ``NoUsableImagesError`` when none did. When fewer than half
    succeeded the assembly still goes ahead but carries a warning.
    """

    keyframes = build_keyframes(images)
    total = len(images)
    if not keyframes:
        raise NoUsableImagesError("No usable images to build a video from")

    failed = total - len(keyframes)
    warning: Optional[str] = None
    if len(keyframes) < total * DEGRADED_SUCCESS_RATIO:
        failure_pct = round(failed / total * 100)
        warning = (
            f"{failure_pct}% of images failed to generate ({failed}/{total}); "
            "video quality may be reduced"
        )
        logger.warning("Degraded video input: %s", warning)

    job = await client.generate_video(
        prompt or DEFAULT_VIDEO_PROMPT,
        keyframes,
        audio_url=audio_url,
    )
    return VideoAssembly(job=job, used_images=len(keyframes), failed_images=failed, warning=warning)


__all__ = [
    "DEFAULT_VIDEO_PROMPT",
    "IMAGE_BATCH_SIZE",
    "NoUsableImagesError",
    "build_keyframes",
    "create_video_from_images",
    "generate_images_in_batches",
    "image_prompt_for",
]
