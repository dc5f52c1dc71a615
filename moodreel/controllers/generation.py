"""Image and video generation endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from moodreel.config.settings import settings
from moodreel.controllers.dependencies import AnalyzerDep, GenerationClientDep, build_flow
from moodreel.controllers.errors import PIPELINE_ERRORS, to_http_exception
from moodreel.domain.models import Keyframe
from moodreel.pipelines.audio import (
    DEFAULT_VIDEO_PROMPT,
    read_audio_bytes,
    resolve_content_type,
    validate_segment_duration,
)
from moodreel.views.common import ErrorResponse
from moodreel.views.generation import (
    FlowResponse,
    ImageRequest,
    JobView,
    SingleImageVideoRequest,
)

router = APIRouter(
    prefix="/generation",
    tags=["generation"],
    responses={502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)

logger = logging.getLogger(__name__)
pipeline_logger = logging.getLogger("moodreel.pipeline")

_AUDIO_FILE_UPLOAD = File(...)
_SEGMENT_DURATION_FORM = Form(settings.pipeline.default_segment_duration)
_AUDIO_URL_FORM = Form(None)


@router.post("/image", response_model=JobView)
async def generate_image(payload: ImageRequest, client: GenerationClientDep) -> JobView:
    """Submit one image job and wait for it to finish; failures come back as a failed job."""

    job = await client.generate_image(
        payload.prompt,
        aspect_ratio=payload.aspect_ratio,
        model=payload.model,
    )
    return JobView.from_domain(job)


@router.post("/video", response_model=JobView)
async def generate_video(payload: SingleImageVideoRequest, client: GenerationClientDep) -> JobView:
    """Animate a single still image."""

    job = await client.generate_video(
        payload.prompt or DEFAULT_VIDEO_PROMPT,
        [Keyframe(url=payload.image_url, timing=0.0)],
        audio_url=payload.audio_url,
    )
    return JobView.from_domain(job)


@router.post("/flow", response_model=FlowResponse)
async def run_flow(
    analyzer: AnalyzerDep,
    client: GenerationClientDep,
    segment_duration: float = _SEGMENT_DURATION_FORM,
    audio_url: Optional[str] = _AUDIO_URL_FORM,
    audio_file: UploadFile = _AUDIO_FILE_UPLOAD,
) -> FlowResponse:
    """Segment, analyze, illustrate and animate one upload."""

    pipeline_config = settings.pipeline
    validate_segment_duration(
        segment_duration,
        minimum=pipeline_config.min_segment_duration,
        maximum=pipeline_config.max_segment_duration,
    )
    resolve_content_type(audio_file)
    audio_bytes = await read_audio_bytes(audio_file, max_bytes=pipeline_config.max_upload_bytes)
    name = audio_file.filename

    def analysis_progress(done: int, total: int) -> None:
        pipeline_logger.info("Analysis progress %s/%s file=%s", done, total, name)

    def image_progress(done: int, total: int) -> None:
        pipeline_logger.info("Image progress %s/%s file=%s", done, total, name)

    def status_update(message: str) -> None:
        pipeline_logger.info("Flow status file=%s: %s", name, message)

    flow = build_flow(analyzer, client, segment_duration)
    try:
        result = await flow.run(
            audio_bytes,
            audio_url=audio_url,
            on_analysis_progress=analysis_progress,
            on_image_progress=image_progress,
            on_status=status_update,
        )
    except PIPELINE_ERRORS as exc:
        raise to_http_exception(exc) from exc

    if result.video.degraded:
        logger.warning("Flow finished degraded file=%s: %s", name, result.video.warning)
    return FlowResponse.from_domain(result)
