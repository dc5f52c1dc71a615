"""Mood analysis endpoints.

``/analysis/file`` is the single-request variant that only sees the file
name. ``/analysis/segments`` splits an upload and analyzes every window in
order; progress is reported to the pipeline log as it happens.
"""

import logging

from fastapi import APIRouter, File, Form, UploadFile

from moodreel.config.settings import settings
from moodreel.controllers.dependencies import AnalyzerDep
from moodreel.controllers.errors import PIPELINE_ERRORS, to_http_exception
from moodreel.pipelines.audio import (
    read_audio_bytes,
    resolve_content_type,
    split_audio_async,
    validate_segment_duration,
)
from moodreel.views.common import ErrorResponse
from moodreel.views.analysis import (
    FileAnalysisRequest,
    FileAnalysisResponse,
    SegmentAnalysisResponse,
    SegmentAnalysisView,
)

router = APIRouter(
    prefix="/analysis",
    tags=["analysis"],
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)

logger = logging.getLogger(__name__)
pipeline_logger = logging.getLogger("moodreel.pipeline")

_AUDIO_FILE_UPLOAD = File(...)
_SEGMENT_DURATION_FORM = Form(settings.pipeline.default_segment_duration)


@router.post("/file", response_model=FileAnalysisResponse)
async def analyze_file(payload: FileAnalysisRequest, analyzer: AnalyzerDep) -> FileAnalysisResponse:
    """Describe the mood of a track from its file name alone."""

    try:
        analysis = await analyzer.analyze_file(payload.file_name)
    except PIPELINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return FileAnalysisResponse.from_domain(analysis)


@router.post("/segments", response_model=SegmentAnalysisResponse)
async def analyze_segments(
    analyzer: AnalyzerDep,
    segment_duration: float = _SEGMENT_DURATION_FORM,
    audio_file: UploadFile = _AUDIO_FILE_UPLOAD,
) -> SegmentAnalysisResponse:
    """Split an upload into windows and analyze each one."""

    pipeline_config = settings.pipeline
    validate_segment_duration(
        segment_duration,
        minimum=pipeline_config.min_segment_duration,
        maximum=pipeline_config.max_segment_duration,
    )
    resolve_content_type(audio_file)
    audio_bytes = await read_audio_bytes(audio_file, max_bytes=pipeline_config.max_upload_bytes)

    def report(done: int, total: int) -> None:
        pipeline_logger.info("Analysis progress %s/%s file=%s", done, total, audio_file.filename)

    try:
        segments = await split_audio_async(audio_bytes, segment_duration)
        analyses = await analyzer.analyze_segments(segments, on_progress=report)
    except PIPELINE_ERRORS as exc:
        raise to_http_exception(exc) from exc

    logger.info("Segment analysis finished file=%s segments=%s", audio_file.filename, len(analyses))
    return SegmentAnalysisResponse(
        segment_duration=segment_duration,
        segments=[SegmentAnalysisView.from_domain(item) for item in analyses],
    )
