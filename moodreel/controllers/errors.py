"""Translate pipeline exceptions into HTTP errors."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from moodreel.pipelines.audio import AudioDecodeError, NoUsableImagesError, VideoGenerationError
from moodreel.services.generation_client import GenerationTimeoutError
from moodreel.services.llm_client import LlmInvocationError
from moodreel.services.response_contract import ResponseContractError

logger = logging.getLogger(__name__)

PIPELINE_ERRORS = (
    AudioDecodeError,
    ResponseContractError,
    LlmInvocationError,
    NoUsableImagesError,
    VideoGenerationError,
    GenerationTimeoutError,
)

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (AudioDecodeError, status.HTTP_400_BAD_REQUEST),
    (ResponseContractError, status.HTTP_502_BAD_GATEWAY),
    (LlmInvocationError, status.HTTP_502_BAD_GATEWAY),
    (NoUsableImagesError, status.HTTP_502_BAD_GATEWAY),
    (VideoGenerationError, status.HTTP_502_BAD_GATEWAY),
    (GenerationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
)


def to_http_exception(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            logger.warning("%s -> %s: %s", exc.__class__.__name__, status_code, exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.error("Unmapped pipeline error: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


__all__ = ["PIPELINE_ERRORS", "to_http_exception"]
