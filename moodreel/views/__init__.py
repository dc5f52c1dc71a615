"""Pydantic schemas used as views in the MVC architecture."""

from .analysis import (
    FileAnalysisRequest,
    FileAnalysisResponse,
    SegmentAnalysisResponse,
    SegmentAnalysisView,
)
from .common import ErrorResponse, RelayErrorResponse
from .generation import (
    FlowResponse,
    GeneratedImageView,
    ImageRequest,
    JobView,
    SingleImageVideoRequest,
    VideoView,
)

__all__ = [
    "ErrorResponse",
    "FileAnalysisRequest",
    "FileAnalysisResponse",
    "FlowResponse",
    "GeneratedImageView",
    "ImageRequest",
    "JobView",
    "RelayErrorResponse",
    "SegmentAnalysisResponse",
    "SegmentAnalysisView",
    "SingleImageVideoRequest",
    "VideoView",
]
