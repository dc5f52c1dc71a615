"""Pydantic schemas for image/video generation endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from moodreel.domain.models import FlowResult, GeneratedMedia, GenerationJob, VideoAssembly

from .analysis import SegmentAnalysisView


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    aspect_ratio: Optional[str] = Field(None, description="Defaults to the configured ratio")
    model: Optional[str] = None


class SingleImageVideoRequest(BaseModel):
    """Video from one still image, as produced by the single-file flow."""

    image_url: str = Field(..., min_length=1)
    prompt: Optional[str] = None
    audio_url: Optional[str] = None


class JobView(BaseModel):
    id: str
    state: str
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def from_domain(cls, job: GenerationJob) -> "JobView":
        return cls(
            id=job.id,
            state=job.state.value,
            image_url=job.image_url,
            video_url=job.video_url,
            failure_reason=job.failure_reason,
        )


class GeneratedImageView(BaseModel):
    segment_index: int
    start_time: float
    end_time: float
    job: JobView

    @classmethod
    def from_domain(cls, media: GeneratedMedia) -> "GeneratedImageView":
        return cls(
            segment_index=media.segment_index,
            start_time=media.start_time,
            end_time=media.end_time,
            job=JobView.from_domain(media.image_job),
        )


class VideoView(BaseModel):
    job: JobView
    used_images: int
    failed_images: int
    degraded: bool
    warning: Optional[str] = None

    @classmethod
    def from_domain(cls, assembly: VideoAssembly) -> "VideoView":
        return cls(
            job=JobView.from_domain(assembly.job),
            used_images=assembly.used_images,
            failed_images=assembly.failed_images,
            degraded=assembly.degraded,
            warning=assembly.warning,
        )


class FlowResponse(BaseModel):
    analyses: List[SegmentAnalysisView]
    images: List[GeneratedImageView]
    video: VideoView

    @classmethod
    def from_domain(cls, result: FlowResult) -> "FlowResponse":
        return cls(
            analyses=[SegmentAnalysisView.from_domain(item) for item in result.analyses],
            images=[GeneratedImageView.from_domain(item) for item in result.images],
            video=VideoView.from_domain(result.video),
        )
