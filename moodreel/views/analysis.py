"""Pydantic schemas for mood analysis endpoints."""

from typing import List

from pydantic import BaseModel, Field

from moodreel.domain.models import FileAnalysis, SegmentAnalysis


class FileAnalysisRequest(BaseModel):
    file_name: str = Field(..., min_length=1, description="Name of the audio file used as context")


class FileAnalysisResponse(BaseModel):
    story: str
    visual: str
    emotion: str
    image_prompt: str

    @classmethod
    def from_domain(cls, analysis: FileAnalysis) -> "FileAnalysisResponse":
        return cls(
            story=analysis.story,
            visual=analysis.visual,
            emotion=analysis.emotion,
            image_prompt=analysis.image_prompt,
        )


class SegmentAnalysisView(BaseModel):
    start_time: float = Field(..., description="Segment start in seconds")
    end_time: float = Field(..., description="Segment end in seconds")
    story: str
    visual: str
    emotion: str
    image_prompt: str = Field(..., description="Empty when prompt synthesis failed")

    @classmethod
    def from_domain(cls, analysis: SegmentAnalysis) -> "SegmentAnalysisView":
        return cls(
            start_time=analysis.start_time,
            end_time=analysis.end_time,
            story=analysis.story,
            visual=analysis.visual,
            emotion=analysis.emotion,
            image_prompt=analysis.image_prompt,
        )


class SegmentAnalysisResponse(BaseModel):
    segment_duration: float
    segments: List[SegmentAnalysisView]
