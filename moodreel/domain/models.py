"""Domain records for one audio-to-video run.

Nothing here is persisted: every record is created per run and dropped when
the run ends. The pipeline stages and the generation client both import from
this module, so it must not import either of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class AudioSegment:
    """One fixed-duration window of the source audio, re-encoded as WAV."""

    index: int
    start_time: float
    end_time: float
    encoded_audio: bytes

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class FileAnalysis:
    """Mood analysis of a whole file, keyed only by its name."""

    story: str
    visual: str
    emotion: str
    image_prompt: str


@dataclass(frozen=True)
class SegmentAnalysis:
    """Mood analysis of one segment plus the derived image prompt."""

    start_time: float
    end_time: float
    story: str
    visual: str
    emotion: str
    image_prompt: str


class JobState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class GenerationJob:
    """Local view of an upstream generation; the upstream owns its state."""

    id: str
    state: JobState
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def failed(cls, job_id: str, reason: str) -> "GenerationJob":
        return cls(id=job_id, state=JobState.FAILED, failure_reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.COMPLETED


@dataclass(frozen=True)
class GeneratedMedia:
    segment_index: int
    start_time: float
    end_time: float
    image_job: GenerationJob

    @property
    def usable(self) -> bool:
        return self.image_job.succeeded and bool(self.image_job.image_url)


@dataclass(frozen=True)
class Keyframe:
    """Image reference plus the timing hint anchoring it in the video."""

    url: str
    timing: float
    type: str = "image"

    def as_payload(self) -> dict[str, Any]:
        return {"type": self.type, "url": self.url, "timing": self.timing}


@dataclass(frozen=True)
class VideoAssembly:
    """Outcome of the video stage, including the degraded-quality signal."""

    job: GenerationJob
    used_images: int
    failed_images: int
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None


@dataclass(frozen=True)
class FlowResult:
    analyses: list[SegmentAnalysis]
    images: list[GeneratedMedia]
    video: VideoAssembly


__all__ = [
    "AudioSegment",
    "FileAnalysis",
    "FlowResult",
    "GeneratedMedia",
    "GenerationJob",
    "JobState",
    "Keyframe",
    "SegmentAnalysis",
    "VideoAssembly",
]
