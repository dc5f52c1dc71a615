"""Mood analysis stage (Stage 02): one descriptive call, one prompt-synthesis call.

The first call is mandatory; a reply without ``story``, ``visual`` and
``emotion`` aborts the subject with ``MalformedResponseError``. The second
call only refines the result, so any failure there leaves ``image_prompt``
empty and the run continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from moodreel.domain.models import AudioSegment, FileAnalysis, SegmentAnalysis
from moodreel.services.llm_client import LlmInvocationError, TextGenerationClient
from moodreel.services.response_contract import (
    ImagePromptResponse,
    MalformedResponseError,
    MoodAnalysisResponse,
)

from .prompts import build_analysis_prompt, build_image_prompt_request, describe_window

logger = logging.getLogger("moodreel.pipeline")

ProgressCallback = Callable[[int, int], None]


def _truncate(value: str, max_length: int = 300) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


def parse_mood_analysis(raw_response: str | None) -> MoodAnalysisResponse:
    """Extract and validate the step-1 JSON object."""

    if not raw_response:
        raise MalformedResponseError("Mood analysis returned an empty response")
    return MoodAnalysisResponse.from_json(raw_response)


def parse_image_prompt(raw_response: str | None) -> str:
    """Extract the ``imagePrompt`` sentence from the step-2 reply."""

    if not raw_response:
        raise MalformedResponseError("Prompt synthesis returned an empty response")
    return ImagePromptResponse.from_json(raw_response).image_prompt


@dataclass(frozen=True)
class _Subject:
    window: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.window or self.file_name or "audio"


class SegmentAnalyzer:
    """Turn a segment (or a bare file name) into a mood description and image prompt."""

    def __init__(self, llm_client: TextGenerationClient, *, language: str = "English") -> None:
        self._llm = llm_client
        self._language = language

    async def _describe(self, subject: _Subject) -> MoodAnalysisResponse:
        request = build_analysis_prompt(
            language=self._language,
            window=subject.window,
            file_name=subject.file_name,
        )
        raw_response = await self._llm.invoke(
            system_prompt=request.system_prompt,
            user_prompt=request.user_prompt,
        )
        logger.info("Mood analysis raw response subject=%s: %s", subject.label, _truncate(raw_response or ""))
        return parse_mood_analysis(raw_response)

    async def _synthesize_prompt(self, subject: _Subject, analysis: MoodAnalysisResponse) -> str:
        request = build_image_prompt_request(analysis.model_dump(), window=subject.window)
        try:
            raw_response = await self._llm.invoke(
                system_prompt=request.system_prompt,
                user_prompt=request.user_prompt,
            )
            return parse_image_prompt(raw_response)
        except (LlmInvocationError, MalformedResponseError) as exc:
            logger.warning("Image prompt synthesis failed subject=%s: %s", subject.label, exc)
            return ""
        except Exception:
            logger.exception("Image prompt synthesis raised unexpectedly subject=%s", subject.label)
            return ""

    async def _analyze(self, subject: _Subject) -> tuple[MoodAnalysisResponse, str]:
        analysis = await self._describe(subject)
        image_prompt = await self._synthesize_prompt(subject, analysis)
        return analysis, image_prompt

    async def analyze_segment(self, segment: AudioSegment) -> SegmentAnalysis:
        subject = _Subject(window=describe_window(segment.start_time, segment.end_time))
        analysis, image_prompt = await self._analyze(subject)
        return SegmentAnalysis(
            start_time=segment.start_time,
            end_time=segment.end_time,
            story=analysis.story,
            visual=analysis.visual,
            emotion=analysis.emotion,
            image_prompt=image_prompt,
        )

    async def analyze_file(self, file_name: str) -> FileAnalysis:
        """Single-request variant that only knows the file name."""

        analysis, image_prompt = await self._analyze(_Subject(file_name=file_name))
        return FileAnalysis(
            story=analysis.story,
            visual=analysis.visual,
            emotion=analysis.emotion,
            image_prompt=image_prompt,
        )

    async def analyze_segments(
        self,
        segments: Sequence[AudioSegment],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[SegmentAnalysis]:
        """Analyze segments one at a time, in order, reporting ``(done, total)``."""

        total = len(segments)
        results: list[SegmentAnalysis] = []
        for done, segment in enumerate(segments, start=1):
            results.append(await self.analyze_segment(segment))
            if on_progress is not None:
                on_progress(done, total)
        logger.info("Analyzed %s segments", total)
        return results


__all__ = [
    "ProgressCallback",
    "SegmentAnalyzer",
    "parse_image_prompt",
    "parse_mood_analysis",
]
