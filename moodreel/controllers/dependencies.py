"""Common FastAPI dependencies reused across controllers.

Clients are built per request from ``settings`` and share one
``httpx.AsyncClient`` that is closed when the request finishes. Tests swap
any of them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Annotated, AsyncIterator

import httpx
from fastapi import Depends

from moodreel.config.settings import settings
from moodreel.pipelines.audio import MoodReelFlow, SegmentAnalyzer
from moodreel.services.generation_client import GenerationClient
from moodreel.services.llm_client import TextGenerationClient, create_llm_client
from moodreel.services.relay import LumaRelay


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]


def get_generation_client(http_client: HttpClientDep) -> GenerationClient:
    return GenerationClient.from_config(settings.luma, http_client)


def get_llm_client(http_client: HttpClientDep) -> TextGenerationClient:
    return create_llm_client(settings, http_client=http_client)


def get_analyzer(
    llm_client: Annotated[TextGenerationClient, Depends(get_llm_client)],
) -> SegmentAnalyzer:
    return SegmentAnalyzer(llm_client, language=settings.pipeline.analysis_language)


def get_relay(http_client: HttpClientDep) -> LumaRelay:
    return LumaRelay.from_config(settings.luma, http_client)


GenerationClientDep = Annotated[GenerationClient, Depends(get_generation_client)]
AnalyzerDep = Annotated[SegmentAnalyzer, Depends(get_analyzer)]
RelayDep = Annotated[LumaRelay, Depends(get_relay)]


def build_flow(
    analyzer: SegmentAnalyzer,
    client: GenerationClient,
    segment_duration: float,
) -> MoodReelFlow:
    return MoodReelFlow(analyzer, client, segment_duration=segment_duration)


__all__ = [
    "AnalyzerDep",
    "GenerationClientDep",
    "HttpClientDep",
    "RelayDep",
    "build_flow",
    "get_analyzer",
    "get_generation_client",
    "get_http_client",
    "get_llm_client",
    "get_relay",
]
