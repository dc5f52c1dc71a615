"""Luma Dream Machine client implementing the submit-and-poll job contract.

Expected upstream rejections (non-2xx) never raise: they become a failed
``GenerationJob`` carrying the most specific reason we can extract. Only
transport errors (``httpx.TransportError``) escape ``submit``/``poll``; the
``generate_*`` helpers fold those, and the poll timeout, into the same failed
shape for their callers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

import httpx
from pydantic import BaseModel

from moodreel.config.settings import LumaConfig
from moodreel.domain.models import GenerationJob, JobState, Keyframe
from moodreel.telemetry import record_generation

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_ATTEMPTS = 30

INSUFFICIENT_CREDITS_MESSAGE = (
    "Luma API credits are exhausted. Check the usage quota of the API key."
)

# Upstream `detail` codes that deserve a friendlier message.
KNOWN_DETAIL_MESSAGES: dict[str, str] = {
    "Insufficient credits": INSUFFICIENT_CREDITS_MESSAGE,
}

_UPSTREAM_STATES: dict[str, JobState] = {
    "pending": JobState.PENDING,
    "queued": JobState.PENDING,
    "processing": JobState.PROCESSING,
    "dreaming": JobState.PROCESSING,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
}

Sleep = Callable[[float], Awaitable[None]]
ReasonExtractor = Callable[[Mapping[str, Any]], Optional[str]]


class GenerationTimeoutError(TimeoutError):
    """A job was still pending/processing after the last poll attempt."""


class ImageGenerationRequest(BaseModel):
    prompt: str
    aspect_ratio: str = "16:9"
    model: str = "ray-2"


class VideoGenerationRequest(BaseModel):
    prompt: str
    model: str = "ray-2"
    keyframes: dict[str, dict[str, Any]]
    audio: Optional[dict[str, str]] = None


def _known_detail(body: Mapping[str, Any]) -> Optional[str]:
    detail = body.get("detail")
    if isinstance(detail, str):
        return KNOWN_DETAIL_MESSAGES.get(detail)
    return None


def _detail_field(body: Mapping[str, Any]) -> Optional[str]:
    detail = body.get("detail")
    if isinstance(detail, str) and detail.strip():
        return detail.strip()
    if isinstance(detail, list):
        # Validation errors arrive as a list of {"msg": ...} objects.
        messages = [str(item.get("msg")) for item in detail if isinstance(item, Mapping) and item.get("msg")]
        if messages:
            return "; ".join(messages)
    return None


def _message_field(body: Mapping[str, Any]) -> Optional[str]:
    message = body.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


REASON_EXTRACTORS: tuple[ReasonExtractor, ...] = (
    _known_detail,
    _detail_field,
    _message_field,
)


def extract_failure_reason(
    response: httpx.Response,
    fallback: str,
    extractors: Sequence[ReasonExtractor] = REASON_EXTRACTORS,
) -> str:
    """Return the most specific human-readable reason for a rejected request."""

    try:
        body = response.json()
    except ValueError:
        return f"{fallback} ({response.status_code}: {response.reason_phrase})"

    if isinstance(body, Mapping):
        for extractor in extractors:
            reason = extractor(body)
            if reason:
                return reason
    return fallback


def job_from_payload(payload: Mapping[str, Any], *, default_id: str = "unknown") -> GenerationJob:
    """Map an upstream generation object onto ``GenerationJob``."""

    raw_state = str(payload.get("state") or "").lower()
    state = _UPSTREAM_STATES.get(raw_state, JobState.PROCESSING)
    job_id = str(payload.get("id") or default_id)

    if state is JobState.COMPLETED:
        assets = payload.get("assets") or {}
        return GenerationJob(
            id=job_id,
            state=state,
            image_url=assets.get("video_0_thumb") or assets.get("image"),
            video_url=assets.get("video"),
        )
    if state is JobState.FAILED:
        return GenerationJob.failed(job_id, payload.get("failure_reason") or "Generation failed")
    return GenerationJob(id=job_id, state=state)


class GenerationClient:
    """Create generations and observe them until they reach a terminal state."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        image_model: str = "ray-2",
        video_model: str = "ray-2",
        aspect_ratio: str = "16:9",
        timeout: float = 300.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._image_model = image_model
        self._video_model = video_model
        self._aspect_ratio = aspect_ratio
        self._timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: LumaConfig,
        http_client: httpx.AsyncClient,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> "GenerationClient":
        return cls(
            http_client,
            base_url=config.base_url,
            api_key=config.api_key.get_secret_value() if config.api_key else None,
            image_model=config.image_model,
            video_model=config.video_model,
            aspect_ratio=config.aspect_ratio,
            timeout=config.request_timeout,
            sleep=sleep,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def submit(
        self,
        payload: Mapping[str, Any],
        *,
        fallback_reason: str = "Generation request failed",
    ) -> GenerationJob:
        """Issue one creation request; non-2xx maps to a failed job with id ``error``."""

        response = await self._http.post(
            f"{self._base_url}/generations",
            json=dict(payload),
            headers=self._headers(),
            timeout=self._timeout,
        )
        if not response.is_success:
            reason = extract_failure_reason(response, fallback_reason)
            logger.error(
                "Generation request rejected status=%s reason=%s",
                response.status_code,
                reason,
            )
            return GenerationJob.failed("error", reason)

        try:
            data = response.json()
        except ValueError:
            return GenerationJob.failed("error", f"{fallback_reason} (invalid JSON response)")
        if not isinstance(data, Mapping) or not data.get("id"):
            return GenerationJob.failed("error", f"{fallback_reason} (no generation id returned)")

        logger.info("Generation created id=%s state=%s", data.get("id"), data.get("state"))
        return job_from_payload(data)

    async def fetch(self, job_id: str) -> GenerationJob:
        """Query the job status once."""

        response = await self._http.get(
            f"{self._base_url}/generations/{job_id}",
            headers=self._headers(),
            timeout=self._timeout,
        )
        if not response.is_success:
            reason = extract_failure_reason(response, "Failed to fetch generation status")
            logger.error("Status query failed id=%s status=%s reason=%s", job_id, response.status_code, reason)
            return GenerationJob.failed(job_id, reason)
        try:
            data = response.json()
        except ValueError:
            return GenerationJob.failed(job_id, "Failed to fetch generation status (invalid JSON response)")
        if not isinstance(data, Mapping):
            return GenerationJob.failed(job_id, "Failed to fetch generation status (unexpected payload)")
        return job_from_payload(data, default_id=job_id)

    async def poll(self, job_id: str) -> GenerationJob:
        """Poll every two seconds, at most thirty times, until the job is terminal."""

        for attempt in range(1, MAX_POLL_ATTEMPTS + 1):
            job = await self.fetch(job_id)
            if job.state.is_terminal:
                logger.info("Generation %s finished state=%s attempts=%s", job_id, job.state.value, attempt)
                return job
            logger.debug("Generation %s still %s (attempt %s/%s)", job_id, job.state.value, attempt, MAX_POLL_ATTEMPTS)
            await self._sleep(POLL_INTERVAL_SECONDS)

        raise GenerationTimeoutError(
            f"Generation {job_id} timed out after {MAX_POLL_ATTEMPTS} status checks"
        )

    async def _submit_and_poll(
        self,
        kind: str,
        payload: Mapping[str, Any],
        fallback_reason: str,
    ) -> GenerationJob:
        try:
            job = await self.submit(payload, fallback_reason=fallback_reason)
            if not job.state.is_terminal:
                job = await self.poll(job.id)
        except GenerationTimeoutError as exc:
            logger.warning("%s generation timed out: %s", kind, exc)
            record_generation(kind, "timeout")
            return GenerationJob.failed("unknown", str(exc))
        except httpx.HTTPError as exc:
            logger.exception("%s generation transport error", kind)
            record_generation(kind, "error")
            return GenerationJob.failed("unknown", str(exc) or exc.__class__.__name__)

        record_generation(kind, job.state.value)
        return job

    async def generate_image(
        self,
        prompt: str,
        *,
        aspect_ratio: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GenerationJob:
        request = ImageGenerationRequest(
            prompt=prompt,
            aspect_ratio=aspect_ratio or self._aspect_ratio,
            model=model or self._image_model,
        )
        return await self._submit_and_poll(
            "image",
            request.model_dump(),
            "Image generation request failed",
        )

    async def generate_video(
        self,
        prompt: str,
        keyframes: Sequence[Keyframe],
        *,
        model: Optional[str] = None,
        audio_url: Optional[str] = None,
    ) -> GenerationJob:
        request = VideoGenerationRequest(
            prompt=prompt,
            model=model or self._video_model,
            keyframes={f"frame{index}": frame.as_payload() for index, frame in enumerate(keyframes)},
            audio={"url": audio_url} if audio_url else None,
        )
        logger.info(
            "Video generation request keyframes=%s audio=%s",
            len(request.keyframes),
            bool(audio_url),
        )
        return await self._submit_and_poll(
            "video",
            request.model_dump(exclude_none=True),
            "Video generation request failed",
        )


__all__ = [
    "GenerationClient",
    "GenerationTimeoutError",
    "INSUFFICIENT_CREDITS_MESSAGE",
    "KNOWN_DETAIL_MESSAGES",
    "MAX_POLL_ATTEMPTS",
    "POLL_INTERVAL_SECONDS",
    "REASON_EXTRACTORS",
    "extract_failure_reason",
    "job_from_payload",
]
