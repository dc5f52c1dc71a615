"""Tests for the submit-and-poll generation client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from moodreel.domain.models import JobState, Keyframe
from moodreel.services.generation_client import (
    INSUFFICIENT_CREDITS_MESSAGE,
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    GenerationClient,
    GenerationTimeoutError,
    extract_failure_reason,
    job_from_payload,
)

BASE_URL = "https://luma.test/dream-machine/v1"


def _run(handler, sleep, action):
    """Build a client on a mock transport and run ``action(client)`` to completion."""

    async def _main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = GenerationClient(http_client, base_url=BASE_URL, api_key="secret-key", sleep=sleep)
            return await action(client)

    return asyncio.run(_main())


def test_image_job_polls_until_completed(fake_sleep):
    seen: list[httpx.Request] = []
    states = iter(["pending", "dreaming", "completed"])

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(201, json={"id": "gen-1", "state": "queued"})
        state = next(states)
        body = {"id": "gen-1", "state": state}
        if state == "completed":
            body["assets"] = {"video_0_thumb": "https://cdn.test/thumb.jpg", "image": "https://cdn.test/img.jpg"}
        return httpx.Response(200, json=body)

    job = _run(handler, fake_sleep, lambda client: client.generate_image("a quiet lake"))

    assert job.state is JobState.COMPLETED
    assert job.image_url == "https://cdn.test/thumb.jpg"
    assert fake_sleep.calls == [POLL_INTERVAL_SECONDS, POLL_INTERVAL_SECONDS]
    assert seen[0].url == httpx.URL(f"{BASE_URL}/generations")
    assert seen[0].headers["Authorization"] == "Bearer secret-key"
    assert json.loads(seen[0].content) == {"prompt": "a quiet lake", "aspect_ratio": "16:9", "model": "ray-2"}
    assert seen[1].url == httpx.URL(f"{BASE_URL}/generations/gen-1")


def test_image_url_falls_back_to_image_asset():
    job = job_from_payload({"id": "g", "state": "completed", "assets": {"image": "https://cdn.test/img.jpg"}})

    assert job.image_url == "https://cdn.test/img.jpg"
    assert job.video_url is None


def test_insufficient_credits_maps_to_friendly_message(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": "Insufficient credits"})

    job = _run(handler, fake_sleep, lambda client: client.generate_image("x"))

    assert job.id == "error"
    assert job.state is JobState.FAILED
    assert job.failure_reason == INSUFFICIENT_CREDITS_MESSAGE
    assert fake_sleep.calls == []


def test_detail_then_message_then_generic():
    assert extract_failure_reason(httpx.Response(422, json={"detail": "Prompt too long"}), "generic") == "Prompt too long"
    assert extract_failure_reason(httpx.Response(500, json={"message": "Internal"}), "generic") == "Internal"
    assert extract_failure_reason(httpx.Response(500, json={"other": 1}), "generic") == "generic"
    assert (
        extract_failure_reason(httpx.Response(422, json={"detail": [{"msg": "field required"}]}), "generic")
        == "field required"
    )


def test_non_json_rejection_uses_status_line(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    job = _run(handler, fake_sleep, lambda client: client.generate_image("x"))

    assert job.id == "error"
    assert job.failure_reason == "Image generation request failed (502: Bad Gateway)"


def test_poll_gives_up_after_thirty_attempts(fake_sleep):
    calls = {"get": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["get"] += 1
        return httpx.Response(200, json={"id": "slow", "state": "processing"})

    with pytest.raises(GenerationTimeoutError):
        _run(handler, fake_sleep, lambda client: client.poll("slow"))

    assert calls["get"] == MAX_POLL_ATTEMPTS == 30
    assert len(fake_sleep.calls) == 30
    assert fake_sleep.total == pytest.approx(60.0)


def test_timeout_becomes_failed_job_with_unknown_id(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "slow", "state": "queued"})
        return httpx.Response(200, json={"id": "slow", "state": "dreaming"})

    job = _run(handler, fake_sleep, lambda client: client.generate_image("x"))

    assert job.id == "unknown"
    assert job.state is JobState.FAILED
    assert "timed out" in job.failure_reason


def test_upstream_failed_state_carries_reason(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "g", "state": "queued"})
        return httpx.Response(200, json={"id": "g", "state": "failed", "failure_reason": "Prompt blocked"})

    job = _run(handler, fake_sleep, lambda client: client.generate_image("x"))

    assert job.id == "g"
    assert job.failure_reason == "Prompt blocked"


def test_status_query_rejection_is_a_failed_job(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "Generation not found"})

    job = _run(handler, fake_sleep, lambda client: client.poll("missing"))

    assert job.state is JobState.FAILED
    assert job.failure_reason == "Generation not found"


def test_transport_error_propagates_from_submit(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(httpx.ConnectError):
        _run(handler, fake_sleep, lambda client: client.submit({"prompt": "x"}))


def test_transport_error_becomes_failed_job_in_generate(fake_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    job = _run(handler, fake_sleep, lambda client: client.generate_image("x"))

    assert job.id == "unknown"
    assert job.failure_reason == "connection refused"


def test_video_request_carries_keyframes_and_audio(fake_sleep):
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "v", "state": "queued"})
        return httpx.Response(
            200,
            json={"id": "v", "state": "completed", "assets": {"video": "https://cdn.test/v.mp4"}},
        )

    keyframes = [Keyframe(url="https://cdn.test/0.jpg", timing=0.0), Keyframe(url="https://cdn.test/1.jpg", timing=30.0)]

    job = _run(
        handler,
        fake_sleep,
        lambda client: client.generate_video("cinematic", keyframes, audio_url="https://cdn.test/song.mp3"),
    )

    assert job.video_url == "https://cdn.test/v.mp4"
    assert bodies[0]["keyframes"] == {
        "frame0": {"type": "image", "url": "https://cdn.test/0.jpg", "timing": 0.0},
        "frame1": {"type": "image", "url": "https://cdn.test/1.jpg", "timing": 30.0},
    }
    assert bodies[0]["audio"] == {"url": "https://cdn.test/song.mp3"}
    assert bodies[0]["model"] == "ray-2"


def test_video_request_omits_audio_when_absent(fake_sleep):
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(400, json={"message": "Invalid keyframes"})

    job = _run(
        handler,
        fake_sleep,
        lambda client: client.generate_video("p", [Keyframe(url="https://cdn.test/0.jpg", timing=0.0)]),
    )

    assert "audio" not in bodies[0]
    assert job.failure_reason == "Invalid keyframes"
