"""Tests for batched image generation and video assembly."""

from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakeGenerationClient
from moodreel.domain.models import GeneratedMedia, GenerationJob, JobState, SegmentAnalysis
from moodreel.pipelines.audio.generation import (
    DEFAULT_VIDEO_PROMPT,
    NoUsableImagesError,
    create_video_from_images,
    generate_images_in_batches,
    image_prompt_for,
)


def _analyses(count: int) -> list[SegmentAnalysis]:
    return [
        SegmentAnalysis(
            start_time=i * 30.0,
            end_time=(i + 1) * 30.0,
            story="s",
            visual="v",
            emotion="e",
            image_prompt=f"p{i}",
        )
        for i in range(count)
    ]


def _media(index: int, ok: bool) -> GeneratedMedia:
    job = (
        GenerationJob(id=f"img-{index}", state=JobState.COMPLETED, image_url=f"https://cdn.test/{index}.jpg")
        if ok
        else GenerationJob.failed(f"img-{index}", "Generation failed")
    )
    return GeneratedMedia(segment_index=index, start_time=index * 10.0, end_time=(index + 1) * 10.0, image_job=job)


class TracingClient:
    """Records start/end events so batch boundaries can be asserted."""

    def __init__(self, raise_for: str | None = None):
        self.events: list[tuple[str, str]] = []
        self.raise_for = raise_for

    async def generate_image(self, prompt: str, **_: object) -> GenerationJob:
        self.events.append(("start", prompt))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.events.append(("end", prompt))
        if prompt == self.raise_for:
            raise RuntimeError("unexpected upstream payload")
        if prompt == "p5":
            return GenerationJob.failed("img-5", "Generation failed")
        return GenerationJob(id=f"img-{prompt}", state=JobState.COMPLETED, image_url=f"https://cdn.test/{prompt}.jpg")


def test_seven_prompts_run_in_batches_of_three():
    client = TracingClient()
    progress: list[tuple[int, int]] = []

    asyncio.run(
        generate_images_in_batches(client, _analyses(7), on_progress=lambda done, total: progress.append((done, total)))
    )

    assert progress == [(3, 7), (6, 7), (7, 7)]
    batches = [["p0", "p1", "p2"], ["p3", "p4", "p5"], ["p6"]]
    position = 0
    for batch in batches:
        window = client.events[position : position + 2 * len(batch)]
        starts = [prompt for kind, prompt in window[: len(batch)] if kind == "start"]
        ends = {prompt for kind, prompt in window[len(batch) :] if kind == "end"}
        assert starts == batch
        assert ends == set(batch)
        position += 2 * len(batch)


def test_failures_do_not_abort_the_batch_and_results_stay_sorted(caplog):
    caplog.set_level(logging.WARNING, logger="moodreel.pipeline")
    client = TracingClient(raise_for="p4")

    results = asyncio.run(generate_images_in_batches(client, _analyses(7)))

    assert [item.segment_index for item in results] == list(range(7))
    assert results[4].image_job.id == "error-4"
    assert results[4].image_job.state is JobState.FAILED
    assert "unexpected upstream payload" in results[4].image_job.failure_reason
    assert results[5].image_job.state is JobState.FAILED
    assert sum(1 for item in results if item.usable) == 5
    assert "2/7 failures" in caplog.text


def test_results_carry_segment_timing():
    results = asyncio.run(generate_images_in_batches(FakeGenerationClient(), _analyses(2)))

    assert [(r.start_time, r.end_time) for r in results] == [(0.0, 30.0), (30.0, 60.0)]


def test_video_is_still_requested_when_most_images_failed(caplog):
    caplog.set_level(logging.WARNING, logger="moodreel.pipeline")
    client = FakeGenerationClient()
    images = [_media(i, ok=i < 4) for i in range(10)]

    assembly = asyncio.run(create_video_from_images(client, images))

    assert assembly.degraded
    assert "60%" in assembly.warning
    assert assembly.used_images == 4
    assert assembly.failed_images == 6
    assert "60%" in caplog.text
    assert len(client.video_calls) == 1
    call = client.video_calls[0]
    assert call["prompt"] == DEFAULT_VIDEO_PROMPT
    assert [frame.timing for frame in call["keyframes"]] == [0.0, 10.0, 20.0, 30.0]
    assert [frame.url for frame in call["keyframes"]][0] == "https://cdn.test/0.jpg"


def test_half_success_is_not_degraded():
    images = [_media(i, ok=i % 2 == 0) for i in range(10)]

    assembly = asyncio.run(create_video_from_images(FakeGenerationClient(), images, prompt="custom"))

    assert not assembly.degraded
    assert assembly.warning is None


def test_audio_url_is_passed_through():
    client = FakeGenerationClient()

    asyncio.run(create_video_from_images(client, [_media(0, ok=True)], audio_url="https://cdn.test/song.mp3"))

    assert client.video_calls[0]["audio_url"] == "https://cdn.test/song.mp3"


def test_no_usable_images_raises():
    client = FakeGenerationClient()

    with pytest.raises(NoUsableImagesError):
        asyncio.run(create_video_from_images(client, [_media(0, ok=False), _media(1, ok=False)]))
    assert client.video_calls == []


def test_completed_job_without_url_is_not_usable():
    job = GenerationJob(id="x", state=JobState.COMPLETED, image_url=None)
    media = GeneratedMedia(segment_index=0, start_time=0.0, end_time=1.0, image_job=job)

    with pytest.raises(NoUsableImagesError):
        asyncio.run(create_video_from_images(FakeGenerationClient(), [media]))


def test_empty_prompt_falls_back_to_visual_and_emotion():
    analyses = [
        SegmentAnalysis(
            start_time=0.0,
            end_time=30.0,
            story="s",
            visual="Fog over a pier",
            emotion="Lonely",
            image_prompt="",
        ),
        *_analyses(1),
    ]
    client = FakeGenerationClient()

    asyncio.run(generate_images_in_batches(client, analyses))

    assert client.image_prompts == ["Fog over a pier. Mood: Lonely", "p0"]
    assert image_prompt_for(analyses[1]) == "p0"
