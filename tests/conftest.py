"""Shared fakes for the test suite."""

from __future__ import annotations

import io
import json
from pathlib import Path
import sys
import wave

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from moodreel.domain.models import GenerationJob, JobState  # noqa: E402

SAMPLE_RATE = 8000


def make_wav(
    duration: float,
    *,
    sample_rate: int = SAMPLE_RATE,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Build a WAV holding a quiet ramp so every frame is distinguishable."""

    frames = int(round(duration * sample_rate))
    ramp = (np.arange(frames * channels, dtype=np.int64) % 2000) - 1000
    if sample_width == 1:
        data = (ramp // 8 + 128).astype(np.uint8).tobytes()
    else:
        data = ramp.astype("<i2").tobytes()

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wave_file:
        wave_file.setnchannels(channels)
        wave_file.setsampwidth(sample_width)
        wave_file.setframerate(sample_rate)
        wave_file.writeframes(data)
    return buffer.getvalue()


def analysis_json(story: str = "A night drive", visual: str = "Neon blue", emotion: str = "Wistful") -> str:
    return json.dumps({"story": story, "visual": visual, "emotion": emotion})


def prompt_json(image_prompt: str = "A neon-lit highway at night") -> str:
    return json.dumps({"imagePrompt": image_prompt})


class ScriptedLlm:
    """Replays canned replies in order; exceptions in the script are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[dict[str, str]] = []

    async def invoke(self, *, system_prompt: str, user_prompt: str):
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class MoodLlm:
    """Answers any number of analysis / prompt-synthesis calls."""

    def __init__(self):
        self.calls: list[str] = []

    async def invoke(self, *, system_prompt: str, user_prompt: str):
        self.calls.append(user_prompt)
        if '"imagePrompt"' in user_prompt:
            return prompt_json(f"prompt {len(self.calls)}")
        return analysis_json()


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


class FakeGenerationClient:
    """Stands in for ``GenerationClient`` in pipeline and flow tests."""

    def __init__(self, *, fail_images: set[int] | None = None, video_state: JobState = JobState.COMPLETED):
        self.fail_images = fail_images or set()
        self.video_state = video_state
        self.image_prompts: list[str] = []
        self.video_calls: list[dict] = []

    async def generate_image(self, prompt: str, **_: object) -> GenerationJob:
        index = len(self.image_prompts)
        self.image_prompts.append(prompt)
        if index in self.fail_images:
            return GenerationJob.failed(f"img-{index}", "Generation failed")
        return GenerationJob(
            id=f"img-{index}",
            state=JobState.COMPLETED,
            image_url=f"https://cdn.test/{index}.jpg",
        )

    async def generate_video(self, prompt, keyframes, *, model=None, audio_url=None) -> GenerationJob:
        self.video_calls.append({"prompt": prompt, "keyframes": list(keyframes), "audio_url": audio_url})
        if self.video_state is JobState.FAILED:
            return GenerationJob.failed("vid-1", "Upstream rejected keyframes")
        return GenerationJob(id="vid-1", state=JobState.COMPLETED, video_url="https://cdn.test/video.mp4")


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
