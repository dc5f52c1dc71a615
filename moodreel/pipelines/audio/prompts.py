"""Prompt templates for the mood analysis stage.

Two prompts per subject: a descriptive analysis returning ``story``,
``visual`` and ``emotion``, then a prompt-synthesis request that turns that
analysis into one English ``imagePrompt`` sentence.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Mapping

ANALYSIS_SYSTEM_PROMPT = (
    "You are a music critic with a strong visual imagination. "
    "You always answer with a single JSON object and nothing else."
)

PROMPT_SYSTEM_PROMPT = (
    "You write prompts for text-to-image models. "
    "You always answer with a single JSON object and nothing else."
)


@dataclass(frozen=True)
class PromptBundle:
    system_prompt: str
    user_prompt: str


def format_time(seconds: float) -> str:
    """Render seconds as ``m:ss``."""
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"


def describe_window(start_time: float, end_time: float) -> str:
    return f"{format_time(start_time)}-{format_time(end_time)}"


def build_analysis_prompt(
    *,
    language: str,
    window: str | None = None,
    file_name: str | None = None,
) -> PromptBundle:
    """Ask for the story/visual/emotion reading of a segment or a whole file."""

    if window:
        subject = f"this music segment ({window})"
    elif file_name:
        subject = f'the music file "{file_name}"'
    else:
        subject = "this piece of music"

    user_prompt = f"""Analyse the world evoked by {subject}.

Describe it from three angles, each in about 200 characters of {language}:

1. Story / scene: the narrative or scenery the music expresses
2. Visual imagery: colour, light, space and texture
3. Emotion: the feelings and state of mind the music evokes

Reply strictly in this JSON format:

{{
  "story": "story description",
  "visual": "visual description",
  "emotion": "emotion description"
}}

Rules:
- Return JSON only
- Keep each description to about 200 characters
- Do not include line breaks inside the values"""
    return PromptBundle(system_prompt=ANALYSIS_SYSTEM_PROMPT, user_prompt=user_prompt)


def build_image_prompt_request(
    analysis: Mapping[str, str],
    *,
    window: str | None = None,
) -> PromptBundle:
    """Turn an analysis into a request for one English image-generation sentence."""

    window_line = f"\nThis music segment covers {window}.\n" if window else ""
    user_prompt = f"""From the analysis below, write a prompt for an image-generation model.
{window_line}
Analysis:
{json.dumps(dict(analysis), ensure_ascii=False, indent=2)}

Write one natural English sentence that covers:
- colour palette
- scenery / scene
- emotion
- light intensity and shadow

Reply strictly in this JSON format:

{{
  "imagePrompt": "the generated English prompt"
}}"""
    return PromptBundle(system_prompt=PROMPT_SYSTEM_PROMPT, user_prompt=user_prompt)


__all__ = [
    "PromptBundle",
    "build_analysis_prompt",
    "build_image_prompt_request",
    "describe_window",
    "format_time",
]
