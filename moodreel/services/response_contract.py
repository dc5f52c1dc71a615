"""Pydantic models for validating LLM JSON responses.

The analyzer runs every model reply through these schemas so downstream code
receives normalized objects. Extraction is best-effort: the reply is free-form
text and we take the span between the first ``{`` and the last ``}``.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


class MalformedResponseError(ResponseContractError):
    """The reply held no JSON object, or the object lacked a required field."""


class MoodAnalysisResponse(BaseModel):
    story: str
    visual: str
    emotion: str

    model_config = {"extra": "ignore"}

    @field_validator("story", "visual", "emotion", mode="before")
    @classmethod
    def require_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @classmethod
    def from_json(cls, payload: str) -> "MoodAnalysisResponse":
        return _validate(cls, payload)


class ImagePromptResponse(BaseModel):
    image_prompt: str = Field(alias="imagePrompt")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("image_prompt", mode="before")
    @classmethod
    def require_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @classmethod
    def from_json(cls, payload: str) -> "ImagePromptResponse":
        return _validate(cls, payload)


def _validate(model: type[BaseModel], payload: str):
    cleaned = _clean_json_payload(payload)
    if not cleaned.startswith("{"):
        raise MalformedResponseError(f"{model.__name__}: no JSON object found in response")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"{model.__name__}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise MalformedResponseError(f"{model.__name__}: expected a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        missing = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise MalformedResponseError(
            f"{model.__name__}: missing or empty fields ({missing})"
        ) from exc


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "ImagePromptResponse",
    "MalformedResponseError",
    "MoodAnalysisResponse",
    "ResponseContractError",
]
