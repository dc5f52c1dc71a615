"""Request ingestion helpers for audio uploads."""

from __future__ import annotations

import mimetypes
from typing import Final

from fastapi import HTTPException, UploadFile, status

_ALLOWED_CONTENT_TYPES: Final[set[str]] = {
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/vnd.wave",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/x-m4a",
    "audio/m4a",
    "audio/ogg",
    "audio/flac",
    "audio/x-flac",
    "audio/webm",
    "application/octet-stream",
}


def resolve_content_type(audio_file: UploadFile) -> str:
    """Accept common audio containers, guessing from the file name when the client sent none."""

    content_type = audio_file.content_type
    if (not content_type or content_type == "application/octet-stream") and audio_file.filename:
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or content_type

    content_type = content_type or "application/octet-stream"

    if content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported audio content type: {content_type}",
        )
    return content_type


async def read_audio_bytes(audio_file: UploadFile, *, max_bytes: int | None = None) -> bytes:
    """Load the upload fully into memory, rejecting empty or oversized payloads."""

    audio_bytes = await audio_file.read()
    await audio_file.close()

    if not audio_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded audio file is empty",
        )
    if max_bytes is not None and len(audio_bytes) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Uploaded audio file exceeds {max_bytes} bytes",
        )
    return audio_bytes


def validate_segment_duration(value: float, *, minimum: float, maximum: float) -> float:
    """Keep user-chosen segment lengths inside the supported window."""

    if not minimum <= value <= maximum:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"segment_duration must be between {minimum:g} and {maximum:g} seconds",
        )
    return value


__all__ = ["read_audio_bytes", "resolve_content_type", "validate_segment_duration"]
