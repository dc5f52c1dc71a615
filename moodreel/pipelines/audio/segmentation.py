"""Audio segmentation stage (Stage 01) of the audio-to-video pipeline.

Decodes an upload into float samples, slices it into fixed-duration windows
and re-encodes every window as a standalone 16-bit PCM WAV. Window boundaries
are computed in sample frames, so consecutive segments share their edge
exactly and the last one absorbs whatever is left.
"""

from __future__ import annotations

import io
import logging
import math
import os
import subprocess
import tempfile
import wave
from dataclasses import dataclass

import numpy as np
from fastapi.concurrency import run_in_threadpool

from moodreel.domain.models import AudioSegment

logger = logging.getLogger("moodreel.pipeline")

DEFAULT_SEGMENT_DURATION = 30
_OUTPUT_SAMPLE_WIDTH = 2  # bytes, 16-bit PCM


class AudioDecodeError(ValueError):
    """Raised when the upload cannot be decoded into PCM samples."""


@dataclass(frozen=True)
class DecodedAudio:
    """Float32 samples shaped ``(frames, channels)`` in the range [-1, 1]."""

    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


def _is_wav(audio_bytes: bytes) -> bool:
    return len(audio_bytes) >= 12 and audio_bytes[:4] == b"RIFF" and audio_bytes[8:12] == b"WAVE"


def _pcm_to_float(raw: bytes, sample_width: int, channels: int) -> np.ndarray:
    if sample_width == 1:
        data = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif sample_width == 2:
        data = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif sample_width == 3:
        packed = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        values = packed[:, 0] | (packed[:, 1] << 8) | (packed[:, 2] << 16)
        values = np.where(values & 0x800000, values - 0x1000000, values)
        data = values.astype(np.float32) / 8388608.0
    elif sample_width == 4:
        data = np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise AudioDecodeError(f"Unsupported WAV sample width: {sample_width * 8} bits")
    usable = (data.size // channels) * channels
    return data[:usable].reshape(-1, channels)


def _decode_wav(audio_bytes: bytes) -> DecodedAudio:
    try:
        with wave.open(io.BytesIO(audio_bytes), "rb") as wave_file:
            channels = wave_file.getnchannels()
            sample_width = wave_file.getsampwidth()
            sample_rate = wave_file.getframerate()
            raw = wave_file.readframes(wave_file.getnframes())
    except (wave.Error, EOFError) as exc:
        raise AudioDecodeError(f"Corrupt WAV data: {exc}") from exc

    if channels < 1 or sample_rate < 1:
        raise AudioDecodeError("WAV header declares no channels or no sample rate")
    return DecodedAudio(samples=_pcm_to_float(raw, sample_width, channels), sample_rate=sample_rate)


def _convert_to_wav_sync(audio_bytes: bytes) -> bytes:
    """Transcode any container ffmpeg understands into 16-bit WAV.

    Temporary files are used on both ends: the input so ffmpeg can seek, the
    output so the RIFF header carries the final data size.
    """

    with tempfile.NamedTemporaryFile(delete=False, suffix=".tmp") as tmp_in:
        tmp_in.write(audio_bytes)
        in_path = tmp_in.name
    out_path = in_path + ".wav"

    try:
        subprocess.run(
            [
                "ffmpeg",
                "-y",
                "-v", "error",
                "-i", in_path,
                "-vn",
                "-acodec", "pcm_s16le",
                "-f", "wav",
                out_path,
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
        with open(out_path, "rb") as wav_file:
            return wav_file.read()
    except FileNotFoundError as exc:
        raise AudioDecodeError("ffmpeg is not installed; only WAV uploads can be decoded") from exc
    except subprocess.CalledProcessError as exc:
        error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
        logger.error("ffmpeg failed. stderr: %s", error_msg)
        raise AudioDecodeError(f"Unsupported or corrupt audio file: {error_msg.strip()}") from exc
    finally:
        for path in (in_path, out_path):
            if os.path.exists(path):
                os.remove(path)


def decode_audio(audio_bytes: bytes) -> DecodedAudio:
    """Decode PCM WAV directly, anything else through ffmpeg.

    RIFF files the ``wave`` module cannot read (IEEE float, extensible
    headers on older interpreters) are retried through ffmpeg as well.
    """

    if not audio_bytes:
        raise AudioDecodeError("Audio payload is empty")

    if _is_wav(audio_bytes):
        try:
            decoded = _decode_wav(audio_bytes)
        except AudioDecodeError as exc:
            logger.info("WAV not readable natively (%s); transcoding with ffmpeg", exc)
            decoded = _decode_wav(_convert_to_wav_sync(audio_bytes))
    else:
        decoded = _decode_wav(_convert_to_wav_sync(audio_bytes))
    if decoded.frames == 0:
        raise AudioDecodeError("Audio contains no samples")
    return decoded


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode ``(frames, channels)`` float samples as 16-bit PCM WAV bytes."""

    if samples.ndim == 1:
        samples = samples.reshape(-1, 1)
    scaled = np.rint(np.asarray(samples, dtype=np.float64) * 32768.0)
    pcm16 = np.clip(scaled, -32768, 32767).astype("<i2")
    with io.BytesIO() as buffer:
        with wave.open(buffer, "wb") as wave_file:
            wave_file.setnchannels(samples.shape[1])
            wave_file.setsampwidth(_OUTPUT_SAMPLE_WIDTH)
            wave_file.setframerate(sample_rate)
            wave_file.writeframes(pcm16.tobytes())
        return buffer.getvalue()


def segment_decoded_audio(
    decoded: DecodedAudio,
    segment_duration: float = DEFAULT_SEGMENT_DURATION,
) -> list[AudioSegment]:
    if segment_duration <= 0:
        raise ValueError("segment_duration must be positive")

    frames_per_segment = max(1, int(round(segment_duration * decoded.sample_rate)))
    total_frames = decoded.frames
    count = math.ceil(total_frames / frames_per_segment)

    segments: list[AudioSegment] = []
    for index in range(count):
        start_frame = index * frames_per_segment
        end_frame = min(start_frame + frames_per_segment, total_frames)
        window = decoded.samples[start_frame:end_frame]
        segments.append(
            AudioSegment(
                index=index,
                start_time=start_frame / decoded.sample_rate,
                end_time=end_frame / decoded.sample_rate,
                encoded_audio=encode_wav(window, decoded.sample_rate),
            )
        )
    return segments


def split_audio_into_segments(
    audio_bytes: bytes,
    segment_duration: float = DEFAULT_SEGMENT_DURATION,
) -> list[AudioSegment]:
    """Split an upload into ordered, contiguous WAV segments of ``segment_duration`` seconds."""

    if segment_duration <= 0:
        raise ValueError("segment_duration must be positive")

    decoded = decode_audio(audio_bytes)
    segments = segment_decoded_audio(decoded, segment_duration)
    logger.info(
        "Audio segmented duration=%.2fs channels=%s rate=%s segment=%ss count=%s",
        decoded.duration,
        decoded.channels,
        decoded.sample_rate,
        segment_duration,
        len(segments),
    )
    return segments


async def split_audio_async(
    audio_bytes: bytes,
    segment_duration: float = DEFAULT_SEGMENT_DURATION,
) -> list[AudioSegment]:
    """Run decoding and re-encoding off the event loop."""

    return await run_in_threadpool(split_audio_into_segments, audio_bytes, segment_duration)


__all__ = [
    "AudioDecodeError",
    "DEFAULT_SEGMENT_DURATION",
    "DecodedAudio",
    "decode_audio",
    "encode_wav",
    "segment_decoded_audio",
    "split_audio_async",
    "split_audio_into_segments",
]
