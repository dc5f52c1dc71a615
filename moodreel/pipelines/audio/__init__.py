"""Audio-to-video pipeline package.

Modules are organised by the order in which a run executes:

1. `ingestion` - validate the upload and obtain raw audio bytes.
2. `segmentation` - split the audio into fixed-duration WAV windows.
3. `prompts` / `analysis` - mood description and image prompt per window.
4. `generation` - batched image jobs and the final video job.
5. `flow` - ties the stages together for one request.

The FastAPI controllers import from here so contributors can jump straight
to the relevant stage without wading through a single monolithic file.
"""

from .analysis import SegmentAnalyzer, parse_image_prompt, parse_mood_analysis
from .flow import MoodReelFlow, OVERALL_VIDEO_PROMPT, VideoGenerationError
from .generation import (
    DEFAULT_VIDEO_PROMPT,
    NoUsableImagesError,
    create_video_from_images,
    generate_images_in_batches,
)
from .ingestion import read_audio_bytes, resolve_content_type, validate_segment_duration
from .segmentation import (
    AudioDecodeError,
    DEFAULT_SEGMENT_DURATION,
    decode_audio,
    encode_wav,
    split_audio_async,
    split_audio_into_segments,
)

__all__ = [
    "AudioDecodeError",
    "DEFAULT_SEGMENT_DURATION",
    "DEFAULT_VIDEO_PROMPT",
    "MoodReelFlow",
    "NoUsableImagesError",
    "OVERALL_VIDEO_PROMPT",
    "SegmentAnalyzer",
    "VideoGenerationError",
    "create_video_from_images",
    "decode_audio",
    "encode_wav",
    "generate_images_in_batches",
    "parse_image_prompt",
    "parse_mood_analysis",
    "read_audio_bytes",
    "resolve_content_type",
    "split_audio_async",
    "split_audio_into_segments",
    "validate_segment_duration",
]
