import sys
import os
sys.path.append(os.getcwd())
from pathlib import Path

from moodreel.pipelines.audio import split_audio_into_segments


def main(source: str, segment_duration: float = 30.0) -> None:
    """Split a local audio file and write each window to a sibling ``<stem>_segments`` directory."""

    source_path = Path(source)
    segments = split_audio_into_segments(source_path.read_bytes(), segment_duration)
    print(f"{source_path.name}: {len(segments)} segments of up to {segment_duration:g}s\n")

    out_dir = source_path.parent / f"{source_path.stem}_segments"
    out_dir.mkdir(exist_ok=True)
    for segment in segments:
        target = out_dir / f"segment_{segment.index:03d}.wav"
        target.write_bytes(segment.encoded_audio)
        print(f"  #{segment.index:<3} {segment.start_time:7.2f}s - {segment.end_time:7.2f}s -> {target}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python scripts/segment_audio.py <audio-file> [segment-seconds]")
        sys.exit(1)
    main(sys.argv[1], float(sys.argv[2]) if len(sys.argv) > 2 else 30.0)
