"""Container normalization to 16kHz mono WAV using ffmpeg.

The speech engine reads PCM WAV files only. Downloaded audio in any other
supported container is transcoded; WAV input is passed through as-is.
"""

import logging
import os
import shutil
import subprocess
import wave
from dataclasses import dataclass
from pathlib import Path

from agent_metrics.utils.errors import TranscodeError, UnsupportedContainerError

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1
TARGET_SAMPLE_WIDTH = 2  # 16-bit = 2 bytes

PASSTHROUGH_CONTAINERS = frozenset({"wav"})
TRANSCODABLE_CONTAINERS = frozenset({"mp4", "m4a", "webm", "mp3", "ogg"})

FFPROBE_TIMEOUT_SECONDS = 10
FFMPEG_TIMEOUT_SECONDS = 300


@dataclass
class TranscodeResult:
    """Result of a successful transcode operation."""

    input_path: str
    output_path: str
    input_size_bytes: int
    output_size_bytes: int
    duration_seconds: float


def _check_ffmpeg_available() -> str:
    """Verify ffmpeg is available on the system.

    Returns:
        Path to the ffmpeg binary.

    Raises:
        TranscodeError: If ffmpeg is not found.
    """
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path is None:
        raise TranscodeError("ffmpeg binary not found on PATH")
    return ffmpeg_path


def _check_audio_valid(input_path: str) -> None:
    """Pre-validate an audio file with ffprobe before transcoding.

    Raises:
        TranscodeError: If ffprobe fails or the file is corrupt.
    """
    ffprobe_path = shutil.which("ffprobe")
    if ffprobe_path is None:
        # No ffprobe: let ffmpeg report the problem
        return

    cmd = [ffprobe_path, "-v", "error", "-show_format", input_path]

    try:
        subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=FFPROBE_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "unknown error"
        raise TranscodeError(
            f"Audio file is corrupt or unreadable (ffprobe): {stderr}",
            input_path=input_path,
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise TranscodeError(
            f"ffprobe timed out after {FFPROBE_TIMEOUT_SECONDS}s",
            input_path=input_path,
        ) from exc


def _read_wav_duration(wav_path: str) -> float:
    with wave.open(wav_path, "rb") as wf:
        return wf.getnframes() / wf.getframerate()


def transcode_to_wav(
    input_path: str,
    output_dir: str,
    output_filename: str | None = None,
) -> TranscodeResult:
    """Transcode an audio file to 16kHz mono 16-bit PCM WAV.

    Args:
        input_path: Path to the input audio file.
        output_dir: Directory to write the output WAV file.
        output_filename: Optional output filename. Defaults to input stem + .wav.

    Returns:
        TranscodeResult with paths, sizes, and duration.

    Raises:
        TranscodeError: If the input file doesn't exist, is corrupt, or ffmpeg fails.
    """
    input_file = Path(input_path)

    if not input_file.exists():
        raise TranscodeError(
            f"Input file does not exist: {input_path}",
            input_path=input_path,
        )

    ffmpeg_path = _check_ffmpeg_available()
    _check_audio_valid(input_path)

    if output_filename is None:
        output_filename = f"{input_file.stem}.wav"

    output_path = os.path.join(output_dir, output_filename)
    if os.path.abspath(output_path) == os.path.abspath(input_path):
        raise TranscodeError(
            "Output path would overwrite the input file",
            input_path=input_path,
        )
    os.makedirs(output_dir, exist_ok=True)

    cmd = [
        ffmpeg_path,
        "-y",
        "-i",
        input_path,
        "-vn",
        "-ar",
        str(TARGET_SAMPLE_RATE),
        "-ac",
        str(TARGET_CHANNELS),
        "-sample_fmt",
        "s16",
        "-f",
        "wav",
        output_path,
    ]

    try:
        subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=FFMPEG_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as exc:
        raise TranscodeError(
            f"ffmpeg transcode failed: {exc.stderr.strip()}",
            input_path=input_path,
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise TranscodeError(
            f"ffmpeg transcode timed out after {FFMPEG_TIMEOUT_SECONDS} seconds",
            input_path=input_path,
        ) from exc

    if not os.path.exists(output_path):
        raise TranscodeError(
            f"ffmpeg produced no output file: {output_path}",
            input_path=input_path,
        )

    return TranscodeResult(
        input_path=input_path,
        output_path=output_path,
        input_size_bytes=input_file.stat().st_size,
        output_size_bytes=os.path.getsize(output_path),
        duration_seconds=_read_wav_duration(output_path),
    )


def normalize_container(input_path: str, container: str, output_dir: str) -> str:
    """Return a path to a locally decodable WAV version of the audio.

    Args:
        input_path: Path to the downloaded audio.
        container: Container name of the download (e.g. "mp4", "wav").
        output_dir: Directory for the transcoded file.

    Returns:
        Path of a WAV file the speech engine can read.

    Raises:
        UnsupportedContainerError: If the container is not supported.
        TranscodeError: If ffmpeg fails.
    """
    container = container.lower().lstrip(".")

    if container in PASSTHROUGH_CONTAINERS:
        return input_path

    if container not in TRANSCODABLE_CONTAINERS:
        supported = ", ".join(sorted(PASSTHROUGH_CONTAINERS | TRANSCODABLE_CONTAINERS))
        raise UnsupportedContainerError(
            f"Unknown audio container format: '{container}'. Supported: {supported}",
            container=container,
        )

    result = transcode_to_wav(input_path, output_dir)
    logger.info(
        "Transcoded %s (%s) to %s, %.1fs of audio",
        input_path,
        container,
        result.output_path,
        result.duration_seconds,
        extra={"stage": "acquire", "duration_seconds": result.duration_seconds},
    )
    return result.output_path
