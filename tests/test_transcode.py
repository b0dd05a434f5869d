"""Tests for ffmpeg container normalization."""

import os
import shutil
import struct
import subprocess
import wave
from unittest.mock import patch

import pytest

from agent_metrics.audio.transcode import (
    TARGET_CHANNELS,
    TARGET_SAMPLE_RATE,
    TARGET_SAMPLE_WIDTH,
    _check_audio_valid,
    normalize_container,
    transcode_to_wav,
)
from agent_metrics.utils.errors import TranscodeError, UnsupportedContainerError


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


@pytest.fixture
def valid_audio_file(tmp_path) -> str:
    """Create a tiny valid WAV file (1 second, 44100 Hz mono, 16-bit)."""
    filepath = os.path.join(str(tmp_path), "input.wav")
    sample_rate = 44100
    num_samples = sample_rate

    with wave.open(filepath, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        samples = struct.pack(f"<{num_samples}h", *([1000, -1000] * (num_samples // 2)))
        wf.writeframes(samples)

    return filepath


@pytest.fixture
def output_dir(tmp_path) -> str:
    out = os.path.join(str(tmp_path), "output")
    os.makedirs(out, exist_ok=True)
    return out


@pytest.fixture
def corrupt_audio_file(tmp_path) -> str:
    """Create a corrupt file (text renamed to .m4a)."""
    filepath = os.path.join(str(tmp_path), "corrupt.m4a")
    with open(filepath, "w") as f:
        f.write("this is not audio data")
    return filepath


@pytest.mark.skipif(not _ffmpeg_available(), reason="ffmpeg not available")
class TestTranscodeToWav:
    """Tests for transcode_to_wav with real ffmpeg."""

    def test_transcode_produces_correct_wav_format(
        self, valid_audio_file: str, output_dir: str
    ) -> None:
        result = transcode_to_wav(valid_audio_file, output_dir)

        with wave.open(result.output_path, "rb") as wf:
            assert wf.getframerate() == TARGET_SAMPLE_RATE
            assert wf.getnchannels() == TARGET_CHANNELS
            assert wf.getsampwidth() == TARGET_SAMPLE_WIDTH
        assert abs(result.duration_seconds - 1.0) < 0.05

    def test_corrupt_input_raises(self, corrupt_audio_file: str, output_dir: str) -> None:
        with pytest.raises(TranscodeError):
            transcode_to_wav(corrupt_audio_file, output_dir)

    def test_normalize_m4a_named_input(self, valid_audio_file: str, output_dir: str) -> None:
        path = normalize_container(valid_audio_file, "m4a", output_dir)
        assert path.endswith(".wav")
        assert os.path.dirname(path) == output_dir


class TestTranscodeErrors:
    def test_missing_input_raises(self, output_dir: str) -> None:
        with pytest.raises(TranscodeError, match="does not exist"):
            transcode_to_wav("/nonexistent/audio.m4a", output_dir)

    def test_missing_ffmpeg_raises(self, valid_audio_file: str, output_dir: str) -> None:
        with patch("agent_metrics.audio.transcode.shutil.which", return_value=None):
            with pytest.raises(TranscodeError, match="ffmpeg binary not found"):
                transcode_to_wav(valid_audio_file, output_dir)

    def test_refuses_to_overwrite_input(self, valid_audio_file: str) -> None:
        with patch("agent_metrics.audio.transcode.shutil.which", return_value="/usr/bin/ffmpeg"):
            with patch("agent_metrics.audio.transcode._check_audio_valid"):
                with pytest.raises(TranscodeError, match="overwrite"):
                    transcode_to_wav(valid_audio_file, os.path.dirname(valid_audio_file))

    def test_ffprobe_failure_raises(self, corrupt_audio_file: str) -> None:
        error = subprocess.CalledProcessError(1, "ffprobe", stderr="Invalid data found")
        with patch("agent_metrics.audio.transcode.shutil.which", return_value="/usr/bin/ffprobe"):
            with patch("agent_metrics.audio.transcode.subprocess.run", side_effect=error):
                with pytest.raises(TranscodeError, match="Invalid data found"):
                    _check_audio_valid(corrupt_audio_file)

    def test_ffprobe_missing_skips_check(self, corrupt_audio_file: str) -> None:
        with patch("agent_metrics.audio.transcode.shutil.which", return_value=None):
            _check_audio_valid(corrupt_audio_file)


class TestNormalizeContainer:
    def test_wav_passes_through(self, valid_audio_file: str, output_dir: str) -> None:
        with patch("agent_metrics.audio.transcode.transcode_to_wav") as mock_transcode:
            assert normalize_container(valid_audio_file, "WAV", output_dir) == valid_audio_file
        mock_transcode.assert_not_called()

    def test_unsupported_container_raises(self, output_dir: str) -> None:
        with pytest.raises(UnsupportedContainerError, match="flac") as exc_info:
            normalize_container("/tmp/call.flac", "flac", output_dir)
        assert exc_info.value.container == "flac"

    @pytest.mark.parametrize("container", ["mp4", "m4a", "webm", "mp3", "ogg", ".mp4"])
    def test_transcodable_containers(self, container: str, output_dir: str) -> None:
        with patch("agent_metrics.audio.transcode.transcode_to_wav") as mock_transcode:
            mock_transcode.return_value.output_path = "/tmp/out.wav"
            mock_transcode.return_value.duration_seconds = 3.0
            assert normalize_container("/tmp/in", container, output_dir) == "/tmp/out.wav"
        mock_transcode.assert_called_once_with("/tmp/in", output_dir)
