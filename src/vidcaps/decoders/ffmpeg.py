"""FFmpeg adapter: the secondary identifier and the default millisecond-precision capturer."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from fractions import Fraction
from pathlib import Path
from typing import List, Optional, Sequence

from src.vidcaps import subproc
from src.vidcaps.decoders.base import (
    PROBE_SIZE,
    format_timestamp,
    output_written,
    parse_rate,
    strip_trailing_zero,
)
from src.vidcaps.decoders.codecs import (
    audio_codec_name,
    translate_ffmpeg_audio_id,
    translate_ffmpeg_video_id,
    video_codec_name,
)
from src.vidcaps.models import MediaRecord

logger = logging.getLogger(__name__)

_PNG_ENCODER_RE = re.compile(r"EV.*\spng\b")
_STREAM_ID_RE = re.compile(r"#\d+[.:](\d+)")
_VIDEO_CODEC_RE = re.compile(r"Video: ([^,]*)")
_AUDIO_CODEC_RE = re.compile(r"Audio: ([^,]*)")
_DIMENSIONS_RE = re.compile(r", (\d+)x(\d+)")
_CHANNELS_RE = re.compile(r"(\d+) channels")
_LAYOUT_RE = re.compile(r"Hz, ([^, ]+)")
_TBR_RE = re.compile(r"(\d*\.?\d*)(k?) tb(?:r|\(r\))")
_FPS_RE = re.compile(r", (\d+\.?\d*) fps")
_SEEMS_RATE_RE = re.compile(r"-> \S* \((\d+)/(\d+)")
_DURATION_RE = re.compile(r"Duration: ([^,]+)")
_DAR_RE = re.compile(r"DAR (\d+):(\d+)")

_LAYOUT_CHANNELS = {"mono": 1, "stereo": 2, "5.1": 6, "5:1": 6, "7.1": 8}


def _first_stream(lines: Sequence[str], kind: str) -> str:
    marker = f"{kind}:"
    for line in lines:
        if "Stream" in line and marker in line:
            return line
    return ""


def _codec_word(pattern: re.Pattern[str], line: str) -> str:
    match = pattern.search(line)
    if match is None:
        return ""
    words = match.group(1).split()
    return words[0] if words else ""


def _channels(audio_line: str) -> int:
    match = _CHANNELS_RE.search(audio_line)
    if match is not None:
        return int(match.group(1))
    match = _LAYOUT_RE.search(audio_line)
    if match is None:
        return 0
    layout = match.group(1).split("(", 1)[0]
    return _LAYOUT_CHANNELS.get(layout, 0)


def _frame_rate(video_line: str, seems_lines: Sequence[str]) -> tuple[Optional[float], int]:
    text = ""
    match = _TBR_RE.search(video_line)
    if match is not None and match.group(1):
        text = match.group(1)
        if match.group(2):
            text = str(float(text) * 1000)
        elif "." in text:
            # tbr is printed with two decimals; a "Seems stream N ... -> R (a/b)"
            # line may carry the exact ratio.
            stream = _STREAM_ID_RE.search(video_line)
            stream_id = stream.group(1) if stream else None
            for line in seems_lines:
                if stream_id is None or f"stream {stream_id}" not in line:
                    continue
                if f" -> {text} (" not in line:
                    continue
                ratio = _SEEMS_RATE_RE.search(line)
                if ratio is not None and int(ratio.group(2)) != 0:
                    text = str(int(ratio.group(1)) / int(ratio.group(2)))
                break
    if not text:
        fps = _FPS_RE.search(video_line)
        if fps is None:
            return None, 0
        text = fps.group(1)
    try:
        rounded = f"{float(text):.3f}"
    except ValueError:
        return None, 0
    return parse_rate(strip_trailing_zero(rounded))


def _duration(lines: Sequence[str]) -> Optional[float]:
    for line in lines:
        match = _DURATION_RE.search(line)
        if match is None:
            continue
        text = match.group(1).strip()
        if text == "N/A":
            return None
        parts = text.split(":")
        try:
            seconds = 0.0
            for part in parts:
                seconds = seconds * 60 + float(part)
        except ValueError:
            return None
        return seconds
    return None


def _aspect(lines: Sequence[str]) -> Optional[Fraction]:
    for line in lines:
        matches = _DAR_RE.findall(line)
        if not matches:
            continue
        # Some streams print two DARs; the last one is the effective value.
        numerator, denominator = matches[-1]
        if int(denominator) == 0 or int(numerator) == 0:
            return None
        return Fraction(int(numerator), int(denominator))
    return None


def parse_identify_output(stderr: str) -> MediaRecord:
    """Build a :class:`MediaRecord` from the banner FFmpeg prints on stderr."""

    lines: List[str] = [
        line.strip()
        for line in stderr.splitlines()
        if "Stream" in line or "Duration:" in line or line.strip().startswith("Seems")
    ]
    video_line = _first_stream(lines, "Video")
    audio_line = _first_stream(lines, "Audio")
    seems_lines = [line for line in lines if line.startswith("Seems")]

    video_codec = _codec_word(_VIDEO_CODEC_RE, video_line)
    audio_codec = _codec_word(_AUDIO_CODEC_RE, audio_line)

    width: Optional[int] = None
    height: Optional[int] = None
    dims = _DIMENSIONS_RE.search(video_line)
    if dims is not None:
        width, height = int(dims.group(1)), int(dims.group(2))

    frame_rate, decimals = _frame_rate(video_line, seems_lines)

    vcname = video_codec_name(translate_ffmpeg_video_id(video_codec)) if video_codec else ""
    if video_codec == "h264":
        vcname = f"{vcname} (h.264)"
    acname = audio_codec_name(translate_ffmpeg_audio_id(audio_codec))

    return MediaRecord(
        width=width,
        height=height,
        frame_rate=frame_rate,
        frame_rate_decimals=decimals,
        duration=_duration(lines),
        video_codec_id=video_codec,
        audio_codec_id=audio_codec,
        audio_channels=_channels(audio_line),
        display_aspect=_aspect(lines),
        video_codec_name=vcname,
        audio_codec_name=acname,
    )


class FFmpegDecoder:
    """Identify and capture through the ``ffmpeg`` binary."""

    name = "ffmpeg"
    has_ms = True

    def __init__(
        self,
        binary: str | None = None,
        *,
        timeout: float | None = None,
        seek_after_input: bool = False,
    ) -> None:
        self.binary = binary or shutil.which("ffmpeg")
        self.timeout = subproc.normalize_timeout(timeout)
        self.seek_after_input = seek_after_input

    def is_available(self) -> bool:
        if not self.binary:
            return False
        try:
            result = subproc.run_checked([self.binary, "-hide_banner", "-codecs"], timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("ffmpeg availability check failed: %s", exc)
            return False
        if not _PNG_ENCODER_RE.search(result.stdout or ""):
            logger.warning("FFmpeg can't output to png, won't be able to use it.")
            return False
        return True

    def identify(self, path: Path) -> MediaRecord:
        assert self.binary, "ffmpeg binary not resolved"
        cmd = [
            self.binary,
            "-hide_banner",
            "-nostdin",
            "-i",
            str(path),
            "-frames:v",
            "0",
            "-f",
            "null",
            "-",
        ]
        try:
            result = subproc.run_checked(cmd, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg timed out identifying %s", path)
            return MediaRecord()
        except OSError as exc:
            logger.warning("ffmpeg could not be started: %s", exc)
            return MediaRecord()
        return parse_identify_output(result.stderr or "")

    def build_capture_command(
        self,
        path: Path,
        timestamp: float,
        output: Path,
        extra: Sequence[str] = (),
    ) -> List[str]:
        assert self.binary, "ffmpeg binary not resolved"
        seek = ["-ss", format_timestamp(timestamp, has_ms=True)]
        cmd = [self.binary, "-y", "-nostdin", "-loglevel", "error"]
        if not self.seek_after_input:
            cmd.extend(seek)
        cmd.extend(["-i", str(path)])
        if self.seek_after_input:
            cmd.extend(seek)
        cmd.extend(["-an", "-frames:v", "1", "-c:v", "png", *extra, "-f", "image2", str(output)])
        return cmd

    def _run_capture(self, path: Path, timestamp: float, output: Path, extra: Sequence[str] = ()) -> bool:
        cmd = self.build_capture_command(path, timestamp, output, extra)
        try:
            result = subproc.run_checked(cmd, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg timed out capturing at %.3fs", timestamp)
            return False
        except OSError as exc:
            logger.warning("ffmpeg could not be started: %s", exc)
            return False
        if result.returncode == 0 and output_written(output):
            return True
        logger.debug(
            "ffmpeg produced no frame at %.3fs (exit %s): %s",
            timestamp,
            result.returncode,
            (result.stderr or "").strip() or "unknown error",
        )
        return False

    def capture(self, path: Path, timestamp: float, output: Path) -> bool:
        return self._run_capture(path, timestamp, output)

    def probe(self, path: Path, timestamp: float, scratch: Path) -> bool:
        try:
            return self._run_capture(path, timestamp, scratch, ("-s", f"{PROBE_SIZE}x{PROBE_SIZE}"))
        finally:
            scratch.unlink(missing_ok=True)
