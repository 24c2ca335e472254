"""MPlayer adapter: the primary identifier, capturing with whole-second seeks."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from collections import defaultdict
from fractions import Fraction
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from src.vidcaps import subproc
from src.vidcaps.decoders.base import (
    PROBE_SIZE,
    format_timestamp,
    output_written,
    parse_rate,
    strip_trailing_zero,
)
from src.vidcaps.decoders.codecs import audio_codec_name, video_codec_name
from src.vidcaps.models import MediaRecord

logger = logging.getLogger(__name__)

# MPlayer reports this rate when it could not find real timing information.
SUSPICIOUS_FPS = 1000.0

# MPlayer cannot name its output; with -frames 5 it writes 00000001..5.png and
# only the last one is reliable.
_CAPTURED_FRAMES = 5
_LAST_FRAME_NAME = f"{_CAPTURED_FRAMES:08d}.png"


def _parse_id_lines(stdout: str) -> Dict[str, List[str]]:
    values: Dict[str, List[str]] = defaultdict(list)
    for line in stdout.splitlines():
        line = line.strip()
        if not line.startswith("ID_") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key].append(value.strip())
    return values


def _first(values: Dict[str, List[str]], key: str) -> str:
    found = values.get(key)
    return found[0] if found else ""


def _to_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def _to_float(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


def _aspect(values: Dict[str, List[str]]) -> Optional[Fraction]:
    for text in reversed(values.get("ID_VIDEO_ASPECT", [])):
        try:
            aspect = Fraction(text)
        except (ValueError, ZeroDivisionError):
            continue
        if aspect != 0:
            return aspect
    return None


def parse_identify_output(stdout: str) -> MediaRecord:
    """Build a :class:`MediaRecord` from ``mplayer -identify`` output."""

    values = _parse_id_lines(stdout)

    video_codec = _first(values, "ID_VIDEO_FORMAT")
    audio_codec = _first(values, "ID_AUDIO_FORMAT")
    video_decoder = _first(values, "ID_VIDEO_CODEC")

    frame_rate, decimals = parse_rate(strip_trailing_zero(_first(values, "ID_VIDEO_FPS")))

    channel_reports = values.get("ID_AUDIO_NCH", [])
    channels = next((int(v) for v in channel_reports if v.isdigit() and int(v) != 0), 0)

    vcname = video_codec_name(video_codec)
    if video_decoder == "ffodivx" and vcname != "MPEG-4":
        vcname = f"{vcname} (MPEG-4)"
    elif video_decoder == "ffh264":
        vcname = f"{vcname} (h.264)"

    acname = audio_codec_name(audio_codec)
    if audio_codec == "samr" and _first(values, "ID_AUDIO_CODEC") == "ffamrnb":
        acname = "AMR-NB"

    if frame_rate == SUSPICIOUS_FPS:
        logger.warning(
            "Possible inaccuracy in FPS detection. Install both mplayer and ffmpeg for better detection."
        )
    if channel_reports and channels == 0:
        logger.warning(
            "Failed to detect number of audio channels. Install both mplayer and ffmpeg for better detection."
        )

    return MediaRecord(
        width=_to_int(_first(values, "ID_VIDEO_WIDTH")),
        height=_to_int(_first(values, "ID_VIDEO_HEIGHT")),
        frame_rate=frame_rate,
        frame_rate_decimals=decimals,
        duration=_to_float(_first(values, "ID_LENGTH")),
        video_codec_id=video_codec,
        audio_codec_id=audio_codec,
        video_decoder=video_decoder,
        audio_channels=channels,
        display_aspect=_aspect(values),
        video_codec_name=vcname,
        audio_codec_name=acname,
    )


class MPlayerDecoder:
    """Identify and capture through the ``mplayer`` binary."""

    name = "mplayer"
    has_ms = False

    def __init__(self, binary: str | None = None, *, timeout: float | None = None) -> None:
        self.binary = binary or shutil.which("mplayer")
        self.timeout = subproc.normalize_timeout(timeout)

    def is_available(self) -> bool:
        if not self.binary:
            return False
        try:
            result = subproc.run_checked([self.binary, "-vo", "help"], timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("mplayer availability check failed: %s", exc)
            return False
        if "png" not in f"{result.stdout}{result.stderr}":
            logger.warning("MPlayer can't output to png, won't be able to use it.")
            return False
        return True

    def identify(self, path: Path) -> MediaRecord:
        assert self.binary, "mplayer binary not resolved"
        cmd = [
            self.binary,
            "-benchmark",
            "-ao",
            "null",
            "-vo",
            "null",
            "-identify",
            "-frames",
            "0",
            "-quiet",
            str(path),
        ]
        try:
            result = subproc.run_checked(cmd, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("mplayer timed out identifying %s", path)
            return MediaRecord()
        except OSError as exc:
            logger.warning("mplayer could not be started: %s", exc)
            return MediaRecord()
        return parse_identify_output(result.stdout or "")

    def _run_capture(
        self,
        path: Path,
        timestamp: float,
        output: Path,
        extra: Sequence[str] = (),
    ) -> bool:
        assert self.binary, "mplayer binary not resolved"
        workdir = Path(tempfile.mkdtemp(prefix="mplayer-", dir=str(output.parent)))
        cmd = [
            self.binary,
            "-sws",
            "9",
            "-ao",
            "null",
            "-benchmark",
            "-vo",
            "png:z=0",
            "-quiet",
            "-frames",
            str(_CAPTURED_FRAMES),
            "-ss",
            format_timestamp(timestamp, has_ms=False),
            *extra,
            os.path.abspath(path),
        ]
        try:
            try:
                result = subproc.run_checked(cmd, timeout=self.timeout, cwd=workdir)
            except subprocess.TimeoutExpired:
                logger.warning("mplayer timed out capturing at %ss", int(timestamp))
                return False
            except OSError as exc:
                logger.warning("mplayer could not be started: %s", exc)
                return False
            frame = workdir / _LAST_FRAME_NAME
            if not output_written(frame):
                logger.debug(
                    "mplayer produced no frame at %ss (exit %s): %s",
                    int(timestamp),
                    result.returncode,
                    (result.stderr or "").strip(),
                )
                return False
            shutil.move(str(frame), str(output))
            return True
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    def capture(self, path: Path, timestamp: float, output: Path) -> bool:
        return self._run_capture(path, timestamp, output)

    def probe(self, path: Path, timestamp: float, scratch: Path) -> bool:
        try:
            return self._run_capture(
                path, timestamp, scratch, ("-vf", f"scale={PROBE_SIZE}:{PROBE_SIZE}")
            )
        finally:
            scratch.unlink(missing_ok=True)
