"""Scriptable decoder doubles shared by the capture, runner and CLI suites."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, List, Optional

from PIL import Image

from src.vidcaps.models import MediaRecord

GREY = 128
BLACK = 0
TRUNCATED_PNG = b"\x89PNG\r\n\x1a\ntruncated"


def write_png(path: Path, level: int = GREY, size: tuple[int, int] = (16, 16)) -> Path:
    """Write a solid grey PNG at ``path``."""

    Image.new("RGB", size, (level, level, level)).save(path, format="PNG")
    return path


class FakeDecoder:
    """
    In-memory stand-in for an external decoder.

    Every capture writes a real PNG so blank detection runs on actual pixels.
    ``blank_at`` lists timestamps that yield a black frame, ``fail_at`` lists
    timestamps that produce nothing, ``corrupt_at`` lists timestamps that leave
    a truncated PNG behind, and ``reachable`` decides probe results.
    """

    def __init__(
        self,
        name: str = "ffmpeg",
        *,
        has_ms: bool = True,
        record: Optional[MediaRecord] = None,
        available: bool = True,
        reachable: Optional[Callable[[float], bool]] = None,
        blank_at: Iterable[float] = (),
        fail_at: Iterable[float] = (),
        corrupt_at: Iterable[float] = (),
    ) -> None:
        self.name = name
        self.has_ms = has_ms
        self.record = record if record is not None else MediaRecord()
        self.available = available
        self.reachable = reachable
        self.blank_at = set(blank_at)
        self.fail_at = set(fail_at)
        self.corrupt_at = set(corrupt_at)
        self.identify_calls: List[Path] = []
        self.capture_calls: List[float] = []
        self.probe_calls: List[float] = []

    def is_available(self) -> bool:
        return self.available

    def identify(self, path: Path) -> MediaRecord:
        self.identify_calls.append(path)
        return self.record

    def capture(self, path: Path, timestamp: float, output: Path) -> bool:
        self.capture_calls.append(timestamp)
        if timestamp in self.fail_at:
            return False
        if timestamp in self.corrupt_at:
            output.write_bytes(TRUNCATED_PNG)
            return True
        write_png(output, BLACK if timestamp in self.blank_at else GREY)
        return True

    def probe(self, path: Path, timestamp: float, scratch: Path) -> bool:
        self.probe_calls.append(timestamp)
        if self.reachable is None:
            return True
        return self.reachable(timestamp)


def sample_record(**overrides: object) -> MediaRecord:
    """A consistent, fully populated record for a ten minute clip."""

    values: dict[str, object] = {
        "width": 640,
        "height": 360,
        "frame_rate": 25.0,
        "frame_rate_decimals": 2,
        "duration": 600.0,
        "video_codec_id": "avc1",
        "audio_codec_id": "mp4a",
        "audio_channels": 2,
        "video_codec_name": "MPEG-4 AVC",
        "audio_codec_name": "MPEG-4 AAC",
    }
    values.update(overrides)
    return MediaRecord(**values)  # type: ignore[arg-type]
