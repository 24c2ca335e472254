"""Decoder protocol shared by the MPlayer and FFmpeg adapters."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from src.vidcaps.models import MediaRecord

logger = logging.getLogger(__name__)

PROBE_SIZE = 96

_DECIMAL_RE = re.compile(r"^\d+(?:\.(\d*))?$")


@runtime_checkable
class Decoder(Protocol):
    """An external tool able to identify a video and extract single frames."""

    name: str
    has_ms: bool

    def is_available(self) -> bool: ...

    def identify(self, path: Path) -> MediaRecord: ...

    def capture(self, path: Path, timestamp: float, output: Path) -> bool: ...

    def probe(self, path: Path, timestamp: float, scratch: Path) -> bool: ...


def output_written(path: Path) -> bool:
    """A capture only counts when it left a non-empty file behind."""

    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def parse_rate(text: str) -> tuple[Optional[float], int]:
    """
    Parse a frame rate literal as printed by a decoder.

    Returns the value and the number of decimal digits it was printed with,
    or ``(None, 0)`` when ``text`` is not a plain decimal number.
    """

    literal = text.strip()
    match = _DECIMAL_RE.match(literal)
    if match is None:
        return None, 0
    decimals = len(match.group(1) or "")
    return float(literal), decimals


def strip_trailing_zero(text: str) -> str:
    """Drop one trailing ``0`` from a decimal literal (``23.970`` -> ``23.97``)."""

    if "." in text and text.endswith("0"):
        return text[:-1]
    return text


def format_timestamp(timestamp: float, *, has_ms: bool) -> str:
    """Render a seek position for a decoder command line."""

    if not has_ms:
        return str(int(timestamp))
    return f"{timestamp:.3f}"
