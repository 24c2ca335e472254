"""Typed records shared by the identifiers, reconciliation and capture stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from pathlib import Path
from typing import Optional

from src.datatypes import QuirksConfig


@dataclass(frozen=True)
class MediaRecord:
    """
    What one identifier (or the reconciliation of both) knows about a file.

    Unknown values are ``None`` for numbers, ``""`` for codec ids and ``0`` for
    the channel count. ``frame_rate_decimals`` keeps how many decimal digits the
    decoder printed, which reconciliation uses to judge precision.
    """

    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    frame_rate_decimals: int = 0
    duration: Optional[float] = None
    video_codec_id: str = ""
    audio_codec_id: str = ""
    video_decoder: str = ""
    audio_channels: int = 0
    display_aspect: Optional[Fraction] = None
    video_codec_name: str = ""
    audio_codec_name: str = ""

    @property
    def has_valid_dimensions(self) -> bool:
        return (
            self.width is not None
            and self.height is not None
            and self.width > 0
            and self.height > 0
        )


@dataclass
class QuirksState:
    """Per-file safe measuring flags, reset from configuration for every input."""

    quirks_enabled: bool = False
    max_rewind_seconds: Optional[float] = 20.0
    probe_step_seconds: float = 0.5
    rewind_limit_reached: bool = False
    safe_mode_disabled: bool = False
    # Number of times the budget was doubled; used for retry suggestions.
    rewind_scale: int = 0

    @classmethod
    def from_config(cls, cfg: QuirksConfig) -> "QuirksState":
        max_rewind: Optional[float] = cfg.max_rewind_seconds
        if max_rewind is not None and max_rewind < 0:
            max_rewind = None
        return cls(
            max_rewind_seconds=max_rewind,
            probe_step_seconds=cfg.probe_step_seconds,
            safe_mode_disabled=not cfg.safe_mode,
        )


class IdentifierRole(str, Enum):
    """Which identifier a decoder plays: MPlayer is primary, FFmpeg secondary."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class DecisionKind(str, Enum):
    """Fallbacks and adjustments taken while processing a file."""

    FRAME_RATE = "frame_rate"
    CHANNELS = "channels"
    ASPECT = "aspect"
    DURATION = "duration"
    QUIRKS = "quirks"
    DIMENSIONS = "dimensions"
    CODEC = "codec"
    SAFE_LENGTH = "safe_length"
    END_OFFSET = "end_offset"
    CACHE_HIT = "cache_hit"
    EVASION = "evasion"
    BLANK = "blank"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    message: str


@dataclass(frozen=True)
class CachedCapture:
    """Frame already extracted for a normalized timestamp key."""

    path: Path
    timestamp: float


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of a single ``capture_at`` call."""

    path: Path
    timestamp: float
    from_cache: bool = False
    blank: bool = False


def decision_list_factory() -> list[Decision]:
    return []


@dataclass
class ReconcileResult:
    record: MediaRecord
    decisions: list[Decision] = field(default_factory=decision_list_factory)
