"""Configuration dataclasses for the capture pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Set, Union


class CapturerChoice(str, Enum):
    """Which decoder extracts frames (``auto`` picks the first available)."""

    AUTO = "auto"
    FFMPEG = "ffmpeg"
    MPLAYER = "mplayer"


class TimecodePolicy(str, Enum):
    """Strategies for spreading capture points over the video."""

    INTERVAL = "interval"
    COUNT = "count"


def _default_evasion_offsets() -> List[float]:
    return [-5.0, 5.0, -10.0, 10.0, -30.0, 30.0]


@dataclass
class CaptureConfig:
    """Frame extraction behaviour, blank-frame evasion and child-process limits."""

    capturer: CapturerChoice = CapturerChoice.AUTO
    evasion: bool = True
    blank_threshold: float = 10.0
    evasion_offsets: List[float] = field(default_factory=_default_evasion_offsets)
    timeout_seconds: float = 120.0
    ffmpeg_seek_after_input: bool = False


@dataclass
class TimecodeConfig:
    """Capture point scheduling for the standard and extended sets."""

    policy: TimecodePolicy = TimecodePolicy.INTERVAL
    interval: Union[str, float] = 300.0
    count: int = 16
    start: Union[str, float] = 0.0
    end: Union[str, float] = -1.0
    end_offset: Union[str, float] = "5.5%"
    columns: int = 2
    extended_factor: float = 0.0
    _provided_keys: Set[str] = field(default_factory=set)


@dataclass
class QuirksConfig:
    """Safe measuring of untrustworthy durations."""

    safe_mode: bool = True
    length_threshold: float = 0.2
    probe_step_seconds: float = 0.5
    max_rewind_seconds: float = 20.0


@dataclass
class RuntimeConfig:
    """Temporary storage used while a file is processed."""

    temp_dir: str = ""
    keep_temp: bool = False


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    capture: CaptureConfig
    timecodes: TimecodeConfig
    quirks: QuirksConfig
    runtime: RuntimeConfig
