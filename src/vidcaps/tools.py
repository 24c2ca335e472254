"""Decoder discovery and capturer selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.datatypes import CaptureConfig, CapturerChoice
from src.vidcaps.decoders.base import Decoder
from src.vidcaps.decoders.ffmpeg import FFmpegDecoder
from src.vidcaps.decoders.mplayer import MPlayerDecoder
from src.vidcaps.errors import AdapterUnavailableError
from src.vidcaps.models import IdentifierRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toolset:
    """Available identifiers and the decoder chosen to capture frames."""

    primary: Optional[Decoder]
    secondary: Optional[Decoder]
    capturer: Decoder
    capturer_role: IdentifierRole


def _pick(choice: CapturerChoice, primary: Optional[Decoder], secondary: Optional[Decoder]) -> tuple[Decoder, IdentifierRole]:
    if choice is CapturerChoice.FFMPEG:
        if secondary is None:
            raise AdapterUnavailableError("ffmpeg", "User selected capturing tool (ffmpeg) is not available")
        return secondary, IdentifierRole.SECONDARY
    if choice is CapturerChoice.MPLAYER:
        if primary is None:
            raise AdapterUnavailableError("mplayer", "User selected capturing tool (mplayer) is not available")
        return primary, IdentifierRole.PRIMARY
    # FFmpeg is preferred for capturing thanks to millisecond seeking.
    if secondary is not None:
        return secondary, IdentifierRole.SECONDARY
    assert primary is not None
    return primary, IdentifierRole.PRIMARY


def detect_tools(
    cfg: CaptureConfig,
    *,
    mplayer: Optional[Decoder] = None,
    ffmpeg: Optional[Decoder] = None,
) -> Toolset:
    """
    Probe the decoders and resolve the active capturer.

    Raises:
        AdapterUnavailableError: If no decoder is usable, or the requested capturer is missing.
    """

    if mplayer is None:
        mplayer = MPlayerDecoder(timeout=cfg.timeout_seconds)
    if ffmpeg is None:
        ffmpeg = FFmpegDecoder(timeout=cfg.timeout_seconds, seek_after_input=cfg.ffmpeg_seek_after_input)

    primary = mplayer if mplayer.is_available() else None
    secondary = ffmpeg if ffmpeg.is_available() else None
    if primary is None and secondary is None:
        raise AdapterUnavailableError("any", "No supported video tools (mplayer, ffmpeg) available")
    if primary is None or secondary is None:
        logger.info("Only %s is available; identification will be less accurate", (primary or secondary).name)

    capturer, role = _pick(cfg.capturer, primary, secondary)
    logger.debug("Capturing with %s", capturer.name)
    return Toolset(primary=primary, secondary=secondary, capturer=capturer, capturer_role=role)
