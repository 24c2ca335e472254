"""External decoder adapters."""

from .base import Decoder, output_written
from .ffmpeg import FFmpegDecoder
from .mplayer import MPlayerDecoder

__all__ = [
    "Decoder",
    "FFmpegDecoder",
    "MPlayerDecoder",
    "output_written",
]
