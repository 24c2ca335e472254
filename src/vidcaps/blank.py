"""Near-solid frame detection based on mean grey level."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageStat

logger = logging.getLogger(__name__)

DEFAULT_BLANK_THRESHOLD = 10.0


def mean_luminance(path: Path) -> float:
    """Mean grey level of the image at ``path`` as a percentage (0 black, 100 white)."""

    with Image.open(path) as img:
        grey = img.convert("L")
        mean = ImageStat.Stat(grey).mean[0]
    return mean * 100.0 / 255.0


def is_blank(path: Path, threshold: float = DEFAULT_BLANK_THRESHOLD) -> bool:
    """True when the frame is darker than ``threshold`` or brighter than ``100 - threshold``."""

    value = mean_luminance(path)
    blank = value < threshold or value > 100.0 - threshold
    if blank:
        logger.debug("Frame %s looks blank (mean %.2f%%)", path.name, value)
    return blank
