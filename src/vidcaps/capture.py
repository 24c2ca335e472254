"""Frame capture with blank-frame evasion and a per-file timestamp cache."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from src.utils import pretty_stamp, to_precision
from src.vidcaps.blank import is_blank
from src.vidcaps.context import ProcessingContext
from src.vidcaps.errors import CaptureFailedError
from src.vidcaps.models import CachedCapture, CaptureResult, DecisionKind

logger = logging.getLogger(__name__)

BlankCheck = Callable[[Path, float], bool]


@dataclass(frozen=True)
class _Frame:
    path: Path
    timestamp: float
    reused: bool


class CaptureEngine:
    """
    Extract frames for one file through the context's active decoder.

    Timestamps are keyed at the decoder's precision, so overlapping capture
    sets (highlights, standard, extended) decode each point only once.
    """

    def __init__(self, context: ProcessingContext, *, blank_check: BlankCheck = is_blank) -> None:
        self.context = context
        self._blank_check = blank_check

    @property
    def has_ms(self) -> bool:
        return self.context.decoder.has_ms

    def cache_key(self, timestamp: float) -> float:
        return to_precision(timestamp, self.has_ms)

    def _pretty(self, timestamp: float) -> str:
        return pretty_stamp(timestamp, self.has_ms)

    def alternatives(self, timestamp: float) -> List[float]:
        """Evasion candidates around ``timestamp`` that stay within the video."""

        duration = self.context.duration
        candidates: List[float] = []
        for delta in self.context.evasion_offsets:
            candidate = timestamp + delta
            if 0 <= candidate <= duration:
                candidates.append(candidate)
        return candidates

    def _grab(self, timestamp: float) -> Optional[_Frame]:
        ctx = self.context
        scratch = ctx.temp_files.new_temp_file(".png")
        if not ctx.decoder.capture(ctx.source, timestamp, scratch):
            return None
        return _Frame(scratch, timestamp, reused=False)

    def capture_at(self, timestamp: float, output: Path, *, evasion_allowed: bool = True) -> CaptureResult:
        """
        Write the frame at ``timestamp`` (or at an evasion alternative) to ``output``.

        The returned timestamp is the one actually captured; callers must
        label the frame with it rather than with the request.

        Raises:
            CaptureFailedError: If the requested point and every alternative failed to decode.
        """

        ctx = self.context
        key = self.cache_key(timestamp)
        cached = ctx.cache.get(key)
        if cached is not None:
            shutil.copyfile(cached.path, output)
            ctx.decide(DecisionKind.CACHE_HIT, f"Skipped capture at {self._pretty(key)}", level=logging.DEBUG)
            return CaptureResult(path=output, timestamp=cached.timestamp, from_cache=True)

        candidates = [timestamp]
        if evasion_allowed:
            candidates.extend(self.alternatives(timestamp))

        chosen: Optional[_Frame] = None
        blank = False
        for index, candidate in enumerate(candidates):
            frame: Optional[_Frame]
            reuse = ctx.cache.get(self.cache_key(candidate)) if index > 0 else None
            if reuse is not None:
                frame = _Frame(reuse.path, reuse.timestamp, reused=True)
            else:
                frame = self._grab(candidate)
            if frame is None:
                if index == 0:
                    logger.warning("Failed to capture frame at %s (%ss).", self._pretty(candidate), candidate)
                else:
                    logger.debug("Evasion alternative %s failed, skipping it", self._pretty(candidate))
                continue

            try:
                frame_blank = self._blank_check(frame.path, ctx.blank_threshold)
            except OSError as exc:
                logger.warning("Unreadable frame at %s: %s", self._pretty(candidate), exc)
                continue

            chosen = frame
            blank = frame_blank
            if not blank:
                break
            remaining = candidates[index + 1:]
            if remaining:
                ctx.decide(
                    DecisionKind.BLANK,
                    f"Blank (enough) frame detected. Retrying at {self._pretty(remaining[0])}.",
                    level=logging.WARNING,
                )

        if chosen is not None and blank:
            ctx.decide(DecisionKind.BLANK, "Blank (enough) frame detected. Giving up.", level=logging.WARNING)

        if chosen is None:
            raise CaptureFailedError(
                f"Failed to capture frame at {self._pretty(timestamp)} ({timestamp}s).",
                timestamp=timestamp,
            )

        if chosen.reused:
            shutil.copyfile(chosen.path, output)
        else:
            shutil.move(str(chosen.path), str(output))

        entry = CachedCapture(path=output, timestamp=chosen.timestamp)
        ctx.cache.setdefault(self.cache_key(chosen.timestamp), entry)
        ctx.cache[key] = entry

        if self.cache_key(chosen.timestamp) != key:
            ctx.decide(
                DecisionKind.EVASION,
                f"Capture point changed to {self._pretty(chosen.timestamp)}",
            )
        return CaptureResult(path=output, timestamp=chosen.timestamp, blank=blank)
