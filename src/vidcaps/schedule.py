"""Capture point scheduling.

Everything here is a pure function of its arguments so the same request always
yields the same timestamps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from src.datatypes import TimecodeConfig, TimecodePolicy
from src.utils import (
    IntervalValue,
    parse_interval,
    pretty_stamp,
    resolve_offset,
    round_up_to_multiple,
    to_precision,
    truncate_decimals,
)
from src.vidcaps.errors import IntervalTooLargeError, IntervalTooSmallError, OffsetTooLargeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimecodeRequest:
    """Bounds and policy for one capture set. ``end <= 0`` means "until the end"."""

    policy: TimecodePolicy = TimecodePolicy.INTERVAL
    interval: float = 300.0
    count: int = 16
    start: float = 0.0
    end: float = -1.0
    end_offset: IntervalValue = "5.5%"
    end_offset_explicit: bool = False

    @classmethod
    def from_config(cls, cfg: TimecodeConfig) -> "TimecodeRequest":
        return cls(
            policy=cfg.policy,
            interval=parse_interval(cfg.interval),
            count=cfg.count,
            start=parse_interval(cfg.start),
            end=parse_interval(cfg.end),
            end_offset=cfg.end_offset,
            end_offset_explicit="end_offset" in cfg._provided_keys,
        )


@dataclass(frozen=True)
class Schedule:
    timestamps: Tuple[float, ...]
    warnings: Tuple[str, ...] = ()
    range: Optional[Tuple[float, float]] = None


def merge_timecodes(generated: Iterable[float], manual: Iterable[float], has_ms: bool) -> List[float]:
    """Union both sets, normalize to the capturer's precision, sort and de-duplicate."""

    merged = {to_precision(stamp, has_ms) for stamp in generated}
    merged.update(to_precision(stamp, has_ms) for stamp in manual)
    return sorted(merged)


def extended_count(n_standard: int, factor: float, columns: int) -> int:
    """Size of the extended set, rounded up to fill rows of ``2 * columns`` captures."""

    return round_up_to_multiple(int(n_standard * factor), 2 * max(1, columns))


def _effective_offset(start: float, end: float, request: TimecodeRequest, warnings: List[str]) -> float:
    if request.end > 0:
        # An explicit end bound replaces the end offset.
        return 0.0
    offset = resolve_offset(request.end_offset, end)
    if end - offset - start > 0:
        return offset
    if offset > 0 and not request.end_offset_explicit:
        message = "Default end offset was too high for the video, ignoring it."
        logger.warning(message)
        warnings.append(message)
        return 0.0
    raise OffsetTooLargeError("End offset too high, use e.g. '--end-offset 0'.")


def compute_timecodes(duration: float, request: TimecodeRequest, *, has_ms: bool) -> Schedule:
    """
    Compute the capture points for ``request`` over a video of ``duration`` seconds.

    Raises:
        OffsetTooLargeError: If an explicitly requested end offset leaves no usable span.
        IntervalTooLargeError: If the step is longer than the video.
        IntervalTooSmallError: If the step truncates to zero at the capturer's precision.
    """

    warnings: List[str] = []
    start = max(0.0, request.start)
    end = request.end if 0 < request.end < duration else duration
    offset = _effective_offset(start, end, request, warnings)

    if request.policy is TimecodePolicy.COUNT:
        if request.count == 1:
            step = (end - start) / 2
        else:
            step = (end - offset - start) / request.count
    else:
        step = request.interval
    step = to_precision(step, has_ms)

    if step > duration:
        raise IntervalTooLargeError(
            f"Capture interval ({pretty_stamp(step, has_ms)}) is longer than the video length"
        )
    if step <= 0:
        raise IntervalTooSmallError("Capture interval is too low")

    if request.policy is TimecodePolicy.COUNT and request.count == 1:
        stamps = [truncate_decimals(start + step, 3)]
    else:
        stamps = []
        bound = end - offset
        stamp = truncate_decimals(start + step, 3)
        while stamp <= bound:
            if request.policy is TimecodePolicy.COUNT and len(stamps) >= request.count:
                break
            stamps.append(stamp)
            stamp = truncate_decimals(stamp + step, 3)

    timestamps = tuple(merge_timecodes(stamps, (), has_ms))
    span = (timestamps[0], timestamps[-1]) if timestamps else None
    if span is not None:
        logger.info(
            "Capturing in range [%s-%s]. Total length: %s",
            pretty_stamp(span[0], has_ms),
            pretty_stamp(span[1], has_ms),
            pretty_stamp(duration, has_ms),
        )
    return Schedule(timestamps=timestamps, warnings=tuple(warnings), range=span)


def standard_timecodes(
    duration: float,
    request: TimecodeRequest,
    *,
    has_ms: bool,
    manual: Sequence[float] = (),
    manual_only: bool = False,
) -> Schedule:
    """Standard capture set: computed points plus manual stamps, or manual stamps only."""

    if manual_only:
        timestamps = tuple(merge_timecodes((), manual, has_ms))
        span = (timestamps[0], timestamps[-1]) if timestamps else None
        return Schedule(timestamps=timestamps, range=span)
    computed = compute_timecodes(duration, request, has_ms=has_ms)
    timestamps = tuple(merge_timecodes(computed.timestamps, manual, has_ms))
    span = (timestamps[0], timestamps[-1]) if timestamps else None
    return Schedule(timestamps=timestamps, warnings=computed.warnings, range=span)


def extended_timecodes(
    duration: float,
    request: TimecodeRequest,
    *,
    has_ms: bool,
    n_standard: int,
    factor: float,
    columns: int,
) -> Schedule:
    """Extended capture set, count policy over the same bounds, manual stamps excluded."""

    count = extended_count(n_standard, factor, min(columns, max(1, n_standard)))
    if count <= 0:
        return Schedule(timestamps=())
    return compute_timecodes(
        duration,
        replace(request, policy=TimecodePolicy.COUNT, count=count),
        has_ms=has_ms,
    )


def highlight_timecodes(stamps: Iterable[float], duration: float, *, has_ms: bool) -> List[float]:
    """Highlight stamps past the end of the video are skipped."""

    kept: List[float] = []
    for stamp in merge_timecodes((), stamps, has_ms):
        if stamp > duration:
            logger.warning("Highlight at %s is past the end of the video, skipping it", pretty_stamp(stamp, has_ms))
            continue
        kept.append(stamp)
    return kept
