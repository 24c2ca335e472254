"""Merge the primary and secondary identifier reports into one canonical record."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional

from src.vidcaps.decoders.codecs import RAW_VIDEO_ID
from src.vidcaps.decoders.mplayer import SUSPICIOUS_FPS
from src.vidcaps.errors import NoDimensionsError, NoDurationError
from src.vidcaps.models import (
    Decision,
    DecisionKind,
    IdentifierRole,
    MediaRecord,
    QuirksState,
    ReconcileResult,
)
from src.vidcaps.safe_length import ProbeFn, measure_safe_length

logger = logging.getLogger(__name__)

DEFAULT_LENGTH_THRESHOLD = 0.2

# Rates above this reported by the primary are a known false detection.
_IMPLAUSIBLE_FPS = 500.0

MeasureFn = Callable[[float, QuirksState, ProbeFn], float]


class _DecisionLog:
    def __init__(self) -> None:
        self.items: List[Decision] = []

    def add(self, kind: DecisionKind, message: str, *, level: int = logging.INFO) -> None:
        self.items.append(Decision(kind, message))
        logger.log(level, message)


def _merge_frame_rate(record: MediaRecord, other: MediaRecord, log: _DecisionLog) -> MediaRecord:
    if other.frame_rate is None:
        return record
    if record.frame_rate is None:
        reason = "primary reported none"
    elif other.frame_rate_decimals >= 3:
        reason = "secondary carries three decimals"
    elif record.frame_rate > _IMPLAUSIBLE_FPS:
        reason = f"primary reported an implausible {record.frame_rate:g} fps"
    else:
        return record
    log.add(DecisionKind.FRAME_RATE, f"Using secondary frame rate {other.frame_rate:g} ({reason})")
    return replace(
        record,
        frame_rate=other.frame_rate,
        frame_rate_decimals=other.frame_rate_decimals,
    )


def _merge_channels_and_aspect(record: MediaRecord, other: MediaRecord, log: _DecisionLog) -> MediaRecord:
    if other.audio_channels:
        if other.audio_channels != record.audio_channels:
            log.add(DecisionKind.CHANNELS, f"Using secondary channel count {other.audio_channels}")
        record = replace(record, audio_channels=other.audio_channels)
    if other.display_aspect is not None:
        if other.display_aspect != record.display_aspect:
            log.add(DecisionKind.ASPECT, f"Using secondary aspect ratio {other.display_aspect}")
        record = replace(record, display_aspect=other.display_aspect)
    return record


def _canonical_duration(
    primary: Optional[MediaRecord],
    secondary: Optional[MediaRecord],
    *,
    active_decoder: IdentifierRole,
    quirks: QuirksState,
    length_threshold: float,
    log: _DecisionLog,
) -> float:
    active = primary if active_decoder is IdentifierRole.PRIMARY else secondary
    if active is None or active.duration is None:
        raise NoDurationError(
            f"The {active_decoder.value} decoder didn't report a length, seeking won't be possible."
        )

    if primary is None or secondary is None:
        if active.duration == 0:
            raise NoDurationError("Reported length is zero.")
        return active.duration

    primary_len = primary.duration or 0.0
    secondary_len = secondary.duration or 0.0
    if primary_len == 0 and secondary_len == 0:
        raise NoDurationError("Both identifiers reported a zero length.")

    if primary_len and secondary_len:
        canonical = min(primary_len, secondary_len)
        delta = abs(primary_len - secondary_len)
    else:
        canonical = max(primary_len, secondary_len)
        # One zero report is always treated as an inconsistency.
        delta = length_threshold

    if delta >= length_threshold:
        log.add(
            DecisionKind.DURATION,
            f"Reported lengths disagree ({primary_len:g}s vs {secondary_len:g}s), starting from {canonical:g}s",
            level=logging.WARNING,
        )
        if quirks.safe_mode_disabled:
            log.add(DecisionKind.QUIRKS, "Safe mode disabled, not measuring the length.", level=logging.WARNING)
        else:
            quirks.quirks_enabled = True
            log.add(
                DecisionKind.QUIRKS,
                "Found inconsistency in reported length. Safe measuring enabled.",
                level=logging.WARNING,
            )
    return canonical


def _merge_dimensions(record: MediaRecord, other: Optional[MediaRecord], log: _DecisionLog) -> MediaRecord:
    if other is not None:
        if record.width is None or record.height is None:
            log.add(DecisionKind.DIMENSIONS, f"Using secondary dimensions {other.width}x{other.height}")
            record = replace(record, width=other.width, height=other.height)
        if record.width == 0:
            log.add(DecisionKind.DIMENSIONS, f"Using secondary width {other.width}")
            record = replace(record, width=other.width)
        if record.height == 0:
            log.add(DecisionKind.DIMENSIONS, f"Using secondary height {other.height}")
            record = replace(record, height=other.height)
    if not record.has_valid_dimensions:
        raise NoDimensionsError(f"Unable to detect dimensions ({record.width}x{record.height}).")
    return record


def reconcile(
    primary: Optional[MediaRecord],
    secondary: Optional[MediaRecord],
    *,
    active_decoder: IdentifierRole,
    quirks: QuirksState,
    probe: ProbeFn,
    measure: MeasureFn = measure_safe_length,
    length_threshold: float = DEFAULT_LENGTH_THRESHOLD,
) -> ReconcileResult:
    """
    Reconcile two identifier reports into the canonical media record.

    Either report may be ``None`` when its decoder is absent. ``quirks`` is
    updated in place; ``probe`` tests whether a position is reachable with the
    active capturer and ``measure`` runs the safe length search.

    Raises:
        NoDurationError: If no usable length was reported.
        NoDimensionsError: If no positive width and height could be established.
        LengthUnmeasurableError: Propagated from ``measure``.
    """

    log = _DecisionLog()
    primary_len = primary.duration if primary is not None else None
    secondary_len = secondary.duration if secondary is not None else None
    if primary_len is None and secondary_len is None:
        raise NoDurationError("Neither identifier reported a length.")

    base = primary if primary is not None else secondary
    assert base is not None
    other = secondary if primary is not None else None

    record = base
    if other is not None:
        record = _merge_frame_rate(record, other, log)
        record = _merge_channels_and_aspect(record, other, log)

    canonical = _canonical_duration(
        primary,
        secondary,
        active_decoder=active_decoder,
        quirks=quirks,
        length_threshold=length_threshold,
        log=log,
    )
    record = replace(record, duration=canonical)

    record = _merge_dimensions(record, other, log)

    if primary is not None and secondary is not None and primary.video_codec_id == RAW_VIDEO_ID:
        log.add(
            DecisionKind.CODEC,
            f"Primary reported raw video, using secondary codec {secondary.video_codec_id}",
        )
        record = replace(
            record,
            video_codec_id=secondary.video_codec_id,
            video_codec_name=secondary.video_codec_name,
        )

    if (
        primary is not None
        and primary.frame_rate == SUSPICIOUS_FPS
        and not quirks.quirks_enabled
        and not quirks.safe_mode_disabled
    ):
        quirks.quirks_enabled = True
        log.add(DecisionKind.QUIRKS, "Suspect file. Safe measuring enabled.", level=logging.WARNING)

    if not quirks.quirks_enabled and not quirks.safe_mode_disabled:
        if not probe(canonical):
            quirks.quirks_enabled = True
            log.add(
                DecisionKind.QUIRKS,
                "Detected video length can't be reached. Safe measuring enabled.",
                level=logging.WARNING,
            )

    if quirks.quirks_enabled:
        measured = measure(canonical, quirks, probe)
        if measured != canonical:
            log.add(
                DecisionKind.SAFE_LENGTH,
                f"Length adjusted from {canonical:g}s to {measured:g}s",
                level=logging.WARNING,
            )
            record = replace(record, duration=measured)
    elif quirks.safe_mode_disabled:
        logger.warning("Safe mode disabled.")

    return ReconcileResult(record=record, decisions=log.items)
