"""Find the reachable end of a stream whose reported duration cannot be seeked to."""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from src.utils import pretty_stamp, truncate_decimals
from src.vidcaps.errors import LengthUnmeasurableError
from src.vidcaps.models import QuirksState

logger = logging.getLogger(__name__)

ProbeFn = Callable[[float], bool]

# After this many budget doublings the unbounded rewind is suggested instead.
_UNBOUNDED_SUGGESTION_AT = 3


def scale_rewind(quirks: QuirksState, n: int) -> None:
    """Multiply the rewind budget by ``2**n``; an unbounded budget stays unbounded."""

    if quirks.max_rewind_seconds is not None:
        quirks.max_rewind_seconds = quirks.max_rewind_seconds * (2.0 ** n)
    quirks.rewind_scale += n


def scale_step(quirks: QuirksState, n: int) -> None:
    """Divide the probe step by ``2**n`` (finer for ``n > 0``, coarser for ``n < 0``)."""

    quirks.probe_step_seconds = quirks.probe_step_seconds / (2.0 ** n)


def _rewind_budget(duration: float, quirks: QuirksState) -> float:
    configured = quirks.max_rewind_seconds
    if configured is None or configured >= duration:
        quirks.rewind_limit_reached = True
        return duration
    return configured


def _candidates(duration: float, step: float, budget: float) -> Iterator[float]:
    k = 1
    while True:
        rewind = round(k * step, 9)
        if rewind > budget:
            return
        candidate = truncate_decimals(duration - rewind, 3)
        if candidate < 0:
            return
        yield candidate
        k += 1


def _retry_suggestion(quirks: QuirksState) -> str:
    attempt = quirks.rewind_scale + 1
    if attempt >= _UNBOUNDED_SUGGESTION_AT:
        rewind = "--unbounded-rewind"
    else:
        rewind = " ".join(["--more-rewind"] * attempt)
    step = " ".join(["--coarser-step"] * attempt)
    return f"Try re-running with {rewind} {step}."


def measure_safe_length(duration: float, quirks: QuirksState, probe: ProbeFn) -> float:
    """
    Return the largest reachable position at or below ``duration``.

    ``duration`` itself is probed first; when it is reachable the suspicion is
    withdrawn. Otherwise positions ``duration - k * step`` are probed in order
    while the rewind stays within the budget, and the first reachable one wins.

    Raises:
        LengthUnmeasurableError: If no probed position is reachable.
    """

    if probe(duration):
        logger.info("File looks fine, suspicion withdrawn")
        return duration

    logger.warning("Starting safe length measuring (this might take a while)...")
    step = quirks.probe_step_seconds
    budget = _rewind_budget(duration, quirks)
    for candidate in _candidates(duration, step, budget):
        logger.warning("   ... trying %s", pretty_stamp(candidate))
        if probe(candidate):
            return candidate

    if quirks.rewind_limit_reached:
        raise LengthUnmeasurableError(
            "Couldn't measure length in a reasonable amount of tries. "
            "Will not be able to capture this file with the current settings.",
            limit_reached=True,
        )
    suggestion = _retry_suggestion(quirks)
    raise LengthUnmeasurableError(
        "Couldn't measure length in a reasonable amount of tries. "
        f"Capturing won't work, video is at least {pretty_stamp(budget)} shorter than reported. "
        + suggestion,
        limit_reached=False,
        suggestion=suggestion,
    )
