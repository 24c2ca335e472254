"""Thin wrapper around :func:`subprocess.run` used for every decoder invocation."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any, Sequence

logger = logging.getLogger(__name__)


def normalize_timeout(value: Any) -> float | None:
    """Return a positive timeout in seconds, or ``None`` when disabled (0, negative or invalid)."""

    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    return seconds


def run_checked(
    cmd: Sequence[str],
    *,
    timeout: float | None = None,
    cwd: str | Path | None = None,
    stdout: Any = subprocess.PIPE,
    stderr: Any = subprocess.PIPE,
    text: bool = True,
) -> subprocess.CompletedProcess[Any]:
    """
    Run ``cmd`` without a shell, with stdin closed and an optional timeout.

    The return code is not checked here; callers decide what counts as
    failure. ``subprocess.TimeoutExpired`` propagates so callers can report
    hung decoders distinctly.

    Raises:
        ValueError: If ``cmd`` is empty or contains non-string arguments.
    """

    argv = list(cmd)
    if not argv or not all(isinstance(part, str) for part in argv):
        raise ValueError(f"Invalid command line: {argv!r}")
    logger.debug("Running %s (timeout=%s)", " ".join(argv), timeout)
    return subprocess.run(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=stdout,
        stderr=stderr,
        timeout=timeout,
        cwd=str(cwd) if cwd is not None else None,
        text=text,
        errors="replace" if text else None,
        check=False,
    )
