"""Sequential per-file pipeline: identify, reconcile, schedule, capture, export."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from src.datatypes import AppConfig
from src.utils import pretty_stamp
from src.vidcaps.capture import CaptureEngine
from src.vidcaps.context import ProcessingContext, TempFileRegistry
from src.vidcaps.errors import CaptureFailedError, VidcapsError
from src.vidcaps.models import Decision, MediaRecord, QuirksState, ReconcileResult
from src.vidcaps.reconcile import reconcile
from src.vidcaps.safe_length import scale_rewind, scale_step
from src.vidcaps.schedule import (
    TimecodeRequest,
    extended_timecodes,
    highlight_timecodes,
    standard_timecodes,
)
from src.vidcaps.tools import Toolset, detect_tools

logger = logging.getLogger(__name__)

HIGHLIGHT = "highlight"
STANDARD = "standard"
EXTENDED = "extended"

_FILE_PREFIX = {HIGHLIGHT: "hl", STANDARD: "cap", EXTENDED: "excap"}


def _decision_factory() -> List[Decision]:
    return []


def _frame_factory() -> List["CapturedFrame"]:
    return []


@dataclass
class RunRequest:
    files: Sequence[Path]
    config: AppConfig
    output_dir: Path
    manual_stamps: Sequence[float] = ()
    manual_only: bool = False
    highlights: Sequence[float] = ()
    rewind_scale: int = 0
    step_scale: int = 0
    toolset: Toolset | None = None


@dataclass(frozen=True)
class CapturedFrame:
    kind: str
    index: int
    requested: float
    timestamp: float
    path: Path
    from_cache: bool = False
    blank: bool = False


@dataclass
class Identification:
    """Raw identifier reports next to their reconciliation."""

    primary: Optional[MediaRecord]
    secondary: Optional[MediaRecord]
    result: ReconcileResult


@dataclass
class FileResult:
    source: Path
    record: Optional[MediaRecord] = None
    frames: List[CapturedFrame] = field(default_factory=_frame_factory)
    decisions: List[Decision] = field(default_factory=_decision_factory)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    files: List[FileResult]
    output_dir: Path
    config: AppConfig

    @property
    def failed(self) -> List[FileResult]:
        return [item for item in self.files if not item.ok]


def build_quirks(cfg: AppConfig, *, rewind_scale: int = 0, step_scale: int = 0) -> QuirksState:
    """Fresh per-file quirks state with the operator's budget and step multipliers applied."""

    quirks = QuirksState.from_config(cfg.quirks)
    if rewind_scale:
        scale_rewind(quirks, rewind_scale)
    if step_scale:
        scale_step(quirks, step_scale)
    return quirks


def identify_file(
    source: Path,
    toolset: Toolset,
    quirks: QuirksState,
    temp_files: TempFileRegistry,
    *,
    length_threshold: float,
) -> Identification:
    """Run every available identifier on ``source`` and reconcile their reports."""

    primary = toolset.primary.identify(source) if toolset.primary is not None else None
    secondary = toolset.secondary.identify(source) if toolset.secondary is not None else None

    def probe(timestamp: float) -> bool:
        return toolset.capturer.probe(source, timestamp, temp_files.new_temp_file("-probe.png"))

    result = reconcile(
        primary,
        secondary,
        active_decoder=toolset.capturer_role,
        quirks=quirks,
        probe=probe,
        length_threshold=length_threshold,
    )
    return Identification(primary=primary, secondary=secondary, result=result)


class _FileJob:
    def __init__(self, request: RunRequest, toolset: Toolset, source: Path, temp_files: TempFileRegistry) -> None:
        self.request = request
        self.cfg = request.config
        self.toolset = toolset
        self.source = source
        self.context = ProcessingContext(
            source=source,
            decoder=toolset.capturer,
            temp_files=temp_files,
            quirks=build_quirks(self.cfg, rewind_scale=request.rewind_scale, step_scale=request.step_scale),
            blank_threshold=self.cfg.capture.blank_threshold,
            evasion_offsets=tuple(self.cfg.capture.evasion_offsets),
        )
        self.engine = CaptureEngine(self.context)
        self.frames: List[CapturedFrame] = []

    @property
    def has_ms(self) -> bool:
        return self.toolset.capturer.has_ms

    def _export(self, kind: str, index: int, frame: Path) -> Path:
        target = self.request.output_dir / f"{self.source.stem}-{_FILE_PREFIX[kind]}-{index:06d}.png"
        shutil.copyfile(frame, target)
        return target

    def _capture_set(self, kind: str, stamps: Sequence[float], *, evasion_allowed: bool) -> None:
        total = len(stamps)
        for index, stamp in enumerate(stamps, start=1):
            logger.info("Generating %s capture #%d/%d (%s)...", kind, index, total, pretty_stamp(stamp, self.has_ms))
            scratch = self.context.temp_files.new_temp_file(f"-{_FILE_PREFIX[kind]}-{index:06d}.png")
            try:
                result = self.engine.capture_at(stamp, scratch, evasion_allowed=evasion_allowed)
            except CaptureFailedError:
                if kind == STANDARD and not any(f.kind == STANDARD for f in self.frames):
                    logger.warning("No successful capture, possible unsupported format.")
                raise
            self.frames.append(
                CapturedFrame(
                    kind=kind,
                    index=index,
                    requested=stamp,
                    timestamp=result.timestamp,
                    path=self._export(kind, index, result.path),
                    from_cache=result.from_cache,
                    blank=result.blank,
                )
            )

    def run(self) -> FileResult:
        identification = identify_file(
            self.source,
            self.toolset,
            self.context.quirks,
            self.context.temp_files,
            length_threshold=self.cfg.quirks.length_threshold,
        )
        record = identification.result.record
        self.context.record = record
        self.context.extend_decisions(identification.result.decisions)
        duration = self.context.duration

        request = TimecodeRequest.from_config(self.cfg.timecodes)
        standard = standard_timecodes(
            duration,
            request,
            has_ms=self.has_ms,
            manual=self.request.manual_stamps,
            manual_only=self.request.manual_only,
        )
        highlights = highlight_timecodes(self.request.highlights, duration, has_ms=self.has_ms)

        self._capture_set(HIGHLIGHT, highlights, evasion_allowed=False)
        self._capture_set(STANDARD, standard.timestamps, evasion_allowed=self.cfg.capture.evasion)

        if self.cfg.timecodes.extended_factor > 0 and standard.timestamps:
            extended = extended_timecodes(
                duration,
                request,
                has_ms=self.has_ms,
                n_standard=len(standard.timestamps),
                factor=self.cfg.timecodes.extended_factor,
                columns=self.cfg.timecodes.columns,
            )
            self._capture_set(EXTENDED, extended.timestamps, evasion_allowed=self.cfg.capture.evasion)

        return FileResult(
            source=self.source,
            record=record,
            frames=list(self.frames),
            decisions=list(self.context.decisions),
        )


def process_file(source: Path, request: RunRequest, toolset: Toolset) -> FileResult:
    """
    Process one input; failures are recorded on the result instead of raised.
    """

    if not source.is_file():
        message = f'File "{source}" doesn\'t exist'
        logger.error(message)
        return FileResult(source=source, error=message)

    logger.info("Processing %s...", source)
    runtime = request.config.runtime
    with TempFileRegistry(runtime.temp_dir or None, keep=runtime.keep_temp) as temp_files:
        job = _FileJob(request, toolset, source, temp_files)
        try:
            return job.run()
        except VidcapsError as exc:
            logger.error("%s Can't continue with %s.", exc, source)
            return FileResult(
                source=source,
                record=job.context.record,
                frames=list(job.frames),
                decisions=list(job.context.decisions),
                error=str(exc),
            )


def run(request: RunRequest) -> RunResult:
    """
    Process every requested file strictly one after another.

    Raises:
        AdapterUnavailableError: If no usable decoder was found.
    """

    toolset = request.toolset or detect_tools(request.config.capture)
    request.output_dir.mkdir(parents=True, exist_ok=True)
    results = [process_file(Path(source), request, toolset) for source in request.files]
    return RunResult(files=results, output_dir=request.output_dir, config=request.config)
