"""Per-file processing state: quirks flags, capture cache, temp files and decisions."""

from __future__ import annotations

import atexit
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from src.vidcaps.models import CachedCapture, Decision, DecisionKind, MediaRecord, QuirksState

if TYPE_CHECKING:
    from src.vidcaps.decoders.base import Decoder

logger = logging.getLogger(__name__)

_SHM_DIR = Path("/dev/shm")


def _default_temp_root() -> Path:
    if _SHM_DIR.is_dir() and os.access(_SHM_DIR, os.W_OK):
        return _SHM_DIR
    return Path(tempfile.gettempdir())


class TempFileRegistry:
    """
    Hands out unique scratch files inside one private directory.

    The directory is created on first use under ``root`` (``/dev/shm`` when
    writable, the system temp dir otherwise) and removed by :meth:`cleanup`,
    which runs when the registry is used as a context manager and again at
    interpreter exit. ``keep`` leaves everything on disk for inspection.
    """

    def __init__(self, root: str | Path | None = None, *, keep: bool = False) -> None:
        self._root = Path(root) if root else _default_temp_root()
        self._keep = keep
        self._directory: Optional[Path] = None
        self._files: List[Path] = []
        atexit.register(self.cleanup)

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._root.mkdir(parents=True, exist_ok=True)
            self._directory = Path(tempfile.mkdtemp(prefix="vidcaps.", dir=str(self._root)))
            logger.debug("Created temporary directory %s", self._directory)
        return self._directory

    @property
    def files(self) -> List[Path]:
        return list(self._files)

    def new_temp_file(self, suffix: str = "") -> Path:
        """Create an empty, uniquely named file and register it for cleanup."""

        fd, name = tempfile.mkstemp(prefix="vidcaps-", suffix=suffix, dir=str(self.directory))
        os.close(fd)
        path = Path(name)
        self._files.append(path)
        return path

    def cleanup(self) -> None:
        atexit.unregister(self.cleanup)
        if self._directory is None:
            return
        if self._keep:
            logger.info("Keeping temporary files in %s", self._directory)
        else:
            shutil.rmtree(self._directory, ignore_errors=True)
            logger.debug("Removed temporary directory %s", self._directory)
        self._directory = None
        self._files.clear()

    def __enter__(self) -> "TempFileRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


def _cache_factory() -> Dict[float, CachedCapture]:
    return {}


def _decision_factory() -> List[Decision]:
    return []


@dataclass
class ProcessingContext:
    """
    Everything that belongs to the file currently being processed.

    A fresh context is built for every input; nothing here is shared across
    files.
    """

    source: Path
    decoder: "Decoder"
    temp_files: TempFileRegistry
    quirks: QuirksState = field(default_factory=QuirksState)
    record: Optional[MediaRecord] = None
    blank_threshold: float = 10.0
    evasion_offsets: tuple[float, ...] = (-5.0, 5.0, -10.0, 10.0, -30.0, 30.0)
    cache: Dict[float, CachedCapture] = field(default_factory=_cache_factory)
    decisions: List[Decision] = field(default_factory=_decision_factory)

    def decide(self, kind: DecisionKind, message: str, *, level: int = logging.INFO) -> Decision:
        """Log ``message`` and append it to the decision log."""

        decision = Decision(kind, message)
        self.decisions.append(decision)
        logger.log(level, message)
        return decision

    def extend_decisions(self, decisions: List[Decision]) -> None:
        self.decisions.extend(decisions)

    @property
    def duration(self) -> float:
        if self.record is None or self.record.duration is None:
            raise RuntimeError("Processing context has no reconciled duration yet")
        return self.record.duration
