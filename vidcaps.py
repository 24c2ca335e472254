"""Public shim exposing the vidcaps CLI and library surface."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional, cast

import src.vidcaps.cli_entry as _cli_entry
from src.config_loader import ConfigError, fresh_app_config, load_config
from src.datatypes import AppConfig
from src.vidcaps import runner
from src.vidcaps.errors import VidcapsError

CLIAppError = _cli_entry.CLIAppError
RunResult = runner.RunResult
RunRequest = runner.RunRequest

__all__ = (
    "run_files",
    "main",
    "RunRequest",
    "RunResult",
    "CLIAppError",
    "ConfigError",
    "VidcapsError",
)


def run_files(
    files: Iterable[str | Path],
    output_dir: str | Path = ".",
    *,
    config: Optional[AppConfig] = None,
    config_path: str | None = None,
    manual_stamps: Iterable[float] = (),
    manual_only: bool = False,
    highlights: Iterable[float] = (),
) -> RunResult:
    """Delegate to the shared runner module."""
    if config is None:
        config = load_config(config_path) if config_path else fresh_app_config()
    request = RunRequest(
        files=[Path(item) for item in files],
        config=config,
        output_dir=Path(output_dir),
        manual_stamps=tuple(manual_stamps),
        manual_only=manual_only,
        highlights=tuple(highlights),
    )
    return runner.run(request)


main = _cli_entry.main
cli = getattr(_cli_entry, "cli", main)


if __name__ == "__main__":
    _entry_point = cast(Callable[[], None], main)
    _entry_point()
