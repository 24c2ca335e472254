"""Click CLI wiring and entry points for vidcaps."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape

from src.config_loader import ConfigError, fresh_app_config, load_config
from src.datatypes import AppConfig, CapturerChoice, TimecodePolicy
from src.utils import is_percentage, parse_interval
from src.vidcaps.context import TempFileRegistry
from src.vidcaps.errors import AdapterUnavailableError, VidcapsError
from src.vidcaps.report import identification_table, summary_table
from src.vidcaps.runner import RunRequest, build_quirks, identify_file, run
from src.vidcaps.tools import detect_tools

CONFIG_ENV_VAR = "VIDCAPS_CONFIG"
DEFAULT_EXTENDED_FACTOR = 4.0

logger = logging.getLogger(__name__)


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def _configure_logging(quiet: bool, verbose: bool) -> None:
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_app_config(config_path: str | None) -> AppConfig:
    path = config_path or os.environ.get(CONFIG_ENV_VAR) or None
    if not path:
        return fresh_app_config()
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise CLIAppError(
            f"Config file not found: {path}",
            code=2,
            rich_message=f"[red]Config file not found:[/red] {escape(str(path))}",
        ) from exc
    except ConfigError as exc:
        raise CLIAppError(
            f"Config error: {exc}",
            code=2,
            rich_message=f"[red]Config error:[/red] {escape(str(exc))}",
        ) from exc


def _interval_option(value: str | None, option: str) -> float | None:
    if value is None:
        return None
    try:
        return parse_interval(value)
    except ValueError as exc:
        raise click.BadParameter(f"{value!r} is not an interval (e.g. 90, 1m30s, 1h)", param_hint=option) from exc


def _stamps_option(values: Sequence[str], option: str) -> list[float]:
    stamps: list[float] = []
    for value in values:
        stamp = _interval_option(value, option)
        assert stamp is not None
        if stamp < 0:
            raise click.BadParameter(f"{value!r} is negative", param_hint=option)
        stamps.append(stamp)
    return stamps


def _apply_overrides(cfg: AppConfig, options: dict[str, Any]) -> None:
    """Apply command-line values on top of the loaded configuration."""

    timecodes = cfg.timecodes
    interval = _interval_option(options.get("interval"), "--interval")
    if interval is not None:
        if interval <= 0:
            raise click.BadParameter("must be > 0", param_hint="--interval")
        timecodes.policy = TimecodePolicy.INTERVAL
        timecodes.interval = interval
    numcaps = options.get("numcaps")
    if numcaps is not None:
        timecodes.policy = TimecodePolicy.COUNT
        timecodes.count = numcaps
    start = _interval_option(options.get("from_time"), "--from")
    if start is not None:
        timecodes.start = start
    end = _interval_option(options.get("to_time"), "--to")
    if end is not None:
        timecodes.end = end
    end_offset = options.get("end_offset")
    if end_offset is not None:
        if is_percentage(end_offset):
            timecodes.end_offset = end_offset.strip()
        else:
            timecodes.end_offset = _interval_option(end_offset, "--end-offset")
        timecodes._provided_keys.add("end_offset")
    if options.get("extended_factor") is not None:
        timecodes.extended_factor = options["extended_factor"]
    elif options.get("extended") and timecodes.extended_factor <= 0:
        timecodes.extended_factor = DEFAULT_EXTENDED_FACTOR

    capture = cfg.capture
    if options.get("capturer"):
        capture.capturer = CapturerChoice(options["capturer"])
    if options.get("no_evasion"):
        capture.evasion = False

    quirks = cfg.quirks
    if options.get("unbounded_rewind"):
        quirks.max_rewind_seconds = -1.0
    if options.get("no_safe_mode"):
        quirks.safe_mode = False
    if options.get("keep_temp"):
        cfg.runtime.keep_temp = True


def _config_option(func: Any) -> Any:
    return click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False),
        default=None,
        help=f"Path to a TOML config file (defaults to ${CONFIG_ENV_VAR}).",
    )(func)


def _verbosity_options(func: Any) -> Any:
    func = click.option("--verbose", is_flag=True, help="Show diagnostic output.")(func)
    func = click.option("--quiet", is_flag=True, help="Only show warnings and errors.")(func)
    return func


@click.group()
def main() -> None:
    """Identify videos and capture representative frames."""


@main.command("run")
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@_config_option
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."), show_default=True)
@click.option("-i", "--interval", default=None, help="Capture every INTERVAL (e.g. 300, 5m, 1h2m).")
@click.option("-n", "--numcaps", type=click.IntRange(min=1), default=None, help="Capture this many frames.")
@click.option("-f", "--from", "from_time", default=None, help="Start position.")
@click.option("-t", "--to", "to_time", default=None, help="End position.")
@click.option("-E", "--end-offset", default=None, help="Ignore this much at the end (interval or percentage).")
@click.option("-S", "--stamp", "stamps", multiple=True, help="Additional capture point (repeatable).")
@click.option("--manual", is_flag=True, help="Only capture the --stamp points.")
@click.option("-l", "--highlight", "highlights", multiple=True, help="Highlight capture point (repeatable).")
@click.option("-e", "--extended", is_flag=True, help="Also capture the extended set.")
@click.option("--extended-factor", type=click.FloatRange(min=0), default=None, help="Size of the extended set.")
@click.option("--capturer", type=click.Choice([c.value for c in CapturerChoice]), default=None)
@click.option("--no-evasion", is_flag=True, help="Do not retry around blank frames.")
@click.option("--more-rewind", count=True, help="Double the safe measuring budget (repeatable).")
@click.option("--unbounded-rewind", is_flag=True, help="Let safe measuring rewind up to the start.")
@click.option("--finer-step", count=True, help="Halve the safe measuring step (repeatable).")
@click.option("--coarser-step", count=True, help="Double the safe measuring step (repeatable).")
@click.option("--no-safe-mode", is_flag=True, help="Never enable safe measuring.")
@click.option("--keep-temp", is_flag=True, help="Keep temporary files.")
@_verbosity_options
def run_command(
    files: tuple[Path, ...],
    config_path: str | None,
    output_dir: Path,
    *,
    stamps: tuple[str, ...],
    manual: bool,
    highlights: tuple[str, ...],
    more_rewind: int,
    finer_step: int,
    coarser_step: int,
    quiet: bool,
    verbose: bool,
    **options: Any,
) -> None:
    """Capture frames from FILES."""

    _configure_logging(quiet, verbose)
    console = Console()
    try:
        cfg = _load_app_config(config_path)
    except CLIAppError as exc:
        console.print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc

    _apply_overrides(cfg, options)
    manual_stamps = _stamps_option(stamps, "--stamp")
    if manual and not manual_stamps:
        raise click.ClickException("--manual requires at least one --stamp.")

    request = RunRequest(
        files=list(files),
        config=cfg,
        output_dir=output_dir,
        manual_stamps=manual_stamps,
        manual_only=manual,
        highlights=_stamps_option(highlights, "--highlight"),
        rewind_scale=more_rewind,
        step_scale=finer_step - coarser_step,
    )
    try:
        result = run(request)
    except AdapterUnavailableError as exc:
        error = CLIAppError(str(exc), code=3, rich_message=f"[red]{escape(str(exc))}[/red]")
        console.print(error.rich_message)
        raise click.exceptions.Exit(error.code) from exc

    if not quiet:
        console.print(summary_table(result))
    if result.failed:
        raise click.exceptions.Exit(1)


@main.command("identify")
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@_config_option
@click.option("--capturer", type=click.Choice([c.value for c in CapturerChoice]), default=None)
@_verbosity_options
def identify_command(
    files: tuple[Path, ...],
    config_path: str | None,
    capturer: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Print the per-identifier and combined identification of FILES."""

    _configure_logging(quiet, verbose)
    console = Console()
    try:
        cfg = _load_app_config(config_path)
        if capturer:
            cfg.capture.capturer = CapturerChoice(capturer)
        toolset = detect_tools(cfg.capture)
    except CLIAppError as exc:
        console.print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc
    except AdapterUnavailableError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise click.exceptions.Exit(3) from exc

    failures = 0
    for source in files:
        if not source.is_file():
            console.print(f'[red]File "{escape(str(source))}" doesn\'t exist[/red]')
            failures += 1
            continue
        with TempFileRegistry(cfg.runtime.temp_dir or None, keep=cfg.runtime.keep_temp) as temp_files:
            try:
                identification = identify_file(
                    source,
                    toolset,
                    build_quirks(cfg),
                    temp_files,
                    length_threshold=cfg.quirks.length_threshold,
                )
            except VidcapsError as exc:
                console.print(f"[red]{escape(source.name)}:[/red] {escape(str(exc))}")
                failures += 1
                continue
        console.print(identification_table(str(source), identification))
    if failures:
        raise click.exceptions.Exit(1)


cli = main

__all__ = ["CLIAppError", "cli", "main"]
