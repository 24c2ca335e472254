"""Rich renderables for identification dumps and run summaries."""

from __future__ import annotations

from typing import Optional

from rich.markup import escape
from rich.table import Table

from src.utils import pretty_stamp
from src.vidcaps.models import MediaRecord
from src.vidcaps.runner import Identification, RunResult


def _length(record: Optional[MediaRecord]) -> str:
    if record is None or record.duration is None:
        return ""
    return pretty_stamp(record.duration)


def _codec(codec_id: str, name: str) -> str:
    if not codec_id and not name:
        return ""
    return f"{codec_id} ({name})"


def _dimensions(record: MediaRecord) -> str:
    if record.width is None and record.height is None:
        return ""
    return f"{record.width}x{record.height}"


def _aspect(record: MediaRecord) -> str:
    if record.display_aspect is None:
        return ""
    aspect = record.display_aspect
    return f"{aspect.numerator}/{aspect.denominator} ({float(aspect):.4f})"


def _rows(record: Optional[MediaRecord]) -> list[str]:
    if record is None:
        return ["(unavailable)"] + [""] * 6
    return [
        _length(record),
        _codec(record.video_codec_id, record.video_codec_name),
        _dimensions(record),
        "" if record.frame_rate is None else f"{record.frame_rate:.{max(2, record.frame_rate_decimals)}f}",
        _aspect(record),
        _codec(record.audio_codec_id, record.audio_codec_name),
        str(record.audio_channels) if record.audio_channels else "",
    ]


def identification_table(title: str, identification: Identification) -> Table:
    """Per-identifier and combined identification side by side."""

    table = Table(title=escape(title), title_justify="left")
    table.add_column("Field", style="bold")
    table.add_column("MPlayer")
    table.add_column("FFmpeg")
    table.add_column("Combined", style="cyan")
    labels = ["Length", "Video codec", "Dimensions", "FPS", "Aspect", "Audio codec", "Channels"]
    columns = [
        _rows(identification.primary),
        _rows(identification.secondary),
        _rows(identification.result.record),
    ]
    for position, label in enumerate(labels):
        table.add_row(label, *(escape(column[position]) for column in columns))
    return table


def summary_table(result: RunResult) -> Table:
    """One row per processed file with its frame count or failure reason."""

    table = Table(title="Capture summary", title_justify="left")
    table.add_column("File")
    table.add_column("Length")
    table.add_column("Frames", justify="right")
    table.add_column("Status")
    for item in result.files:
        status = "[green]ok[/]" if item.ok else f"[red]{escape(item.error or 'failed')}[/]"
        table.add_row(escape(item.source.name), _length(item.record), str(len(item.frames)), status)
    return table
