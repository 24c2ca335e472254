from pathlib import Path

import pytest

from src.config_loader import ConfigError, build_config, fresh_app_config, load_config
from src.datatypes import CapturerChoice, TimecodePolicy
from src.vidcaps.errors import OffsetTooLargeError
from src.vidcaps.schedule import TimecodeRequest, compute_timecodes


def _write(tmp_path: Path, text: str, *, bom: bool = False) -> Path:
    path = tmp_path / "vidcaps.toml"
    data = text.encode("utf-8")
    if bom:
        data = b"\xef\xbb\xbf" + data
    path.write_bytes(data)
    return path


def test_fresh_config_defaults() -> None:
    cfg = fresh_app_config()
    assert cfg.capture.capturer is CapturerChoice.AUTO
    assert cfg.capture.evasion is True
    assert cfg.capture.evasion_offsets == [-5.0, 5.0, -10.0, 10.0, -30.0, 30.0]
    assert cfg.timecodes.policy is TimecodePolicy.INTERVAL
    assert cfg.timecodes.interval == 300.0
    assert cfg.timecodes.end_offset == "5.5%"
    assert cfg.quirks.safe_mode is True
    assert cfg.quirks.max_rewind_seconds == 20.0


def test_load_config_parses_sections(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[capture]
capturer = "MPlayer"
evasion = 0
blank_threshold = 12

[timecodes]
policy = "count"
count = 9
interval = "1m30s"
start = "10s"
end_offset = "2%"
columns = 3
extended_factor = 2

[quirks]
max_rewind_seconds = -1
probe_step_seconds = 0.25

[runtime]
temp_dir = "  /tmp/scratch  "
""",
    )

    cfg = load_config(path)

    assert cfg.capture.capturer is CapturerChoice.MPLAYER
    assert cfg.capture.evasion is False
    assert cfg.capture.blank_threshold == 12.0
    assert cfg.timecodes.policy is TimecodePolicy.COUNT
    assert cfg.timecodes.count == 9
    assert cfg.timecodes.interval == 90.0
    assert cfg.timecodes.start == 10.0
    assert cfg.timecodes.end_offset == "2%"
    assert cfg.timecodes.columns == 3
    assert cfg.timecodes.extended_factor == 2.0
    assert cfg.quirks.max_rewind_seconds == -1.0
    assert cfg.quirks.probe_step_seconds == 0.25
    assert cfg.runtime.temp_dir == "/tmp/scratch"


def test_load_config_accepts_bom(tmp_path: Path) -> None:
    path = _write(tmp_path, "[timecodes]\ncount = 4\n", bom=True)
    assert load_config(path).timecodes.count == 4


def test_provided_keys_track_every_written_key() -> None:
    cfg = build_config({"timecodes": {"end_offset": 0, "interval": 300}})
    assert cfg.timecodes._provided_keys == {"end_offset", "interval"}
    assert cfg.timecodes.end_offset == 0.0


def test_default_valued_end_offset_counts_as_explicit() -> None:
    late_start = {"start": 95, "interval": 2}
    written = TimecodeRequest.from_config(build_config({"timecodes": {**late_start, "end_offset": "5.5%"}}).timecodes)
    implied = TimecodeRequest.from_config(build_config({"timecodes": dict(late_start)}).timecodes)

    assert written.end_offset_explicit
    with pytest.raises(OffsetTooLargeError):
        compute_timecodes(100.0, written, has_ms=True)
    assert compute_timecodes(100.0, implied, has_ms=True).warnings


def test_invalid_toml_reports_config_error(tmp_path: Path) -> None:
    path = _write(tmp_path, "[capture\nevasion = true\n")
    with pytest.raises(ConfigError, match="Failed to parse TOML"):
        load_config(path)


def test_non_utf8_file_rejected(tmp_path: Path) -> None:
    path = tmp_path / "latin1.toml"
    path.write_bytes("[runtime]\ntemp_dir = \"caf\xe9\"\n".encode("latin-1"))
    with pytest.raises(ConfigError, match="UTF-8"):
        load_config(path)


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"screenshots": {}}, "Unknown configuration sections"),
        ({"capture": {"bogus": 1}}, "Invalid keys"),
        ({"capture": {"_provided_keys": []}}, "Invalid keys"),
        ({"capture": {"capturer": "vlc"}}, "capture.capturer must be one of"),
        ({"capture": {"evasion": "maybe"}}, "capture.evasion must be a boolean"),
        ({"capture": {"blank_threshold": 50}}, "blank_threshold"),
        ({"capture": {"evasion_offsets": [5, 0]}}, "must not contain 0"),
        ({"capture": {"evasion_offsets": "5"}}, "list of numbers"),
        ({"timecodes": {"interval": 0}}, "timecodes.interval must be > 0"),
        ({"timecodes": {"interval": "soon"}}, "timecodes.interval must be an interval"),
        ({"timecodes": {"count": 0}}, "timecodes.count must be >= 1"),
        ({"timecodes": {"count": 2.5}}, "timecodes.count must be an integer"),
        ({"timecodes": {"start": -5}}, "timecodes.start must be >= 0"),
        ({"timecodes": {"columns": 0}}, "timecodes.columns must be >= 1"),
        ({"timecodes": {"extended_factor": -1}}, "extended_factor must be >= 0"),
        ({"quirks": {"length_threshold": 0}}, "length_threshold must be > 0"),
        ({"quirks": {"probe_step_seconds": -0.5}}, "probe_step_seconds must be > 0"),
        ({"quirks": {"max_rewind_seconds": 0}}, "-1 for unbounded"),
        ({"runtime": "fast"}, r"\[runtime\] must be a table"),
    ],
)
def test_build_config_validation(raw: dict, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        build_config(raw)
