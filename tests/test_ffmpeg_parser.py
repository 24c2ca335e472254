import subprocess
from fractions import Fraction
from pathlib import Path
from typing import Any, List

import pytest
from pytest import MonkeyPatch

from src.vidcaps import subproc
from src.vidcaps.decoders.ffmpeg import FFmpegDecoder, parse_identify_output
from tests.helpers.decoders import write_png

BANNER = """\
Input #0, matroska,webm, from 'clip.mkv':
  Metadata:
    encoder         : libebml v1.3.0 + libmatroska v1.4.0
  Duration: 00:23:40.04, start: 0.000000, bitrate: 2345 kb/s
    Stream #0:0(eng): Video: h264 (High), yuv420p(progressive), 1280x720 [SAR 1:1 DAR 16:9], 23.98 fps, 23.98 tbr, 1k tbn (default)
    Stream #0:1(jpn): Audio: aac (LC), 48000 Hz, stereo, fltp (default)
    Stream #0:2(eng): Audio: ac3, 48000 Hz, 5.1(side), fltp, 448 kb/s
"""

SEEMS = (
    "Seems stream 0 codec frame rate differs from container frame rate: "
    "47.95 (48000/1001) -> 23.98 (24000/1001)\n"
)


def test_parse_identify_output_fields() -> None:
    record = parse_identify_output(BANNER)

    assert (record.width, record.height) == (1280, 720)
    assert record.duration == pytest.approx(1420.04)
    assert record.frame_rate == pytest.approx(23.98)
    assert record.frame_rate_decimals == 2
    assert record.video_codec_id == "h264"
    assert record.video_codec_name == "MPEG-4 AVC (h.264)"
    assert record.audio_codec_id == "aac"
    assert record.audio_codec_name == "MPEG-4 AAC"
    assert record.audio_channels == 2
    assert record.display_aspect == Fraction(16, 9)


def test_seems_line_refines_rate() -> None:
    record = parse_identify_output(SEEMS + BANNER)
    assert record.frame_rate == pytest.approx(23.976)
    assert record.frame_rate_decimals == 3


@pytest.mark.parametrize(
    ("audio", "channels"),
    [
        ("Audio: ac3, 48000 Hz, 5.1(side), fltp", 6),
        ("Audio: dts, 48000 Hz, 7.1, fltp", 8),
        ("Audio: mp3, 44100 Hz, mono, fltp", 1),
        ("Audio: pcm_s16le, 44100 Hz, 3 channels, s16", 3),
        ("Audio: opus, 48000 Hz, quad, fltp", 0),
    ],
)
def test_channel_layouts(audio: str, channels: int) -> None:
    record = parse_identify_output(f"    Stream #0:1: {audio}\n")
    assert record.audio_channels == channels


def test_kilo_tbr_and_missing_duration() -> None:
    record = parse_identify_output(
        "  Duration: N/A, bitrate: N/A\n"
        "    Stream #0:0: Video: mjpeg, yuvj420p, 320x240, 1k tbr, 1k tbn\n"
    )
    assert record.duration is None
    assert record.frame_rate == 1000.0
    assert record.video_codec_name == "M-JPEG"
    assert record.audio_codec_name == "no audio"


def test_fps_fallback_without_tbr() -> None:
    record = parse_identify_output("    Stream #0:0: Video: mpeg4, yuv420p, 640x480, 29.97 fps\n")
    assert record.frame_rate == pytest.approx(29.97)
    assert record.frame_rate_decimals == 2


def test_build_capture_command_seeks_before_input() -> None:
    decoder = FFmpegDecoder("/usr/bin/ffmpeg")
    cmd = decoder.build_capture_command(Path("in.mkv"), 12.5, Path("out.png"))
    assert cmd[:7] == ["/usr/bin/ffmpeg", "-y", "-nostdin", "-loglevel", "error", "-ss", "12.500"]
    assert cmd[7:9] == ["-i", "in.mkv"]
    assert cmd[-3:] == ["-f", "image2", "out.png"]
    assert cmd.count("-ss") == 1


def test_build_capture_command_seek_after_input() -> None:
    decoder = FFmpegDecoder("/usr/bin/ffmpeg", seek_after_input=True)
    cmd = decoder.build_capture_command(Path("in.mkv"), 3, Path("out.png"), ("-s", "96x96"))
    assert cmd.index("-i") < cmd.index("-ss")
    assert cmd[cmd.index("-ss") + 1] == "3.000"
    assert "96x96" in cmd


def test_capture_requires_output_file(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    calls: List[List[str]] = []

    def fake_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls.append(cmd)
        if len(calls) == 1:
            write_png(Path(cmd[-1]))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subproc, "run_checked", fake_run)
    decoder = FFmpegDecoder("/usr/bin/ffmpeg")

    assert decoder.capture(tmp_path / "in.mkv", 1.0, tmp_path / "first.png")
    assert not decoder.capture(tmp_path / "in.mkv", 2.0, tmp_path / "second.png")


def test_probe_discards_scratch(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        write_png(Path(cmd[-1]))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subproc, "run_checked", fake_run)
    scratch = tmp_path / "probe.png"
    assert FFmpegDecoder("/usr/bin/ffmpeg").probe(tmp_path / "in.mkv", 99.5, scratch)
    assert not scratch.exists()


def test_identify_reads_stderr(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(
        subproc,
        "run_checked",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout="", stderr=BANNER),
    )
    record = FFmpegDecoder("/usr/bin/ffmpeg").identify(Path("clip.mkv"))
    assert record.width == 1280


def test_identify_timeout_returns_empty_record(monkeypatch: MonkeyPatch) -> None:
    def fake_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise subprocess.TimeoutExpired(cmd, 5.0)

    monkeypatch.setattr(subproc, "run_checked", fake_run)
    record = FFmpegDecoder("/usr/bin/ffmpeg", timeout=5).identify(Path("clip.mkv"))
    assert record.duration is None


def test_is_available_checks_png_encoder(monkeypatch: MonkeyPatch) -> None:
    listings = iter(
        [
            " DEV.S. png                  PNG (Portable Network Graphics) image\n",
            " D.V.S. png                  PNG (Portable Network Graphics) image\n",
        ]
    )
    monkeypatch.setattr(
        subproc,
        "run_checked",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout=next(listings), stderr=""),
    )
    decoder = FFmpegDecoder("/usr/bin/ffmpeg")
    assert decoder.is_available()
    assert not decoder.is_available()


def test_capture_rejects_nonzero_exit(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        Path(cmd[-1]).write_bytes(b"\x89PNG\r\n\x1a\ntruncated")
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Conversion failed!")

    monkeypatch.setattr(subproc, "run_checked", fake_run)
    assert not FFmpegDecoder("/usr/bin/ffmpeg").capture(tmp_path / "in.mkv", 1.0, tmp_path / "out.png")
