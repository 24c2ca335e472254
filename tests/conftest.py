from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from src.config_loader import fresh_app_config
from src.datatypes import AppConfig
from src.vidcaps.context import ProcessingContext, TempFileRegistry
from src.vidcaps.models import IdentifierRole, QuirksState
from src.vidcaps.tools import Toolset
from tests.helpers.decoders import FakeDecoder, sample_record


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Default configuration with scratch files kept under the test's tmp dir."""

    cfg = fresh_app_config()
    cfg.runtime.temp_dir = str(tmp_path / "scratch")
    return cfg


@pytest.fixture
def temp_files(tmp_path: Path):
    registry = TempFileRegistry(tmp_path / "scratch")
    yield registry
    registry.cleanup()


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    """An existing input path; decoders are faked, so the content is irrelevant."""

    path = tmp_path / "clip.mkv"
    path.write_bytes(b"\x1a\x45\xdf\xa3")
    return path


@pytest.fixture
def fake_ffmpeg() -> FakeDecoder:
    return FakeDecoder("ffmpeg", has_ms=True, record=sample_record())


@pytest.fixture
def fake_mplayer() -> FakeDecoder:
    return FakeDecoder("mplayer", has_ms=False, record=sample_record(frame_rate=25.0, frame_rate_decimals=3))


@pytest.fixture
def toolset(fake_mplayer: FakeDecoder, fake_ffmpeg: FakeDecoder) -> Toolset:
    return Toolset(
        primary=fake_mplayer,
        secondary=fake_ffmpeg,
        capturer=fake_ffmpeg,
        capturer_role=IdentifierRole.SECONDARY,
    )


@pytest.fixture
def make_context(video_file: Path, temp_files: TempFileRegistry):
    """Build a capture context around a decoder with an already reconciled record."""

    def _make(decoder: FakeDecoder, *, duration: float = 600.0, **kwargs) -> ProcessingContext:
        return ProcessingContext(
            source=video_file,
            decoder=decoder,
            temp_files=temp_files,
            quirks=QuirksState(),
            record=sample_record(duration=duration),
            **kwargs,
        )

    return _make
