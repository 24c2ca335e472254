from pathlib import Path

import pytest

from src.vidcaps.context import ProcessingContext, TempFileRegistry
from src.vidcaps.models import DecisionKind
from tests.helpers.decoders import FakeDecoder


def test_registry_creates_directory_lazily(tmp_path: Path) -> None:
    registry = TempFileRegistry(tmp_path / "scratch")
    assert not (tmp_path / "scratch").exists()

    first = registry.new_temp_file(".png")
    second = registry.new_temp_file(".png")

    assert first != second
    assert first.parent == second.parent == registry.directory
    assert first.name.endswith(".png")
    assert registry.files == [first, second]
    registry.cleanup()


def test_cleanup_removes_everything(tmp_path: Path) -> None:
    with TempFileRegistry(tmp_path) as registry:
        scratch = registry.new_temp_file()
        directory = registry.directory
    assert not scratch.exists()
    assert not directory.exists()
    assert registry.files == []


def test_keep_leaves_files_behind(tmp_path: Path) -> None:
    with TempFileRegistry(tmp_path, keep=True) as registry:
        scratch = registry.new_temp_file("-probe.png")
    assert scratch.exists()


def test_cleanup_is_idempotent(tmp_path: Path) -> None:
    registry = TempFileRegistry(tmp_path)
    registry.new_temp_file()
    registry.cleanup()
    registry.cleanup()


def test_context_records_decisions(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    context = ProcessingContext(
        source=tmp_path / "clip.mkv",
        decoder=FakeDecoder(),
        temp_files=TempFileRegistry(tmp_path),
    )
    with caplog.at_level("INFO"):
        decision = context.decide(DecisionKind.EVASION, "Capture point changed to 01:35.00")

    assert context.decisions == [decision]
    assert "Capture point changed" in caplog.text
    context.temp_files.cleanup()


def test_duration_requires_record(tmp_path: Path) -> None:
    context = ProcessingContext(
        source=tmp_path / "clip.mkv",
        decoder=FakeDecoder(),
        temp_files=TempFileRegistry(tmp_path),
    )
    with pytest.raises(RuntimeError):
        _ = context.duration
