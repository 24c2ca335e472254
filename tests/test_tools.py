import pytest

from src.datatypes import CaptureConfig, CapturerChoice
from src.vidcaps.errors import AdapterUnavailableError
from src.vidcaps.models import IdentifierRole
from src.vidcaps.tools import detect_tools
from tests.helpers.decoders import FakeDecoder


def _pair(*, mplayer: bool = True, ffmpeg: bool = True) -> dict:
    return {
        "mplayer": FakeDecoder("mplayer", has_ms=False, available=mplayer),
        "ffmpeg": FakeDecoder("ffmpeg", available=ffmpeg),
    }


def test_auto_prefers_ffmpeg() -> None:
    tools = detect_tools(CaptureConfig(), **_pair())
    assert tools.capturer.name == "ffmpeg"
    assert tools.capturer_role is IdentifierRole.SECONDARY
    assert tools.primary is not None and tools.secondary is not None


def test_auto_falls_back_to_mplayer() -> None:
    tools = detect_tools(CaptureConfig(), **_pair(ffmpeg=False))
    assert tools.capturer.name == "mplayer"
    assert tools.capturer_role is IdentifierRole.PRIMARY
    assert tools.secondary is None


def test_explicit_choice_honoured() -> None:
    tools = detect_tools(CaptureConfig(capturer=CapturerChoice.MPLAYER), **_pair())
    assert tools.capturer.name == "mplayer"


def test_explicit_choice_missing() -> None:
    with pytest.raises(AdapterUnavailableError) as excinfo:
        detect_tools(CaptureConfig(capturer=CapturerChoice.FFMPEG), **_pair(ffmpeg=False))
    assert excinfo.value.decoder == "ffmpeg"


def test_no_tools_at_all() -> None:
    with pytest.raises(AdapterUnavailableError, match="No supported video tools"):
        detect_tools(CaptureConfig(), **_pair(mplayer=False, ffmpeg=False))
