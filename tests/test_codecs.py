import pytest

from src.vidcaps.decoders import codecs


@pytest.mark.parametrize(
    ("codec_id", "expected"),
    [
        ("avc1", "MPEG-4 AVC"),
        ("0x10000002", "MPEG-2"),
        ("XVID", "Xvid"),
        ("VP6F", "On2 Truemotion VP6"),
        ("IV41", "Indeo Video 4"),
        ("VP31", "On2 VP3"),
        ("ABCD", "ABCD"),
    ],
)
def test_video_codec_name(codec_id: str, expected: str) -> None:
    assert codecs.video_codec_name(codec_id) == expected


@pytest.mark.parametrize(
    ("ffmpeg_name", "expected"),
    [
        ("h264", "avc1"),
        ("rawvideo", codecs.RAW_VIDEO_ID),
        ("wmv3", "WMV3"),
        ("vp9", "vcs_vp9"),
        ("prores", "prores"),
    ],
)
def test_translate_ffmpeg_video_id(ffmpeg_name: str, expected: str) -> None:
    assert codecs.translate_ffmpeg_video_id(ffmpeg_name) == expected


def test_audio_codec_names() -> None:
    assert codecs.audio_codec_name("85") == "MPEG Layer III (MP3)"
    assert codecs.audio_codec_name("MP4A") == "MPEG-4 AAC"
    assert codecs.audio_codec_name("") == "no audio"
    assert codecs.audio_codec_name("AMR-NB") == "AMR-NB"
    assert codecs.audio_codec_name("opus") == "opus"


def test_translate_ffmpeg_audio_id() -> None:
    assert codecs.translate_ffmpeg_audio_id("pcm_s16le") == "1"
    assert codecs.translate_ffmpeg_audio_id("ac3") == "8192"
    assert codecs.audio_codec_name(codecs.translate_ffmpeg_audio_id("qdm2")) == "QDesign"
    assert codecs.audio_codec_name(codecs.translate_ffmpeg_audio_id("mp2")) == "MPEG Layer II (MP2)"
