"""Codec id to human-readable name tables.

MPlayer reports FourCCs or numeric tags; FFmpeg reports its own codec names,
which are first translated to the MPlayer id so a single table names both.
"""

from __future__ import annotations

import re
from typing import Dict, Tuple

RAW_VIDEO_ID = "0x00000000"

_VIDEO_NAMES: Dict[str, str] = {
    "0x10000001": "MPEG-1",
    "0x10000002": "MPEG-2",
    RAW_VIDEO_ID: "Raw video",
    "0x00000007": "MPEG-4 AVC",
    "avc1": "MPEG-4 AVC",
    "H264": "MPEG-4 AVC",
    "DIV3": "DivX ;-) Low-Motion",
    "DX50": "DivX 5",
    "FMP4": "FFmpeg",
    "I420": "Raw I420 Video",
    "MJPG": "M-JPEG",
    "MPG4": "MS MPEG-4 V1",
    "MP42": "MS MPEG-4 V2",
    "MP43": "MS MPEG-4 V3",
    "RV10": "RealVideo 1.0/5.0",
    "RV20": "RealVideo G2",
    "RV30": "RealVideo 8",
    "RV40": "RealVideo 9/10",
    "SVQ1": "Sorenson Video 1",
    "SVQ3": "Sorenson Video 3",
    "theo": "Ogg Theora",
    "tscc": "TechSmith SCC",
    "VP80": "VP8",
    "WMV1": "WMV7",
    "WMV2": "WMV8",
    "WMV3": "WMV9",
    "WMVA": "WMV9 Advanced Profile",
    "XVID": "Xvid",
    "3IV2": "3ivx Delta 4.0",
    "FLV1": "Sorenson Spark (FLV1)",
    "FPS1": "Fraps",
    "WVC1": "VC-1",
    "DIV4": "DivX ;-) Fast-Motion",
    "DIVX": "DivX",
    "divx": "DivX",
    "IV50": "Indeo 5.0",
    "VP40": "On2 VP4",
    "VP50": "On2 VP5",
    "s263": "H.263",
    "MSVC": "Microsoft Video 1",
    "MRLE": "Microsoft RLE",
    "3IV1": "3ivx Delta",
    "mp4v": "MPEG-4",
    "MP4V": "MPEG-4",
    "vcs_divx": "DivX ;-)",
    "vcs_hevc": "HEVC",
    "HEVC": "HEVC",
    "vcs_vp9": "VP9",
    "VP90": "VP9",
}

# FourCC families matched by pattern rather than listed one by one.
_VIDEO_PATTERNS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^VP6[012F]$"), "On2 Truemotion VP6"),
    (re.compile(r"^IV4[0-9]$"), "Indeo Video 4"),
    (re.compile(r"^VP3[01]$"), "On2 VP3"),
    (re.compile(r"^IV3[0-9]$"), "Indeo Video 3"),
)

_FFMPEG_VIDEO_IDS: Dict[str, str] = {
    "mpeg1video": "0x10000001",
    "mpeg2video": "0x10000002",
    "rawvideo": RAW_VIDEO_ID,
    "h264": "avc1",
    "mjpeg": "MJPG",
    "msmpeg4v1": "MPG4",
    "msmpeg4v2": "MP42",
    "theora": "theo",
    "camtasia": "tscc",
    "vp6": "VP60",
    "vp6a": "VP60",
    "vp6f": "VP60",
    "vp8": "VP80",
    "hevc": "vcs_hevc",
    "vp9": "vcs_vp9",
    "msmpeg4": "vcs_divx",
    "mpeg4": "mp4v",
    "h263": "s263",
    "vc1": "WVC1",
    "flv": "FLV1",
    "fraps": "FPS1",
    "vp3": "VP30",
    "vp5": "VP50",
    "indeo3": "IV31",
}

_FFMPEG_UPPERCASED = frozenset(
    {"rv10", "rv20", "rv30", "rv40", "svq1", "svq3", "wmv1", "wmv2", "wmv3"}
)

_AUDIO_NAMES: Dict[str, str] = {
    "85": "MPEG Layer III (MP3)",
    "80": "MPEG Layer I/II (MP1/MP2)",
    "mp4a": "MPEG-4 AAC",
    "352": "WMA7",
    "353": "WMA8",
    "354": "WMA9",
    "8192": "AC3",
    "1": "Linear PCM",
    "65534": "Linear PCM",
    "vrbs": "Vorbis",
    "22127": "Vorbis",
    "qdm2": "QDesign",
    "": "no audio",
    "samr": "AMR",
    "355": "WMA9 Lossless",
    "10": "WMA9 Voice",
    "sipr": "RealAudio SIPR",
    "cook": "RealAudio Cook",
}

_FFMPEG_AUDIO_IDS: Dict[str, str] = {
    "mp3": "85",
    "mp1": "MPEG Layer I (MP1)",
    "mp2": "MPEG Layer II (MP2)",
    "aac": "mp4a",
    "wmav1": "352",
    "wmav2": "353",
    "wmapro": "354",
    "ac3": "8192",
    "vorbis": "vrbs",
    "qdm2": "QDM2",
    "libopencore_amrnb": "AMR-NB",
    "libopencore_amrwb": "AMR-WB",
}


def video_codec_name(codec_id: str) -> str:
    """Name an MPlayer video codec id, falling back to the id itself."""

    name = _VIDEO_NAMES.get(codec_id)
    if name is not None:
        return name
    for pattern, label in _VIDEO_PATTERNS:
        if pattern.match(codec_id):
            return label
    return codec_id


def translate_ffmpeg_video_id(codec: str) -> str:
    """Map an FFmpeg video codec name onto the MPlayer id space."""

    if codec in _FFMPEG_UPPERCASED:
        return codec.upper()
    if codec.startswith("hevc "):
        return "vcs_hevc"
    return _FFMPEG_VIDEO_IDS.get(codec, codec)


def audio_codec_name(codec_id: str) -> str:
    """Name an MPlayer audio codec tag; ids containing spaces or dashes pass through."""

    if " " in codec_id or "-" in codec_id:
        return codec_id
    return _AUDIO_NAMES.get(codec_id.lower(), codec_id)


def translate_ffmpeg_audio_id(codec: str) -> str:
    if codec.startswith("pcm_"):
        return "1"
    return _FFMPEG_AUDIO_IDS.get(codec, codec)
