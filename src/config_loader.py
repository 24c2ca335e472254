"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import math
import tomllib
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from .datatypes import (
    AppConfig,
    CaptureConfig,
    QuirksConfig,
    RuntimeConfig,
    TimecodeConfig,
)
from .utils import is_percentage, parse_interval


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


_UNBOUNDED_REWIND = -1.0


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_enum(value: Any, dotted_key: str, enum_type: type[Enum]) -> Enum:
    """Return an enum member, coercing string values case-insensitively."""

    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_type:
            member_value = str(member.value).lower()
            if normalized == member_value:
                return member
    raise ConfigError(
        f"{dotted_key} must be one of: {', '.join(str(member.value) for member in enum_type)}"
    )


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned booleans.

    Parameters:
        raw (dict[str, Any]): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {name for name, field in cls_fields.items() if field.type in (bool, "bool")}
    enum_fields = {
        field_name: field.type
        for field_name, field in cls_fields.items()
        if isinstance(field.type, type) and issubclass(field.type, Enum)
    }
    nested_fields = {
        name: field.type
        for name, field in cls_fields.items()
        if is_dataclass(field.type)
    }
    for key, value in raw.items():
        if key.startswith("_"):
            raise ConfigError(f"Invalid keys in [{name}]: {key}")
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in enum_fields:
            cleaned[key] = _coerce_enum(value, f"{name}.{key}", enum_fields[key])
        elif key in nested_fields:
            if not isinstance(value, dict):
                raise ConfigError(f"[{name}.{key}] must be a table")
            cleaned[key] = _sanitize_section(value, f"{name}.{key}", nested_fields[key])
        else:
            cleaned[key] = value
    try:
        instance = cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc
    if hasattr(instance, "_provided_keys"):
        instance._provided_keys = set(raw)
    return instance


def _normalize_float(value: Any, dotted_key: str) -> float:
    """Return ``value`` as a finite float, raising ConfigError otherwise."""

    if isinstance(value, bool):
        raise ConfigError(f"{dotted_key} must be a number")
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{dotted_key} must be a number") from exc
    if not math.isfinite(numeric):
        raise ConfigError(f"{dotted_key} must be a finite number")
    return numeric


def _normalize_interval(value: Any, dotted_key: str, *, allow_percent: bool = False) -> str | float:
    """Validate an interval literal, keeping percentages as strings."""

    if allow_percent and is_percentage(value):
        return str(value).strip()
    try:
        return parse_interval(value)
    except ValueError as exc:
        raise ConfigError(f"{dotted_key} must be an interval such as 90, '1m30s' or '1h'") from exc


def _validate_capture(section: CaptureConfig) -> None:
    threshold = _normalize_float(section.blank_threshold, "capture.blank_threshold")
    if threshold < 0 or threshold >= 50:
        raise ConfigError("capture.blank_threshold must be >= 0 and < 50")
    section.blank_threshold = threshold

    timeout = _normalize_float(section.timeout_seconds, "capture.timeout_seconds")
    if timeout < 0:
        raise ConfigError("capture.timeout_seconds must be >= 0")
    section.timeout_seconds = timeout

    if not isinstance(section.evasion_offsets, list):
        raise ConfigError("capture.evasion_offsets must be a list of numbers")
    offsets: List[float] = []
    for index, value in enumerate(section.evasion_offsets):
        offset = _normalize_float(value, f"capture.evasion_offsets[{index}]")
        if offset == 0:
            raise ConfigError("capture.evasion_offsets must not contain 0")
        offsets.append(offset)
    section.evasion_offsets = offsets


def _validate_timecodes(section: TimecodeConfig) -> None:
    interval = _normalize_interval(section.interval, "timecodes.interval")
    if interval <= 0:
        raise ConfigError("timecodes.interval must be > 0")
    section.interval = interval

    if isinstance(section.count, bool) or not isinstance(section.count, int):
        raise ConfigError("timecodes.count must be an integer")
    if section.count < 1:
        raise ConfigError("timecodes.count must be >= 1")

    start = _normalize_interval(section.start, "timecodes.start")
    if start < 0:
        raise ConfigError("timecodes.start must be >= 0")
    section.start = start

    section.end = _normalize_interval(section.end, "timecodes.end")
    section.end_offset = _normalize_interval(
        section.end_offset, "timecodes.end_offset", allow_percent=True
    )

    if isinstance(section.columns, bool) or not isinstance(section.columns, int):
        raise ConfigError("timecodes.columns must be an integer")
    if section.columns < 1:
        raise ConfigError("timecodes.columns must be >= 1")

    factor = _normalize_float(section.extended_factor, "timecodes.extended_factor")
    if factor < 0:
        raise ConfigError("timecodes.extended_factor must be >= 0")
    section.extended_factor = factor


def _validate_quirks(section: QuirksConfig) -> None:
    threshold = _normalize_float(section.length_threshold, "quirks.length_threshold")
    if threshold <= 0:
        raise ConfigError("quirks.length_threshold must be > 0")
    section.length_threshold = threshold

    step = _normalize_float(section.probe_step_seconds, "quirks.probe_step_seconds")
    if step <= 0:
        raise ConfigError("quirks.probe_step_seconds must be > 0")
    section.probe_step_seconds = step

    rewind = _normalize_float(section.max_rewind_seconds, "quirks.max_rewind_seconds")
    if rewind <= 0 and rewind != _UNBOUNDED_REWIND:
        raise ConfigError("quirks.max_rewind_seconds must be > 0, or -1 for unbounded")
    section.max_rewind_seconds = rewind


def fresh_app_config() -> AppConfig:
    """Return an AppConfig populated with defaults."""

    return AppConfig(
        capture=CaptureConfig(),
        timecodes=TimecodeConfig(),
        quirks=QuirksConfig(),
        runtime=RuntimeConfig(),
    )


def build_config(raw: Dict[str, Any]) -> AppConfig:
    """
    Validate an already-parsed TOML mapping into an :class:`AppConfig`.

    Raises:
        ConfigError: If a section is malformed, contains unknown keys, or a value fails validation.
    """

    known_sections = {"capture", "timecodes", "quirks", "runtime"}
    unknown = sorted(set(raw) - known_sections)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")

    app = AppConfig(
        capture=_sanitize_section(raw.get("capture", {}), "capture", CaptureConfig),
        timecodes=_sanitize_section(raw.get("timecodes", {}), "timecodes", TimecodeConfig),
        quirks=_sanitize_section(raw.get("quirks", {}), "quirks", QuirksConfig),
        runtime=_sanitize_section(raw.get("runtime", {}), "runtime", RuntimeConfig),
    )
    _validate_capture(app.capture)
    _validate_timecodes(app.timecodes)
    _validate_quirks(app.quirks)
    app.runtime.temp_dir = str(app.runtime.temp_dir or "").strip()
    return app


def load_config(path: str | Path) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted), coerces and validates all sections, and returns a fully populated AppConfig ready for use by the pipeline.

    Returns:
        AppConfig: The validated and normalized application configuration.

    Raises:
        ConfigError: If the file is not UTF-8, TOML parsing fails, or any validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc
    return build_config(raw)
