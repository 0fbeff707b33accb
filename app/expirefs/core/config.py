"""Retention configuration and settings.

This module provides the configuration model and I/O functions for the
cleanup engine. Configuration is stored in ~/.config/expirefs/config.toml,
either at the top level or under an ``[expirefs]`` table:

    [expirefs]
    folder = "/var/spool/recordings"
    time_type = "mtime"
    filter = "\\.mp4$"
    expire = "7d"
    pressure = 0.9
"""

import math
import os
import re
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from expirefs.core.paths import get_config_path
from expirefs.filesystem.models import TimeType

# Seconds per duration unit suffix
_DURATION_UNITS: dict[str, float] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhdw]?)\s*$", re.IGNORECASE)

# Spellings accepted for an unbounded duration
_INFINITE_DURATIONS: frozenset[str] = frozenset({"inf", "infinity", "never"})


class ExpireFSError(Exception):
    """Base exception for expirefs."""


class ConfigurationError(ExpireFSError):
    """Raised for invalid or unreadable configuration."""


class ConfigNotFoundError(ConfigurationError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigurationError):
    """Raised when the config file cannot be parsed."""


def parse_duration(value: object) -> float:
    """Convert a duration to seconds.

    Accepts numbers (seconds) and strings such as ``"90"``, ``"15m"``,
    ``"24h"``, ``"10d"``, ``"2w"`` or ``"inf"``.

    Args:
        value: Duration to convert.

    Returns:
        Duration in seconds, ``math.inf`` for unbounded.

    Raises:
        ValueError: If the value is not a valid non-negative duration.
    """
    if isinstance(value, bool):
        msg = f"Invalid duration: {value!r}"
        raise ValueError(msg)

    if isinstance(value, int | float):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in _INFINITE_DURATIONS:
            return math.inf
        match = _DURATION_RE.match(text)
        if match is None:
            msg = f"Invalid duration: {value!r} (expected e.g. '30s', '15m', '24h', '7d')"
            raise ValueError(msg)
        seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2) or "s"]
    else:
        msg = f"Invalid duration: {value!r}"
        raise ValueError(msg)

    if math.isnan(seconds) or seconds < 0:
        msg = f"Duration must be non-negative, got {value!r}"
        raise ValueError(msg)
    return seconds


def format_duration(seconds: float) -> str:
    """Format seconds as the largest whole unit, e.g. ``86400 -> "1d"``."""
    if math.isinf(seconds):
        return "inf"
    for unit in ("w", "d", "h", "m"):
        size = _DURATION_UNITS[unit]
        if seconds >= size and seconds % size == 0:
            return f"{int(seconds // size)}{unit}"
    return f"{seconds:g}s"


class ExpireConfig(BaseModel):
    """Configuration for the cleanup engine.

    Attributes:
        folder: Watched root folder, resolved to an absolute path.
        unsafe: Allow watching a filesystem root or top-level directory.
        time_type: Timestamp field used to compute entry age.
        filter: Inclusion regex searched in each file path (None = match all).
        expire: Maximum age in seconds (inf = never expire by age).
        pressure: Usage fraction above which the oldest files are evicted.
        minimum_age: Files younger than this are never evicted for pressure.
        interval: Seconds between scheduled cleanup cycles.
        remove_empty_dirs: Delete any directory found without children.
        remove_cleaned_dirs: Delete directories emptied by a deletion.
        remove_root: Let an emptied-directory collapse delete the folder itself.
        concurrent: Run filesystem calls in worker threads.
        dry: Report deletions without touching storage.
    """

    model_config = ConfigDict(extra="forbid")

    folder: Annotated[Path, Field(description="Watched root folder")]
    unsafe: Annotated[bool, Field(description="Allow watching a root folder")] = False
    time_type: Annotated[
        TimeType,
        Field(description="Timestamp used for age"),
    ] = TimeType.BIRTHTIME
    filter: Annotated[str | None, Field(description="Inclusion regex (None = all)")] = None
    expire: Annotated[float, Field(description="Maximum age in seconds")] = math.inf
    pressure: Annotated[
        float,
        Field(gt=0.0, le=1.0, description="Usage threshold (0-1], 1.0 disables"),
    ] = 1.0
    minimum_age: Annotated[
        float,
        Field(description="Pressure never evicts files younger than this"),
    ] = 0.0
    interval: Annotated[float, Field(gt=0.0, description="Seconds between cycles")] = 300.0
    remove_empty_dirs: bool = False
    remove_cleaned_dirs: bool = True
    remove_root: bool = False
    concurrent: bool = True
    dry: bool = False

    @field_validator("folder", mode="before")
    @classmethod
    def validate_folder(cls, v: object) -> object:
        """Reject a missing folder and expand it to an absolute path."""
        if v is None or (isinstance(v, str | Path) and not str(v).strip()):
            msg = "folder should be specified"
            raise ValueError(msg)
        if isinstance(v, str | Path):
            return Path(os.path.abspath(os.path.expanduser(str(v))))
        return v

    @field_validator("expire", "minimum_age", "interval", mode="before")
    @classmethod
    def validate_duration(cls, v: object) -> float:
        """Accept durations with unit suffixes."""
        return parse_duration(v)

    @field_validator("time_type", mode="before")
    @classmethod
    def validate_time_type(cls, v: object) -> object:
        """Resolve timestamp names, including their long spellings."""
        if isinstance(v, str):
            return TimeType(v)
        return v

    @field_validator("filter")
    @classmethod
    def validate_filter(cls, v: str | None) -> str | None:
        """Check that the inclusion filter is a valid regular expression."""
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            msg = f"filter is not a valid regular expression: {e}"
            raise ValueError(msg) from None
        return v

    @model_validator(mode="after")
    def validate_safe_folder(self) -> "ExpireConfig":
        """Refuse to watch a filesystem root unless unsafe is set."""
        if not self.unsafe and len(self.folder.parts) <= 2:
            msg = (
                f"Cowardly refusing to watch folder {self.folder} as it is a root folder. "
                "To override this behaviour, set unsafe = true"
            )
            raise ValueError(msg)
        return self

    @property
    def filter_pattern(self) -> re.Pattern[str] | None:
        """Compiled inclusion filter, or None to match everything."""
        if self.filter is None:
            return None
        return re.compile(self.filter)

    @property
    def pressure_enabled(self) -> bool:
        return self.pressure < 1.0


def build_config(**options: Any) -> ExpireConfig:
    """Validate options into an ExpireConfig.

    Args:
        **options: ExpireConfig fields.

    Returns:
        Validated ExpireConfig.

    Raises:
        ConfigurationError: If any option is missing or invalid.
    """
    try:
        return ExpireConfig.model_validate(options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ExpireConfig:
    """Load configuration from a TOML file, applying overrides on top.

    An explicit path must exist. When no path is given the default config
    file is used if present; otherwise only the overrides apply.

    Args:
        path: Path to the config file. If None, uses the default config path.
        overrides: Field values taking precedence over the file. None values
            are ignored.

    Returns:
        Validated ExpireConfig object.

    Raises:
        ConfigNotFoundError: If an explicit config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigurationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read config: {e}") from e
        section = raw.get("expirefs", raw)
        if not isinstance(section, dict):
            raise ConfigurationError(f"Invalid 'expirefs' section in {config_path}")
        data.update(section)
    elif path is not None:
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    if overrides:
        data.update({key: value for key, value in overrides.items() if value is not None})

    return build_config(**data)


def save_config(config: ExpireConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The ExpireConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    # Ensure parent directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {"expirefs": config_to_dict(config)}

    tmp_path: Path | None = None
    try:
        # Write atomically using a temporary file in the same directory
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        # Cleanup temp file on failure
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigurationError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: ExpireConfig) -> dict[str, object]:
    """Convert ExpireConfig to a dictionary for TOML serialization.

    Durations are written in their short form and the filter is only
    included when set.

    Args:
        config: The ExpireConfig to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {
        "folder": str(config.folder),
        "time_type": config.time_type.value,
        "expire": format_duration(config.expire),
        "pressure": config.pressure,
        "minimum_age": format_duration(config.minimum_age),
        "interval": format_duration(config.interval),
        "remove_empty_dirs": config.remove_empty_dirs,
        "remove_cleaned_dirs": config.remove_cleaned_dirs,
        "remove_root": config.remove_root,
        "concurrent": config.concurrent,
        "dry": config.dry,
    }

    if config.unsafe:
        result["unsafe"] = True

    if config.filter is not None:
        result["filter"] = config.filter

    return result
