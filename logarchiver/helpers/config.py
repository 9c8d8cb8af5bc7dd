"""
==========================
Helpers - Configurations
==========================

This module loads and validates the configuration for both pipelines.

Features:
- Loads configuration from a YAML file (`.config.yml` by default).
- Merges command-line overrides over the file values.
- Builds typed, frozen configuration objects and validates them eagerly, raising
  `ConfigError` before any pipeline stage runs.

Usage:
>>> from logarchiver.helpers.config import load_yaml, file_archive_config
>>> raw = load_yaml(".config.yml")
>>> cfg = file_archive_config(raw.get("file_archive", {}), defaults=raw.get("logging", {}))
>>> print(cfg.keep_days)

*Author: Sudharshan TK*\n
*Created: 2025-09-14*
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from logarchiver.errors import ConfigError

# =========================
# DEFAULTS
# =========================

DEFAULT_CONFIG_FILE = ".config.yml"
DEFAULT_KEEP_DAYS = 14
DEFAULT_LOG_FOLDER = Path("Logs")
DEFAULT_EVENT_LOGS = ("Application", "System")
DEFAULT_SHARE = r"C$\Windows\System32\winevt\Logs"
DEFAULT_EVENT_LOG_APP = "EventLogBackup"

COLLISION_RESUME = "resume"
COLLISION_OVERWRITE = "overwrite"
COLLISION_POLICIES = (COLLISION_RESUME, COLLISION_OVERWRITE)


@dataclass(frozen=True)
class FileArchiveConfig:
    source: Path
    destination: Path
    app_name: str
    keep_days: int = DEFAULT_KEEP_DAYS
    compress_drive: Optional[Path] = None
    log_folder: Path = DEFAULT_LOG_FOLDER
    collision: str = COLLISION_RESUME
    fail_on_bucket_error: bool = False


@dataclass(frozen=True)
class EventLogConfig:
    destination: Path
    hosts: tuple[str, ...]
    logs: tuple[str, ...] = DEFAULT_EVENT_LOGS
    share: str = DEFAULT_SHARE
    clear: bool = False
    app_name: str = DEFAULT_EVENT_LOG_APP
    log_folder: Path = DEFAULT_LOG_FOLDER


def load_yaml(path: str | None, required: bool = False) -> dict:
    """
    Load the YAML configuration file.

    Args:
        path (str | None): File to read. Defaults to `.config.yml` in the working directory.
        required (bool, optional): Raise if the file does not exist. Defaults to False.

    Returns:
        dict: Parsed configuration, empty if the file is absent and not required.
    """
    path = path or DEFAULT_CONFIG_FILE
    if not os.path.isfile(path):
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def merge_overrides(values: dict, overrides: dict) -> dict:
    """
    Return `values` updated with every override that is not None.
    """
    merged = dict(values or {})
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def _require(values: dict, key: str):
    value = values.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(f"Missing required setting: {key}")
    return value


def _as_bool(value, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1", "false", "no", "0"):
        return value.strip().lower() in ("true", "yes", "1")
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _as_list(value, key: str) -> list:
    """
    A YAML list as a list; a single scalar (`hosts: SRV01`) as a one-item list.
    """
    if value is None:
        return []
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ConfigError(f"{key} must be a list or a single name, got {value!r}")


def _existing_dir(value, key: str) -> Path:
    p = Path(str(value)).expanduser()
    if not p.is_dir():
        raise ConfigError(f"{key} is not an existing directory: {p}")
    return p.resolve()


def _check_app_name(name: str, key: str = "app_name") -> str:
    name = str(name).strip()
    if any(sep in name for sep in ("/", "\\")) or name in (".", ".."):
        raise ConfigError(f"{key} must be a plain name, got {name!r}")
    return name


def file_archive_config(values: dict, defaults: dict | None = None) -> FileArchiveConfig:
    """
    Build and validate the file archival configuration.

    Args:
        values (dict): The `file_archive` section merged with command-line overrides.
        defaults (dict | None, optional): Shared settings (e.g. the `logging` section).

    Returns:
        FileArchiveConfig: Validated configuration.

    Raises:
        ConfigError: On any missing or invalid setting.
    """
    defaults = defaults or {}

    source = _existing_dir(_require(values, "source"), "source")
    destination = _existing_dir(_require(values, "destination"), "destination")
    app_name = _check_app_name(_require(values, "app_name"))

    if destination == source or source in destination.parents:
        raise ConfigError("destination cannot be inside source")

    keep_days = values.get("keep_days", DEFAULT_KEEP_DAYS)
    if isinstance(keep_days, bool):
        raise ConfigError(f"keep_days must be an integer, got {keep_days!r}")
    try:
        keep_days = int(keep_days)
    except (TypeError, ValueError):
        raise ConfigError(f"keep_days must be an integer, got {keep_days!r}") from None
    if keep_days < 0:
        raise ConfigError(f"keep_days must not be negative, got {keep_days}")

    compress_drive = values.get("compress_drive")
    if compress_drive is not None:
        compress_drive = _existing_dir(compress_drive, "compress_drive")

    collision = str(values.get("collision", COLLISION_RESUME)).lower()
    if collision not in COLLISION_POLICIES:
        raise ConfigError(
            f"collision must be one of {', '.join(COLLISION_POLICIES)}, got {collision!r}")

    log_folder = values.get("log_folder") or defaults.get("folder") or DEFAULT_LOG_FOLDER

    return FileArchiveConfig(
        source=source,
        destination=destination,
        app_name=app_name,
        keep_days=keep_days,
        compress_drive=compress_drive,
        log_folder=Path(str(log_folder)).expanduser(),
        collision=collision,
        fail_on_bucket_error=_as_bool(
            values.get("fail_on_bucket_error", False), "fail_on_bucket_error"),
    )


def read_hosts_file(path) -> list[str]:
    """
    Read host names, one per line. Blank lines and `#` comments are ignored.

    Args:
        path (str): Hosts file.

    Returns:
        list[str]: Host names in file order.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"Cannot read hosts file {path}: {e}") from e

    hosts = []
    for line in lines:
        line = line.split("#", 1)[0].strip()
        if line:
            hosts.append(line)
    return hosts


def event_log_config(values: dict, defaults: dict | None = None) -> EventLogConfig:
    """
    Build and validate the event-log backup configuration.

    Hosts are the union of `hosts` and the lines of `hosts_file`, de-duplicated
    case-insensitively in first-seen order.

    Raises:
        ConfigError: On any missing or invalid setting.
    """
    defaults = defaults or {}

    destination = _existing_dir(_require(values, "destination"), "destination")

    raw_hosts = _as_list(values.get("hosts"), "hosts")
    if values.get("hosts_file"):
        raw_hosts.extend(read_hosts_file(values["hosts_file"]))

    hosts, seen = [], set()
    for h in raw_hosts:
        h = str(h).strip()
        if h and h.lower() not in seen:
            seen.add(h.lower())
            hosts.append(h)
    if not hosts:
        raise ConfigError("No hosts configured (hosts or hosts_file)")

    logs = tuple(str(l).strip() for l in (_as_list(values.get("logs"), "logs") or DEFAULT_EVENT_LOGS)
                 if str(l).strip())
    if not logs:
        raise ConfigError("No event logs configured")

    log_folder = values.get("log_folder") or defaults.get("folder") or DEFAULT_LOG_FOLDER

    return EventLogConfig(
        destination=destination,
        hosts=tuple(hosts),
        logs=logs,
        share=str(values.get("share") or DEFAULT_SHARE).strip("\\/"),
        clear=_as_bool(values.get("clear", False), "clear"),
        app_name=_check_app_name(values.get("app_name") or DEFAULT_EVENT_LOG_APP),
        log_folder=Path(str(log_folder)).expanduser(),
    )
