"""Application configuration."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

from kartka.errors import ConfigError

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KARTKA_CONFIG"
DEFAULT_REMOTE = "dropbox:"
DEFAULT_PREVIEW_URL = "https://www.dropbox.com/home/Apps/kartka?preview={name}"
DELETE_POLICIES = ("ask", "always", "never")


def default_config_path() -> Path:
    """Return the config path from the environment or ``~/.config/kartka.toml``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "kartka.toml"


@dataclass(slots=True)
class AppConfig:
    scan_dir: Path
    index_dir: Path
    remote: str = DEFAULT_REMOTE
    preview_url: str = DEFAULT_PREVIEW_URL
    ocr_language: str = "eng"
    ocr_timeout: float = 120.0
    command_timeout: float = 600.0
    raster_dpi: int = 200
    delete_scans: str = "ask"
    rclone_binary: str = "rclone"
    rg_binary: str = "rg"

    def __post_init__(self) -> None:
        self.scan_dir = Path(self.scan_dir).expanduser()
        self.index_dir = Path(self.index_dir).expanduser()
        if self.delete_scans not in DELETE_POLICIES:
            raise ConfigError(
                f"delete_scans must be one of {', '.join(DELETE_POLICIES)}, "
                f"got {self.delete_scans!r}"
            )
        if self.raster_dpi <= 0:
            raise ConfigError(f"raster_dpi must be positive, got {self.raster_dpi}")
        if "{name}" not in self.preview_url:
            raise ConfigError("preview_url must contain a '{name}' placeholder")
        try:
            self.preview_url.format(name="x")
        except (AttributeError, IndexError, KeyError, ValueError) as exc:
            raise ConfigError(f"preview_url is not a valid template: {exc!r}") from exc

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], *, source: Path | None = None) -> "AppConfig":
        where = f" in {source}" if source is not None else ""
        missing = [key for key in ("scan_dir", "index_dir") if key not in data]
        if missing:
            raise ConfigError(f"missing required key(s) {', '.join(missing)}{where}")

        known = {item.name for item in fields(cls)}
        for key in sorted(set(data) - known):
            LOGGER.warning("Ignoring unknown config key %r%s", key, where)

        try:
            return cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as exc:
            raise ConfigError(f"invalid configuration{where}: {exc}") from exc


def load_config(path: Path | None = None) -> AppConfig:
    """Read the TOML configuration file and build an :class:`AppConfig`."""
    config_path = Path(path).expanduser() if path is not None else default_config_path()
    if not config_path.exists():
        raise ConfigError(f"no kartka config found at {config_path}")

    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"could not parse config {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"could not read config {config_path}: {exc}") from exc

    LOGGER.debug("Loaded configuration from %s", config_path)
    return AppConfig.from_mapping(data, source=config_path)
