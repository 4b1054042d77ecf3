from __future__ import annotations

import copy
import os
import platform
from pathlib import Path
from typing import Any

import yaml

from postersmith.constants import DEFAULT_JPEG_QUALITY

DEFAULT_CONFIG: dict[str, Any] = {
    "fonts_dir": None,
    "templates_dir": None,
    "assets_dir": None,
    "output_format": "png",
    "quality": DEFAULT_JPEG_QUALITY,
    "strict_font": False,
    "log_level": "info",
}


def get_user_data_dir() -> Path:
    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "PosterSmith"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "PosterSmith"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "PosterSmith"
    return Path.home() / ".config" / "PosterSmith"


def get_config_path() -> Path:
    override = os.environ.get("POSTERSMITH_CONFIG")
    if override:
        return Path(override)
    return get_user_data_dir() / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path
