"""Runtime configuration loaded from a JSON document."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from .fetch.http import DEFAULT_TIMEOUT

DEFAULT_SCALE = (64, 64)

# Keys used by the original bot configuration.
_ALIASES = {
    "botId": "source_author_id",
    "commonScale": "scale",
    "datasetFolderPath": "dataset_dir",
    "backgroundImagePath": "background_path",
    "smallImagePath": "icon_path",
    "pingsFilePath": "subscriptions_path",
    "specialServerIds": "text_only_contexts",
}

_REQUIRED = ("dataset_dir", "subscriptions_path", "source_author_id")


class ConfigError(Exception):
    """Raised when the configuration file is missing, malformed or incomplete."""


@dataclass(slots=True)
class Settings:
    dataset_dir: Path
    subscriptions_path: Path
    source_author_id: str
    scale: tuple[int, int] = DEFAULT_SCALE
    bot_user_id: str = ""
    command_prefix: str = "cl"
    title_prefix: str = "A wild "
    text_only_contexts: frozenset[str] = field(default_factory=frozenset)
    reply_ttl: float | None = 4.0
    background_path: Path | None = None
    icon_path: Path | None = None
    font_path: Path | None = None
    mention_template: str = "<@{watcher_id}>"
    fetch_timeout: float = DEFAULT_TIMEOUT
    match_workers: int = 1


def _parse_scale(value: Any) -> tuple[int, int]:
    if isinstance(value, Mapping):
        width, height = value.get("width"), value.get("height")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        width, height = value
    else:
        raise ConfigError("scale must be {width, height} or a [width, height] pair")
    if any(isinstance(side, bool) or not isinstance(side, int) or side <= 0 for side in (width, height)):
        raise ConfigError("scale width and height must be positive integers")
    return width, height


def _optional_path(value: Any, key: str) -> Path | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a path string")
    return Path(value)


def settings_from_mapping(raw: Mapping[str, Any], base_dir: Path | None = None) -> Settings:
    """Build :class:`Settings` from *raw*, resolving relative paths against *base_dir*."""
    data: dict[str, Any] = {}
    for key, value in raw.items():
        data[_ALIASES.get(key, key)] = value

    missing = [key for key in _REQUIRED if data.get(key) in (None, "")]
    if missing:
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {key: value for key, value in data.items() if key in known}

    try:
        for key in ("dataset_dir", "subscriptions_path"):
            values[key] = Path(str(values[key]))
        for key in ("background_path", "icon_path", "font_path"):
            values[key] = _optional_path(values.get(key), key)
        values["source_author_id"] = str(values["source_author_id"])
        if "bot_user_id" in values:
            values["bot_user_id"] = str(values["bot_user_id"])
        if "scale" in values:
            values["scale"] = _parse_scale(values["scale"])
        if "text_only_contexts" in values:
            contexts = values["text_only_contexts"] or []
            if not isinstance(contexts, (list, tuple)):
                raise ConfigError("text_only_contexts must be a list")
            values["text_only_contexts"] = frozenset(str(item) for item in contexts)
        if values.get("reply_ttl") is not None:
            values["reply_ttl"] = float(values["reply_ttl"])
        if "fetch_timeout" in values:
            values["fetch_timeout"] = float(values["fetch_timeout"])
        if "match_workers" in values:
            values["match_workers"] = int(values["match_workers"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc

    if values.get("match_workers", 1) < 1:
        raise ConfigError("match_workers must be at least 1")

    if base_dir is not None:
        for key in ("dataset_dir", "subscriptions_path", "background_path", "icon_path", "font_path"):
            path = values.get(key)
            if path is not None and not path.is_absolute():
                values[key] = base_dir / path

    return Settings(**values)


def load_settings(path: str | Path) -> Settings:
    """Read the JSON configuration at *path*."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file does not exist: {config_path}")
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8-sig"))
    except ValueError as exc:
        raise ConfigError(f"Malformed configuration file {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a JSON object")
    return settings_from_mapping(raw, base_dir=config_path.parent)
