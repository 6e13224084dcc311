from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional
import logging
import os

import yaml

from csv_replace.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CSV_REPLACE_CONFIG"


@dataclass(frozen=True)
class Settings:
    """Run settings. Defaults reproduce the plain two-argument behavior."""
    encoding: str = "utf-8"
    delimiter: str = "|"       # separates the parts of a substitution command
    backup_suffix: str = "bak"

    def with_overrides(self, **overrides: Any) -> "Settings":
        return _validated(replace(self, **{k: v for k, v in overrides.items() if v is not None}))


def _validated(settings: Settings) -> Settings:
    d = settings.delimiter
    if not isinstance(d, str) or len(d) != 1 or d.isalnum() or d.isspace() or d == "\\":
        raise ConfigError(f"Invalid delimiter {d!r}: expected one punctuation character other than backslash")
    if not settings.backup_suffix or "/" in settings.backup_suffix or os.sep in settings.backup_suffix:
        raise ConfigError(f"Invalid backup_suffix {settings.backup_suffix!r}")
    try:
        "".encode(settings.encoding)
    except LookupError as e:
        raise ConfigError(f"Unknown encoding {settings.encoding!r}") from e
    return settings


def load_settings_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file '{path}': {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file '{path}': {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")
    return data


def load_settings(path: Optional[str] = None, *, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Resolve settings from defaults, then a YAML file.

    The file is `path` when given, otherwise the one named by
    CSV_REPLACE_CONFIG. No file means defaults.
    """
    env = os.environ if environ is None else environ
    path = path or env.get(CONFIG_ENV_VAR) or None
    if not path:
        return Settings()

    data = load_settings_file(path)
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown setting(s) in '{path}': {', '.join(unknown)}")

    logger.info(f"Loaded settings from {path}")
    return _validated(Settings(**{k: str(v) for k, v in data.items()}))
