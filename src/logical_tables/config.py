"""Engine configuration from the environment or a YAML file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from logical_tables.errors import ScriptError
from logical_tables.formats import FormatSettings

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 30000

_ENV_PREFIX = "LT_"


@dataclass
class EngineConfig:
    """Settings for a :class:`~logical_tables.storage.Database`.

    Templates are not checked here; an invalid one raises
    :class:`~logical_tables.errors.TemplateError` when the database builds
    its format engine.
    """

    date_format: str = FormatSettings.date_format
    time_format: str = FormatSettings.time_format
    datetime_format: str = FormatSettings.datetime_format
    purge_scratch_on_start: bool = True
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS

    @property
    def format_settings(self) -> FormatSettings:
        return FormatSettings(
            date_format=self.date_format,
            time_format=self.time_format,
            datetime_format=self.datetime_format,
        )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Read ``LT_DATE_FORMAT``, ``LT_TIME_FORMAT``, ``LT_DATETIME_FORMAT`` and ``LT_BUSY_TIMEOUT_MS``."""
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = env.get(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                logger.warning("invalid integer %s=%r, using %d", name, raw, default)
                return default

        config = cls()
        for key in ("date_format", "time_format", "datetime_format"):
            value = env.get(_ENV_PREFIX + key.upper())
            if value:
                setattr(config, key, value)
        config.busy_timeout_ms = max(0, _int("LT_BUSY_TIMEOUT_MS", DEFAULT_BUSY_TIMEOUT_MS))
        return config

    @classmethod
    def from_file(cls, path: str | Path) -> EngineConfig:
        """Load a YAML mapping with the field names of this class as keys.

        Unknown keys are ignored with a warning.

        Raises:
            ScriptError: If the file is not valid YAML or does not hold a mapping.
        """
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ScriptError(f"Configuration file {path} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ScriptError(f"Configuration file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("ignoring unknown configuration key '%s'", key)
                continue
            values[key] = value
        config = cls(**values)
        for key in ("date_format", "time_format", "datetime_format"):
            if not isinstance(getattr(config, key), str):
                raise ScriptError(f"{key} must be a string, got {getattr(config, key)!r}")
        try:
            config.busy_timeout_ms = int(config.busy_timeout_ms)
        except (TypeError, ValueError):
            raise ScriptError(f"busy_timeout_ms must be an integer, got {config.busy_timeout_ms!r}") from None
        config.purge_scratch_on_start = bool(config.purge_scratch_on_start)
        return config
