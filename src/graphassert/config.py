from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from graphassert.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_MAX_FORMAT_DEPTH,
    DEFAULT_MAX_FORMAT_LENGTH,
    ENV_CONFIG_PATH,
    ENV_MAX_FORMAT_LENGTH,
    ENV_STRICT_ORDERING,
    ENV_TRACING,
)
from graphassert.core.equivalency.options import EquivalencyOptionsBuilder
from graphassert.core.errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class Settings:
    strict_ordering: bool = False
    tracing: bool = False
    allow_extra_keys: bool = False
    max_format_length: int = DEFAULT_MAX_FORMAT_LENGTH
    max_format_depth: int = DEFAULT_MAX_FORMAT_DEPTH
    float_rel_tol: float | None = None
    float_abs_tol: float = 0.0
    source_path: Path | None = None

    def options_builder(self) -> EquivalencyOptionsBuilder:
        builder = EquivalencyOptionsBuilder()
        builder.with_ordering("strict" if self.strict_ordering else "loose")
        builder.with_tracing(self.tracing)
        if self.allow_extra_keys:
            builder.allowing_extra_keys()
        if self.float_rel_tol is not None or self.float_abs_tol > 0:
            builder.with_float_tolerance(rel_tol=self.float_rel_tol, abs_tol=self.float_abs_tol)
        return builder

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload.pop("source_path")
        return payload


_SETTING_NAMES = {item.name for item in fields(Settings)} - {"source_path"}


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file is not valid YAML: {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Config file must be a mapping: {path}")
    return loaded


def _parse_bool(raw: Any, *, field_name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    normalized = str(raw).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{field_name} must be a boolean, got {raw!r}")


def _parse_positive_int(raw: Any, *, field_name: str) -> int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"{field_name} must be a positive integer, got {raw!r}")
    try:
        parsed = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{field_name} must be a positive integer, got {raw!r}") from exc
    if parsed <= 0:
        raise ConfigurationError(f"{field_name} must be a positive integer, got {raw!r}")
    return parsed


def _parse_tolerance(raw: Any, *, field_name: str) -> float:
    try:
        parsed = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{field_name} must be a number, got {raw!r}") from exc
    if parsed < 0:
        raise ConfigurationError(f"{field_name} must not be negative")
    return parsed


def _apply_mapping(settings: Settings, raw: Mapping[str, Any], *, origin: str) -> None:
    unknown = sorted(set(raw) - _SETTING_NAMES)
    if unknown:
        raise ConfigurationError(f"Unknown setting(s) in {origin}: {', '.join(unknown)}")

    for name in ("strict_ordering", "tracing", "allow_extra_keys"):
        if name in raw:
            setattr(settings, name, _parse_bool(raw[name], field_name=name))
    for name in ("max_format_length", "max_format_depth"):
        if name in raw:
            setattr(settings, name, _parse_positive_int(raw[name], field_name=name))
    if "float_rel_tol" in raw:
        value = raw["float_rel_tol"]
        settings.float_rel_tol = None if value is None else _parse_tolerance(value, field_name="float_rel_tol")
    if "float_abs_tol" in raw:
        settings.float_abs_tol = _parse_tolerance(raw["float_abs_tol"], field_name="float_abs_tol")


def _apply_environment(settings: Settings, environ: Mapping[str, str]) -> None:
    if ENV_STRICT_ORDERING in environ:
        settings.strict_ordering = _parse_bool(environ[ENV_STRICT_ORDERING], field_name=ENV_STRICT_ORDERING)
    if ENV_TRACING in environ:
        settings.tracing = _parse_bool(environ[ENV_TRACING], field_name=ENV_TRACING)
    if ENV_MAX_FORMAT_LENGTH in environ:
        settings.max_format_length = _parse_positive_int(
            environ[ENV_MAX_FORMAT_LENGTH], field_name=ENV_MAX_FORMAT_LENGTH
        )


def _resolve_config_path(path: Path | None, environ: Mapping[str, str]) -> Path | None:
    if path is not None:
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        return path
    env_path = environ.get(ENV_CONFIG_PATH)
    if env_path:
        candidate = Path(env_path)
        if not candidate.exists():
            raise ConfigurationError(f"Config file named by {ENV_CONFIG_PATH} not found: {candidate}")
        return candidate
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    settings = Settings()
    config_path = _resolve_config_path(path, env)
    if config_path is not None:
        _apply_mapping(settings, _load_yaml(config_path), origin=str(config_path))
        settings.source_path = config_path
    _apply_environment(settings, env)
    return settings


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = load_settings()
    return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    _SETTINGS = None


__all__ = ["Settings", "get_settings", "load_settings", "reset_settings"]
