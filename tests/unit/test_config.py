from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from graphassert.config import Settings, get_settings, load_settings, reset_settings
from graphassert.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for name in ("GRAPHASSERT_CONFIG", "GRAPHASSERT_STRICT_ORDERING", "GRAPHASSERT_TRACING", "GRAPHASSERT_MAX_FORMAT_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def _write(path: Path, content: str) -> Path:
    path.write_text(content.strip() + "\n", encoding="utf-8")
    return path


def test_defaults_without_file_or_environment() -> None:
    settings = load_settings(environ={})
    assert settings == Settings()
    assert settings.to_dict() == {
        "strict_ordering": False,
        "tracing": False,
        "allow_extra_keys": False,
        "max_format_length": 300,
        "max_format_depth": 5,
        "float_rel_tol": None,
        "float_abs_tol": 0.0,
    }


def test_explicit_file_is_loaded(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "custom.yaml",
        """
strict_ordering: true
max_format_length: 50
float_abs_tol: 0.01
""",
    )
    settings = load_settings(path, environ={})
    assert settings.strict_ordering is True
    assert settings.max_format_length == 50
    assert settings.float_abs_tol == 0.01
    assert settings.source_path == path


def test_default_file_in_working_directory(tmp_path: Path) -> None:
    _write(tmp_path / ".graphassert.yaml", "tracing: yes")
    assert load_settings(environ={}).tracing is True


def test_environment_names_the_file_and_overrides_it(tmp_path: Path) -> None:
    path = _write(tmp_path / "elsewhere.yaml", "strict_ordering: true\nmax_format_length: 40")
    settings = load_settings(
        environ={
            "GRAPHASSERT_CONFIG": str(path),
            "GRAPHASSERT_STRICT_ORDERING": "false",
            "GRAPHASSERT_MAX_FORMAT_LENGTH": "80",
        }
    )
    assert settings.source_path == path
    assert settings.strict_ordering is False
    assert settings.max_format_length == 80


@pytest.mark.parametrize(
    "content",
    [
        "unknown_setting: 1",
        "- just\n- a list",
        "strict_ordering: maybe",
        "max_format_length: 0",
        "max_format_depth: true",
        "float_abs_tol: -1",
        "strict_ordering: [unclosed",
    ],
)
def test_invalid_files_are_rejected(tmp_path: Path, content: str) -> None:
    path = _write(tmp_path / "bad.yaml", content)
    with pytest.raises(ConfigurationError):
        load_settings(path, environ={})


def test_missing_files_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "absent.yaml", environ={})
    with pytest.raises(ConfigurationError):
        load_settings(environ={"GRAPHASSERT_CONFIG": str(tmp_path / "absent.yaml")})


def test_invalid_environment_values_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(environ={"GRAPHASSERT_TRACING": "sometimes"})


def test_empty_file_keeps_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path / "empty.yaml", "# nothing here")
    assert load_settings(path, environ={}).to_dict() == Settings().to_dict()


def test_get_settings_is_cached_until_reset(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("GRAPHASSERT_STRICT_ORDERING", "1")
    assert get_settings().strict_ordering is False
    reset_settings()
    assert get_settings().strict_ordering is True


def test_options_builder_reflects_settings() -> None:
    settings = Settings(strict_ordering=True, tracing=True, allow_extra_keys=True, float_abs_tol=0.5)
    options = settings.options_builder().build()
    assert options.strict_ordering is True
    assert options.tracing is True
    assert options.allow_extra_keys is True
    assert options.float_abs_tol == 0.5
    assert options.uses_float_tolerance
