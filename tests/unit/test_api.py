from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from graphassert import (
    AssertionFailedError,
    AssertionScope,
    ConfigurationError,
    EquivalencyOptionsBuilder,
    assert_equivalent,
    compare_for_equivalence,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for name in ("GRAPHASSERT_CONFIG", "GRAPHASSERT_STRICT_ORDERING", "GRAPHASSERT_TRACING", "GRAPHASSERT_MAX_FORMAT_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_equivalent_graphs_pass_silently() -> None:
    assert_equivalent({"a": [1, 2]}, {"a": [2, 1]})


def test_failure_lists_discrepancy_and_configuration() -> None:
    with pytest.raises(AssertionFailedError) as info:
        assert_equivalent({"a": 1}, {"a": 2})

    assert info.value.failures == (
        'Expected subject["a"] to be 2, but found 1.\n\n'
        "With configuration:\n"
        "- Compare collections without regard to ordering\n"
        "- Treat cyclic references as equivalent",
    )


def test_because_clause_is_rendered() -> None:
    with pytest.raises(AssertionFailedError) as info:
        assert_equivalent({"a": 1}, {"a": 2}, None, "the {0} changed", "value")
    assert info.value.failures[0].startswith('Expected subject["a"] to be 2 because the value changed, but found 1.')


def test_bad_reason_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        assert_equivalent(1, 1, None, "needs {0} and {1}", "one")


def test_assertions_inside_a_scope_are_aggregated() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as scope:
            scope.because("both fields matter")
            assert_equivalent(1, 2, root="first")
            assert_equivalent("a", "b", root="second")

    first, second = info.value.failures
    assert first.startswith("Expected first to be 2 because both fields matter, but found 1.")
    assert second.startswith('Expected second to be "b" because both fields matter, but found "a"')


def test_configure_callback_may_return_none_or_the_builder() -> None:
    def configure(builder: EquivalencyOptionsBuilder) -> None:
        builder.with_strict_ordering()

    assert len(compare_for_equivalence([1, 2], [2, 1], configure)) == 2
    assert len(compare_for_equivalence([1, 2], [2, 1], lambda b: b.with_strict_ordering())) == 2
    assert compare_for_equivalence([1, 2], [2, 1]) == []


def test_configure_callback_must_return_the_builder() -> None:
    with pytest.raises(ConfigurationError):
        compare_for_equivalence(1, 1, lambda builder: 42)


def test_tracing_is_appended_to_the_scope() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as scope:
            compare_for_equivalence({"a": 1}, {"a": 1}, lambda b: b.with_tracing(), scope=scope)
            scope.add_failure("problem")
    assert "Comparing dictionary at subject" in info.value.trace


def test_settings_supply_the_default_options(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRAPHASSERT_STRICT_ORDERING", "true")
    reset_settings()
    assert len(compare_for_equivalence([1, 2], [2, 1])) == 2
    assert compare_for_equivalence([1, 2], [2, 1], lambda b: b.without_strict_ordering()) == []


def test_format_length_setting_truncates_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRAPHASSERT_MAX_FORMAT_LENGTH", "5")
    reset_settings()
    with pytest.raises(AssertionFailedError) as info:
        assert_equivalent("a" * 20, "b" * 20)
    assert info.value.failures[0].startswith('Expected subject to be "bbbb..., but found "aaaa...')


def test_placeholder_text_in_values_is_reported_verbatim() -> None:
    with pytest.raises(AssertionFailedError) as info:
        assert_equivalent("x", "{reason}")
    assert info.value.failures[0].startswith('Expected subject to be "{reason}", but found "x"')

    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope("order"):
            assert_equivalent({"note": "see {context}"}, {"note": "see it"}, None, "it says {0}", "{context}")
    assert info.value.failures[0].startswith(
        'Expected subject["note"] to be "see it" because it says {context}, but found "see {context}"'
    )
