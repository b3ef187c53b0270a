from __future__ import annotations

import threading

import pytest

from graphassert.core.errors import AssertionFailedError, ConfigurationError
from graphassert.core.execution.scope import AssertionScope, with_scope


def test_failures_are_aggregated_until_the_scope_closes() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as scope:
            scope.add_failure("first problem")
            scope.add_failure("second problem")
            assert scope.failure_messages == ("first problem", "second problem")

    assert info.value.failures == ("first problem", "second problem")
    assert str(info.value) == "first problem\nsecond problem"


def test_scope_without_failures_does_not_raise() -> None:
    with AssertionScope() as scope:
        assert AssertionScope.current() is scope
        assert not scope.has_failures()
    assert AssertionScope.current() is None


def test_nested_scope_hands_failures_to_its_parent() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as outer:
            with AssertionScope() as inner:
                assert inner.parent is outer
                inner.add_failure("inner problem")
            assert outer.failure_messages == ("inner problem",)
            outer.add_failure("outer problem")

    assert info.value.failures == ("inner problem", "outer problem")


def test_terminal_scope_raises_on_its_own_exit() -> None:
    with AssertionScope() as outer:
        with pytest.raises(AssertionFailedError):
            with AssertionScope(terminal=True) as inner:
                inner.add_failure("raised early")
        assert not outer.has_failures()


def test_reasons_apply_to_the_scope_that_declared_them() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as outer:
            outer.because("the {0} matters", "outer")
            with AssertionScope() as inner:
                inner.because("inner wins")
                inner.add_failure("Expected a{reason}.")
            with AssertionScope() as bare:
                bare.add_failure("Expected b{reason}.")

    assert info.value.failures == (
        "Expected a because inner wins.",
        "Expected b because the outer matters.",
    )


def test_unused_reason_placeholder_is_removed() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as scope:
            scope.add_failure("Expected x{reason}.")
    assert info.value.failures == ("Expected x.",)


def test_invalid_reason_fails_immediately() -> None:
    scope = AssertionScope()
    with pytest.raises(ConfigurationError):
        scope.because("needs {0}")


def test_context_placeholder() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope("order") as scope:
            scope.add_failure("Expected {context} to be valid.")
            with AssertionScope() as inner:
                inner.add_failure("Expected {context} to be complete.")
    assert info.value.failures == ("Expected order to be valid.", "Expected order to be complete.")

    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as scope:
            scope.fail_with("Expected {context} to be {0}.", 5)
    assert info.value.failures == ("Expected object to be 5.",)


def test_scope_cannot_be_entered_twice() -> None:
    scope = AssertionScope()
    with scope:
        pass
    with pytest.raises(ConfigurationError):
        with scope:
            pass


def test_pending_failures_travel_with_an_exception_in_flight() -> None:
    with pytest.raises(KeyError) as info:
        with AssertionScope() as scope:
            scope.add_failure("collected before the crash")
            raise KeyError("boom")
    assert info.value.__notes__ == ["collected before the crash"]


def test_discard_clears_failures() -> None:
    with AssertionScope() as scope:
        scope.because("irrelevant")
        scope.add_failure("Expected x{reason}.")
        assert scope.discard() == ["Expected x because irrelevant."]


def test_tracing_is_appended_to_the_failure() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope() as outer:
            with AssertionScope() as inner:
                inner.append_tracing("Comparing subject")
            outer.add_failure("problem")

    assert info.value.trace == "Comparing subject"
    assert str(info.value) == "problem\n\nWith trace:\nComparing subject"


def test_with_scope_runs_the_body_in_a_fresh_scope() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with_scope(lambda scope: scope.add_failure("Expected y{reason}."), "the {0} said so", ("docs",))
    assert info.value.failures == ("Expected y because the docs said so.",)

    with pytest.raises(ConfigurationError):
        with_scope("not callable")  # type: ignore[arg-type]


def test_threads_do_not_share_scopes() -> None:
    results: dict[str, tuple[str, ...]] = {}
    barrier = threading.Barrier(2)

    def worker(name: str) -> None:
        try:
            with AssertionScope(terminal=True) as scope:
                barrier.wait()
                scope.add_failure(f"failure from {name}")
                barrier.wait()
                assert AssertionScope.current() is scope
        except AssertionFailedError as exc:
            results[name] = exc.failures

    with AssertionScope() as main_scope:
        threads = [threading.Thread(target=worker, args=(name,)) for name in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert not main_scope.has_failures()

    assert results == {"a": ("failure from a",), "b": ("failure from b",)}


def test_placeholders_inside_formatted_values_are_left_alone() -> None:
    with pytest.raises(AssertionFailedError) as info:
        with AssertionScope("order") as scope:
            scope.because("{0} said so", "{context}")
            scope.fail_with("Expected {context} to be {0}{reason}.", "{reason}")
    assert info.value.failures == ('Expected order to be "{reason}" because {context} said so.',)
