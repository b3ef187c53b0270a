from __future__ import annotations

from collections.abc import Callable

EdgeTest = Callable[[int, int], bool]


def _cached(test: EdgeTest) -> EdgeTest:
    # Nested comparisons recurse through this function; it must stay a plain closure.
    cache: dict[tuple[int, int], bool] = {}

    def edge(expectation_index: int, subject_index: int) -> bool:
        key = (expectation_index, subject_index)
        if key not in cache:
            cache[key] = bool(test(expectation_index, subject_index))
        return cache[key]

    return edge


def maximum_matching(expectation_count: int, subject_count: int, edge: EdgeTest) -> dict[int, int]:
    """Pair expectation indexes with subject indexes so that ``edge`` holds for every pair.

    Greedy first-fit in index order runs first, which settles the common case of
    collections that are equivalent element by element with few edge tests. Any
    expectation item left over is then retried with augmenting paths, so the
    result is a maximum matching. Ties resolve towards the lowest subject index.
    """
    edges = _cached(edge)
    by_expectation: dict[int, int] = {}
    by_subject: dict[int, int] = {}

    for expectation_index in range(expectation_count):
        for subject_index in range(subject_count):
            if subject_index in by_subject:
                continue
            if edges(expectation_index, subject_index):
                by_expectation[expectation_index] = subject_index
                by_subject[subject_index] = expectation_index
                break

    for expectation_index in range(expectation_count):
        if expectation_index in by_expectation:
            continue
        _augment(expectation_index, subject_count, edges, by_expectation, by_subject)

    return by_expectation


def _augment(
    root: int,
    subject_count: int,
    edges: EdgeTest,
    by_expectation: dict[int, int],
    by_subject: dict[int, int],
) -> bool:
    # Iterative depth-first search so long alternating paths do not hit the recursion limit.
    visited: set[int] = set()
    chosen: dict[int, int] = {}
    stack: list[tuple[int, int]] = [(root, 0)]

    while stack:
        expectation_index, start = stack[-1]
        advanced = False
        for subject_index in range(start, subject_count):
            if subject_index in visited or not edges(expectation_index, subject_index):
                continue
            visited.add(subject_index)
            stack[-1] = (expectation_index, subject_index + 1)
            chosen[expectation_index] = subject_index
            owner = by_subject.get(subject_index)
            if owner is None:
                for path_expectation, _ in stack:
                    path_subject = chosen[path_expectation]
                    by_expectation[path_expectation] = path_subject
                    by_subject[path_subject] = path_expectation
                return True
            stack.append((owner, 0))
            advanced = True
            break
        if not advanced:
            stack.pop()
    return False


__all__ = ["EdgeTest", "maximum_matching"]
