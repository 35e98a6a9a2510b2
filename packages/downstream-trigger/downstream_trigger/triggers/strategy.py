"""Threshold strategies — pure comparison of a build result with a threshold.

Each strategy is a plain function looked up by enum member, so a policy
only ever stores the serialisable ``Strategy`` value.
"""

from __future__ import annotations

from typing import Callable

from downstream_trigger.triggers.models import Result, Strategy

Comparison = Callable[[Result, Result], bool]


def _and_higher(threshold: Result, actual: Result) -> bool:
    return actual.is_better_or_equal_to(threshold)


def _exact(threshold: Result, actual: Result) -> bool:
    return actual == threshold


def _and_lower(threshold: Result, actual: Result) -> bool:
    return actual.is_worse_or_equal_to(threshold)


_COMPARISONS: dict[Strategy, Comparison] = {
    Strategy.AND_HIGHER: _and_higher,
    Strategy.EXACT: _exact,
    Strategy.AND_LOWER: _and_lower,
}


def evaluate(strategy: Strategy, threshold: Result, actual: Result) -> bool:
    """Return True if *actual* satisfies *threshold* under *strategy*."""
    return _COMPARISONS[strategy](threshold, actual)


def truth_table() -> dict[Strategy, dict[tuple[Result, Result], bool]]:
    """All (threshold, actual) outcomes per strategy, in declaration order."""
    return {
        strategy: {
            (threshold, actual): evaluate(strategy, threshold, actual)
            for threshold in Result
            for actual in Result
        }
        for strategy in Strategy
    }
