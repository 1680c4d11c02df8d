"""
Mistake metrics.

Each metric reduces an untyped (user answer, correct answer) pair to a
mistake count >= 0. When either side cannot be normalized to the shape the
metric expects, the count is INCOMPARABLE, which no formula ever turns
into partial credit.

Metrics are looked up by MistakeMetric through MetricRegistry, so which
metric a template may use is decided only by the allowed-metric table in
quizcore.question_types.models.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Final

from loguru import logger

from quizcore.question_types.models import MistakeMetric

# Largest integer that survives a JSON round trip through a JavaScript client.
INCOMPARABLE: Final[int] = 2**53 - 1

MetricFn = Callable[[Any, Any], int]

DIGITS_RE = re.compile(r"[0-9]+")


# =============================================================================
# Metric Registry
# =============================================================================


class MetricRegistry:
    """
    Registry of metric functions keyed by MistakeMetric.

    Example:
        @MetricRegistry.register(MistakeMetric.SET_DISTANCE)
        def set_distance(user_answer, correct_answer) -> int:
            ...

        metric = MetricRegistry.get(MistakeMetric.SET_DISTANCE)
    """

    _metrics: ClassVar[dict[MistakeMetric, MetricFn]] = {}

    @classmethod
    def register(cls, metric: MistakeMetric):
        """Decorator to register a metric function."""

        def decorator(fn: MetricFn) -> MetricFn:
            cls._metrics[metric] = fn
            logger.debug(f"Registered metric: {metric.value} -> {fn.__name__}")
            return fn

        return decorator

    @classmethod
    def get(cls, metric: MistakeMetric | str) -> MetricFn:
        """Get the metric function, raising KeyError if none is registered."""
        metric = MistakeMetric(metric)
        if metric not in cls._metrics:
            raise KeyError(f"No metric registered for: {metric.value}")
        return cls._metrics[metric]

    @classmethod
    def list_metrics(cls) -> dict[str, MetricFn]:
        """List all registered metrics."""
        return {metric.value: fn for metric, fn in cls._metrics.items()}


def compute_mistakes(metric: MistakeMetric | str, user_answer: Any, correct_answer: Any) -> int:
    """Run the metric registered for `metric`."""
    return MetricRegistry.get(metric)(user_answer, correct_answer)


# =============================================================================
# Normalization
# =============================================================================


def _string_collection(value: Any) -> list[str] | None:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return list(value)


def _string_mapping(value: Any) -> Mapping[str, str] | None:
    if not isinstance(value, Mapping):
        return None
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
        return None
    return value


def normalize_compact_text(value: Any) -> str | None:
    """Drop all whitespace and lowercase; None for non-strings or blanks."""
    if not isinstance(value, str):
        return None
    normalized = "".join(value.split()).lower()
    return normalized or None


def normalize_digits(value: Any) -> str | None:
    """Strip all whitespace; None unless what remains is a non-empty run of ASCII digits."""
    if not isinstance(value, str):
        return None
    compact = "".join(value.split())
    return compact if DIGITS_RE.fullmatch(compact) else None


# =============================================================================
# Metrics
# =============================================================================


@MetricRegistry.register(MistakeMetric.BOOLEAN_CORRECT)
def boolean_correct(user_answer: Any, correct_answer: Any) -> int:
    """0 if both are the same string, 1 otherwise."""
    if not isinstance(user_answer, str) or not isinstance(correct_answer, str):
        return INCOMPARABLE
    return 0 if user_answer == correct_answer else 1


@MetricRegistry.register(MistakeMetric.SET_DISTANCE)
def set_distance(user_answer: Any, correct_answer: Any) -> int:
    """max(missing, extra) between the selected and the correct option sets."""
    user = _string_collection(user_answer)
    correct = _string_collection(correct_answer)
    if user is None or correct is None:
        return INCOMPARABLE

    user_set, correct_set = set(user), set(correct)
    missing = len(correct_set - user_set)
    extra = len(user_set - correct_set)
    return max(missing, extra)


@MetricRegistry.register(MistakeMetric.PAIR_MISMATCH_COUNT)
def pair_mismatch_count(user_answer: Any, correct_answer: Any) -> int:
    """Number of correct pairs the user got wrong or left out."""
    user = _string_mapping(user_answer)
    correct = _string_mapping(correct_answer)
    if user is None or not correct:
        return INCOMPARABLE
    return sum(1 for left_id, right_id in correct.items() if user.get(left_id) != right_id)


@MetricRegistry.register(MistakeMetric.COMPACT_TEXT_EQUAL)
def compact_text_equal(user_answer: Any, correct_answer: Any) -> int:
    """0 if the normalized strings are equal, 1 otherwise."""
    user = normalize_compact_text(user_answer)
    correct = normalize_compact_text(correct_answer)
    if user is None or correct is None:
        return INCOMPARABLE
    return 0 if user == correct else 1


@MetricRegistry.register(MistakeMetric.HAMMING_DIGITS)
def hamming_digits(user_answer: Any, correct_answer: Any) -> int:
    """Length difference plus positional mismatches over the common prefix."""
    user = normalize_digits(user_answer)
    correct = normalize_digits(correct_answer)
    if user is None or correct is None:
        return INCOMPARABLE

    mistakes = abs(len(user) - len(correct))
    mistakes += sum(1 for u, c in zip(user, correct) if u != c)
    return mistakes
