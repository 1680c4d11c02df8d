"""
Scoring formula evaluator.

Turns a mistake count into points under a scoring rule. The result is
always within [0, correct_points] and depends only on the inputs, so a
historical submission re-graded under the same rule gets the same score.
"""

from __future__ import annotations

import math
from typing import Any

from quizcore.question_types.models import ScoringFormula

from .metrics import INCOMPARABLE


def clamp_points(value: Any, max_points: float) -> float:
    """Clamp to [0, max_points]; negative, non-finite and non-numeric values become 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return float(min(value, max_points))


def normalize_mistakes(mistakes: Any) -> int:
    """Anything but a non-negative integer count is treated as INCOMPARABLE."""
    if isinstance(mistakes, bool) or not isinstance(mistakes, int) or mistakes < 0:
        return INCOMPARABLE
    return mistakes


def max_points_for(rule: Any) -> float:
    """The rule's correct_points, clamped to a finite non-negative value."""
    correct_points = rule.correct_points
    if isinstance(correct_points, bool) or not isinstance(correct_points, (int, float)):
        return 0.0
    if not math.isfinite(correct_points) or correct_points < 0:
        return 0.0
    return float(correct_points)


def calculate_earned_points(rule: Any, mistakes: Any) -> float:
    """
    Points awarded for `mistakes` under `rule`.

    exact_match:          correct_points at 0 mistakes, else 0
    one_mistake_partial:  correct_points at 0, one_mistake_points at 1, else 0
    tiers:                correct_points at 0, else the first tier (ascending by
                          max_mistakes) with max_mistakes >= mistakes, else 0
    """
    max_points = max_points_for(rule)
    mistakes = normalize_mistakes(mistakes)

    if mistakes == 0:
        return max_points
    if mistakes >= INCOMPARABLE:
        return 0.0

    formula = ScoringFormula(rule.formula)
    if formula == ScoringFormula.EXACT_MATCH:
        return 0.0
    elif formula == ScoringFormula.ONE_MISTAKE_PARTIAL:
        if mistakes == 1:
            return clamp_points(rule.one_mistake_points, max_points)
        return 0.0
    elif formula == ScoringFormula.TIERS:
        # sorted() is stable: tiers sharing a threshold keep their authored order.
        for tier in sorted(rule.tiers, key=lambda t: t.max_mistakes):
            if tier.max_mistakes >= mistakes:
                return clamp_points(tier.points, max_points)
        return 0.0

    raise ValueError(f"Unhandled scoring formula: {formula.value}")
