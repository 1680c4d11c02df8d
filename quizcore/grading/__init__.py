"""
Grading.

Metric library, formula evaluator and the orchestrator that combines them.
"""

from .formulas import calculate_earned_points, clamp_points, max_points_for
from .metrics import INCOMPARABLE, MetricRegistry, compute_mistakes
from .orchestrator import (
    LEGACY_DEFAULT_RULES,
    AttemptScore,
    GradableQuestion,
    GradedResult,
    QuestionScore,
    grade,
    grade_by_type_key,
    legacy_rule_for,
    resolve_question_points,
    score_attempt,
)

__all__ = [
    # Metrics
    "INCOMPARABLE",
    "MetricRegistry",
    "compute_mistakes",
    # Formulas
    "calculate_earned_points",
    "clamp_points",
    "max_points_for",
    # Orchestration
    "LEGACY_DEFAULT_RULES",
    "AttemptScore",
    "GradableQuestion",
    "GradedResult",
    "QuestionScore",
    "grade",
    "grade_by_type_key",
    "legacy_rule_for",
    "resolve_question_points",
    "score_attempt",
]
