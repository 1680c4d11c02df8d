"""
Grading orchestrator.

grade() runs the metric named by the effective type's scoring rule, then
feeds the mistake count to the formula evaluator. Keys that are no longer
configured fall back to the legacy default rules so that old submissions
can always be re-graded.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from quizcore.config import get_settings
from quizcore.errors import UnknownQuestionTypeError
from quizcore.question_types.models import (
    ExactMatchRule,
    MistakeMetric,
    OneMistakePartialRule,
    QuestionTypeDefinition,
)

from .formulas import calculate_earned_points, max_points_for
from .metrics import compute_mistakes

# Rules used before question types were configurable, keyed by the old type names.
LEGACY_DEFAULT_RULES: dict[str, ExactMatchRule | OneMistakePartialRule] = {
    "radio": ExactMatchRule(mistake_metric=MistakeMetric.BOOLEAN_CORRECT, correct_points=1),
    "short_answer": ExactMatchRule(mistake_metric=MistakeMetric.COMPACT_TEXT_EQUAL, correct_points=1),
    "sequence": OneMistakePartialRule(
        mistake_metric=MistakeMetric.HAMMING_DIGITS, correct_points=2, one_mistake_points=1
    ),
    "matching": OneMistakePartialRule(
        mistake_metric=MistakeMetric.PAIR_MISMATCH_COUNT, correct_points=2, one_mistake_points=1
    ),
    "checkbox": OneMistakePartialRule(
        mistake_metric=MistakeMetric.SET_DISTANCE, correct_points=2, one_mistake_points=1
    ),
}


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class GradedResult:
    """Outcome of grading one answer."""
    earned_points: float
    max_points: float
    is_correct: bool
    mistakes_count: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) keys."""
        return {
            "earnedPoints": self.earned_points,
            "maxPoints": self.max_points,
            "isCorrect": self.is_correct,
            "mistakesCount": self.mistakes_count,
        }


@dataclass(frozen=True)
class GradableQuestion:
    """A stored question as the grader needs it."""
    id: str
    type: str
    correct_answer: Any
    points: float = 0.0  # stored max points, used when the type is unknown


@dataclass(frozen=True)
class QuestionScore:
    """Per-question line of an attempt."""
    question_id: str
    question_type: str
    user_answer: Any
    result: GradedResult


@dataclass(frozen=True)
class AttemptScore:
    """Totals for a submitted attempt."""
    earned_points: float
    total_points: float
    score_percentage: float
    passed: bool
    results: tuple[QuestionScore, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "earnedPoints": self.earned_points,
            "totalPoints": self.total_points,
            "scorePercentage": self.score_percentage,
            "passed": self.passed,
            "results": [
                {
                    "questionId": item.question_id,
                    "questionType": item.question_type,
                    "userAnswer": item.user_answer,
                    **item.result.to_dict(),
                }
                for item in self.results
            ],
        }


# =============================================================================
# Grading
# =============================================================================


def grade_with_rule(rule: Any, user_answer: Any, correct_answer: Any) -> GradedResult:
    """Metric first, then formula."""
    mistakes = compute_mistakes(rule.mistake_metric, user_answer, correct_answer)
    earned = calculate_earned_points(rule, mistakes)
    return GradedResult(
        earned_points=earned,
        max_points=max_points_for(rule),
        is_correct=mistakes == 0,
        mistakes_count=mistakes,
    )


def grade(effective_type: QuestionTypeDefinition, user_answer: Any, correct_answer: Any) -> GradedResult:
    """Grade one answer under a resolved question type."""
    result = grade_with_rule(effective_type.scoring_rule, user_answer, correct_answer)
    logger.debug(
        f"Graded '{effective_type.key}': mistakes={result.mistakes_count} "
        f"earned={result.earned_points}/{result.max_points}"
    )
    return result


def legacy_rule_for(type_key: str, fallback_max_points: float = 0.0) -> ExactMatchRule | OneMistakePartialRule:
    """Legacy rule for an old type name; anything else is exact-match worth its stored points."""
    rule = LEGACY_DEFAULT_RULES.get(type_key)
    if rule is not None:
        return rule
    points = fallback_max_points
    if isinstance(points, bool) or not isinstance(points, (int, float)) or not math.isfinite(points) or points < 0:
        points = 0.0
    return ExactMatchRule(mistake_metric=MistakeMetric.BOOLEAN_CORRECT, correct_points=points)


def grade_by_type_key(
    type_key: str,
    type_map: Mapping[str, QuestionTypeDefinition],
    user_answer: Any,
    correct_answer: Any,
    fallback_max_points: float = 0.0,
    strict: bool | None = None,
) -> GradedResult:
    """
    Grade an answer for a question stored with `type_key`.

    Disabled types are still graded with their configured rule as long as
    they are in the map. Keys missing from the map use the legacy rules.

    Raises:
        UnknownQuestionTypeError: only when strict mode is on
    """
    effective_type = type_map.get(type_key)
    if effective_type is not None:
        return grade(effective_type, user_answer, correct_answer)

    if strict is None:
        strict = get_settings().strict_unknown_types
    if strict:
        raise UnknownQuestionTypeError(type_key)

    logger.warning(f"Question type '{type_key}' is not configured, grading with legacy defaults")
    return grade_with_rule(legacy_rule_for(type_key, fallback_max_points), user_answer, correct_answer)


def resolve_question_points(
    type_key: str,
    fallback_points: float,
    type_map: Mapping[str, QuestionTypeDefinition],
) -> float:
    """Points a stored question should carry under the current configuration."""
    effective_type = type_map.get(type_key)
    if effective_type is not None:
        points = effective_type.scoring_rule.correct_points
        if isinstance(points, (int, float)) and math.isfinite(points) and points >= 0:
            return float(points)
    return fallback_points


def score_attempt(
    questions: Iterable[GradableQuestion],
    answers: Mapping[str, Any],
    type_map: Mapping[str, QuestionTypeDefinition],
    passing_score: float | None = None,
    strict: bool | None = None,
) -> AttemptScore:
    """
    Grade every question of a submitted attempt.

    Unanswered questions are graded with a None answer (incomparable, so 0
    points). `passing_score` is a percentage; None means every attempt passes.
    """
    results: list[QuestionScore] = []
    earned_total = 0.0
    max_total = 0.0

    for question in questions:
        user_answer = answers.get(question.id)
        result = grade_by_type_key(
            question.type,
            type_map,
            user_answer,
            question.correct_answer,
            fallback_max_points=question.points,
            strict=strict,
        )
        earned_total += result.earned_points
        max_total += result.max_points
        results.append(QuestionScore(question.id, question.type, user_answer, result))

    percentage = (earned_total / max_total) * 100 if max_total > 0 else 0.0
    passed = True if passing_score is None else percentage >= passing_score

    logger.info(
        f"Scored attempt: {earned_total}/{max_total} ({percentage:.1f}%), "
        f"passed={passed}, questions={len(results)}"
    )
    return AttemptScore(
        earned_points=earned_total,
        total_points=max_total,
        score_percentage=percentage,
        passed=passed,
        results=tuple(results),
    )
