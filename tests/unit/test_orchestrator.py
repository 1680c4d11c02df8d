"""
Unit tests for the grading orchestrator.

The concrete grading scenarios use the builtin system types and one
custom tiered type.
"""

import pytest

from quizcore.errors import UnknownQuestionTypeError
from quizcore.grading import (
    INCOMPARABLE,
    LEGACY_DEFAULT_RULES,
    GradableQuestion,
    grade,
    grade_by_type_key,
    legacy_rule_for,
    resolve_question_points,
    score_attempt,
)
from quizcore.question_types import (
    BUILTIN_QUESTION_TYPES,
    EffectiveQuestionType,
    QuestionTypeDefinition,
    builtin_definition,
)


def _effective(key):
    return EffectiveQuestionType.from_definition(builtin_definition(key))


@pytest.fixture
def tiered_type():
    return EffectiveQuestionType.model_validate({
        "key": "ordering_4",
        "title": "Ordering (4 steps)",
        "uiTemplate": "sequence_digits",
        "scoringRule": {
            "formula": "tiers",
            "mistakeMetric": "hamming_digits",
            "correctPoints": 3,
            "tiers": [{"maxMistakes": 1, "points": 2}, {"maxMistakes": 2, "points": 1}],
        },
    })


@pytest.fixture
def builtin_map():
    return {item.key: _effective(item.key) for item in BUILTIN_QUESTION_TYPES}


class TestGradingScenarios:

    def test_short_answer_normalized(self):
        result = grade(_effective("short_answer"), " МИТОЗ ", "митоз")
        assert result.earned_points == 1
        assert result.is_correct is True

    def test_sequence_one_mistake(self):
        result = grade(_effective("sequence"), "2315", "2314")
        assert result.mistakes_count == 1
        assert result.earned_points == 1
        assert result.max_points == 2

    def test_matching_one_wrong_pair(self):
        result = grade(_effective("matching"), {"a": "1", "b": "3", "c": "3"}, {"a": "1", "b": "2", "c": "3"})
        assert result.mistakes_count == 1
        assert result.earned_points == 1

    def test_matching_all_wrong(self):
        result = grade(_effective("matching"), {"a": "2", "b": "3", "c": "1"}, {"a": "1", "b": "2", "c": "3"})
        assert result.mistakes_count == 3
        assert result.earned_points == 0

    def test_checkbox_swap(self):
        result = grade(_effective("checkbox"), ["1", "2", "4"], ["1", "2", "3"])
        assert result.mistakes_count == 1
        assert result.earned_points == 1
        assert result.is_correct is False

    @pytest.mark.parametrize("user,mistakes,points", [
        ("1234", 0, 3),
        ("1235", 1, 2),
        ("1243", 2, 1),
        ("2314", 3, 0),
    ])
    def test_custom_tiers(self, tiered_type, user, mistakes, points):
        result = grade(tiered_type, user, "1234")
        assert result.mistakes_count == mistakes
        assert result.earned_points == points


class TestGrade:

    @pytest.mark.parametrize("item", BUILTIN_QUESTION_TYPES, ids=lambda item: item.key)
    def test_incomparable_answer_earns_nothing(self, item):
        result = grade(_effective(item.key), None, None)
        assert result.mistakes_count == INCOMPARABLE
        assert result.earned_points == 0
        assert result.is_correct is False
        assert result.max_points == item.scoring_rule.correct_points

    def test_incomparable_answer_skips_catch_all_tier(self):
        catch_all = EffectiveQuestionType.model_validate({
            "key": "ordering_any",
            "title": "Ordering (any mistakes)",
            "uiTemplate": "sequence_digits",
            "scoringRule": {
                "formula": "tiers",
                "mistakeMetric": "hamming_digits",
                "correctPoints": 2,
                "tiers": [{"maxMistakes": INCOMPARABLE, "points": 1}],
            },
        })
        result = grade(catch_all, None, "123")
        assert result.mistakes_count == INCOMPARABLE
        assert result.earned_points == 0
        assert grade(catch_all, "999", "123").earned_points == 1

    def test_to_dict(self):
        result = grade(_effective("radio"), "a", "a")
        assert result.to_dict() == {"earnedPoints": 1.0, "maxPoints": 1.0, "isCorrect": True, "mistakesCount": 0}


class TestGradeByTypeKey:

    def test_uses_type_map(self, tiered_type):
        result = grade_by_type_key("ordering_4", {"ordering_4": tiered_type}, "1235", "1234")
        assert result.earned_points == 2

    def test_disabled_type_still_graded(self):
        disabled = EffectiveQuestionType.from_definition(builtin_definition("checkbox"), is_active=False)
        result = grade_by_type_key("checkbox", {"checkbox": disabled}, ["1"], ["1"])
        assert result.earned_points == 2

    @pytest.mark.parametrize("key", sorted(LEGACY_DEFAULT_RULES))
    def test_legacy_rules_match_builtins(self, key):
        assert LEGACY_DEFAULT_RULES[key] == builtin_definition(key).scoring_rule

    def test_legacy_key_missing_from_map(self):
        result = grade_by_type_key("checkbox", {}, ["1", "2", "4"], ["1", "2", "3"])
        assert result.earned_points == 1
        assert result.max_points == 2

    def test_unknown_key_uses_fallback_points(self):
        result = grade_by_type_key("essay", {}, "a", "a", fallback_max_points=5)
        assert result.earned_points == 5
        assert result.max_points == 5

    def test_unknown_key_wrong_answer(self):
        result = grade_by_type_key("essay", {}, "a", "b", fallback_max_points=5)
        assert result.earned_points == 0

    @pytest.mark.parametrize("points", [-3, float("nan"), float("inf")])
    def test_invalid_fallback_points(self, points):
        assert legacy_rule_for("essay", points).correct_points == 0

    def test_strict_mode_argument(self):
        with pytest.raises(UnknownQuestionTypeError):
            grade_by_type_key("essay", {}, "a", "a", strict=True)

    def test_strict_mode_from_settings(self, monkeypatch):
        monkeypatch.setenv("QUIZCORE_STRICT_UNKNOWN_TYPES", "true")
        with pytest.raises(UnknownQuestionTypeError):
            grade_by_type_key("essay", {}, "a", "a")

    def test_strict_mode_ignores_known_keys(self, builtin_map):
        assert grade_by_type_key("radio", builtin_map, "a", "a", strict=True).is_correct


class TestResolveQuestionPoints:

    def test_configured_type(self, builtin_map):
        assert resolve_question_points("checkbox", 7, builtin_map) == 2

    def test_unknown_type_keeps_fallback(self, builtin_map):
        assert resolve_question_points("essay", 7, builtin_map) == 7


class TestScoreAttempt:

    @pytest.fixture
    def questions(self):
        return [
            GradableQuestion(id="q1", type="radio", correct_answer="a", points=1),
            GradableQuestion(id="q2", type="checkbox", correct_answer=["1", "2", "3"], points=2),
            GradableQuestion(id="q3", type="sequence", correct_answer="2314", points=2),
            GradableQuestion(id="q4", type="essay", correct_answer="yes", points=5),
        ]

    def test_totals(self, questions, builtin_map):
        answers = {"q1": "a", "q2": ["1", "2", "4"], "q3": "2314", "q4": "no"}
        score = score_attempt(questions, answers, builtin_map)
        assert score.earned_points == 4
        assert score.total_points == 10
        assert score.score_percentage == pytest.approx(40.0)
        assert score.passed is True
        assert [item.question_id for item in score.results] == ["q1", "q2", "q3", "q4"]

    def test_passing_score(self, questions, builtin_map):
        answers = {"q1": "a", "q2": ["1", "2", "3"], "q3": "2314", "q4": "yes"}
        assert score_attempt(questions, answers, builtin_map, passing_score=100).passed is True
        answers["q4"] = "no"
        assert score_attempt(questions, answers, builtin_map, passing_score=60).passed is False

    def test_unanswered_questions(self, questions, builtin_map):
        score = score_attempt(questions, {}, builtin_map)
        assert score.earned_points == 0
        assert all(item.result.mistakes_count == INCOMPARABLE for item in score.results)

    def test_empty_attempt(self):
        score = score_attempt([], {}, {}, passing_score=50)
        assert score.total_points == 0
        assert score.score_percentage == 0
        assert score.passed is False

    def test_to_dict(self, questions, builtin_map):
        data = score_attempt(questions[:1], {"q1": "a"}, builtin_map).to_dict()
        assert data["scorePercentage"] == 100
        assert data["results"][0]["questionId"] == "q1"
        assert data["results"][0]["isCorrect"] is True
