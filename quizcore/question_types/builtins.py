"""
Builtin (system) question types.

These five types exist even when nothing is stored: the registry
synthesizes them whenever the definition store has no row for their key.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import (
    ExactMatchRule,
    MistakeMetric,
    OneMistakePartialRule,
    QuestionTypeDefinition,
    UiTemplate,
    default_metric_for_template,
)


@dataclass(frozen=True)
class BuiltinQuestionType:
    """Seed data for a system question type."""
    key: str
    title: str
    description: str
    ui_template: UiTemplate
    scoring_rule: ExactMatchRule | OneMistakePartialRule

    def to_definition(self) -> QuestionTypeDefinition:
        """Synthesize the active system definition for this seed."""
        return QuestionTypeDefinition(
            key=self.key,
            title=self.title,
            description=self.description,
            ui_template=self.ui_template,
            validation_schema=None,
            scoring_rule=self.scoring_rule,
            is_system=True,
            is_active=True,
        )


BUILTIN_QUESTION_TYPES: tuple[BuiltinQuestionType, ...] = (
    BuiltinQuestionType(
        key="radio",
        title="Single choice (legacy)",
        description="One answer from a list of options",
        ui_template=UiTemplate.SINGLE_CHOICE,
        scoring_rule=ExactMatchRule(
            mistake_metric=MistakeMetric.BOOLEAN_CORRECT,
            correct_points=1,
        ),
    ),
    BuiltinQuestionType(
        key="checkbox",
        title="Multiple choice",
        description="Several answers from a list of options",
        ui_template=UiTemplate.MULTI_CHOICE,
        scoring_rule=OneMistakePartialRule(
            mistake_metric=MistakeMetric.SET_DISTANCE,
            correct_points=2,
            one_mistake_points=1,
        ),
    ),
    BuiltinQuestionType(
        key="matching",
        title="Matching",
        description="Match items on the left to items on the right",
        ui_template=UiTemplate.MATCHING,
        scoring_rule=OneMistakePartialRule(
            mistake_metric=MistakeMetric.PAIR_MISMATCH_COUNT,
            correct_points=2,
            one_mistake_points=1,
        ),
    ),
    BuiltinQuestionType(
        key="short_answer",
        title="Short answer",
        description="A short string or number",
        ui_template=UiTemplate.SHORT_TEXT,
        scoring_rule=ExactMatchRule(
            mistake_metric=MistakeMetric.COMPACT_TEXT_EQUAL,
            correct_points=1,
        ),
    ),
    BuiltinQuestionType(
        key="sequence",
        title="Correct sequence",
        description="A string of digits in the right order",
        ui_template=UiTemplate.SEQUENCE_DIGITS,
        scoring_rule=OneMistakePartialRule(
            mistake_metric=MistakeMetric.HAMMING_DIGITS,
            correct_points=2,
            one_mistake_points=1,
        ),
    ),
)

_BUILTINS_BY_KEY = {item.key: item for item in BUILTIN_QUESTION_TYPES}

BUILTIN_KEYS: frozenset[str] = frozenset(_BUILTINS_BY_KEY)


def get_builtin(key: str) -> BuiltinQuestionType | None:
    """Get the builtin seed for a key, if there is one."""
    return _BUILTINS_BY_KEY.get(key)


def builtin_definition(key: str) -> QuestionTypeDefinition | None:
    """Synthesize the system definition for a builtin key."""
    builtin = get_builtin(key)
    return builtin.to_definition() if builtin else None


def default_scoring_rule_for_template(template: UiTemplate | str) -> ExactMatchRule | OneMistakePartialRule:
    """Rule used when a stored rule is unreadable or missing."""
    template = UiTemplate(template)
    metric = default_metric_for_template(template)
    if template in (UiTemplate.SINGLE_CHOICE, UiTemplate.SHORT_TEXT):
        return ExactMatchRule(mistake_metric=metric, correct_points=1)
    return OneMistakePartialRule(mistake_metric=metric, correct_points=2, one_mistake_points=1)
