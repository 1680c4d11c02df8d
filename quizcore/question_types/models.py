"""
Question type data models.

These models describe question types (global definitions), their scoring
rules and per-test overrides. They are pydantic models so that the same
classes validate authoring payloads, stored JSON and wire output.

Field names are snake_case in Python and camelCase on the wire:

    >>> rule = parse_scoring_rule({"formula": "exact_match",
    ...                            "mistakeMetric": "boolean_correct",
    ...                            "correctPoints": 1})
    >>> rule.correct_points
    1.0
    >>> rule.to_dict()["mistakeMetric"]
    'boolean_correct'
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Closed variants
# =============================================================================


class UiTemplate(str, Enum):
    """Answer-shape family a question type renders and collects."""
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    MATCHING = "matching"
    SHORT_TEXT = "short_text"
    SEQUENCE_DIGITS = "sequence_digits"


class MistakeMetric(str, Enum):
    """How a (user answer, correct answer) pair is reduced to a mistake count."""
    BOOLEAN_CORRECT = "boolean_correct"          # single choice
    SET_DISTANCE = "set_distance"                # multiple choice
    PAIR_MISMATCH_COUNT = "pair_mismatch_count"  # matching
    COMPACT_TEXT_EQUAL = "compact_text_equal"    # short text
    HAMMING_DIGITS = "hamming_digits"            # digit sequence


class ScoringFormula(str, Enum):
    """How a mistake count is converted to points."""
    EXACT_MATCH = "exact_match"
    ONE_MISTAKE_PARTIAL = "one_mistake_partial"
    TIERS = "tiers"


# First entry of each tuple is the template's default metric.
ALLOWED_MISTAKE_METRICS_BY_TEMPLATE: dict[UiTemplate, tuple[MistakeMetric, ...]] = {
    UiTemplate.SINGLE_CHOICE: (MistakeMetric.BOOLEAN_CORRECT,),
    UiTemplate.MULTI_CHOICE: (MistakeMetric.SET_DISTANCE,),
    UiTemplate.MATCHING: (MistakeMetric.PAIR_MISMATCH_COUNT,),
    UiTemplate.SHORT_TEXT: (MistakeMetric.COMPACT_TEXT_EQUAL,),
    UiTemplate.SEQUENCE_DIGITS: (MistakeMetric.HAMMING_DIGITS,),
}


def allowed_metrics_for(template: UiTemplate | str) -> tuple[MistakeMetric, ...]:
    """Metrics a scoring rule may use for the given template."""
    return ALLOWED_MISTAKE_METRICS_BY_TEMPLATE[UiTemplate(template)]


def default_metric_for_template(template: UiTemplate | str) -> MistakeMetric:
    """Metric used when a template's rule has to be synthesized."""
    return allowed_metrics_for(template)[0]


def is_metric_allowed(template: UiTemplate | str, metric: MistakeMetric | str) -> bool:
    """Check the metric/template pairing."""
    return MistakeMetric(metric) in allowed_metrics_for(template)


# =============================================================================
# Base model
# =============================================================================


class _CamelModel(BaseModel):
    """Immutable model that reads and writes camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with wire (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Scoring rules
# =============================================================================


class ScoringTier(_CamelModel):
    """Partial credit awarded when mistakes <= max_mistakes."""
    max_mistakes: int = Field(ge=1)
    points: float = Field(ge=0, allow_inf_nan=False)


class _ScoringRuleBase(_CamelModel):
    mistake_metric: MistakeMetric
    correct_points: float = Field(ge=0, allow_inf_nan=False)


class ExactMatchRule(_ScoringRuleBase):
    """Full points for zero mistakes, nothing otherwise."""
    formula: Literal["exact_match"] = "exact_match"


class OneMistakePartialRule(_ScoringRuleBase):
    """Full points for zero mistakes, one_mistake_points for exactly one."""
    formula: Literal["one_mistake_partial"] = "one_mistake_partial"
    one_mistake_points: float = Field(ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_points(self) -> OneMistakePartialRule:
        if self.one_mistake_points > self.correct_points:
            raise ValueError("oneMistakePoints cannot exceed correctPoints")
        return self


class TiersRule(_ScoringRuleBase):
    """Full points for zero mistakes, then the first tier that covers the count."""
    formula: Literal["tiers"] = "tiers"
    tiers: tuple[ScoringTier, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_points(self) -> TiersRule:
        if any(tier.points > self.correct_points for tier in self.tiers):
            raise ValueError("tier points cannot exceed correctPoints")
        ordered = sorted(self.tiers, key=lambda tier: tier.max_mistakes)
        if any(later.points > earlier.points for earlier, later in zip(ordered, ordered[1:])):
            raise ValueError("tier points cannot increase with maxMistakes")
        return self


ScoringRule = Annotated[
    Union[ExactMatchRule, OneMistakePartialRule, TiersRule],
    Field(discriminator="formula"),
]

_SCORING_RULE_ADAPTER: TypeAdapter[Any] = TypeAdapter(ScoringRule)


def parse_scoring_rule(value: Any) -> ExactMatchRule | OneMistakePartialRule | TiersRule:
    """
    Parse an untyped mapping into a scoring rule.

    Raises:
        pydantic.ValidationError: if the value is not a valid rule
    """
    if isinstance(value, _ScoringRuleBase):
        return value
    return _SCORING_RULE_ADAPTER.validate_python(value)


def scoring_rule_template_error(template: UiTemplate | str, rule: Any) -> str | None:
    """Return a message if the rule's metric is not allowed for the template."""
    if not is_metric_allowed(template, rule.mistake_metric):
        return (
            f"Metric {MistakeMetric(rule.mistake_metric).value} is not compatible "
            f"with template {UiTemplate(template).value}"
        )
    return None


# =============================================================================
# Validation schema
# =============================================================================


class ValidationSchema(_CamelModel):
    """Optional structural constraints on top of the template's baseline shape."""
    min_options: int | None = Field(default=None, ge=0)
    max_options: int | None = Field(default=None, ge=0)
    exact_choice_count: int | None = Field(default=None, ge=1)


def validation_schema_error(template: UiTemplate | str, schema: ValidationSchema | None) -> str | None:
    """Return the first cross-field inconsistency of a validation schema."""
    if schema is None:
        return None

    min_options = schema.min_options
    max_options = schema.max_options
    exact = schema.exact_choice_count

    if min_options is not None and max_options is not None and min_options > max_options:
        return "minOptions cannot be greater than maxOptions"
    if exact is not None:
        if min_options is not None and exact < min_options:
            return "exactChoiceCount cannot be less than minOptions"
        if max_options is not None and exact > max_options:
            return "exactChoiceCount cannot be greater than maxOptions"
        if UiTemplate(template) == UiTemplate.SINGLE_CHOICE and exact != 1:
            return "exactChoiceCount must be 1 for single_choice"
    return None


# =============================================================================
# Question type definitions
# =============================================================================

QUESTION_TYPE_KEY_PATTERN = r"^[a-z0-9_]+$"

QuestionTypeKey = Annotated[str, Field(min_length=1, max_length=100, pattern=QUESTION_TYPE_KEY_PATTERN)]


class QuestionTypeDefinition(_CamelModel):
    """
    A named, reusable question behavior.

    `key` and `ui_template` are fixed for the lifetime of the definition.
    System definitions are seeded from the builtins and can only have their
    title, scoring rule and activation edited.
    """

    key: QuestionTypeKey
    title: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    ui_template: UiTemplate
    validation_schema: ValidationSchema | None = None
    scoring_rule: ScoringRule
    is_system: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def _check_consistency(self) -> QuestionTypeDefinition:
        error = scoring_rule_template_error(self.ui_template, self.scoring_rule)
        if error:
            raise ValueError(error)
        error = validation_schema_error(self.ui_template, self.validation_schema)
        if error:
            raise ValueError(error)
        return self


class EffectiveQuestionType(QuestionTypeDefinition):
    """
    A definition with one test's override applied.

    Request-scoped and never persisted; it owns nothing and is recomputed
    on every resolution.
    """

    @classmethod
    def from_definition(cls, definition: QuestionTypeDefinition, **changes: Any) -> EffectiveQuestionType:
        """Project a definition, optionally replacing title/scoring_rule/is_active."""
        fields = {name: getattr(definition, name) for name in QuestionTypeDefinition.model_fields}
        fields.update(changes)
        return cls(**fields)


class QuestionTypeUpdate(_CamelModel):
    """
    Patch payload for an existing definition.

    Only fields present in the payload are applied (see ``model_fields_set``);
    an explicit ``None`` clears a nullable field.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    validation_schema: ValidationSchema | None = None
    scoring_rule: ScoringRule | None = None
    is_active: bool | None = None


# =============================================================================
# Per-test overrides
# =============================================================================


class QuestionTypeOverride(_CamelModel):
    """Override of one question type, scoped to one test."""

    test_id: str = Field(min_length=1)
    question_type_key: QuestionTypeKey
    title_override: str | None = None
    scoring_rule_override: ScoringRule | None = None
    is_disabled: bool = False

    @property
    def is_empty(self) -> bool:
        """True when the override changes nothing."""
        return (
            not (self.title_override and self.title_override.strip())
            and self.scoring_rule_override is None
            and not self.is_disabled
        )


class QuestionTypeOverrideUpdate(_CamelModel):
    """
    Patch payload for a per-test override.

    Absent fields keep their stored value, an explicit ``None`` clears
    ``title_override``/``scoring_rule_override``.
    """

    model_config = ConfigDict(extra="forbid")

    title_override: str | None = Field(default=None, max_length=120)
    scoring_rule_override: ScoringRule | None = None
    is_disabled: bool = False

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}
