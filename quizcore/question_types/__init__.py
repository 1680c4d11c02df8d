"""
Question type configuration.

Each question type binds a UI template to a scoring rule and an optional
validation schema. This package holds:
- models: pydantic models for definitions, rules and overrides
- builtins: the five system types
- registry: global definitions (store + builtin fallback)
- resolver: per-test effective types
- validator: structural checks of question bodies
"""

from .builtins import (
    BUILTIN_KEYS,
    BUILTIN_QUESTION_TYPES,
    builtin_definition,
    default_scoring_rule_for_template,
    get_builtin,
)
from .models import (
    ALLOWED_MISTAKE_METRICS_BY_TEMPLATE,
    EffectiveQuestionType,
    ExactMatchRule,
    MistakeMetric,
    OneMistakePartialRule,
    QuestionTypeDefinition,
    QuestionTypeOverride,
    QuestionTypeOverrideUpdate,
    QuestionTypeUpdate,
    ScoringFormula,
    ScoringRule,
    ScoringTier,
    TiersRule,
    UiTemplate,
    ValidationSchema,
    allowed_metrics_for,
    is_metric_allowed,
    parse_scoring_rule,
)
from .registry import QuestionTypeRegistry, sort_question_types
from .resolver import OverrideResolver, apply_override
from .validator import ensure_valid_question, validate_question, validate_question_with_type_map

__all__ = [
    # Models
    "ALLOWED_MISTAKE_METRICS_BY_TEMPLATE",
    "EffectiveQuestionType",
    "ExactMatchRule",
    "MistakeMetric",
    "OneMistakePartialRule",
    "QuestionTypeDefinition",
    "QuestionTypeOverride",
    "QuestionTypeOverrideUpdate",
    "QuestionTypeUpdate",
    "ScoringFormula",
    "ScoringRule",
    "ScoringTier",
    "TiersRule",
    "UiTemplate",
    "ValidationSchema",
    "allowed_metrics_for",
    "is_metric_allowed",
    "parse_scoring_rule",
    # Builtins
    "BUILTIN_KEYS",
    "BUILTIN_QUESTION_TYPES",
    "builtin_definition",
    "default_scoring_rule_for_template",
    "get_builtin",
    # Services
    "OverrideResolver",
    "QuestionTypeRegistry",
    "apply_override",
    "sort_question_types",
    # Validation
    "ensure_valid_question",
    "validate_question",
    "validate_question_with_type_map",
]
