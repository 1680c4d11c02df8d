"""
Question definition validator.

Structural checks of a question body against an effective question type:

    body = {
        "options": [{"id": "a", "text": "..."}, {"id": "b", "text": "..."}],
        "matchingPairs": {"left": [{"id": "l1"}, ...], "right": [{"id": "r1"}, ...]},
        "correct": "a" | ["a", "b"] | {"l1": "r1"} | "text" | "2314",
    }

Checks never consult stored overrides: the caller passes the already
resolved type, which keeps this module usable with synthetic types.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from quizcore.errors import QuestionValidationError

from .builtins import builtin_definition
from .models import QuestionTypeDefinition, UiTemplate, ValidationSchema

DIGITS_RE = re.compile(r"[0-9]+")
WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# Helpers
# =============================================================================


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _entry_ids(entries: Sequence[Any]) -> list[str] | None:
    """Ids of a list of {id: ...} entries, or None if any id is missing/blank."""
    ids = []
    for entry in entries:
        entry_id = entry.get("id") if isinstance(entry, Mapping) else None
        if not isinstance(entry_id, str) or not entry_id.strip():
            return None
        ids.append(entry_id)
    return ids


def _has_duplicates(values: Sequence[str]) -> bool:
    return len(set(values)) != len(values)


def _options_count_error(count: int, schema: ValidationSchema | None) -> str | None:
    if schema is None:
        return None
    if schema.min_options is not None and count < schema.min_options:
        return f"At least {schema.min_options} options are required"
    if schema.max_options is not None and count > schema.max_options:
        return f"At most {schema.max_options} options are allowed"
    return None


# =============================================================================
# Per-template checks
# =============================================================================


def _validate_choice(template: UiTemplate, schema: ValidationSchema | None, body: Mapping[str, Any]) -> str | None:
    options = body.get("options")
    if not _is_list(options) or len(options) < 2:
        return "At least 2 answer options are required"

    option_ids = _entry_ids(options)
    if option_ids is None:
        return "Every option must have a non-empty string id"
    if _has_duplicates(option_ids):
        return "Option ids must be unique"

    error = _options_count_error(len(options), schema)
    if error:
        return error

    correct = body.get("correct")
    exact = schema.exact_choice_count if schema else None

    if template == UiTemplate.SINGLE_CHOICE:
        if not isinstance(correct, str) or correct not in option_ids:
            return "Exactly one correct option from the list is required"
        if exact is not None and exact != 1:
            return "Single choice questions require exactChoiceCount of 1"
        return None

    if not _is_list(correct) or len(correct) == 0 or not all(isinstance(item, str) for item in correct):
        return "Multiple choice questions require a list of correct option ids"
    if any(item not in option_ids for item in correct):
        return "correct references an unknown option id"
    if _has_duplicates(correct):
        return "correct must not contain duplicates"
    if exact is not None and len(correct) != exact:
        return f"Exactly {exact} correct options must be selected"
    return None


def _validate_matching(body: Mapping[str, Any]) -> str | None:
    pairs = body.get("matchingPairs", body.get("matching_pairs"))
    if not isinstance(pairs, Mapping) or not _is_list(pairs.get("left")) or not _is_list(pairs.get("right")):
        return "Matching questions require left and right lists"

    left, right = pairs["left"], pairs["right"]
    if len(left) < 2 or len(right) < 2:
        return "Matching questions require at least 2 items on each side"

    left_ids = _entry_ids(left)
    right_ids = _entry_ids(right)
    if left_ids is None or right_ids is None:
        return "Every matching item must have a non-empty string id"
    if _has_duplicates(left_ids) or _has_duplicates(right_ids):
        return "Matching item ids must be unique"

    correct = body.get("correct")
    if not isinstance(correct, Mapping):
        return "correct for matching must be a mapping of left ids to right ids"
    for left_id in left_ids:
        mapped = correct.get(left_id)
        if not isinstance(mapped, str) or mapped not in right_ids:
            return "Every left item must be matched to a known right item"
    return None


def _validate_short_text(body: Mapping[str, Any]) -> str | None:
    correct = body.get("correct")
    if not isinstance(correct, str) or not correct.strip():
        return "Short answer questions require a non-empty correct string"
    return None


def _validate_sequence(body: Mapping[str, Any]) -> str | None:
    correct = body.get("correct")
    if not isinstance(correct, str):
        return "correct for a sequence must be a string"
    if not DIGITS_RE.fullmatch(WHITESPACE_RE.sub("", correct)):
        return "Sequences may only contain digits"
    return None


# =============================================================================
# Public API
# =============================================================================


def validate_question(effective_type: QuestionTypeDefinition, body: Mapping[str, Any]) -> str | None:
    """
    Validate a question body against a resolved question type.

    Returns:
        The first violated rule's message, or None when the body is valid.
    """
    if not isinstance(body, Mapping):
        return "Question body must be a mapping"

    template = effective_type.ui_template
    if template in (UiTemplate.SINGLE_CHOICE, UiTemplate.MULTI_CHOICE):
        return _validate_choice(template, effective_type.validation_schema, body)
    elif template == UiTemplate.MATCHING:
        return _validate_matching(body)
    elif template == UiTemplate.SHORT_TEXT:
        return _validate_short_text(body)
    elif template == UiTemplate.SEQUENCE_DIGITS:
        return _validate_sequence(body)
    return f"Unsupported template: {template}"


def validate_question_with_type_map(
    type_key: str,
    body: Mapping[str, Any],
    type_map: Mapping[str, QuestionTypeDefinition],
) -> str | None:
    """
    Validate a question authored with `type_key` against a resolved type map.

    Unknown keys fall back to the builtins; inactive types are rejected for
    authoring.
    """
    resolved = type_map.get(type_key) or builtin_definition(type_key)
    if resolved is None:
        return f"Unknown question type: {type_key}"
    if not resolved.is_active:
        return f"Question type is disabled: {resolved.title}"
    return validate_question(resolved, body)


def ensure_valid_question(
    type_key: str,
    body: Mapping[str, Any],
    type_map: Mapping[str, QuestionTypeDefinition],
) -> None:
    """
    Raise instead of returning the message.

    Raises:
        QuestionValidationError: with the first violated rule as reason
    """
    error = validate_question_with_type_map(type_key, body, type_map)
    if error:
        raise QuestionValidationError(error)
