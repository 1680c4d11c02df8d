"""
Question Type Registry.

Global question type definitions: whatever the definition store holds,
plus builtin fallbacks for system keys the store does not have yet.

Example:
    registry = QuestionTypeRegistry(InMemoryDefinitionStore())
    registry.create_type({
        "key": "ordering_4",
        "title": "Ordering (4 steps)",
        "uiTemplate": "sequence_digits",
        "scoringRule": {"formula": "tiers", "mistakeMetric": "hamming_digits",
                        "correctPoints": 3,
                        "tiers": [{"maxMistakes": 1, "points": 2}]},
    })
    for definition in registry.list_global_types():
        ...
"""

from __future__ import annotations

import locale
import unicodedata
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger
from pydantic import ValidationError

from quizcore.config import get_settings
from quizcore.errors import (
    DuplicateQuestionTypeError,
    ProtectedQuestionTypeError,
    QuestionTypeConfigError,
    QuestionTypeNotFoundError,
)

from .builtins import BUILTIN_QUESTION_TYPES, builtin_definition, get_builtin
from .models import QuestionTypeDefinition, QuestionTypeUpdate

if TYPE_CHECKING:
    from quizcore.stores import DefinitionStore

T = TypeVar("T", bound=QuestionTypeDefinition)

# Fields a system definition may change; everything else is structural.
SYSTEM_EDITABLE_FIELDS = frozenset({"title", "scoring_rule", "is_active"})

# (wire alias, attribute) pairs that can never change through an update.
IMMUTABLE_FIELDS = (("key", "key"), ("uiTemplate", "ui_template"), ("isSystem", "is_system"))


# =============================================================================
# Ordering
# =============================================================================

# Combining marks that make a separate letter rather than an accent.
KEPT_COMBINING_MARKS = frozenset({"\u0306"})  # breve


def title_sort_key(title: str, collation: str = "casefold") -> str:
    """
    Collation key for a title.

    'casefold' strips diacritics and case so that e.g. "ё" sorts with "е"
    and "Éclair" with "eclair", independently of the process locale. The
    breve is kept: "й" is a letter of its own, sorted between "и" and "к".
    'locale' defers to LC_COLLATE.
    """
    if collation == "locale":
        return locale.strxfrm(title)
    decomposed = unicodedata.normalize("NFKD", title)
    stripped = "".join(
        ch for ch in decomposed if not unicodedata.combining(ch) or ch in KEPT_COMBINING_MARKS
    )
    return unicodedata.normalize("NFC", stripped).casefold()


def sort_question_types(items: Iterable[T], collation: str = "casefold") -> list[T]:
    """System types first, then by title; ties fall back to the raw title and the key."""
    return sorted(
        items,
        key=lambda item: (not item.is_system, title_sort_key(item.title, collation), item.title, item.key),
    )


# =============================================================================
# Registry
# =============================================================================


class QuestionTypeRegistry:
    """Global question type definitions backed by a DefinitionStore."""

    def __init__(self, store: DefinitionStore, collation: str | None = None):
        self.store = store
        self.collation = collation or get_settings().title_collation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_global_types(self, include_inactive: bool = False) -> list[QuestionTypeDefinition]:
        """Stored definitions plus builtin fallbacks, sorted for display."""
        stored = {definition.key: definition for definition in self.store.list_all()}
        fallbacks = [item.to_definition() for item in BUILTIN_QUESTION_TYPES if item.key not in stored]
        ordered = sort_question_types([*stored.values(), *fallbacks], self.collation)
        if include_inactive:
            return ordered
        return [item for item in ordered if item.is_active]

    def get_by_key(self, key: str) -> QuestionTypeDefinition | None:
        """Stored definition, else the builtin synthesis, else None."""
        return self.store.get_by_key(key) or builtin_definition(key)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_type(self, payload: Mapping[str, Any] | QuestionTypeDefinition) -> QuestionTypeDefinition:
        """
        Create a user-defined question type.

        Raises:
            QuestionTypeConfigError: invalid key, template, metric pairing or rule
            DuplicateQuestionTypeError: key already stored or reserved by a builtin
        """
        if isinstance(payload, QuestionTypeDefinition):
            data = payload.model_dump(by_alias=True)
        else:
            data = dict(payload)
        data.pop("is_system", None)
        data["isSystem"] = False

        try:
            definition = QuestionTypeDefinition.model_validate(data)
        except ValidationError as e:
            raise QuestionTypeConfigError.from_validation_error("Invalid question type", e) from e

        if self.store.get_by_key(definition.key) is not None or get_builtin(definition.key) is not None:
            raise DuplicateQuestionTypeError(f"Question type with key '{definition.key}' already exists")

        stored = self.store.upsert(definition)
        logger.info(f"Created question type '{stored.key}' ({stored.ui_template.value})")
        return stored

    def update_type(self, key: str, changes: Mapping[str, Any] | QuestionTypeUpdate) -> QuestionTypeDefinition:
        """
        Patch title, description, scoring rule, activation or validation schema.

        Raises:
            QuestionTypeNotFoundError: unknown key
            QuestionTypeConfigError: key/uiTemplate change or invalid result
            ProtectedQuestionTypeError: structural edit of a system type
        """
        existing = self.get_by_key(key)
        if existing is None:
            raise QuestionTypeNotFoundError(key)

        update = self._parse_update(existing, changes)
        changed = update.model_fields_set

        if existing.is_system and changed - SYSTEM_EDITABLE_FIELDS:
            raise ProtectedQuestionTypeError(
                f"System question type '{key}' only allows editing of "
                f"{sorted(SYSTEM_EDITABLE_FIELDS)}, got {sorted(changed - SYSTEM_EDITABLE_FIELDS)}"
            )

        merged = {name: getattr(existing, name) for name in QuestionTypeDefinition.model_fields}
        for name in changed:
            merged[name] = getattr(update, name)

        try:
            definition = QuestionTypeDefinition.model_validate(merged)
        except ValidationError as e:
            raise QuestionTypeConfigError.from_validation_error(f"Invalid update for '{key}'", e) from e

        stored = self.store.upsert(definition)
        logger.info(f"Updated question type '{key}': {sorted(changed)}")
        return stored

    def delete_type(self, key: str) -> QuestionTypeDefinition:
        """
        Retire a user-defined type (is_active=False).

        Rows are never removed so historical submissions stay gradable.

        Raises:
            QuestionTypeNotFoundError: unknown key
            ProtectedQuestionTypeError: system type
        """
        existing = self.get_by_key(key)
        if existing is None:
            raise QuestionTypeNotFoundError(key)
        if existing.is_system:
            raise ProtectedQuestionTypeError(f"System question type '{key}' cannot be removed")

        self.store.soft_disable(key)
        logger.info(f"Retired question type '{key}'")
        return existing.model_copy(update={"is_active": False})

    def _parse_update(
        self,
        existing: QuestionTypeDefinition,
        changes: Mapping[str, Any] | QuestionTypeUpdate,
    ) -> QuestionTypeUpdate:
        if isinstance(changes, QuestionTypeUpdate):
            return changes

        raw = dict(changes)
        for alias, name in IMMUTABLE_FIELDS:
            current = getattr(existing, name)
            current = getattr(current, "value", current)
            for field_key in {alias, name}:
                if field_key not in raw:
                    continue
                value = raw.pop(field_key)
                if getattr(value, "value", value) != current:
                    raise QuestionTypeConfigError(f"{alias} cannot be changed for '{existing.key}'")

        try:
            return QuestionTypeUpdate.model_validate(raw)
        except ValidationError as e:
            raise QuestionTypeConfigError.from_validation_error(f"Invalid update for '{existing.key}'", e) from e
