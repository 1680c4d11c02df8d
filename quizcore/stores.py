"""
Storage capabilities consumed by the registry and the override resolver.

The core never decides how definitions and overrides are persisted; it
only talks to these protocols. In-memory implementations live here,
SQLAlchemy-backed ones in quizcore.db.stores.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from quizcore.question_types.models import QuestionTypeDefinition, QuestionTypeOverride

OVERRIDE_FIELDS = ("title_override", "scoring_rule_override", "is_disabled")


class DefinitionStore(Protocol):
    """Read/write access to global question type definitions."""

    def list_all(self) -> Sequence[QuestionTypeDefinition]:
        """All stored definitions, active or not."""
        ...

    def get_by_key(self, key: str) -> QuestionTypeDefinition | None:
        """The stored definition for a key, if any."""
        ...

    def upsert(self, definition: QuestionTypeDefinition) -> QuestionTypeDefinition:
        """Insert or replace the definition with the same key."""
        ...

    def soft_disable(self, key: str) -> bool:
        """Mark a stored definition inactive. Returns False if the key is not stored."""
        ...


class OverrideStore(Protocol):
    """Read/write access to per-test question type overrides."""

    def list_for_test(self, test_id: str) -> Sequence[QuestionTypeOverride]:
        """All overrides of one test."""
        ...

    def upsert(self, test_id: str, key: str, fields: Mapping[str, Any]) -> QuestionTypeOverride:
        """Create or patch the (test_id, key) override with the given fields."""
        ...

    def delete(self, test_id: str, key: str) -> bool:
        """Remove the (test_id, key) override. Returns False if there was none."""
        ...


def merge_override_fields(
    existing: QuestionTypeOverride | None,
    test_id: str,
    key: str,
    fields: Mapping[str, Any],
) -> QuestionTypeOverride:
    """
    Apply a patch to an override record.

    Keys missing from `fields` keep the existing value (or the default for a
    new record); unknown keys are rejected.
    """
    unknown = set(fields) - set(OVERRIDE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown override fields: {sorted(unknown)}")

    values: dict[str, Any] = {
        "test_id": test_id,
        "question_type_key": key,
        "title_override": None,
        "scoring_rule_override": None,
        "is_disabled": False,
    }
    if existing is not None:
        values.update({name: getattr(existing, name) for name in OVERRIDE_FIELDS})
    values.update(fields)
    return QuestionTypeOverride(**values)


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryDefinitionStore:
    """Dict-backed DefinitionStore."""

    def __init__(self, definitions: Sequence[QuestionTypeDefinition] = ()):
        self._rows: dict[str, QuestionTypeDefinition] = {d.key: d for d in definitions}

    def list_all(self) -> list[QuestionTypeDefinition]:
        return list(self._rows.values())

    def get_by_key(self, key: str) -> QuestionTypeDefinition | None:
        return self._rows.get(key)

    def upsert(self, definition: QuestionTypeDefinition) -> QuestionTypeDefinition:
        self._rows[definition.key] = definition
        return definition

    def soft_disable(self, key: str) -> bool:
        existing = self._rows.get(key)
        if existing is None:
            return False
        self._rows[key] = existing.model_copy(update={"is_active": False})
        return True


class InMemoryOverrideStore:
    """Dict-backed OverrideStore keyed by (test_id, question_type_key)."""

    def __init__(self, overrides: Sequence[QuestionTypeOverride] = ()):
        self._rows: dict[tuple[str, str], QuestionTypeOverride] = {
            (o.test_id, o.question_type_key): o for o in overrides
        }

    def list_for_test(self, test_id: str) -> list[QuestionTypeOverride]:
        return [row for (row_test_id, _), row in self._rows.items() if row_test_id == test_id]

    def upsert(self, test_id: str, key: str, fields: Mapping[str, Any]) -> QuestionTypeOverride:
        merged = merge_override_fields(self._rows.get((test_id, key)), test_id, key, fields)
        self._rows[(test_id, key)] = merged
        return merged

    def delete(self, test_id: str, key: str) -> bool:
        return self._rows.pop((test_id, key), None) is not None
