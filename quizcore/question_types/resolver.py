"""
Override Resolver.

Layers one test's overrides onto the global registry and returns the
effective question types for that test. Nothing is cached: every call
reads both stores and recomputes the projection.

Precedence per key:
    title          <- title_override (trimmed, ignored when blank)
    scoring_rule   <- scoring_rule_override (replaced wholesale)
    is_active      <- False when is_disabled, otherwise the global value
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from quizcore.errors import QuestionTypeConfigError, QuestionTypeNotFoundError

from .builtins import builtin_definition
from .models import (
    EffectiveQuestionType,
    QuestionTypeDefinition,
    QuestionTypeOverride,
    QuestionTypeOverrideUpdate,
    scoring_rule_template_error,
)
from .registry import QuestionTypeRegistry, sort_question_types

if TYPE_CHECKING:
    from quizcore.stores import OverrideStore


def apply_override(
    base: QuestionTypeDefinition,
    override: QuestionTypeOverride | None,
) -> EffectiveQuestionType:
    """
    Project a global definition through an optional override.

    A missing override and an override with every field empty give the
    same result.
    """
    if override is None:
        return EffectiveQuestionType.from_definition(base)

    changes: dict[str, Any] = {}

    title = (override.title_override or "").strip()
    if title:
        changes["title"] = title

    rule = override.scoring_rule_override
    if rule is not None:
        error = scoring_rule_template_error(base.ui_template, rule)
        if error:
            # Stored before the global template check existed; keep grading on the global rule.
            logger.warning(
                f"Ignoring scoring rule override for '{base.key}' in test "
                f"'{override.test_id}': {error}"
            )
        else:
            changes["scoring_rule"] = rule

    if override.is_disabled:
        changes["is_active"] = False

    return EffectiveQuestionType.from_definition(base, **changes)


class OverrideResolver:
    """Resolve effective question types for a test."""

    def __init__(self, registry: QuestionTypeRegistry, override_store: OverrideStore):
        self.registry = registry
        self.override_store = override_store

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_effective_types(
        self,
        test_id: str,
        include_inactive: bool = False,
    ) -> dict[str, EffectiveQuestionType]:
        """
        Effective question types for one test, keyed by type key.

        The dict is ordered the same way as the global listing: system
        types first, then by title.
        """
        global_types = {item.key: item for item in self.registry.list_global_types(include_inactive=True)}
        overrides = {item.question_type_key: item for item in self.override_store.list_for_test(test_id)}

        resolved: list[EffectiveQuestionType] = []
        for key in [*global_types, *(k for k in overrides if k not in global_types)]:
            base = global_types.get(key) or builtin_definition(key)
            if base is None:
                logger.debug(f"Dropping override for unknown question type '{key}' in test '{test_id}'")
                continue
            resolved.append(apply_override(base, overrides.get(key)))

        ordered = sort_question_types(resolved, self.registry.collation)
        if not include_inactive:
            ordered = [item for item in ordered if item.is_active]

        logger.debug(f"Resolved {len(ordered)} question types for test '{test_id}'")
        return {item.key: item for item in ordered}

    def resolve_effective_type(
        self,
        test_id: str,
        key: str,
        include_inactive: bool = True,
    ) -> EffectiveQuestionType | None:
        """Effective type for one key in one test."""
        return self.resolve_effective_types(test_id, include_inactive=include_inactive).get(key)

    def get_question_type_map(
        self,
        test_id: str | None = None,
        include_inactive: bool = False,
    ) -> dict[str, EffectiveQuestionType]:
        """Per-test effective map, or the plain global projection when no test is given."""
        if test_id is not None:
            return self.resolve_effective_types(test_id, include_inactive=include_inactive)
        return {
            item.key: EffectiveQuestionType.from_definition(item)
            for item in self.registry.list_global_types(include_inactive=include_inactive)
        }

    # ------------------------------------------------------------------
    # Override writes
    # ------------------------------------------------------------------

    def list_overrides(self, test_id: str) -> list[QuestionTypeOverride]:
        """Stored overrides of a test, in key order."""
        return sorted(self.override_store.list_for_test(test_id), key=lambda item: item.question_type_key)

    def upsert_override(
        self,
        test_id: str,
        key: str,
        changes: Mapping[str, Any] | QuestionTypeOverrideUpdate,
    ) -> EffectiveQuestionType:
        """
        Create or patch the override of `key` for `test_id`.

        The scoring rule override is checked against the global
        definition's template; overrides can never change the template.

        Raises:
            QuestionTypeNotFoundError: key unknown to the registry and builtins
            QuestionTypeConfigError: invalid payload or incompatible metric
        """
        target = self.registry.get_by_key(key)
        if target is None:
            raise QuestionTypeNotFoundError(key)

        if isinstance(changes, QuestionTypeOverrideUpdate):
            update = changes
        else:
            try:
                update = QuestionTypeOverrideUpdate.model_validate(dict(changes))
            except ValidationError as e:
                raise QuestionTypeConfigError.from_validation_error(
                    f"Invalid override for '{key}' in test '{test_id}'", e
                ) from e

        fields = update.changes()
        rule = fields.get("scoring_rule_override")
        if rule is not None:
            error = scoring_rule_template_error(target.ui_template, rule)
            if error:
                raise QuestionTypeConfigError(error)

        self.override_store.upsert(test_id, key, fields)
        logger.info(f"Upserted override for '{key}' in test '{test_id}': {sorted(fields)}")

        effective = self.resolve_effective_type(test_id, key, include_inactive=True)
        if effective is None:
            raise QuestionTypeNotFoundError(key)
        return effective

    def delete_override(self, test_id: str, key: str) -> bool:
        """Remove the override of `key` for `test_id`. Returns False if none existed."""
        deleted = self.override_store.delete(test_id, key)
        if deleted:
            logger.info(f"Deleted override for '{key}' in test '{test_id}'")
        return deleted
