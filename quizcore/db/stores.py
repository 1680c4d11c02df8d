"""
SQLAlchemy implementations of DefinitionStore and OverrideStore.

Stored JSON is re-validated on every read. A rule that no longer parses
(or no longer fits its template) is replaced by the template's default
rule for definitions and dropped for overrides, with a warning, so a bad
row never blocks grading.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from quizcore.question_types.builtins import default_scoring_rule_for_template
from quizcore.question_types.models import (
    QuestionTypeDefinition,
    QuestionTypeOverride,
    UiTemplate,
    ValidationSchema,
    parse_scoring_rule,
    scoring_rule_template_error,
    validation_schema_error,
)
from quizcore.stores import merge_override_fields

from .database import session_scope
from .models import QuestionTypeOverrideRow, QuestionTypeRow


# =============================================================================
# Row conversion
# =============================================================================


def _read_rule(raw: Any, template: str, context: str) -> Any | None:
    try:
        rule = parse_scoring_rule(raw)
    except ValidationError as e:
        logger.warning(f"Invalid stored scoring rule for {context}: {e.error_count()} error(s)")
        return None
    error = scoring_rule_template_error(template, rule)
    if error:
        logger.warning(f"Incompatible stored scoring rule for {context}: {error}")
        return None
    return rule


def row_to_definition(row: QuestionTypeRow) -> QuestionTypeDefinition | None:
    """Convert a row, repairing an unreadable rule or schema; None if the row is beyond repair."""
    context = f"question type '{row.key}'"
    try:
        template = UiTemplate(row.ui_template)
    except ValueError:
        logger.warning(f"Unknown stored template '{row.ui_template}' for {context}, skipping it")
        return None

    rule = _read_rule(row.scoring_rule, template, context)
    if rule is None:
        rule = default_scoring_rule_for_template(template)

    schema = None
    if row.validation_schema is not None:
        try:
            schema = ValidationSchema.model_validate(row.validation_schema)
        except ValidationError:
            logger.warning(f"Invalid stored validation schema for {context}, ignoring it")
        else:
            error = validation_schema_error(template, schema)
            if error:
                logger.warning(f"Inconsistent stored validation schema for {context}, ignoring it: {error}")
                schema = None

    try:
        return QuestionTypeDefinition(
            key=row.key,
            title=row.title,
            description=row.description,
            ui_template=template,
            validation_schema=schema,
            scoring_rule=rule,
            is_system=row.is_system,
            is_active=row.is_active,
        )
    except ValidationError as e:
        logger.warning(f"Invalid stored {context}, skipping it: {e.error_count()} error(s)")
        return None


def row_to_override(row: QuestionTypeOverrideRow) -> QuestionTypeOverride:
    rule = None
    if row.scoring_rule_override is not None:
        try:
            rule = parse_scoring_rule(row.scoring_rule_override)
        except ValidationError as e:
            logger.warning(
                f"Invalid stored scoring rule override for '{row.question_type_key}' in test "
                f"'{row.test_id}': {e.error_count()} error(s)"
            )
    return QuestionTypeOverride(
        test_id=row.test_id,
        question_type_key=row.question_type_key,
        title_override=row.title_override,
        scoring_rule_override=rule,
        is_disabled=row.is_disabled,
    )


def _apply_definition(row: QuestionTypeRow, definition: QuestionTypeDefinition) -> None:
    row.title = definition.title
    row.description = definition.description
    row.ui_template = definition.ui_template.value
    row.validation_schema = definition.validation_schema.to_dict() if definition.validation_schema else None
    row.scoring_rule = definition.scoring_rule.to_dict()
    row.is_system = definition.is_system
    row.is_active = definition.is_active


# =============================================================================
# Stores
# =============================================================================


class SqlDefinitionStore:
    """DefinitionStore backed by the question_types table."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self.session_factory = session_factory

    def list_all(self) -> list[QuestionTypeDefinition]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(select(QuestionTypeRow).order_by(QuestionTypeRow.key)).all()
            definitions = [row_to_definition(row) for row in rows]
            return [definition for definition in definitions if definition is not None]

    def get_by_key(self, key: str) -> QuestionTypeDefinition | None:
        with session_scope(self.session_factory) as session:
            row = session.get(QuestionTypeRow, key)
            return row_to_definition(row) if row is not None else None

    def upsert(self, definition: QuestionTypeDefinition) -> QuestionTypeDefinition:
        with session_scope(self.session_factory) as session:
            row = session.get(QuestionTypeRow, definition.key)
            if row is None:
                row = QuestionTypeRow(key=definition.key)
                session.add(row)
            _apply_definition(row, definition)
        return definition

    def soft_disable(self, key: str) -> bool:
        with session_scope(self.session_factory) as session:
            row = session.get(QuestionTypeRow, key)
            if row is None:
                return False
            row.is_active = False
            return True


class SqlOverrideStore:
    """OverrideStore backed by the test_question_type_overrides table."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self.session_factory = session_factory

    @staticmethod
    def _select(test_id: str, key: str):
        return select(QuestionTypeOverrideRow).where(
            QuestionTypeOverrideRow.test_id == test_id,
            QuestionTypeOverrideRow.question_type_key == key,
        )

    def list_for_test(self, test_id: str) -> list[QuestionTypeOverride]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(QuestionTypeOverrideRow)
                .where(QuestionTypeOverrideRow.test_id == test_id)
                .order_by(QuestionTypeOverrideRow.question_type_key)
            ).all()
            return [row_to_override(row) for row in rows]

    def upsert(self, test_id: str, key: str, fields: Mapping[str, Any]) -> QuestionTypeOverride:
        with session_scope(self.session_factory) as session:
            row = session.scalars(self._select(test_id, key)).first()
            existing = row_to_override(row) if row is not None else None
            merged = merge_override_fields(existing, test_id, key, fields)

            if row is None:
                row = QuestionTypeOverrideRow(test_id=test_id, question_type_key=key)
                session.add(row)
            row.title_override = merged.title_override
            row.scoring_rule_override = (
                merged.scoring_rule_override.to_dict() if merged.scoring_rule_override is not None else None
            )
            row.is_disabled = merged.is_disabled
        return merged

    def delete(self, test_id: str, key: str) -> bool:
        with session_scope(self.session_factory) as session:
            result = session.execute(
                delete(QuestionTypeOverrideRow).where(
                    QuestionTypeOverrideRow.test_id == test_id,
                    QuestionTypeOverrideRow.question_type_key == key,
                )
            )
            return result.rowcount > 0
