"""
Tables for question type configuration.

- question_types: global definitions (system rows are materialized builtins)
- test_question_type_overrides: one row per (test_id, question_type_key)

Rules and validation schemas are stored as JSON in their wire (camelCase)
form; quizcore.db.stores converts them back to pydantic models.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class QuestionTypeRow(Base):
    """Global question type definition."""

    __tablename__ = "question_types"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    ui_template: Mapped[str] = mapped_column(String(32), nullable=False)
    validation_schema: Mapped[dict | None] = mapped_column(JSON)
    scoring_rule: Mapped[dict] = mapped_column(JSON, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<QuestionTypeRow(key={self.key}, template={self.ui_template}, active={self.is_active})>"


class QuestionTypeOverrideRow(Base):
    """Per-test override of one question type."""

    __tablename__ = "test_question_type_overrides"
    __table_args__ = (
        UniqueConstraint("test_id", "question_type_key", name="uq_test_question_type_override"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    test_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    question_type_key: Mapped[str] = mapped_column(String(100), nullable=False)
    title_override: Mapped[str | None] = mapped_column(String(120))
    scoring_rule_override: Mapped[dict | None] = mapped_column(JSON)
    is_disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<QuestionTypeOverrideRow(test={self.test_id}, key={self.question_type_key})>"
