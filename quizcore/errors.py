"""
Error types for the question-type configuration and grading engine.

Kinds:
- QuestionTypeConfigError: a definition or override breaks an invariant
  (raised at create/update time, never while grading)
- QuestionValidationError: a question body fails a structural check
- QuestionTypeNotFoundError: edit/delete/override of a key nobody knows
- UnknownQuestionTypeError: grading an unknown key in strict mode

Mistake counts that cannot be compared are not errors at all; see
quizcore.grading.metrics.INCOMPARABLE.
"""

from __future__ import annotations

from typing import Any


class QuizCoreError(Exception):
    """Base class for all quizcore errors."""
    pass


class QuestionTypeConfigError(QuizCoreError):
    """Raised when a question type definition or override is invalid."""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.details = details or []

    @classmethod
    def from_validation_error(cls, message: str, error: Any) -> QuestionTypeConfigError:
        """Wrap a pydantic ValidationError, keeping its error list."""
        details = [
            {"loc": list(item.get("loc", ())), "msg": item.get("msg", ""), "type": item.get("type", "")}
            for item in error.errors()
        ]
        summary = "; ".join(
            f"{'.'.join(str(p) for p in d['loc']) or '<root>'}: {d['msg']}" for d in details
        )
        return cls(f"{message}: {summary}" if summary else message, details)


class ProtectedQuestionTypeError(QuestionTypeConfigError):
    """Raised when deleting or restructuring a system question type."""
    pass


class DuplicateQuestionTypeError(QuestionTypeConfigError):
    """Raised when creating a question type whose key is already taken."""
    pass


class QuestionTypeNotFoundError(QuizCoreError):
    """Raised when a question type key is absent from the registry and the builtins."""

    def __init__(self, key: str):
        super().__init__(f"Question type not found: {key}")
        self.key = key


class UnknownQuestionTypeError(QuizCoreError):
    """Raised at grading time for an unknown key when strict mode is enabled."""

    def __init__(self, key: str):
        super().__init__(f"Unknown question type: {key}")
        self.key = key


class QuestionValidationError(QuizCoreError):
    """Raised when a question body does not fit its question type."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
