"""
SQLAlchemy persistence for question type definitions and per-test overrides.
"""

from .database import get_engine, get_session_factory, init_db, reset_engine, session_scope
from .models import Base, QuestionTypeOverrideRow, QuestionTypeRow
from .stores import SqlDefinitionStore, SqlOverrideStore

__all__ = [
    "Base",
    "QuestionTypeOverrideRow",
    "QuestionTypeRow",
    "SqlDefinitionStore",
    "SqlOverrideStore",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine",
    "session_scope",
]
