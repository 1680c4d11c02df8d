"""
Typer CLI for quizcore.

Commands:
    quizcore types list          - List global (or per-test) question types
    quizcore types show KEY      - Show one question type as JSON
    quizcore types create        - Create a question type from a JSON file
    quizcore types update KEY    - Patch a question type from a JSON file
    quizcore types delete KEY    - Retire a user-defined question type
    quizcore overrides list      - List the overrides of a test
    quizcore overrides set       - Create or patch a per-test override
    quizcore overrides clear     - Remove a per-test override
    quizcore grade KEY USER CORRECT  - Grade one answer (JSON values)
    quizcore validate KEY BODY_FILE  - Validate a question body
    quizcore db init             - Initialize database tables

Usage:
    quizcore db init
    quizcore types create --file ordering.json
    quizcore overrides set exam-42 checkbox --rule-file strict.json
    quizcore grade checkbox '["a"]' '["a","b"]' --test-id exam-42
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from quizcore.config import get_settings
from quizcore.errors import QuestionValidationError, QuizCoreError
from quizcore.grading import INCOMPARABLE, grade_by_type_key
from quizcore.logging_setup import configure_logging
from quizcore.question_types import OverrideResolver, QuestionTypeRegistry, ensure_valid_question

app = typer.Typer(
    help="quizcore CLI: question type configuration and grading",
    no_args_is_help=True,
)
types_app = typer.Typer(help="Global question type definitions")
overrides_app = typer.Typer(help="Per-test question type overrides")
db_app = typer.Typer(help="Database management")
app.add_typer(types_app, name="types")
app.add_typer(overrides_app, name="overrides")
app.add_typer(db_app, name="db")

console = Console()


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """Lazily wires the SQL stores into the registry and resolver."""

    def __init__(self):
        self.settings = get_settings()
        self._registry: QuestionTypeRegistry | None = None
        self._resolver: OverrideResolver | None = None

    @property
    def registry(self) -> QuestionTypeRegistry:
        if self._registry is None:
            from quizcore.db import SqlDefinitionStore

            self._registry = QuestionTypeRegistry(SqlDefinitionStore(), collation=self.settings.title_collation)
        return self._registry

    @property
    def resolver(self) -> OverrideResolver:
        if self._resolver is None:
            from quizcore.db import SqlOverrideStore

            self._resolver = OverrideResolver(self.registry, SqlOverrideStore())
        return self._resolver


def _fail(message: str) -> None:
    rprint(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=1)


def _load_json_file(path: Path) -> Any:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _parse_json_arg(name: str, value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        _fail(f"{name} is not valid JSON: {e}")


def _format_mistakes(count: int) -> str:
    return "incomparable" if count == INCOMPARABLE else str(count)


# ========================================
# Types
# ========================================


@types_app.command("list")
def types_list(
    test_id: Optional[str] = typer.Option(None, "--test-id", "-t", help="Resolve overrides of this test"),
    include_inactive: bool = typer.Option(False, "--include-inactive", "-a", help="Show retired/disabled types"),
) -> None:
    """List question types, system types first."""
    ctx = CLIContext()
    try:
        if test_id is not None:
            items = list(ctx.resolver.resolve_effective_types(test_id, include_inactive=include_inactive).values())
        else:
            items = ctx.registry.list_global_types(include_inactive=include_inactive)
    except QuizCoreError as e:
        _fail(str(e))

    title = f"Question types for test {test_id}" if test_id else "Question types"
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Title")
    table.add_column("Template")
    table.add_column("Formula")
    table.add_column("Points", justify="right")
    table.add_column("System", justify="center")
    table.add_column("Active", justify="center")

    for item in items:
        rule = item.scoring_rule
        table.add_row(
            item.key,
            item.title,
            item.ui_template.value,
            rule.formula,
            f"{rule.correct_points:g}",
            "yes" if item.is_system else "",
            "[green]yes[/green]" if item.is_active else "[red]no[/red]",
        )

    console.print(table)


@types_app.command("show")
def types_show(
    key: str = typer.Argument(..., help="Question type key"),
    test_id: Optional[str] = typer.Option(None, "--test-id", "-t", help="Resolve overrides of this test"),
) -> None:
    """Show one question type as JSON."""
    ctx = CLIContext()
    if test_id is not None:
        item = ctx.resolver.resolve_effective_type(test_id, key, include_inactive=True)
    else:
        item = ctx.registry.get_by_key(key)
    if item is None:
        _fail(f"Question type not found: {key}")
    console.print_json(data=item.to_dict())


@types_app.command("create")
def types_create(
    file: Path = typer.Option(..., "--file", "-f", help="JSON file with the question type"),
) -> None:
    """Create a user-defined question type."""
    payload = _load_json_file(file)
    if not isinstance(payload, dict):
        _fail("Question type file must contain a JSON object")
    try:
        created = CLIContext().registry.create_type(payload)
    except QuizCoreError as e:
        _fail(str(e))
    rprint(f"[green]✓[/green] Created question type [cyan]{created.key}[/cyan] ({created.title})")


@types_app.command("update")
def types_update(
    key: str = typer.Argument(..., help="Question type key"),
    file: Path = typer.Option(..., "--file", "-f", help="JSON file with the fields to change"),
) -> None:
    """Patch a question type; fields missing from the file are kept."""
    changes = _load_json_file(file)
    if not isinstance(changes, dict):
        _fail("Update file must contain a JSON object")
    try:
        updated = CLIContext().registry.update_type(key, changes)
    except QuizCoreError as e:
        _fail(str(e))
    rprint(f"[green]✓[/green] Updated question type [cyan]{updated.key}[/cyan]")


@types_app.command("delete")
def types_delete(key: str = typer.Argument(..., help="Question type key")) -> None:
    """Retire a user-defined question type (it stays gradable)."""
    try:
        CLIContext().registry.delete_type(key)
    except QuizCoreError as e:
        _fail(str(e))
    rprint(f"[green]✓[/green] Retired question type [cyan]{key}[/cyan]")


# ========================================
# Overrides
# ========================================


@overrides_app.command("list")
def overrides_list(test_id: str = typer.Argument(..., help="Test id")) -> None:
    """List the stored overrides of a test."""
    overrides = CLIContext().resolver.list_overrides(test_id)
    if not overrides:
        rprint(f"[dim]No overrides for test {test_id}[/dim]")
        return

    table = Table(title=f"Overrides for test {test_id}")
    table.add_column("Key", style="cyan")
    table.add_column("Title override")
    table.add_column("Rule override")
    table.add_column("Disabled", justify="center")
    for item in overrides:
        rule = item.scoring_rule_override
        table.add_row(
            item.question_type_key,
            item.title_override or "",
            f"{rule.formula} ({rule.correct_points:g})" if rule else "",
            "[red]yes[/red]" if item.is_disabled else "",
        )
    console.print(table)


@overrides_app.command("set")
def overrides_set(
    test_id: str = typer.Argument(..., help="Test id"),
    key: str = typer.Argument(..., help="Question type key"),
    title: Optional[str] = typer.Option(None, "--title", help="Title shown in this test"),
    rule_file: Optional[Path] = typer.Option(None, "--rule-file", help="JSON file with a scoring rule"),
    disable: Optional[bool] = typer.Option(None, "--disable/--enable", help="Hide the type in this test"),
) -> None:
    """Create or patch the override of one question type in one test."""
    changes: dict[str, Any] = {}
    if title is not None:
        changes["titleOverride"] = title
    if rule_file is not None:
        changes["scoringRuleOverride"] = _load_json_file(rule_file)
    if disable is not None:
        changes["isDisabled"] = disable
    if not changes:
        _fail("Nothing to change: pass --title, --rule-file or --disable/--enable")

    try:
        effective = CLIContext().resolver.upsert_override(test_id, key, changes)
    except QuizCoreError as e:
        _fail(str(e))

    state = "active" if effective.is_active else "disabled"
    rprint(
        f"[green]✓[/green] Override saved: [cyan]{key}[/cyan] in test {test_id} -> "
        f"'{effective.title}', {effective.scoring_rule.formula}, {state}"
    )


@overrides_app.command("clear")
def overrides_clear(
    test_id: str = typer.Argument(..., help="Test id"),
    key: str = typer.Argument(..., help="Question type key"),
) -> None:
    """Remove the override of one question type in one test."""
    if CLIContext().resolver.delete_override(test_id, key):
        rprint(f"[green]✓[/green] Override removed: [cyan]{key}[/cyan] in test {test_id}")
    else:
        rprint(f"[yellow]![/yellow] No override for [cyan]{key}[/cyan] in test {test_id}")


# ========================================
# Grading & validation
# ========================================


@app.command("grade")
def grade_command(
    key: str = typer.Argument(..., help="Question type key"),
    user_answer: str = typer.Argument(..., help="User answer as JSON"),
    correct_answer: str = typer.Argument(..., help="Correct answer as JSON"),
    test_id: Optional[str] = typer.Option(None, "--test-id", "-t", help="Grade under this test's overrides"),
    fallback_points: float = typer.Option(0.0, "--fallback-points", help="Points for unconfigured legacy keys"),
) -> None:
    """Grade one answer."""
    user = _parse_json_arg("USER_ANSWER", user_answer)
    correct = _parse_json_arg("CORRECT_ANSWER", correct_answer)

    ctx = CLIContext()
    try:
        type_map = ctx.resolver.get_question_type_map(test_id, include_inactive=True)
        result = grade_by_type_key(key, type_map, user, correct, fallback_max_points=fallback_points)
    except QuizCoreError as e:
        _fail(str(e))

    color = "green" if result.is_correct else ("yellow" if result.earned_points > 0 else "red")
    rprint(f"[{color}]Earned: {result.earned_points:g} / {result.max_points:g}[/{color}]")
    rprint(f"Mistakes: {_format_mistakes(result.mistakes_count)}")
    rprint(f"Correct: {'yes' if result.is_correct else 'no'}")


@app.command("validate")
def validate_command(
    key: str = typer.Argument(..., help="Question type key"),
    body_file: Path = typer.Argument(..., help="JSON file with the question body"),
    test_id: Optional[str] = typer.Option(None, "--test-id", "-t", help="Validate under this test's overrides"),
) -> None:
    """Validate a question body against its question type."""
    body = _load_json_file(body_file)
    ctx = CLIContext()
    type_map = ctx.resolver.get_question_type_map(test_id, include_inactive=True)
    try:
        ensure_valid_question(key, body, type_map)
    except QuestionValidationError as e:
        _fail(e.reason)
    rprint(f"[green]✓[/green] Question is valid for [cyan]{key}[/cyan]")


# ========================================
# Database
# ========================================


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    from quizcore.db import init_db

    try:
        init_db()
    except Exception as e:
        logger.exception("Database initialization failed")
        _fail(f"Database initialization failed: {e}")
    rprint("[green]✓[/green] Database tables initialized")


def main() -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)
    app()


if __name__ == "__main__":
    main()
