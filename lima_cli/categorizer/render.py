"""Output rendering helpers for lima-categorize."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from .types import Pattern, Suggestion


def _describe(suggestion: Suggestion) -> str:
    tx = suggestion.transaction
    text = tx.payee or ""
    if tx.narration:
        text = f"{text} / {tx.narration}" if text else tx.narration
    return text


def render_suggestions(
    rows: Iterable[tuple[int, Suggestion | None, str]],
    *,
    console: Console,
) -> None:
    """One row per transaction; ``rows`` holds (ordinal, suggestion, description)."""
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Transaction")
    table.add_column("Category", style="bold")
    table.add_column("Confidence", justify="right")
    table.add_column("Alternatives")
    for position, suggestion, description in rows:
        if suggestion is None:
            table.add_row(str(position), description, "-", "", "")
            continue
        alternatives = ", ".join(
            f"{alt.category} ({alt.confidence * 100:.0f}%)" for alt in suggestion.alternatives
        )
        table.add_row(
            str(position),
            _describe(suggestion),
            suggestion.category,
            f"{suggestion.confidence * 100:.0f}%",
            alternatives,
        )
    console.print(table)


def render_suggestion_detail(suggestions: Sequence[Suggestion], *, console: Console) -> None:
    if not suggestions:
        console.print("No matching patterns.")
        return
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Category", style="bold")
    table.add_column("Confidence", justify="right")
    table.add_column("Reason")
    for suggestion in suggestions:
        table.add_row(suggestion.category, f"{suggestion.confidence * 100:.0f}%", suggestion.reason)
    console.print(table)


def render_patterns(patterns: Sequence[Pattern], *, console: Console) -> None:
    if not patterns:
        console.print("No patterns loaded.")
        return
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("ID", style="bold")
    table.add_column("Category")
    table.add_column("Priority", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Matches", justify="right")
    table.add_column("Accuracy", justify="right")
    for pattern in patterns:
        stats = pattern.statistics
        accuracy = f"{stats.accuracy * 100:.0f}%" if stats.feedback_count else "-"
        table.add_row(
            pattern.id,
            pattern.category,
            str(pattern.priority),
            f"{pattern.confidence:.2f}",
            str(stats.match_count),
            accuracy,
        )
    console.print(table)
