"""Output rendering helpers for lima-ledger."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from .types import Posting, Transaction, TransactionIndex


def _quote(text: str) -> str:
    return '"' + text.replace('"', "'") + '"'


def _format_posting(posting: Posting) -> list[str]:
    line = f"  {posting.account}"
    if posting.amount is not None:
        line += f"  {posting.amount}"
        if posting.cost is not None:
            line += f" {{{posting.cost}}}"
        if posting.price is not None:
            line += f" @ {posting.price}"
    lines = [line]
    lines.extend(f"    {key}: {_quote(value)}" for key, value in posting.metadata.items())
    return lines


def format_transaction(tx: Transaction) -> str:
    """Render ``tx`` back into ledger text (header, metadata, postings)."""
    parts = [tx.date.isoformat(), tx.flag.value]
    if tx.payee is not None:
        parts.append(_quote(tx.payee))
    parts.append(_quote(tx.narration))
    parts.extend(f"#{tag}" for tag in tx.tags)
    parts.extend(f"^{link}" for link in tx.links)
    lines = [" ".join(parts)]
    lines.extend(f"  {key}: {_quote(value)}" for key, value in tx.metadata.items())
    for posting in tx.postings:
        lines.extend(_format_posting(posting))
    return "\n".join(lines)


def render_index_table(
    entries: Iterable[tuple[int, TransactionIndex]],
    *,
    console: Console,
) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Payee", style="bold")
    table.add_column("Location")
    for position, entry in entries:
        table.add_row(
            str(position),
            entry.date.isoformat(),
            entry.payee,
            f"{entry.file_path.name}:{entry.line_number}",
        )
    console.print(table)


def render_name_list(title: str, names: Sequence[str], *, console: Console) -> None:
    if not names:
        console.print(f"No {title.lower()} found.")
        return
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column(title)
    for name in names:
        table.add_row(name)
    console.print(table)
