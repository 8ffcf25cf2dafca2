"""lima-categorize CLI entrypoint."""

from __future__ import annotations

from pathlib import Path

import click

from lima_cli.ledger.loader import LedgerFile
from lima_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from lima_cli.shared.exceptions import CategorizationError

from . import render
from .categorizer import Categorizer
from .store import PatternStore, StoreConfig


def _categorizer(cli_ctx: CLIContext) -> Categorizer:
    categorizer = Categorizer(cli_ctx.config)
    cli_ctx.logger.debug(f"Loaded {categorizer.pattern_count()} pattern(s).")
    if not categorizer.is_enabled():
        cli_ctx.logger.warning("Categorization is disabled in the configuration; no suggestions will be made.")
    return categorizer


def _open(cli_ctx: CLIContext, ledger_path: str) -> LedgerFile:
    return LedgerFile(Path(ledger_path), cache_size=cli_ctx.config.ledger.cache_size)


@click.group(help="Suggest account categories for ledger transactions.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    cli_ctx.logger.debug("lima-categorize group initialised.")


@cli.command("suggest")
@click.argument("ledger_path", type=click.Path(path_type=str))
@click.option("--index", "index", type=int, help="Only categorize this transaction (0-based).")
@click.option("--all", "show_all", is_flag=True, help="With --index, list every matching pattern.")
@pass_cli_context
@handle_cli_errors
def suggest(cli_ctx: CLIContext, ledger_path: str, index: int | None, show_all: bool) -> None:
    """Print the best category suggestion for each transaction."""
    if show_all and index is None:
        raise click.UsageError("--all requires --index.")
    categorizer = _categorizer(cli_ctx)
    with _open(cli_ctx, ledger_path) as ledger:
        console = cli_ctx.logger.console
        if show_all:
            tx = ledger.get_transaction(index)
            render.render_suggestion_detail(categorizer.suggest_all(tx), console=console)
            return

        positions = [index] if index is not None else range(ledger.transaction_count())
        rows = []
        for position in positions:
            tx = ledger.get_transaction(position)
            description = tx.payee or tx.narration
            rows.append((position, categorizer.suggest(tx), description))
        render.render_suggestions(rows, console=console)
        unmatched = sum(1 for _, suggestion, _ in rows if suggestion is None)
        if unmatched:
            cli_ctx.logger.info(f"{unmatched} transaction(s) matched no pattern.")


@cli.command("feedback")
@click.argument("ledger_path", type=click.Path(path_type=str))
@click.argument("index", type=int)
@click.option("--accept/--reject", "accepted", required=True, help="Whether the suggestion was right.")
@pass_cli_context
@handle_cli_errors
def feedback(cli_ctx: CLIContext, ledger_path: str, index: int, accepted: bool) -> None:
    """Record feedback on the suggestion for transaction INDEX."""
    categorizer = _categorizer(cli_ctx)
    with _open(cli_ctx, ledger_path) as ledger:
        tx = ledger.get_transaction(index)
    suggestion = categorizer.suggest(tx)
    if suggestion is None:
        raise CategorizationError(f"No suggestion for transaction {index}; nothing to record.")
    categorizer.feedback(suggestion, accepted)
    pattern = categorizer.get_pattern(suggestion.pattern.id)
    verdict = "accepted" if accepted else "rejected"
    cli_ctx.logger.success(
        f"Recorded {verdict} suggestion {suggestion.category} from pattern '{pattern.name}' "
        f"(accuracy now {pattern.statistics.accuracy * 100:.0f}% over {pattern.statistics.feedback_count})."
    )
    if not (categorizer.settings.learn_from_edits and cli_ctx.config.files.patterns_file):
        cli_ctx.logger.info("learn_from_edits is off; statistics were not saved.")


@cli.command("validate")
@click.argument("patterns_path", type=click.Path(path_type=str))
@click.option("--lenient", is_flag=True, help="Skip invalid patterns instead of failing.")
@pass_cli_context
@handle_cli_errors
def validate(cli_ctx: CLIContext, patterns_path: str, lenient: bool) -> None:
    """Check a patterns file and report what would load."""
    store = PatternStore(StoreConfig(strict=not lenient))
    patterns = store.load_file(patterns_path)
    for problem in store.last_report.skipped:
        cli_ctx.logger.warning(f"Skipped {problem}")
    cli_ctx.logger.success(f"{len(patterns)} pattern(s) valid in {patterns_path}.")


@cli.command("patterns")
@pass_cli_context
@handle_cli_errors
def list_patterns(cli_ctx: CLIContext) -> None:
    """List the configured patterns with their learned statistics."""
    categorizer = _categorizer(cli_ctx)
    render.render_patterns(categorizer.get_patterns(), console=cli_ctx.logger.console)


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
