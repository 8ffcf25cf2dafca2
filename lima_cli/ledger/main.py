"""lima-ledger CLI entrypoint."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import click
from dateutil import parser as date_parser

from lima_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context

from . import render
from .loader import LedgerFile


def _open(cli_ctx: CLIContext, ledger_path: str | None) -> LedgerFile:
    path = Path(ledger_path) if ledger_path else cli_ctx.config.files.default_ledger
    cli_ctx.logger.debug(f"Indexing {path}")
    return LedgerFile(path, cache_size=cli_ctx.config.ledger.cache_size)


def _parse_date(value: str | None, option: str) -> date | None:
    if value is None:
        return None
    try:
        return date_parser.parse(value).date()
    except (ValueError, OverflowError) as exc:
        raise click.BadParameter(f"Unrecognised date '{value}'", param_hint=option) from exc


@click.group(help="Inspect ledger files without loading them into memory.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    cli_ctx.logger.debug("lima-ledger group initialised.")


@cli.command("summary")
@click.argument("ledger_path", required=False, type=click.Path(path_type=str))
@pass_cli_context
@handle_cli_errors
def summary(cli_ctx: CLIContext, ledger_path: str | None) -> None:
    """Show transaction, account and commodity counts."""
    with _open(cli_ctx, ledger_path) as ledger:
        console = cli_ctx.logger.console
        console.print(f"Files: {len(ledger.files)}")
        console.print(f"Transactions: {ledger.transaction_count()}")
        console.print(f"Accounts: {len(ledger.accounts)}")
        console.print(f"Commodities: {len(ledger.commodities)}")


@cli.command("show")
@click.argument("ledger_path", type=click.Path(path_type=str))
@click.argument("index", type=int)
@pass_cli_context
@handle_cli_errors
def show(cli_ctx: CLIContext, ledger_path: str, index: int) -> None:
    """Print transaction INDEX (0-based) as ledger text."""
    with _open(cli_ctx, ledger_path) as ledger:
        tx = ledger.get_transaction(index)
        click.echo(render.format_transaction(tx))


@cli.command("list")
@click.argument("ledger_path", required=False, type=click.Path(path_type=str))
@click.option("--start", help="Earliest date to include.")
@click.option("--end", help="Latest date to include.")
@click.option("--limit", type=click.IntRange(min=1), help="Show at most this many rows.")
@pass_cli_context
@handle_cli_errors
def list_transactions(
    cli_ctx: CLIContext,
    ledger_path: str | None,
    start: str | None,
    end: str | None,
    limit: int | None,
) -> None:
    """List indexed transactions in file order."""
    start_date = _parse_date(start, "--start")
    end_date = _parse_date(end, "--end")
    with _open(cli_ctx, ledger_path) as ledger:
        rows = [
            (position, entry)
            for position, entry in enumerate(ledger.index_entries())
            if (start_date is None or entry.date >= start_date)
            and (end_date is None or entry.date <= end_date)
        ]
        if limit is not None and len(rows) > limit:
            cli_ctx.logger.warning(f"Showing first {limit} of {len(rows)} transactions.")
            rows = rows[:limit]
        render.render_index_table(rows, console=cli_ctx.logger.console)


@cli.command("accounts")
@click.argument("ledger_path", required=False, type=click.Path(path_type=str))
@pass_cli_context
@handle_cli_errors
def accounts(cli_ctx: CLIContext, ledger_path: str | None) -> None:
    """List account names in first-seen order."""
    with _open(cli_ctx, ledger_path) as ledger:
        render.render_name_list("Accounts", ledger.accounts, console=cli_ctx.logger.console)


@cli.command("commodities")
@click.argument("ledger_path", required=False, type=click.Path(path_type=str))
@pass_cli_context
@handle_cli_errors
def commodities(cli_ctx: CLIContext, ledger_path: str | None) -> None:
    """List commodity codes in first-seen order."""
    with _open(cli_ctx, ledger_path) as ledger:
        render.render_name_list("Commodities", ledger.commodities, console=cli_ctx.logger.console)


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
