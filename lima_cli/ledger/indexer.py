"""Forward-scan indexer for ledger files and their includes."""

from __future__ import annotations

import logging
from pathlib import Path

from lima_cli.shared.exceptions import LedgerFileError

from . import lexer
from .parser import decode_line
from .types import Index

_LOGGER = logging.getLogger(__name__)


class LedgerIndexer:
    """Build an :class:`Index` in one pass over a ledger and everything it includes.

    Includes are followed depth-first at the point they appear, so index order
    is the order a reader would encounter transactions. Each file is visited at
    most once, keyed by its resolved absolute path, which makes cyclic includes
    terminate.
    """

    def __init__(self) -> None:
        self.index = Index()
        self._visited: set[Path] = set()
        self._account_set: set[str] = set()
        self._commodity_set: set[str] = set()

    def build(self, path: str | Path) -> Index:
        self._process_file(Path(path))
        _LOGGER.debug(
            "Indexed %d transaction(s) across %d file(s)",
            len(self.index.transactions),
            len(self.index.files),
        )
        return self.index

    def _process_file(self, file_path: Path) -> None:
        absolute = file_path.expanduser().resolve()
        if absolute in self._visited:
            _LOGGER.debug("Skipping already indexed file %s", absolute)
            return
        self._visited.add(absolute)

        try:
            handle = absolute.open("rb")
        except OSError as exc:
            raise LedgerFileError(f"Failed to open ledger file {file_path}: {exc}") from exc

        self.index.files.append(absolute)
        base_dir = absolute.parent
        position = 0
        line_number = 0
        with handle:
            try:
                for raw in handle:
                    line_number += 1
                    line = decode_line(raw)
                    include = lexer.parse_include(line)
                    if include is not None:
                        self._process_include(base_dir, include)
                    else:
                        self._index_line(line, absolute, position, line_number)
                    position += len(raw)
            except OSError as exc:
                raise LedgerFileError(f"Error reading ledger file {absolute}: {exc}") from exc

    def _process_include(self, base_dir: Path, include: str) -> None:
        target = Path(include).expanduser()
        if not target.is_absolute():
            target = base_dir / target
        _LOGGER.debug("Following include %s", target)
        try:
            self._process_file(target)
        except LedgerFileError as exc:
            raise LedgerFileError(f"Error processing include {target}: {exc}") from exc

    def _index_line(self, line: str, file_path: Path, position: int, line_number: int) -> None:
        entry = lexer.parse_index_line(line, file_path, position, line_number)
        if entry is not None:
            self.index.transactions.append(entry)

        accounts, commodities = lexer.extract_accounts_and_commodities(line)
        for account in accounts:
            if account not in self._account_set:
                self._account_set.add(account)
                self.index.accounts.append(account)
        for commodity in commodities:
            if commodity not in self._commodity_set:
                self._commodity_set.add(commodity)
                self.index.commodities.append(commodity)


def build_index(path: str | Path) -> Index:
    """Index ``path`` and its includes; raises :class:`LedgerFileError` on I/O failure."""
    return LedgerIndexer().build(path)
