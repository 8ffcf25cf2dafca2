"""Transaction block parser used for lazy re-parsing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from lima_cli.shared.exceptions import LedgerFileError, LedgerParseError

from . import lexer
from .types import Posting, Transaction

_LOGGER = logging.getLogger(__name__)


def decode_line(raw: bytes) -> str:
    """Decode one raw line and drop its terminator (``\\n`` or ``\\r\\n``)."""
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


def iter_lines(handle: BinaryIO) -> Iterator[str]:
    for raw in handle:
        yield decode_line(raw)


def parse_transaction(
    lines: Iterable[str],
    *,
    start_line: int,
    path: Path | None = None,
    file_position: int = 0,
) -> Transaction:
    """Parse one transaction whose header is the first of ``lines``.

    Consumes lines until the block ends (first non-indented, non-blank,
    non-comment line) or input runs out. Malformed postings are skipped with a
    debug log; a malformed header raises :class:`LedgerParseError`.
    """
    iterator = iter(lines)
    try:
        header_line = next(iterator)
    except StopIteration:
        raise LedgerParseError("unexpected end of file", path=path, line_number=start_line) from None

    header = lexer.parse_header(header_line)
    if header is None:
        raise LedgerParseError(
            f"invalid transaction header: {header_line!r}", path=path, line_number=start_line
        )

    metadata: dict[str, str] = {}
    postings: list[tuple[lexer.PostingLine, dict[str, str]]] = []
    line_number = start_line
    for line in iterator:
        line_number += 1
        if lexer.is_blank_or_comment(line):
            continue
        if lexer.ends_block(line):
            break

        meta = lexer.parse_metadata(line)
        if meta is not None:
            indent, key, value = meta
            if postings and indent > postings[-1][0].indent:
                postings[-1][1][key] = value
            else:
                metadata[key] = value
            continue

        posting = lexer.parse_posting(line)
        if posting is not None:
            postings.append((posting, {}))
            continue

        _LOGGER.debug("Skipping unrecognised line %s:%d: %r", path or "<input>", line_number, line)

    return Transaction(
        date=header.date,
        flag=header.flag,
        payee=header.payee,
        narration=header.narration,
        tags=header.tags,
        links=header.links,
        postings=tuple(
            Posting(
                account=posting.account,
                amount=posting.amount,
                cost=posting.cost,
                price=posting.price,
                metadata=posting_meta,
            )
            for posting, posting_meta in postings
        ),
        metadata=metadata,
        file_position=file_position,
        line_number=start_line,
    )


def read_transaction_at(path: Path, position: int, line_number: int) -> Transaction:
    """Open ``path``, seek to ``position`` and parse the transaction found there.

    The handle is opened and closed within the call.
    """
    try:
        with path.open("rb") as handle:
            handle.seek(position)
            return parse_transaction(
                iter_lines(handle),
                start_line=line_number,
                path=path,
                file_position=position,
            )
    except OSError as exc:
        raise LedgerFileError(f"Failed to read transaction from {path} at byte {position}: {exc}") from exc
