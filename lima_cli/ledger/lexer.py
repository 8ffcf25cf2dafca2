"""Single-line recognizers for the ledger text format.

Every function here looks at one line in isolation and keeps no state. The
indexer uses the cheap ones (header, include, account/commodity tokens) during
its forward scan; the block parser combines all of them to rebuild a full
transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from .types import Amount, TransactionFlag, TransactionIndex

# DATE FLAG ["PAYEE"] "NARRATION" [#tag ...] [^link ...]
TRANSACTION_RE = re.compile(
    r'^(\d{4}-\d{2}-\d{2})\s+([*!])\s+(?:"([^"]*)"\s+)?"([^"]*)"(.*)$'
)
# Indented ACCOUNT followed by anything (amount, cost, price, comment).
POSTING_RE = re.compile(r"^([ \t]+)([A-Z][A-Za-z0-9_-]*(?::[A-Za-z0-9][A-Za-z0-9_-]*)+)(.*)$")
AMOUNT_RE = re.compile(r"^([-+]?\d[\d,]*(?:\.\d+)?)\s+([A-Z][A-Z0-9._'-]{0,22}[A-Z0-9])")
METADATA_RE = re.compile(r"^([ \t]+)([a-z][a-z0-9_-]*):\s+(.+)$")
TAG_RE = re.compile(r"(?<![^\s])#([A-Za-z0-9_/.-]+)")
LINK_RE = re.compile(r"(?<![^\s])\^([A-Za-z0-9_/.-]+)")
INCLUDE_RE = re.compile(r'^include\s+"([^"]+)"')
ACCOUNT_RE = re.compile(r"\b([A-Z][A-Za-z0-9-]*(?::[A-Z0-9][A-Za-z0-9-]*)+)")
COMMODITY_RE = re.compile(r"\b([A-Z][A-Z0-9._'-]{0,22}[A-Z0-9])\b")
_QUOTED_RE = re.compile(r'"[^"]*"')

MAX_COMMODITY_LENGTH = 10


@dataclass(frozen=True, slots=True)
class TransactionHeader:
    date: date
    flag: TransactionFlag
    payee: str | None
    narration: str
    tags: tuple[str, ...]
    links: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PostingLine:
    indent: int
    account: str
    amount: Amount | None
    cost: Amount | None
    price: Amount | None


def _strip_comment(text: str) -> str:
    """Drop a trailing ``;`` comment that sits outside quoted strings."""
    in_quotes = False
    for pos, char in enumerate(text):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ";" and not in_quotes:
            return text[:pos]
    return text


def _indent_width(prefix: str) -> int:
    return len(prefix.expandtabs(4))


def _unique(items: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def is_blank_or_comment(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith(";")


def is_indented(line: str) -> bool:
    return bool(line) and line[0] in (" ", "\t")


def ends_block(line: str) -> bool:
    """True for the first line that is not part of the current transaction block."""
    return not is_blank_or_comment(line) and not is_indented(line)


def parse_header(line: str) -> TransactionHeader | None:
    """Recognise a transaction header; ``None`` when the line is not one."""
    match = TRANSACTION_RE.match(line)
    if not match:
        return None
    try:
        txn_date = date.fromisoformat(match.group(1))
    except ValueError:
        return None
    rest = _strip_comment(match.group(5))
    payee = match.group(3)
    return TransactionHeader(
        date=txn_date,
        flag=TransactionFlag(match.group(2)),
        payee=payee,
        narration=match.group(4),
        tags=extract_tags(rest),
        links=extract_links(rest),
    )


def parse_index_line(
    line: str, file_path: Path, position: int, line_number: int
) -> TransactionIndex | None:
    """Build an index entry from a header line without touching its postings."""
    header = parse_header(line)
    if header is None:
        return None
    return TransactionIndex(
        date=header.date,
        payee=header.payee or header.narration,
        file_path=file_path,
        file_position=position,
        line_number=line_number,
    )


def parse_include(line: str) -> str | None:
    match = INCLUDE_RE.match(line)
    return match.group(1) if match else None


def parse_amount(text: str) -> tuple[Amount, str] | None:
    """Parse ``NUMBER COMMODITY`` at the start of ``text``.

    Returns the amount and the unconsumed remainder, or ``None``.
    """
    match = AMOUNT_RE.match(text.strip())
    if not match:
        return None
    try:
        number = Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return None
    remaining = text.strip()[match.end():]
    return Amount(number=number, commodity=match.group(2)), remaining


def parse_posting(line: str) -> PostingLine | None:
    """Recognise an indented posting line.

    A posting whose trailing text is present but is not an amount is treated as
    malformed and rejected, so the caller can skip it.
    """
    match = POSTING_RE.match(line)
    if not match:
        return None
    rest = _strip_comment(match.group(3)).strip()
    if match.group(3) and not match.group(3)[0].isspace() and match.group(3)[0] != ";":
        return None
    amount = cost = price = None
    if rest:
        parsed = parse_amount(rest)
        if parsed is None:
            return None
        amount, remaining = parsed
        cost, remaining = _parse_cost(remaining)
        price = _parse_price(remaining)
    return PostingLine(
        indent=_indent_width(match.group(1)),
        account=match.group(2),
        amount=amount,
        cost=cost,
        price=price,
    )


def _parse_cost(text: str) -> tuple[Amount | None, str]:
    stripped = text.strip()
    if not stripped.startswith("{"):
        return None, text
    closing = stripped.find("}")
    if closing == -1:
        return None, text
    inner = stripped[1:closing].strip()
    parsed = parse_amount(inner) if inner else None
    return (parsed[0] if parsed else None), stripped[closing + 1:]


def _parse_price(text: str) -> Amount | None:
    stripped = text.strip()
    if not stripped.startswith("@"):
        return None
    parsed = parse_amount(stripped.lstrip("@"))
    return parsed[0] if parsed else None


def parse_metadata(line: str) -> tuple[int, str, str] | None:
    """Recognise an indented ``key: value`` line; returns (indent, key, value)."""
    match = METADATA_RE.match(line)
    if not match:
        return None
    value = _strip_comment(match.group(3)).strip().strip('"')
    return _indent_width(match.group(1)), match.group(2), value


def extract_tags(text: str) -> tuple[str, ...]:
    return _unique(TAG_RE.findall(text))


def extract_links(text: str) -> tuple[str, ...]:
    return _unique(LINK_RE.findall(text))


def extract_accounts_and_commodities(line: str) -> tuple[list[str], list[str]]:
    """Find account-shaped and commodity-shaped tokens on any ledger line.

    Quoted strings, comments and tag/link tokens are ignored. A commodity
    candidate contained in one of the line's account names is not a commodity.
    """
    text = _QUOTED_RE.sub(" ", _strip_comment(line))
    text = TAG_RE.sub(" ", LINK_RE.sub(" ", text))
    accounts = ACCOUNT_RE.findall(text)
    commodities: list[str] = []
    for candidate in COMMODITY_RE.findall(text):
        if any(candidate in account for account in accounts):
            continue
        if len(candidate) <= MAX_COMMODITY_LENGTH:
            commodities.append(candidate)
    return accounts, commodities
