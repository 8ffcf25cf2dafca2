"""Project-wide custom exceptions."""

from __future__ import annotations

from pathlib import Path


class LimaError(Exception):
    """Base exception for the ledger tooling."""


class ConfigurationError(LimaError):
    """Raised when configuration loading or validation fails."""


class LedgerError(LimaError):
    """Raised for ledger indexing and parsing failures."""


class LedgerFileError(LedgerError):
    """Raised when the ledger or one of its includes cannot be read."""


class LedgerParseError(LedgerError):
    """Raised when a transaction block cannot be parsed."""

    def __init__(self, message: str, *, path: str | Path | None = None, line_number: int | None = None) -> None:
        location = ""
        if path is not None and line_number is not None:
            location = f"{path}:{line_number}: "
        elif line_number is not None:
            location = f"line {line_number}: "
        super().__init__(f"{location}{message}")
        self.path = Path(path) if path is not None else None
        self.line_number = line_number


class NotFoundError(LimaError):
    """Raised when a requested item does not exist."""


class TransactionNotFoundError(NotFoundError):
    """Raised for an out-of-range transaction ordinal."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"Transaction index out of range: {index} (have {count})")
        self.index = index


class PatternNotFoundError(NotFoundError):
    """Raised for an unknown pattern ID."""

    def __init__(self, pattern_id: str) -> None:
        super().__init__(f"Pattern not found: {pattern_id}")
        self.pattern_id = pattern_id


class CategorizationError(LimaError):
    """Raised when transaction categorization fails."""


class DuplicatePatternError(CategorizationError):
    """Raised when adding a pattern whose ID is already registered."""


class PatternValidationError(CategorizationError):
    """Raised when a pattern definition fails validation."""

    def __init__(self, message: str, *, index: int | None = None, pattern_id: str | None = None) -> None:
        if index is not None:
            label = f"pattern {index} ({pattern_id or '<no id>'})"
            message = f"error in {label}: {message}"
        super().__init__(message)
        self.index = index
        self.pattern_id = pattern_id


class PatternStoreError(CategorizationError):
    """Raised when a patterns file cannot be read, parsed, or written."""


class PatternsFileNotFoundError(PatternStoreError):
    """Raised when the patterns file does not exist."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"Patterns file not found: {path}")
        self.path = Path(path)
