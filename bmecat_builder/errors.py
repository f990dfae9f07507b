from __future__ import annotations

from enum import Enum

"""Exception taxonomy for BMEcat generation.

Input problems (recoverable by correcting the source files) derive from
InputError; everything that aborts a generation run derives from
GenerationError. Nothing in the core retries or degrades silently: a run
either returns one complete document or raises exactly one of these.
"""

__all__ = [
    "BmecatError",
    "InputError",
    "EmptyInputError",
    "MissingColumnError",
    "InvalidCharacterError",
    "MappingError",
    "GenerationError",
    "TemplateFailureCause",
    "TemplateContractError",
    "StructuralError",
    "GroupCycleError",
]


class BmecatError(Exception):
    """Base class for all errors raised by bmecat_builder."""


class InputError(BmecatError):
    """Source data cannot be used as given."""


class EmptyInputError(InputError):
    """Raised when a table has no header line or no data rows."""


class MissingColumnError(InputError):
    """Raised when a required column is absent from a table header."""

    def __init__(self, column: str) -> None:
        super().__init__(f"required column '{column}' not found in structure table")
        self.column = column


class InvalidCharacterError(InputError):
    """Raised when source data holds a character XML 1.0 does not allow."""

    def __init__(self, source: str, row: int, column: str) -> None:
        super().__init__(
            f"{source}: invalid control character in row {row}, column '{column}'; "
            "BMEcat forbids certain invisible control characters, please clean the source file"
        )
        self.source = source
        self.row = row
        self.column = column


class MappingError(InputError):
    """Raised when required canonical fields are not mapped to any column."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"required fields are not mapped: {', '.join(missing)}")
        self.missing = missing


class GenerationError(BmecatError):
    """A generation run failed as a whole."""


class TemplateFailureCause(Enum):
    """Distinguishable reasons for an unusable oracle reply."""
    UNREADABLE_DOCUMENT = "unreadable_document"
    INPUT_TOO_LARGE = "input_too_large"
    MALFORMED_REPLY = "malformed_reply"
    MISSING_MARKER = "missing_marker"
    INVALID_STRUCTURE = "invalid_structure"
    ORACLE_UNAVAILABLE = "oracle_unavailable"


class TemplateContractError(GenerationError):
    """Raised when a template (oracle output) breaks the slot contract."""

    def __init__(self, message: str, cause: TemplateFailureCause) -> None:
        super().__init__(message)
        self.cause = cause


class StructuralError(GenerationError):
    """Raised when a supplied XML sample cannot host the catalog content."""


class GroupCycleError(GenerationError):
    """Raised when PARENT_ID references form a cycle."""

    def __init__(self, group_ids: list[str]) -> None:
        chain = " -> ".join(group_ids)
        super().__init__(f"catalog group structure contains a cycle: {chain}")
        self.group_ids = group_ids
