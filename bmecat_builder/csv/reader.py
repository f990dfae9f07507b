from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from ..errors import EmptyInputError, InputError, MissingColumnError
from ..models.catalog_group import StructureRow

"""Source table reader (CSV Normalizer).

CSV rules:
- the separator is detected from the first line: ';' only when it occurs
  strictly more often than ',', otherwise ','
- a '"' toggles the quoted state; the separator splits fields only outside
  quotes; there is no '""' escape handling
- values are trimmed and lose one surrounding quote
- data lines whose field count differs from the header are dropped (ragged
  export tolerance) and reported in CsvData.skipped_lines

.xlsx product tables are read through pandas with every cell as string.
"""

__all__ = [
    "CsvData",
    "SkippedLine",
    "STRUCTURE_COLUMNS",
    "detect_separator",
    "parse_line",
    "parse_csv",
    "parse_structure_csv",
    "structure_rows_from_table",
    "read_table_file",
    "find_invalid_xml_characters",
]

logger = logging.getLogger(__name__)

STRUCTURE_COLUMNS = ("GROUP_ID", "GROUP_NAME", "PARENT_ID")

# Characters outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\uFFFE\uFFFF]")
_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass(frozen=True)
class SkippedLine:
    line_number: int  # 1-based physical line
    field_count: int


@dataclass
class CsvData:
    headers: list[str]
    rows: list[dict[str, str]]  # header -> value, in file order
    skipped_lines: list[SkippedLine] = field(default_factory=list)
    source: str = "<text>"


def detect_separator(header_line: str) -> str:
    if header_line.count(";") > header_line.count(","):
        return ";"
    return ","


def parse_line(line: str, separator: str) -> list[str]:
    values: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == separator and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return [_strip_quotes(v) for v in values]


def _strip_quotes(value: str) -> str:
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def parse_csv(text: str, source: str = "<text>") -> CsvData:
    """Parse delimited text into headers and rows.

    Raises:
        EmptyInputError: no header line, or no data line at all. A file whose
            data lines were all dropped as ragged is not an error and yields
            zero rows.
    """
    lines = _LINE_SPLIT.split(text.strip())
    if not lines or not lines[0].strip():
        raise EmptyInputError(f"{source}: no header line found")

    separator = detect_separator(lines[0])
    headers = parse_line(lines[0], separator)
    rows: list[dict[str, str]] = []
    skipped: list[SkippedLine] = []
    data_lines = 0

    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        data_lines += 1
        values = parse_line(line, separator)
        if len(values) != len(headers):
            logger.debug(
                "%s: dropping line %d (%d fields, expected %d)",
                source, line_number, len(values), len(headers),
            )
            skipped.append(SkippedLine(line_number=line_number, field_count=len(values)))
            continue
        rows.append(dict(zip(headers, values)))

    if data_lines == 0:
        raise EmptyInputError(f"{source}: file contains no data rows")

    return CsvData(headers=headers, rows=rows, skipped_lines=skipped, source=source)


def structure_rows_from_table(table: CsvData) -> list[StructureRow]:
    for column in STRUCTURE_COLUMNS:
        if column not in table.headers:
            raise MissingColumnError(column)
    return [
        StructureRow(
            GROUP_ID=row["GROUP_ID"],
            GROUP_NAME=row["GROUP_NAME"],
            PARENT_ID=row["PARENT_ID"],
        )
        for row in table.rows
    ]


def parse_structure_csv(text: str, source: str = "<text>") -> list[StructureRow]:
    """Parse a structure table with GROUP_ID / GROUP_NAME / PARENT_ID columns."""
    return structure_rows_from_table(parse_csv(text, source=source))


def _read_excel_table(path: Path) -> CsvData:
    df = pd.read_excel(path, sheet_name=0, header=0, dtype=str, keep_default_na=False)
    headers = [str(c).strip() for c in df.columns.tolist()]
    if not headers:
        raise EmptyInputError(f"{path.name}: no header line found")
    rows: list[dict[str, str]] = []
    for raw in df.itertuples(index=False, name=None):
        values = ["" if v is None else str(v).strip() for v in raw]
        if not any(values):
            continue
        rows.append(dict(zip(headers, values)))
    if not rows:
        raise EmptyInputError(f"{path.name}: file contains no data rows")
    return CsvData(headers=headers, rows=rows, source=path.name)


def read_table_file(path: Path) -> CsvData:
    """Read a product or structure table from a .csv or .xlsx file."""
    if not path.exists():
        raise InputError(f"file not found: {path}")
    if path.suffix.lower() in (".xlsx", ".xlsm"):
        return _read_excel_table(path)
    try:
        text = path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputError(f"{path.name}: file is not UTF-8 encoded ({e.reason}); please save it as UTF-8") from e
    return parse_csv(text, source=path.name)


def find_invalid_xml_characters(
    rows: Iterable[Mapping[str, str]], headers: Iterable[str]
) -> tuple[int, str] | None:
    """Locate the first value holding a character XML 1.0 forbids.

    Returns (row_number, column) where row_number counts the header as
    line 1, or None when everything is clean.
    """
    columns = list(headers)
    for index, row in enumerate(rows):
        for column in columns:
            value = row.get(column)
            if isinstance(value, str) and _INVALID_XML_CHARS.search(value):
                return index + 2, column
    return None
