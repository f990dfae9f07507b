from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from ..models.row_data import Feature, FeatureMapping, NormalizedRow

"""Row mapper: raw source rows -> NormalizedRow.

Standard fields are copied when the mapped source column exists in the row.
A feature triple is kept only when its resolved name and value are both
non-empty; the unit is attached only when non-empty. Values are not
validated here (price format etc. is the assembler's concern) and the
output order equals the input order.
"""

__all__ = [
    "transform_rows",
    "transform_row",
]

logger = logging.getLogger(__name__)


def _resolve(row: Mapping[str, str], column: str) -> str:
    if not column:
        return ""
    return row.get(column) or ""


def transform_row(
    row: Mapping[str, str],
    field_mapping: Mapping[str, str],
    feature_mappings: Sequence[FeatureMapping] = (),
) -> NormalizedRow:
    values: dict[str, str] = {}
    for canonical, column in field_mapping.items():
        if column and column in row:
            values[canonical] = row[column]

    features: list[Feature] = []
    for fm in feature_mappings:
        fname = _resolve(row, fm.fname)
        fvalue = _resolve(row, fm.fvalue)
        if not (fname and fvalue):
            continue
        funit = _resolve(row, fm.funit)
        features.append(Feature(fname=fname, fvalue=fvalue, funit=funit or None))

    return NormalizedRow(values=values, features=tuple(features))


def transform_rows(
    rows: Iterable[Mapping[str, str]],
    field_mapping: Mapping[str, str],
    feature_mappings: Sequence[FeatureMapping] = (),
) -> list[NormalizedRow]:
    """Apply the field and feature mappings to every source row."""
    result = [transform_row(r, field_mapping, feature_mappings) for r in rows]
    logger.debug(
        "mapped rows=%d fields=%s feature_mappings=%d",
        len(result), sorted(field_mapping), len(feature_mappings),
    )
    return result
