from __future__ import annotations

from dataclasses import dataclass, field

"""Normalized row models produced by the row mapper.

A NormalizedRow is one product record keyed by canonical BMEcat field name
(SUPPLIER_AID, PRICE_AMOUNT, ...) with every value held as a string, plus
the ordered feature triples resolved for that record.
"""

__all__ = [
    "Feature",
    "FeatureMapping",
    "NormalizedRow",
]


@dataclass(frozen=True)
class Feature:
    """One product feature (FNAME / FVALUE / optional FUNIT)."""
    fname: str
    fvalue: str
    funit: str | None = None


@dataclass(frozen=True)
class FeatureMapping:
    """Source columns holding a feature's name, value and unit."""
    fname: str
    fvalue: str
    funit: str = ""


@dataclass(frozen=True)
class NormalizedRow:
    """Logical representation of one product after field mapping.

    Rows are immutable once produced; the assembler only reads them.
    """
    values: dict[str, str]
    features: tuple[Feature, ...] = field(default_factory=tuple)

    def get(self, key: str) -> str:
        """Value for a canonical field, empty string when absent."""
        return self.values.get(key) or ""

    @property
    def is_renderable(self) -> bool:
        """A row needs both an article number and a price to become an article."""
        return bool(self.get("SUPPLIER_AID")) and bool(self.get("PRICE_AMOUNT"))
