from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

"""Catalogue of the canonical BMEcat article fields.

The order is the order in which fields are presented for mapping; the
required flag drives the pre-generation mapping check.
"""

__all__ = [
    "BmecatField",
    "BMECAT_FIELDS",
    "CANONICAL_KEYS",
    "missing_required_fields",
]


@dataclass(frozen=True)
class BmecatField:
    key: str
    label: str
    description: str
    required: bool


BMECAT_FIELDS: tuple[BmecatField, ...] = (
    BmecatField("SUPPLIER_AID", "Article number (SUPPLIER_AID)",
                "Unique article number assigned by the supplier.", True),
    BmecatField("DESCRIPTION_SHORT", "Short description (DESCRIPTION_SHORT)",
                "Name or short description of the article.", True),
    BmecatField("PRICE_AMOUNT", "Price (PRICE_AMOUNT)",
                "Net price of the article.", True),
    BmecatField("PRICE_TYPE", "Price type (price_type)",
                "Kind of price, e.g. net_list; rendered as attribute of <ARTICLE_PRICE>.", True),
    BmecatField("ORDER_UNIT", "Order unit (ORDER_UNIT)",
                "Unit in which the article is ordered (e.g. PCE, C62).", True),
    BmecatField("DESCRIPTION_LONG", "Long description (DESCRIPTION_LONG)",
                "Detailed description; may contain HTML.", False),
    BmecatField("EAN", "EAN / GTIN",
                "European Article Number or Global Trade Item Number.", False),
    BmecatField("MANUFACTURER_AID", "Manufacturer article number",
                "Article number of the original manufacturer.", False),
    BmecatField("MANUFACTURER_NAME", "Manufacturer name",
                "Name of the manufacturer.", False),
    BmecatField("PRICE_CURRENCY", "Currency (PRICE_CURRENCY)",
                "Price currency (e.g. EUR); falls back to the catalog currency.", False),
    BmecatField("CATALOG_GROUP_ID", "Catalog group id",
                "Id of the catalog group the article belongs to (from the structure table).", False),
)

CANONICAL_KEYS: tuple[str, ...] = tuple(f.key for f in BMECAT_FIELDS)


def missing_required_fields(field_mapping: Mapping[str, str]) -> list[str]:
    """Required canonical keys that have no non-empty source column."""
    return [
        f.key for f in BMECAT_FIELDS
        if f.required and not (field_mapping.get(f.key) or "").strip()
    ]
