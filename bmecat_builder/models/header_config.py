from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Header metadata models for BMEcat generation.

HeaderConfig carries the catalog and supplier data rendered into <HEADER>.
The format discriminant is fixed for a generation run and selects both the
header rendering branch and which of the 2005-only attributes are honored.
"""

__all__ = [
    "BmecatFormat",
    "HeaderConfig",
    "PricingConfig",
]


class BmecatFormat(Enum):
    """Target BMEcat version."""
    V1_2 = "1.2"
    V2005 = "2005"

    @classmethod
    def parse(cls, value: str | BmecatFormat) -> BmecatFormat:
        if isinstance(value, BmecatFormat):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as e:
            raise ValueError(f"unsupported BMEcat format: {value!r} (expected 1.2 or 2005)") from e


@dataclass(frozen=True)
class HeaderConfig:
    """Catalog/supplier metadata consumed read-only by the assembler."""
    catalog_id: str
    catalog_version: str
    catalog_name: str
    supplier_name: str
    format: BmecatFormat = BmecatFormat.V1_2
    territory: str = ""
    currency: str = ""
    supplier_street: str = ""
    supplier_zip: str = ""
    supplier_city: str = ""
    supplier_country: str = ""
    supplier_email: str = ""
    supplier_url: str = ""
    # 2005 only
    language: str = ""
    edition: str = ""
    fab_dis: str = ""
    dec_sep: str = ""
    country_of_origin: str = ""
    contact_first_name: str = ""
    contact_last_name: str = ""
    marques: tuple[str, ...] = field(default_factory=tuple)
    mime_root: str = ""

    @property
    def is_2005(self) -> bool:
        return self.format is BmecatFormat.V2005

    @property
    def has_contact_name(self) -> bool:
        return bool(self.contact_first_name or self.contact_last_name)


@dataclass(frozen=True)
class PricingConfig:
    """Price rendering rules.

    The defaults reproduce the historical behaviour (German VAT, decimal
    comma input); both are deployment settings rather than BMEcat semantics.
    """
    tax_rate: str = "0.19"
    decimal_comma: bool = True
    default_price_type: str = "net_list"
    default_currency: str = "EUR"

    def normalize_amount(self, amount: str) -> str:
        if self.decimal_comma:
            return amount.replace(",", ".", 1)
        return amount
