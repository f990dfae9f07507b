from __future__ import annotations

import pytest

from bmecat_builder.models.fields import BMECAT_FIELDS, CANONICAL_KEYS, missing_required_fields
from bmecat_builder.models.header_config import BmecatFormat, HeaderConfig, PricingConfig
from bmecat_builder.models.row_data import NormalizedRow


def test_normalized_row_get_and_renderable():
    row = NormalizedRow(values={"SUPPLIER_AID": "A-1", "PRICE_AMOUNT": "1,00"})
    assert row.get("SUPPLIER_AID") == "A-1"
    assert row.get("EAN") == ""
    assert row.is_renderable


@pytest.mark.parametrize(
    "values",
    [
        {"SUPPLIER_AID": "", "PRICE_AMOUNT": "1"},
        {"SUPPLIER_AID": "A-1", "PRICE_AMOUNT": ""},
        {"DESCRIPTION_SHORT": "only a name"},
    ],
)
def test_normalized_row_not_renderable(values):
    assert not NormalizedRow(values=values).is_renderable


def test_canonical_field_catalogue():
    assert CANONICAL_KEYS[0] == "SUPPLIER_AID"
    required = [f.key for f in BMECAT_FIELDS if f.required]
    assert required == ["SUPPLIER_AID", "DESCRIPTION_SHORT", "PRICE_AMOUNT", "PRICE_TYPE", "ORDER_UNIT"]
    assert "CATALOG_GROUP_ID" in CANONICAL_KEYS


def test_missing_required_fields():
    mapping = {"SUPPLIER_AID": "Artikelnummer", "DESCRIPTION_SHORT": " ", "PRICE_AMOUNT": "Preis"}
    assert missing_required_fields(mapping) == ["DESCRIPTION_SHORT", "PRICE_TYPE", "ORDER_UNIT"]
    full = {key: key.lower() for key in CANONICAL_KEYS}
    assert missing_required_fields(full) == []


def test_pricing_normalize_amount():
    assert PricingConfig().normalize_amount("1,5") == "1.5"
    assert PricingConfig(decimal_comma=False).normalize_amount("1,5") == "1,5"


def test_bmecat_format_parse():
    assert BmecatFormat.parse("1.2") is BmecatFormat.V1_2
    assert BmecatFormat.parse(" 2005 ") is BmecatFormat.V2005
    assert BmecatFormat.parse(BmecatFormat.V2005) is BmecatFormat.V2005
    with pytest.raises(ValueError):
        BmecatFormat.parse("2.0")


def test_header_flags():
    header = HeaderConfig(catalog_id="K", catalog_version="1", catalog_name="N", supplier_name="S")
    assert header.format is BmecatFormat.V1_2
    assert not header.is_2005
    assert not header.has_contact_name
    assert HeaderConfig("K", "1", "N", "S", format=BmecatFormat.V2005, contact_last_name="Doe").has_contact_name
