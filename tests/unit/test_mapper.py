from __future__ import annotations

from bmecat_builder.models.row_data import Feature, FeatureMapping
from bmecat_builder.services.mapper import transform_row, transform_rows

FIELDS = {"SUPPLIER_AID": "Art", "PRICE_AMOUNT": "Preis", "EAN": "GTIN"}


def test_copies_mapped_columns_only_when_present():
    row = transform_row({"Art": "A1", "Preis": "1,00", "Other": "x"}, FIELDS)
    assert row.values == {"SUPPLIER_AID": "A1", "PRICE_AMOUNT": "1,00"}
    assert row.get("EAN") == ""


def test_empty_column_name_is_ignored():
    row = transform_row({"Art": "A1", "": "stray"}, {"SUPPLIER_AID": "Art", "EAN": ""})
    assert "EAN" not in row.values


def test_feature_needs_name_and_value():
    mappings = [FeatureMapping("N1", "V1", "U1"), FeatureMapping("N2", "V2")]
    row = transform_row({"N1": "Length", "V1": "20", "U1": "", "N2": "Color", "V2": ""}, {}, mappings)
    assert row.features == (Feature("Length", "20", None),)


def test_feature_unit_kept_when_present():
    row = transform_row({"N": "Weight", "V": "3", "U": "kg"}, {}, [FeatureMapping("N", "V", "U")])
    assert row.features[0].funit == "kg"


def test_order_preserved_without_dedup():
    source = [{"Art": "B"}, {"Art": "A"}, {"Art": "B"}]
    result = transform_rows(source, {"SUPPLIER_AID": "Art"})
    assert [r.get("SUPPLIER_AID") for r in result] == ["B", "A", "B"]


def test_values_not_validated():
    row = transform_row({"Preis": "not a price"}, FIELDS)
    assert row.get("PRICE_AMOUNT") == "not a price"
