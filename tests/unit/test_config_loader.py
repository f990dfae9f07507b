from __future__ import annotations

from pathlib import Path

import pytest

from bmecat_builder.config.loader import ConfigError, load_config
from bmecat_builder.models.header_config import BmecatFormat
from bmecat_builder.models.row_data import FeatureMapping


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.header.catalog_id == "K1"
    assert cfg.header.format is BmecatFormat.V1_2
    assert cfg.sources.products == Path("data/products.csv")
    assert cfg.sources.structure == Path("data/structure.csv")
    assert cfg.sources.xml_template is None
    assert cfg.mapping.fields["SUPPLIER_AID"] == "Artikelnummer"
    assert cfg.mapping.features == (FeatureMapping("Merkmal", "Wert", "Einheit2"),)
    assert cfg.output == Path("out/catalog.xml")


def test_load_config_defaults(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.pricing.tax_rate == "0.19"
    assert cfg.pricing.decimal_comma is True
    assert cfg.pricing.default_price_type == "net_list"
    assert cfg.oracle.model == "gemini-2.5-flash"
    assert cfg.oracle.temperature == 0.1
    assert cfg.spec_store == Path("specs/specifications.json")


def test_load_config_2005_header(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace('format: "1.2"', 'format: "2005"')
    text = text.replace('  currency: "EUR"\n', '  currency: "EUR"\n  marques: [A, B]\n  fab_dis: "X"\n')
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.header.is_2005
    assert cfg.header.marques == ("A", "B")
    assert cfg.header.fab_dis == "X"


def test_load_config_pricing_override(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + 'pricing:\n  tax_rate: "0.07"\n  decimal_comma: false\n'
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.pricing.tax_rate == "0.07"
    assert cfg.pricing.decimal_comma is False


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("header: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace('  catalog_id: "K1"\n', "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_unknown_mapping_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("    SUPPLIER_AID:", "    SUPPLIER_ID:")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "SUPPLIER_ID" in str(e.value)
