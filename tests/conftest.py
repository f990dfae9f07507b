# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from bmecat_builder.models.header_config import BmecatFormat, HeaderConfig
from bmecat_builder.models.row_data import Feature, NormalizedRow
from bmecat_builder.services.oracle import OracleBackend, OracleRequest

FIXED_NOW = datetime(2024, 5, 17, 9, 30, 15)

ARTICLE_TEMPLATE = (
    "<ARTICLE>\n"
    "  <SUPPLIER_AID>{{SUPPLIER_AID}}</SUPPLIER_AID>\n"
    "  <ARTICLE_DETAILS>\n"
    "    <DESCRIPTION_SHORT>{{DESCRIPTION_SHORT}}</DESCRIPTION_SHORT>\n"
    "    <DESCRIPTION_LONG><![CDATA[{{DESCRIPTION_LONG}}]]></DESCRIPTION_LONG>\n"
    "  </ARTICLE_DETAILS><!-- {{PRODUCT_FEATURES}} -->\n"
    '  <ARTICLE_PRICE price_type="{{PRICE_TYPE}}"><PRICE_AMOUNT>{{PRICE_AMOUNT}}</PRICE_AMOUNT></ARTICLE_PRICE>\n'
    "</ARTICLE>"
)

BODY_TEMPLATE = (
    '<BMECAT version="2005">\n'
    "  <HEADER><CATALOG><CATALOG_ID>K1</CATALOG_ID></CATALOG></HEADER>\n"
    "  <T_NEW_CATALOG>\n<!-- {{T_NEW_CATALOG_CONTENT}} -->\n  </T_NEW_CATALOG>\n"
    "</BMECAT>"
)


class FakeBackend(OracleBackend):
    """Answers by the reply field named in the response schema."""

    def __init__(self, replies: dict[str, str | Exception] | None = None) -> None:
        self.replies = replies or {}
        self.requests: list[OracleRequest] = []

    async def generate(self, request: OracleRequest) -> str:
        self.requests.append(request)
        field_name = next(iter(request.response_schema["properties"]))
        reply = self.replies.get(field_name, "")
        if isinstance(reply, Exception):
            raise reply
        return reply


def envelope(field_name: str, value: str) -> str:
    return json.dumps({field_name: value})


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def header() -> HeaderConfig:
    return HeaderConfig(
        catalog_id="K1",
        catalog_version="1.0",
        catalog_name="Test",
        supplier_name="ACME",
        format=BmecatFormat.V1_2,
        territory="DE",
        currency="EUR",
        supplier_street="Hauptstrasse 1",
        supplier_zip="10115",
        supplier_city="Berlin",
        supplier_country="DE",
        supplier_email="info@acme.example",
        supplier_url="https://acme.example",
    )


@pytest.fixture()
def header_2005(header: HeaderConfig) -> HeaderConfig:
    return replace(header, format=BmecatFormat.V2005)


@pytest.fixture()
def rows() -> list[NormalizedRow]:
    return [
        NormalizedRow(
            values={
                "SUPPLIER_AID": "ART-1",
                "DESCRIPTION_SHORT": "Widget",
                "DESCRIPTION_LONG": "<b>Strong</b> widget",
                "PRICE_AMOUNT": "9,50",
                "ORDER_UNIT": "PCE",
                "CATALOG_GROUP_ID": "G1",
            },
            features=(Feature("Length", "20", "mm"),),
        ),
        NormalizedRow(values={"SUPPLIER_AID": "", "PRICE_AMOUNT": "1,00", "DESCRIPTION_SHORT": "No id"}),
        NormalizedRow(values={"SUPPLIER_AID": "ART-3", "PRICE_AMOUNT": "2", "DESCRIPTION_SHORT": "Bolt"}),
    ]


@pytest.fixture()
def sample_config_yaml() -> str:
    return """format: "1.2"
output: out/catalog.xml
sources:
  products: data/products.csv
  structure: data/structure.csv
header:
  catalog_id: "K1"
  catalog_version: "1.0"
  catalog_name: "Test"
  supplier_name: "ACME"
  territory: "DE"
  currency: "EUR"
mapping:
  fields:
    SUPPLIER_AID: Artikelnummer
    DESCRIPTION_SHORT: Bezeichnung
    PRICE_AMOUNT: Preis
    PRICE_TYPE: Preisart
    ORDER_UNIT: Einheit
    CATALOG_GROUP_ID: Gruppe
  features:
    - fname: Merkmal
      fvalue: Wert
      funit: Einheit2
"""


@pytest.fixture()
def products_csv() -> str:
    return (
        "Artikelnummer;Bezeichnung;Preis;Preisart;Einheit;Gruppe;Merkmal;Wert;Einheit2\n"
        "ART-1;Widget;9,50;net_list;PCE;G2;Length;20;mm\n"
        "ART-2;Gadget;1,25;;PCE;G1;;;\n"
        ";Nameless;3,00;;PCE;;;;\n"
        "broken;line\n"
    )


@pytest.fixture()
def structure_csv() -> str:
    return "GROUP_ID,GROUP_NAME,PARENT_ID\nG1,Tools,\nG2,Hand tools,G1\n"


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "catalog.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_sources(temp_workdir: Path, products_csv: str, structure_csv: str) -> Path:
    data = temp_workdir / "data"
    (data / "products.csv").write_text(products_csv, encoding="utf-8")
    (data / "structure.csv").write_text(structure_csv, encoding="utf-8")
    return data
