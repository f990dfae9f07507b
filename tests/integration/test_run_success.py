from __future__ import annotations

import json
import re
from pathlib import Path
from xml.dom import minidom

from bmecat_builder.cli.__main__ import main as cli_main
from bmecat_builder.logging.init import reset_logging


def test_run_success_classic(temp_workdir: Path, write_config: Path, write_sources: Path, capsys):
    reset_logging()
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0

    xml = (temp_workdir / "out" / "catalog.xml").read_text(encoding="utf-8")
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE BMECAT')
    doc = minidom.parseString(xml.encode("utf-8"))
    root = doc.documentElement
    assert root.tagName == "BMECAT" and root.getAttribute("version") == "1.2"

    aids = [n.firstChild.data for n in doc.getElementsByTagName("SUPPLIER_AID")]
    assert aids == ["ART-1", "ART-2"]
    prices = [n.firstChild.data for n in doc.getElementsByTagName("PRICE_AMOUNT")]
    assert prices == ["9.50", "1.25"]
    price_types = [n.getAttribute("price_type") for n in doc.getElementsByTagName("ARTICLE_PRICE")]
    assert price_types == ["net_list", "net_list"]
    features = doc.getElementsByTagName("FEATURE")
    assert len(features) == 1
    assert features[0].getElementsByTagName("FUNIT")[0].firstChild.data == "mm"

    groups = doc.getElementsByTagName("GROUP")
    assert [g.getElementsByTagName("GROUP_ID")[0].firstChild.data for g in groups] == ["G1", "G2"]
    maps = doc.getElementsByTagName("ARTICLE_TO_GROUP_MAP")
    assert [m.getElementsByTagName("CATALOG_GROUP_ID")[0].firstChild.data for m in maps] == ["G2", "G1"]

    summary = [line for line in out.splitlines() if line.startswith("SUMMARY ")]
    assert len(summary) == 1
    assert re.match(
        r"^SUMMARY strategy=classic format=1\.2 articles=2 skipped_rows=1 groups=2 group_maps=2 elapsed_sec=[0-9.]+$",
        summary[0],
    )

    logs = list((temp_workdir / "logs").glob("diagnostics-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert [(r["error_type"], r["source"], r["row"]) for r in records] == [
        ("CSV_ROW_DROPPED", "products.csv", 5),
        ("ARTICLE_SKIPPED", "products", 3),
    ]


def test_run_success_2005_from_xlsx(temp_workdir: Path, write_config: Path, capsys):
    import pandas as pd

    reset_logging()
    data = temp_workdir / "data"
    pd.DataFrame(
        {
            "Artikelnummer": ["X-1"],
            "Bezeichnung": ["Hammer & Nails"],
            "Preis": ["4,99"],
            "Preisart": ["net_customer"],
            "Einheit": ["PCE"],
            "Gruppe": [""],
            "Merkmal": [""],
            "Wert": [""],
            "Einheit2": [""],
        }
    ).to_excel(data / "products.xlsx", index=False)
    text = write_config.read_text(encoding="utf-8")
    text = text.replace('format: "1.2"', 'format: "2005"')
    text = text.replace("products: data/products.csv", "products: data/products.xlsx")
    text = text.replace("  structure: data/structure.csv\n", "")
    write_config.write_text(text, encoding="utf-8")

    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    xml = (temp_workdir / "out" / "catalog.xml").read_text(encoding="utf-8")
    assert "<!DOCTYPE" not in xml
    assert '<BMECAT version="2005"' in xml
    assert "<DESCRIPTION_SHORT>Hammer &amp; Nails</DESCRIPTION_SHORT>" in xml
    assert '<ARTICLE_PRICE price_type="net_customer">' in xml
    assert "<CATALOG_GROUP_SYSTEM>" not in xml
    assert "SUMMARY strategy=classic format=2005 articles=1 skipped_rows=0 groups=0 group_maps=0" in out
