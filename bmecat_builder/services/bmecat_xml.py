from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from ..models.header_config import BmecatFormat, HeaderConfig, PricingConfig
from ..models.row_data import Feature, NormalizedRow

"""Fixed-schema BMEcat fragment renderers.

These are the building blocks of the classic generation path; the header,
feature and body renderers are reused by the templated path. All free text
is escaped for the five XML metacharacters except DESCRIPTION_LONG, which
is emitted inside a CDATA section.
"""

__all__ = [
    "XML_DECLARATION",
    "DOCTYPE_1_2",
    "escape_xml",
    "cdata",
    "root_open_tag",
    "render_header_xml",
    "render_features_xml",
    "render_article_xml",
    "assemble_catalog_body",
    "wrap_t_new_catalog",
    "render_document",
]

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
DOCTYPE_1_2 = '<!DOCTYPE BMECAT SYSTEM "bmecat_new_catalog.dtd">'

_NAMESPACES = {
    BmecatFormat.V1_2: "http://www.bmecat.org/bmecat/1.2/bmecat_new_catalog",
    BmecatFormat.V2005: "http://www.bmecat.org/bmecat/2005",
}

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "'": "&apos;",
    '"': "&quot;",
})

DEFAULT_LANGUAGE = "deu"


def escape_xml(value: str | None) -> str:
    if not isinstance(value, str):
        return ""
    return value.translate(_ESCAPES)


def cdata(value: str) -> str:
    """Wrap value in a CDATA section, splitting any embedded ']]>'."""
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _element(indent: str, tag: str, value: str) -> str:
    return f"{indent}<{tag}>{escape_xml(value)}</{tag}>"


def root_open_tag(fmt: BmecatFormat) -> str:
    return f'<BMECAT version="{fmt.value}" xmlns="{_NAMESPACES[fmt]}">'


def _render_header_1_2(header: HeaderConfig, now: datetime) -> list[str]:
    return [
        "  <HEADER>",
        "    <CATALOG>",
        f"      <LANGUAGE>{DEFAULT_LANGUAGE}</LANGUAGE>",
        _element("      ", "CATALOG_ID", header.catalog_id),
        _element("      ", "CATALOG_VERSION", header.catalog_version),
        _element("      ", "CATALOG_NAME", header.catalog_name),
        '      <DATETIME type="generation_date">',
        f"        <DATE>{now.strftime('%Y-%m-%d')}</DATE>",
        f"        <TIME>{now.strftime('%H:%M:%S')}</TIME>",
        "      </DATETIME>",
        _element("      ", "TERRITORY", header.territory),
        _element("      ", "CURRENCY", header.currency),
        "    </CATALOG>",
        "    <SUPPLIER>",
        _element("      ", "SUPPLIER_NAME", header.supplier_name),
        '      <ADDRESS type="supplier">',
        _element("        ", "STREET", header.supplier_street),
        _element("        ", "ZIP", header.supplier_zip),
        _element("        ", "CITY", header.supplier_city),
        _element("        ", "COUNTRY", header.supplier_country),
        _element("        ", "EMAIL", header.supplier_email),
        _element("        ", "URL", header.supplier_url),
        "      </ADDRESS>",
        "    </SUPPLIER>",
        "    <USER_DEFINED_EXTENSIONS/>",
        "  </HEADER>",
    ]


def _render_header_2005(header: HeaderConfig, now: datetime) -> list[str]:
    lines = [
        "  <HEADER>",
        "    <CATALOG>",
        _element("      ", "LANGUAGE", header.language or DEFAULT_LANGUAGE),
        _element("      ", "CATALOG_ID", header.catalog_id),
        _element("      ", "CATALOG_VERSION", header.catalog_version),
        _element("      ", "CATALOG_NAME", header.catalog_name),
        '      <DATETIME type="generation_date">',
        f"        <DATE>{now.strftime('%Y-%m-%d')}</DATE>",
        "      </DATETIME>",
        _element("      ", "TERRITORY", header.territory),
        _element("      ", "CURRENCY", header.currency),
    ]
    optional = (
        ("FAB-DIS", header.fab_dis),
        ("EDITION", header.edition),
        ("DECSEP", header.dec_sep),
        ("MIME_ROOT", header.mime_root),
    )
    lines.extend(_element("      ", tag, value) for tag, value in optional if value)
    lines += [
        "    </CATALOG>",
        "    <SUPPLIER>",
        _element("      ", "FABRICANT", header.supplier_name),
    ]
    lines.extend(_element("      ", "MARQUE", m) for m in header.marques if m)
    if header.country_of_origin:
        lines.append(_element("      ", "COUNTRY_OF_ORIGIN", header.country_of_origin))
    lines += [
        '      <ADDRESS type="supplier">',
        _element("        ", "STREET", header.supplier_street),
        _element("        ", "ZIP", header.supplier_zip),
        _element("        ", "CITY", header.supplier_city),
        _element("        ", "COUNTRY", header.supplier_country),
    ]
    if header.has_contact_name:
        lines.append("        <CONTACT_DETAILS>")
        if header.contact_first_name:
            lines.append(_element("          ", "FIRST_NAME", header.contact_first_name))
        if header.contact_last_name:
            lines.append(_element("          ", "SURNAME", header.contact_last_name))
        if header.supplier_email:
            lines.append(_element("          ", "EMAIL", header.supplier_email))
        lines.append("        </CONTACT_DETAILS>")
    else:
        lines.append(_element("        ", "EMAIL", header.supplier_email))
    lines += [
        _element("        ", "URL", header.supplier_url),
        "      </ADDRESS>",
        "    </SUPPLIER>",
        "  </HEADER>",
    ]
    return lines


def render_header_xml(header: HeaderConfig, now: datetime) -> str:
    """Render the <HEADER> block for the header's format (indented for the root level)."""
    if header.is_2005:
        lines = _render_header_2005(header, now)
    else:
        lines = _render_header_1_2(header, now)
    return "\n".join(lines)


def render_features_xml(features: Sequence[Feature]) -> str:
    """Render <PRODUCT_FEATURES>; empty string when there are no features.

    The block starts with a newline so it can replace an inline marker.
    """
    if not features:
        return ""
    parts = ["\n      <PRODUCT_FEATURES>"]
    for feature in features:
        parts.append("\n        <FEATURE>")
        parts.append(f"\n          <FNAME>{escape_xml(feature.fname)}</FNAME>")
        parts.append(f"\n          <FVALUE>{escape_xml(feature.fvalue)}</FVALUE>")
        if feature.funit:
            parts.append(f"\n          <FUNIT>{escape_xml(feature.funit)}</FUNIT>")
        parts.append("\n        </FEATURE>")
    parts.append("\n      </PRODUCT_FEATURES>")
    return "".join(parts)


def render_article_xml(row: NormalizedRow, header: HeaderConfig, pricing: PricingConfig) -> str:
    """Render one <ARTICLE>; empty string for rows that are not renderable."""
    if not row.is_renderable:
        return ""

    price = pricing.normalize_amount(row.get("PRICE_AMOUNT"))
    price_type = row.get("PRICE_TYPE") or pricing.default_price_type
    currency = row.get("PRICE_CURRENCY") or header.currency or pricing.default_currency

    lines = [
        "    <ARTICLE>",
        _element("      ", "SUPPLIER_AID", row.get("SUPPLIER_AID")),
        "      <ARTICLE_DETAILS>",
        _element("        ", "DESCRIPTION_SHORT", row.get("DESCRIPTION_SHORT")),
        f"        <DESCRIPTION_LONG>{cdata(row.get('DESCRIPTION_LONG'))}</DESCRIPTION_LONG>",
    ]
    for tag in ("MANUFACTURER_AID", "MANUFACTURER_NAME", "EAN"):
        if row.get(tag):
            lines.append(_element("        ", tag, row.get(tag)))
    lines += [
        _element("        ", "ORDER_UNIT", row.get("ORDER_UNIT")),
        "      </ARTICLE_DETAILS>" + render_features_xml(row.features),
        "      <ARTICLE_PRICE_DETAILS>",
        f'        <ARTICLE_PRICE price_type="{escape_xml(price_type)}">',
        _element("          ", "PRICE_AMOUNT", price),
        _element("          ", "PRICE_CURRENCY", currency),
        _element("          ", "TAX", pricing.tax_rate),
        "        </ARTICLE_PRICE>",
        "      </ARTICLE_PRICE_DETAILS>",
        "    </ARTICLE>",
    ]
    return "\n".join(lines)


def assemble_catalog_body(
    articles: Sequence[str], group_system_xml: str, group_map_xml: str
) -> str:
    """Content of <T_NEW_CATALOG>: groups, then articles, then group mappings."""
    blocks: list[str] = []
    if group_system_xml:
        blocks.append(f"    <CATALOG_GROUP_SYSTEM>\n{group_system_xml}\n    </CATALOG_GROUP_SYSTEM>")
    blocks.extend(a for a in articles if a)
    if group_map_xml:
        blocks.append(group_map_xml)
    return "\n".join(blocks)


def wrap_t_new_catalog(body: str) -> str:
    if not body:
        return "<T_NEW_CATALOG>\n  </T_NEW_CATALOG>"
    return f"<T_NEW_CATALOG>\n{body}\n  </T_NEW_CATALOG>"


def render_document(header: HeaderConfig, header_xml: str, body: str) -> str:
    """Full classic document: declaration, optional DOCTYPE, root, header, body."""
    lines = [XML_DECLARATION]
    if header.format is BmecatFormat.V1_2:
        lines.append(DOCTYPE_1_2)
    lines += [
        root_open_tag(header.format),
        header_xml,
        "  " + wrap_t_new_catalog(body),
        "</BMECAT>",
    ]
    return "\n".join(lines) + "\n"
