from __future__ import annotations

import re

from ..errors import StructuralError, TemplateContractError, TemplateFailureCause
from ..models.row_data import NormalizedRow
from .bmecat_xml import escape_xml, render_features_xml

"""Template slot contract and document region splicing.

An article template is an <ARTICLE> fragment holding {{FIELD}} slots and
exactly the features marker; a body template is a <BMECAT> document (no XML
declaration) holding the content marker. Both are validated before use.

RegionSplicer isolates the pattern based surgery on user supplied XML
samples: first-occurrence, case-insensitive, non-greedy region matching.
"""

__all__ = [
    "ARTICLE_FEATURES_MARKER",
    "BODY_CONTENT_MARKER",
    "validate_article_template",
    "validate_body_template",
    "fill_article_template",
    "fill_body_template",
    "extract_first_article_snippet",
    "RegionSplicer",
]

ARTICLE_FEATURES_MARKER = "<!-- {{PRODUCT_FEATURES}} -->"
BODY_CONTENT_MARKER = "<!-- {{T_NEW_CATALOG_CONTENT}} -->"

RAW_SLOTS = frozenset({"DESCRIPTION_LONG"})  # sits inside a CDATA section of the template
RESERVED_SLOTS = frozenset({"PRODUCT_FEATURES", "T_NEW_CATALOG_CONTENT"})

_SLOT = re.compile(r"\{\{([A-Z0-9_]+)\}\}")
_ARTICLE_SHAPE = re.compile(r"<ARTICLE\b[^>]*>.*</ARTICLE>", re.IGNORECASE | re.DOTALL)
_BODY_START = re.compile(r"<BMECAT\b[^>]*>", re.IGNORECASE)
_XML_DECLARATION = re.compile(r"<\?xml\b", re.IGNORECASE)
_FIRST_ARTICLE = re.compile(r"<ARTICLE\b[^>]*>.*?</ARTICLE\s*>", re.IGNORECASE | re.DOTALL)


def validate_article_template(template: str) -> str:
    """Return the trimmed template or raise TemplateContractError."""
    text = (template or "").strip()
    if ARTICLE_FEATURES_MARKER not in text:
        raise TemplateContractError(
            f"article template is missing the mandatory marker {ARTICLE_FEATURES_MARKER}",
            TemplateFailureCause.MISSING_MARKER,
        )
    if not _ARTICLE_SHAPE.fullmatch(text):
        raise TemplateContractError(
            "article template must start with <ARTICLE> and end with </ARTICLE>",
            TemplateFailureCause.INVALID_STRUCTURE,
        )
    return text


def validate_body_template(template: str) -> str:
    text = (template or "").strip()
    if _XML_DECLARATION.match(text):
        raise TemplateContractError(
            "body template must not carry an XML declaration",
            TemplateFailureCause.INVALID_STRUCTURE,
        )
    if not _BODY_START.match(text):
        raise TemplateContractError(
            "body template must start with a <BMECAT> element",
            TemplateFailureCause.INVALID_STRUCTURE,
        )
    if BODY_CONTENT_MARKER not in text:
        raise TemplateContractError(
            f"body template is missing the mandatory marker {BODY_CONTENT_MARKER}",
            TemplateFailureCause.MISSING_MARKER,
        )
    return text


def fill_article_template(template: str, row: NormalizedRow) -> str:
    """Substitute every {{FIELD}} slot with the row value and the features marker
    with the rendered feature block.

    Values are XML-escaped except DESCRIPTION_LONG. Absent fields become
    empty strings. The template is split on its features marker first, so
    substituted text (including a marker inside a value) is never touched
    again.
    """
    def _slot_value(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in RESERVED_SLOTS:
            return match.group(0)
        value = row.get(name)
        if name in RAW_SLOTS:
            return value
        return escape_xml(value)

    pieces = template.split(ARTICLE_FEATURES_MARKER, 1)
    filled = [_SLOT.sub(_slot_value, piece) for piece in pieces]
    return render_features_xml(row.features).join(filled)


def fill_body_template(template: str, content: str) -> str:
    return template.replace(BODY_CONTENT_MARKER, content, 1)


def extract_first_article_snippet(sample: str) -> str | None:
    match = _FIRST_ARTICLE.search(sample or "")
    return match.group(0) if match else None


class RegionSplicer:
    """Replace <TAG ...>...</TAG> regions of an XML text by pattern.

    Only the first region of a tag is touched. The opening tag may carry
    attributes; the replacement text is inserted literally.
    """

    def __init__(self, text: str) -> None:
        self.text = text

    @staticmethod
    def _pattern(tag: str) -> re.Pattern[str]:
        name = re.escape(tag)
        return re.compile(rf"<{name}\b[^>]*>.*?</{name}\s*>", re.IGNORECASE | re.DOTALL)

    def replace_region(self, tag: str, replacement: str) -> bool:
        """Replace the first region of tag; False when there is none."""
        new_text, count = self._pattern(tag).subn(lambda _m: replacement, self.text, count=1)
        if count:
            self.text = new_text
        return bool(count)

    def require_region(self, tag: str, replacement: str) -> None:
        if not self.replace_region(tag, replacement):
            raise StructuralError(
                f"XML template has no <{tag}> element; the catalog content cannot be placed"
            )
