from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import TemplateContractError, TemplateFailureCause
from ..models.header_config import HeaderConfig
from ..models.row_data import FeatureMapping
from .bmecat_xml import DEFAULT_LANGUAGE
from .template_slots import (
    ARTICLE_FEATURES_MARKER,
    BODY_CONTENT_MARKER,
    validate_article_template,
    validate_body_template,
)

"""Templating oracle: model-backed template and mapping inference.

The oracle is a port. OracleBackend sends one OracleRequest (ordered content
parts, system instruction, JSON response schema) and returns the raw reply
text; GeminiBackend implements it over google-genai. TemplatingOracle builds
the requests, passes specification sources in priority order
(structure description > PDF > XML sample), unwraps the JSON envelope and
validates the returned templates. Any unusable reply raises
TemplateContractError with a cause; nothing is retried.
"""

__all__ = [
    "ContentPart",
    "OracleRequest",
    "OracleBackend",
    "GeminiBackend",
    "SpecificationSources",
    "SuggestedField",
    "MappingSuggestion",
    "TemplatingOracle",
    "parse_reply_envelope",
    "classify_failure",
    "clean_mapping_suggestion",
    "DEFAULT_MODEL",
]

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.1
PDF_MIME_TYPE = "application/pdf"

ARTICLE_FIELD = "articleTemplate"
BODY_FIELD = "bmecatBody"

_CAUSE_MESSAGES = {
    TemplateFailureCause.UNREADABLE_DOCUMENT: "the PDF specification is invalid or empty (it has no pages)",
    TemplateFailureCause.INPUT_TOO_LARGE: "the input files are too large for the model; reduce the template or specification",
    TemplateFailureCause.MALFORMED_REPLY: "the model answered in an unexpected format; this may be temporary, please retry",
    TemplateFailureCause.ORACLE_UNAVAILABLE: "the model could not be reached",
}


@dataclass(frozen=True)
class ContentPart:
    """One request part: either text or an inline document."""
    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def of_text(cls, text: str) -> ContentPart:
        return cls(text=text)

    @classmethod
    def of_document(cls, data: bytes, mime_type: str = PDF_MIME_TYPE) -> ContentPart:
        return cls(data=data, mime_type=mime_type)


@dataclass(frozen=True)
class OracleRequest:
    parts: tuple[ContentPart, ...]
    system_instruction: str
    response_schema: dict[str, Any]
    temperature: float = DEFAULT_TEMPERATURE


class OracleBackend(ABC):
    """Sends a request to a model and returns the raw reply text."""

    @abstractmethod
    async def generate(self, request: OracleRequest) -> str:
        raise NotImplementedError


class GeminiBackend(OracleBackend):
    """google-genai implementation of OracleBackend."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, client: Any | None = None) -> None:
        self.model = model
        if client is None:
            from google import genai
            client = genai.Client(api_key=api_key)
        self._client = client

    async def generate(self, request: OracleRequest) -> str:
        from google.genai import types

        parts = []
        for part in request.parts:
            if part.data is not None:
                parts.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type or PDF_MIME_TYPE))
            else:
                parts.append(types.Part.from_text(text=part.text or ""))
        config = types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            temperature=request.temperature,
            response_mime_type="application/json",
            response_schema=request.response_schema,
        )
        logger.debug("oracle request model=%s parts=%d", self.model, len(parts))
        response = await self._client.aio.models.generate_content(
            model=self.model, contents=parts, config=config
        )
        return response.text or ""


@dataclass(frozen=True)
class SpecificationSources:
    """Structural sources handed to the oracle (highest priority first)."""
    structure_description: str | None = None
    pdf_document: bytes | None = None
    xml_sample: str | None = None


@dataclass(frozen=True)
class SuggestedField:
    key: str
    label: str
    description: str = ""
    required: bool = False
    mapped_column: str | None = None


@dataclass
class MappingSuggestion:
    identified_fields: list[SuggestedField] = field(default_factory=list)
    feature_mappings: list[FeatureMapping] = field(default_factory=list)

    def field_mapping(self) -> dict[str, str]:
        return {f.key: f.mapped_column for f in self.identified_fields if f.mapped_column}


def classify_failure(error: BaseException) -> TemplateFailureCause:
    text = str(error)
    lowered = text.lower()
    if "no pages" in lowered:
        return TemplateFailureCause.UNREADABLE_DOCUMENT
    if "token count" in lowered or "token limit" in lowered:
        return TemplateFailureCause.INPUT_TOO_LARGE
    if "JSON" in text:
        return TemplateFailureCause.MALFORMED_REPLY
    return TemplateFailureCause.ORACLE_UNAVAILABLE


def _load_envelope(text: str) -> Any:
    body = (text or "").strip()
    if not body:
        raise TemplateContractError(
            "the model returned an empty reply", TemplateFailureCause.MALFORMED_REPLY
        )
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise TemplateContractError(
            f"{_CAUSE_MESSAGES[TemplateFailureCause.MALFORMED_REPLY]} (invalid JSON: {e.msg})",
            TemplateFailureCause.MALFORMED_REPLY,
        ) from e


def parse_reply_envelope(text: str, field_name: str) -> str:
    """Extract and trim the string field of a JSON reply object."""
    payload = _load_envelope(text)
    value = payload.get(field_name) if isinstance(payload, dict) else None
    if not isinstance(value, str):
        raise TemplateContractError(
            f"the model reply has no '{field_name}' text", TemplateFailureCause.MALFORMED_REPLY
        )
    return value.strip()


def _envelope_schema(field_name: str, description: str) -> dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {field_name: {"type": "STRING", "description": description}},
        "required": [field_name],
    }


MAPPING_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "identifiedFields": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "key": {"type": "STRING", "description": "The BMEcat XML tag name, e.g. SUPPLIER_AID."},
                    "label": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "required": {"type": "BOOLEAN"},
                    "mappedCsvHeader": {"type": "STRING", "description": "Matching CSV header; omitted when none fits."},
                },
                "required": ["key", "label", "description", "required"],
            },
        },
        "featureMappings": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "fname": {"type": "STRING"},
                    "fvalue": {"type": "STRING"},
                    "funit": {"type": "STRING"},
                },
                "required": ["fname", "fvalue"],
            },
        },
    },
    "required": ["identifiedFields", "featureMappings"],
}

_JSON_ONLY = "- Do not add any conversational text, explanations, or markdown formatting."

ARTICLE_INSTRUCTION = f"""You are an expert in the BMEcat standards 1.2 and 2005. Generate a single BMEcat <ARTICLE> XML element template from the provided specification sources.
- The template must use placeholders like {{{{FIELD_NAME}}}}.
- {{{{DESCRIPTION_LONG}}}} must sit inside a CDATA section.
- Your entire response MUST be a single JSON object: {{"{ARTICLE_FIELD}": "<ARTICLE>...</ARTICLE>"}}.
{_JSON_ONLY}"""

ARTICLE_PROMPT = f"""Create a BMEcat <ARTICLE> template whose structure is derived from the provided sources.
Respect the BMEcat version the sources indicate (2005 uses <PRODUCT_DETAILS> instead of <ARTICLE_DETAILS>).
Sources are listed in strict priority: 1. structure description, 2. PDF specification, 3. XML snippet.
Use these placeholders: {{{{SUPPLIER_AID}}}}, {{{{DESCRIPTION_SHORT}}}}, {{{{DESCRIPTION_LONG}}}}, {{{{EAN}}}}, {{{{PRICE_AMOUNT}}}}, {{{{PRICE_CURRENCY}}}}, {{{{MANUFACTURER_AID}}}}, {{{{MANUFACTURER_NAME}}}}, {{{{ORDER_UNIT}}}}, {{{{PRICE_TYPE}}}}.
- {{{{PRICE_TYPE}}}} is the value of the price_type attribute of <ARTICLE_PRICE>.
- Replace all example data with placeholders.
- Directly after the main details block you MUST include this exact marker: {ARTICLE_FEATURES_MARKER}"""

BODY_INSTRUCTION = f"""You are an expert in the BMEcat standards 1.2 and 2005. Generate the document structure of a BMEcat file from the provided specification sources.
- Start with the <BMECAT> element. Do not include an XML declaration.
- The <T_NEW_CATALOG> element MUST contain exactly this marker: {BODY_CONTENT_MARKER}
- Your entire response MUST be a single JSON object: {{"{BODY_FIELD}": "<BMECAT>...</BMECAT>"}}.
{_JSON_ONLY}"""

MAPPING_INSTRUCTION = f"""You are an expert assistant for mapping product data from a CSV file to a BMEcat XML structure. Analyze the CSV headers and the specification sources and return one JSON object that conforms to the schema.
{_JSON_ONLY}"""

_SOURCE_LABELS = (
    "--- SOURCE 1: structure description (top priority) ---\nThis file defines the exact required structure. Adhere to it strictly.",
    "--- SOURCE 2: PDF specification (medium priority) ---\nUse it when no structure description is provided.",
    "--- SOURCE 3: XML snippet (lowest priority) ---\nUse it as a structural guide only when higher priority sources are absent or unclear.",
)


def _source_parts(sources: SpecificationSources, xml_snippet: str | None) -> list[ContentPart]:
    parts: list[ContentPart] = []
    if sources.structure_description:
        parts.append(ContentPart.of_text(_SOURCE_LABELS[0]))
        parts.append(ContentPart.of_text(f"```xml\n{sources.structure_description}\n```"))
    if sources.pdf_document:
        parts.append(ContentPart.of_text(_SOURCE_LABELS[1]))
        parts.append(ContentPart.of_document(sources.pdf_document))
    if xml_snippet:
        parts.append(ContentPart.of_text(_SOURCE_LABELS[2]))
        parts.append(ContentPart.of_text(f"```xml\n{xml_snippet}\n```"))
    return parts


def _header_prompt(header: HeaderConfig) -> str:
    lines = [
        "Generate the BMEcat document structure including the <HEADER>, derived from the provided sources.",
        "Sources are listed in strict priority: 1. structure description, 2. PDF specification.",
        f"Target BMEcat version: {header.format.value}.",
        "Populate the <HEADER> with this data:",
        f"- Catalog ID: {header.catalog_id}",
        f"- Catalog Version: {header.catalog_version}",
        f"- Catalog Name: {header.catalog_name}",
        f"- Territory: {header.territory}",
        f"- Currency: {header.currency}",
        f"- Supplier Name: {header.supplier_name}",
        f"- Supplier Street: {header.supplier_street}",
        f"- Supplier ZIP: {header.supplier_zip}",
        f"- Supplier City: {header.supplier_city}",
        f"- Supplier Country: {header.supplier_country}",
        f"- Supplier Email: {header.supplier_email}",
        f"- Supplier URL: {header.supplier_url}",
    ]
    if header.is_2005:
        lines += [
            f"- Language: {header.language or DEFAULT_LANGUAGE}",
            f"- Edition: {header.edition}",
            f"- FAB-DIS: {header.fab_dis}",
            f"- Decimal Separator (DECSEP): {header.dec_sep}",
            f"- Country of Origin: {header.country_of_origin}",
            f"- Contact First Name: {header.contact_first_name}",
            f"- Contact Last Name: {header.contact_last_name}",
            f"- Marques: {', '.join(header.marques)}",
            f"- MIME Root: {header.mime_root}",
        ]
    return "\n".join(lines)


class TemplatingOracle:
    """Asks the backend for templates and mapping suggestions."""

    def __init__(self, backend: OracleBackend, *, temperature: float = DEFAULT_TEMPERATURE) -> None:
        self._backend = backend
        self.temperature = temperature

    async def _ask(self, request: OracleRequest, purpose: str) -> str:
        try:
            return await self._backend.generate(request)
        except TemplateContractError:
            raise
        except Exception as e:
            cause = classify_failure(e)
            logger.debug("oracle %s failed: %s", purpose, e)
            raise TemplateContractError(
                f"{purpose} could not be created: {_CAUSE_MESSAGES[cause]} ({e})", cause
            ) from e

    async def article_template(
        self, sources: SpecificationSources, xml_snippet: str | None = None
    ) -> str:
        """Return a validated <ARTICLE> template."""
        parts = [ContentPart.of_text(ARTICLE_PROMPT), *_source_parts(sources, xml_snippet)]
        request = OracleRequest(
            parts=tuple(parts),
            system_instruction=ARTICLE_INSTRUCTION,
            response_schema=_envelope_schema(
                ARTICLE_FIELD, "A single <ARTICLE> element, starting with <ARTICLE> and ending with </ARTICLE>."
            ),
            temperature=self.temperature,
        )
        reply = await self._ask(request, "article template")
        return validate_article_template(parse_reply_envelope(reply, ARTICLE_FIELD))

    async def body_template(self, header: HeaderConfig, sources: SpecificationSources) -> str:
        """Return a validated <BMECAT> body template holding the content marker."""
        parts = [ContentPart.of_text(_header_prompt(header)), *_source_parts(sources, None)]
        request = OracleRequest(
            parts=tuple(parts),
            system_instruction=BODY_INSTRUCTION,
            response_schema=_envelope_schema(BODY_FIELD, "A single <BMECAT> document without XML declaration."),
            temperature=self.temperature,
        )
        reply = await self._ask(request, "document body template")
        return validate_body_template(parse_reply_envelope(reply, BODY_FIELD))

    async def suggest_mapping(
        self, csv_headers: Sequence[str], sources: SpecificationSources
    ) -> MappingSuggestion:
        """Propose a field and feature mapping for the given CSV headers.

        Suggestions naming columns that are not CSV headers are discarded.
        """
        prompt = (
            "1. Discover all BMEcat product fields in the sources (priority: structure description, "
            "PDF specification, XML snippet); without sources use the standard BMEcat 1.2 fields.\n"
            "2. Map every field to the best matching CSV header and group feature columns "
            "(name, value, optional unit) into featureMappings.\n"
            "Mapped values MUST be exact strings from the available CSV headers.\n\n"
            f"Available CSV headers:\n[{', '.join(csv_headers)}]"
        )
        parts = [ContentPart.of_text(prompt), *_source_parts(sources, sources.xml_sample)]
        request = OracleRequest(
            parts=tuple(parts),
            system_instruction=MAPPING_INSTRUCTION,
            response_schema=MAPPING_SCHEMA,
            temperature=self.temperature,
        )
        reply = await self._ask(request, "mapping suggestion")
        if not (reply or "").strip():
            logger.warning("mapping suggestion: the model returned an empty reply")
            return MappingSuggestion()
        return clean_mapping_suggestion(_load_envelope(reply), csv_headers)


def clean_mapping_suggestion(payload: Any, csv_headers: Sequence[str]) -> MappingSuggestion:
    known = {h for h in csv_headers if isinstance(h, str)}
    result = MappingSuggestion()
    if not isinstance(payload, dict):
        return result

    for item in payload.get("identifiedFields") or []:
        if not isinstance(item, dict) or not item.get("key") or not item.get("label"):
            continue
        column = item.get("mappedCsvHeader")
        result.identified_fields.append(SuggestedField(
            key=str(item["key"]),
            label=str(item["label"]),
            description=str(item.get("description") or ""),
            required=bool(item.get("required")),
            mapped_column=column if isinstance(column, str) and column in known else None,
        ))

    for item in payload.get("featureMappings") or []:
        if not isinstance(item, dict):
            continue
        fname, fvalue, funit = (_as_text(item.get(k)) for k in ("fname", "fvalue", "funit"))
        if fname and fvalue and fname in known and fvalue in known:
            result.feature_mappings.append(
                FeatureMapping(fname=fname, fvalue=fvalue, funit=funit if funit and funit in known else "")
            )
    return result


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
