from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..errors import GenerationError
from ..logging.error_log import ErrorLogBuffer
from ..models.catalog_group import StructureRow
from ..models.generation_result import GenerationResult, GenerationStrategy
from ..models.header_config import HeaderConfig, PricingConfig
from ..models.row_data import NormalizedRow
from .bmecat_xml import (
    XML_DECLARATION,
    assemble_catalog_body,
    render_article_xml,
    render_document,
    render_header_xml,
    wrap_t_new_catalog,
)
from .group_tree import (
    build_group_tree,
    count_groups,
    group_mapped_rows,
    render_article_to_group_map_xml,
    render_group_system_xml,
)
from .oracle import SpecificationSources, TemplatingOracle
from .progress import ProgressTracker
from .template_slots import (
    RegionSplicer,
    extract_first_article_snippet,
    fill_article_template,
    fill_body_template,
)

"""Document Assembler.

Strategy selection per request:
- classic: no XML sample, no structure description, no PDF. The document
  is rendered from fixed BMEcat rules.
- template_sample: an XML sample was supplied. The oracle derives an article
  template (hinted by the sample's first <ARTICLE>); the sample's first
  <HEADER> and <T_NEW_CATALOG> regions are replaced by rendered content.
- template_spec: only a structure description and/or PDF. Article and body
  templates are requested concurrently; both must succeed.

A run either returns one complete document or raises; there is no
fallback from one strategy to another.
"""

__all__ = [
    "GenerationRequest",
    "DocumentAssembler",
    "gather_fail_fast",
]

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class GenerationRequest:
    header: HeaderConfig
    rows: Sequence[NormalizedRow]
    structure_rows: Sequence[StructureRow] = ()
    xml_sample: str | None = None
    pdf_specification: bytes | None = None
    structure_description: str | None = None

    @property
    def uses_template(self) -> bool:
        return bool(self.xml_sample or self.pdf_specification or self.structure_description)

    @property
    def sources(self) -> SpecificationSources:
        return SpecificationSources(
            structure_description=self.structure_description or None,
            pdf_document=self.pdf_specification or None,
            xml_sample=self.xml_sample or None,
        )


async def gather_fail_fast(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await all, in order; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class _CatalogParts:
    articles: list[str]
    skipped_rows: int
    group_system_xml: str
    group_map_xml: str
    group_count: int
    group_map_count: int

    @property
    def body(self) -> str:
        return assemble_catalog_body(self.articles, self.group_system_xml, self.group_map_xml)


class DocumentAssembler:
    """Turns header, normalized rows and group structure into a BMEcat document."""

    def __init__(
        self,
        oracle: TemplatingOracle | None = None,
        *,
        pricing: PricingConfig | None = None,
        clock: Clock | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self._oracle = oracle
        self._pricing = pricing or PricingConfig()
        self._clock = clock or datetime.now
        self._error_log = error_log

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        started = time.perf_counter()
        if request.uses_template:
            result = await self.generate_from_template(request)
        else:
            result = self.generate_classic(request)
        elapsed = round(time.perf_counter() - started, 3)
        logger.info(
            "generated strategy=%s articles=%d skipped_rows=%d",
            result.strategy.value, result.article_count, result.skipped_rows,
        )
        return replace(result, elapsed_seconds=elapsed)

    # -- shared pieces -------------------------------------------------

    def _catalog_parts(
        self, request: GenerationRequest, render: Callable[[NormalizedRow], str]
    ) -> _CatalogParts:
        groups = build_group_tree(request.structure_rows)
        articles: list[str] = []
        skipped = 0
        with ProgressTracker(len(request.rows)) as progress:
            for index, row in enumerate(request.rows, start=1):
                if row.is_renderable:
                    articles.append(render(row))
                else:
                    skipped += 1
                    self._record_skipped(index, row)
                progress.advance()
        return _CatalogParts(
            articles=articles,
            skipped_rows=skipped,
            group_system_xml=render_group_system_xml(groups),
            group_map_xml=render_article_to_group_map_xml(request.rows),
            group_count=count_groups(groups),
            group_map_count=len(group_mapped_rows(request.rows)),
        )

    def _record_skipped(self, index: int, row: NormalizedRow) -> None:
        missing = [k for k in ("SUPPLIER_AID", "PRICE_AMOUNT") if not row.get(k)]
        message = f"row {index} has no {' / '.join(missing)}; not rendered as article"
        logger.debug(message)
        if self._error_log is not None:
            self._error_log.add(source="products", row=index, error_type="ARTICLE_SKIPPED", message=message)

    @staticmethod
    def _result(
        xml: str, strategy: GenerationStrategy, parts: _CatalogParts, warnings: list[str] | None = None
    ) -> GenerationResult:
        return GenerationResult(
            xml=xml,
            strategy=strategy,
            article_count=len(parts.articles),
            skipped_rows=parts.skipped_rows,
            group_count=parts.group_count,
            group_map_count=parts.group_map_count,
            warnings=warnings or [],
        )

    # -- classic -------------------------------------------------------

    def generate_classic(self, request: GenerationRequest) -> GenerationResult:
        header = request.header
        parts = self._catalog_parts(
            request, lambda row: render_article_xml(row, header, self._pricing)
        )
        header_xml = render_header_xml(header, self._clock())
        xml = render_document(header, header_xml, parts.body)
        return self._result(xml, GenerationStrategy.CLASSIC, parts)

    # -- templated -----------------------------------------------------

    async def generate_from_template(self, request: GenerationRequest) -> GenerationResult:
        if self._oracle is None:
            raise GenerationError("templated generation requires a templating oracle")
        if request.xml_sample:
            return await self._generate_from_sample(request, self._oracle)
        return await self._generate_from_specification(request, self._oracle)

    async def _generate_from_sample(
        self, request: GenerationRequest, oracle: TemplatingOracle
    ) -> GenerationResult:
        sample = request.xml_sample or ""
        snippet = extract_first_article_snippet(sample)
        logger.debug("xml sample article snippet found=%s", snippet is not None)
        article_template = await oracle.article_template(request.sources, snippet)

        header = request.header
        parts = self._catalog_parts(
            request, lambda row: fill_article_template(article_template, row)
        )
        header_xml = render_header_xml(header, self._clock()).lstrip()

        warnings: list[str] = []
        splicer = RegionSplicer(sample)
        if not splicer.replace_region("HEADER", header_xml):
            message = "XML template has no <HEADER> element; the generated file may be incomplete"
            logger.warning(message)
            warnings.append(message)
            if self._error_log is not None:
                self._error_log.add(
                    source="xml_template", row=-1, error_type="TEMPLATE_HEADER_MISSING", message=message
                )
        splicer.require_region("T_NEW_CATALOG", wrap_t_new_catalog(parts.body))

        xml = splicer.text
        if not xml.lstrip().startswith("<?xml"):
            xml = f"{XML_DECLARATION}\n{xml}"
        return self._result(xml, GenerationStrategy.TEMPLATE_SAMPLE, parts, warnings)

    async def _generate_from_specification(
        self, request: GenerationRequest, oracle: TemplatingOracle
    ) -> GenerationResult:
        sources = request.sources
        article_template, body_template = await gather_fail_fast(
            oracle.article_template(sources),
            oracle.body_template(request.header, sources),
        )
        parts = self._catalog_parts(
            request, lambda row: fill_article_template(article_template, row)
        )
        xml = f"{XML_DECLARATION}\n{fill_body_template(body_template, parts.body)}\n"
        return self._result(xml, GenerationStrategy.TEMPLATE_SPEC, parts)
