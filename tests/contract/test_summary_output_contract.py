from __future__ import annotations

import re

from bmecat_builder.models.generation_result import GenerationResult, GenerationStrategy
from bmecat_builder.models.header_config import BmecatFormat
from bmecat_builder.services.summary import render_summary_line

"""SUMMARY line format contract test."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+strategy=(classic|template_sample|template_spec)\s+format=(1\.2|2005)\s+"
    r"articles=([0-9]+)\s+skipped_rows=([0-9]+)\s+groups=([0-9]+)\s+group_maps=([0-9]+)\s+"
    r"elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def test_summary_pattern_example_line():
    line = "SUMMARY strategy=classic format=1.2 articles=2 skipped_rows=1 groups=2 group_maps=2 elapsed_sec=0.84"
    m = SUMMARY_PATTERN.match(line)
    assert m, "SUMMARY line should match contract regex"
    assert m.group(3) == "2"


def test_rendered_summary_lines_match_contract():
    for strategy in GenerationStrategy:
        for fmt in BmecatFormat:
            for elapsed in (0, 0.00042, 12.5, 3):
                result = GenerationResult(
                    xml="", strategy=strategy, article_count=10, skipped_rows=0,
                    group_count=4, group_map_count=7, elapsed_seconds=elapsed,
                )
                line = render_summary_line(result, fmt)
                assert SUMMARY_PATTERN.match(line), line


def test_summary_pattern_rejects_scientific_elapsed():
    line = "SUMMARY strategy=classic format=1.2 articles=0 skipped_rows=0 groups=0 group_maps=0 elapsed_sec=4e-05"
    assert not SUMMARY_PATTERN.match(line)
