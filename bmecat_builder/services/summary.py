from __future__ import annotations

from ..models.generation_result import GenerationResult
from ..models.header_config import BmecatFormat

"""SUMMARY line rendering.

Format:
SUMMARY strategy={strategy} format={format} articles={n} skipped_rows={n}
groups={n} group_maps={n} elapsed_sec={elapsed}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Render seconds without scientific notation or a trailing '.0'."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: GenerationResult, fmt: BmecatFormat) -> str:
    """Render the SUMMARY line for one generation run.

    Examples:
        >>> from bmecat_builder.models.generation_result import GenerationStrategy
        >>> result = GenerationResult(
        ...     xml="", strategy=GenerationStrategy.CLASSIC, article_count=3,
        ...     skipped_rows=1, group_count=2, group_map_count=3, elapsed_seconds=0.5,
        ... )
        >>> render_summary_line(result, BmecatFormat.V1_2)
        'SUMMARY strategy=classic format=1.2 articles=3 skipped_rows=1 groups=2 group_maps=3 elapsed_sec=0.5'
    """
    return (
        f"SUMMARY strategy={result.strategy.value} "
        f"format={fmt.value} "
        f"articles={result.article_count} "
        f"skipped_rows={result.skipped_rows} "
        f"groups={result.group_count} "
        f"group_maps={result.group_map_count} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
