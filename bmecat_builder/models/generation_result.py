from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Generation result models.

GenerationResult wraps the produced document together with the counters
used for the SUMMARY line.
"""

__all__ = [
    "GenerationStrategy",
    "GenerationResult",
]


class GenerationStrategy(Enum):
    """Which path produced the document.

    - CLASSIC: fixed schema rules, no oracle involved
    - TEMPLATE_SAMPLE: full XML sample supplied, article template from the oracle
    - TEMPLATE_SPEC: article and body templates both from the oracle
    """
    CLASSIC = "classic"
    TEMPLATE_SAMPLE = "template_sample"
    TEMPLATE_SPEC = "template_spec"


@dataclass(frozen=True)
class GenerationResult:
    xml: str
    strategy: GenerationStrategy
    article_count: int  # rendered <ARTICLE> blocks
    skipped_rows: int  # rows without SUPPLIER_AID or PRICE_AMOUNT
    group_count: int  # all nodes of the group forest
    group_map_count: int  # <ARTICLE_TO_GROUP_MAP> entries
    elapsed_seconds: float = 0.0
    warnings: list[str] = field(default_factory=list)
