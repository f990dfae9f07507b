from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..errors import GroupCycleError
from ..models.catalog_group import CatalogGroup, StructureRow
from ..models.row_data import NormalizedRow
from .bmecat_xml import escape_xml

"""Group tree builder and group-related renderers.

build_group_tree turns flat (GROUP_ID, GROUP_NAME, PARENT_ID) rows into a
forest in two passes: first a lookup id -> node, then each node is attached
to its parent when PARENT_ID is non-empty and known, otherwise it becomes a
root. Roots and children keep the order of the flat rows.

Cyclic PARENT_ID chains (including a group naming itself as parent) are
rejected with GroupCycleError before anything is attached.
"""

__all__ = [
    "build_group_tree",
    "count_groups",
    "render_group_system_xml",
    "group_mapped_rows",
    "render_article_to_group_map_xml",
]

logger = logging.getLogger(__name__)

GROUP_BASE_DEPTH = 3  # <GROUP> nodes sit inside <CATALOG_GROUP_SYSTEM> (2 levels) under the root


def _check_cycles(lookup: dict[str, CatalogGroup]) -> None:
    for group_id in lookup:
        chain = [group_id]
        seen = {group_id}
        parent = lookup[group_id].parent_id
        while parent and parent in lookup:
            if parent in seen:
                start = chain.index(parent)
                raise GroupCycleError(chain[start:] + [parent])
            chain.append(parent)
            seen.add(parent)
            parent = lookup[parent].parent_id


def build_group_tree(rows: Iterable[StructureRow]) -> list[CatalogGroup]:
    """Build the catalog group forest, ordered by first appearance."""
    lookup: dict[str, CatalogGroup] = {}
    ordered: list[CatalogGroup] = []
    for row in rows:
        if row.GROUP_ID in lookup:
            logger.warning("duplicate GROUP_ID=%s ignored (first definition wins)", row.GROUP_ID)
            continue
        node = CatalogGroup(id=row.GROUP_ID, name=row.GROUP_NAME, parent_id=row.PARENT_ID or None)
        lookup[row.GROUP_ID] = node
        ordered.append(node)

    _check_cycles(lookup)

    roots: list[CatalogGroup] = []
    for node in ordered:
        if node.parent_id and node.parent_id in lookup:
            lookup[node.parent_id].children.append(node)
        else:
            roots.append(node)
    return roots


def count_groups(groups: Iterable[CatalogGroup]) -> int:
    return sum(1 for root in groups for _ in root.walk())


def render_group_system_xml(groups: Sequence[CatalogGroup], level: int = 0) -> str:
    """Nested <GROUP> blocks, two more spaces of indentation per level."""
    indent = "  " * (GROUP_BASE_DEPTH + level)
    lines: list[str] = []
    for group in groups:
        lines.append(f"{indent}<GROUP>")
        lines.append(f"{indent}  <GROUP_ID>{escape_xml(group.id)}</GROUP_ID>")
        lines.append(f"{indent}  <GROUP_NAME>{escape_xml(group.name)}</GROUP_NAME>")
        if group.children:
            lines.append(render_group_system_xml(group.children, level + 1))
        lines.append(f"{indent}</GROUP>")
    return "\n".join(lines)


def group_mapped_rows(rows: Iterable[NormalizedRow]) -> list[NormalizedRow]:
    return [r for r in rows if r.get("SUPPLIER_AID") and r.get("CATALOG_GROUP_ID")]


def render_article_to_group_map_xml(rows: Iterable[NormalizedRow]) -> str:
    """One <ARTICLE_TO_GROUP_MAP> per row with an article number and a group id."""
    blocks = [
        "    <ARTICLE_TO_GROUP_MAP>\n"
        f"      <ART_ID>{escape_xml(row.get('SUPPLIER_AID'))}</ART_ID>\n"
        f"      <CATALOG_GROUP_ID>{escape_xml(row.get('CATALOG_GROUP_ID'))}</CATALOG_GROUP_ID>\n"
        "    </ARTICLE_TO_GROUP_MAP>"
        for row in group_mapped_rows(rows)
    ]
    return "\n".join(blocks)
