from __future__ import annotations

from dataclasses import dataclass, field

"""Catalog group (category) models.

StructureRow is the flat record read from the structure table;
CatalogGroup is a node of the forest built from those rows.
"""

__all__ = [
    "StructureRow",
    "CatalogGroup",
]


@dataclass(frozen=True)
class StructureRow:
    GROUP_ID: str
    GROUP_NAME: str
    PARENT_ID: str = ""


@dataclass
class CatalogGroup:
    """Tree node. Children keep the relative order of the flat rows."""
    id: str
    name: str
    parent_id: str | None = None
    children: list[CatalogGroup] = field(default_factory=list)

    def walk(self):
        """Yield this node and all descendants depth first."""
        yield self
        for child in self.children:
            yield from child.walk()
