from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path

"""Named specification store.

Specifications (PDF documents) are saved under a user chosen name and kept
base64 encoded. The store is a key-value port; JsonFileSpecificationStore
persists the list as one JSON array. The assembler never reads the store:
the CLI resolves a stored specification to its PDF bytes beforehand.
"""

__all__ = [
    "StoredSpecification",
    "SpecificationStore",
    "JsonFileSpecificationStore",
    "DEFAULT_STORE_PATH",
]

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("specs/specifications.json")


@dataclass(frozen=True)
class StoredSpecification:
    id: int  # creation time in milliseconds
    name: str
    base64_content: str

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.base64_content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"stored specification '{self.name}' is not valid base64") from e


class SpecificationStore(ABC):
    @abstractmethod
    def list(self) -> list[StoredSpecification]:
        raise NotImplementedError

    @abstractmethod
    def save(self, name: str, base64_content: str) -> StoredSpecification:
        raise NotImplementedError

    @abstractmethod
    def delete(self, spec_id: int) -> bool:
        raise NotImplementedError

    def get(self, spec_id: int) -> StoredSpecification | None:
        return next((s for s in self.list() if s.id == spec_id), None)

    def find(self, name: str) -> StoredSpecification | None:
        """Most recently saved specification with this name."""
        matches = [s for s in self.list() if s.name == name]
        return matches[-1] if matches else None


class JsonFileSpecificationStore(SpecificationStore):
    """SpecificationStore backed by a JSON array file.

    A missing file is an empty store. A corrupt file is logged and treated
    as empty; the next save overwrites it.
    """

    def __init__(self, path: Path = DEFAULT_STORE_PATH) -> None:
        self.path = path

    def list(self) -> list[StoredSpecification]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [
                StoredSpecification(id=int(item["id"]), name=str(item["name"]), base64_content=str(item["base64_content"]))
                for item in raw
            ]
        except (json.JSONDecodeError, TypeError, KeyError, ValueError) as e:
            logger.warning("specification store %s is corrupt, treating it as empty: %s", self.path, e)
            return []

    def _write(self, specs: list[StoredSpecification]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [asdict(s) for s in specs]
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    def save(self, name: str, base64_content: str) -> StoredSpecification:
        specs = self.list()
        spec_id = int(time.time() * 1000)
        used = {s.id for s in specs}
        while spec_id in used:
            spec_id += 1
        spec = StoredSpecification(id=spec_id, name=name, base64_content=base64_content)
        self._write([*specs, spec])
        logger.info("specification saved id=%d name=%s", spec.id, name)
        return spec

    def delete(self, spec_id: int) -> bool:
        specs = self.list()
        remaining = [s for s in specs if s.id != spec_id]
        self._write(remaining)
        return len(remaining) != len(specs)
