"""Import map document: the persisted lockfile."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

from common.errors import LockfileError

logger = logging.getLogger(__name__)

IMPORT_MAP_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "imports": {
            "type": "object",
            "additionalProperties": {"type": "string", "minLength": 1},
        },
    },
    "required": ["imports"],
}


@dataclass
class ImportMap:
    """Mapping from specifier to resolved URL."""

    imports: Dict[str, str] = field(default_factory=dict)

    def get(self, specifier: str) -> Optional[str]:
        """Return the pinned URL for ``specifier`` or None."""
        return self.imports.get(specifier) or None

    def __contains__(self, specifier: str) -> bool:
        return specifier in self.imports

    def __len__(self) -> int:
        return len(self.imports)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with sorted keys for reproducible output."""
        return {"imports": {key: self.imports[key] for key in sorted(self.imports)}}

    @classmethod
    def from_dict(cls, data: Any) -> "ImportMap":
        """Build an import map from a parsed document.

        Raises:
            LockfileError: The document does not have the ``{"imports": {...}}`` shape.
        """
        errors = sorted(Draft7Validator(IMPORT_MAP_SCHEMA).iter_errors(data), key=lambda e: list(e.path))
        if errors:
            first = errors[0]
            path = "/".join(str(p) for p in first.path)
            raise LockfileError(f"Invalid import map at '{path}': {first.message}")
        return cls(imports=dict(data["imports"]))


def load_lockfile(path: str) -> Optional[ImportMap]:
    """Read a lockfile; a missing file yields None.

    Raises:
        LockfileError: The file is not valid JSON or has the wrong shape.
    """
    if not os.path.isfile(path):
        logger.debug("No lockfile at %s", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise LockfileError(f"Lockfile {path} is not valid JSON: {exc}") from exc
    return ImportMap.from_dict(data)


def write_lockfile(path: str, import_map: ImportMap) -> None:
    """Write ``import_map`` as pretty JSON with sorted keys."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(import_map.to_dict(), f, indent=2, sort_keys=True)
        f.write("\n")
    logger.info("Wrote lockfile with %d entries to %s", len(import_map), path)
