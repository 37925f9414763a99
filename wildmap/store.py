# ABOUTME: Flat-file persistence for the two annotation collections (animals, trees).
# ABOUTME: Each collection is one pretty-printed JSON array, read in full and rewritten in full.

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from wildmap.models import Annotation, Kind

logger = logging.getLogger(__name__)

COLLECTION_FILES = {
    Kind.ANIMAL: "animals.json",
    Kind.TREE: "trees.json",
}


class AnnotationStore:
    """Append-only annotation collections kept as JSON files under one directory.

    Appends to the same collection are serialized within this process. Separate
    processes writing the same directory can still lose updates (last writer wins).
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._locks = {kind: threading.Lock() for kind in Kind}

    def path_for(self, kind: Kind) -> Path:
        return self.data_dir / COLLECTION_FILES[Kind(kind)]

    def load_all(self, kind: Kind) -> list[Annotation]:
        """Read every annotation of one kind, in insertion order.

        A missing file is an empty collection.
        """
        return [Annotation.model_validate(row) for row in self._read_rows(kind)]

    def append_and_save(self, kind: Kind, record: Annotation) -> bool:
        """Append one record and rewrite the whole collection file.

        Returns False when the file cannot be read, parsed, or written; the
        collection is left as it was.
        """
        kind = Kind(kind)
        with self._locks[kind]:
            try:
                rows = self._read_rows(kind)
                rows.append(record.model_dump(by_alias=True, exclude_none=True))
                self._write_rows(kind, rows)
            except (OSError, ValueError, ValidationError):
                logger.exception("Failed to save %s entry to %s", kind.value, self.path_for(kind))
                return False
        logger.info("Saved %s entry %r (%d total)", kind.value, record.species, len(rows))
        return True

    def _read_rows(self, kind: Kind) -> list[dict]:
        path = self.path_for(kind)
        if not path.exists():
            return []
        with path.open(encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"{path} does not hold a JSON array")
        return rows

    def _write_rows(self, kind: Kind, rows: list[dict]) -> None:
        path = self.path_for(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
            f.write("\n")
