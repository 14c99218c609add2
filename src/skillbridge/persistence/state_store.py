"""State store — JSON snapshot persistence for the in-memory backend.

The whole table set is written as one JSON document. Writes go to a
temporary file in the same directory which then replaces the target,
so a crash mid-write leaves the previous snapshot intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


SNAPSHOT_VERSION = 1


class StateStore:
    """Reads and writes backend snapshots to a single JSON file."""

    def __init__(self, storage_path: Path) -> None:
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> dict[str, Any]:
        """Load the snapshot.

        Raises:
            ValueError: If the file is not a snapshot this version can read.
        """
        with self._path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"State file {self._path} is not a JSON object")
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(
                f"Unsupported state version {version!r} in {self._path}; "
                f"expected {SNAPSHOT_VERSION}"
            )
        return data.get("tables", {})

    def save(self, tables: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        document = {"version": SNAPSHOT_VERSION, "tables": tables}
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
