"""Mini README: JSON file backed ledger storage.

Structure:
    * JsonFileLedgerRepository - in-memory tables flushed to ``ledger.json``.

Every insert is written through to disk. If the write fails the inserted rows
are dropped from memory again and ``PersistenceFailure`` is raised, so a
failed save never leaves half-applied state behind.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..finance.exceptions import PersistenceFailure
from ..logging_utils import get_logger
from .base import Row
from .memory import InMemoryLedgerRepository
from .registry import REGISTRY

LOGGER = get_logger(__name__)

DEFAULT_FILENAME = "ledger.json"


class JsonFileLedgerRepository(InMemoryLedgerRepository):
    """Persist ledger tables as a single JSON document."""

    backend_name = "json"

    def __init__(
        self,
        *,
        data_directory: Optional[Path] = None,
        filename: str = DEFAULT_FILENAME,
    ) -> None:
        directory = Path(data_directory or "data")
        self.path = directory / filename
        super().__init__(self._load(), data_directory=directory)
        LOGGER.debug("JSON repository bound to %s", self.path)

    def _load(self) -> Dict[str, List[Row]]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as error:
            raise PersistenceFailure("load", f"{self.path}: {error}") from error
        if not isinstance(payload, dict):
            raise PersistenceFailure("load", f"{self.path}: expected an object of tables")
        return payload

    def _flush(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temporary = self.path.with_suffix(self.path.suffix + ".tmp")
            with temporary.open("w", encoding="utf-8") as handle:
                json.dump(self.export_tables(), handle, ensure_ascii=False, indent=2)
            temporary.replace(self.path)
        except OSError as error:
            raise PersistenceFailure("write", f"{self.path}: {error}") from error

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        snapshot = self.export_tables()
        sequences = dict(self._sequences)
        stored = super().insert_rows(table, rows)
        try:
            self._flush()
        except PersistenceFailure:
            LOGGER.warning("Rolling back %s row(s) for %s after failed write", len(stored), table)
            self._replace_tables(snapshot)
            self._sequences = sequences
            raise
        return stored


REGISTRY.register(JsonFileLedgerRepository)
