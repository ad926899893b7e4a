"""
Append-only transcription history stored as a JSON list.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from ...utils.logger import get_logger
from ..errors import StorageError
from .config import MAX_HISTORY_ENTRIES
from .settings import get_config_dir

logger = get_logger(__name__)

HISTORY_FILE = "history.json"


class TranscriptionRecord(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    timestamp: str  # ISO format datetime
    text: str
    backend: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptionRecord":
        return cls.model_validate(data)


class HistoryLog:
    def __init__(
        self,
        history_file: Optional[Path] = None,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ):
        self._history_file = history_file or get_config_dir() / HISTORY_FILE
        self._max_entries = max_entries

    @property
    def path(self) -> Path:
        return self._history_file

    def load(self) -> List[TranscriptionRecord]:
        """Oldest first. A corrupt file reads as empty and is left in place."""
        records = self._read()
        return [] if records is None else records

    def append(self, text: str, backend: Optional[str] = None) -> TranscriptionRecord:
        record = TranscriptionRecord(
            timestamp=datetime.now().isoformat(), text=text, backend=backend
        )
        records = self._read()
        if records is None:
            self._move_aside()
            records = []
        records.append(record)
        self._save(records)
        logger.debug(f"Recorded transcription to history: {len(text)} chars")
        return record

    def recent(self, limit: Optional[int] = None) -> List[TranscriptionRecord]:
        """Newest first."""
        records = list(reversed(self.load()))
        return records if limit is None else records[:limit]

    def clear(self) -> None:
        try:
            self._history_file.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not clear history: {e}") from e

    def _save(self, records: List[TranscriptionRecord]) -> None:
        records = records[-self._max_entries :]
        data = [record.to_dict() for record in records]

        try:
            self._history_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._history_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise StorageError(f"Could not write history: {e}") from e

    def _read(self) -> Optional[List[TranscriptionRecord]]:
        """Records oldest first, [] if there is no file, None if it is corrupt."""
        if not self._history_file.exists():
            return []

        try:
            with open(self._history_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [TranscriptionRecord.from_dict(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning(f"Could not load history: {e}")
            return None
        except OSError as e:
            raise StorageError(f"Could not read history: {e}") from e

    def _move_aside(self) -> Path:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        backup = self._history_file.with_name(
            f"{self._history_file.name}.corrupt-{stamp}"
        )
        try:
            self._history_file.replace(backup)
        except OSError as e:
            raise StorageError(f"Could not move corrupt history aside: {e}") from e
        logger.warning(f"Moved unreadable history to {backup}")
        return backup
