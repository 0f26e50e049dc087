"""
JSON File State Storage

One pretty-printed UTF-8 JSON document per ledger.

DESIGN DECISION: Writes are atomic. The document is written to a sibling
"<name>.tmp" file, flushed to disk, and moved over the real file with
os.replace, so a crash mid-write leaves either the old snapshot or the
new one, never a torn file. Transient OS errors are retried with
exponential backoff before the write is reported as failed.
"""

import json
import os
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from household_ledger.config import StorageSettings, get_settings
from household_ledger.errors import DecodeError, EncodeError
from household_ledger.persistence.interface import StateStorageInterface


logger = structlog.get_logger(__name__)


class JsonFileStateStorage(StateStorageInterface):
    """
    Snapshot storage backed by a JSON file.

    A missing file reads as None (first run). An unreadable or malformed
    file raises DecodeError so the caller can fall back to an empty state.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        retry_attempts: Optional[int] = None,
        retry_wait=None,
        settings: Optional[StorageSettings] = None,
    ):
        """
        Initialize file storage.

        Args:
            path: Snapshot file. Defaults to the configured state path.
            retry_attempts: Write attempts before giving up.
            retry_wait: tenacity wait strategy between attempts.
            settings: Storage settings; loaded from the environment if None.
        """
        if path is None or retry_attempts is None:
            settings = settings or get_settings().storage
        self._path = Path(path) if path is not None else settings.state_path
        self._attempts = retry_attempts if retry_attempts is not None else settings.write_retry_attempts
        self._wait = retry_wait or wait_exponential(multiplier=0.1, min=0.1, max=2)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    @property
    def temp_path(self) -> Path:
        return self._path.with_name(self._path.name + ".tmp")

    def read(self) -> Optional[dict]:
        if not self._path.exists():
            return None
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DecodeError(f"Cannot read snapshot {self._path}: {e}") from e
        if not text.strip():
            raise DecodeError(f"Snapshot {self._path} is empty")
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Snapshot {self._path} is not valid JSON: {e}") from e

    def write(self, document: dict) -> None:
        try:
            text = json.dumps(document, ensure_ascii=False, indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Snapshot is not JSON serializable: {e}") from e

        write_with_retry = retry(
            stop=stop_after_attempt(self._attempts),
            wait=self._wait,
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )(self._write_atomic)

        try:
            write_with_retry(text)
        except OSError as e:
            raise EncodeError(f"Cannot write snapshot {self._path}: {e}") from e

    def _write_atomic(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.temp_path
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except OSError:
            logger.warning("snapshot_write_attempt_failed", path=str(self._path))
            if tmp.exists():
                tmp.unlink()
            raise
