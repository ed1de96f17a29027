"""JSON file implementation of scan state storage."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict
from resource_scanner.domain.errors import StateStorageError
from resource_scanner.domain.models import (
    RepositoryRecord,
    ScanStatus,
    repositories_from_document,
    repositories_to_document,
)
from resource_scanner.domain.repository_interface import IScanStateStorage


logger = logging.getLogger(__name__)

REPOSITORIES_FILE = "repositories.json"
STATUS_FILE = "scan-status.json"


class JsonFileStateStorage(IScanStateStorage):
    """Keeps the repository map and scan status as two JSON documents.

    Each document is written to a temporary file and moved into place, so a
    reader never sees a half-written file. The repository map is written
    first: if the process dies in between, the old status makes the next
    run rescan the same category instead of skipping it.
    """

    def __init__(self, data_dir: str):
        """Initialize storage.

        Args:
            data_dir: Directory holding the JSON documents (created on demand)
        """
        self._data_dir = Path(data_dir)
        self._repositories_path = self._data_dir / REPOSITORIES_FILE
        self._status_path = self._data_dir / STATUS_FILE

    def load_repositories(self) -> Dict[str, RepositoryRecord]:
        document = self._read_document(self._repositories_path)
        if document is None:
            return {}
        try:
            repositories = repositories_from_document(document)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StateStorageError(
                f"Malformed repository document {self._repositories_path}: {e}"
            ) from e
        logger.info(f"Loaded {len(repositories)} repositories from {self._repositories_path}")
        return repositories

    def load_scan_status(self) -> ScanStatus:
        document = self._read_document(self._status_path)
        if document is None:
            logger.info("No scan status found, starting from a fresh state")
            return ScanStatus()
        try:
            return ScanStatus.from_dict(document)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StateStorageError(
                f"Malformed scan status document {self._status_path}: {e}"
            ) from e

    def save(self, repositories: Dict[str, RepositoryRecord], scan_status: ScanStatus) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._write_document(self._repositories_path, repositories_to_document(repositories))
            self._write_document(self._status_path, scan_status.to_dict())
        except OSError as e:
            logger.error(f"Error saving scan state: {e}")
            raise StateStorageError(f"Could not write scan state to {self._data_dir}: {e}") from e

        logger.info(f"Saved {len(repositories)} repositories to {self._data_dir}")

    def close(self) -> None:
        pass

    def _read_document(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StateStorageError(f"Could not read {path}: {e}") from e

    def _write_document(self, path: Path, document: Any) -> None:
        fd, temp_path = tempfile.mkstemp(dir=self._data_dir, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
