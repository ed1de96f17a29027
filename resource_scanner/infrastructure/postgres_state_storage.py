"""PostgreSQL implementation of scan state storage."""
import logging
from typing import Any, Dict, Optional
import psycopg2
from psycopg2.extras import Json
from resource_scanner.domain.errors import StateStorageError
from resource_scanner.domain.models import (
    RepositoryRecord,
    ScanStatus,
    repositories_from_document,
    repositories_to_document,
)
from resource_scanner.domain.repository_interface import IScanStateStorage


logger = logging.getLogger(__name__)

REPOSITORIES_DOCUMENT = "repositories"
STATUS_DOCUMENT = "scan_status"


class PostgresStateStorage(IScanStateStorage):
    """PostgreSQL implementation of scan state storage.

    Both documents live as JSONB rows of the ``scan_documents`` table and are
    replaced in a single transaction, so a save is all-or-nothing.
    Run ``setup_postgres.py`` once to create the table.
    """

    def __init__(self, connection_string: str):
        """Initialize PostgreSQL connection.

        Args:
            connection_string: PostgreSQL connection string
        """
        try:
            self._conn = psycopg2.connect(connection_string)
        except psycopg2.Error as e:
            raise StateStorageError(f"Could not connect to PostgreSQL: {e}") from e
        self._conn.autocommit = False
        logger.info("Connected to PostgreSQL database")

    def load_repositories(self) -> Dict[str, RepositoryRecord]:
        document = self._read_document(REPOSITORIES_DOCUMENT)
        if document is None:
            return {}
        try:
            repositories = repositories_from_document(document)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StateStorageError(f"Malformed repository document: {e}") from e
        logger.info(f"Loaded {len(repositories)} repositories from database")
        return repositories

    def load_scan_status(self) -> ScanStatus:
        document = self._read_document(STATUS_DOCUMENT)
        if document is None:
            logger.info("No scan status found, starting from a fresh state")
            return ScanStatus()
        try:
            return ScanStatus.from_dict(document)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StateStorageError(f"Malformed scan status document: {e}") from e

    def save(self, repositories: Dict[str, RepositoryRecord], scan_status: ScanStatus) -> None:
        """Upsert both documents in one transaction.

        Args:
            repositories: Complete repository map
            scan_status: Complete scan status
        """
        cursor = self._conn.cursor()

        try:
            query = """
                INSERT INTO scan_documents (name, body, updated_at)
                VALUES (%s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (name)
                DO UPDATE SET
                    body = EXCLUDED.body,
                    updated_at = CURRENT_TIMESTAMP
            """
            cursor.execute(query, (REPOSITORIES_DOCUMENT, Json(repositories_to_document(repositories))))
            cursor.execute(query, (STATUS_DOCUMENT, Json(scan_status.to_dict())))

            self._conn.commit()
            logger.info(f"Saved {len(repositories)} repositories to database")

        except psycopg2.Error as e:
            self._conn.rollback()
            logger.error(f"Error saving scan state: {e}")
            raise StateStorageError(f"Could not save scan state: {e}") from e
        finally:
            cursor.close()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            logger.info("Closed PostgreSQL connection")

    def _read_document(self, name: str) -> Optional[Any]:
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT body FROM scan_documents WHERE name = %s", (name,))
            row = cursor.fetchone()
            self._conn.commit()
            return row[0] if row else None
        except psycopg2.Error as e:
            self._conn.rollback()
            raise StateStorageError(f"Could not read {name} document: {e}") from e
        finally:
            cursor.close()
