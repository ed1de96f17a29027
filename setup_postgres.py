"""Database initialization script for the PostgreSQL state backend.

Creates the table holding the persisted scan documents.
"""
import logging
import sys
import psycopg2
from dotenv import load_dotenv
from resource_scanner.infrastructure.settings import ScannerSettings

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def create_schema(conn) -> None:
    """Create database schema.

    Schema design considerations:
    - one row per persisted document (``repositories``, ``scan_status``)
    - the body is JSONB so the dataset can be inspected with SQL
    - updated_at tracks the last save of each document
    """
    cursor = conn.cursor()

    try:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS scan_documents (
                name VARCHAR(64) PRIMARY KEY,
                body JSONB NOT NULL,
                updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.commit()
        logger.info("Database schema created successfully")

    except Exception as e:
        conn.rollback()
        logger.error(f"Error creating schema: {e}")
        raise
    finally:
        cursor.close()


def main():
    """Initialize the database."""
    try:
        settings = ScannerSettings.from_env()
        logger.info("Connecting to database...")

        conn = psycopg2.connect(settings.postgres_connection_string)
        conn.autocommit = False

        create_schema(conn)

        conn.close()
        logger.info("Database initialization completed successfully")

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
