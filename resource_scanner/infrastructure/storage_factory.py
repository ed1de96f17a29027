"""Selects the scan state storage backend from the settings."""
from resource_scanner.domain.repository_interface import IScanStateStorage
from resource_scanner.infrastructure.json_state_storage import JsonFileStateStorage
from resource_scanner.infrastructure.settings import ScannerSettings


def create_state_storage(settings: ScannerSettings) -> IScanStateStorage:
    if settings.state_backend == "postgres":
        # psycopg2 is only required by this backend.
        from resource_scanner.infrastructure.postgres_state_storage import PostgresStateStorage
        return PostgresStateStorage(settings.postgres_connection_string)
    return JsonFileStateStorage(settings.data_dir)
