"""Tests for the JSON file state storage."""
import json
import pytest
from resource_scanner.domain.errors import StateStorageError
from resource_scanner.domain.models import ScanStatus
from resource_scanner.infrastructure.json_state_storage import (
    REPOSITORIES_FILE,
    STATUS_FILE,
    JsonFileStateStorage,
)
from factories import NOW, make_record


def test_missing_documents_load_as_fresh_state(tmp_path):
    """Missing files load as an empty dataset and initial status."""
    storage = JsonFileStateStorage(str(tmp_path / "data"))

    assert storage.load_repositories() == {}
    assert storage.load_scan_status() == ScanStatus()


def test_saved_state_loads_back(tmp_path):
    """Saved state is read back unchanged."""
    storage = JsonFileStateStorage(str(tmp_path / "data"))
    repositories = {"a/1": make_record("a/1", "web"), "b/1": make_record("b/1", "api")}
    status = ScanStatus(
        completed_categories=("web", "api"),
        category_timestamps={"web": NOW, "api": NOW},
        current_cycle=2,
        last_scanned_category="api",
        last_scan_time=NOW,
    )

    storage.save(repositories, status)

    reloaded = JsonFileStateStorage(str(tmp_path / "data"))
    assert reloaded.load_repositories() == repositories
    assert reloaded.load_scan_status() == status


def test_save_replaces_documents_without_leftovers(tmp_path):
    """Saving replaces both files and leaves no temporary files."""
    storage = JsonFileStateStorage(str(tmp_path))
    storage.save({"a/1": make_record("a/1", "web")}, ScanStatus())

    storage.save({}, ScanStatus(current_cycle=3))

    assert sorted(p.name for p in tmp_path.iterdir()) == [REPOSITORIES_FILE, STATUS_FILE]
    assert json.loads((tmp_path / REPOSITORIES_FILE).read_text()) == {}
    assert json.loads((tmp_path / STATUS_FILE).read_text())["current_cycle"] == 3


def test_corrupt_document_raises_storage_error(tmp_path):
    """Invalid JSON is reported as a storage error."""
    (tmp_path / STATUS_FILE).write_text("{not json")
    storage = JsonFileStateStorage(str(tmp_path))

    with pytest.raises(StateStorageError):
        storage.load_scan_status()


def test_malformed_record_raises_storage_error(tmp_path):
    """A record missing required fields is reported as a storage error."""
    (tmp_path / REPOSITORIES_FILE).write_text(json.dumps({"a/1": {"name": "1"}}))
    storage = JsonFileStateStorage(str(tmp_path))

    with pytest.raises(StateStorageError):
        storage.load_repositories()


@pytest.mark.parametrize("filename, content, load", [
    (REPOSITORIES_FILE, [{"owner": "a"}], "load_repositories"),
    (STATUS_FILE, ["web"], "load_scan_status"),
    (STATUS_FILE, {"category_timestamps": {"web": 1700000000}}, "load_scan_status"),
])
def test_wrongly_shaped_document_raises_storage_error(tmp_path, filename, content, load):
    """Valid JSON with the wrong structure is reported as a storage error."""
    (tmp_path / filename).write_text(json.dumps(content))
    storage = JsonFileStateStorage(str(tmp_path))

    with pytest.raises(StateStorageError):
        getattr(storage, load)()
