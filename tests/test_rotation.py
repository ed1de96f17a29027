"""Tests for the category rotation policy and staged state transitions."""
from datetime import timedelta
import pytest
from resource_scanner.domain.models import ScanStatus
from resource_scanner.domain.rotation import (
    ForcedCategorySelector,
    OldestFirstRotation,
    is_new_cycle,
    mark_category_scanned,
    merge_category_results,
    release_category,
    start_new_cycle,
)
from factories import NOW, make_record


KEYS = ["web", "api", "unit"]


def hours_ago(hours: int):
    return NOW - timedelta(hours=hours)


def test_never_scanned_categories_come_first():
    """Categories without a timestamp are picked first."""
    status = ScanStatus(category_timestamps={"web": hours_ago(5), "unit": hours_ago(50)})

    assert OldestFirstRotation().select(KEYS, status).category == "api"


def test_oldest_timestamp_wins():
    """The category scanned longest ago is picked."""
    status = ScanStatus(category_timestamps={
        "web": hours_ago(1), "api": hours_ago(3), "unit": hours_ago(2)
    })

    assert OldestFirstRotation().select(KEYS, status).category == "api"


def test_ties_go_to_configuration_order():
    """Equal timestamps fall back to configuration order."""
    assert OldestFirstRotation().select(KEYS, ScanStatus()).category == "web"

    status = ScanStatus(category_timestamps={
        "web": hours_ago(1), "api": hours_ago(4), "unit": hours_ago(4)
    })
    assert OldestFirstRotation().select(KEYS, status).category == "api"


def test_rotation_requires_categories():
    """Selecting from no categories is an error."""
    with pytest.raises(ValueError):
        OldestFirstRotation().select([], ScanStatus())


def test_forced_selector_picks_category_without_new_cycle():
    """A forced selection never starts a new cycle."""
    status = ScanStatus(completed_categories=tuple(KEYS))

    selection = ForcedCategorySelector("unit").select(KEYS, status)

    assert selection.category == "unit"
    assert selection.forced is True
    assert selection.is_new_cycle is False


def test_forced_selector_rejects_unknown_category():
    """Forcing an unknown category is an error."""
    with pytest.raises(ValueError):
        ForcedCategorySelector("mobile").select(KEYS, ScanStatus())


def test_new_cycle_once_every_category_completed():
    """A new cycle starts once every category is completed."""
    partial = ScanStatus(completed_categories=("web", "api"))
    complete = ScanStatus(completed_categories=("web", "api", "unit"))

    assert is_new_cycle(partial, KEYS) is False
    assert is_new_cycle(complete, KEYS) is True
    assert OldestFirstRotation().select(KEYS, complete).is_new_cycle is True


def test_new_cycle_from_timestamps_newer_than_last_full_scan():
    """Timestamps newer than the last full scan also end the cycle."""
    status = ScanStatus(
        category_timestamps={"web": hours_ago(1), "api": hours_ago(2), "unit": hours_ago(3)},
        last_full_scan=hours_ago(10),
    )
    stale = status.with_changes(last_full_scan=hours_ago(2))

    assert is_new_cycle(status, KEYS) is True
    assert is_new_cycle(stale, KEYS) is False


def test_start_new_cycle_keeps_timestamps():
    """Starting a cycle clears the completed set only."""
    status = ScanStatus(
        completed_categories=tuple(KEYS),
        category_timestamps={"web": hours_ago(1)},
        current_cycle=3,
    )

    rolled = start_new_cycle(status)

    assert rolled.current_cycle == 4
    assert rolled.completed_categories == ()
    assert rolled.category_timestamps == {"web": hours_ago(1)}


def test_mark_category_scanned_is_idempotent_on_completed_set():
    """Marking a category twice keeps a single entry."""
    status = ScanStatus(completed_categories=("web",), category_timestamps={"web": hours_ago(5)})

    updated = mark_category_scanned(status, "web", KEYS, NOW)

    assert updated.completed_categories == ("web",)
    assert updated.category_timestamps["web"] == NOW
    assert updated.last_scanned_category == "web"
    assert updated.last_scan_time == NOW
    assert updated.last_full_scan is None


def test_mark_category_scanned_stamps_full_cycle_completion():
    """Completing the last category stamps the full scan time."""
    status = ScanStatus(
        completed_categories=("web", "api"),
        category_timestamps={"web": hours_ago(2), "api": hours_ago(1)},
    )

    updated = mark_category_scanned(status, "unit", KEYS, NOW)

    assert updated.completed_categories == ("web", "api", "unit")
    assert updated.last_full_scan == NOW
    assert status.last_full_scan is None


def test_release_category_only_touches_that_category():
    """Releasing a category leaves the others completed."""
    status = ScanStatus(
        completed_categories=("web", "api"),
        category_timestamps={"web": hours_ago(2), "api": hours_ago(1)},
    )

    released = release_category(status, "web")

    assert released.completed_categories == ("api",)
    assert released.category_timestamps == status.category_timestamps


def test_merge_replaces_every_record_of_the_category():
    """Merging replaces all of the category's records."""
    existing = {
        "a/stale": make_record("a/stale", "web"),
        "a/kept": make_record("a/kept", "web"),
        "b/other": make_record("b/other", "api"),
    }
    fresh = [make_record("a/kept", "web", total=90), make_record("a/new", "web")]

    merged = merge_category_results(existing, "web", fresh)

    web = {key for key, record in merged.items() if record.category == "web"}
    assert web == {"a/kept", "a/new"}
    assert merged["a/kept"].quality_score.total == 90
    assert "b/other" in merged
    assert "a/stale" in existing


def test_merge_with_empty_results_clears_the_category():
    """An empty result removes the category's records."""
    existing = {
        "a/one": make_record("a/one", "web"),
        "b/other": make_record("b/other", "api"),
    }

    merged = merge_category_results(existing, "web", [])

    assert list(merged) == ["b/other"]
