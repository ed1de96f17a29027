"""Category rotation policy and the pure state transitions of a staged scan.

Nothing in here touches the network or the disk: each function takes the
current state and returns a new one.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Sequence
from resource_scanner.domain.models import RepositoryRecord, ScanStatus


logger = logging.getLogger(__name__)

NEVER_SCANNED = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class CategorySelection:
    """The category chosen for a step and whether it opens a new cycle."""
    category: str
    is_new_cycle: bool
    forced: bool = False


class CategorySelector(ABC):
    """Strategy deciding which category the next step scans."""

    @abstractmethod
    def select(self, category_keys: Sequence[str], status: ScanStatus) -> CategorySelection:
        """Choose the next category.

        Args:
            category_keys: Configured category keys, in configuration order
            status: Current scan status

        Returns:
            CategorySelection for this step
        """
        pass


class OldestFirstRotation(CategorySelector):
    """Picks the category refreshed longest ago.

    Never-scanned categories count as infinitely old; ties go to the category
    listed first in the configuration.
    """

    def select(self, category_keys: Sequence[str], status: ScanStatus) -> CategorySelection:
        if not category_keys:
            raise ValueError("At least one category must be configured")

        oldest = min(
            category_keys,
            key=lambda key: status.category_timestamps.get(key) or NEVER_SCANNED
        )
        return CategorySelection(
            category=oldest,
            is_new_cycle=is_new_cycle(status, category_keys)
        )


class ForcedCategorySelector(CategorySelector):
    """Always picks one given category, outside the rotation order."""

    def __init__(self, category: str):
        self._category = category

    def select(self, category_keys: Sequence[str], status: ScanStatus) -> CategorySelection:
        if self._category not in category_keys:
            raise ValueError(f"Unknown category: {self._category}")
        return CategorySelection(category=self._category, is_new_cycle=False, forced=True)


def is_new_cycle(status: ScanStatus, category_keys: Iterable[str]) -> bool:
    """Whether the previous cycle is finished and a new one should start.

    True when every category is in the completed set, or when every category
    has been refreshed after the last full-cycle completion (status documents
    whose completed set cannot be trusted).
    """
    keys = list(category_keys)
    if not keys:
        return False

    if set(keys).issubset(status.completed_categories):
        return True

    last_full_scan = status.last_full_scan or NEVER_SCANNED
    return all(
        key in status.category_timestamps
        and status.category_timestamps[key] > last_full_scan
        for key in keys
    )


def start_new_cycle(status: ScanStatus) -> ScanStatus:
    """Advance the cycle counter and clear the completed set.

    Category timestamps and repository data are left untouched, so the
    published dataset keeps the previous cycle's results until each category
    is refreshed again.
    """
    return status.with_changes(
        current_cycle=status.current_cycle + 1,
        completed_categories=()
    )


def release_category(status: ScanStatus, category: str) -> ScanStatus:
    """Drop one category from the completed set, leaving everything else as is."""
    return status.with_changes(
        completed_categories=tuple(
            key for key in status.completed_categories if key != category
        )
    )


def mark_category_scanned(
    status: ScanStatus,
    category: str,
    category_keys: Iterable[str],
    now: datetime
) -> ScanStatus:
    """Record a successful scan of ``category`` at ``now``.

    Stamps ``last_full_scan`` when this scan completes the cycle.
    """
    completed = status.completed_categories
    if category not in completed:
        completed = completed + (category,)

    timestamps = dict(status.category_timestamps)
    timestamps[category] = now

    updated = status.with_changes(
        completed_categories=completed,
        category_timestamps=timestamps,
        last_scanned_category=category,
        last_scan_time=now
    )

    if set(category_keys).issubset(completed):
        updated = updated.with_changes(last_full_scan=now)

    return updated


def merge_category_results(
    repositories: Dict[str, RepositoryRecord],
    category: str,
    fresh: Iterable[RepositoryRecord]
) -> Dict[str, RepositoryRecord]:
    """Replace every record of ``category`` with the freshly scanned ones.

    A full replace rather than a per-record upsert: repositories missing
    from the latest results disappear from the category.

    Args:
        repositories: Current repository map (left unmodified)
        category: Category that was scanned
        fresh: Records returned by the scan

    Returns:
        New repository map
    """
    merged = {
        key: record
        for key, record in repositories.items()
        if record.category != category
    }
    removed = len(repositories) - len(merged)

    added = 0
    for record in fresh:
        previous = merged.get(record.id)
        if previous is not None and previous.category != category:
            logger.info(
                f"Moving {record.id} from category {previous.category} to {category}"
            )
        merged[record.id] = record
        added += 1

    logger.info(
        f"Merged category {category}: removed {removed} stale records, added {added}"
    )
    return merged
