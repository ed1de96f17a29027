"""Staged scan coordinator: one category per invocation."""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional
from resource_scanner.application.category_scanner import CategoryScanExecutor
from resource_scanner.domain.models import (
    Category,
    RepositoryRecord,
    ScanStatus,
    StagedScanResult,
)
from resource_scanner.domain.repository_interface import IScanStateStorage
from resource_scanner.domain.rotation import (
    CategorySelector,
    OldestFirstRotation,
    mark_category_scanned,
    merge_category_results,
    release_category,
    start_new_cycle,
)


logger = logging.getLogger(__name__)


class StagedScanCoordinator:
    """Application service running one staged scan step.

    Loads the persisted state, lets the selector pick a category, scans it,
    replaces that category's records and writes everything back. Nothing is
    persisted unless the whole step succeeds.
    """

    def __init__(
        self,
        executor: CategoryScanExecutor,
        storage: IScanStateStorage,
        categories: Mapping[str, Category],
        selector: Optional[CategorySelector] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """Initialize coordinator.

        Args:
            executor: Category scan executor
            storage: Scan state storage implementation
            categories: Configured categories, in rotation tie-break order
            selector: Rotation policy (oldest-first by default)
            clock: Returns the current time; injected by tests
        """
        if not categories:
            raise ValueError("At least one category must be configured")
        self._executor = executor
        self._storage = storage
        self._categories = categories
        self._selector = selector or OldestFirstRotation()
        self._clock = clock

    @property
    def category_keys(self):
        return list(self._categories)

    async def run(self, selector: Optional[CategorySelector] = None) -> StagedScanResult:
        """Load state, run one step and persist the outcome.

        Args:
            selector: Overrides the configured selector for this run only

        Returns:
            StagedScanResult of the step

        Raises:
            StateStorageError: When state cannot be loaded or saved
        """
        repositories = self._storage.load_repositories()
        scan_status = self._storage.load_scan_status()

        result = await self.run_step(scan_status, repositories, selector)

        self._storage.save(result.repositories, result.scan_status)
        self.log_summary(result)
        return result

    async def run_step(
        self,
        scan_status: ScanStatus,
        repositories: Dict[str, RepositoryRecord],
        selector: Optional[CategorySelector] = None
    ) -> StagedScanResult:
        """Run one step against in-memory state, without any persistence.

        Args:
            scan_status: Current scan status (left unmodified)
            repositories: Current repository map (left unmodified)
            selector: Overrides the configured selector for this step only

        Returns:
            StagedScanResult holding the updated status and repository map
        """
        keys = self.category_keys
        selection = (selector or self._selector).select(keys, scan_status)
        status = scan_status

        if selection.is_new_cycle:
            status = start_new_cycle(status)
            logger.info(f"Starting new scan cycle {status.current_cycle}")
            logger.info(
                f"Preserving existing data from {len(repositories)} repositories "
                f"until each category is refreshed"
            )

        if selection.forced:
            status = release_category(status, selection.category)
            logger.info(f"Forced rescan of category: {selection.category}")

        category = self._categories[selection.category]
        logger.info(f"Current category: {category.key}")
        logger.info(
            f"Progress: {len(status.completed_categories)}/{len(keys)} categories completed"
        )

        scan_result = await self._executor.scan_category(category)

        updated_repositories = merge_category_results(
            repositories, category.key, scan_result.repositories
        )
        updated_status = mark_category_scanned(status, category.key, keys, self._clock())

        if updated_status.last_full_scan != status.last_full_scan:
            logger.info(f"Full scan cycle {updated_status.current_cycle} completed!")

        return StagedScanResult(
            category=category.key,
            repositories=updated_repositories,
            scan_status=updated_status,
            scan_result=scan_result,
            is_new_cycle=selection.is_new_cycle,
            forced=selection.forced
        )

    def log_summary(self, result: StagedScanResult) -> None:
        status = result.scan_status
        total_categories = len(self._categories)
        completed = len(status.completed_categories)

        logger.info("=" * 50)
        logger.info("Scan Summary:")
        logger.info(f"  Category: {result.category}")
        logger.info(f"  Repositories found: {len(result.scan_result.repositories)}")
        logger.info(f"  Progress: {completed}/{total_categories} categories")
        logger.info(f"  Total repositories: {result.total_repositories}")
        logger.info(f"  Scan cycle: {status.current_cycle}")
        if status.last_full_scan:
            logger.info(f"  Last full scan: {status.last_full_scan.isoformat()}")

        if completed < total_categories:
            next_selection = self._selector.select(self.category_keys, status)
            logger.info(f"  {total_categories - completed} categories remaining in this cycle")
            logger.info(f"  Next run will scan: {next_selection.category}")
        else:
            logger.info("  Cycle complete! Next run will start a new cycle")
        logger.info("=" * 50)
