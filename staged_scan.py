"""Main entry point for the staged scanner.

Each run refreshes exactly one category, chosen by the oldest-first rotation,
and persists the merged dataset.
"""
import asyncio
import logging
import sys
from typing import Optional
from dotenv import load_dotenv
from resource_scanner.application.category_scanner import CategoryScanExecutor
from resource_scanner.application.enricher import RepositoryEnricher
from resource_scanner.application.staged_scan_service import StagedScanCoordinator
from resource_scanner.domain.categories import CATEGORIES
from resource_scanner.domain.rotation import CategorySelector
from resource_scanner.infrastructure.github_client import GitHubGraphQLClient
from resource_scanner.infrastructure.settings import ScannerSettings
from resource_scanner.infrastructure.storage_factory import create_state_storage

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


async def run_scan(settings: ScannerSettings, selector: Optional[CategorySelector] = None) -> int:
    """Execute one staged scan step.

    Args:
        settings: Settings for this invocation
        selector: Forces a category selection instead of the rotation

    Returns:
        Process exit code
    """
    if not settings.github_token:
        logger.error("GITHUB_TOKEN environment variable is required")
        return 1

    github_client = GitHubGraphQLClient(
        settings.github_token,
        request_delay=settings.request_delay_seconds
    )
    storage = None

    try:
        storage = create_state_storage(settings)
        enricher = RepositoryEnricher(
            github_client,
            CATEGORIES,
            recent_commits_days=settings.recent_commits_days,
            max_concurrent_fetches=settings.max_concurrent_fetches
        )
        executor = CategoryScanExecutor(github_client, enricher, settings.scan_limits())
        coordinator = StagedScanCoordinator(executor, storage, CATEGORIES)

        result = await coordinator.run(selector)

        logger.info(f"Staged scan of {result.category} completed successfully")
        return 0

    except Exception as e:
        logger.error(f"Staged scan failed: {e}", exc_info=True)
        return 1
    finally:
        await github_client.close()
        if storage is not None:
            storage.close()


def main() -> None:
    settings = ScannerSettings.from_env()
    configure_logging(settings.log_level)
    logger.info("Starting staged scanner")
    sys.exit(asyncio.run(run_scan(settings)))


if __name__ == "__main__":
    main()
